from .attributes import DifficultyAttributes, HitResult, ScoreStatistics
from .bonus import BonusCurve, speed_bonus
from .errors import ComputationDomainError, InvalidInput
from .mod import Mod, hit_window_300
from .performance import (
    Calibration,
    PerformanceBreakdown,
    PerformanceCalculator,
    performance_points,
)
from .timeline import SpeedPoint, Timeline, TimingPoint

__version__ = "0.1.0"


__all__ = [
    "BonusCurve",
    "Calibration",
    "ComputationDomainError",
    "DifficultyAttributes",
    "HitResult",
    "InvalidInput",
    "Mod",
    "PerformanceBreakdown",
    "PerformanceCalculator",
    "ScoreStatistics",
    "SpeedPoint",
    "Timeline",
    "TimingPoint",
    "hit_window_300",
    "performance_points",
    "speed_bonus",
]

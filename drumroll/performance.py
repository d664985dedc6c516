from collections import namedtuple
import logging
import math
from types import MappingProxyType

from .attributes import ScoreStatistics
from .bonus import mean_speed_bonus, speed_bonus
from .errors import ComputationDomainError, InvalidInput
from .mod import Mod, hit_window_300
from .speed import effective_speed, object_effective_speeds

log = logging.getLogger(__name__)


class Calibration(namedtuple(
        'Calibration',
        'length_scale length_exponent length_divisor speed_cap'
        ' reference_slider_multiplier norm'
        ' strain_scale strain_exponent strain_divisor miss_leniency'
        ' flashlight_strain_bonus'
        ' accuracy_scale accuracy_star_exponent accuracy_window_base'
        ' accuracy_window_offset accuracy_window_slope'
        ' accuracy_window_exponent accuracy_length_exponent'
        ' hidden_accuracy_bonus hidden_flashlight_bonus',
        defaults=(
            1500.0, 0.75, 10.0, 700.0, 1.4, 1.1,
            4.55, 3.0, 100.0, 1.0 / 600.0,
            1.05,
            3.75, 1.1, 3.0,
            2.8, 0.04,
            5.0, 0.3,
            1.1, 1.05,
        ))):
    """The calibrated constants of the performance calculation.

    Parameters
    ----------
    length_scale : float, optional
        The hit count that doubles the length term, ``K`` in
        ``log2((hits + K) / K)``.
    length_exponent : float, optional
        The exponent applied to the length term.
    length_divisor : float, optional
        The divisor of the length bonus; the bonus is
        ``length ** length_exponent / length_divisor + 1``.
    speed_cap : float, optional
        The highest tempo times speed multiplier counted when estimating the
        scroll speed, relative to ``reference_slider_multiplier``.
    reference_slider_multiplier : float, optional
        The slider multiplier the bonus curves were fit against.
    norm : float, optional
        The power of the mean used to combine the strain and accuracy
        components.
    strain_scale : float, optional
        The star rating multiplier of the base strain.
    strain_exponent : float, optional
        The power of the base strain.
    strain_divisor : float, optional
        The divisor of the base strain.
    miss_leniency : float, optional
        Subtracted from the hit ratio before the miss penalty is applied.
    flashlight_strain_bonus : float, optional
        The strain multiplier for flashlight, on top of the length bonus.
    accuracy_scale : float, optional
        The star rating multiplier of the accuracy component.
    accuracy_star_exponent : float, optional
        The power of the star rating in the accuracy component.
    accuracy_window_base : float, optional
        The base raised to the hit window term.
    accuracy_window_offset : float, optional
        The hit window term at a window of 0ms.
    accuracy_window_slope : float, optional
        How much each millisecond of hit window lowers the window term.
    accuracy_window_exponent : float, optional
        Multiplies the square root of the hit window in the accuracy power.
    accuracy_length_exponent : float, optional
        The power of the length term in the accuracy component.
    hidden_accuracy_bonus : float, optional
        The accuracy multiplier for hidden.
    hidden_flashlight_bonus : float, optional
        The extra total multiplier when flashlight is combined with hidden.

    Notes
    -----
    Use :meth:`_replace` to derive a calibration with some values changed.
    """


class PerformanceBreakdown(namedtuple(
        'PerformanceBreakdown',
        'total strain accuracy categories')):
    """The result of a performance calculation.

    Parameters
    ----------
    total : float
        The performance points awarded for the play.
    strain : float
        The component for executing the notes.
    accuracy : float
        The component for hitting the notes precisely.
    categories : mapping[str, float]
        Named intermediate values for display, as a read-only mapping.
    """


def _no_trace(name, value):
    pass


def _check_attributes(attributes):
    if not attributes.hit_object_times:
        raise InvalidInput('beatmap has no hit objects')
    if not attributes.timeline:
        raise InvalidInput(
            f'beatmap has {len(attributes.hit_object_times)} hit objects but'
            ' no timing points',
        )


def _finite(name, value):
    if not math.isfinite(value):
        raise ComputationDomainError(f'{name} is not finite: {value!r}')
    return value


def length_bonus(total_hits, calibration=Calibration()):
    """Compute the length term and length bonus of a play.

    Parameters
    ----------
    total_hits : int
        The number of judged hits.
    calibration : Calibration, optional
        The constants to use.

    Returns
    -------
    base_length : float
        ``log2((total_hits + K) / K)``.
    length_bonus : float
        ``base_length ** p / D + 1``.
    """
    scale = calibration.length_scale
    base_length = math.log2((total_hits + scale) / scale)
    return base_length, (
        base_length ** calibration.length_exponent /
        calibration.length_divisor +
        1.0
    )


def strain_value(star_rating,
                 length_bonus,
                 total_hits,
                 count_miss,
                 accuracy,
                 speed_bonus,
                 mods,
                 calibration=Calibration()):
    """Compute the strain component.

    Parameters
    ----------
    star_rating : float
        The star rating of the beatmap.
    length_bonus : float
        The length bonus of the play.
    total_hits : int
        The number of judged hits.
    count_miss : int
        The number of misses.
    accuracy : float
        The accuracy in the range [0, 1].
    speed_bonus : float
        The scroll speed bonus.
    mods : int
        The mod mask.
    calibration : Calibration, optional
        The constants to use.

    Returns
    -------
    strain : float
        The strain component.
    """
    c = calibration
    strain = (
        (c.strain_scale * star_rating) ** c.strain_exponent /
        c.strain_divisor
    )
    strain *= length_bonus
    strain *= max(
        0.0,
        ((total_hits - count_miss) / total_hits - c.miss_leniency) **
        (2.0 * count_miss),
    )
    strain *= accuracy
    if mods & Mod.flashlight:
        strain *= length_bonus * c.flashlight_strain_bonus
    strain *= speed_bonus
    return strain


def accuracy_value(star_rating,
                   hit_window,
                   accuracy,
                   base_length,
                   mods,
                   calibration=Calibration()):
    """Compute the accuracy component.

    Parameters
    ----------
    star_rating : float
        The star rating of the beatmap.
    hit_window : float
        The great hit window in milliseconds.
    accuracy : float
        The accuracy in the range [0, 1].
    base_length : float
        The length term of the play, see
        :func:`~drumroll.performance.length_bonus`.
    mods : int
        The mod mask.
    calibration : Calibration, optional
        The constants to use.

    Returns
    -------
    accuracy_value : float
        The accuracy component.
    """
    c = calibration
    return (
        (c.accuracy_scale * star_rating ** c.accuracy_star_exponent) *
        c.accuracy_window_base ** (
            c.accuracy_window_offset - c.accuracy_window_slope * hit_window
        ) *
        accuracy ** (c.accuracy_window_exponent * math.sqrt(hit_window)) *
        base_length ** c.accuracy_length_exponent *
        (c.hidden_accuracy_bonus if mods & Mod.hidden else 1.0)
    )


def combine(strain, accuracy, norm=1.1):
    """Combine the components with a power mean.

    Parameters
    ----------
    strain : float
        The strain component.
    accuracy : float
        The accuracy component.
    norm : float, optional
        The power.

    Returns
    -------
    combined : float
        ``(strain ** norm + accuracy ** norm) ** (1 / norm)``.

    Notes
    -----
    For ``norm`` above 1 the result is at least the larger component and at
    most the sum of both. Raising either component raises the result.
    """
    return (strain ** norm + accuracy ** norm) ** (1.0 / norm)


def mod_multiplier(length_bonus, mods, calibration=Calibration()):
    """The multiplier applied to the combined value.

    Flashlight multiplies by the length bonus, and by
    ``hidden_flashlight_bonus`` more when it is combined with hidden.
    """
    if not mods & Mod.flashlight:
        return 1.0
    if mods & Mod.hidden:
        return calibration.hidden_flashlight_bonus * length_bonus
    return length_bonus


class PerformanceCalculator:
    """Compute osu!taiko performance points with a scroll speed bonus.

    Parameters
    ----------
    calibration : Calibration, optional
        The constants to use. Defaults to ``Calibration()``.

    Notes
    -----
    A calculator only holds its calibration. Everything about a play is
    passed to :meth:`calculate`, so one instance can be shared between
    threads.
    """
    strategies = frozenset({'segment', 'mean', 'median', 'bonus_mean'})

    def __init__(self, calibration=None):
        if calibration is None:
            calibration = Calibration()
        self.calibration = calibration

    def __repr__(self):
        return f'<{type(self).__qualname__}: {self.calibration}>'

    def _speed_bonus(self, attributes, mods, strategy):
        calibration = self.calibration
        kwargs = {
            'speed_cap': calibration.speed_cap,
            'reference_slider_multiplier': (
                calibration.reference_slider_multiplier
            ),
        }
        if strategy == 'bonus_mean':
            speeds = object_effective_speeds(
                attributes.timeline,
                attributes.hit_object_times,
                attributes.slider_multiplier,
                **kwargs
            )
            return float(speeds.mean()), mean_speed_bonus(speeds, mods)

        speed = effective_speed(attributes, strategy, **kwargs)
        return speed, speed_bonus(speed, mods)

    def calculate(self,
                  attributes,
                  statistics,
                  mods=0,
                  *,
                  strategy='segment',
                  trace=None):
        """Compute the performance of a play.

        Parameters
        ----------
        attributes : DifficultyAttributes
            The difficulty of the beatmap.
        statistics : ScoreStatistics
            The judgements of the play.
        mods : int, optional
            The mod mask of the play.
        strategy : {'segment', 'mean', 'median', 'bonus_mean'}, optional
            How to estimate the scroll speed. ``'bonus_mean'`` averages the
            bonus at each hit object instead of computing the bonus of one
            average speed.
        trace : callable[[str, float], None], optional
            Called with the name and value of each intermediate result.

        Returns
        -------
        breakdown : PerformanceBreakdown
            The total and its components.

        Raises
        ------
        InvalidInput
            Raised when the beatmap has no hit objects or no timing points.
        ComputationDomainError
            Raised when the hit window is not positive or a component is not
            finite.
        """
        if strategy not in self.strategies:
            raise ValueError(
                f'unknown speed strategy: {strategy!r}, expected one of'
                f' {sorted(self.strategies)}',
            )
        _check_attributes(attributes)
        if trace is None:
            trace = _no_trace

        calibration = self.calibration
        star_rating = attributes.star_rating
        total_hits = statistics.total_hits

        speed, bonus = self._speed_bonus(attributes, mods, strategy)
        trace('effective_speed', speed)
        trace('speed_bonus', bonus)

        hit_window = hit_window_300(attributes.overall_difficulty, mods)
        trace('hit_window', hit_window)

        try:
            base_length, length = length_bonus(total_hits, calibration)
            trace('base_length', base_length)
            trace('length_bonus', length)

            strain = _finite('strain', strain_value(
                star_rating,
                length,
                total_hits,
                statistics.count_miss,
                statistics.accuracy,
                bonus,
                mods,
                calibration,
            ))
            trace('strain', strain)

            accuracy = _finite('accuracy', accuracy_value(
                star_rating,
                hit_window,
                statistics.accuracy,
                base_length,
                mods,
                calibration,
            ))
            trace('accuracy', accuracy)

            total = _finite(
                'total',
                combine(strain, accuracy, calibration.norm) *
                mod_multiplier(length, mods, calibration),
            )
            trace('total', total)
        except OverflowError as e:
            raise ComputationDomainError(f'performance overflowed: {e}')

        log.debug(
            'rated %r with %s: strain=%r accuracy=%r total=%r',
            attributes,
            Mod.format(mods),
            strain,
            accuracy,
            total,
        )
        return PerformanceBreakdown(
            total=total,
            strain=strain,
            accuracy=accuracy,
            categories=MappingProxyType({
                'Strain': strain,
                'Accuracy': accuracy,
                'Speed Bonus': bonus,
                'Effective Speed': speed,
                'Hit Window': hit_window,
                'Length Bonus': length,
            }),
        )


def performance_points(attributes,
                       *,
                       accuracy=None,
                       count_great=None,
                       count_ok=None,
                       count_miss=None,
                       no_fail=False,
                       easy=False,
                       hidden=False,
                       hard_rock=False,
                       double_time=False,
                       half_time=False,
                       flashlight=False,
                       strategy='segment',
                       calibration=None):
    """Compute the performance points for a play on a beatmap.

    Parameters
    ----------
    attributes : DifficultyAttributes
        The difficulty of the beatmap.
    accuracy : float, optional
        The accuracy achieved in the range [0, 1]. Defaults to the accuracy
        of the hit counts.
    count_great : int, optional
        The number of greats. If no hit counts are passed this defaults to
        one great per hit object.
    count_ok : int, optional
        The number of oks.
    count_miss : int, optional
        The number of misses.
    no_fail : bool, optional
        Account for the no fail mod.
    easy : bool, optional
        Account for the easy mod.
    hidden : bool, optional
        Account for the hidden mod.
    hard_rock : bool, optional
        Account for the hard rock mod.
    double_time : bool, optional
        Account for the double time mod.
    half_time : bool, optional
        Account for the half time mod.
    flashlight : bool, optional
        Account for the flashlight mod.
    strategy : str, optional
        The scroll speed strategy, see
        :meth:`~drumroll.performance.PerformanceCalculator.calculate`.
    calibration : Calibration, optional
        The constants to use.

    Returns
    -------
    pp : float
        The performance points awarded for the specified play.
    """
    if count_great is None and count_ok is None and count_miss is None:
        count_great = len(attributes.hit_object_times)

    statistics = ScoreStatistics.from_counts(
        count_great or 0,
        count_ok or 0,
        count_miss or 0,
        accuracy=accuracy,
    )
    mods = Mod.pack(
        no_fail=no_fail,
        easy=easy,
        hidden=hidden,
        hard_rock=hard_rock,
        double_time=double_time,
        half_time=half_time,
        flashlight=flashlight,
    )
    calculator = PerformanceCalculator(calibration)
    return calculator.calculate(
        attributes,
        statistics,
        mods,
        strategy=strategy,
    ).total

from enum import IntEnum, unique
import math
from types import MappingProxyType

from .errors import InvalidInput
from .timeline import SpeedPoint, Timeline, TimingPoint
from .utils import accuracy as calculate_accuracy, to_ms, to_timedelta


@unique
class HitResult(IntEnum):
    """The judgements a taiko hit can receive.
    """
    great = 0
    ok = 1
    miss = 2


def _hit_result(key):
    if isinstance(key, HitResult):
        return key
    try:
        return HitResult[str(key).lower()]
    except KeyError:
        raise InvalidInput(f'unknown hit result: {key!r}')


def _count(result, count):
    try:
        valid = count >= 0 and count == int(count)
    except (TypeError, ValueError, OverflowError):
        # nan and inf cannot be converted to int
        valid = False
    if not valid:
        raise InvalidInput(
            f'{result.name} count must be a non-negative integer,'
            f' got {count!r}',
        )
    return int(count)


class ScoreStatistics:
    """The judgements of a single play.

    Parameters
    ----------
    hit_counts : mapping[HitResult or str, int]
        The number of hits for each judgement. Missing judgements count as 0.
        The attribute is a read-only mapping keyed by :class:`HitResult`.
    accuracy : float, optional
        The accuracy in the range [0, 1]. Defaults to the accuracy implied by
        ``hit_counts``.

    Raises
    ------
    InvalidInput
        Raised when a count is negative, there are no hits at all, or the
        accuracy is outside of [0, 1].
    """
    def __init__(self, hit_counts, accuracy=None):
        counts = dict.fromkeys(HitResult, 0)
        for key, count in dict(hit_counts).items():
            result = _hit_result(key)
            counts[result] = _count(result, count)
        self.hit_counts = MappingProxyType(counts)

        total_hits = sum(counts.values())
        if total_hits <= 0:
            raise InvalidInput('a score must have at least one hit')

        if accuracy is None:
            accuracy = calculate_accuracy(
                counts[HitResult.great],
                counts[HitResult.ok],
                counts[HitResult.miss],
            )
        accuracy = float(accuracy)
        if not (math.isfinite(accuracy) and 0.0 <= accuracy <= 1.0):
            raise InvalidInput(
                f'accuracy must be in the range [0, 1], got {accuracy!r}',
            )
        self.accuracy = accuracy

    @classmethod
    def from_counts(cls, great=0, ok=0, miss=0, *, accuracy=None):
        """Create statistics from explicit judgement counts.

        Parameters
        ----------
        great : int, optional
            The number of greats.
        ok : int, optional
            The number of oks.
        miss : int, optional
            The number of misses.
        accuracy : float, optional
            Override the accuracy derived from the counts.

        Returns
        -------
        statistics : ScoreStatistics
            The statistics.
        """
        return cls(
            {HitResult.great: great, HitResult.ok: ok, HitResult.miss: miss},
            accuracy=accuracy,
        )

    @property
    def total_hits(self):
        """The number of judged hits, including misses.
        """
        return sum(self.hit_counts.values())

    @property
    def count_miss(self):
        return self.hit_counts[HitResult.miss]

    def __repr__(self):
        counts = ', '.join(
            f'{result.name}={count}'
            for result, count in self.hit_counts.items()
        )
        return (
            f'<{type(self).__qualname__}: {counts},'
            f' accuracy={self.accuracy:.4f}>'
        )


class DifficultyAttributes:
    """The precomputed difficulty of a beatmap.

    Parameters
    ----------
    star_rating : float
        The star rating of the beatmap with the score's mods applied.
    overall_difficulty : float
        The ``OD`` attribute of the beatmap without mods, in [0, 10].
    slider_multiplier : float
        The base scroll velocity of the beatmap.
    timeline : Timeline
        The control points of the beatmap.
    hit_object_times : iterable[timedelta]
        The time of each scorable hit object in non-decreasing order.

    Raises
    ------
    InvalidInput
        Raised when the hit object times are not sorted, the overall
        difficulty is outside of [0, 10], or the star rating or slider
        multiplier are not usable numbers.
    """
    def __init__(self,
                 *,
                 star_rating,
                 overall_difficulty,
                 slider_multiplier,
                 timeline,
                 hit_object_times):
        star_rating = float(star_rating)
        if not (math.isfinite(star_rating) and star_rating >= 0):
            raise InvalidInput(
                f'star rating must be a non-negative number, got'
                f' {star_rating!r}',
            )
        slider_multiplier = float(slider_multiplier)
        if not (math.isfinite(slider_multiplier) and slider_multiplier > 0):
            raise InvalidInput(
                f'slider multiplier must be a positive number, got'
                f' {slider_multiplier!r}',
            )
        overall_difficulty = float(overall_difficulty)
        if not 0 <= overall_difficulty <= 10:
            raise InvalidInput(
                f'overall difficulty must be in the range [0, 10], got'
                f' {overall_difficulty!r}',
            )

        hit_object_times = tuple(map(to_timedelta, hit_object_times))
        for previous, current in zip(hit_object_times, hit_object_times[1:]):
            if current < previous:
                raise InvalidInput(
                    'hit object times must be non-decreasing, got'
                    f' {to_ms(previous):g}ms followed by {to_ms(current):g}ms',
                )

        self.star_rating = star_rating
        self.overall_difficulty = overall_difficulty
        self.slider_multiplier = slider_multiplier
        self.timeline = timeline
        self.hit_object_times = hit_object_times

    @property
    def hit_object_ms(self):
        """The hit object times in milliseconds.
        """
        return [to_ms(t) for t in self.hit_object_times]

    def __repr__(self):
        return (
            f'<{type(self).__qualname__}: {self.star_rating:.2f} stars,'
            f' {len(self.hit_object_times)} objects>'
        )

    @classmethod
    def from_dict(cls, data):
        """Create attributes from a plain dictionary, for example decoded
        JSON.

        Parameters
        ----------
        data : dict
            A mapping with the keys ``star_rating``, ``overall_difficulty``,
            ``slider_multiplier``, ``timing_points`` (a list of
            ``{"offset": ms, "bpm": bpm}``), ``speed_points`` (optional, a
            list of ``{"offset": ms, "speed_multiplier": sv}``), and
            ``hit_objects`` (a list of times in milliseconds).

        Returns
        -------
        attributes : DifficultyAttributes
            The parsed attributes.

        Raises
        ------
        InvalidInput
            Raised when a required key is missing.
        """
        try:
            timeline = Timeline(
                [
                    TimingPoint(tp['offset'], tp['bpm'])
                    for tp in data['timing_points']
                ],
                [
                    SpeedPoint(sp['offset'], sp['speed_multiplier'])
                    for sp in data.get('speed_points', ())
                ],
            )
            return cls(
                star_rating=data['star_rating'],
                overall_difficulty=data['overall_difficulty'],
                slider_multiplier=data['slider_multiplier'],
                timeline=timeline,
                hit_object_times=data['hit_objects'],
            )
        except KeyError as e:
            raise InvalidInput(f'missing difficulty attribute: {e}')

    def to_dict(self):
        """Convert the attributes into a plain dictionary.

        Returns
        -------
        data : dict
            The attributes in the format read by
            :meth:`~drumroll.attributes.DifficultyAttributes.from_dict`.
        """
        return {
            'star_rating': self.star_rating,
            'overall_difficulty': self.overall_difficulty,
            'slider_multiplier': self.slider_multiplier,
            'timing_points': [
                {'offset': to_ms(tp.offset), 'bpm': tp.bpm}
                for tp in self.timeline.timing_points
            ],
            'speed_points': [
                {'offset': to_ms(sp.offset),
                 'speed_multiplier': sp.speed_multiplier}
                for sp in self.timeline.speed_points
            ],
            'hit_objects': list(self.hit_object_ms),
        }

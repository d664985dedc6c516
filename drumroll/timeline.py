from bisect import bisect_right
from collections import namedtuple
from itertools import chain
import math

from .errors import InvalidInput
from .utils import to_ms, to_timedelta


def _positive(value, name, owner):
    value = float(value)
    if not (math.isfinite(value) and value > 0):
        raise InvalidInput(
            f'{owner} {name} must be a positive number, got {value!r}',
        )
    return value


class TimingPoint:
    """A timing point sets the tempo of a beatmap from its offset onward.

    Parameters
    ----------
    offset : timedelta
        When this ``TimingPoint`` takes effect.
    bpm : float
        The beats per minute.
    """
    def __init__(self, offset, bpm):
        self.offset = to_timedelta(offset)
        self.bpm = _positive(bpm, 'bpm', type(self).__qualname__)

    @classmethod
    def from_ms_per_beat(cls, offset, ms_per_beat):
        """Create a timing point from a beat length.

        Parameters
        ----------
        offset : timedelta
            When this ``TimingPoint`` takes effect.
        ms_per_beat : float
            The milliseconds per beat, this is another representation of BPM.

        Returns
        -------
        timing_point : TimingPoint
            The timing point.
        """
        ms_per_beat = _positive(ms_per_beat, 'ms_per_beat', cls.__qualname__)
        return cls(offset, 60000 / ms_per_beat)

    def __eq__(self, other):
        if not isinstance(other, TimingPoint):
            return NotImplemented
        return self.offset == other.offset and self.bpm == other.bpm

    def __hash__(self):
        return hash((type(self), self.offset, self.bpm))

    def __repr__(self):
        return (
            f'<{type(self).__qualname__}:'
            f' {to_ms(self.offset):g}ms, {self.bpm:g}bpm>'
        )


class SpeedPoint:
    """A speed point scales the scroll speed from its offset onward.

    Parameters
    ----------
    offset : timedelta
        When this ``SpeedPoint`` takes effect.
    speed_multiplier : float
        The scroll speed multiplier relative to the beatmap's base velocity.
    """
    def __init__(self, offset, speed_multiplier):
        self.offset = to_timedelta(offset)
        self.speed_multiplier = _positive(
            speed_multiplier,
            'speed_multiplier',
            type(self).__qualname__,
        )

    @classmethod
    def from_ms_per_beat(cls, offset, ms_per_beat):
        """Create a speed point from an inherited timing point's beat length.

        Parameters
        ----------
        offset : timedelta
            When this ``SpeedPoint`` takes effect.
        ms_per_beat : float
            The negative beat length of an inherited timing point. ``-100``
            is a multiplier of 1, ``-50`` is a multiplier of 2.

        Returns
        -------
        speed_point : SpeedPoint
            The speed point.
        """
        if not ms_per_beat < 0:
            raise InvalidInput(
                'inherited ms_per_beat must be negative, got'
                f' {ms_per_beat!r}',
            )
        return cls(offset, -100 / ms_per_beat)

    def __eq__(self, other):
        if not isinstance(other, SpeedPoint):
            return NotImplemented
        return (
            self.offset == other.offset and
            self.speed_multiplier == other.speed_multiplier
        )

    def __hash__(self):
        return hash((type(self), self.offset, self.speed_multiplier))

    def __repr__(self):
        return (
            f'<{type(self).__qualname__}:'
            f' {to_ms(self.offset):g}ms, x{self.speed_multiplier:g}>'
        )


class Segment(namedtuple('Segment', 'start end bpm speed_multiplier')):
    """A span of a beatmap with constant tempo and scroll speed.

    Parameters
    ----------
    start : timedelta
        The inclusive start of the span.
    end : timedelta
        The exclusive end of the span.
    bpm : float
        The tempo in the span.
    speed_multiplier : float
        The scroll speed multiplier in the span.
    """

    @property
    def effective_speed(self):
        """The scroll speed in the span, tempo times speed multiplier.
        """
        return self.bpm * self.speed_multiplier


def _check_increasing(points, kind):
    for previous, current in zip(points, points[1:]):
        if not previous.offset < current.offset:
            raise InvalidInput(
                f'{kind} points must have strictly increasing offsets,'
                f' got {previous!r} followed by {current!r}',
            )


class Timeline:
    """The control points of a beatmap.

    Parameters
    ----------
    timing_points : iterable[TimingPoint]
        The tempo changes ordered by offset.
    speed_points : iterable[SpeedPoint], optional
        The scroll speed changes ordered by offset.

    Raises
    ------
    InvalidInput
        Raised when the points of either kind are not strictly increasing in
        offset.

    Notes
    -----
    A ``Timeline`` is immutable once constructed so it may be shared between
    concurrent calculations.
    """
    def __init__(self, timing_points, speed_points=()):
        self.timing_points = timing_points = tuple(timing_points)
        self.speed_points = speed_points = tuple(speed_points)
        _check_increasing(timing_points, 'timing')
        _check_increasing(speed_points, 'speed')
        self._timing_offsets = tuple(tp.offset for tp in timing_points)
        self._speed_offsets = tuple(sp.offset for sp in speed_points)

    def __bool__(self):
        return bool(self.timing_points)

    def __repr__(self):
        return (
            f'<{type(self).__qualname__}: {len(self.timing_points)} timing,'
            f' {len(self.speed_points)} speed>'
        )

    def timing_point_at(self, time):
        """Get the :class:`drumroll.timeline.TimingPoint` at the given time.

        Parameters
        ----------
        time : datetime.timedelta
            The time to lookup the :class:`drumroll.timeline.TimingPoint` for.

        Returns
        -------
        timing_point : TimingPoint
            The last timing point at or before ``time``, or the first timing
            point if ``time`` precedes all of them.

        Raises
        ------
        InvalidInput
            Raised when the timeline has no timing points.
        """
        if not self.timing_points:
            raise InvalidInput('timeline has no timing points')

        ix = bisect_right(self._timing_offsets, to_timedelta(time)) - 1
        return self.timing_points[max(ix, 0)]

    def speed_multiplier_at(self, time):
        """Get the scroll speed multiplier at the given time.

        Parameters
        ----------
        time : datetime.timedelta
            The time to lookup the multiplier for.

        Returns
        -------
        speed_multiplier : float
            The multiplier of the last speed point at or before ``time``, or
            1.0 if no speed point precedes ``time``.
        """
        ix = bisect_right(self._speed_offsets, to_timedelta(time)) - 1
        if ix < 0:
            return 1.0
        return self.speed_points[ix].speed_multiplier

    def segments(self, end, *, start=None):
        """Split the timeline into spans of constant tempo and scroll speed.

        Parameters
        ----------
        end : timedelta
            The exclusive end of the last segment. To count every hit object
            this should be one millisecond past the last hit object.
        start : timedelta, optional
            The earliest time that must be covered. The first segment begins
            at the earlier of this and the first control point.

        Returns
        -------
        segments : iterator[Segment]
            The segments in time order. Every control point offset inside
            ``[start, end)`` begins a new segment.

        Raises
        ------
        InvalidInput
            Raised when the timeline has no timing points.

        Notes
        -----
        Spans before the first speed point use a multiplier of 1.0 and are
        still split at any timing points inside of them.
        """
        if not self.timing_points:
            raise InvalidInput('timeline has no timing points')

        first = min(chain(self._timing_offsets[:1], self._speed_offsets[:1]))
        if start is not None:
            first = min(first, to_timedelta(start))

        return self._segments(first, to_timedelta(end))

    def _segments(self, start, end):
        boundaries = sorted({
            offset
            for offset in chain(self._timing_offsets, self._speed_offsets)
            if start < offset < end
        })
        edges = [start, *boundaries, end]
        for segment_start, segment_end in zip(edges, edges[1:]):
            if not segment_start < segment_end:
                continue
            yield Segment(
                segment_start,
                segment_end,
                self.timing_point_at(segment_start).bpm,
                self.speed_multiplier_at(segment_start),
            )

from bisect import bisect_left
from datetime import timedelta
import logging

import numpy as np

from .errors import InvalidInput
from .utils import to_timedelta

log = logging.getLogger(__name__)

#: The highest tempo times speed multiplier that is counted, in terms of the
#: reference slider multiplier.
DEFAULT_SPEED_CAP = 700.0

#: The slider multiplier that the bonus curves were fit against.
DEFAULT_REFERENCE_SLIDER_MULTIPLIER = 1.4


def _object_times(timeline, hit_object_times):
    times = [to_timedelta(t) for t in hit_object_times]
    if not times:
        raise InvalidInput(
            'cannot estimate the scroll speed of a beatmap with no hit'
            ' objects',
        )
    if not timeline:
        raise InvalidInput(
            f'beatmap has {len(times)} hit objects but no timing points',
        )
    return times


def segment_weights(timeline, hit_object_times):
    """Split the timeline into segments weighted by their share of objects.

    Parameters
    ----------
    timeline : Timeline
        The control points of the beatmap.
    hit_object_times : sequence[timedelta]
        The times of the hit objects in non-decreasing order.

    Returns
    -------
    segments : list[Segment]
        The segments from the earliest of the first control point and the
        first hit object to one millisecond past the last hit object.
    weights : np.ndarray[float]
        The fraction of the hit objects that fall in ``[start, end)`` of each
        segment. The weights sum to 1.

    Raises
    ------
    InvalidInput
        Raised when there are no hit objects or no timing points.
    """
    times = _object_times(timeline, hit_object_times)
    end = times[-1] + timedelta(milliseconds=1)
    segments = list(timeline.segments(end, start=times[0]))

    counts = np.array(
        [
            bisect_left(times, segment.end) - bisect_left(times, segment.start)
            for segment in segments
        ],
        dtype=float,
    )
    return segments, counts / len(times)


def weighted_effective_speed(timeline,
                             hit_object_times,
                             slider_multiplier,
                             *,
                             speed_cap=DEFAULT_SPEED_CAP,
                             reference_slider_multiplier=(
                                 DEFAULT_REFERENCE_SLIDER_MULTIPLIER
                             )):
    """Compute the object weighted average scroll speed of a beatmap.

    Parameters
    ----------
    timeline : Timeline
        The control points of the beatmap.
    hit_object_times : sequence[timedelta]
        The times of the hit objects in non-decreasing order.
    slider_multiplier : float
        The base scroll velocity of the beatmap.
    speed_cap : float, optional
        Segment speeds are capped at ``speed_cap /
        reference_slider_multiplier`` before weighting.
    reference_slider_multiplier : float, optional
        The slider multiplier that a speed of ``bpm * speed_multiplier`` is
        measured against.

    Returns
    -------
    effective_speed : float
        ``sum(weight * min(bpm * speed_multiplier, cap))`` scaled by
        ``slider_multiplier / reference_slider_multiplier``.
    """
    segments, weights = segment_weights(timeline, hit_object_times)
    speeds = np.minimum(
        np.array([segment.effective_speed for segment in segments]),
        speed_cap / reference_slider_multiplier,
    )
    log.debug(
        'weighted %d segments, total weight %r',
        len(segments),
        float(np.sum(weights)),
    )
    return (
        float(np.sum(weights * speeds)) *
        (slider_multiplier / reference_slider_multiplier)
    )


def object_effective_speeds(timeline,
                            hit_object_times,
                            slider_multiplier,
                            *,
                            speed_cap=DEFAULT_SPEED_CAP,
                            reference_slider_multiplier=(
                                DEFAULT_REFERENCE_SLIDER_MULTIPLIER
                            )):
    """Compute the instantaneous scroll speed at each hit object.

    Parameters
    ----------
    timeline : Timeline
        The control points of the beatmap.
    hit_object_times : sequence[timedelta]
        The times of the hit objects.
    slider_multiplier : float
        The base scroll velocity of the beatmap.
    speed_cap : float, optional
        The cap, see :func:`drumroll.speed.weighted_effective_speed`.
    reference_slider_multiplier : float, optional
        The reference slider multiplier.

    Returns
    -------
    speeds : np.ndarray[float]
        The capped and scaled scroll speed of each hit object.
    """
    times = _object_times(timeline, hit_object_times)
    speeds = np.array([
        timeline.timing_point_at(t).bpm * timeline.speed_multiplier_at(t)
        for t in times
    ])
    return (
        np.minimum(speeds, speed_cap / reference_slider_multiplier) *
        (slider_multiplier / reference_slider_multiplier)
    )


def mean_effective_speed(timeline,
                         hit_object_times,
                         slider_multiplier,
                         **kwargs):
    """The unweighted mean of :func:`object_effective_speeds`.
    """
    return float(np.mean(object_effective_speeds(
        timeline,
        hit_object_times,
        slider_multiplier,
        **kwargs
    )))


def median_effective_speed(timeline,
                           hit_object_times,
                           slider_multiplier,
                           **kwargs):
    """The median of :func:`object_effective_speeds`.
    """
    return float(np.median(object_effective_speeds(
        timeline,
        hit_object_times,
        slider_multiplier,
        **kwargs
    )))


estimators = {
    'segment': weighted_effective_speed,
    'mean': mean_effective_speed,
    'median': median_effective_speed,
}


def effective_speed(attributes, strategy='segment', **kwargs):
    """Estimate the scroll speed of a beatmap.

    Parameters
    ----------
    attributes : DifficultyAttributes
        The difficulty attributes of the beatmap.
    strategy : {'segment', 'mean', 'median'}, optional
        ``'segment'`` weights each control point segment by its share of the
        hit objects. ``'mean'`` and ``'median'`` reduce the speed at each hit
        object.
    **kwargs
        Forwarded to the estimator.

    Returns
    -------
    effective_speed : float
        The estimated scroll speed.
    """
    try:
        estimator = estimators[strategy]
    except KeyError:
        raise ValueError(
            f'unknown speed strategy: {strategy!r}, expected one of'
            f' {sorted(estimators)}',
        )

    return estimator(
        attributes.timeline,
        attributes.hit_object_times,
        attributes.slider_multiplier,
        **kwargs
    )

from datetime import timedelta

from hypothesis.strategies import (booleans, composite, floats as _floats,
    integers, lists, sampled_from)

from drumroll import (DifficultyAttributes, Mod, ScoreStatistics, SpeedPoint,
    Timeline, TimingPoint)


def floats(*args, **kwargs):
    return _floats(*args, allow_nan=False, allow_infinity=False, **kwargs)


def offsets(*, min_size=0, max_size=20):
    # whole milliseconds keep the timedelta arithmetic exact
    return lists(
        integers(-5000, 600000),
        min_size=min_size,
        max_size=max_size,
        unique=True,
    ).map(sorted).map(lambda ms: [timedelta(milliseconds=m) for m in ms])


@composite
def timelines(draw, *, speed_points=True):
    timing_points = [
        TimingPoint(offset, draw(floats(30, 400)))
        for offset in draw(offsets(min_size=1))
    ]
    speeds = []
    if speed_points and draw(booleans()):
        speeds = [
            SpeedPoint(offset, draw(floats(0.1, 10)))
            for offset in draw(offsets())
        ]
    return Timeline(timing_points, speeds)


def hit_object_times(*, min_size=1, max_size=200):
    return lists(
        integers(-5000, 650000),
        min_size=min_size,
        max_size=max_size,
    ).map(sorted).map(lambda ms: [timedelta(milliseconds=m) for m in ms])


@composite
def difficulty_attributes(draw, *, speed_points=True):
    return DifficultyAttributes(
        star_rating=draw(floats(0, 12)),
        overall_difficulty=draw(floats(0, 10)),
        slider_multiplier=draw(floats(0.4, 3.6)),
        timeline=draw(timelines(speed_points=speed_points)),
        hit_object_times=draw(hit_object_times()),
    )


@composite
def score_statistics(draw, *, perfect=False):
    if perfect:
        return ScoreStatistics.from_counts(draw(integers(1, 5000)), 0, 0)

    great = draw(integers(0, 5000))
    ok = draw(integers(0, 5000))
    miss = draw(integers(0 if great or ok else 1, 100))
    return ScoreStatistics.from_counts(great, ok, miss)


@composite
def mods(draw):
    """Mod masks that respect the easy/hard rock and double/half time
    exclusivity.
    """
    mask = draw(sampled_from([0, Mod.easy, Mod.hard_rock]))
    mask |= draw(sampled_from([0, Mod.double_time, Mod.half_time]))
    if draw(booleans()):
        mask |= Mod.hidden
    if draw(booleans()):
        mask |= Mod.flashlight
    if draw(booleans()):
        mask |= Mod.no_fail
    return mask

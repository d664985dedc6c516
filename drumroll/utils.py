from datetime import timedelta


def accuracy(count_great, count_ok, count_miss):
    """Calculate osu!taiko accuracy from discrete hit counts.

    Parameters
    ----------
    count_great : int
        The number of greats hit.
    count_ok : int
        The number of oks hit.
    count_miss : int
        The number of misses.

    Returns
    -------
    accuracy : float
        The accuracy in the range [0, 1]

    Notes
    -----
    An ok is worth half of a great and a miss is worth nothing.
    """
    total_hits = count_great + count_ok + count_miss
    return (count_great + count_ok * 0.5) / total_hits


def to_ms(time):
    """Convert a time offset into a number of milliseconds.

    Parameters
    ----------
    time : timedelta or float
        The offset. Plain numbers are taken to already be milliseconds.

    Returns
    -------
    ms : float
        The offset in milliseconds.
    """
    if isinstance(time, timedelta):
        return time / timedelta(milliseconds=1)
    return float(time)


def to_timedelta(time):
    """Coerce a time offset into a :class:`datetime.timedelta`.

    Parameters
    ----------
    time : timedelta or float
        The offset. Plain numbers are taken to be milliseconds.

    Returns
    -------
    offset : timedelta
        The offset as a timedelta.
    """
    if isinstance(time, timedelta):
        return time
    return timedelta(milliseconds=time)

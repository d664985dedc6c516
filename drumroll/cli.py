from contextlib import contextmanager
import csv
import json

import click

from .attributes import DifficultyAttributes, ScoreStatistics
from .errors import InvalidInput
from .mod import Mod


def maybe_show_progress(it, show_progress, **kwargs):
    """Optionally show a progress bar for the given iterator.

    Parameters
    ----------
    it : iterable
        The underlying iterator.
    show_progress : bool
        Should progress be shown.
    **kwargs
        Forwarded to the click progress bar.

    Returns
    -------
    itercontext : context manager
        A context manager whose enter is the actual iterator to use.

    Examples
    --------
    .. code-block:: python

       with maybe_show_progress([1, 2, 3], True) as ns:
            for n in ns:
                ...
    """
    if show_progress:
        return click.progressbar(it, **kwargs)

    @contextmanager
    def ctx():
        yield it

    return ctx()


def load_attributes(file):
    """Read difficulty attributes from a JSON document.

    Parameters
    ----------
    file : file-like
        The open JSON file.

    Returns
    -------
    attributes : DifficultyAttributes
        The attributes.
    """
    try:
        data = json.load(file)
    except json.JSONDecodeError as e:
        raise InvalidInput(f'malformed attributes file: {e}')
    return DifficultyAttributes.from_dict(data)


def read_scores(file):
    """Read the rows of a CSV file of ``mods,great,ok,miss`` plays.

    Parameters
    ----------
    file : file-like
        The open CSV file. A first row starting with ``mods`` is treated as a
        header.

    Yields
    ------
    line : int
        The line number of the row.
    row : list[str]
        The cells of the row.
    """
    for line, row in enumerate(csv.reader(file), start=1):
        if not row or (line == 1 and row[0].strip().lower() == 'mods'):
            continue
        yield line, row


def parse_score(line, row):
    """Parse one row read by :func:`read_scores`.

    Parameters
    ----------
    line : int
        The line number, used in error messages.
    row : list[str]
        The cells of the row.

    Returns
    -------
    mods : int
        The mod mask.
    statistics : ScoreStatistics
        The judgements.
    """
    try:
        mods, great, ok, miss = (cell.strip() for cell in row)
    except ValueError:
        raise InvalidInput(
            f'line {line}: expected mods,great,ok,miss, got {row!r}',
        )
    try:
        counts = int(great), int(ok), int(miss)
        mods = Mod.parse(mods)
    except ValueError as e:
        raise InvalidInput(f'line {line}: {e}')

    return mods, ScoreStatistics.from_counts(*counts)


def format_breakdown(breakdown):
    """Format a :class:`~drumroll.performance.PerformanceBreakdown` for
    display.
    """
    width = max(map(len, breakdown.categories))
    lines = [f'{"Total":<{width}}  {breakdown.total:.3f}pp']
    lines.extend(
        f'{name:<{width}}  {value:.3f}'
        for name, value in breakdown.categories.items()
    )
    return '\n'.join(lines)

from concurrent.futures import ThreadPoolExecutor
import logging

import click

from . import PerformanceCalculator, ScoreStatistics, speed_bonus
from .cli import (
    format_breakdown,
    load_attributes,
    maybe_show_progress,
    parse_score,
    read_scores,
)
from .errors import ComputationDomainError, InvalidInput
from .mod import Mod


strategy_option = click.option(
    '--strategy',
    type=click.Choice(sorted(PerformanceCalculator.strategies)),
    default='segment',
    help='How to estimate the scroll speed of the beatmap.',
)


def _parse_mods(ctx, param, value):
    try:
        return Mod.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


mods_option = click.option(
    '--mods',
    default='',
    callback=_parse_mods,
    help='The mods as shortened names, for example HDHR.',
)


@click.group()
@click.option(
    '--verbose/--no-verbose',
    help='Log intermediate values?',
    default=False,
)
def main(verbose):
    """drumroll utilities.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


@main.command()
@click.argument('attributes', type=click.File('r'))
@mods_option
@click.option('--great', type=int, help='The number of greats.')
@click.option('--ok', type=int, default=0, help='The number of oks.')
@click.option('--miss', type=int, default=0, help='The number of misses.')
@click.option(
    '--accuracy',
    type=float,
    help='The accuracy in [0, 1]. Defaults to the accuracy of the counts.',
)
@strategy_option
@click.option(
    '--trace/--no-trace',
    help='Print every intermediate value?',
    default=False,
)
def pp(attributes, mods, great, ok, miss, accuracy, strategy, trace):
    """Compute the performance of one play.
    """
    def echo_trace(name, value):
        click.echo(f'{name} = {value!r}', err=True)

    try:
        attributes = load_attributes(attributes)
        if great is None:
            great = max(len(attributes.hit_object_times) - ok - miss, 0)
        statistics = ScoreStatistics.from_counts(
            great,
            ok,
            miss,
            accuracy=accuracy,
        )
        breakdown = PerformanceCalculator().calculate(
            attributes,
            statistics,
            mods,
            strategy=strategy,
            trace=echo_trace if trace else None,
        )
    except (InvalidInput, ComputationDomainError) as e:
        raise click.ClickException(str(e))

    click.echo(format_breakdown(breakdown))


@main.command()
@click.argument('attributes', type=click.File('r'))
@click.argument('scores', type=click.File('r'))
@strategy_option
@click.option(
    '--jobs',
    type=click.IntRange(min=1),
    default=1,
    help='The number of threads to rate scores with.',
)
@click.option(
    '--progress/--no-progress',
    help='Show a progress bar?',
    default=False,
)
@click.option(
    '--skip-exceptions/--no-skip-exceptions',
    help='Skip scores that cause exceptions rather than exiting?',
    default=False,
)
def batch(attributes, scores, strategy, jobs, progress, skip_exceptions):
    """Compute the performance of many plays on one beatmap.

    SCORES is a CSV file of mods,great,ok,miss rows.
    """
    try:
        attributes = load_attributes(attributes)
    except InvalidInput as e:
        raise click.ClickException(str(e))

    calculator = PerformanceCalculator()

    def rate(entry):
        line, row = entry
        try:
            mods, statistics = parse_score(line, row)
            breakdown = calculator.calculate(
                attributes,
                statistics,
                mods,
                strategy=strategy,
            )
        except (InvalidInput, ComputationDomainError) as e:
            if not skip_exceptions:
                raise click.ClickException(str(e))
            logging.exception(f'Failed to rate line {line}')
            return line, row, None
        return line, row, breakdown

    entries = list(read_scores(scores))
    with ThreadPoolExecutor(jobs) as executor, \
            maybe_show_progress(
                executor.map(rate, entries),
                progress,
                length=len(entries),
                label='Rating scores',
                file=click.get_text_stream('stderr'),
            ) as results:
        for line, row, breakdown in results:
            if breakdown is None:
                continue
            click.echo(
                f'{",".join(cell.strip() for cell in row)},'
                f'{breakdown.total:.3f}',
            )


@main.command()
@click.argument('speed', type=float)
@mods_option
def bonus(speed, mods):
    """Print the scroll speed bonus for an effective SPEED.
    """
    click.echo(f'{speed_bonus(speed, mods):.6f}')


if __name__ == '__main__':
    main()

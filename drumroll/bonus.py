from bisect import bisect_right
from collections import namedtuple
import math

import numpy as np
from numpy.polynomial import polynomial

from .mod import Mod


class Piece(namedtuple('Piece', 'low high origin coefficients')):
    """One quadratic piece of a :class:`~drumroll.bonus.BonusCurve`.

    Parameters
    ----------
    low : float
        The inclusive lower bound of the piece.
    high : float
        The exclusive upper bound of the piece, ``inf`` for the last piece.
    origin : float
        The value subtracted from the input before evaluating the polynomial.
    coefficients : tuple[float]
        The polynomial coefficients in increasing order of degree.

    Notes
    -----
    A piece evaluates ``sum(c[i] * (x - origin) ** i)``.
    """

    def __call__(self, speed):
        return float(
            polynomial.polyval(speed - self.origin, self.coefficients),
        )


class BonusCurve:
    """A piecewise polynomial mapping scroll speed to a pp multiplier.

    Parameters
    ----------
    name : str
        The name of the curve.
    pieces : iterable[Piece]
        The pieces ordered by ``low``. Each piece must start where the
        previous piece ends.

    Raises
    ------
    ValueError
        Raised when the pieces leave a gap or overlap.
    """
    def __init__(self, name, pieces):
        self.name = name
        self.pieces = pieces = tuple(pieces)
        if not pieces:
            raise ValueError(f'{name} curve must have at least one piece')

        for previous, current in zip(pieces, pieces[1:]):
            if previous.high != current.low:
                raise ValueError(
                    f'{name} curve pieces must be contiguous, got a piece'
                    f' ending at {previous.high} followed by a piece starting'
                    f' at {current.low}',
                )
        self._lows = [piece.low for piece in pieces]

    @property
    def breakpoints(self):
        """The speeds where one piece hands off to the next.
        """
        return [piece.high for piece in self.pieces[:-1]]

    def __call__(self, speed):
        ix = bisect_right(self._lows, speed) - 1
        return self.pieces[max(ix, 0)](speed)

    def is_continuous(self, tolerance=1e-9):
        """Check that adjacent pieces agree at their shared breakpoint.

        Parameters
        ----------
        tolerance : float, optional
            The largest absolute difference allowed.

        Returns
        -------
        continuous : bool
            Whether the curve is continuous at every breakpoint.
        """
        return all(
            math.isclose(
                previous(previous.high),
                current(current.low),
                rel_tol=0,
                abs_tol=tolerance,
            )
            for previous, current in zip(self.pieces, self.pieces[1:])
        )

    def __repr__(self):
        return f'<{type(self).__qualname__}: {self.name}>'


hidden_curve = BonusCurve('HD', [
    Piece(0.0, 180.0, 0.0, (1.3, 0.0, -1 / 168000)),
    Piece(180.0, 210.0, 210.0, (1.075, 0.0, 1 / 28000)),
    Piece(210.0, 240.0, 210.0, (1.075, 0.0, 1 / 48000)),
    Piece(240.0, 330.0, 330.0, (1.15, 0.0, -1 / 144000)),
    Piece(330.0, math.inf, 0.0, (1.15,)),
])

easy_hidden_curve = BonusCurve('EZHD', [
    Piece(0.0, 186.0, 0.0, (1.3, 0.0, -1 / 115320)),
    Piece(186.0, 279.0, 279.0, (0.85, 0.0, 1 / 57660)),
    Piece(279.0, 349.5, 279.0, (0.85, 0.0, 1 / 66270)),
    Piece(349.5, 420.0, 420.0, (1.0, 0.0, -1 / 66270)),
    Piece(420.0, math.inf, 0.0, (1.0,)),
])

hard_rock_curve = BonusCurve('HR', [
    Piece(0.0, 160.0, 80.0, (0.9, 0.0, 1 / 64000)),
    Piece(160.0, 320.0, 320.0, (1.2, 0.0, -1 / 128000)),
    # the top of the fit, not the raw speed
    Piece(320.0, math.inf, 0.0, (1.2,)),
])

easy_curve = BonusCurve('EZ', [
    Piece(0.0, 160.0, 80.0, (1.1, 0.0, -1 / 64000)),
    Piece(160.0, 320.0, 320.0, (0.8, 0.0, 1 / 128000)),
    Piece(320.0, math.inf, 0.0, (0.8,)),
])

hidden_hard_rock_curve = BonusCurve('HDHR', [
    Piece(0.0, 120.0, 0.0, (1.3, 0.0, -1 / 90000)),
    Piece(120.0, 150.0, 150.0, (1.1, 0.0, 1 / 22500)),
    Piece(150.0, 180.0, 150.0, (1.1, 0.0, 1 / 18000)),
    Piece(180.0, 240.0, 240.0, (1.25, 0.0, -1 / 36000)),
    Piece(240.0, math.inf, 0.0, (1.25,)),
])

#: The mods that select a curve. Flashlight is included so that any
#: combination with flashlight falls back to no bonus.
curve_mods = Mod.hidden | Mod.hard_rock | Mod.easy | Mod.flashlight

curves = {
    Mod.hidden: hidden_curve,
    Mod.hidden | Mod.easy: easy_hidden_curve,
    Mod.hard_rock: hard_rock_curve,
    Mod.easy: easy_curve,
    Mod.hidden | Mod.hard_rock: hidden_hard_rock_curve,
}


def curve_for(mods):
    """Look up the bonus curve for a mod combination.

    Parameters
    ----------
    mods : int
        The mod mask.

    Returns
    -------
    curve : BonusCurve or None
        The curve, or None when the combination has no curve. Combinations
        without a curve receive no scroll speed bonus.
    """
    return curves.get(mods & curve_mods)


def clock_scaled_speed(speed, mods):
    """Scale a scroll speed by the clock rate of the mods.

    Parameters
    ----------
    speed : float
        The scroll speed at the normal clock rate.
    mods : int
        The mod mask.

    Returns
    -------
    speed : float
        The scroll speed as it appears with double time (x1.5) or half time
        (x0.75) applied.
    """
    if mods & Mod.double_time:
        speed *= 1.5
    if mods & Mod.half_time:
        speed *= 0.75
    return speed


def speed_bonus(speed, mods):
    """Compute the scroll speed bonus for a play.

    Parameters
    ----------
    speed : float
        The effective scroll speed of the beatmap at the normal clock rate.
    mods : int
        The mod mask.

    Returns
    -------
    bonus : float
        The multiplier applied to the strain component. This is exactly 1.0
        for combinations without a curve.
    """
    curve = curve_for(mods)
    if curve is None:
        return 1.0
    return curve(clock_scaled_speed(speed, mods))


def mean_speed_bonus(speeds, mods):
    """Average the scroll speed bonus over the speed at each hit object.

    Parameters
    ----------
    speeds : iterable[float]
        The effective scroll speed at each hit object.
    mods : int
        The mod mask.

    Returns
    -------
    bonus : float
        The mean bonus. This is exactly 1.0 for combinations without a curve.
    """
    curve = curve_for(mods)
    if curve is None:
        return 1.0
    return float(np.mean([
        curve(clock_scaled_speed(speed, mods)) for speed in speeds
    ]))

import enum
from functools import reduce
import operator as op

import numpy as np

from .errors import ComputationDomainError


class Mod(enum.IntEnum):
    """The mods in osu!

    A set of mods is represented as an ``int`` bitmask of these values.
    """
    no_fail = 1
    easy = 1 << 1
    hidden = 1 << 3
    hard_rock = 1 << 4
    sudden_death = 1 << 5
    double_time = 1 << 6
    relax = 1 << 7
    half_time = 1 << 8
    nightcore = 1 << 9  # always used with double_time
    flashlight = 1 << 10
    autoplay = 1 << 11
    perfect = 1 << 14

    @classmethod
    def pack(cls, **kwargs):
        """Pack a mod mask from explicit mod states.

        Parameters
        ----------
        kwargs
            The names of the mods and their status. Any mods not explicitly
            passed will be disabled.

        Returns
        -------
        mod_mask : int
            The packed mod mask.
        """
        members = cls.__members__
        try:
            return reduce(
                op.or_,
                (members[k] * bool(v) for k, v in kwargs.items()),
                0,
            )
        except KeyError as e:
            raise TypeError(f'{e} is not a member of {cls.__qualname__}')

    @classmethod
    def unpack(cls, mod_mask):
        """Unpack a mod mask into a dictionary from mod name to mod state.

        Parameters
        ----------
        mod_mask : int
            The mask to unpack.

        Returns
        -------
        status : dict[str, bool]
            The mapping from mod name to mod status.
        """
        return {k: bool(mod_mask & v) for k, v in cls.__members__.items()}

    @classmethod
    def parse(cls, cs):
        """Parse a mod mask out of a list of shortened mod names.

        Parameters
        ----------
        cs : str
            The mod string, for example ``'HDHR'``. An empty string or
            ``'NM'`` means no mods.

        Returns
        -------
        mod_mask : int
            The mod mask.
        """
        cs = cs.lower().lstrip('+')
        if cs in {'', 'nm'}:
            return 0

        if len(cs) % 2 != 0:
            raise ValueError(f'malformed mods: {cs!r}')

        mod = 0
        for n in range(0, len(cs), 2):
            try:
                mod |= _short_names[cs[n:n + 2]]
            except KeyError:
                raise ValueError(f'unknown mod: {cs[n:n + 2]!r}')

        return mod

    @classmethod
    def format(cls, mod_mask):
        """Format a mod mask as the shortened mod names.

        Parameters
        ----------
        mod_mask : int
            The mod mask.

        Returns
        -------
        cs : str
            The mod string, ``'NM'`` when no mods are enabled.
        """
        names = []
        for name, mod in _short_names.items():
            if (mod_mask & mod) == mod:
                if name == 'dt' and mod_mask & cls.nightcore:
                    continue
                names.append(name.upper())

        return ''.join(names) or 'NM'


_short_names = {
    'nf': Mod.no_fail,
    'ez': Mod.easy,
    'hd': Mod.hidden,
    'hr': Mod.hard_rock,
    'sd': Mod.sudden_death,
    'dt': Mod.double_time,
    'nc': Mod.nightcore | Mod.double_time,
    'ht': Mod.half_time,
    'fl': Mod.flashlight,
    'pf': Mod.perfect,
}


def adjusted_od(od, mods):
    """Apply the difficulty changing mods to an overall difficulty value.

    Parameters
    ----------
    od : float
        The base overall difficulty.
    mods : int
        The mod mask.

    Returns
    -------
    od : float
        The OD with easy and hard rock applied.

    Notes
    -----
    Clock rate mods do not change the OD value itself, they scale the hit
    window instead. See :func:`drumroll.mod.hit_window_300`.
    """
    if mods & Mod.easy:
        od /= 2.0
    if mods & Mod.hard_rock:
        od = min(od * 1.4, 10.0)
    return od


def od_to_ms_300(od):
    """Convert an overall difficulty value into the great hit window.

    Parameters
    ----------
    od : float
        The overall difficulty.

    Returns
    -------
    ms : float
        The number of milliseconds away from exactly on time a hit can be to
        still be a great.
    """
    return np.floor(-3 * od) + 49.5


def hit_window_300(od, mods):
    """Compute the great hit window for a beatmap played with mods.

    Parameters
    ----------
    od : float
        The base overall difficulty of the beatmap.
    mods : int
        The mod mask.

    Returns
    -------
    ms : float
        The great hit window in milliseconds.

    Raises
    ------
    ComputationDomainError
        Raised when the window is not positive. The accuracy formulas take
        the square root of the window.
    """
    hit_window = od_to_ms_300(adjusted_od(od, mods))

    if mods & Mod.double_time:
        hit_window *= 2.0 / 3.0
    if mods & Mod.half_time:
        hit_window *= 4.0 / 3.0

    if not hit_window > 0:
        raise ComputationDomainError(
            f'great hit window must be positive, got {hit_window}ms'
            f' (od={od}, mods={Mod.format(mods)})',
        )
    return float(hit_window)

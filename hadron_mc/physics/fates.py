"""
Hadron fates and fate selection.

A fate is the interaction outcome drawn for a hadron inside the nucleus.
Each species family exposes its own applicable fates in a fixed declared
order; the selector walks that order accumulating tabulated fractions.
"""

import logging
from enum import IntEnum
from typing import Dict, Tuple

from hadron_mc.core.particle import Family, family_of, is_handled, particle_name
from hadron_mc.core.random import RandomStream

logger = logging.getLogger(__name__)


class Fate(IntEnum):
    UNDEFINED = 0
    CHARGE_EXCHANGE = 1
    ELASTIC = 2
    INELASTIC = 3
    ABSORPTION = 4
    PION_PRODUCTION = 5

    @classmethod
    def from_name(cls, name: str) -> "Fate":
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown fate '{name}'. "
                             f"Available: {[f.name for f in cls]}") from None


# Declared order matters: the cumulative walk follows it exactly.
APPLICABLE_FATES: Dict[Family, Tuple[Fate, ...]] = {
    Family.PION: (Fate.CHARGE_EXCHANGE, Fate.ELASTIC, Fate.INELASTIC,
                  Fate.ABSORPTION, Fate.PION_PRODUCTION),
    Family.NUCLEON: (Fate.CHARGE_EXCHANGE, Fate.ELASTIC, Fate.INELASTIC,
                     Fate.ABSORPTION, Fate.PION_PRODUCTION),
    Family.KAON: (Fate.INELASTIC, Fate.ABSORPTION),
    Family.PHOTON: (),
}


def applicable_fates(pdg: int) -> Tuple[Fate, ...]:
    """Fates a species can undergo, in declared order (empty if unhandled)."""
    if not is_handled(pdg):
        return ()
    return APPLICABLE_FATES[family_of(pdg)]


def choose_fate(fates: Tuple[Fate, ...], fractions: Tuple[float, ...], r: float) -> Fate:
    """
    Return the first fate whose running sum of fractions exceeds r.

    Parameters:
        fates: Fates in declared order
        fractions: Fractions in the same order
        r: Draw in [0, total)

    Returns:
        Selected fate, or Fate.UNDEFINED if the walk is exhausted
    """
    cf = 0.0
    for fate, frac in zip(fates, fractions):
        cf += frac
        if r < cf:
            return fate
    return Fate.UNDEFINED


class FateSelector:
    """
    Weighted cumulative fate selection.

    Usage:
        selector = FateSelector(fate_table, stream)
        fate = selector.select(PDG_PIP, 250.0)
    """

    def __init__(self, fate_table, stream: RandomStream, max_iterations: int = 1000):
        """
        Parameters:
            fate_table: Object with fractions(pdg, fates, ke_mev) -> tuple
            stream: Uniform random stream
            max_iterations: Redraws before giving up with Fate.UNDEFINED
        """
        self.fate_table = fate_table
        self.stream = stream
        self.max_iterations = max_iterations

    def select(self, pdg: int, ke_mev: float) -> Fate:
        """Draw a fate for a hadron with kinetic energy ke_mev [MeV]."""
        fates = applicable_fates(pdg)
        if not fates:
            logger.info("No applicable fates for %s", particle_name(pdg))
            return Fate.UNDEFINED

        logger.debug("Selecting hA fate for %s with KE = %.3f MeV",
                     particle_name(pdg), ke_mev)

        for _ in range(self.max_iterations):
            fractions = self.fate_table.fractions(pdg, fates, ke_mev)
            # total can be < 1 if fates have been switched off
            total = 0.0
            for frac in fractions:
                total += frac
            r = total * self.stream.uniform()
            fate = choose_fate(fates, fractions, r)
            if fate != Fate.UNDEFINED:
                return fate
            logger.warning("No selection after going through all fates! "
                           "Total fraction = %g (r = %g)", total, r)

        return Fate.UNDEFINED

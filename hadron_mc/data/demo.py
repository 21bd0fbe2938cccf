"""
Small built-in hA tables for examples and smoke tests.

Fractions are coarse, smooth stand-ins shaped like pi/N + Fe data
(absorption dominant at low energy for pions, inelastic dominant for
nucleons). Angular distributions are forward-peaked linear shapes.
"""

import numpy as np

from hadron_mc.core.particle import (PDG_KM, PDG_KP, PDG_NEUTRON, PDG_PI0, PDG_PIM, PDG_PIP,
                                     PDG_PROTON)
from hadron_mc.data.hadro_data import ScatteringChannel, TabulatedHadronData
from hadron_mc.physics.fates import Fate

KE_GRID = [50.0, 300.0, 1000.0]   # MeV

PION_FRACTIONS = {
    Fate.CHARGE_EXCHANGE: [0.10, 0.08, 0.05],
    Fate.ELASTIC: [0.20, 0.15, 0.10],
    Fate.INELASTIC: [0.20, 0.35, 0.40],
    Fate.ABSORPTION: [0.50, 0.37, 0.20],
    Fate.PION_PRODUCTION: [0.00, 0.05, 0.25],
}

NUCLEON_FRACTIONS = {
    Fate.CHARGE_EXCHANGE: [0.05, 0.03, 0.02],
    Fate.ELASTIC: [0.30, 0.15, 0.10],
    Fate.INELASTIC: [0.45, 0.55, 0.45],
    Fate.ABSORPTION: [0.20, 0.25, 0.23],
    Fate.PION_PRODUCTION: [0.00, 0.02, 0.20],
}

KAON_FRACTIONS = {
    Fate.INELASTIC: [0.80, 0.85, 0.90],
    Fate.ABSORPTION: [0.20, 0.15, 0.10],
}

COS_GRID = np.linspace(-1.0, 1.0, 21)


def demo_hadron_data() -> TabulatedHadronData:
    """Tables for every handled hadron on proton and neutron targets."""
    data = TabulatedHadronData()
    for pdg in (PDG_PIP, PDG_PIM, PDG_PI0):
        for fate, values in PION_FRACTIONS.items():
            data.set_fraction(pdg, fate, KE_GRID, values)
    for pdg in (PDG_PROTON, PDG_NEUTRON):
        for fate, values in NUCLEON_FRACTIONS.items():
            data.set_fraction(pdg, fate, KE_GRID, values)
    for pdg in (PDG_KP, PDG_KM):
        for fate, values in KAON_FRACTIONS.items():
            data.set_fraction(pdg, fate, KE_GRID, values)

    # forward peaking grows with energy
    pdf = np.array([1.0 + slope * COS_GRID for slope in (0.2, 0.5, 0.9)])
    for probe in (PDG_PIP, PDG_PIM, PDG_PI0, PDG_PROTON, PDG_NEUTRON, PDG_KP, PDG_KM):
        for target in (PDG_PROTON, PDG_NEUTRON):
            for channel in ScatteringChannel:
                data.set_angular_distribution(probe, target, channel, KE_GRID, COS_GRID, pdf)
    return data

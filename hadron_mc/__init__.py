"""
HADRON_MC: intranuclear hadron cascade in the hA (one-interaction) mode

Given a hadron inside a model nucleus, draws an interaction fate from
tabulated energy-dependent fractions and generates exclusive final states
while keeping a ledger of the remnant nucleus.

Modules:
    core: Species, hadron state, remnant nucleus, event ledger, config
    data: Fate fractions and hadron-nucleon angular distributions
    physics: Fate selection, elastic tables, kinematics, phase space, Fermi motion
    transport: Fate generators, cascade controller, batch driver
"""

__version__ = "0.1.0"

from hadron_mc.core.config import CascadeConfig
from hadron_mc.core.event import EventRecord
from hadron_mc.core.nucleus import RemnantNucleus
from hadron_mc.core.particle import FinalStateParticle, Hadron, Status
from hadron_mc.core.random import RandomStream
from hadron_mc.data.hadro_data import TabulatedHadronData
from hadron_mc.physics.fates import Fate
from hadron_mc.transport.engine import CascadeResult, HadronCascade, Outcome
from hadron_mc.transport.batch import simulate_hadron_nucleus

__all__ = [
    "CascadeConfig",
    "EventRecord",
    "RemnantNucleus",
    "FinalStateParticle",
    "Hadron",
    "Status",
    "RandomStream",
    "TabulatedHadronData",
    "Fate",
    "CascadeResult",
    "HadronCascade",
    "Outcome",
    "simulate_hadron_nucleus",
]

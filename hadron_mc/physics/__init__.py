"""Physics module: Fate selection, elastic tables, kinematics, phase space."""

from hadron_mc.physics.fates import Fate, FateSelector
from hadron_mc.physics.kinematics import two_body_kinematics
from hadron_mc.physics.nuclear_model import FermiGasModel
from hadron_mc.physics.phase_space import PhaseSpaceDecay

__all__ = ["Fate", "FateSelector", "two_body_kinematics", "FermiGasModel", "PhaseSpaceDecay"]

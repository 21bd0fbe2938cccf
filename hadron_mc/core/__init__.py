"""Core module: Species, hadron state, remnant nucleus and configuration."""

from hadron_mc.core.config import CascadeConfig
from hadron_mc.core.event import EventRecord
from hadron_mc.core.exceptions import KinematicsError, TerminalCondition
from hadron_mc.core.nucleus import RemnantNucleus
from hadron_mc.core.particle import FinalStateParticle, Hadron, Status
from hadron_mc.core.random import RandomStream

__all__ = ["CascadeConfig", "EventRecord", "KinematicsError", "TerminalCondition",
           "RemnantNucleus", "FinalStateParticle", "Hadron", "Status", "RandomStream"]

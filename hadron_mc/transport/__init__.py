"""Transport module: Fate generators and the cascade controller."""

from hadron_mc.transport.engine import CascadeResult, HadronCascade, Outcome
from hadron_mc.transport.batch import simulate_hadron_nucleus

__all__ = ["CascadeResult", "HadronCascade", "Outcome", "simulate_hadron_nucleus"]

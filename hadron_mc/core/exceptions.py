"""
Exception hierarchy for the hadron cascade.

Two disjoint families:
    KinematicsError:   recoverable, the cascade redraws the fate and retries
    TerminalCondition: unrecoverable, the hadron leaves the nucleus unchanged
"""


class HadronTransportError(Exception):
    """Base class for every error raised while transporting a hadron."""

    def __init__(self, reason: str = ""):
        super().__init__(reason)
        self.reason = reason


class KinematicsError(HadronTransportError):
    """
    Kinematics could not be generated for the selected fate.

    Raised for unphysical angles, failed two-body or phase-space kinematics,
    energy-bound violations and sampling loops that did not converge.
    """


class RemnantInvariantError(KinematicsError):
    """A staged remnant update would break A >= 0, Z >= 0 or Z <= A."""


class TerminalCondition(HadronTransportError):
    """
    The hadron cannot interact through the selected channel.

    Raised when the remnant runs out of the nucleons a channel needs or the
    channel is not available to the species. The hadron exits unchanged.
    """

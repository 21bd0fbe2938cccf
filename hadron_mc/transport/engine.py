"""
hA-mode intranuclear cascade controller.

For each hadron handed to it the cascade
    - draws a fate from the tabulated fractions
    - dispatches to the generator registered for that fate
    - retries from fate selection when kinematics fail (KinematicsError)
    - lets the hadron exit unchanged on terminal conditions

The remnant nucleus is staged per attempt and committed only on success.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from hadron_mc.core.config import CascadeConfig
from hadron_mc.core.event import EventRecord
from hadron_mc.core.exceptions import KinematicsError, TerminalCondition
from hadron_mc.core.nucleus import RemnantNucleus
from hadron_mc.core.particle import FinalStateParticle, Hadron, Status, is_handled
from hadron_mc.core.random import RandomStream
from hadron_mc.data.hadro_data import FateTable, HadronData
from hadron_mc.physics.fates import Fate, FateSelector
from hadron_mc.physics.nuclear_model import FermiGasModel, NuclearModel
from hadron_mc.physics.phase_space import PhaseSpaceDecay
from hadron_mc.transport.absorption import AbsorptionGenerator
from hadron_mc.transport.generator import FateGenerator
from hadron_mc.transport.pion_production import PionProductionGenerator
from hadron_mc.transport.scattering import ElasticGenerator, InelasticGenerator

logger = logging.getLogger(__name__)


class Outcome(Enum):
    INTERACTED = "interacted"
    EXITED_UNCHANGED = "exited_unchanged"
    GAVE_UP = "gave_up"


@dataclass(frozen=True)
class CascadeResult:
    """What happened to one hadron."""
    outcome: Outcome
    fate: Fate
    particles: Tuple[FinalStateParticle, ...]
    attempts: int
    reason: str = ""


class HadronCascade:
    """
    Fate selection and final-state generation for hadrons in a nucleus.

    Usage:
        cascade = HadronCascade(hadron_data, config, RandomStream.from_seed(42))
        cascade.begin_event('Fe-56', probe_energy=0.3)
        result = cascade.select_and_generate(hadron, record)
    """

    def __init__(self, hadron_data: HadronData, config: Optional[CascadeConfig] = None,
                 stream: Optional[RandomStream] = None,
                 nuclear_model: Optional[NuclearModel] = None,
                 phase_space: Optional[PhaseSpaceDecay] = None):
        """
        Parameters:
            hadron_data: Fate fractions and hadron-nucleon angular distributions
            config: Cascade settings (defaults if None)
            stream: Random stream shared by every sampling step
            nuclear_model: Bound-nucleon momentum sampler (Fermi gas if None)
            phase_space: N-body decayer (built from config if None)
        """
        self.config = config if config is not None else CascadeConfig()
        self.stream = stream if stream is not None else RandomStream.from_seed()
        self.hadron_data = hadron_data
        self.fate_table = FateTable(hadron_data, self.config.disabled_fates)
        self.selector = FateSelector(self.fate_table, self.stream,
                                     self.config.max_fate_iterations)
        self.nuclear_model = (nuclear_model if nuclear_model is not None
                              else FermiGasModel(self.config.fermi_momentum))
        self.phase_space = (phase_space if phase_space is not None
                            else PhaseSpaceDecay(self.config.max_decay_group_size,
                                                 self.config.phase_space_max_iterations))

        services = (self.config, self.stream, hadron_data, self.nuclear_model, self.phase_space)
        inelastic = InelasticGenerator(*services)
        self.generators: Dict[Fate, FateGenerator] = {
            Fate.CHARGE_EXCHANGE: inelastic,
            Fate.ELASTIC: ElasticGenerator(*services),
            Fate.INELASTIC: inelastic,
            Fate.ABSORPTION: AbsorptionGenerator(*services),
            Fate.PION_PRODUCTION: PionProductionGenerator(*services),
        }

        self.remnant: Optional[RemnantNucleus] = None
        self.probe_energy: Optional[float] = None
        self.config.log_settings()

    def begin_event(self, target: Union[str, Tuple[int, int]],
                    probe_energy: Optional[float] = None) -> RemnantNucleus:
        """
        Start a new event on a fresh target nucleus.

        Parameters:
            target: Nucleus name ('C-12') or (A, Z)
            probe_energy: Kinetic energy [GeV] of the event probe, bounds
                          the outgoing energies of two-body collisions

        Returns:
            The live remnant nucleus
        """
        if isinstance(target, str):
            self.remnant = RemnantNucleus.from_name(target)
        else:
            A, Z = target
            self.remnant = RemnantNucleus.from_target(A, Z)
        self.probe_energy = probe_energy
        for generator in set(self.generators.values()):
            generator.begin_event(probe_energy)
        logger.debug("New event on (A,Z) = (%d,%d)", self.remnant.A, self.remnant.Z)
        return self.remnant

    def remnant_snapshot(self) -> RemnantNucleus:
        if self.remnant is None:
            raise RuntimeError("No event in progress; call begin_event() first")
        return self.remnant.copy()

    def select_and_generate(self, hadron: Hadron,
                            record: Optional[EventRecord] = None) -> CascadeResult:
        """
        Interact one hadron with the current remnant.

        Parameters:
            hadron: Hadron inside the nucleus (its status is updated)
            record: Event ledger receiving the produced particles

        Returns:
            CascadeResult; on any outcome other than INTERACTED the hadron
            itself is the single produced particle
        """
        if self.remnant is None:
            raise RuntimeError("No event in progress; call begin_event() first")

        if not is_handled(hadron.pdg):
            return self._exit_unchanged(hadron, record, Fate.UNDEFINED, 0,
                                        Outcome.EXITED_UNCHANGED,
                                        f"Unsupported species {hadron.pdg}")

        ke_mev = hadron.kinetic_energy_mev
        reason = ""
        for attempt in range(1, self.config.max_kinematics_attempts + 1):
            fate = self.selector.select(hadron.pdg, ke_mev)
            if fate == Fate.UNDEFINED:
                return self._exit_unchanged(hadron, record, fate, attempt,
                                            Outcome.EXITED_UNCHANGED, "No fate selected")

            logger.debug("Selected %s fate: %s", hadron.name, fate.name)
            generator = self.generators[fate]
            try:
                with self.remnant.transaction() as staged:
                    products = generator.generate(hadron, staged, fate)
            except TerminalCondition as exc:
                logger.info("%s exits unchanged after %s: %s", hadron.name, fate.name, exc.reason)
                return self._exit_unchanged(hadron, record, fate, attempt,
                                            Outcome.EXITED_UNCHANGED, exc.reason)
            except KinematicsError as exc:
                logger.info("%s failed for %s (attempt %d): %s; selecting another fate",
                            fate.name, hadron.name, attempt, exc.reason)
                reason = exc.reason
                continue

            hadron.status = Status.DECAYED
            if record is not None:
                record.extend(products)
            return CascadeResult(Outcome.INTERACTED, fate, tuple(products), attempt)

        logger.warning("Giving up on %s after %d kinematics failures",
                       hadron.name, self.config.max_kinematics_attempts)
        return self._exit_unchanged(hadron, record, Fate.UNDEFINED,
                                    self.config.max_kinematics_attempts,
                                    Outcome.GAVE_UP, reason)

    def _exit_unchanged(self, hadron: Hadron, record: Optional[EventRecord], fate: Fate,
                        attempts: int, outcome: Outcome, reason: str) -> CascadeResult:
        hadron.status = Status.STABLE_FINAL_STATE
        particle = hadron.as_final_state()
        if record is not None:
            record.add(particle)
        return CascadeResult(outcome, fate, (particle,), attempts, reason)

"""
Two-body scattering generators.

ElasticGenerator: hadron + remnant -> hadron + remnant, angle from the
empirical hadron-nucleus tables.

InelasticGenerator: quasi-free scattering (inelastic) or isospin exchange
(charge exchange) on a single struck nucleon, angle from the hadron-nucleon
data service.
"""

import logging
import math
from typing import Dict, List, Tuple

from hadron_mc.core.exceptions import KinematicsError, TerminalCondition
from hadron_mc.core.nucleus import RemnantNucleus
from hadron_mc.core.particle import (FinalStateParticle, Hadron, PDG_NEUTRON, PDG_PI0,
                                     PDG_PIM, PDG_PIP, PDG_PROTON, charge, mass, particle_name)
from hadron_mc.data.hadro_data import ScatteringChannel
from hadron_mc.physics.elastic import sample_elastic_angle
from hadron_mc.physics.fates import Fate
from hadron_mc.physics.kinematics import (equivalent_kinetic_energy, kinetic_energy,
                                          two_body_kinematics)
from hadron_mc.transport.generator import FateGenerator

logger = logging.getLogger(__name__)

# probe -> (struck nucleon, scattered, recoil)
CHARGE_EXCHANGE_CHANNELS: Dict[int, Tuple[int, int, int]] = {
    PDG_PIP: (PDG_NEUTRON, PDG_PI0, PDG_PROTON),
    PDG_PIM: (PDG_PROTON, PDG_PI0, PDG_NEUTRON),
    PDG_PROTON: (PDG_NEUTRON, PDG_NEUTRON, PDG_PROTON),
    PDG_NEUTRON: (PDG_PROTON, PDG_PROTON, PDG_NEUTRON),
}

# pi0 charge exchange: struck nucleon -> (scattered, recoil)
PI0_CHARGE_EXCHANGE: Dict[int, Tuple[int, int]] = {
    PDG_PROTON: (PDG_PIP, PDG_NEUTRON),
    PDG_NEUTRON: (PDG_PIM, PDG_PROTON),
}


class ElasticGenerator(FateGenerator):
    """Elastic scattering off the remnant as a whole."""

    fates = (Fate.ELASTIC,)

    def generate(self, hadron: Hadron, remnant: RemnantNucleus,
                 fate: Fate) -> List[FinalStateParticle]:
        if remnant.A < 1:
            raise TerminalCondition("Elastic: no nucleons left in the remnant")

        target_mass = remnant.mass
        if target_mass <= 0.0:
            raise KinematicsError(f"Elastic: remnant has no rest mass ({remnant})")

        theta = sample_elastic_angle(hadron.family, self.stream)
        p3, p4, _ = two_body_kinematics(hadron.mass, target_mass, hadron.p4, remnant.p4,
                                        math.cos(theta), self.stream)
        remnant.p4 = p4
        logger.debug("Elastic %s: KE %.4f -> %.4f GeV", hadron.name,
                     hadron.kinetic_energy, kinetic_energy(p3, hadron.mass))
        return [self.emit(hadron, hadron.pdg, p3)]


class InelasticGenerator(FateGenerator):
    """Quasi-free inelastic and charge-exchange scattering on one nucleon."""

    fates = (Fate.INELASTIC, Fate.CHARGE_EXCHANGE)

    def select_channel(self, hadron: Hadron, remnant: RemnantNucleus,
                       fate: Fate) -> Tuple[int, int, int, ScatteringChannel]:
        """
        Pick (struck nucleon, scattered, recoil) and the angular channel.

        Raises:
            TerminalCondition: charge exchange not available for the species
        """
        if fate == Fate.CHARGE_EXCHANGE:
            if hadron.pdg == PDG_PI0:
                target = self.pick_struck_nucleon(remnant)
                scattered, recoil = PI0_CHARGE_EXCHANGE[target]
            elif hadron.pdg in CHARGE_EXCHANGE_CHANNELS:
                target, scattered, recoil = CHARGE_EXCHANGE_CHANNELS[hadron.pdg]
            else:
                raise TerminalCondition(
                    f"No charge-exchange channel for {hadron.name}")
            return target, scattered, recoil, ScatteringChannel.CHARGE_EXCHANGE

        target = self.pick_struck_nucleon(remnant)
        return target, hadron.pdg, target, ScatteringChannel.ELASTIC

    def generate(self, hadron: Hadron, remnant: RemnantNucleus,
                 fate: Fate) -> List[FinalStateParticle]:
        if remnant.A < 1:
            raise TerminalCondition("Inelastic: no nucleons left in the remnant")

        target, scattered, recoil, channel = self.select_channel(hadron, remnant, fate)
        n_protons = 1 if target == PDG_PROTON else 0
        if not remnant.can_supply(n_protons, 1 - n_protons):
            raise TerminalCondition(
                f"Remnant {remnant} cannot supply a {particle_name(target)}")

        m_target = mass(target)
        t4 = self.bound_nucleon_p4(target, remnant)

        ke_mev = 1000.0 * equivalent_kinetic_energy(hadron.p4, t4, hadron.mass, m_target)
        cos_theta = self.hadron_data.sample_angle(hadron.pdg, target, scattered, channel,
                                                  ke_mev, self.stream)
        if not -1.0 <= cos_theta <= 1.0:
            raise KinematicsError(
                f"Unphysical angle cos = {cos_theta} for {hadron.name} on "
                f"{particle_name(target)} at {ke_mev:.1f} MeV")

        p3, p4, _ = two_body_kinematics(mass(scattered), mass(recoil), hadron.p4, t4,
                                        cos_theta, self.stream)

        if self.probe_energy is not None:
            bound = self.probe_energy
        else:
            bound = hadron.kinetic_energy + (t4[3] - m_target)
        ke3 = kinetic_energy(p3, mass(scattered))
        ke4 = kinetic_energy(p4, mass(recoil))
        if ke3 > bound or ke4 > bound:
            raise KinematicsError(
                f"Two-body collision gives KE above the probe energy "
                f"({ke3:.4f}, {ke4:.4f} > {bound:.4f} GeV)")

        remnant.A -= 1
        remnant.Z -= charge(target)
        remnant.p4 = remnant.p4 - t4

        logger.debug("%s %s + %s -> %s + %s", fate.name, hadron.name,
                     particle_name(target), particle_name(scattered), particle_name(recoil))
        return [self.emit(hadron, scattered, p3), self.emit(hadron, recoil, p4)]

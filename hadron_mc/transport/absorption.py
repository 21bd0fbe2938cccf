"""
Absorption generator.

Two branches:
    - pair absorption (pions and kaons): the probe is absorbed on a
      correlated nucleon pair, two nucleons come out (two-body kinematics
      with a fixed binding energy)
    - multi-nucleon absorption: an empirical model picks the number of
      emitted protons and neutrons, which are then produced by phase-space
      decays of at most max_decay_group_size bodies each

Multiplicity fits:
    Nucleons: exponential in ns = np + nn, Gaussian in nd = np - nn
              (fits to hN simulations of p + C, Fe, Pb at 200 and 800 MeV)
    Pions:    Gaussian weighted by a linear density in ns, Gaussian in nd
              (fits to pi+ + C, Fe, Pb at 250 and 500 MeV)
    Kaons:    same as pions
pi0 and pi- (and neutrons) follow from isospin by shifting nd.
"""

import logging
import math
import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from hadron_mc.core.exceptions import KinematicsError, TerminalCondition
from hadron_mc.core.nucleus import RemnantNucleus
from hadron_mc.core.particle import (FinalStateParticle, Family, Hadron, PDG_NEUTRON, PDG_PI0,
                                     PDG_PIM, PDG_PROTON, charge, is_nucleon, mass,
                                     particle_name)
from hadron_mc.core.random import RandomStream, exponential_variate, normal_variate
from hadron_mc.data.hadro_data import ScatteringChannel
from hadron_mc.physics.fates import Fate
from hadron_mc.physics.kinematics import two_body_kinematics
from hadron_mc.transport.generator import FateGenerator

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Pair absorption
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class PairChannel:
    """probe + (t1, t2) -> (s1, s2) with weight c * f^a * (1-f)^b, f = Z/A."""
    targets: Tuple[int, int]
    products: Tuple[int, int]
    coefficient: float
    proton_power: int
    neutron_power: int

    @property
    def n_protons(self) -> int:
        return sum(1 for t in self.targets if t == PDG_PROTON)

    def weight(self, f: float) -> float:
        return self.coefficient * f**self.proton_power * (1.0 - f)**self.neutron_power


P, N = PDG_PROTON, PDG_NEUTRON

# keyed by probe charge
PAIR_CHANNELS: Dict[int, Tuple[PairChannel, ...]] = {
    1: (PairChannel((N, P), (P, P), 2.0, 1, 1),
        PairChannel((N, N), (P, N), 0.083, 0, 2)),
    -1: (PairChannel((P, N), (N, N), 2.0, 1, 1),
         PairChannel((P, P), (P, N), 0.083, 2, 0)),
    0: (PairChannel((N, P), (N, P), 0.88, 1, 1),
        PairChannel((P, P), (P, P), 0.14, 2, 0),
        PairChannel((N, N), (N, N), 0.14, 0, 2)),
}


def pair_absorption_probability(A: int, ke_mev: float) -> float:
    """Probability of the two-nucleon branch (fit to McKeown data)."""
    return 1.14 * (0.903 - 0.00189 * A) * (1.35 - 0.00467 * ke_mev)


# ----------------------------------------------------------------------
# Multiplicity models
# ----------------------------------------------------------------------

# isospin shift of the mean of nd
ND_SHIFT = {PDG_PI0: -2.0, PDG_NEUTRON: -2.0, PDG_PIM: -4.0}


class MultiplicityModel:
    """
    Empirical (np, nn) model for multi-nucleon absorption.

    Subclasses provide the sum distribution and the difference parameters.
    """

    min_total = 2

    def __init__(self, max_sum_draws: int = 100):
        self.max_sum_draws = max_sum_draws

    def difference_parameters(self, A: int, Z: int, ke_mev: float) -> Tuple[float, float]:
        """(mean, sigma) of nd = np - nn before the isospin shift."""
        raise NotImplementedError

    def sample_sum(self, A: int, Z: int, ke_mev: float, stream: RandomStream) -> float:
        raise NotImplementedError

    def sample(self, probe_pdg: int, remnant: RemnantNucleus, ke_mev: float,
               stream: RandomStream, max_draws: int = 10000) -> Tuple[int, int]:
        """
        Draw (np, nn) until the pair is allowed by the available nucleons.

        Raises:
            KinematicsError: no allowed pair within max_draws
        """
        A, Z = remnant.A, remnant.Z
        max_p, max_n = available_nucleons(probe_pdg, remnant)
        nd0, sig_nd = self.difference_parameters(A, Z, ke_mev)
        nd0 += ND_SHIFT.get(probe_pdg, 0.0)

        for _ in range(max_draws):
            x2 = normal_variate(stream, use_sine=True)
            ns = self.sample_sum(A, Z, ke_mev, stream)
            nd = nd0 + sig_nd * x2

            n_p = int((ns + nd) / 2.0 + 0.5)
            n_n = int((ns - nd) / 2.0 + 0.5)
            if n_p < 0 or n_n < 0:
                continue
            if n_p + n_n < self.min_total:
                continue
            if n_p > max_p or n_n > max_n:
                continue
            logger.debug("ns = %.3f, nd = %.3f, np = %d, nn = %d", ns, nd, n_p, n_n)
            return n_p, n_n

        logger.info("Could not choose absorption final state: nd0 = %g, sig_nd = %g, "
                    "A = %d, Z = %d, KE = %g MeV", nd0, sig_nd, A, Z, ke_mev)
        raise KinematicsError("Absorption choice of number of protons and neutrons failed")


class NucleonMultiplicity(MultiplicityModel):
    """Nucleon probes: exponential sum, Gaussian difference."""

    min_total = 3

    def difference_parameters(self, A, Z, ke_mev):
        # antisymmetric about Z = N
        if A - Z > Z:
            nd0 = 135.227 * math.exp(-7.124 * (A - Z) / A) - 2.762
        else:
            nd0 = -135.227 * math.exp(-7.124 * Z / A) + 4.914
        return nd0, 2.034 + 0.007846 * A

    def decay_rate(self, A: int, ke_mev: float) -> float:
        c1 = 0.041 + 0.0001525 * ke_mev
        c2 = -0.003444 - 0.00002324 * ke_mev
        c3 = 0.064 - 0.00002993 * ke_mev
        return c1 * math.exp(c2 * A) + c3

    def sample_sum(self, A, Z, ke_mev, stream):
        return exponential_variate(stream, self.decay_rate(A, ke_mev))


class MesonMultiplicity(MultiplicityModel):
    """Pion and kaon probes: Gaussian times linear density in the sum."""

    def sum_parameters(self, A: int, ke_mev: float) -> Tuple[float, float]:
        ns0 = 1e-4 * (1.0 + ke_mev/250.0) * (A - 50)**2 + 8.0
        sig_ns = (10.0 + 4.0 * ke_mev/250.0) * (1.0 - math.exp(-0.02 * A))
        return ns0, sig_ns

    def difference_parameters(self, A, Z, ke_mev):
        nd0 = (1.0 + ke_mev/250.0) - (A/200.0) * (1.0 + 2.0*ke_mev/250.0)
        sig_nd = 4.0 * (1.0 - math.exp(-0.03 * ke_mev))
        return nd0, sig_nd

    def sample_sum(self, A, Z, ke_mev, stream):
        ns0, sig_ns = self.sum_parameters(A, ke_mev)
        ns_max = min(ns0 + 20.0 * sig_ns, float(A))

        for _ in range(self.max_sum_draws):
            ns = ns0 + sig_ns * normal_variate(stream)
            if ns > ns_max or ns < 0:
                continue
            if stream.uniform() > ns / ns_max:
                continue
            return ns

        logger.info("Stuck in random variable loop for ns: ns0 = %g, sig_ns = %g, "
                    "A = %d, KE = %g MeV", ns0, sig_ns, A, ke_mev)
        raise KinematicsError("Sampling of the emitted nucleon sum failed")


def available_nucleons(probe_pdg: int, remnant: RemnantNucleus) -> Tuple[int, int]:
    """Protons and neutrons available once the probe has been absorbed."""
    q = charge(probe_pdg)
    b = 1 if is_nucleon(probe_pdg) else 0
    return remnant.Z + q, remnant.A + b - remnant.Z - q


def cap_multiplicity(n_p: int, n_n: int, cap: int = 85) -> Tuple[int, int]:
    """Scale (np, nn) down proportionally when np + nn exceeds cap."""
    total = n_p + n_n
    if total > cap:
        frac = cap / float(total)
        n_p = int(n_p * frac)
        n_n = int(n_n * frac)
    return n_p, n_n


def keep_one_nucleon(n_p: int, n_n: int, max_p: int, max_n: int,
                     stream: RandomStream) -> Tuple[int, int]:
    """Leave at least one nucleon in the remnant if (np, nn) takes them all."""
    if n_p == max_p and n_n == max_n:
        if stream.uniform() < n_p / float(n_p + n_n):
            n_p -= 1
        else:
            n_n -= 1
    return n_p, n_n


# ----------------------------------------------------------------------
# Final-state packaging
# ----------------------------------------------------------------------

@dataclass
class DecayGroup:
    """Nucleons decayed together and the share of the probe momentum they carry."""
    members: List[int] = field(default_factory=list)
    share_p4: np.ndarray = field(default_factory=lambda: np.zeros(4))
    holds_probe: bool = False

    @property
    def n_protons(self) -> int:
        return sum(1 for m in self.members if m == PDG_PROTON)


def partition_final_state(probe_pdg: int, probe_p4: np.ndarray, n_protons: int,
                          n_neutrons: int, stream: RandomStream,
                          max_group_size: int = 18, n_groups: int = 5) -> List[DecayGroup]:
    """
    Split the emitted nucleons into groups small enough for phase-space decay.

    Up to max_group_size nucleons form one group carrying the probe. Above
    that, n_groups - 1 nucleons are borrowed from the remnant to lead their
    own group; every group gets 1/n_groups of the probe momentum and kinetic
    energy, the probe group also its rest mass. The remaining nucleons are
    dealt round-robin, protons first.
    """
    probe_p4 = np.asarray(probe_p4, dtype=np.float64)
    if n_protons + n_neutrons <= max_group_size:
        members = [PDG_PROTON] * n_protons + [PDG_NEUTRON] * n_neutrons
        return [DecayGroup(members, probe_p4.copy(), True)]

    m_probe = mass(probe_pdg)
    ke_share = (probe_p4[3] - m_probe) / n_groups
    p3_share = probe_p4[:3] / n_groups

    groups = [DecayGroup([], np.append(p3_share, m_probe + ke_share), True)]
    for _ in range(n_groups - 1):
        if (n_protons + n_neutrons) * stream.uniform() < n_protons:
            leader = PDG_PROTON
            n_protons -= 1
        else:
            leader = PDG_NEUTRON
            n_neutrons -= 1
        groups.append(DecayGroup([leader], np.append(p3_share, ke_share), False))

    for i in range(n_protons + n_neutrons):
        groups[i % n_groups].members.append(PDG_PROTON if i < n_protons else PDG_NEUTRON)

    for i, group in enumerate(groups):
        logger.debug("Decay group %d size: %d", i, len(group.members))
    return groups


# ----------------------------------------------------------------------
# Generator
# ----------------------------------------------------------------------

class AbsorptionGenerator(FateGenerator):
    """Pair and multi-nucleon absorption."""

    fates = (Fate.ABSORPTION,)

    def __init__(self, *args, multiplicity_models: Optional[Dict[Family, MultiplicityModel]] = None,
                 **kwargs):
        super().__init__(*args, **kwargs)
        if multiplicity_models is None:
            meson = MesonMultiplicity(self.config.max_sum_draws)
            multiplicity_models = {
                Family.NUCLEON: NucleonMultiplicity(self.config.max_sum_draws),
                Family.PION: meson,
                Family.KAON: meson,
            }
        self.multiplicity_models = multiplicity_models

    def check_preconditions(self, hadron: Hadron, remnant: RemnantNucleus):
        if remnant.A < 2:
            raise TerminalCondition(f"Absorption: too few nucleons in {remnant}")
        if hadron.charge < 0 and remnant.Z < 1:
            raise TerminalCondition(f"Absorption of {hadron.name}: no protons left")
        if hadron.charge > 0 and not is_nucleon(hadron.pdg) and remnant.n_neutrons < 1:
            raise TerminalCondition(f"Absorption of {hadron.name}: no neutrons left")

    def generate(self, hadron: Hadron, remnant: RemnantNucleus,
                 fate: Fate) -> List[FinalStateParticle]:
        self.check_preconditions(hadron, remnant)
        ke_mev = hadron.kinetic_energy_mev

        if hadron.family in (Family.PION, Family.KAON):
            if self.stream.uniform() < pair_absorption_probability(remnant.A, ke_mev):
                return self.pair_absorption(hadron, remnant, ke_mev)
        return self.multinucleon_absorption(hadron, remnant, ke_mev)

    def choose_pair_channel(self, hadron: Hadron, remnant: RemnantNucleus) -> PairChannel:
        channels = PAIR_CHANNELS[hadron.charge]
        f = remnant.proton_fraction
        weights = [c.weight(f) if remnant.can_supply(c.n_protons, 2 - c.n_protons) else 0.0
                   for c in channels]
        total = sum(weights)
        if total <= 0.0:
            raise TerminalCondition(f"Pair absorption of {hadron.name}: no nucleon pair "
                                    f"available in {remnant}")
        r = total * self.stream.uniform()
        cumulative = 0.0
        for channel, weight in zip(channels, weights):
            cumulative += weight
            if r < cumulative:
                return channel
        return channels[int(np.argmax(weights))]

    def pair_absorption(self, hadron: Hadron, remnant: RemnantNucleus,
                        ke_mev: float) -> List[FinalStateParticle]:
        channel = self.choose_pair_channel(hadron, remnant)
        (t1, t2), (s1, s2) = channel.targets, channel.products
        logger.debug("Pair absorption %s + %s%s -> %s + %s", hadron.name,
                     particle_name(t1), particle_name(t2),
                     particle_name(s1), particle_name(s2))

        pair_p4 = self.bound_nucleon_p4(t1, remnant) + self.bound_nucleon_p4(t2, remnant)

        cos_theta = self.hadron_data.sample_angle(hadron.pdg, t1, s1,
                                                  ScatteringChannel.ABSORPTION,
                                                  ke_mev, self.stream)
        if not -1.0 <= cos_theta <= 1.0:
            raise KinematicsError(f"Pair absorption of {hadron.name}: bad angle {cos_theta}")

        p3, p4, remnant_p4 = two_body_kinematics(
            mass(s1), mass(s2), hadron.p4, pair_p4, cos_theta, self.stream,
            remnant_p4=remnant.p4 - pair_p4,
            binding_energy=self.config.absorption_binding_energy)

        remnant.A -= 2
        remnant.Z -= charge(t1) + charge(t2)
        remnant.p4 = remnant_p4
        return [self.emit(hadron, s1, p3), self.emit(hadron, s2, p4)]

    def sample_multiplicity(self, hadron: Hadron, remnant: RemnantNucleus,
                            ke_mev: float) -> Tuple[int, int]:
        model = self.multiplicity_models.get(hadron.family)
        if model is None:
            raise TerminalCondition(f"Absorption not available for {hadron.name}")

        n_p, n_n = model.sample(hadron.pdg, remnant, ke_mev, self.stream,
                                self.config.max_multiplicity_draws)
        n_p, n_n = cap_multiplicity(n_p, n_n, self.config.max_multiplicity)
        max_p, max_n = available_nucleons(hadron.pdg, remnant)
        n_p, n_n = keep_one_nucleon(n_p, n_n, max_p, max_n, self.stream)
        logger.debug("Final state chosen; # protons: %d, # neutrons: %d", n_p, n_n)
        return n_p, n_n

    def group_parent(self, hadron: Hadron, group: DecayGroup) -> np.ndarray:
        """Share of the probe plus the absorbed members, less removal energy."""
        absorbed_mass = sum(mass(m) for m in group.members)
        n_absorbed = len(group.members)
        if group.holds_probe and is_nucleon(hadron.pdg):
            # the probe nucleon is one of the members
            absorbed_mass -= hadron.mass
            n_absorbed -= 1
        parent = group.share_p4.copy()
        parent[3] += absorbed_mass - n_absorbed * self.config.nucleon_removal_energy
        return parent

    def multinucleon_absorption(self, hadron: Hadron, remnant: RemnantNucleus,
                                ke_mev: float) -> List[FinalStateParticle]:
        n_p, n_n = self.sample_multiplicity(hadron, remnant, ke_mev)
        groups = partition_final_state(hadron.pdg, hadron.p4, n_p, n_n, self.stream,
                                       self.config.max_decay_group_size,
                                       self.config.n_decay_groups)

        remnant.Z += hadron.charge
        remnant.A += hadron.baryon_number

        products = []
        for group in groups:
            parent = self.group_parent(hadron, group)
            try:
                daughters = self.phase_space.decay(parent, [mass(m) for m in group.members],
                                                   self.stream)
            except KinematicsError as exc:
                raise TerminalCondition(
                    f"Phase-space decay of absorption final state failed: {exc.reason}") from exc

            remnant.p4 = remnant.p4 - (parent - group.share_p4)
            for pdg, p4 in zip(group.members, daughters):
                products.append(self.emit(hadron, pdg, p4))
            remnant.Z -= group.n_protons
            remnant.A -= len(group.members)

        logger.debug("Remnant nucleus (A,Z) = (%d,%d)", remnant.A, remnant.Z)
        return products

import numpy as np
import pytest

from conftest import ScriptedStream, assert_conserved, generate_until_success
from hadron_mc.core.config import CascadeConfig
from hadron_mc.core.exceptions import KinematicsError, TerminalCondition
from hadron_mc.core.nucleus import RemnantNucleus
from hadron_mc.core.particle import (Family, Hadron, PDG_KM, PDG_NEUTRON, PDG_PI0, PDG_PIM,
                                     PDG_PIP, PDG_PROTON)
from hadron_mc.core.random import RandomStream
from hadron_mc.physics.fates import Fate
from hadron_mc.physics.nuclear_model import FermiGasModel
from hadron_mc.physics.phase_space import PhaseSpaceDecay
from hadron_mc.transport.absorption import (PAIR_CHANNELS, AbsorptionGenerator,
                                            MesonMultiplicity, NucleonMultiplicity,
                                            PairChannel, available_nucleons, cap_multiplicity,
                                            keep_one_nucleon, pair_absorption_probability,
                                            partition_final_state)


class FixedMultiplicity:
    """Multiplicity model always returning the same (np, nn)."""

    def __init__(self, n_p, n_n):
        self.n_p = n_p
        self.n_n = n_n

    def sample(self, probe_pdg, remnant, ke_mev, stream, max_draws=10000):
        return self.n_p, self.n_n


def fixed_absorption(data, stream, family, n_p, n_n):
    config = CascadeConfig()
    return AbsorptionGenerator(config, stream, data, FermiGasModel(), PhaseSpaceDecay(),
                               multiplicity_models={family: FixedMultiplicity(n_p, n_n)})


def absorb_until_success(data, family, n_p, n_n, hadron, remnant, seeds=range(20)):
    for seed in seeds:
        generator = fixed_absorption(data, RandomStream.from_seed(seed), family, n_p, n_n)
        try:
            with remnant.transaction() as staged:
                return generator.multinucleon_absorption(hadron, staged,
                                                         hadron.kinetic_energy_mev)
        except (KinematicsError, TerminalCondition):
            continue
    raise AssertionError("absorption never succeeded")


class TestPairAbsorption:
    """Two-nucleon absorption channels"""

    def test_channel_weight(self):
        channel = PairChannel((PDG_NEUTRON, PDG_PROTON), (PDG_PROTON, PDG_PROTON), 2.0, 1, 1)
        assert channel.weight(0.5) == pytest.approx(0.5)
        assert channel.n_protons == 1

    @pytest.mark.parametrize("q", [1, 0, -1])
    def test_channels_conserve_charge(self, q):
        for channel in PAIR_CHANNELS[q]:
            products = sum(1 for s in channel.products if s == PDG_PROTON)
            assert products == channel.n_protons + q

    def test_probability_falls_with_energy_and_size(self):
        assert pair_absorption_probability(12, 50.0) > pair_absorption_probability(12, 150.0)
        assert pair_absorption_probability(12, 50.0) > pair_absorption_probability(208, 50.0)
        assert pair_absorption_probability(56, 300.0) < 0.0

    def test_channel_limited_by_supply(self, demo_data, stream):
        generator = fixed_absorption(demo_data, stream, Family.PION, 1, 1)
        hadron = Hadron.with_kinetic_energy(PDG_PIP, 0.05)
        remnant = RemnantNucleus(4, 0, p4=[0.0, 0.0, 0.0, 3.75])
        for _ in range(10):
            assert generator.choose_pair_channel(hadron, remnant).targets == \
                (PDG_NEUTRON, PDG_NEUTRON)

    def test_no_pair_available(self, demo_data, stream):
        generator = fixed_absorption(demo_data, stream, Family.PION, 1, 1)
        hadron = Hadron.with_kinetic_energy(PDG_PIM, 0.05)
        remnant = RemnantNucleus(2, 0, p4=[0.0, 0.0, 0.0, 1.88])
        with pytest.raises(TerminalCondition):
            generator.choose_pair_channel(hadron, remnant)

    def test_low_energy_pion_on_carbon(self, demo_data):
        """Low-energy pions on light nuclei always take the pair branch"""
        remnant = RemnantNucleus.from_name('C-12')
        before = remnant.copy()
        hadron = Hadron.with_kinetic_energy(PDG_PIP, 0.05)
        products = generate_until_success(AbsorptionGenerator, demo_data, hadron, remnant,
                                          Fate.ABSORPTION)
        assert len(products) == 2
        assert all(p.pdg in (PDG_PROTON, PDG_NEUTRON) for p in products)
        assert remnant.A == 10
        assert_conserved(products, before, remnant, hadron)


class TestMultiplicity:
    """Empirical (np, nn) models"""

    def test_cap(self):
        assert cap_multiplicity(60, 40) == (51, 34)
        assert cap_multiplicity(10, 5) == (10, 5)

    def test_keep_one_nucleon(self):
        assert keep_one_nucleon(26, 30, 26, 30, ScriptedStream([0.0])) == (25, 30)
        assert keep_one_nucleon(26, 30, 26, 30, ScriptedStream([0.99])) == (26, 29)

    def test_keep_one_untouched_below_limits(self):
        stream = ScriptedStream()
        assert keep_one_nucleon(10, 30, 26, 30, stream) == (10, 30)
        assert stream.n_draws == 0

    @pytest.mark.parametrize("pdg,expected", [
        (PDG_PIP, (27, 29)),
        (PDG_PIM, (25, 31)),
        (PDG_PROTON, (27, 30)),
        (PDG_NEUTRON, (26, 31)),
        (PDG_KM, (25, 31)),
    ])
    def test_available_nucleons(self, pdg, expected):
        assert available_nucleons(pdg, RemnantNucleus.from_name('Fe-56')) == expected

    def test_nucleon_model_bounds(self, stream):
        model = NucleonMultiplicity()
        remnant = RemnantNucleus.from_name('Fe-56')
        for _ in range(200):
            n_p, n_n = model.sample(PDG_PROTON, remnant, 300.0, stream)
            assert n_p + n_n >= 3
            assert 0 <= n_p <= 27
            assert 0 <= n_n <= 30

    def test_meson_model_bounds(self, stream):
        model = MesonMultiplicity()
        remnant = RemnantNucleus.from_name('Fe-56')
        for _ in range(200):
            n_p, n_n = model.sample(PDG_PIP, remnant, 300.0, stream)
            assert n_p + n_n >= 2
            assert 0 <= n_p <= 27
            assert 0 <= n_n <= 29

    def test_isospin_shift(self, stream):
        """pi- absorption emits fewer protons on average than pi+"""
        model = MesonMultiplicity()
        remnant = RemnantNucleus.from_name('Fe-56')
        nd_plus = np.mean([np.subtract(*model.sample(PDG_PIP, remnant, 250.0, stream))
                           for _ in range(300)])
        nd_minus = np.mean([np.subtract(*model.sample(PDG_PIM, remnant, 250.0, stream))
                            for _ in range(300)])
        assert nd_minus < nd_plus

    def test_exhausted_draws(self, stream):
        remnant = RemnantNucleus(2, 0, p4=[0.0, 0.0, 0.0, 1.88])
        with pytest.raises(KinematicsError):
            NucleonMultiplicity().sample(PDG_NEUTRON, remnant, 300.0, stream, max_draws=0)


class TestPartition:
    """Decay groups"""

    def test_single_group(self, stream):
        p4 = Hadron.with_kinetic_energy(PDG_PIP, 0.3).p4
        groups = partition_final_state(PDG_PIP, p4, 5, 7, stream)
        assert len(groups) == 1
        assert groups[0].holds_probe
        assert groups[0].n_protons == 5
        assert len(groups[0].members) == 12
        np.testing.assert_array_equal(groups[0].share_p4, p4)

    def test_eighteen_stays_single(self, stream):
        p4 = Hadron.with_kinetic_energy(PDG_PIP, 0.3).p4
        assert len(partition_final_state(PDG_PIP, p4, 9, 9, stream)) == 1

    def test_large_multiplicity_split(self, stream):
        p4 = Hadron.with_kinetic_energy(PDG_PROTON, 1.0).p4
        groups = partition_final_state(PDG_PROTON, p4, 20, 25, stream)
        assert len(groups) == 5
        assert [g.holds_probe for g in groups] == [True, False, False, False, False]
        assert sum(len(g.members) for g in groups) == 45
        assert sum(g.n_protons for g in groups) == 20
        assert max(len(g.members) for g in groups) <= 18
        assert all(len(g.members) >= 1 for g in groups[1:])
        np.testing.assert_allclose(sum(g.share_p4 for g in groups), p4, atol=1e-12)


class TestAbsorptionGenerator:
    """Absorption final states"""

    @pytest.mark.parametrize("pdg,A,Z", [
        (PDG_PIP, 1, 1),
        (PDG_PIM, 4, 0),
        (PDG_PIP, 2, 2),
    ])
    def test_preconditions(self, demo_data, stream, pdg, A, Z):
        generator = fixed_absorption(demo_data, stream, Family.PION, 1, 1)
        remnant = RemnantNucleus(A, Z, p4=[0.0, 0.0, 0.0, A * 0.938])
        with pytest.raises(TerminalCondition):
            generator.check_preconditions(Hadron.with_kinetic_energy(pdg, 0.3), remnant)

    def test_nucleon_probe_on_protons_allowed(self, demo_data, stream):
        generator = fixed_absorption(demo_data, stream, Family.NUCLEON, 1, 1)
        remnant = RemnantNucleus(2, 2, p4=[0.0, 0.0, 0.0, 1.876])
        generator.check_preconditions(Hadron.with_kinetic_energy(PDG_PROTON, 0.3), remnant)

    def test_fixed_multiplicity_pion(self, demo_data):
        remnant = RemnantNucleus.from_name('Fe-56')
        before = remnant.copy()
        hadron = Hadron.with_kinetic_energy(PDG_PIP, 0.3)
        products = absorb_until_success(demo_data, Family.PION, 3, 2, hadron, remnant)
        assert sorted(p.pdg for p in products) == [PDG_NEUTRON] * 2 + [PDG_PROTON] * 3
        assert (remnant.A, remnant.Z) == (51, 24)
        assert_conserved(products, before, remnant, hadron)

    def test_grouped_final_state(self, demo_data):
        remnant = RemnantNucleus.from_name('Pb-208')
        before = remnant.copy()
        hadron = Hadron.with_kinetic_energy(PDG_PROTON, 1.0)
        products = absorb_until_success(demo_data, Family.NUCLEON, 20, 25, hadron, remnant)
        assert len(products) == 45
        assert (remnant.A, remnant.Z) == (208 + 1 - 45, 82 + 1 - 20)
        assert_conserved(products, before, remnant, hadron)

    def test_pi0_absorption_conserves(self, demo_data):
        remnant = RemnantNucleus.from_name('Fe-56')
        before = remnant.copy()
        hadron = Hadron.with_kinetic_energy(PDG_PI0, 0.3)
        products = generate_until_success(AbsorptionGenerator, demo_data, hadron, remnant,
                                          Fate.ABSORPTION)
        assert len(products) >= 2
        assert_conserved(products, before, remnant, hadron)

    def test_pion_on_iron(self, demo_data):
        remnant = RemnantNucleus.from_name('Fe-56')
        before = remnant.copy()
        hadron = Hadron.with_kinetic_energy(PDG_PIP, 0.3)
        products = generate_until_success(AbsorptionGenerator, demo_data, hadron, remnant,
                                          Fate.ABSORPTION)
        assert all(p.pdg in (PDG_PROTON, PDG_NEUTRON) for p in products)
        assert_conserved(products, before, remnant, hadron)

    def test_proton_on_lead(self, demo_data):
        remnant = RemnantNucleus.from_name('Pb-208')
        before = remnant.copy()
        hadron = Hadron.with_kinetic_energy(PDG_PROTON, 1.0)
        products = generate_until_success(AbsorptionGenerator, demo_data, hadron, remnant,
                                          Fate.ABSORPTION)
        assert len(products) >= 3
        assert remnant.A >= 1
        assert_conserved(products, before, remnant, hadron)

    def test_products_descend_from_probe(self, demo_data):
        remnant = RemnantNucleus.from_name('Fe-56')
        hadron = Hadron.with_kinetic_energy(PDG_PIP, 0.3, mother=4)
        products = generate_until_success(AbsorptionGenerator, demo_data, hadron, remnant,
                                          Fate.ABSORPTION)
        assert {p.mother for p in products} == {4}

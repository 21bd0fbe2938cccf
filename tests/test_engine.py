import logging

import numpy as np
import pytest

from conftest import assert_conserved
from hadron_mc.core.config import CascadeConfig
from hadron_mc.core.event import EventRecord
from hadron_mc.core.exceptions import KinematicsError
from hadron_mc.core.particle import (Hadron, PDG_GAMMA, PDG_NEUTRON, PDG_PIP, PDG_PROTON,
                                     Status)
from hadron_mc.core.random import RandomStream
from hadron_mc.data.hadro_data import TabulatedHadronData
from hadron_mc.physics.fates import Fate
from hadron_mc.physics.phase_space import PhaseSpaceDecay
from hadron_mc.transport.engine import HadronCascade, Outcome
from hadron_mc.transport.generator import FateGenerator

KE_GRID = [0.0, 2000.0]


def only_fate(pdg, fate):
    data = TabulatedHadronData()
    data.set_fraction(pdg, fate, KE_GRID, [1.0, 1.0])
    return data


class FlakyGenerator(FateGenerator):
    """Touches the staged remnant, then fails a fixed number of times."""

    def __init__(self, n_failures):
        self.n_failures = n_failures
        self.calls = 0

    def begin_event(self, probe_energy=None):
        pass

    def generate(self, hadron, remnant, fate):
        self.calls += 1
        remnant.A -= 1
        if self.calls <= self.n_failures:
            raise KinematicsError("flaky")
        remnant.A += 1
        return [self.emit(hadron, hadron.pdg, hadron.p4)]


class TestExitPaths:
    """Hadrons leaving without interacting"""

    def test_requires_event(self, demo_data):
        cascade = HadronCascade(demo_data)
        with pytest.raises(RuntimeError):
            cascade.select_and_generate(Hadron.with_kinetic_energy(PDG_PIP, 0.3))
        with pytest.raises(RuntimeError):
            cascade.remnant_snapshot()

    def test_absorption_on_hydrogen(self):
        cascade = HadronCascade(only_fate(PDG_PIP, Fate.ABSORPTION), stream=RandomStream.from_seed(1))
        remnant = cascade.begin_event('H-1')
        before = remnant.copy()
        hadron = Hadron.with_kinetic_energy(PDG_PIP, 0.3)
        record = EventRecord()
        result = cascade.select_and_generate(hadron, record)

        assert result.outcome == Outcome.EXITED_UNCHANGED
        assert result.fate == Fate.ABSORPTION
        assert len(result.particles) == 1
        assert result.particles[0].pdg == PDG_PIP
        np.testing.assert_array_equal(result.particles[0].p4, hadron.p4)
        assert (remnant.A, remnant.Z) == (1, 1)
        np.testing.assert_array_equal(remnant.p4, before.p4)
        assert hadron.status == Status.STABLE_FINAL_STATE
        assert len(record) == 1

    def test_photon_exits(self, demo_data, stream):
        cascade = HadronCascade(demo_data, stream=stream)
        cascade.begin_event('C-12')
        hadron = Hadron(PDG_GAMMA, [0.0, 0.0, 0.2, 0.2])
        result = cascade.select_and_generate(hadron)
        assert result.outcome == Outcome.EXITED_UNCHANGED
        assert result.fate == Fate.UNDEFINED
        assert result.particles[0].pdg == PDG_GAMMA

    def test_unsupported_species(self, demo_data, stream):
        cascade = HadronCascade(demo_data, stream=stream)
        cascade.begin_event('C-12')
        result = cascade.select_and_generate(Hadron(3122, [0.0, 0.0, 0.5, 1.3]))
        assert result.outcome == Outcome.EXITED_UNCHANGED
        assert result.attempts == 0

    def test_zero_fractions(self, stream):
        config = CascadeConfig(max_fate_iterations=5)
        cascade = HadronCascade(TabulatedHadronData(), config, stream)
        cascade.begin_event('C-12')
        result = cascade.select_and_generate(Hadron.with_kinetic_energy(PDG_PIP, 0.3))
        assert result.outcome == Outcome.EXITED_UNCHANGED
        assert result.fate == Fate.UNDEFINED

    def test_gives_up(self, stream):
        """Inelastic scattering without angular tables never succeeds"""
        config = CascadeConfig(max_kinematics_attempts=5)
        cascade = HadronCascade(only_fate(PDG_PIP, Fate.INELASTIC), config, stream)
        remnant = cascade.begin_event('Fe-56')
        result = cascade.select_and_generate(Hadron.with_kinetic_energy(PDG_PIP, 0.3))
        assert result.outcome == Outcome.GAVE_UP
        assert result.attempts == 5
        assert result.reason
        assert (remnant.A, remnant.Z) == (56, 26)

    def test_disabled_fate(self, stream):
        config = CascadeConfig(disabled_fates=('ABSORPTION',), max_fate_iterations=3)
        cascade = HadronCascade(only_fate(PDG_PIP, Fate.ABSORPTION), config, stream)
        cascade.begin_event('Fe-56')
        result = cascade.select_and_generate(Hadron.with_kinetic_energy(PDG_PIP, 0.3))
        assert result.fate == Fate.UNDEFINED


class FailingDecay(PhaseSpaceDecay):
    """Phase-space decayer that never succeeds."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def decay(self, parent_p4, masses, stream):
        self.calls += 1
        raise KinematicsError("forced")


class TestTerminalConditions:
    """Failures that end the interaction without retrying"""

    def test_failed_absorption_decay_exits_unchanged(self, stream):
        """Above ~290 MeV the pair branch is closed, so pi+ absorption is multi-nucleon"""
        decayer = FailingDecay()
        cascade = HadronCascade(only_fate(PDG_PIP, Fate.ABSORPTION), stream=stream,
                                phase_space=decayer)
        remnant = cascade.begin_event('Fe-56')
        before = remnant.copy()
        hadron = Hadron.with_kinetic_energy(PDG_PIP, 1.0)
        record = EventRecord()
        result = cascade.select_and_generate(hadron, record)

        assert result.outcome == Outcome.EXITED_UNCHANGED
        assert result.fate == Fate.ABSORPTION
        assert decayer.calls == 1
        assert "Phase-space decay" in result.reason
        assert (remnant.A, remnant.Z) == (before.A, before.Z)
        np.testing.assert_array_equal(remnant.p4, before.p4)
        assert len(result.particles) == 1
        assert result.particles[0].pdg == PDG_PIP
        np.testing.assert_array_equal(result.particles[0].p4, hadron.p4)
        assert hadron.status == Status.STABLE_FINAL_STATE
        assert len(record) == 1


class TestRetry:
    """Redraws after kinematics failures"""

    def test_retries_and_rolls_back(self, stream):
        cascade = HadronCascade(only_fate(PDG_PIP, Fate.ELASTIC), stream=stream)
        flaky = FlakyGenerator(2)
        cascade.generators[Fate.ELASTIC] = flaky
        remnant = cascade.begin_event('Fe-56')
        result = cascade.select_and_generate(Hadron.with_kinetic_energy(PDG_PIP, 0.3))
        assert result.outcome == Outcome.INTERACTED
        assert result.attempts == 3
        assert flaky.calls == 3
        assert remnant.A == 56

    def test_remnant_snapshot_is_a_copy(self, demo_data, stream):
        cascade = HadronCascade(demo_data, stream=stream)
        cascade.begin_event((12, 6))
        snapshot = cascade.remnant_snapshot()
        snapshot.A = 3
        assert cascade.remnant.A == 12


class TestInteractions:
    """Full select-and-generate cycles"""

    @pytest.mark.parametrize("pdg,target", [
        (PDG_PIP, 'Fe-56'),
        (PDG_PROTON, 'C-12'),
        (PDG_NEUTRON, 'Pb-208'),
    ])
    def test_conservation_over_seeds(self, demo_data, pdg, target):
        for seed in range(15):
            cascade = HadronCascade(demo_data, stream=RandomStream.from_seed(seed))
            remnant = cascade.begin_event(target, probe_energy=0.3)
            before = remnant.copy()
            hadron = Hadron.with_kinetic_energy(pdg, 0.3)
            result = cascade.select_and_generate(hadron)
            assert result.outcome != Outcome.GAVE_UP
            assert_conserved(result.particles, before, remnant, hadron)

    def test_status_and_ledger(self, demo_data):
        record = EventRecord()
        for seed in range(30):
            cascade = HadronCascade(demo_data, stream=RandomStream.from_seed(seed))
            cascade.begin_event('Fe-56', probe_energy=0.3)
            hadron = Hadron.with_kinetic_energy(PDG_PIP, 0.3)
            hadron.mother = record.add(hadron.as_final_state(Status.INITIAL))
            n_before = len(record)
            result = cascade.select_and_generate(hadron, record)
            if result.outcome == Outcome.INTERACTED:
                break
        else:
            pytest.fail("no interaction in 30 events")

        assert hadron.status == Status.DECAYED
        assert len(record) == n_before + len(result.particles)
        assert all(p.mother == hadron.mother for p in result.particles)

    def test_deterministic(self, demo_data):
        def run(seed):
            cascade = HadronCascade(demo_data, stream=RandomStream.from_seed(seed))
            cascade.begin_event('Fe-56', probe_energy=0.3)
            result = cascade.select_and_generate(Hadron.with_kinetic_energy(PDG_PIP, 0.3))
            return result.fate, [p.pdg for p in result.particles], cascade.remnant.p4

        a, b = run(11), run(11)
        assert a[0] == b[0]
        assert a[1] == b[1]
        np.testing.assert_array_equal(a[2], b[2])

    def test_generators_share_inelastic(self, demo_data):
        cascade = HadronCascade(demo_data)
        assert cascade.generators[Fate.INELASTIC] is cascade.generators[Fate.CHARGE_EXCHANGE]

    def test_begin_event_sets_probe_energy(self, demo_data):
        cascade = HadronCascade(demo_data)
        cascade.begin_event('O-16', probe_energy=0.5)
        assert all(g.probe_energy == 0.5 for g in cascade.generators.values())

    def test_settings_logged_at_debug(self, demo_data, caplog):
        with caplog.at_level(logging.DEBUG, logger="hadron_mc.core.config"):
            HadronCascade(demo_data, CascadeConfig(max_kinematics_attempts=7))
        messages = [r.getMessage() for r in caplog.records if r.name == "hadron_mc.core.config"]
        assert any(m.startswith("max_kinematics_attempts") and m.endswith("= 7")
                   for m in messages)
        assert all(r.levelno == logging.DEBUG for r in caplog.records
                   if r.name == "hadron_mc.core.config")

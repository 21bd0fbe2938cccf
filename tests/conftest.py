import multiprocessing as mp

import numpy as np
import pytest

from hadron_mc.core.config import CascadeConfig
from hadron_mc.core.exceptions import KinematicsError, TerminalCondition
from hadron_mc.core.particle import baryon_number, charge
from hadron_mc.core.random import RandomStream
from hadron_mc.data.demo import demo_hadron_data
from hadron_mc.physics.nuclear_model import FermiGasModel
from hadron_mc.physics.phase_space import PhaseSpaceDecay


class ScriptedStream(RandomStream):
    """Stream that replays fixed draws first, then falls back to a seeded generator."""

    def __init__(self, values=(), seed=0):
        super().__init__(np.random.default_rng(seed))
        self.values = list(values)
        self.n_draws = 0

    def uniform(self):
        self.n_draws += 1
        if self.values:
            return float(self.values.pop(0))
        return super().uniform()


def make_generator(cls, hadron_data, stream, **config_values):
    config = CascadeConfig(**config_values)
    return cls(config, stream, hadron_data, FermiGasModel(config.fermi_momentum),
               PhaseSpaceDecay(config.max_decay_group_size, config.phase_space_max_iterations))


def generate_until_success(cls, hadron_data, hadron, remnant, fate, seeds=range(50),
                           **config_values):
    """Run a generator inside a transaction, trying seeds until one succeeds."""
    for seed in seeds:
        generator = make_generator(cls, hadron_data, RandomStream.from_seed(seed),
                                   **config_values)
        try:
            with remnant.transaction() as staged:
                products = generator.generate(hadron, staged, fate)
        except (KinematicsError, TerminalCondition):
            continue
        return products
    raise AssertionError("generator never succeeded")


def assert_conserved(products, remnant_before, remnant_after, hadron):
    """Four-momentum, charge and baryon number of probe + remnant are conserved."""
    initial = remnant_before.p4 + hadron.p4
    final = remnant_after.p4 + sum(p.p4 for p in products)
    np.testing.assert_allclose(final, initial, rtol=0, atol=1e-6 * abs(initial[3]))
    assert (remnant_after.Z + sum(charge(p.pdg) for p in products)
            == remnant_before.Z + hadron.charge)
    assert (remnant_after.A + sum(baryon_number(p.pdg) for p in products)
            == remnant_before.A + hadron.baryon_number)


@pytest.fixture(scope="session", autouse=True)
def _set_spawn_start_method():
    try:
        mp.set_start_method("spawn")
    except RuntimeError:
        pass  # already set


@pytest.fixture
def stream():
    """Seeded random stream."""
    return RandomStream.from_seed(42)


@pytest.fixture(scope="session")
def demo_data():
    """Built-in fraction and angle tables."""
    return demo_hadron_data()


@pytest.fixture
def config():
    return CascadeConfig()

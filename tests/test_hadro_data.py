import numpy as np
import pytest

from conftest import ScriptedStream
from hadron_mc.core.particle import PDG_NEUTRON, PDG_PIP, PDG_PROTON
from hadron_mc.data.hadro_data import (BAD_ANGLE, AngularTable, FateTable, ScatteringChannel,
                                       TabulatedHadronData)
from hadron_mc.physics.fates import Fate


@pytest.fixture
def data():
    data = TabulatedHadronData()
    data.set_fraction(PDG_PIP, Fate.ELASTIC, [100.0, 300.0], [0.2, 0.4])
    data.set_fraction(PDG_PIP, Fate.ABSORPTION, [100.0, 300.0], [0.8, 0.6])
    data.set_angular_distribution(PDG_PIP, PDG_PROTON, ScatteringChannel.ELASTIC,
                                  [100.0, 500.0], [-1.0, 0.0, 1.0],
                                  [[1.0, 1.0, 1.0], [1.0, 2.0, 3.0]])
    return data


class TestFractions:
    """Piecewise-linear fraction tables"""

    def test_interpolation(self, data):
        assert data.fraction(PDG_PIP, Fate.ELASTIC, 200.0) == pytest.approx(0.3)

    def test_clamped_outside_grid(self, data):
        assert data.fraction(PDG_PIP, Fate.ELASTIC, 10.0) == pytest.approx(0.2)
        assert data.fraction(PDG_PIP, Fate.ELASTIC, 5000.0) == pytest.approx(0.4)

    def test_missing_table_is_zero(self, data):
        assert data.fraction(PDG_PIP, Fate.PION_PRODUCTION, 200.0) == 0.0
        assert data.fraction(PDG_PROTON, Fate.ELASTIC, 200.0) == 0.0

    def test_single_point_is_constant(self):
        data = TabulatedHadronData()
        data.set_fraction(PDG_PROTON, Fate.INELASTIC, [250.0], [0.5])
        assert data.fraction(PDG_PROTON, Fate.INELASTIC, 10.0) == pytest.approx(0.5)
        assert data.fraction(PDG_PROTON, Fate.INELASTIC, 900.0) == pytest.approx(0.5)

    def test_unsorted_input(self):
        data = TabulatedHadronData()
        data.set_fraction(PDG_PROTON, Fate.ELASTIC, [300.0, 100.0], [0.4, 0.2])
        assert data.fraction(PDG_PROTON, Fate.ELASTIC, 200.0) == pytest.approx(0.3)

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            TabulatedHadronData().set_fraction(PDG_PIP, Fate.ELASTIC, [100.0], [-0.1])

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            TabulatedHadronData().set_fraction(PDG_PIP, Fate.ELASTIC, [100.0, 200.0], [0.1])


class TestFateTable:
    """Fate fraction service"""

    def test_order_follows_request(self, data):
        table = FateTable(data)
        assert table.fractions(PDG_PIP, (Fate.ABSORPTION, Fate.ELASTIC), 100.0) == \
            pytest.approx((0.8, 0.2))

    def test_disabled_fates_return_zero(self, data):
        table = FateTable(data, ['elastic'])
        assert table.fraction(PDG_PIP, Fate.ELASTIC, 200.0) == 0.0
        assert table.fraction(PDG_PIP, Fate.ABSORPTION, 200.0) == pytest.approx(0.7)

    def test_accepts_enum_members(self, data):
        assert FateTable(data, [Fate.ABSORPTION]).disabled == frozenset({Fate.ABSORPTION})


class TestAngularTables:
    """cos(theta) sampling"""

    def test_uniform_pdf_inverse_cdf(self):
        table = AngularTable([100.0], [-1.0, 0.0, 1.0], [[1.0, 1.0, 1.0]])
        assert table.sample(100.0, 0.25) == pytest.approx(-0.5)
        assert table.sample(100.0, 0.0) == pytest.approx(-1.0)
        assert table.sample(100.0, 1.0) == pytest.approx(1.0)

    def test_nearest_energy_row(self, data):
        """The forward-peaked row at 500 MeV puts the median above zero"""
        low = data.sample_angle(PDG_PIP, PDG_PROTON, PDG_PIP, ScatteringChannel.ELASTIC,
                                120.0, ScriptedStream([0.5]))
        high = data.sample_angle(PDG_PIP, PDG_PROTON, PDG_PIP, ScatteringChannel.ELASTIC,
                                 480.0, ScriptedStream([0.5]))
        assert low == pytest.approx(0.0, abs=1e-12)
        assert high > 0.0

    def test_missing_table_gives_bad_angle(self, data, stream):
        cos = data.sample_angle(PDG_PIP, PDG_NEUTRON, PDG_PIP, ScatteringChannel.ELASTIC,
                                200.0, stream)
        assert cos == BAD_ANGLE

    def test_empty_row_gives_bad_angle(self):
        table = AngularTable([100.0, 200.0], [-1.0, 1.0], [[0.0, 0.0], [1.0, 1.0]])
        assert table.sample(90.0, 0.5) == BAD_ANGLE
        assert table.sample(210.0, 0.5) == pytest.approx(0.0)

    def test_invalid_grid(self):
        with pytest.raises(ValueError):
            AngularTable([100.0], [1.0, -1.0], [[1.0, 1.0]])
        with pytest.raises(ValueError):
            AngularTable([100.0], [-1.0, 1.0], [[1.0, -1.0]])


class TestStorage:
    """HDF5 round trip and array construction"""

    def test_hdf5_round_trip(self, data, tmp_path):
        path = tmp_path / "hadron_data.h5"
        data.to_hdf5(path)
        loaded = TabulatedHadronData.from_hdf5(path)
        assert loaded.fraction(PDG_PIP, Fate.ELASTIC, 200.0) == pytest.approx(0.3)
        assert loaded.has_angular_distribution(PDG_PIP, PDG_PROTON, ScatteringChannel.ELASTIC)
        a = data.sample_angle(PDG_PIP, PDG_PROTON, PDG_PIP, ScatteringChannel.ELASTIC,
                              500.0, ScriptedStream([0.3]))
        b = loaded.sample_angle(PDG_PIP, PDG_PROTON, PDG_PIP, ScatteringChannel.ELASTIC,
                                500.0, ScriptedStream([0.3]))
        assert a == pytest.approx(b)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TabulatedHadronData.from_hdf5(tmp_path / "missing.h5")

    def test_from_arrays(self):
        data = TabulatedHadronData.from_arrays(
            fractions={(PDG_PROTON, Fate.ELASTIC): ([0.0, 100.0], [0.1, 0.3])},
            angles={(PDG_PROTON, PDG_NEUTRON, ScatteringChannel.CHARGE_EXCHANGE):
                    ([100.0], np.linspace(-1, 1, 5), np.ones((1, 5)))})
        assert data.fraction(PDG_PROTON, Fate.ELASTIC, 50.0) == pytest.approx(0.2)
        assert data.has_angular_distribution(PDG_PROTON, PDG_NEUTRON,
                                             ScatteringChannel.CHARGE_EXCHANGE)

    def test_demo_tables_cover_all_species(self, demo_data):
        for probe in (211, -211, 111, 2212, 2112, 321, -321):
            for target in (PDG_PROTON, PDG_NEUTRON):
                for channel in ScatteringChannel:
                    assert demo_data.has_angular_distribution(probe, target, channel)

"""
Hadron-nucleus fate fractions and hadron-nucleon angular distributions.

The cascade consumes this data through two calls:
    fraction(pdg, fate, ke_mev)                  -> probability weight
    sample_angle(probe, target, scattered,
                 channel, ke_mev, stream)        -> cos(theta_cm), < -1 on failure

TabulatedHadronData keeps the tables in memory and can read/write them as
HDF5 files:

    /fractions/<pdg>/<FATE>/ke, /fractions/<pdg>/<FATE>/values
    /angles/<probe>_<target>_<CHANNEL>/ke, .../cos, .../pdf   (pdf shape: n_ke x n_cos)
"""

import logging
import h5py
import numpy as np
from enum import IntEnum
from pathlib import Path
from scipy.integrate import cumulative_trapezoid
from scipy.interpolate import interp1d
from typing import Dict, Iterable, Optional, Protocol, Sequence, Tuple, Union

from hadron_mc.core.random import RandomStream
from hadron_mc.physics.fates import Fate

logger = logging.getLogger(__name__)

# Returned by sample_angle when no physical angle can be produced
BAD_ANGLE = -2.0


class ScatteringChannel(IntEnum):
    """Hadron-nucleon channel used to key angular distributions."""
    ELASTIC = 1
    CHARGE_EXCHANGE = 2
    ABSORPTION = 3


class HadronData(Protocol):
    def fraction(self, pdg: int, fate: Fate, ke_mev: float) -> float: ...

    def sample_angle(self, probe: int, target: int, scattered: int,
                     channel: ScatteringChannel, ke_mev: float,
                     stream: RandomStream) -> float: ...


class FateTable:
    """
    Stateless lookup of fate fractions with optional switched-off fates.

    Fractions are returned in exactly the order the fates are requested.
    """

    def __init__(self, data: HadronData, disabled_fates: Iterable[Union[str, Fate]] = ()):
        self.data = data
        self.disabled = frozenset(
            f if isinstance(f, Fate) else Fate.from_name(f) for f in disabled_fates)
        if self.disabled:
            logger.info("Fates switched off: %s", sorted(f.name for f in self.disabled))

    def fraction(self, pdg: int, fate: Fate, ke_mev: float) -> float:
        if fate in self.disabled:
            return 0.0
        return float(self.data.fraction(pdg, fate, ke_mev))

    def fractions(self, pdg: int, fates: Sequence[Fate], ke_mev: float) -> Tuple[float, ...]:
        return tuple(self.fraction(pdg, fate, ke_mev) for fate in fates)


class AngularTable:
    """dsigma/dcos(theta) tabulated on a (kinetic energy, cos) grid."""

    def __init__(self, ke_mev: Sequence[float], cos_theta: Sequence[float], pdf: np.ndarray):
        self.ke = np.asarray(ke_mev, dtype=np.float64)
        self.cos = np.asarray(cos_theta, dtype=np.float64)
        self.pdf = np.asarray(pdf, dtype=np.float64).reshape(len(self.ke), len(self.cos))

        if np.any(np.diff(self.cos) <= 0) or self.cos[0] < -1.0 or self.cos[-1] > 1.0:
            raise ValueError("cos grid must be increasing within [-1, 1]")
        if np.any(self.pdf < 0):
            raise ValueError("Angular pdf must be non-negative")

        # Row-wise normalized CDFs; empty rows stay all-zero
        cdf = cumulative_trapezoid(self.pdf, self.cos, axis=1, initial=0.0)
        norm = cdf[:, -1]
        self.valid = norm > 0
        self.cdf = np.zeros_like(cdf)
        self.cdf[self.valid] = cdf[self.valid] / norm[self.valid, None]

    def sample(self, ke_mev: float, r: float) -> float:
        """Invert the CDF of the kinetic-energy row nearest to ke_mev."""
        row = int(np.argmin(np.abs(self.ke - ke_mev)))
        if not self.valid[row]:
            return BAD_ANGLE
        return float(np.interp(r, self.cdf[row], self.cos))


class TabulatedHadronData:
    """
    In-memory fraction and angle tables.

    Usage:
        data = TabulatedHadronData()
        data.set_fraction(PDG_PIP, Fate.ELASTIC, [100, 500], [0.2, 0.3])
        data.set_angular_distribution(PDG_PIP, PDG_PROTON, ScatteringChannel.ELASTIC,
                                      [100, 500], [-1, 1], [[1, 1], [1, 3]])
    """

    def __init__(self):
        self._fractions: Dict[Tuple[int, Fate], interp1d] = {}
        self._fraction_tables: Dict[Tuple[int, Fate], Tuple[np.ndarray, np.ndarray]] = {}
        self._angles: Dict[Tuple[int, int, ScatteringChannel], AngularTable] = {}

    # ------------------------------------------------------------------
    # Building tables
    # ------------------------------------------------------------------

    def set_fraction(self, pdg: int, fate: Fate, ke_mev: Sequence[float],
                     values: Sequence[float]):
        """Piecewise-linear fraction vs kinetic energy, clamped at the ends."""
        ke = np.atleast_1d(np.asarray(ke_mev, dtype=np.float64))
        vals = np.atleast_1d(np.asarray(values, dtype=np.float64))
        if ke.shape != vals.shape:
            raise ValueError("ke and values must have the same length")
        if np.any(vals < 0):
            raise ValueError(f"Negative fraction for pdg={pdg}, fate={fate.name}")
        order = np.argsort(ke)
        ke, vals = ke[order], vals[order]
        if len(ke) == 1:
            ke = np.array([ke[0], ke[0] + 1.0])
            vals = np.array([vals[0], vals[0]])
        self._fraction_tables[(pdg, Fate(fate))] = (ke, vals)
        self._fractions[(pdg, Fate(fate))] = interp1d(
            ke, vals, kind='linear', bounds_error=False,
            fill_value=(vals[0], vals[-1]), assume_sorted=True)

    def set_angular_distribution(self, probe: int, target: int, channel: ScatteringChannel,
                                 ke_mev: Sequence[float], cos_theta: Sequence[float],
                                 pdf: np.ndarray):
        self._angles[(probe, target, ScatteringChannel(channel))] = AngularTable(
            ke_mev, cos_theta, pdf)

    @classmethod
    def from_arrays(cls, fractions: Optional[dict] = None,
                    angles: Optional[dict] = None) -> "TabulatedHadronData":
        """
        Build from plain mappings.

        Parameters:
            fractions: {(pdg, fate): (ke_mev, values)}
            angles: {(probe, target, channel): (ke_mev, cos_theta, pdf)}
        """
        data = cls()
        for (pdg, fate), (ke, values) in (fractions or {}).items():
            data.set_fraction(pdg, fate, ke, values)
        for (probe, target, channel), (ke, cos, pdf) in (angles or {}).items():
            data.set_angular_distribution(probe, target, channel, ke, cos, pdf)
        return data

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def fraction(self, pdg: int, fate: Fate, ke_mev: float) -> float:
        interp = self._fractions.get((pdg, fate))
        if interp is None:
            return 0.0
        return max(float(interp(ke_mev)), 0.0)

    def has_angular_distribution(self, probe: int, target: int,
                                 channel: ScatteringChannel) -> bool:
        return (probe, target, channel) in self._angles

    def sample_angle(self, probe: int, target: int, scattered: int,
                     channel: ScatteringChannel, ke_mev: float,
                     stream: RandomStream) -> float:
        """
        Sample cos(theta_cm) for probe + target -> scattered + X.

        Returns BAD_ANGLE when no table exists or the table row is empty.
        """
        table = self._angles.get((probe, target, channel))
        if table is None:
            logger.warning("No angular distribution for probe=%d target=%d "
                           "scattered=%d channel=%s", probe, target, scattered, channel.name)
            return BAD_ANGLE
        return table.sample(ke_mev, stream.uniform())

    # ------------------------------------------------------------------
    # HDF5 storage
    # ------------------------------------------------------------------

    def to_hdf5(self, path: Union[str, Path]):
        with h5py.File(path, 'w') as f:
            frac_group = f.create_group('fractions')
            for (pdg, fate), (ke, vals) in self._fraction_tables.items():
                g = frac_group.require_group(str(pdg)).create_group(fate.name)
                g.create_dataset('ke', data=ke)
                g.create_dataset('values', data=vals)
            ang_group = f.create_group('angles')
            for (probe, target, channel), table in self._angles.items():
                g = ang_group.create_group(f"{probe}_{target}_{channel.name}")
                g.create_dataset('ke', data=table.ke)
                g.create_dataset('cos', data=table.cos)
                g.create_dataset('pdf', data=table.pdf)

    @classmethod
    def from_hdf5(cls, path: Union[str, Path]) -> "TabulatedHadronData":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Hadron data file not found: {path}")

        data = cls()
        with h5py.File(path, 'r') as f:
            for pdg_name, pdg_group in f.get('fractions', {}).items():
                for fate_name, g in pdg_group.items():
                    data.set_fraction(int(pdg_name), Fate.from_name(fate_name),
                                      g['ke'][()], g['values'][()])
            for key, g in f.get('angles', {}).items():
                probe, target, channel = key.split('_', 2)
                data.set_angular_distribution(int(probe), int(target),
                                              ScatteringChannel[channel],
                                              g['ke'][()], g['cos'][()], g['pdf'][()])

        logger.info("Loaded hadron data: %d fraction tables, %d angular tables from %s",
                    len(data._fractions), len(data._angles), path.name)
        return data

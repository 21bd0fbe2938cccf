"""
Empirical hadron-nucleus elastic scattering angles.

Two discrete angular densities:
    pi + A: Fig. 17 of Freedman, Miller and Henley, Nucl. Phys. A389, 457 (1982)
    N + A:  800 MeV p + O16 (Adams et al., PRL 1979), 0-2 deg guessed from Ni data

Both tables are interpolated with a 2.5 degree width, the N+A table
included.
"""

import logging
import numba
import numpy as np
from dataclasses import dataclass

from hadron_mc.core.particle import Family
from hadron_mc.core.random import RandomStream

logger = logging.getLogger(__name__)

DEG_TO_RAD = 0.0174533


@dataclass(frozen=True)
class AngularDensityTable:
    rprob: np.ndarray          # density per bin
    bin_width: float           # degrees between tabulated points
    denom: float               # normalization
    n_scan: int                # integer-degree scan points
    interp_width: float = 2.5  # degrees


PION_ELASTIC_TABLE = AngularDensityTable(
    rprob=np.array([
        5000., 4200., 3000., 2600., 2100., 1800., 1200., 750., 500., 230., 120.,
        35., 9., 3., 11., 18., 29., 27., 20., 14., 10., 6., 2., 0.14, 0.19]),
    bin_width=2.5,
    denom=47979.453,
    n_scan=60,
)

NUCLEON_ELASTIC_TABLE = AngularDensityTable(
    rprob=np.array([
        2400., 2350., 2200., 2000., 1728., 1261., 713., 312., 106., 35.,
        6., 5., 10., 12., 11., 9., 6., 1., 1., 1.]),
    bin_width=1.0,
    denom=11967.0,
    n_scan=20,
)


@numba.njit(cache=True)
def scan_angle_table(rprob: np.ndarray, bin_width: float, interp_width: float,
                     denom: float, n_scan: int, r: float) -> float:
    """
    Scan a discrete angular density until its running sum exceeds r.

    Parameters:
        rprob: Density at angles 0, bin_width, 2*bin_width, ... [degrees]
        bin_width: Spacing of the tabulated angles [degrees]
        interp_width: Width used for linear interpolation [degrees]
        denom: Normalization constant
        n_scan: Number of scan points (angles i + 0.5 degrees)
        r: Uniform draw

    Returns:
        Scattering angle [degrees]; the last scanned angle if the running
        sum never exceeds r
    """
    nprob = len(rprob)
    xsum = 0.0
    theta = 0.0
    for i in range(n_scan):
        theta = i + 0.5

        # bracketing bin; unbracketed angles fall back to bin 0
        # with the lower edge of the last bracket tried
        tj = 0
        binl = 0.0
        for j in range(nprob - 1):
            binl = j * bin_width
            binh = (j + 1) * bin_width
            if binl <= theta and binh >= theta:
                tj = j
                break
            tj = 0

        tfract = (theta - binl) / interp_width
        delp = rprob[tj + 1] - rprob[tj]
        xsum += (rprob[tj] + tfract * delp) / denom
        if xsum > r:
            break
    return theta


def table_for(family: Family) -> AngularDensityTable:
    """Nucleons use the N+A table, everything else the pi+A table."""
    return NUCLEON_ELASTIC_TABLE if family == Family.NUCLEON else PION_ELASTIC_TABLE


def elastic_angle_from_draw(family: Family, r: float) -> float:
    """Polar CM scattering angle [radians] for a given uniform draw."""
    table = table_for(family)
    theta_deg = scan_angle_table(table.rprob, table.bin_width, table.interp_width,
                                 table.denom, table.n_scan, r)
    return theta_deg * DEG_TO_RAD


def sample_elastic_angle(family: Family, stream: RandomStream) -> float:
    """Sample the polar CM scattering angle [radians] for a projectile family."""
    theta = elastic_angle_from_draw(family, stream.uniform())
    logger.debug("Generated %s+A elastic scattering angle = %g radians",
                 family.value, theta)
    return theta

"""
Relativistic kinematics helpers and two-body scattering.

Four-vectors are float64 arrays [px, py, pz, E] in GeV.
"""

import math
import numba
import numpy as np
from typing import Optional, Tuple

from hadron_mc.core.exceptions import KinematicsError
from hadron_mc.core.random import RandomStream


@numba.njit(cache=True)
def boost(p4: np.ndarray, beta: np.ndarray) -> np.ndarray:
    """
    Lorentz boost of p4 by velocity beta (|beta| < 1).

    A frame moving with -beta sees the boosted vector; boosting by -beta
    brings a system with velocity beta to rest.
    """
    out = p4.copy()
    b2 = beta[0]*beta[0] + beta[1]*beta[1] + beta[2]*beta[2]
    if b2 < 1e-30:
        return out
    gamma = 1.0 / np.sqrt(1.0 - b2)
    bp = beta[0]*p4[0] + beta[1]*p4[1] + beta[2]*p4[2]
    gamma2 = (gamma - 1.0) / b2
    for k in range(3):
        out[k] = p4[k] + gamma2 * bp * beta[k] + gamma * beta[k] * p4[3]
    out[3] = gamma * (p4[3] + bp)
    return out


@numba.njit(cache=True)
def rotate_uz(u: np.ndarray, v: np.ndarray) -> np.ndarray:
    """
    Rotate v from a frame whose z axis is the unit vector u into the lab.

    v = (0, 0, 1) maps onto u; the transverse components of v end up
    perpendicular to u.
    """
    out = np.empty(3)
    u1 = u[0]
    u2 = u[1]
    u3 = u[2]
    up = u1*u1 + u2*u2
    if up > 0.0:
        up = np.sqrt(up)
        out[0] = (u1*u3*v[0] - u2*v[1]) / up + u1*v[2]
        out[1] = (u2*u3*v[0] + u1*v[1]) / up + u2*v[2]
        out[2] = -up*v[0] + u3*v[2]
    elif u3 < 0.0:
        # u = (0, 0, -1)
        out[0] = -v[0]
        out[1] = v[1]
        out[2] = -v[2]
    else:
        out[0] = v[0]
        out[1] = v[1]
        out[2] = v[2]
    return out


@numba.njit(cache=True)
def two_body_kernel(p1: np.ndarray, p2: np.ndarray, m3: float, m4: float,
                    cos_theta: float, phi: float, binding_energy: float):
    """
    Two-body scattering p1 + p2 -> p3 + p4 at a given CM angle.

    Parameters:
        p1, p2: Incoming four-momenta
        m3, m4: Outgoing masses
        cos_theta: Cosine of the CM angle between p1 and p3
        phi: Azimuth of p3 around p1 in the CM
        binding_energy: Energy removed from p1 before the collision

    Returns:
        (ok, p3, p4); p3 + p4 equals p1 + p2 minus the binding energy
    """
    out3 = np.zeros(4)
    out4 = np.zeros(4)

    q1 = p1.copy()
    q1[3] -= binding_energy
    P = q1 + p2
    if P[3] <= 0.0:
        return False, out3, out4
    s = P[3]*P[3] - (P[0]*P[0] + P[1]*P[1] + P[2]*P[2])
    if s <= 0.0:
        return False, out3, out4
    W = np.sqrt(s)
    if W < m3 + m4:
        return False, out3, out4

    beta = P[:3] / P[3]
    q1cm = boost(q1, -beta)

    # scattering axis: p1 direction in the CM
    axis = np.zeros(3)
    pmag = np.sqrt(q1cm[0]*q1cm[0] + q1cm[1]*q1cm[1] + q1cm[2]*q1cm[2])
    bmag = np.sqrt(beta[0]*beta[0] + beta[1]*beta[1] + beta[2]*beta[2])
    if pmag > 1e-12:
        axis[:] = q1cm[:3] / pmag
    elif bmag > 1e-12:
        axis[:] = beta / bmag
    else:
        axis[2] = 1.0

    kallen = (s - (m3 + m4)**2) * (s - (m3 - m4)**2)
    if kallen < 0.0:
        return False, out3, out4
    pcm = np.sqrt(kallen) / (2.0 * W)

    sin_theta = np.sqrt(max(0.0, 1.0 - cos_theta*cos_theta))
    local = np.empty(3)
    local[0] = pcm * sin_theta * np.cos(phi)
    local[1] = pcm * sin_theta * np.sin(phi)
    local[2] = pcm * cos_theta
    dir3 = rotate_uz(axis, local)

    p3cm = np.empty(4)
    p3cm[:3] = dir3
    p3cm[3] = np.sqrt(pcm*pcm + m3*m3)

    out3 = boost(p3cm, beta)
    out4 = P - out3
    return True, out3, out4


def invariant_mass(p4: np.ndarray) -> float:
    m2 = p4[3]**2 - np.dot(p4[:3], p4[:3])
    return math.sqrt(max(m2, 0.0))


def kinetic_energy(p4: np.ndarray, m: float) -> float:
    return float(p4[3] - m)


def isotropic_direction(stream: RandomStream) -> np.ndarray:
    """Random isotropic unit vector."""
    cos_theta = 2.0 * stream.uniform() - 1.0
    phi = 2.0 * math.pi * stream.uniform()
    sin_theta = math.sqrt(max(0.0, 1.0 - cos_theta*cos_theta))
    return np.array([sin_theta*math.cos(phi), sin_theta*math.sin(phi), cos_theta])


def two_body_kinematics(m3: float, m4: float, p1: np.ndarray, p2: np.ndarray,
                        cos_theta: float, stream: RandomStream,
                        remnant_p4: Optional[np.ndarray] = None,
                        binding_energy: float = 0.0
                        ) -> Tuple[np.ndarray, np.ndarray, Optional[np.ndarray]]:
    """
    Outgoing four-momenta for p1 + p2 -> (m3) + (m4).

    Parameters:
        m3, m4: Outgoing masses [GeV]
        p1, p2: Incoming four-momenta
        cos_theta: Cosine of the CM scattering angle
        stream: Random stream (azimuth)
        remnant_p4: Remnant four-momentum, returned with the binding energy added
        binding_energy: Energy [GeV] taken from p1 and handed to the remnant

    Returns:
        (p3, p4, remnant_p4)

    Raises:
        KinematicsError: unphysical angle or insufficient invariant mass
    """
    if not -1.0 <= cos_theta <= 1.0:
        raise KinematicsError(f"Unphysical scattering angle cos(theta) = {cos_theta}")

    phi = 2.0 * math.pi * stream.uniform()
    ok, p3, p4 = two_body_kernel(np.ascontiguousarray(p1, dtype=np.float64),
                                 np.ascontiguousarray(p2, dtype=np.float64),
                                 float(m3), float(m4), float(cos_theta), phi,
                                 float(binding_energy))
    if not ok:
        raise KinematicsError(
            f"Two-body kinematics failed: W below m3 + m4 = {m3 + m4:.4f} GeV")

    if remnant_p4 is not None:
        remnant_p4 = np.array(remnant_p4, dtype=np.float64)
        remnant_p4[3] += binding_energy
    return p3, p4, remnant_p4


def equivalent_kinetic_energy(probe_p4: np.ndarray, target_p4: np.ndarray,
                              probe_mass: float, target_mass: float) -> float:
    """
    Probe kinetic energy [GeV] on a target at rest with the same invariant mass.

    E = ((p + t)^2 - mt^2 - mp^2) / (2 mt)
    """
    total = np.asarray(probe_p4) + np.asarray(target_p4)
    s = total[3]**2 - np.dot(total[:3], total[:3])
    E = (s - target_mass**2 - probe_mass**2) / (2.0 * target_mass)
    return float(E - probe_mass)

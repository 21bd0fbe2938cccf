"""
N-body phase-space decay (Raubold-Lynch / GENBOD).

The numeric kernel is JIT-compiled and consumes a pre-drawn array of
uniforms, so every random number still comes from the cascade stream:
    n - 2 uniforms for the intermediate invariant masses
    2 uniforms per random orientation (n - 1 orientations)
"""

import logging
import numba
import numpy as np
from typing import List, Sequence

from hadron_mc.core.exceptions import KinematicsError
from hadron_mc.core.random import RandomStream
from hadron_mc.physics.kinematics import boost, invariant_mass

logger = logging.getLogger(__name__)


@numba.njit(cache=True)
def _pdk(a: float, b: float, c: float) -> float:
    """Momentum of b (or c) in the rest frame of a -> b + c."""
    x = (a - b - c) * (a + b + c) * (a - b + c) * (a + b - c)
    if x <= 0.0:
        return 0.0
    return np.sqrt(x) / (2.0 * a)


@numba.njit(cache=True)
def _rotate_rows(out: np.ndarray, n_rows: int, u1: float, u2: float):
    # rotation about z by acos(cz), then about y by 2*pi*u2
    cz = 2.0 * u1 - 1.0
    sz = np.sqrt(max(0.0, 1.0 - cz*cz))
    angle_y = 2.0 * np.pi * u2
    cy = np.cos(angle_y)
    sy = np.sin(angle_y)
    for j in range(n_rows):
        x = out[j, 0]
        y = out[j, 1]
        out[j, 0] = cz*x - sz*y
        out[j, 1] = sz*x + cz*y
        x = out[j, 0]
        z = out[j, 2]
        out[j, 0] = cy*x - sy*z
        out[j, 2] = sy*x + cy*z


@numba.njit(cache=True)
def raubold_lynch_kernel(parent_p4: np.ndarray, masses: np.ndarray,
                         uniforms: np.ndarray, out: np.ndarray) -> float:
    """
    Generate one weighted N-body configuration.

    Parameters:
        parent_p4: Parent four-momentum
        masses: Daughter masses (n >= 2)
        uniforms: 3n - 4 uniform draws
        out: (n, 4) array filled with daughter four-momenta in the lab

    Returns:
        Event weight (product of two-body momenta over the parent mass)
    """
    n = len(masses)
    M = np.sqrt(max(parent_p4[3]**2 - parent_p4[0]**2
                    - parent_p4[1]**2 - parent_p4[2]**2, 0.0))
    tm = M - np.sum(masses)

    rno = np.zeros(n)
    rno[n - 1] = 1.0
    if n > 2:
        rno[1:n - 1] = np.sort(uniforms[:n - 2])

    inv_mass = np.zeros(n)
    msum = 0.0
    for i in range(n):
        msum += masses[i]
        inv_mass[i] = rno[i] * tm + msum

    weight = 1.0
    pd = np.zeros(n)
    for i in range(n - 1):
        pd[i] = _pdk(inv_mass[i + 1], inv_mass[i], masses[i + 1])
        weight *= pd[i] / M

    idx = n - 2
    out[:, :] = 0.0
    out[0, 1] = pd[0]
    out[0, 3] = np.sqrt(pd[0]**2 + masses[0]**2)
    out[1, 1] = -pd[0]
    out[1, 3] = np.sqrt(pd[0]**2 + masses[1]**2)
    _rotate_rows(out, 2, uniforms[idx], uniforms[idx + 1])
    idx += 2

    beta = np.zeros(3)
    for k in range(2, n):
        # subsystem 0..k-1 recoils against daughter k
        beta[1] = pd[k - 1] / np.sqrt(pd[k - 1]**2 + inv_mass[k - 1]**2)
        for j in range(k):
            out[j, :] = boost(out[j, :].copy(), beta)
        out[k, 0] = 0.0
        out[k, 1] = -pd[k - 1]
        out[k, 2] = 0.0
        out[k, 3] = np.sqrt(pd[k - 1]**2 + masses[k]**2)
        _rotate_rows(out, k + 1, uniforms[idx], uniforms[idx + 1])
        idx += 2

    lab_beta = parent_p4[:3] / parent_p4[3]
    for j in range(n):
        out[j, :] = boost(out[j, :].copy(), lab_beta)
    return weight


class PhaseSpaceDecay:
    """
    Unweighted N-body phase-space decays.

    Usage:
        decayer = PhaseSpaceDecay()
        daughters = decayer.decay(parent_p4, [0.938, 0.938, 0.1396], stream)
    """

    def __init__(self, max_particles: int = 18, max_iterations: int = 1000,
                 n_weight_trials: int = 200):
        self.max_particles = max_particles
        self.max_iterations = max_iterations
        self.n_weight_trials = n_weight_trials

    def decay(self, parent_p4: np.ndarray, masses: Sequence[float],
              stream: RandomStream) -> List[np.ndarray]:
        """
        Decay a parent four-momentum into daughters of the given masses.

        Returns:
            Daughter four-momenta in input order; they sum to parent_p4

        Raises:
            ValueError: fewer than 2 or more than max_particles daughters
            KinematicsError: decay forbidden or weight rejection did not converge
        """
        masses = np.ascontiguousarray(masses, dtype=np.float64)
        n = len(masses)
        if n < 2 or n > self.max_particles:
            raise ValueError(f"Phase-space decay needs 2..{self.max_particles} "
                             f"daughters, got {n}")

        parent = np.ascontiguousarray(parent_p4, dtype=np.float64)
        W = invariant_mass(parent)
        if parent[3] <= 0.0 or W <= np.sum(masses):
            raise KinematicsError(
                f"Decay not permitted: W = {W:.4f} GeV, sum of masses = {np.sum(masses):.4f} GeV")

        n_uniforms = 3 * n - 4
        out = np.empty((n, 4))

        wmax = 0.0
        for _ in range(self.n_weight_trials):
            w = raubold_lynch_kernel(parent, masses, stream.uniforms(n_uniforms), out)
            wmax = max(wmax, w)
        wmax *= 2.0
        if wmax <= 0.0:
            raise KinematicsError("Phase-space weight vanishes")

        for iteration in range(self.max_iterations):
            w = raubold_lynch_kernel(parent, masses, stream.uniforms(n_uniforms), out)
            if w > wmax:
                logger.warning("Decay weight %g exceeds estimated maximum %g", w, wmax)
            if w > wmax * stream.uniform():
                logger.debug("Accepted %d-body decay after %d iterations", n, iteration + 1)
                return [out[i].copy() for i in range(n)]

        raise KinematicsError(
            f"Phase-space decay did not converge after {self.max_iterations} iterations")

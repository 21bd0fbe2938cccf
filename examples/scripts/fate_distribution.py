"""
Fate Distribution - pi+ and proton on Fe-56

Runs independent single-interaction events and compares the sampled fate
fractions with the input tables, then plots the emitted-nucleon
multiplicities of absorption events.

This example validates:
    - Fate selection against tabulated fractions
    - Multi-nucleon absorption multiplicities
    - Remnant bookkeeping over many events
"""

import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path
import sys
import time

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from hadron_mc import CascadeConfig, Fate, simulate_hadron_nucleus
from hadron_mc.core.particle import PDG_PIP, PDG_PROTON, particle_name
from hadron_mc.data.demo import demo_hadron_data
from hadron_mc.physics.fates import applicable_fates


def run_fates(probe: int, kinetic_energy: float, target: str = 'Fe-56',
              n_events: int = 5000, n_processes: int = 1, seed: int = 12345):
    """
    Simulate n_events interactions and compare fate fractions.

    Parameters:
        probe: PDG code of the probe
        kinetic_energy: Probe kinetic energy [GeV]
        target: Target nucleus
        n_events: Number of events
        n_processes: Worker processes
        seed: Master seed

    Returns:
        BatchResult
    """
    print(f"\n{'='*70}")
    print(f"Fate Distribution")
    print(f"{'='*70}")
    print(f"  Probe: {particle_name(probe)}")
    print(f"  Kinetic energy: {kinetic_energy*1000:.0f} MeV")
    print(f"  Target: {target}")
    print(f"  Events: {n_events:,}")
    print(f"{'='*70}\n")

    data = demo_hadron_data()
    start = time.time()
    result = simulate_hadron_nucleus(probe, kinetic_energy, target, n_events, data,
                                     CascadeConfig(), seed=seed,
                                     n_processes=n_processes, progress=True)
    elapsed = time.time() - start

    fates = applicable_fates(probe)
    ke_mev = kinetic_energy * 1000.0
    expected = np.array([data.fraction(probe, f, ke_mev) for f in fates])
    expected /= expected.sum()
    sampled = result.fate_fractions()

    print(f"\n{'Fate':<18}{'table':>10}{'sampled':>10}")
    for fate, frac in zip(fates, expected):
        print(f"{fate.name:<18}{frac:>10.3f}{sampled.get(fate, 0.0):>10.3f}")

    print(f"\nOutcomes: {dict((o.value, n) for o, n in result.outcome_counts.items())}")
    print(f"Time: {elapsed:.1f}s ({n_events/elapsed:.0f} events/sec)")
    return result


def plot_multiplicities(results, filename='absorption_multiplicity.png'):
    """Emitted proton and neutron multiplicities for absorption events."""
    fig, axes = plt.subplots(1, len(results), figsize=(6*len(results), 4.5))
    axes = np.atleast_1d(axes)

    for ax, (label, result) in zip(axes, results.items()):
        mask = np.array([e.fate == Fate.ABSORPTION for e in result.events])
        if not mask.any():
            continue
        bins = np.arange(0, max(result.n_protons[mask].max(),
                                result.n_neutrons[mask].max()) + 2) - 0.5
        ax.hist(result.n_protons[mask], bins=bins, histtype='step', lw=2, label='protons')
        ax.hist(result.n_neutrons[mask], bins=bins, histtype='step', lw=2, label='neutrons')
        ax.set_xlabel('Multiplicity', fontsize=12)
        ax.set_ylabel('Events', fontsize=12)
        ax.set_title(label, fontsize=13, fontweight='bold')
        ax.grid(True, alpha=0.3)
        ax.legend()

    plt.tight_layout()
    plt.savefig(filename, dpi=150)
    print(f"\nPlot saved: {filename}")


if __name__ == "__main__":
    results = {
        'pi+ + Fe-56, 300 MeV': run_fates(PDG_PIP, 0.3),
        'p + Fe-56, 300 MeV': run_fates(PDG_PROTON, 0.3),
    }
    plot_multiplicities(results)

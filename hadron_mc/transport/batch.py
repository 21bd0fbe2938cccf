"""
Batch driver for independent hadron-nucleus events.

Each event gets its own remnant, ledger and random stream (spawned from a
single SeedSequence), so results do not depend on how events are split
across worker processes.
"""

import logging
import multiprocessing as mp
import numpy as np
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from tqdm import tqdm

from hadron_mc.core.config import CascadeConfig
from hadron_mc.core.event import EventRecord
from hadron_mc.core.particle import Hadron, PDG_NEUTRON, PDG_PROTON, Status
from hadron_mc.core.random import RandomStream
from hadron_mc.data.hadro_data import HadronData
from hadron_mc.physics.fates import Fate
from hadron_mc.transport.engine import HadronCascade, Outcome

logger = logging.getLogger(__name__)

Target = Union[str, Tuple[int, int]]


@dataclass(frozen=True)
class EventSummary:
    fate: Fate
    outcome: Outcome
    n_protons: int
    n_neutrons: int
    remnant_A: int
    remnant_Z: int


@dataclass
class BatchResult:
    """Per-event summaries of a batch run."""
    probe: int
    kinetic_energy: float
    target: Target
    events: List[EventSummary] = field(default_factory=list)

    @property
    def n_events(self) -> int:
        return len(self.events)

    @property
    def fate_counts(self) -> Counter:
        return Counter(e.fate for e in self.events)

    @property
    def outcome_counts(self) -> Counter:
        return Counter(e.outcome for e in self.events)

    @property
    def n_protons(self) -> np.ndarray:
        return np.array([e.n_protons for e in self.events], dtype=np.int32)

    @property
    def n_neutrons(self) -> np.ndarray:
        return np.array([e.n_neutrons for e in self.events], dtype=np.int32)

    @property
    def remnants(self) -> np.ndarray:
        """Final (A, Z) per event, shape (n_events, 2)."""
        return np.array([(e.remnant_A, e.remnant_Z) for e in self.events],
                        dtype=np.int32).reshape(-1, 2)

    def fate_fractions(self) -> Dict[Fate, float]:
        if not self.events:
            return {}
        return {fate: count / self.n_events for fate, count in self.fate_counts.items()}


def simulate_event(cascade: HadronCascade, probe: int, kinetic_energy: float,
                   target: Target) -> EventSummary:
    """Inject one probe into a fresh target and summarize the outcome."""
    remnant = cascade.begin_event(target, probe_energy=kinetic_energy)
    record = EventRecord()

    hadron = Hadron.with_kinetic_energy(probe, kinetic_energy)
    hadron.mother = record.add(hadron.as_final_state(Status.INITIAL))
    result = cascade.select_and_generate(hadron, record)

    emitted = [p for p in result.particles if p.status == Status.STABLE_FINAL_STATE]
    return EventSummary(
        fate=result.fate,
        outcome=result.outcome,
        n_protons=sum(1 for p in emitted if p.pdg == PDG_PROTON),
        n_neutrons=sum(1 for p in emitted if p.pdg == PDG_NEUTRON),
        remnant_A=remnant.A,
        remnant_Z=remnant.Z,
    )


def simulate_seeded_event(cascade: HadronCascade, probe: int, kinetic_energy: float,
                          target: Target, seed_seq: np.random.SeedSequence) -> EventSummary:
    """Restart the cascade's stream from the event's own seed, then run the event."""
    cascade.stream.reseed(seed_seq)
    return simulate_event(cascade, probe, kinetic_energy, target)


# Global cascade (one per worker process)
_worker_cascade = None


def _init_worker(hadron_data, config):
    """Initialize worker process with its own cascade."""
    global _worker_cascade
    _worker_cascade = HadronCascade(hadron_data, config)


def _simulate_event_worker(work_item):
    """
    Worker function for parallel event generation.

    Parameters:
        work_item: (probe, kinetic_energy, target, seed_seq)
    """
    probe, kinetic_energy, target, seed_seq = work_item
    return simulate_seeded_event(_worker_cascade, probe, kinetic_energy, target, seed_seq)


def simulate_hadron_nucleus(probe: int, kinetic_energy: float, target: Target,
                            n_events: int, hadron_data: HadronData,
                            config: Optional[CascadeConfig] = None,
                            seed: Optional[int] = None, n_processes: int = 1,
                            progress: bool = False) -> BatchResult:
    """
    Run independent single-interaction events.

    Parameters:
        probe: PDG code of the probe
        kinetic_energy: Probe kinetic energy [GeV]
        target: Nucleus name or (A, Z)
        n_events: Number of events
        hadron_data: Fate and angle tables
        config: Cascade settings
        seed: Master seed (fresh entropy if None)
        n_processes: Worker processes (1 = run in this process)
        progress: Show a progress bar

    Returns:
        BatchResult with one summary per event, in event order
    """
    config = config if config is not None else CascadeConfig()
    children = np.random.SeedSequence(seed).spawn(n_events)
    result = BatchResult(probe, kinetic_energy, target)

    logger.info("Simulating %d events: probe %d, KE = %.4f GeV, target %s, %d process(es)",
                n_events, probe, kinetic_energy, target, n_processes)

    if n_processes <= 1:
        cascade = HadronCascade(hadron_data, config, RandomStream.from_seed(seed))
        for seed_seq in tqdm(children, disable=not progress, desc="events"):
            result.events.append(
                simulate_seeded_event(cascade, probe, kinetic_energy, target, seed_seq))
        return result

    work_items = [(probe, kinetic_energy, target, seed_seq) for seed_seq in children]
    with mp.Pool(n_processes, initializer=_init_worker,
                 initargs=(hadron_data, config)) as pool:
        summaries = pool.imap(_simulate_event_worker, work_items,
                              chunksize=max(1, n_events // (4 * n_processes)))
        result.events.extend(tqdm(summaries, total=n_events, disable=not progress,
                                  desc="events"))
    return result

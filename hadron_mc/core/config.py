"""
Cascade configuration.

Defaults give the standard hA-mode tuning. A configuration can be
loaded from YAML:

    do_fermi: true
    fermi_factor: 1.0
    max_kinematics_attempts: 500
    disabled_fates: [PION_PRODUCTION]
"""

import logging
import yaml
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CascadeConfig:
    # Fermi motion
    do_fermi: bool = True
    fermi_factor: float = 1.0
    fermi_momentum: Optional[float] = None      # GeV, None = per-nucleus table

    # Energetics [GeV]
    nucleon_removal_energy: float = 0.0074
    absorption_binding_energy: float = 0.075

    # Iteration ceilings
    max_fate_iterations: int = 1000
    max_kinematics_attempts: int = 1000
    max_multiplicity_draws: int = 10000
    max_sum_draws: int = 100
    phase_space_max_iterations: int = 1000

    # Final-state packaging
    max_multiplicity: int = 85
    max_decay_group_size: int = 18
    n_decay_groups: int = 5

    rescatter_produced_pions: bool = False
    disabled_fates: Tuple[str, ...] = ()

    def __post_init__(self):
        """Validate configuration values."""
        if self.fermi_factor < 0:
            raise ValueError(f"fermi_factor must be >= 0, got {self.fermi_factor}")
        if self.fermi_momentum is not None and self.fermi_momentum <= 0:
            raise ValueError(f"fermi_momentum must be > 0, got {self.fermi_momentum}")
        if self.nucleon_removal_energy < 0 or self.absorption_binding_energy < 0:
            raise ValueError("Removal and binding energies must be >= 0")
        for name in ('max_fate_iterations', 'max_kinematics_attempts',
                     'max_multiplicity_draws', 'max_sum_draws',
                     'phase_space_max_iterations', 'n_decay_groups'):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.max_decay_group_size < 2:
            raise ValueError("max_decay_group_size must be >= 2")
        if self.max_multiplicity < 2:
            raise ValueError("max_multiplicity must be >= 2")
        # lists coming from YAML
        object.__setattr__(self, 'disabled_fates',
                           tuple(str(f).upper() for f in self.disabled_fates))

    @classmethod
    def from_dict(cls, values: dict) -> "CascadeConfig":
        """Build from a mapping; unknown keys raise ValueError."""
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}. "
                             f"Available: {sorted(known)}")
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "CascadeConfig":
        """Load configuration from a YAML file (empty file = defaults)."""
        path = Path(path)
        with open(path, 'r') as f:
            values = yaml.safe_load(f) or {}
        if not isinstance(values, dict):
            raise ValueError(f"{path}: expected a mapping at top level")
        config = cls.from_dict(values)
        logger.info("Loaded cascade configuration from %s", path)
        return config

    def to_dict(self) -> dict:
        values = asdict(self)
        values['disabled_fates'] = list(self.disabled_fates)
        return values

    def to_yaml(self, path: Union[str, Path]):
        with open(path, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)

    def log_settings(self):
        """Report the active settings."""
        for key, value in self.to_dict().items():
            logger.debug("%-28s = %s", key, value)

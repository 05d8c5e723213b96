"""
Run configuration for the enrichment engine.

Supports YAML and JSON config files for callers that keep analysis
parameters alongside their data. The engines only ever see an
EnrichmentConfig instance; they never read files themselves.

Example config (YAML):

    method: gsea
    min_size: 15
    max_size: 500
    permutations: 1000
    weight_exponent: 1.0
    seed: 42
    n_jobs: 4
    adjustment: BH
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict

import yaml

from enrichcore.core.exceptions import (
    InsufficientPermutationsError,
    InvalidParametersError,
)
from enrichcore.stats.correction import AdjustmentMethod
from enrichcore.stats.permutation import DEFAULT_SEED

logger = logging.getLogger(__name__)

__all__ = [
    'EnrichmentMethod',
    'EnrichmentConfig',
    'load_config',
    'read_config_mapping',
]


class EnrichmentMethod(Enum):
    """Enrichment algorithm selector."""

    ORA = "ora"
    GSEA = "gsea"


@dataclass
class EnrichmentConfig:
    """
    Parameters recognized by the engine.

    Attributes:
        method: ORA or GSEA.
        min_size: Smallest tested set (members within the reference list for
            ORA, within the ranked list for GSEA).
        max_size: Largest tested set.
        permutations: Null permutations per gene set (GSEA only).
        weight_exponent: Running-sum weight p (GSEA only); 0 is unweighted.
        seed: Root seed for permutation streams (GSEA only).
        n_jobs: Worker threads.
        adjustment: Multiple-testing procedure applied to raw p-values.
        keep_running_sum: Attach the running-sum profile to GSEA results.
    """

    method: EnrichmentMethod = EnrichmentMethod.ORA
    min_size: int = 5
    max_size: int = 2000
    permutations: int = 1000
    weight_exponent: float = 1.0
    seed: int | None = DEFAULT_SEED
    n_jobs: int = 1
    adjustment: AdjustmentMethod = AdjustmentMethod.BH
    keep_running_sum: bool = False

    def __post_init__(self):
        if not isinstance(self.method, EnrichmentMethod):
            try:
                self.method = EnrichmentMethod(str(self.method).strip().lower())
            except ValueError:
                raise InvalidParametersError(
                    f"Unknown method {self.method!r}; expected 'ora' or 'gsea'",
                    parameter="method",
                )
        self.adjustment = AdjustmentMethod.parse(self.adjustment)

    def validate(self) -> EnrichmentConfig:
        """
        Check every parameter; return self so calls can be chained.

        Raises:
            InvalidParametersError: Naming the first offending parameter.
        """
        for name in ("min_size", "max_size", "n_jobs"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidParametersError(
                    f"{name} must be an integer, got {value!r}", parameter=name
                )
        if self.min_size < 0:
            raise InvalidParametersError(
                f"min_size must be >= 0, got {self.min_size}", parameter="min_size"
            )
        if self.min_size > self.max_size:
            raise InvalidParametersError(
                f"min_size ({self.min_size}) > max_size ({self.max_size})",
                parameter="min_size",
            )
        if self.n_jobs < 1:
            raise InvalidParametersError(
                f"n_jobs must be >= 1, got {self.n_jobs}", parameter="n_jobs"
            )

        if self.method is EnrichmentMethod.GSEA:
            if isinstance(self.permutations, bool) or not isinstance(self.permutations, int):
                raise InvalidParametersError(
                    f"permutations must be an integer, got {self.permutations!r}",
                    parameter="permutations",
                )
            if self.permutations < 1:
                raise InsufficientPermutationsError(
                    f"At least one permutation is required, got {self.permutations}",
                    parameter="permutations",
                )
            if (
                isinstance(self.weight_exponent, bool)
                or not isinstance(self.weight_exponent, (int, float))
                or not math.isfinite(self.weight_exponent)
                or self.weight_exponent < 0
            ):
                raise InvalidParametersError(
                    f"weight_exponent must be finite and >= 0, got {self.weight_exponent!r}",
                    parameter="weight_exponent",
                )
            if self.seed is not None and (
                isinstance(self.seed, bool) or not isinstance(self.seed, int) or self.seed < 0
            ):
                raise InvalidParametersError(
                    f"seed must be None or a non-negative integer, got {self.seed!r}",
                    parameter="seed",
                )
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EnrichmentConfig:
        """
        Build from a plain mapping (e.g. parsed YAML).

        Enum-valued keys accept strings. Unknown keys are rejected so typos
        do not silently fall back to defaults.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidParametersError(
                f"Unknown config keys: {unknown}", parameter=unknown[0]
            )
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['method'] = self.method.value
        d['adjustment'] = self.adjustment.name
        return d


_PARSERS = {
    '.yaml': yaml.safe_load,
    '.yml': yaml.safe_load,
    '.json': json.load,
}


def read_config_mapping(config_path: Path | str) -> Dict[str, Any]:
    """
    Parse a YAML or JSON parameter file into a plain mapping.

    The suffix picks the parser. An empty file gives ``{}`` so every
    parameter keeps its default.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidParametersError: Unsupported suffix, unparsable content, or
            a top level that is not a mapping (``parameter="config_path"``).
    """
    path = Path(config_path)
    parser = _PARSERS.get(path.suffix.lower())
    if parser is None:
        raise InvalidParametersError(
            f"Unsupported config format {path.suffix!r} for {path.name}; "
            f"expected one of {sorted(_PARSERS)}",
            parameter="config_path",
        )
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open() as handle:
        try:
            data = parser(handle)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise InvalidParametersError(
                f"Cannot parse {path.name}: {e}", parameter="config_path"
            ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidParametersError(
            f"{path.name} must hold a mapping of parameter names to values, "
            f"not {type(data).__name__}",
            parameter="config_path",
        )
    return data


def load_config(config_path: Path | str) -> EnrichmentConfig:
    """Read a YAML/JSON parameter file into a validated EnrichmentConfig."""
    config = EnrichmentConfig.from_dict(read_config_mapping(config_path)).validate()
    logger.debug(f"Loaded {config.method.value} config from {config_path}")
    return config

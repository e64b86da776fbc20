# src/freqgen/config.py
import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from typing import Dict, List, Optional

from .exceptions import InvalidConfigError
from .factory import WEIGHTINGS
from .genetic_code import GeneticCode

logger = logging.getLogger(__name__)

CONFIG_FILE = "freqgen.json"


@dataclass
class GeneratorConfig:
    k_mers: List[int] = field(default_factory=list)
    codons: bool = False
    genetic_code: int = 11
    population_size: int = 100
    mutation_probability: float = 0.3
    crossover_probability: float = 0.8
    max_gens_since_improvement: int = 50
    rel_tol: float = 0.0001
    pop_count: int = 1
    cache: bool = True
    # extensions over the classic option set
    max_generations: Optional[int] = None
    tournament_size: int = 3
    elitism_count: int = 2
    weighting: str = "equal"
    shared_cache: bool = False
    workers: int = 1
    seed: Optional[int] = None

    @classmethod
    def from_dict(cls, values: Dict) -> "GeneratorConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise InvalidConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return cls(**values)

    def to_dict(self) -> Dict:
        return asdict(self)

    def validate(self) -> "GeneratorConfig":
        for name in ("rel_tol", "mutation_probability", "crossover_probability"):
            value = getattr(self, name)
            if not _is_number(value) or not 0.0 <= value <= 1.0:
                raise InvalidConfigError(f"{name} must be a number in [0, 1], got {value!r}")
        for name in ("population_size", "pop_count", "tournament_size", "elitism_count", "workers"):
            value = getattr(self, name)
            if not _is_int(value) or value < 1:
                raise InvalidConfigError(f"{name} must be a positive integer, got {value!r}")
        if not _is_int(self.max_gens_since_improvement) or self.max_gens_since_improvement < 0:
            raise InvalidConfigError(
                f"max_gens_since_improvement must be an integer >= 0, got {self.max_gens_since_improvement!r}"
            )
        if self.max_generations is not None and (not _is_int(self.max_generations) or self.max_generations < 1):
            raise InvalidConfigError(f"max_generations must be an integer >= 1, got {self.max_generations!r}")
        if self.weighting not in WEIGHTINGS:
            raise InvalidConfigError(f"weighting must be one of {WEIGHTINGS}, got {self.weighting!r}")
        if not isinstance(self.k_mers, (list, tuple)) or not all(_is_int(k) and k >= 1 for k in self.k_mers):
            raise InvalidConfigError(f"k_mers must be a list of integers >= 1, got {self.k_mers!r}")
        for name in ("codons", "cache", "shared_cache"):
            if not isinstance(getattr(self, name), bool):
                raise InvalidConfigError(f"{name} must be true or false, got {getattr(self, name)!r}")
        if not _is_int(self.genetic_code):
            raise InvalidConfigError(f"genetic_code must be an NCBI table number, got {self.genetic_code!r}")
        if self.seed is not None and not _is_int(self.seed):
            raise InvalidConfigError(f"seed must be an integer, got {self.seed!r}")
        GeneticCode.get(self.genetic_code)
        return self


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ConfigurationManager:
    """Loads a JSON settings file on top of the GeneratorConfig defaults."""

    def __init__(self, config_file: str = CONFIG_FILE):
        self.config_file = config_file
        self.default_config = GeneratorConfig().to_dict()

    def load_config(self) -> Dict:
        if not os.path.exists(self.config_file):
            logger.info(f"Config file {self.config_file} not found, using defaults.")
            return dict(self.default_config)
        try:
            with open(self.config_file, "r") as f:
                custom = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidConfigError(f"Could not read config file {self.config_file}: {e}") from e
        if not isinstance(custom, dict):
            raise InvalidConfigError(f"Config file {self.config_file} must contain a JSON object")

        merged = dict(self.default_config)
        merged.update(custom)
        return merged

    def load(self, **overrides) -> GeneratorConfig:
        values = self.load_config()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return GeneratorConfig.from_dict(values).validate()

# src/freqgen/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class StopReason(Enum):
    CONVERGED = "converged"
    GENERATION_LIMIT = "generation_limit_reached"
    CANCELLED = "cancelled"


@dataclass
class Individual:
    codons: Tuple[str, ...]
    fitness: Optional[float] = None

    @property
    def sequence(self) -> str:
        return "".join(self.codons)

    def __len__(self) -> int:
        return len(self.codons)


@dataclass(frozen=True)
class GenerationEvent:
    iteration_number: int
    best_individual_fitness: float
    gens_since_improvement: int

    def to_dict(self) -> dict:
        return {
            "iterationNumber": self.iteration_number,
            "bestIndividualFitness": self.best_individual_fitness,
            "gensSinceImprovement": self.gens_since_improvement,
        }


@dataclass
class RunResult:
    sequence: str
    fitness: float
    protein: str = ""
    population_index: int = 0
    status: Optional[StopReason] = None
    history: list = field(default_factory=list)

# src/freqgen/objectives/frequency.py
from typing import Dict

from ..kmers import CODONS, profile_distance, profile_for
from .base import OptimizationObjective, EvaluationResult


class KmerFrequencyObjective(OptimizationObjective):
    """Squared error between a sequence's overlapping k-mer usage and a target."""

    def __init__(self, k: int, target: Dict[str, float], weight: float = 1.0):
        super().__init__(weight)
        self.k = k
        self.target = dict(target)

    @property
    def key(self):
        return self.k

    @property
    def name(self) -> str:
        return f"{self.k}-mers"

    def evaluate(self, sequence: str) -> EvaluationResult:
        own = profile_for(sequence, self.key)
        error = profile_distance(own, self.target)
        return EvaluationResult(error, f"{self.name} (SSE: {error:.4f})")


class CodonFrequencyObjective(KmerFrequencyObjective):
    """Same as KmerFrequencyObjective, but on in-frame codons."""

    def __init__(self, target: Dict[str, float], weight: float = 1.0):
        super().__init__(3, target, weight)

    @property
    def key(self):
        return CODONS

    @property
    def name(self) -> str:
        return CODONS

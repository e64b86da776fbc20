# src/freqgen/fitness.py
import threading
from typing import Dict, List, Mapping, Optional

from .factory import ObjectiveFactory
from .objectives.base import OptimizationObjective


class FitnessCache:
    """Content-addressed memo of sequence -> distance.

    Lookups and inserts take a lock so one cache can back several
    populations running on worker threads.
    """

    def __init__(self):
        self._data: Dict[str, float] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, sequence: str) -> Optional[float]:
        with self._lock:
            value = self._data.get(sequence)
            if value is None:
                self.misses += 1
            else:
                self.hits += 1
            return value

    def put(self, sequence: str, value: float) -> None:
        with self._lock:
            self._data.setdefault(sequence, value)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"size": len(self._data), "hits": self.hits, "misses": self.misses}

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, sequence: str) -> bool:
        with self._lock:
            return sequence in self._data


class FitnessEvaluator:
    def __init__(self, objectives: List[OptimizationObjective], cache: Optional[FitnessCache] = None):
        self.objectives = objectives
        self.cache = cache

    def calculate_fitness(self, sequence: str) -> float:
        total = 0.0
        for obj in self.objectives:
            total += obj.evaluate(sequence).score * obj.weight
        return total

    def evaluate(self, sequence: str) -> float:
        if self.cache is None:
            return self.calculate_fitness(sequence)
        cached = self.cache.get(sequence)
        if cached is not None:
            return cached
        value = self.calculate_fitness(sequence)
        self.cache.put(sequence, value)
        return value

    def report(self, sequence: str) -> Dict[str, str]:
        return {obj.name: obj.evaluate(sequence).message for obj in self.objectives}


def evaluate_sequence(sequence: str, targets: Mapping, cache: Optional[FitnessCache] = None,
                      weighting: str = "equal") -> float:
    """Distance of one DNA sequence to a target document (lower is better)."""
    evaluator = FitnessEvaluator(ObjectiveFactory.from_targets(targets, weighting), cache)
    return evaluator.evaluate(sequence.upper())

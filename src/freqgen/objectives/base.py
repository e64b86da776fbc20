# src/freqgen/objectives/base.py
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class EvaluationResult:
    score: float  # distance, 0.0 is a perfect match
    message: str


class OptimizationObjective(ABC):
    """Base class for anything a candidate sequence is scored against."""

    def __init__(self, weight: float = 1.0):
        self.weight = weight

    @abstractmethod
    def evaluate(self, sequence: str) -> EvaluationResult:
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__

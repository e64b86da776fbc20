# src/freqgen/algorithms/base.py
from abc import ABC, abstractmethod
from typing import Dict, Tuple

from ..fitness import FitnessEvaluator
from ..models import Individual


class BaseOptimizer(ABC):
    def __init__(self, evaluator: FitnessEvaluator):
        self.evaluator = evaluator

    def calculate_fitness(self, individual: Individual) -> float:
        if individual.fitness is None:
            individual.fitness = self.evaluator.evaluate(individual.sequence)
        return individual.fitness

    @abstractmethod
    def run(self, aa_sequence: str) -> Tuple[Individual, Dict]:
        pass

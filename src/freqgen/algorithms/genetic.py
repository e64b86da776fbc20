# src/freqgen/algorithms/genetic.py
import logging
import math
import random
import threading
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..config import GeneratorConfig
from ..exceptions import InvalidCodonError, InvalidInputError, OperatorInvariantError
from ..fitness import FitnessEvaluator
from ..genetic_code import GeneticCode
from ..models import GenerationEvent, Individual, StopReason
from .base import BaseOptimizer

logger = logging.getLogger(__name__)

Observer = Callable[[GenerationEvent], None]


class GeneticOptimizer(BaseOptimizer):
    """Evolves synonymous encodings of one protein towards a frequency target.

    Every operator works codon by codon and only ever swaps a codon for one of
    its synonyms, so each individual encodes the protein by construction.
    Fitness is a distance, lower is better.
    """

    def __init__(self, evaluator: FitnessEvaluator, genetic_code: GeneticCode,
                 rng: Optional[random.Random] = None, pop_size: int = 100,
                 mutation_probability: float = 0.3, crossover_probability: float = 0.8,
                 max_gens_since_improvement: int = 50, rel_tol: float = 0.0001,
                 max_generations: Optional[int] = None, tournament_size: int = 3,
                 elitism_count: int = 2, observer: Optional[Observer] = None,
                 cancel: Optional[threading.Event] = None):
        super().__init__(evaluator)
        self.code = genetic_code
        self.rng = rng if rng is not None else random.Random()
        self.pop_size = pop_size
        self.mutation_probability = mutation_probability
        self.crossover_probability = crossover_probability
        self.max_gens_since_improvement = max_gens_since_improvement
        self.rel_tol = rel_tol
        self.max_generations = max_generations
        self.tournament_size = tournament_size
        self.elitism_count = max(1, min(elitism_count, pop_size))
        self.observer = observer
        self.cancel = cancel
        self.protein = ""
        self._options: List[Tuple[str, ...]] = []

    @classmethod
    def from_config(cls, evaluator: FitnessEvaluator, config: GeneratorConfig,
                    rng: Optional[random.Random] = None, observer: Optional[Observer] = None,
                    cancel: Optional[threading.Event] = None) -> "GeneticOptimizer":
        return cls(
            evaluator,
            GeneticCode.get(config.genetic_code),
            rng=rng,
            pop_size=config.population_size,
            mutation_probability=config.mutation_probability,
            crossover_probability=config.crossover_probability,
            max_gens_since_improvement=config.max_gens_since_improvement,
            rel_tol=config.rel_tol,
            max_generations=config.max_generations,
            tournament_size=config.tournament_size,
            elitism_count=config.elitism_count,
            observer=observer,
            cancel=cancel,
        )

    def run(self, aa_seq: str) -> Tuple[Individual, Dict]:
        self.protein = aa_seq.upper()
        if not self.protein:
            raise InvalidInputError("Amino acid sequence is empty")
        self._options = [self.code.synonyms(aa) for aa in self.protein]

        # 1. Init
        population = [self._random_individual() for _ in range(self.pop_size)]

        best_fit = math.inf
        since_improvement = 0
        history: List[GenerationEvent] = []
        gen = 0

        # 2. Loop
        while True:
            self._evaluate(population)
            population.sort(key=lambda ind: ind.fitness)
            current_fit = population[0].fitness

            if self._improved(current_fit, best_fit):
                since_improvement = 0
            else:
                since_improvement += 1
            best_fit = min(best_fit, current_fit)

            event = GenerationEvent(gen, best_fit, since_improvement)
            history.append(event)
            if self.observer is not None:
                self.observer(event)
            logger.debug(f"Gen {gen}: fitness={best_fit:.6f} since_improvement={since_improvement}")
            if gen % 10 == 0:
                logger.info(f"Gen {gen}: Best Fitness = {best_fit:.4f}")

            status = self._stop_reason(gen, best_fit, since_improvement)
            if status is not None:
                break
            population = self._breed(population)
            gen += 1

        # 3. Report
        best = population[0]
        logger.info(f"Stopped after {gen + 1} generation(s) ({status.value}), fitness {best.fitness:.4f}")
        details = {
            "fitness": best.fitness,
            "generations": gen + 1,
            "status": status,
            "history": history,
            "metrics": self.evaluator.report(best.sequence),
            "cache": self.evaluator.cache.stats() if self.evaluator.cache is not None else None,
        }
        return best, details

    def _stop_reason(self, gen: int, best_fit: float, since_improvement: int) -> Optional[StopReason]:
        if best_fit == 0.0 or since_improvement >= self.max_gens_since_improvement:
            return StopReason.CONVERGED
        if self.max_generations is not None and gen + 1 >= self.max_generations:
            return StopReason.GENERATION_LIMIT
        if self.cancel is not None and self.cancel.is_set():
            return StopReason.CANCELLED
        return None

    def _improved(self, current: float, best: float) -> bool:
        if math.isinf(best):
            return True
        if best == 0.0:
            return False
        return (best - current) / best > self.rel_tol

    def _random_individual(self) -> Individual:
        return Individual(tuple(self.rng.choice(opts) for opts in self._options))

    def _evaluate(self, population: List[Individual]) -> None:
        for ind in population:
            if ind.fitness is None:
                self._check_encodes(ind)
                self.calculate_fitness(ind)

    def _check_encodes(self, ind: Individual) -> None:
        try:
            translated = self.code.translate(ind.sequence)
        except InvalidCodonError as e:
            raise OperatorInvariantError(f"Bred sequence does not translate: {e}") from e
        if translated != self.protein:
            raise OperatorInvariantError(
                f"Bred sequence encodes {translated!r} instead of {self.protein!r}"
            )

    def _breed(self, ranked: List[Individual]) -> List[Individual]:
        # Elitism: ranked is sorted, best first
        new_pop = [Individual(ind.codons, ind.fitness) for ind in ranked[:self.elitism_count]]

        while len(new_pop) < self.pop_size:
            mother = self._select(ranked)
            father = self._select(ranked)
            if self.rng.random() < self.crossover_probability:
                offspring = [(c, None) for c in self._crossover(mother.codons, father.codons)]
            else:
                offspring = [(mother.codons, mother.fitness), (father.codons, father.fitness)]

            for codons, fitness in offspring:
                if len(new_pop) >= self.pop_size:
                    break
                mutated = self._mutate(codons)
                new_pop.append(Individual(mutated, fitness if mutated == codons else None))
        return new_pop

    def _select(self, ranked: List[Individual]) -> Individual:
        # Tournament selection
        candidates = self.rng.sample(ranked, min(self.tournament_size, len(ranked)))
        return min(candidates, key=lambda ind: ind.fitness)

    def _crossover(self, a: Sequence[str], b: Sequence[str]) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        """Two-point crossover on codon boundaries (single point for 2 codons)."""
        n = len(a)
        if n < 2:
            return tuple(a), tuple(b)
        points = sorted(self.rng.sample(range(1, n), min(2, n - 1)))
        i = points[0]
        j = points[1] if len(points) > 1 else n
        child1 = tuple(a[:i]) + tuple(b[i:j]) + tuple(a[j:])
        child2 = tuple(b[:i]) + tuple(a[i:j]) + tuple(b[j:])
        return child1, child2

    def _mutate(self, codons: Tuple[str, ...]) -> Tuple[str, ...]:
        child = list(codons)
        for idx, codon in enumerate(child):
            if self.rng.random() >= self.mutation_probability:
                continue
            opts = [c for c in self._options[idx] if c != codon]
            if opts:
                child[idx] = self.rng.choice(opts)
        return tuple(child)

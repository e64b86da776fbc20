import random
import threading
import unittest
from unittest import mock

from freqgen.algorithms.genetic import GeneticOptimizer
from freqgen.config import GeneratorConfig
from freqgen.exceptions import (
    InvalidCodonError, InvalidConfigError, InvalidInputError, NoTargetSpecifiedError, OperatorInvariantError,
)
from freqgen.factory import ObjectiveFactory
from freqgen.fitness import FitnessCache, FitnessEvaluator, evaluate_sequence
from freqgen.generator import generate
from freqgen.genetic_code import GeneticCode
from freqgen.models import GenerationEvent, Individual, StopReason

KF_TARGET = {3: {"AAA": 0.5, "TTT": 0.5}}
# no synonymous choice for M and W, so every individual scores the same
FLAT_TARGET = {1: {"A": 1.0}}


class RecordingOptimizer(GeneticOptimizer):
    """Keeps every evaluated generation for inspection."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.generations = []

    def _evaluate(self, population):
        super()._evaluate(population)
        self.generations.append([Individual(ind.codons, ind.fitness) for ind in population])


def make_optimizer(targets, cls=GeneticOptimizer, seed=1, cache=True, **kwargs):
    evaluator = FitnessEvaluator(ObjectiveFactory.from_targets(targets), FitnessCache() if cache else None)
    return cls(evaluator, GeneticCode.get(11), rng=random.Random(seed), **kwargs)


class TestGeneticOptimizer(unittest.TestCase):
    def test_protein_identity_preserved(self):
        code = GeneticCode.get(11)
        for protein in ("MK", "MKLFSRGW*"):
            with self.subTest(protein=protein):
                opt = make_optimizer({2: {"AA": 0.2, "GC": 0.8}}, cls=RecordingOptimizer, pop_size=20,
                                     max_gens_since_improvement=10, max_generations=40)
                opt.run(protein)
                self.assertGreater(len(opt.generations), 1)
                for population in opt.generations:
                    self.assertEqual(len(population), 20)
                    for ind in population:
                        self.assertEqual(code.translate(ind.sequence), protein)

    def test_elitism_never_worsens(self):
        opt = make_optimizer({2: {"AA": 0.3, "TT": 0.3, "GC": 0.4}}, cls=RecordingOptimizer, pop_size=10,
                             mutation_probability=0.9, max_gens_since_improvement=30)
        best, details = opt.run("MKLFSRGWYQ")
        per_gen = [min(ind.fitness for ind in pop) for pop in opt.generations]
        for prev, cur in zip(per_gen, per_gen[1:]):
            self.assertLessEqual(cur, prev)
        fitness = [e.best_individual_fitness for e in details["history"]]
        self.assertEqual(fitness, per_gen)
        self.assertEqual(best.fitness, per_gen[-1])

    def test_early_stopping_exact_generation(self):
        events = []
        opt = make_optimizer(FLAT_TARGET, pop_size=4, max_gens_since_improvement=5, observer=events.append)
        best, details = opt.run("MW")
        self.assertEqual(details["status"], StopReason.CONVERGED)
        self.assertEqual(details["generations"], 6)
        self.assertEqual([e.gens_since_improvement for e in events], [0, 1, 2, 3, 4, 5])
        self.assertEqual([e.iteration_number for e in events], list(range(6)))
        self.assertEqual(best.sequence, "ATGTGG")

    def test_rel_tol_one_never_counts_as_improvement(self):
        opt = make_optimizer({2: {"AA": 0.3, "GC": 0.7}}, pop_size=10, rel_tol=1.0, max_gens_since_improvement=3)
        _, details = opt.run("MKLFSRGW")
        self.assertEqual(details["generations"], 4)

    def test_generation_limit(self):
        opt = make_optimizer(FLAT_TARGET, pop_size=4, max_gens_since_improvement=100, max_generations=3)
        _, details = opt.run("MW")
        self.assertEqual(details["status"], StopReason.GENERATION_LIMIT)
        self.assertEqual(details["generations"], 3)

    def test_cancel_keeps_best(self):
        cancel = threading.Event()
        cancel.set()
        opt = make_optimizer(KF_TARGET, pop_size=4, cancel=cancel)
        best, details = opt.run("KF")
        self.assertEqual(details["status"], StopReason.CANCELLED)
        self.assertEqual(details["generations"], 1)
        self.assertIsNotNone(best.fitness)

    def test_kf_reaches_optimum(self):
        for seed in range(5):
            with self.subTest(seed=seed):
                opt = make_optimizer(KF_TARGET, seed=seed, pop_size=4)
                best, _ = opt.run("KF")
                self.assertEqual(best.sequence, "AAATTT")
                self.assertAlmostEqual(best.fitness, 0.25)

    def test_kf_codon_target_exact_match(self):
        opt = make_optimizer({"codons": {"AAA": 0.5, "TTT": 0.5}}, seed=3, pop_size=4)
        best, details = opt.run("KF")
        self.assertEqual(best.sequence, "AAATTT")
        self.assertEqual(best.fitness, 0.0)
        self.assertEqual(details["status"], StopReason.CONVERGED)

    def test_seed_reproducible_and_cache_transparent(self):
        runs = []
        for cache in (True, False, True):
            opt = make_optimizer({2: {"AA": 0.3, "GC": 0.7}}, seed=11, cache=cache, pop_size=12,
                                 max_gens_since_improvement=15)
            best, details = opt.run("MKLFSRGWYQ")
            runs.append((best.sequence, best.fitness, details["history"]))
        self.assertEqual(runs[0], runs[1])
        self.assertEqual(runs[0], runs[2])

    def test_broken_operator_is_fatal(self):
        class BrokenOptimizer(GeneticOptimizer):
            def _mutate(self, codons):
                return tuple("AAA" for _ in codons)

        opt = make_optimizer(FLAT_TARGET, cls=BrokenOptimizer, pop_size=4, max_gens_since_improvement=10)
        with self.assertRaises(OperatorInvariantError):
            opt.run("MW")

    def test_population_of_one(self):
        opt = make_optimizer(KF_TARGET, pop_size=1, max_gens_since_improvement=5)
        best, _ = opt.run("KF")
        self.assertEqual(GeneticCode.get(11).translate(best.sequence), "KF")

    def test_crossover_on_codon_boundaries(self):
        opt = make_optimizer(KF_TARGET)
        a = ("AAA", "TTT", "CTG", "GGC")
        b = ("AAG", "TTC", "TTA", "GGT")
        for _ in range(50):
            c1, c2 = opt._crossover(a, b)
            for i in range(4):
                self.assertEqual({c1[i], c2[i]}, {a[i], b[i]})


class TestGenerate(unittest.TestCase):
    def test_end_to_end_kf(self):
        result, metadata = generate("KF", KF_TARGET, GeneratorConfig(population_size=4, seed=7))
        self.assertEqual(result.sequence, "AAATTT")
        self.assertEqual(result.protein, "KF")
        self.assertEqual(metadata["fitness"], 0.25)
        for key in ("fitness", "durationMilliseconds", "mutationRate", "crossoverRate", "populationSize",
                    "populationCount", "earlyStopping", "relTol"):
            self.assertIn(key, metadata)

    def test_dna_input(self):
        result, _ = generate("aaa ttc\n", {"codons": {"AAA": 0.5, "TTT": 0.5}},
                             GeneratorConfig(population_size=4, seed=1), dna=True)
        self.assertEqual(result.sequence, "AAATTT")
        self.assertEqual(result.fitness, 0.0)

    def test_best_of_populations(self):
        fake = [
            (Individual(("AAA", "TTC"), 0.5), {"status": StopReason.CONVERGED, "history": [GenerationEvent(0, 0.5, 0)]}),
            (Individual(("AAA", "TTT"), 0.1), {"status": StopReason.CONVERGED, "history": [GenerationEvent(0, 0.1, 0)]}),
            (Individual(("AAG", "TTT"), 0.3), {"status": StopReason.CONVERGED, "history": [GenerationEvent(0, 0.3, 0)]}),
        ]
        with mock.patch.object(GeneticOptimizer, "run", side_effect=fake):
            result, metadata = generate("KF", KF_TARGET, GeneratorConfig(pop_count=3, seed=1))
        self.assertEqual(result.fitness, 0.1)
        self.assertEqual(result.sequence, "AAATTT")
        self.assertEqual(result.population_index, 1)
        self.assertEqual(metadata["populationCount"], 3)

    def test_parallel_matches_sequential(self):
        targets = {2: {"AA": 0.3, "GC": 0.7}, "codons": {"CTG": 0.5, "AAA": 0.5}}
        base = dict(population_size=10, pop_count=3, seed=5, max_gens_since_improvement=10)
        seq_result, _ = generate("MKLFSRGW", targets, GeneratorConfig(**base))
        par_result, _ = generate("MKLFSRGW", targets, GeneratorConfig(workers=3, shared_cache=True, **base))
        self.assertEqual(seq_result.sequence, par_result.sequence)
        self.assertEqual(seq_result.fitness, par_result.fitness)

    def test_observer_receives_events(self):
        events = []
        generate("MW", FLAT_TARGET, GeneratorConfig(population_size=4, max_gens_since_improvement=2, pop_count=2),
                 observer=events.append)
        self.assertEqual(len(events), 6)
        self.assertTrue(all(isinstance(e, GenerationEvent) for e in events))

    def test_eager_validation(self):
        cases = [
            (InvalidConfigError, "KF", KF_TARGET, GeneratorConfig(rel_tol=1.5)),
            (InvalidConfigError, "KF", KF_TARGET, GeneratorConfig(population_size=0)),
            (InvalidConfigError, "KF", KF_TARGET, GeneratorConfig(pop_count=0)),
            (InvalidConfigError, "KF", KF_TARGET, GeneratorConfig(genetic_code=999)),
            (NoTargetSpecifiedError, "KF", {}, None),
            (InvalidInputError, "", KF_TARGET, None),
            (InvalidInputError, "KZ", KF_TARGET, None),
            (InvalidInputError, "M", {5: {"AAAAA": 1.0}}, None),
        ]
        for exc, protein, targets, config in cases:
            with self.subTest(exc=exc.__name__, protein=protein):
                with self.assertRaises(exc):
                    generate(protein, targets, config)

    def test_dna_input_bad_codon(self):
        with self.assertRaises(InvalidCodonError):
            generate("AAAT", KF_TARGET, dna=True)

    def test_selected_keys_only(self):
        targets = {1: {"A": 1.0}, 3: KF_TARGET[3], "codons": {"AAA": 0.5, "TTT": 0.5}}
        result, _ = generate("KF", targets, GeneratorConfig(k_mers=[1], population_size=4, seed=2))
        # AAATTC is closest to all-A among the four encodings of KF
        self.assertEqual(result.sequence, "AAATTC")
        self.assertAlmostEqual(result.fitness, evaluate_sequence("AAATTC", {1: {"A": 1.0}}))

        result, _ = generate("KF", targets, GeneratorConfig(codons=True, population_size=4, seed=2))
        self.assertEqual(result.sequence, "AAATTT")
        self.assertEqual(result.fitness, 0.0)

        result, _ = generate("KF", targets, GeneratorConfig(k_mers=[3], codons=True, population_size=4, seed=2))
        self.assertAlmostEqual(result.fitness, 0.25)

    def test_selected_key_missing(self):
        with self.assertRaises(InvalidInputError):
            generate("KF", KF_TARGET, GeneratorConfig(k_mers=[2]))
        with self.assertRaises(InvalidInputError):
            generate("KF", KF_TARGET, GeneratorConfig(codons=True))


if __name__ == "__main__":
    unittest.main()

import unittest
import logging
import threading

from freqgen.exceptions import (
    InvalidCodonError, InvalidConfigError, InvalidInputError, NoTargetSpecifiedError,
)
from freqgen.factory import ObjectiveFactory, normalize_targets
from freqgen.fitness import FitnessCache, FitnessEvaluator, evaluate_sequence
from freqgen.genetic_code import GeneticCode
from freqgen.kmers import (
    count_kmers, featurize, kmer_frequencies, kmerize, merge_counts, profile_distance, split_codons,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

SEQ = "ATGGCAGGTTGGAGCCGT"  # MAGWSR


class TestKmerizer(unittest.TestCase):
    def test_overlapping_windows(self):
        self.assertEqual(list(kmerize("ACGTA", 2)), ["AC", "CG", "GT", "TA"])

    def test_non_overlapping_drops_tail(self):
        self.assertEqual(list(kmerize("ACGTACG", 3, overlap=False)), ["ACG", "TAC"])

    def test_total_counts(self):
        for k in range(1, 8):
            with self.subTest(k=k):
                self.assertEqual(sum(count_kmers(kmerize(SEQ, k)).values()), len(SEQ) - k + 1)
                self.assertEqual(sum(count_kmers(kmerize(SEQ, k, overlap=False)).values()), len(SEQ) // k)

    def test_codons_are_in_frame(self):
        self.assertEqual(list(split_codons(SEQ)), ["ATG", "GCA", "GGT", "TGG", "AGC", "CGT"])

    def test_restartable(self):
        self.assertEqual(list(kmerize(SEQ, 4)), list(kmerize(SEQ, 4)))

    def test_lowercase_input(self):
        self.assertEqual(list(kmerize("acg", 1)), ["A", "C", "G"])

    def test_invalid_k(self):
        with self.assertRaises(InvalidInputError):
            kmerize(SEQ, 0)

    def test_shorter_than_k(self):
        with self.assertRaises(InvalidInputError):
            kmerize("AC", 3)


class TestFrequencyProfiler(unittest.TestCase):
    def test_count(self):
        self.assertEqual(count_kmers(["AA", "AC", "AA"]), {"AA": 2, "AC": 1})

    def test_merge_matches_combined_count(self):
        s1, s2 = "ACGTTGCA", "TTTACG"
        merged = merge_counts(count_kmers(kmerize(s1, 2)), count_kmers(kmerize(s2, 2)))
        combined = count_kmers(list(kmerize(s1, 2)) + list(kmerize(s2, 2)))
        self.assertEqual(merged, combined)

    def test_merge_commutative_and_associative(self):
        a, b, c = {"A": 1, "C": 2}, {"C": 3, "G": 1}, {"T": 4, "A": 2}
        self.assertEqual(merge_counts(a, b), merge_counts(b, a))
        self.assertEqual(merge_counts(merge_counts(a, b), c), merge_counts(a, merge_counts(b, c)))

    def test_merge_does_not_mutate(self):
        a = {"A": 1}
        merge_counts(a, {"A": 2})
        self.assertEqual(a, {"A": 1})

    def test_normalize_sums_to_one(self):
        freqs = kmer_frequencies(count_kmers(kmerize(SEQ, 3)))
        self.assertAlmostEqual(sum(freqs.values()), 1.0, delta=1e-9)

    def test_normalize_empty(self):
        self.assertEqual(kmer_frequencies({}), {})
        self.assertEqual(kmer_frequencies({"A": 0}), {})

    def test_featurize_aggregates_files(self):
        profiles = featurize(["AAAA", "CCCC"], [1], codons=True)
        self.assertEqual(profiles[1], {"A": 0.5, "C": 0.5})
        self.assertEqual(profiles["codons"], {"AAA": 0.5, "CCC": 0.5})
        self.assertEqual(list(profiles), [1, "codons"])

    def test_featurize_deduplicates_k(self):
        self.assertEqual(list(featurize([SEQ], [2, 2, 1])), [2, 1])

    def test_featurize_errors(self):
        with self.assertRaises(InvalidInputError):
            featurize([], [1])
        with self.assertRaises(NoTargetSpecifiedError):
            featurize([SEQ], [])
        with self.assertRaises(InvalidInputError):
            featurize(["AC"], [3])

    def test_featurize_skip_short(self):
        profiles = featurize(["AC", "AAA"], [3], skip_short=True)
        self.assertEqual(profiles[3], {"AAA": 1.0})

    def test_distance(self):
        self.assertEqual(profile_distance({"A": 1.0}, {"A": 1.0}), 0.0)
        self.assertAlmostEqual(profile_distance({"A": 1.0}, {"C": 1.0}), 2.0)
        self.assertAlmostEqual(profile_distance({"A": 0.5, "C": 0.5}, {"A": 1.0}), 0.5)


class TestGeneticCode(unittest.TestCase):
    def setUp(self):
        self.code = GeneticCode.get(11)

    def test_translate(self):
        self.assertEqual(self.code.translate(SEQ), "MAGWSR")
        self.assertEqual(self.code.translate("atgtaa"), "M*")

    def test_translate_errors(self):
        with self.assertRaises(InvalidCodonError):
            self.code.translate("ATGA")
        with self.assertRaises(InvalidCodonError):
            self.code.translate("ATGNNN")

    def test_synonyms(self):
        self.assertEqual(set(self.code.synonyms("K")), {"AAA", "AAG"})
        self.assertEqual(set(self.code.synonyms("F")), {"TTT", "TTC"})
        self.assertEqual(set(self.code.synonyms("*")), {"TAA", "TAG", "TGA"})
        self.assertEqual(len(self.code.synonyms("L")), 6)

    def test_every_residue_encoded(self):
        for aa in "ACDEFGHIKLMNPQRSTVWY*":
            with self.subTest(aa=aa):
                self.assertTrue(self.code.synonyms(aa))
                for codon in self.code.synonyms(aa):
                    self.assertEqual(self.code.translate(codon), aa)

    def test_unknown_residue(self):
        with self.assertRaises(InvalidInputError):
            self.code.synonyms("X")

    def test_other_table(self):
        # vertebrate mitochondrial: TGA is Trp, AGA is a stop
        mito = GeneticCode.get(2)
        self.assertEqual(mito.translate("TGA"), "W")
        self.assertEqual(mito.translate("AGA"), "*")

    def test_unknown_table(self):
        with self.assertRaises(InvalidConfigError):
            GeneticCode(999)

    def test_shared_instance(self):
        self.assertIs(GeneticCode.get(11), self.code)


class TestFitness(unittest.TestCase):
    def setUp(self):
        self.targets = {3: {"AAA": 0.5, "TTT": 0.5}, "codons": {"AAA": 0.5, "TTT": 0.5}}

    def test_perfect_codon_match(self):
        self.assertEqual(evaluate_sequence("AAATTT", {"codons": {"AAA": 0.5, "TTT": 0.5}}), 0.0)

    def test_overlapping_kmers(self):
        # AAA AAT ATT TTT each at 0.25
        self.assertAlmostEqual(evaluate_sequence("AAATTT", {3: {"AAA": 0.5, "TTT": 0.5}}), 0.25)

    def test_sum_over_keys(self):
        self.assertAlmostEqual(evaluate_sequence("AAATTT", self.targets), 0.25)

    def test_cache_does_not_change_value(self):
        cache = FitnessCache()
        cold = evaluate_sequence(SEQ, self.targets)
        first = evaluate_sequence(SEQ, self.targets, cache=cache)
        second = evaluate_sequence(SEQ, self.targets, cache=cache)
        self.assertEqual(cold, first)
        self.assertEqual(first, second)
        self.assertEqual(cache.stats(), {"size": 1, "hits": 1, "misses": 1})

    def test_cache_hit_skips_objectives(self):
        evaluator = FitnessEvaluator(ObjectiveFactory.from_targets(self.targets), FitnessCache())
        evaluator.cache.put("AAATTT", 42.0)
        self.assertEqual(evaluator.evaluate("AAATTT"), 42.0)

    def test_cache_concurrent_access(self):
        cache = FitnessCache()
        evaluator = FitnessEvaluator(ObjectiveFactory.from_targets(self.targets), cache)
        seqs = ["AAATTT", "AAGTTC", "AAATTC", "AAGTTT"]
        expected = {s: evaluator.calculate_fitness(s) for s in seqs}
        results = []

        def work():
            for s in seqs * 25:
                results.append((s, evaluator.evaluate(s)))

        threads = [threading.Thread(target=work) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len(cache), 4)
        for s, value in results:
            self.assertEqual(value, expected[s])

    def test_alphabet_weighting(self):
        objs = ObjectiveFactory.from_targets({1: {"A": 1.0}, 2: {"AA": 1.0}, "codons": {"AAA": 1.0}},
                                             weighting="alphabet")
        self.assertEqual([o.weight for o in objs], [4.0, 16.0, 64.0])

    def test_report(self):
        evaluator = FitnessEvaluator(ObjectiveFactory.from_targets(self.targets))
        self.assertEqual(set(evaluator.report("AAATTT")), {"3-mers", "codons"})


class TestTargets(unittest.TestCase):
    def test_string_keys_coerced(self):
        targets = normalize_targets({"2": {"aa": 1.0}, "codons": {"AAA": 1}})
        self.assertEqual(targets, {2: {"AA": 1.0}, "codons": {"AAA": 1.0}})

    def test_empty(self):
        with self.assertRaises(NoTargetSpecifiedError):
            normalize_targets({})

    def test_bad_documents(self):
        for doc in ({"x": {"A": 1.0}}, {0: {"": 1.0}}, {2: {"A": 1.0}}, {1: {"A": 1.5}},
                    {1: {"A": "high"}}, {1: ["A"]}, {"codons": {"AA": 1.0}}):
            with self.subTest(doc=doc):
                with self.assertRaises(InvalidInputError):
                    normalize_targets(doc)

    def test_not_a_mapping(self):
        for doc in ([1, 2], 42, "AAA", None):
            with self.subTest(doc=doc):
                with self.assertRaises(InvalidInputError):
                    normalize_targets(doc)


if __name__ == "__main__":
    suite = unittest.TestLoader().loadTestsFromModule(__import__(__name__))
    unittest.TextTestRunner(verbosity=2).run(suite)

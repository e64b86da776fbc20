import json
import os
import tempfile
import unittest
from io import StringIO

import yaml
from Bio import SeqIO

from freqgen.cli import comma_separated_ints, main
from freqgen.config import ConfigurationManager, GeneratorConfig
from freqgen.data_loaders import DataLoader
from freqgen.exceptions import InvalidConfigError, InvalidInputError, NoTargetSpecifiedError
from freqgen.models import GenerationEvent
from freqgen.utils.export import SequenceExporter
from freqgen.utils.reporting import ReportGenerator


class TempDirTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, name, text):
        path = os.path.join(self.tmp, name)
        with open(path, "w") as f:
            f.write(text)
        return path


class TestDataLoader(TempDirTestCase):
    def setUp(self):
        super().setUp()
        self.loader = DataLoader()

    def test_read_sequences_flattens_files(self):
        a = self.write("a.fasta", ">s1\nacgt\nAC\n>s2\nTTTT\n")
        b = self.write("b.fasta", ">s3\nGGG\n")
        self.assertEqual(self.loader.read_sequences([a, b]), ["ACGTAC", "TTTT", "GGG"])

    def test_missing_file(self):
        with self.assertRaises(InvalidInputError):
            self.loader.read_sequences([os.path.join(self.tmp, "nope.fasta")])

    def test_read_first_sequence(self):
        path = self.write("p.fasta", ">p1\nMKF\n>p2\nMW\n")
        self.assertEqual(self.loader.read_first_sequence(path), "MKF")
        with self.assertRaises(InvalidInputError):
            self.loader.read_first_sequence(StringIO(""))

    def test_read_targets(self):
        path = self.write("t.yaml", "3:\n  AAA: 0.5\n  TTT: 0.5\ncodons:\n  AAA: 1.0\n")
        self.assertEqual(self.loader.read_targets(path), {3: {"AAA": 0.5, "TTT": 0.5}, "codons": {"AAA": 1.0}})

    def test_read_targets_invalid_yaml(self):
        with self.assertRaises(InvalidInputError):
            self.loader.read_targets(StringIO("3: [unclosed"))

    def test_read_targets_not_a_mapping(self):
        for text in ("- 1\n- 2\n", "42\n", "just text\n"):
            with self.subTest(text=text):
                with self.assertRaises(InvalidInputError):
                    self.loader.read_targets(StringIO(text))

    def test_read_targets_empty(self):
        with self.assertRaises(NoTargetSpecifiedError):
            self.loader.read_targets(StringIO(""))

    def test_dump_profiles_round_trip(self):
        profiles = {1: {"A": 0.25, "C": 0.75}, "codons": {"AAA": 1.0}}
        text = DataLoader.dump_profiles(profiles)
        self.assertEqual(yaml.safe_load(text), profiles)
        self.assertEqual(self.loader.read_targets(StringIO(text)), profiles)

    def test_write_metadata_fallback(self):
        out = os.path.join(self.tmp, "result.fasta")
        path = DataLoader.write_metadata(os.path.join(self.tmp, "missing", "log.json"), {"fitness": 1.0}, out)
        self.assertEqual(path, out + ".log.json")
        with open(path) as f:
            self.assertEqual(json.load(f), {"fitness": 1.0})


class TestConfiguration(TempDirTestCase):
    def test_defaults(self):
        config = ConfigurationManager(os.path.join(self.tmp, "absent.json")).load()
        self.assertEqual(config, GeneratorConfig())
        self.assertEqual(config.genetic_code, 11)
        self.assertEqual(config.population_size, 100)
        self.assertEqual(config.mutation_probability, 0.3)
        self.assertEqual(config.crossover_probability, 0.8)
        self.assertEqual(config.max_gens_since_improvement, 50)
        self.assertEqual(config.rel_tol, 0.0001)
        self.assertEqual(config.pop_count, 1)
        self.assertTrue(config.cache)

    def test_file_and_overrides(self):
        path = self.write("c.json", json.dumps({"population_size": 20, "rel_tol": 0.01}))
        config = ConfigurationManager(path).load(rel_tol=0.5, seed=None)
        self.assertEqual(config.population_size, 20)
        self.assertEqual(config.rel_tol, 0.5)

    def test_bad_files(self):
        texts = (
            "{not json", json.dumps([1, 2]), json.dumps({"colour": "red"}),
            json.dumps({"rel_tol": "0.1"}), json.dumps({"max_gens_since_improvement": "5"}),
            json.dumps({"max_generations": "10"}), json.dumps({"k_mers": ["1"]}), json.dumps({"k_mers": 3}),
            json.dumps({"mutation_probability": True}), json.dumps({"genetic_code": "11"}),
        )
        for text in texts:
            with self.subTest(text=text):
                with self.assertRaises(InvalidConfigError):
                    ConfigurationManager(self.write("bad.json", text)).load()

    def test_validation(self):
        for kwargs in ({"rel_tol": -0.1}, {"mutation_probability": 2}, {"workers": 0},
                       {"max_generations": 0}, {"weighting": "log"}, {"k_mers": [0]}):
            with self.subTest(**kwargs):
                with self.assertRaises(InvalidConfigError):
                    GeneratorConfig(**kwargs).validate()


class TestExport(unittest.TestCase):
    def test_fasta(self):
        text = SequenceExporter.to_fasta("AAATTT", SequenceExporter.describe("s.fa", "t.yaml", {"fitness": 0.0}))
        record = SeqIO.read(StringIO(text), "fasta")
        self.assertEqual(str(record.seq), "AAATTT")
        self.assertIn("Generated by freqgen from s.fa targeting t.yaml.", record.description)
        self.assertIn('Metadata: {"fitness": 0.0}.', record.description)

    def test_genbank_has_cds(self):
        text = SequenceExporter.to_genbank("AAATTT", "KF", "test")
        record = SeqIO.read(StringIO(text), "genbank")
        self.assertEqual(record.features[0].type, "CDS")
        self.assertEqual(record.features[0].qualifiers["translation"], ["KF"])

    def test_pdf_report(self):
        history = [GenerationEvent(i, 1.0 / (i + 1), 0) for i in range(100)]
        pdf = ReportGenerator.create_pdf("KF", "AAATTT", {"fitness": 0.25}, history)
        self.assertTrue(pdf.startswith(b"%PDF"))


class TestCli(TempDirTestCase):
    def test_comma_separated_ints(self):
        self.assertEqual(comma_separated_ints("3,1,3,2"), [3, 1, 2])

    def test_featurize_then_generate(self):
        corpus = self.write("corpus.fasta", ">a\nAAATTTAAATTT\n>b\nAAGTTC\n")
        freqs = os.path.join(self.tmp, "freqs.yaml")
        self.assertEqual(main(["featurize", corpus, "-k", "1,2", "-c", "-o", freqs]), 0)
        with open(freqs) as f:
            doc = yaml.safe_load(f)
        self.assertEqual(set(doc), {1, 2, "codons"})
        self.assertAlmostEqual(sum(doc["codons"].values()), 1.0)

        protein = self.write("protein.fasta", ">p\nKFKF\n")
        out = os.path.join(self.tmp, "out.fasta")
        log = os.path.join(self.tmp, "run.log.json")
        code = main(["generate", "-s", protein, "-f", freqs, "-o", out, "-p", "8", "-e", "5",
                     "--seed", "3", "--log", log, "--config", os.path.join(self.tmp, "none.json")])
        self.assertEqual(code, 0)
        record = SeqIO.read(out, "fasta")
        self.assertEqual(len(record.seq), 12)
        self.assertIn("Metadata:", record.description)
        with open(log) as f:
            metadata = json.load(f)
        self.assertEqual(metadata["populationSize"], 8)
        self.assertEqual(metadata["sequenceFile"], protein)

    def test_featurize_without_keys_fails(self):
        corpus = self.write("corpus.fasta", ">a\nAAAT\n")
        self.assertEqual(main(["featurize", corpus]), 1)

    def test_generate_bad_rel_tol_fails(self):
        protein = self.write("protein.fasta", ">p\nKF\n")
        freqs = self.write("f.yaml", "codons:\n  AAA: 1.0\n")
        self.assertEqual(main(["generate", "-s", protein, "-f", freqs, "-r", "2",
                               "--config", os.path.join(self.tmp, "none.json")]), 1)

    def test_generate_selected_keys(self):
        protein = self.write("protein.fasta", ">p\nKF\n")
        freqs = self.write("f.yaml", "1:\n  G: 1.0\ncodons:\n  AAA: 0.5\n  TTT: 0.5\n")
        log = os.path.join(self.tmp, "run.log.json")
        none = os.path.join(self.tmp, "none.json")
        self.assertEqual(main(["generate", "-s", protein, "-f", freqs, "--codons", "-p", "4", "--seed", "1",
                               "--log", log, "-o", os.path.join(self.tmp, "out.fasta"), "--config", none]), 0)
        with open(log) as f:
            self.assertEqual(json.load(f)["fitness"], 0.0)
        self.assertEqual(main(["generate", "-s", protein, "-f", freqs, "-k", "2", "--config", none]), 1)


if __name__ == "__main__":
    unittest.main()

# src/freqgen/cli.py
import argparse
import logging
import sys
from typing import List, Optional

from .config import CONFIG_FILE, ConfigurationManager
from .data_loaders import DataLoader
from .exceptions import FreqgenError
from .generator import generate
from .kmers import featurize
from .utils.export import SequenceExporter

logger = logging.getLogger("freqgen")


def comma_separated_ints(value: str) -> List[int]:
    try:
        ints = [int(x) for x in value.split(",") if x.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma separated integers, got {value!r}")
    return list(dict.fromkeys(ints))  # deduplicate, keep order


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="freqgen",
        description="Featurize sequences and generate DNA matching target k-mer/codon frequencies",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    feat = sub.add_parser("featurize", help="Featurize one or more FASTA files")
    feat.add_argument("files", nargs="+", help="input FASTA files")
    feat.add_argument("-k", "--k-mers", type=comma_separated_ints, default=[],
                      help='comma separated list of k values to featurize, e.g. "-k 1,2,3"')
    feat.add_argument("-c", "--codons", action="store_true", help="whether to featurize codons")
    feat.add_argument("--skip-short", action="store_true",
                      help="skip sequences shorter than k instead of failing")
    feat.add_argument("-o", "--output", help="the output YAML file (default: stdout)")

    gen = sub.add_parser(
        "generate",
        help="Given target k-mer and/or codon frequencies and an amino acid sequence, generate a DNA sequence",
    )
    gen.add_argument("-s", "--seq", required=True, help="FASTA file with the amino acid sequence")
    gen.add_argument("-f", "--freq", required=True,
                     help="YAML file with the k-mer and/or codon frequencies to target")
    gen.add_argument("-k", "--k-mers", type=comma_separated_ints,
                     help="only target these values of k from the frequency file (default: all)")
    gen.add_argument("--codons", action="store_true", default=None,
                     help="only target codon usage (combined with --k-mers if given)")
    gen.add_argument("-o", "--output", help="the output FASTA file (default: stdout)")
    gen.add_argument("-g", "--genetic-code", type=int, help="the genetic code to use (default: 11)")
    gen.add_argument("-p", "--pop-size", type=int, help="the size of the population (default: 100)")
    gen.add_argument("-m", "--mutation-rate", type=float, help="the mutation rate (default: 0.3)")
    gen.add_argument("-c", "--crossover-rate", type=float, help="the crossover rate (default: 0.8)")
    gen.add_argument("-e", "--early-stopping", type=int,
                     help="generations without --rel-tol improvement before stopping (default: 50)")
    gen.add_argument("-r", "--rel-tol", type=float,
                     help="relative improvement that resets early stopping (default: 0.0001, in [0, 1])")
    gen.add_argument("--pop-count", type=int,
                     help="how many populations to optimize, returning the best result (default: 1)")
    gen.add_argument("--max-generations", type=int, help="hard cap on generations per population")
    gen.add_argument("--workers", type=int, help="populations optimized in parallel (default: 1)")
    gen.add_argument("--seed", type=int, help="random seed for reproducible runs")
    gen.add_argument("--weighting", choices=["equal", "alphabet"],
                     help="how k values are weighted against each other (default: equal)")
    gen.add_argument("--no-cache", dest="cache", action="store_false", default=None,
                     help="disable fitness caching")
    gen.add_argument("--log", nargs="?", const=True, default=None,
                     help="write JSON metadata to a file")
    gen.add_argument("--no-metadata", dest="metadata", action="store_false",
                     help="exclude JSON metadata from the output FASTA comment line")
    gen.add_argument("--dna", action="store_true", help="interpret the FASTA file as DNA")
    gen.add_argument("--config", default=CONFIG_FILE, help=f"JSON settings file (default: {CONFIG_FILE})")
    return parser


def run_featurize(args, loader: DataLoader) -> None:
    seqs = loader.read_sequences(args.files)
    logger.info(f"Counting k-mers for {len(seqs)} sequence(s)...")
    profiles = featurize(seqs, args.k_mers, codons=args.codons, skip_short=args.skip_short)
    text = loader.dump_profiles(profiles)

    n = len(args.files)
    logger.info(f"Done featurizing {n} file{'s' if n > 1 else ''} with {len(seqs)} sequence(s)!")
    if args.output:
        with open(args.output, "w") as f:
            f.write(text)
        logger.info(f"Output written to {args.output}.")
    else:
        sys.stdout.write(text)


def run_generate(args, loader: DataLoader) -> None:
    config = ConfigurationManager(args.config).load(
        genetic_code=args.genetic_code,
        population_size=args.pop_size,
        mutation_probability=args.mutation_rate,
        crossover_probability=args.crossover_rate,
        max_gens_since_improvement=args.early_stopping,
        rel_tol=args.rel_tol,
        pop_count=args.pop_count,
        max_generations=args.max_generations,
        workers=args.workers,
        seed=args.seed,
        weighting=args.weighting,
        cache=args.cache,
        k_mers=args.k_mers,
        codons=args.codons,
    )
    logger.info(f"Reading target frequencies from {args.freq}")
    targets = loader.read_targets(args.freq)
    logger.info(f"Reading target amino acid sequence from {args.seq}")
    seq = loader.read_first_sequence(args.seq)

    result, metadata = generate(seq, targets, config, dna=args.dna)
    metadata.update({"sequenceFile": args.seq, "target": args.freq})

    if args.log:
        path = loader.write_metadata(args.log if isinstance(args.log, str) else None, metadata, args.output)
        logger.info(f"Metadata written to {path}")

    description = SequenceExporter.describe(args.seq, args.freq, metadata if args.metadata else None)
    fasta = SequenceExporter.to_fasta(result.sequence, description)
    if args.output:
        with open(args.output, "w") as f:
            f.write(fasta)
    else:
        sys.stdout.write(fasta)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    loader = DataLoader()
    try:
        if args.command == "featurize":
            run_featurize(args, loader)
        else:
            run_generate(args, loader)
    except FreqgenError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

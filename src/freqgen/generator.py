# src/freqgen/generator.py
import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .algorithms.genetic import GeneticOptimizer, Observer
from .config import GeneratorConfig
from .exceptions import InvalidInputError
from .factory import ObjectiveFactory, normalize_targets
from .fitness import FitnessCache, FitnessEvaluator
from .genetic_code import GeneticCode
from .kmers import CODONS
from .models import RunResult

logger = logging.getLogger(__name__)


def prepare_protein(sequence: str, code: GeneticCode, dna: bool = False) -> str:
    """Cleans the input and, for DNA input, translates it first."""
    seq = "".join(sequence.split()).upper()
    if not seq:
        raise InvalidInputError("Input sequence is empty")
    if dna:
        seq = code.translate(seq)
    for pos, aa in enumerate(seq):
        if not code.encodes(aa):
            raise InvalidInputError(
                f"Residue '{aa}' at position {pos} is not encoded by genetic code {code.table_id}"
            )
    return seq


def select_targets(targets: Dict, k_mers: Sequence[int] = (), codons: bool = False) -> Dict:
    """Keeps the requested k values (and codons); with none requested every key is kept."""
    requested: List = list(dict.fromkeys(k_mers))
    if codons:
        requested.append(CODONS)
    if not requested:
        return targets
    missing = [key for key in requested if key not in targets]
    if missing:
        raise InvalidInputError(
            f"Requested keys {missing} are not in the target document (available: {list(targets)})"
        )
    return {key: targets[key] for key in requested}


def generate(sequence: str, targets: Mapping, config: Optional[GeneratorConfig] = None,
             observer: Optional[Observer] = None, cancel: Optional[threading.Event] = None,
             dna: bool = False) -> Tuple[RunResult, Dict]:
    """Runs `pop_count` independent populations and returns the fittest result.

    All validation happens before the first population starts. The observer,
    if given, receives a GenerationEvent after every generation of every
    population; with several workers it is called from worker threads.
    """
    config = (config or GeneratorConfig()).validate()
    targets = select_targets(normalize_targets(targets), config.k_mers, config.codons)
    code = GeneticCode.get(config.genetic_code)
    protein = prepare_protein(sequence, code, dna=dna)

    longest = max(3 if key == CODONS else key for key in targets)
    if len(protein) * 3 < longest:
        raise InvalidInputError(
            f"Protein of {len(protein)} residues encodes {len(protein) * 3} nt, shorter than k={longest}"
        )
    objectives = ObjectiveFactory.from_targets(targets, config.weighting)

    master = random.Random(config.seed)
    seeds = [master.randrange(2 ** 32) for _ in range(config.pop_count)]
    shared_cache = FitnessCache() if config.cache and config.shared_cache else None

    def run_population(index: int) -> RunResult:
        cache = shared_cache
        if cache is None and config.cache:
            cache = FitnessCache()
        evaluator = FitnessEvaluator(objectives, cache)
        optimizer = GeneticOptimizer.from_config(
            evaluator, config, rng=random.Random(seeds[index]), observer=observer, cancel=cancel
        )
        logger.info(f"Optimizing population {index + 1}/{config.pop_count}")
        best, details = optimizer.run(protein)
        return RunResult(
            sequence=best.sequence,
            fitness=best.fitness,
            protein=protein,
            population_index=index,
            status=details["status"],
            history=details["history"],
        )

    start = time.time()
    results: List[RunResult] = []
    if config.workers > 1 and config.pop_count > 1:
        with ThreadPoolExecutor(max_workers=min(config.workers, config.pop_count)) as pool:
            results = list(pool.map(run_population, range(config.pop_count)))
    else:
        for index in range(config.pop_count):
            if results and cancel is not None and cancel.is_set():
                logger.warning(f"Cancelled after {len(results)} population(s)")
                break
            results.append(run_population(index))
    duration_ms = int((time.time() - start) * 1000)

    best = min(results, key=lambda r: r.fitness)
    metadata = {
        "fitness": round(best.fitness, 4),
        "unixTimestamp": int(time.time() * 1000),
        "durationMilliseconds": duration_ms,
        "mutationRate": config.mutation_probability,
        "crossoverRate": config.crossover_probability,
        "populationSize": config.population_size,
        "populationCount": config.pop_count,
        "earlyStopping": config.max_gens_since_improvement,
        "relTol": config.rel_tol,
        "geneticCode": config.genetic_code,
        "seed": config.seed,
        "generations": sum(len(r.history) for r in results),
    }
    logger.info(
        f"Done! Generated a DNA sequence with fitness {best.fitness:.4f} in {duration_ms / 1000:.2f}s "
        f"(population {best.population_index + 1}/{len(results)})."
    )
    return best, metadata

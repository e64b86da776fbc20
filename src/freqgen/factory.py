# src/freqgen/factory.py
import logging
from typing import Dict, List, Mapping

from .exceptions import InvalidConfigError, InvalidInputError, NoTargetSpecifiedError
from .kmers import CODONS, FrequencyProfile, ProfileKey
from .objectives.base import OptimizationObjective
from .objectives.frequency import CodonFrequencyObjective, KmerFrequencyObjective

logger = logging.getLogger(__name__)

WEIGHTINGS = ("equal", "alphabet")


def normalize_targets(document: Mapping) -> Dict[ProfileKey, FrequencyProfile]:
    """Checks a parsed target document and coerces its keys.

    Keys become either "codons" or an int k >= 1; every k-mer must have
    length k (3 for codons) and every frequency must lie in [0, 1].
    """
    if not isinstance(document, Mapping):
        raise InvalidInputError(
            f"Target document must map k values or 'codons' to frequencies, got a {type(document).__name__}"
        )
    if not document:
        raise NoTargetSpecifiedError("Target document has no k-mer or codon frequencies")

    targets: Dict[ProfileKey, FrequencyProfile] = {}
    for raw_key, freqs in document.items():
        if raw_key == CODONS:
            key, k = CODONS, 3
        else:
            try:
                key = k = int(raw_key)
            except (TypeError, ValueError):
                raise InvalidInputError(
                    f"Target key {raw_key!r} is neither 'codons' nor an integer k"
                ) from None
            if k < 1:
                raise InvalidInputError(f"Target key k={k} must be >= 1")
        if key in targets:
            raise InvalidInputError(f"Duplicate target key {raw_key!r}")
        if not isinstance(freqs, Mapping):
            raise InvalidInputError(f"Frequencies for {raw_key!r} must be a mapping")

        profile: FrequencyProfile = {}
        for kmer, value in freqs.items():
            kmer = str(kmer).upper()
            if len(kmer) != k:
                raise InvalidInputError(f"'{kmer}' under {raw_key!r} does not have length {k}")
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidInputError(f"Frequency of '{kmer}' under {raw_key!r} is not a number")
            if not 0.0 <= value <= 1.0:
                raise InvalidInputError(f"Frequency of '{kmer}' under {raw_key!r} is outside [0, 1]")
            profile[kmer] = float(value)
        targets[key] = profile
    return targets


class ObjectiveFactory:
    @staticmethod
    def weight_for(key: ProfileKey, weighting: str = "equal") -> float:
        if weighting == "equal":
            return 1.0
        if weighting == "alphabet":
            # number of possible keys, so every key contributes on a similar scale
            return 64.0 if key == CODONS else float(4 ** key)
        raise InvalidConfigError(f"Unknown weighting '{weighting}', expected one of {WEIGHTINGS}")

    @classmethod
    def from_targets(cls, targets: Mapping, weighting: str = "equal") -> List[OptimizationObjective]:
        objectives: List[OptimizationObjective] = []
        for key, profile in normalize_targets(targets).items():
            weight = cls.weight_for(key, weighting)
            if key == CODONS:
                objectives.append(CodonFrequencyObjective(profile, weight=weight))
            else:
                objectives.append(KmerFrequencyObjective(key, profile, weight=weight))
        logger.debug(f"Built {len(objectives)} objective(s): {[o.name for o in objectives]}")
        return objectives

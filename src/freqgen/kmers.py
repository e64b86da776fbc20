# src/freqgen/kmers.py
import logging
from typing import Dict, Iterable, Iterator, List, Optional, Union

from .exceptions import InvalidInputError, NoTargetSpecifiedError

logger = logging.getLogger(__name__)

CODONS = "codons"

ProfileKey = Union[int, str]
KmerCounts = Dict[str, int]
FrequencyProfile = Dict[str, float]


def kmerize(sequence: str, k: int, overlap: bool = True) -> Iterator[str]:
    """Yields the k-length substrings of a sequence.

    With overlap the window slides by 1, otherwise by k and a trailing
    fragment shorter than k is dropped.
    """
    if k < 1:
        raise InvalidInputError(f"k must be >= 1, got {k}")
    if len(sequence) < k:
        raise InvalidInputError(
            f"Sequence of length {len(sequence)} is shorter than k={k}"
        )
    sequence = sequence.upper()
    step = 1 if overlap else k
    return (sequence[i:i + k] for i in range(0, len(sequence) - k + 1, step))


def split_codons(sequence: str) -> Iterator[str]:
    """Reading-frame codons starting at position 0."""
    return kmerize(sequence, 3, overlap=False)


def count_kmers(kmers: Iterable[str]) -> KmerCounts:
    counts: KmerCounts = {}
    for kmer in kmers:
        counts[kmer] = counts.get(kmer, 0) + 1
    return counts


def merge_counts(a: KmerCounts, b: KmerCounts) -> KmerCounts:
    """Key-wise sum of two count tables. Neither input is modified."""
    merged = dict(a)
    for kmer, n in b.items():
        merged[kmer] = merged.get(kmer, 0) + n
    return merged


def kmer_frequencies(counts: KmerCounts) -> FrequencyProfile:
    """Normalizes counts to frequencies. Zero total gives an empty profile."""
    total = sum(counts.values())
    if total == 0:
        return {}
    return {kmer: n / total for kmer, n in counts.items()}


def profile_for(sequence: str, key: ProfileKey) -> FrequencyProfile:
    """Frequency profile of a single sequence for a k value or "codons"."""
    if key == CODONS:
        return kmer_frequencies(count_kmers(split_codons(sequence)))
    return kmer_frequencies(count_kmers(kmerize(sequence, key, overlap=True)))


def profile_distance(profile: FrequencyProfile, target: FrequencyProfile) -> float:
    """Sum of squared differences over the union of keys (missing = 0)."""
    error = 0.0
    for kmer in set(profile) | set(target):
        error += (profile.get(kmer, 0.0) - target.get(kmer, 0.0)) ** 2
    return error


def featurize(sequences: Iterable[str], k_values: Optional[Iterable[int]] = None,
              codons: bool = False, skip_short: bool = False) -> Dict[ProfileKey, FrequencyProfile]:
    """Aggregated k-mer (and optionally codon) frequencies of a sequence set.

    Counts are summed over all sequences per key and normalized once, so the
    result equals featurizing the whole corpus as a single multiset.
    """
    seqs: List[str] = [s.upper() for s in sequences]
    if not seqs:
        raise InvalidInputError("No sequences to featurize")

    keys: List[ProfileKey] = []
    for k in k_values or ():
        if k < 1:
            raise InvalidInputError(f"k must be >= 1, got {k}")
        if k not in keys:
            keys.append(k)
    if codons:
        keys.append(CODONS)
    if not keys:
        raise NoTargetSpecifiedError(
            "No k-mers or codons specified to featurize. "
            "Provide at least one k value or request codons."
        )

    totals: Dict[ProfileKey, KmerCounts] = {}
    for key in keys:
        k = 3 if key == CODONS else key
        logger.debug(f"Counting {key if key == CODONS else f'{k}-mers'} for {len(seqs)} sequence(s)")
        total: KmerCounts = {}
        for idx, seq in enumerate(seqs):
            if len(seq) < k:
                if skip_short:
                    logger.warning(f"Skipping sequence #{idx} (length {len(seq)}) for k={k}")
                    continue
                raise InvalidInputError(
                    f"Sequence #{idx} has length {len(seq)}, shorter than k={k}"
                )
            kmers = split_codons(seq) if key == CODONS else kmerize(seq, k, overlap=True)
            total = merge_counts(total, count_kmers(kmers))
        totals[key] = total

    profiles = {}
    for key, counts in totals.items():
        profiles[key] = kmer_frequencies(counts)
        if not profiles[key]:
            logger.warning(f"No observations for {key}; profile is empty")
    return profiles


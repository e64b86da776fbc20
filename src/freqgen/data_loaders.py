# src/freqgen/data_loaders.py
import json
import logging
import os
import time
from typing import Dict, Iterable, List, Mapping, Optional, TextIO, Union

import yaml
from Bio import SeqIO

from .exceptions import InvalidInputError
from .factory import normalize_targets
from .kmers import FrequencyProfile, ProfileKey

logger = logging.getLogger(__name__)

Source = Union[str, os.PathLike, TextIO]


class DataLoader:
    """Reads FASTA corpora and frequency documents, writes YAML and JSON logs."""

    def __init__(self, fmt: str = "fasta"):
        self.fmt = fmt

    def _parse(self, source: Source):
        if isinstance(source, (str, os.PathLike)) and not os.path.exists(source):
            raise InvalidInputError(f"File not found: {source}")
        try:
            return list(SeqIO.parse(source, self.fmt))
        except ValueError as e:
            raise InvalidInputError(f"Could not parse {source} as {self.fmt}: {e}") from e

    def read_sequences(self, sources: Iterable[Source]) -> List[str]:
        """All records of all files as one flat list of upper-case strings."""
        seqs: List[str] = []
        for src in sources:
            records = self._parse(src)
            logger.info(f"Read {len(records)} record(s) from {getattr(src, 'name', src)}")
            seqs.extend(str(rec.seq).upper() for rec in records)
        return seqs

    def read_first_sequence(self, source: Source) -> str:
        records = self._parse(source)
        if not records:
            raise InvalidInputError(f"No sequence records in {getattr(source, 'name', source)}")
        if len(records) > 1:
            logger.warning(f"{len(records)} records found, using the first one ({records[0].id})")
        return str(records[0].seq).upper()

    def read_targets(self, source: Source) -> Dict[ProfileKey, FrequencyProfile]:
        if isinstance(source, (str, os.PathLike)):
            if not os.path.exists(source):
                raise InvalidInputError(f"File not found: {source}")
            with open(source, "r") as f:
                text = f.read()
        else:
            text = source.read()
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise InvalidInputError(f"Invalid YAML in target document: {e}") from e
        return normalize_targets(document if document is not None else {})

    @staticmethod
    def dump_profiles(profiles: Mapping[ProfileKey, FrequencyProfile]) -> str:
        # keys mix ints and "codons", so keep insertion order instead of sorting
        return yaml.safe_dump(
            {key: dict(profile) for key, profile in profiles.items()},
            default_flow_style=False,
            sort_keys=False,
        )

    @staticmethod
    def write_metadata(path: Optional[str], metadata: Dict, output: Optional[str] = None) -> str:
        """Writes the JSON run log. Falls back to `<output>.log.json` if path is unusable."""
        target = path if isinstance(path, str) and path else None
        if target is not None:
            try:
                with open(target, "w") as f:
                    json.dump(metadata, f)
                return target
            except OSError as e:
                logger.warning(f"Could not write log to {target}: {e}")
        fallback = f"{output if output else f'freqgen-{int(time.time() * 1000)}'}.log.json"
        with open(fallback, "w") as f:
            json.dump(metadata, f)
        return fallback

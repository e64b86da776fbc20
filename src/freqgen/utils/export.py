# src/freqgen/utils/export.py
import json
from io import StringIO
from typing import Dict, Optional

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqFeature import FeatureLocation, SeqFeature
from Bio.SeqRecord import SeqRecord


class SequenceExporter:
    @staticmethod
    def describe(seq_file: Optional[str], target: Optional[str], metadata: Optional[Dict] = None) -> str:
        text = f"Generated by freqgen from {seq_file} targeting {target}."
        if metadata is not None:
            text += f" Metadata: {json.dumps(metadata)}."
        return text

    @staticmethod
    def create_record(dna_seq: str, description: str, aa_seq: Optional[str] = None,
                      record_id: str = "freqgen") -> SeqRecord:
        record = SeqRecord(
            Seq(dna_seq),
            id=record_id,
            name=record_id[:16],
            description=description,
            annotations={"molecule_type": "DNA"},
        )
        if aa_seq:
            record.features.append(SeqFeature(
                FeatureLocation(0, len(dna_seq)),
                type="CDS",
                qualifiers={"translation": aa_seq, "product": "Generated protein"},
            ))
        return record

    @classmethod
    def to_fasta(cls, dna_seq: str, description: str) -> str:
        record = cls.create_record(dna_seq, description)
        output = StringIO()
        SeqIO.write(record, output, "fasta-2line")
        return output.getvalue()

    @classmethod
    def to_genbank(cls, dna_seq: str, aa_seq: str, description: str) -> str:
        record = cls.create_record(dna_seq, description, aa_seq=aa_seq)
        output = StringIO()
        SeqIO.write(record, output, "genbank")
        return output.getvalue()

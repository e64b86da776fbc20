# src/freqgen/genetic_code.py
from typing import Dict, Tuple

from Bio.Data import CodonTable

from .exceptions import InvalidCodonError, InvalidConfigError, InvalidInputError

STOP = "*"


class GeneticCode:
    """Codon <-> amino acid mapping for one NCBI translation table.

    Stop codons translate to "*" and are included in the back table, so a
    protein carrying an explicit stop can still be re-encoded.
    """

    _instances: Dict[int, "GeneticCode"] = {}

    def __init__(self, table_id: int = 11):
        try:
            table = CodonTable.unambiguous_dna_by_id[table_id]
        except KeyError:
            raise InvalidConfigError(f"Unknown genetic code: {table_id}") from None
        self.table_id = table_id
        self.name = table.names[0] if table.names else str(table_id)
        forward = dict(table.forward_table)
        # some tables list a codon both as sense and stop; sense wins
        for codon in table.stop_codons:
            forward.setdefault(codon, STOP)
        self._forward: Dict[str, str] = forward
        self._back = self._build_bt(forward)

    @staticmethod
    def _build_bt(forward: Dict[str, str]) -> Dict[str, Tuple[str, ...]]:
        bt: Dict[str, list] = {}
        for c, aa in forward.items():
            bt.setdefault(aa, []).append(c)
        return {aa: tuple(sorted(cs)) for aa, cs in bt.items()}

    @classmethod
    def get(cls, table_id: int = 11) -> "GeneticCode":
        """Shared read-only instance per table id."""
        if table_id not in cls._instances:
            cls._instances[table_id] = cls(table_id)
        return cls._instances[table_id]

    @property
    def back_table(self) -> Dict[str, Tuple[str, ...]]:
        return dict(self._back)

    def encodes(self, aa: str) -> bool:
        return aa.upper() in self._back

    def synonyms(self, aa: str) -> Tuple[str, ...]:
        try:
            return self._back[aa.upper()]
        except KeyError:
            raise InvalidInputError(
                f"Residue '{aa}' is not encoded by genetic code {self.table_id}"
            ) from None

    def translate(self, dna: str) -> str:
        dna = dna.upper()
        if len(dna) % 3 != 0:
            raise InvalidCodonError(
                f"DNA length {len(dna)} is not a multiple of 3 (incomplete codon)"
            )
        protein = []
        for i in range(0, len(dna), 3):
            codon = dna[i:i + 3]
            try:
                protein.append(self._forward[codon])
            except KeyError:
                raise InvalidCodonError(
                    f"Unrecognized codon '{codon}' at position {i}"
                ) from None
        return "".join(protein)

    def __repr__(self) -> str:
        return f"GeneticCode({self.table_id}, {self.name!r})"

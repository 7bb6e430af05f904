"""NCBI genetic codes and codon translation.

Each table is kept as 64 residues indexed by a 2-bit-per-base codon index
(A=0, C=1, G=2, T=3; index = 16*b1 + 4*b2 + b3), filled from Biopython's
NCBI tables. Ambiguity is resolved only when a single position is R, Y, N
or '?' and every expansion gives the same residue.
"""
from functools import lru_cache
from itertools import product
from types import MappingProxyType

from Bio.Data import CodonTable

from alnkit.errors import UnknownGeneticCodeError
from alnkit.schemas import GeneticCodeInfo

BASES = "ACGT"
BASE_INDEX = {"A": 0, "C": 1, "G": 2, "T": 3, "U": 3}
AMBIGUITY = {"R": "AG", "Y": "CT", "N": "ACGT", "?": "ACGT"}
GAP_SYMBOLS = "-."

STOP = "*"
UNRESOLVED = "X"
GAP = "-"

# triplets over this alphabet are precomputed per table
_TRIPLET_ALPHABET = "ACGTU" + "".join(AMBIGUITY) + GAP_SYMBOLS


def _table_from_biopython(bio_table) -> str:
    # some codes read a stop codon as a residue too; the residue wins, as in NCBI's ncbieaa
    return "".join(
        bio_table.forward_table.get("".join(codon), STOP) for codon in product(BASES, repeat=3)
    )


class GeneticCode:
    """One immutable NCBI translation table."""

    __slots__ = ("id", "name", "table", "_triplets")

    def __init__(self, code_id: int, name: str, table: str):
        if len(table) != 64:
            raise ValueError(f"genetic code table must have 64 entries, got {len(table)}")
        self.id = code_id
        self.name = name
        self.table = table
        self._triplets = MappingProxyType(
            {"".join(t): self._resolve("".join(t)) for t in product(_TRIPLET_ALPHABET, repeat=3)}
        )

    def __repr__(self):
        return f"GeneticCode({self.id}, {self.name!r})"

    def residue(self, b1: int, b2: int, b3: int) -> str:
        return self.table[16 * b1 + 4 * b2 + b3]

    def _resolve(self, codon: str) -> str:
        if len(codon) != 3:
            return UNRESOLVED
        gaps = sum(c in GAP_SYMBOLS for c in codon)
        if gaps == 3:
            return GAP
        if gaps:
            return UNRESOLVED

        choices = []
        ambiguous = 0
        for c in codon:
            if c in BASE_INDEX:
                choices.append((BASE_INDEX[c],))
            elif c in AMBIGUITY:
                ambiguous += 1
                choices.append(tuple(BASE_INDEX[b] for b in AMBIGUITY[c]))
            else:
                return UNRESOLVED
        if ambiguous > 1:
            return UNRESOLVED

        residues = {self.residue(*combo) for combo in product(*choices)}
        return residues.pop() if len(residues) == 1 else UNRESOLVED

    def translate_codon(self, codon: str) -> str:
        codon = codon.upper()
        residue = self._triplets.get(codon)
        return residue if residue is not None else self._resolve(codon)

    def translate(self, data: str, frame: int = 0) -> str:
        """Translate `data` from 0-based offset `frame`; a trailing partial codon is dropped."""
        usable = max(len(data) - frame, 0) // 3 * 3
        lookup = self._triplets.get
        resolve = self._resolve
        return "".join(
            [lookup(data[i:i + 3]) or resolve(data[i:i + 3]) for i in range(frame, frame + usable, 3)]
        )

    def info(self) -> GeneticCodeInfo:
        return GeneticCodeInfo(id=self.id, name=self.name)


@lru_cache(maxsize=None)
def get_genetic_code(code_id: int) -> GeneticCode:
    """NCBI table `code_id` (1-33; 7, 8 and 17-20 are not assigned)."""
    bio_table = CodonTable.unambiguous_dna_by_id.get(code_id)
    if bio_table is None:
        raise UnknownGeneticCodeError(code_id)
    return GeneticCode(code_id, bio_table.names[0], _table_from_biopython(bio_table))


def list_genetic_codes() -> list[GeneticCodeInfo]:
    return [
        GeneticCodeInfo(id=code_id, name=table.names[0])
        for code_id, table in sorted(CodonTable.unambiguous_dna_by_id.items())
    ]

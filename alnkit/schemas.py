"""Data models for alignments and the records derived from them."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Sequence(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    data: str  # uppercase residues, one character per column

    @property
    def length(self) -> int:
        return len(self.data)


class Alignment(BaseModel):
    """Ordered sequences; `warning` is set when their lengths differ."""

    model_config = ConfigDict(frozen=True)

    sequences: tuple[Sequence, ...] = ()
    warning: Optional[str] = None

    @classmethod
    def from_sequences(cls, sequences) -> "Alignment":
        sequences = tuple(sequences)
        lengths = {s.length for s in sequences}
        warning = None
        if len(lengths) > 1:
            warning = (
                f"Sequences have different lengths (min: {min(lengths)}, "
                f"max: {max(lengths)}). Not a valid alignment."
            )
        return cls(sequences=sequences, warning=warning)

    def __len__(self) -> int:
        return len(self.sequences)

    @property
    def count(self) -> int:
        return len(self.sequences)

    @property
    def width(self) -> int:
        """Alignment width; the longest sequence when lengths differ."""
        return max((s.length for s in self.sequences), default=0)

    @property
    def is_aligned(self) -> bool:
        return self.warning is None

    @property
    def names(self) -> list[str]:
        return [s.name for s in self.sequences]

    def get(self, name: str) -> Optional[Sequence]:
        for seq in self.sequences:
            if seq.name == name:
                return seq
        return None


class GeneticCodeInfo(BaseModel):
    id: int
    name: str


class PartitionRecord(BaseModel):
    """1-based inclusive column range of one source file in a supermatrix."""

    model_config = ConfigDict(frozen=True)

    label: str
    start: int
    end: int

    @property
    def width(self) -> int:
        return self.end - self.start + 1

    def to_line(self) -> str:
        return f"{self.label} = {self.start}-{self.end}"


class FileSummary(BaseModel):
    label: str
    sequences: int
    width: int
    orphans: int = 0


class ConcatReport(BaseModel):
    files: list[FileSummary] = []
    total_keys: int = 0
    orphan_keys: list[str] = []
    orphan_ratio: float = 0.0
    warnings: list[str] = []
    diagnostic: str = ""


class ConcatResponse(BaseModel):
    fasta: str
    partitions: str
    report: ConcatReport


class SnpSite(BaseModel):
    model_config = ConfigDict(frozen=True)

    chromosome: str
    position: int  # 1-based column
    reference_allele: str
    alternate_allele: str
    distance_left: int
    distance_right: int
    genotypes: dict[str, str] = Field(default_factory=dict)  # sample -> 0 / 1 / .

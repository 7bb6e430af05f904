"""Error kinds raised by the parsers and the alignment operations."""
from typing import Optional, Sequence


class AlignmentError(Exception):
    """Base class for every error raised by alnkit."""


class InputReadError(AlignmentError):
    """The input file could not be read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Failed to read {path}: {reason}")


class EmptyInputError(AlignmentError):
    def __init__(self, label: Optional[str] = None):
        self.label = label
        super().__init__(f"Empty input: {label}" if label else "Empty input")


class FormatError(AlignmentError):
    """Syntax violation reported by one parser."""

    def __init__(self, format: str, detail: str):
        self.format = format
        self.detail = detail
        super().__init__(f"{format} error: {detail}")


class UnknownFormatError(AlignmentError):
    def __init__(self, attempted: Sequence[str]):
        self.attempted = list(attempted)
        super().__init__(
            "Could not determine file format (tried "
            + ", ".join(self.attempted)
            + "). Pass an explicit format: fasta, phylip or nexus."
        )


class AlignmentValidationError(AlignmentError):
    """Input is not usable for an operation that needs aligned columns."""


class SupermatrixValidationError(AlignmentValidationError):
    pass


class OrphanIdError(AlignmentError):
    def __init__(self, ratio: float, threshold: float, diagnostic: str):
        self.ratio = ratio
        self.threshold = threshold
        self.diagnostic = diagnostic
        super().__init__(
            f"{ratio:.1%} of sequence IDs occur in only one file "
            f"(threshold {threshold:.0%}). IDs probably need a delimiter to "
            "extract a shared key, or bypass the safety check."
        )


class NonNucleotideError(AlignmentError):
    def __init__(self, label: str, fraction: float, threshold: float):
        self.label = label
        self.fraction = fraction
        self.threshold = threshold
        super().__init__(
            f"{label} does not look like nucleotide data: "
            f"{1 - fraction:.1%} of non-gap, non-ambiguous characters are not A/C/G/T "
            f"(at least {threshold:.0%} A/C/G/T required)"
        )


class InvalidOptionCombination(AlignmentError):
    pass


class UnknownGeneticCodeError(AlignmentError):
    def __init__(self, code_id: int):
        self.code_id = code_id
        super().__init__(f"Unknown genetic code: {code_id}")


class InvalidFrameError(AlignmentError):
    def __init__(self, frame: int):
        self.frame = frame
        super().__init__(f"Reading frame must be 1, 2 or 3, got {frame}")

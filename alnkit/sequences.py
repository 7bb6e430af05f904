"""FASTA parsing and writing, and nucleotide content checks."""
import logging
from io import StringIO
from typing import Iterator, Optional, TextIO

from Bio.SeqIO.FastaIO import SimpleFastaParser

from alnkit.config import get_settings
from alnkit.errors import EmptyInputError, FormatError, NonNucleotideError
from alnkit.schemas import Alignment, Sequence

logger = logging.getLogger(__name__)

ANONYMOUS_NAME = "unnamed"
NUCLEOTIDES = "ACGTU"
# gaps and the R/Y/N/? ambiguity symbols carry no evidence about the alphabet
UNINFORMATIVE = "-.NRY?"
SEQUENCE_SYMBOLS = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-.*?")

_STRIP_WHITESPACE = str.maketrans("", "", " \t\r\n\v\f")


def _scan_buffer(body: str) -> Iterator[tuple[str, str]]:
    """Split an in-memory FASTA text into (title, residues), one slice per record."""
    for chunk in body[1:].split("\n>"):
        title, _, residues = chunk.partition("\n")
        yield title.rstrip(), residues.translate(_STRIP_WHITESPACE)


def _anonymous_sequence(body: str) -> Alignment:
    data = body.translate(_STRIP_WHITESPACE)
    if not set(data) <= SEQUENCE_SYMBOLS:
        raise FormatError("FASTA", "no '>' header and the content is not sequence data")
    logger.debug("No FASTA header, reading %d residues as '%s'", len(data), ANONYMOUS_NAME)
    return Alignment.from_sequences([Sequence(name=ANONYMOUS_NAME, data=data.upper())])


def parse_fasta(content: str, full_header: bool = False) -> Alignment:
    """Parse FASTA text into an Alignment.

    Names are the header up to the first whitespace, or the whole header
    line with `full_header`. Text without any '>' header is read as one
    anonymous sequence. Inputs above the configured size threshold are
    scanned as a single buffer instead of line by line.
    """
    body = content.lstrip()
    if not body:
        raise EmptyInputError()
    if not body.startswith(">"):
        return _anonymous_sequence(body)

    if len(body) >= get_settings().fasta_fast_path_bytes:
        records = _scan_buffer(body)
    else:
        records = SimpleFastaParser(StringIO(body))

    sequences = []
    seen = set()
    for index, (title, residues) in enumerate(records, start=1):
        title = title.strip()
        name = title if full_header else (title.split(None, 1)[0] if title else "")
        if not name:
            raise FormatError("FASTA", f"empty sequence identifier in record {index}")
        if not residues:
            logger.debug("Skipping FASTA record '%s' with no sequence data", name)
            continue
        if name in seen:
            raise FormatError("FASTA", f"duplicate sequence name '{name}'")
        seen.add(name)
        sequences.append(Sequence(name=name, data=residues.upper()))

    if not sequences:
        raise FormatError("FASTA", "no sequence data found")
    return Alignment.from_sequences(sequences)


def format_fasta(alignment: Alignment) -> str:
    """Single-line FASTA: one header line and one data line per sequence."""
    return "".join(f">{s.name}\n{s.data}\n" for s in alignment.sequences)


def write_fasta(alignment: Alignment, handle: TextIO) -> None:
    for seq in alignment.sequences:
        handle.write(f">{seq.name}\n")
        handle.write(seq.data)
        handle.write("\n")


def nucleotide_fraction(alignment: Alignment) -> float:
    """Fraction of A/C/G/T/U among characters that are not gaps or R/Y/N/?."""
    nucleotides = 0
    informative = 0
    for seq in alignment.sequences:
        data = seq.data
        nucleotides += sum(data.count(c) for c in NUCLEOTIDES)
        informative += len(data) - sum(data.count(c) for c in UNINFORMATIVE)
    if informative == 0:
        return 1.0
    return nucleotides / informative


def validate_nucleotides(
    alignment: Alignment, label: str, threshold: Optional[float] = None
) -> float:
    """Raise NonNucleotideError unless enough of the content is A/C/G/T."""
    if threshold is None:
        threshold = get_settings().min_nucleotide_fraction
    fraction = nucleotide_fraction(alignment)
    if fraction < threshold:
        raise NonNucleotideError(label, fraction, threshold)
    return fraction


def detect_sequence_type(alignment: Alignment) -> str:
    """Detect if an alignment holds DNA/RNA or protein."""
    threshold = get_settings().min_nucleotide_fraction
    return "dna" if nucleotide_fraction(alignment) >= threshold else "protein"

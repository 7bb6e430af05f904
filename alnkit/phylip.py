"""PHYLIP parser.

Handles both body layouts:

    sequential                  interleaved
     2 20                        2 20
    seq1  ACGTACGTAC            seq1  ACGTACGTAC
    GGGGGGGGGG                  seq2  TGCATGCATG
    seq2  TGCATGCATG
    CCCCCCCCCC                  GGGGGGGGGG
                                CCCCCCCCCC

and both naming conventions: strict (the name is the first 10 columns,
padded with blanks) and relaxed (the name is the first whitespace-delimited
token). The layout is guessed from blank lines between blocks and from the
body line count, and confirmed by checking that every taxon ends up with
exactly C characters.
"""
import logging
import math

from alnkit.errors import FormatError
from alnkit.schemas import Alignment, Sequence

logger = logging.getLogger(__name__)

STRICT_NAME_WIDTH = 10
NAME_STYLES = ("auto", "strict", "relaxed")

_STRIP_WHITESPACE = str.maketrans("", "", " \t\r\n\v\f")
RESIDUE_SYMBOLS = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZ-.?*~")


def _squeeze(text: str) -> str:
    return text.translate(_STRIP_WHITESPACE).upper()


def _split_named(line: str, style: str) -> tuple[str, str]:
    if style == "strict":
        return line[:STRICT_NAME_WIDTH].strip(), _squeeze(line[STRICT_NAME_WIDTH:])
    parts = line.split(None, 1)
    return parts[0], _squeeze(parts[1]) if len(parts) > 1 else ""


def _parse_header(header: str) -> tuple[int, int]:
    parts = header.split()
    try:
        ntax, nchar = int(parts[0]), int(parts[1])
    except (IndexError, ValueError):
        raise FormatError(
            "PHYLIP", f"invalid header '{header}': expected taxon and character counts"
        ) from None
    if ntax <= 0 or nchar <= 0:
        raise FormatError("PHYLIP", f"header counts must be positive, got '{header}'")
    return ntax, nchar


class _Taxon:
    __slots__ = ("name", "chunks", "length")

    def __init__(self, name: str, data: str):
        self.name = name
        self.chunks = [data]
        self.length = len(data)

    def extend(self, data: str) -> None:
        self.chunks.append(data)
        self.length += len(data)

    @property
    def data(self) -> str:
        return "".join(self.chunks)


def _looks_named(line: str, style: str) -> bool:
    """A line holding a taxon name followed by data, as opposed to bare residues."""
    name, data = _split_named(line, style)
    if not data:
        return False
    if any(c not in RESIDUE_SYMBOLS for c in name.upper()):
        return True
    return name != name.upper() and name != name.lower()


def _read_sequential(body, ntax, nchar, style):
    taxa = []
    for line in body:
        if taxa and taxa[-1].length < nchar and not _looks_named(line, style):
            taxa[-1].extend(_squeeze(line))
            continue
        if len(taxa) == ntax:
            break
        taxa.append(_Taxon(*_split_named(line, style)))
    return taxa


def _read_interleaved(body, ntax, nchar, style):
    if len(body) < ntax:
        return []
    taxa = [_Taxon(*_split_named(line, style)) for line in body[:ntax]]
    for i, line in enumerate(body[ntax:]):
        taxon = taxa[i % ntax]
        parts = line.split(None, 1)
        # later blocks may repeat the taxon name
        if len(parts) == 2 and parts[0] == taxon.name:
            taxon.extend(_squeeze(parts[1]))
        else:
            taxon.extend(_squeeze(line))
    return taxa


def _is_complete(taxa, ntax, nchar) -> bool:
    return len(taxa) == ntax and all(t.name and t.length == nchar for t in taxa)


def _blank_after_first_block(body, ntax) -> bool:
    """True when a blank line closes the first N lines and more data follows it."""
    seen = 0
    for i, line in enumerate(body):
        if line.strip():
            seen += 1
        elif seen:
            return seen == ntax and any(rest.strip() for rest in body[i + 1:])
    return False


def _layout_order(body, rows, ntax, nchar, style):
    """Interleaved first after a blank line ends the first block, or when the
    line count does not fit N taxa of ceil(C / width) lines."""
    interleaved_first = [("interleaved", _read_interleaved), ("sequential", _read_sequential)]
    if _blank_after_first_block(body, ntax):
        return interleaved_first
    _, first_data = _split_named(rows[0], style)
    if first_data:
        sequential_lines = ntax * math.ceil(nchar / len(first_data))
        if len(rows) != sequential_lines:
            return interleaved_first
    return interleaved_first[::-1]


def _distinct_names(taxa) -> bool:
    return len({t.name for t in taxa}) == len(taxa)


def parse_phylip(content: str, name_style: str = "auto") -> Alignment:
    """Parse PHYLIP text. `name_style` is one of auto, strict or relaxed."""
    if name_style not in NAME_STYLES:
        raise ValueError(f"name_style must be one of {NAME_STYLES}, got {name_style!r}")

    lines = [line.rstrip("\r\n") for line in content.splitlines()]
    while lines and not lines[0].strip():
        lines.pop(0)
    if not lines:
        raise FormatError("PHYLIP", "empty input")

    ntax, nchar = _parse_header(lines[0].strip())
    # blank lines separate interleaved blocks
    body = lines[1:]
    rows = [line for line in body if line.strip()]
    if not rows:
        raise FormatError("PHYLIP", "no sequence data after header")

    styles = ("relaxed", "strict") if name_style == "auto" else (name_style,)
    fallback = None
    duplicated = None
    for style in styles:
        for layout, reader in _layout_order(body, rows, ntax, nchar, style):
            taxa = reader(rows, ntax, nchar, style)
            if _is_complete(taxa, ntax, nchar):
                if _distinct_names(taxa):
                    logger.debug("PHYLIP: %s layout, %s names, %d x %d", layout, style, ntax, nchar)
                    return _to_alignment(taxa)
                if duplicated is None:
                    duplicated = taxa
            if fallback is None and taxa:
                fallback = taxa

    if duplicated is not None:
        # raises on the repeated name
        return _to_alignment(duplicated)
    if fallback is None:
        raise FormatError("PHYLIP", f"could not read {ntax} taxa from the body")
    logger.warning(
        "PHYLIP body does not match header (%d taxa x %d characters); "
        "read %d taxa as best effort", ntax, nchar, len(fallback)
    )
    return _to_alignment(fallback)


def _to_alignment(taxa) -> Alignment:
    seen = set()
    sequences = []
    for taxon in taxa:
        if not taxon.name:
            raise FormatError("PHYLIP", "empty taxon name")
        if taxon.name in seen:
            raise FormatError("PHYLIP", f"duplicate taxon name '{taxon.name}'")
        seen.add(taxon.name)
        sequences.append(Sequence(name=taxon.name, data=taxon.data))
    return Alignment.from_sequences(sequences)

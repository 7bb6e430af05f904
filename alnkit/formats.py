"""Format detection and dispatch to the FASTA, PHYLIP and NEXUS parsers.

Resolution order:
1. an explicit format is authoritative, its error is returned as is;
2. a format implied by the file extension is tried, a failure falls
   through silently since alignment files are often mislabeled;
3. the first non-empty line is sniffed (#NEXUS, '>', or two integers);
4. FASTA, NEXUS and PHYLIP are tried in turn.
"""
import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from alnkit.errors import (
    EmptyInputError,
    FormatError,
    InputReadError,
    InvalidOptionCombination,
    UnknownFormatError,
)
from alnkit.nexus import parse_nexus
from alnkit.phylip import parse_phylip
from alnkit.schemas import Alignment
from alnkit.sequences import parse_fasta

logger = logging.getLogger(__name__)


class FileFormat(str, Enum):
    FASTA = "fasta"
    PHYLIP = "phylip"
    NEXUS = "nexus"


EXTENSIONS = {
    "fa": FileFormat.FASTA,
    "fas": FileFormat.FASTA,
    "fasta": FileFormat.FASTA,
    "fna": FileFormat.FASTA,
    "faa": FileFormat.FASTA,
    "ffn": FileFormat.FASTA,
    "frn": FileFormat.FASTA,
    "nex": FileFormat.NEXUS,
    "nexus": FileFormat.NEXUS,
    "nxs": FileFormat.NEXUS,
    "phy": FileFormat.PHYLIP,
    "phylip": FileFormat.PHYLIP,
    "ph": FileFormat.PHYLIP,
}

PARSERS: dict[FileFormat, Callable[[str], Alignment]] = {
    FileFormat.FASTA: parse_fasta,
    FileFormat.PHYLIP: parse_phylip,
    FileFormat.NEXUS: parse_nexus,
}

FALLBACK_ORDER = (FileFormat.FASTA, FileFormat.NEXUS, FileFormat.PHYLIP)


def detect_format_from_extension(name: Optional[str]) -> Optional[FileFormat]:
    """Map a filename or bare extension ('fa', '.nex', 'x.phy') to a format."""
    if not name:
        return None
    suffix = Path(name).suffix or "." + name
    return EXTENSIONS.get(suffix.lstrip(".").lower())


def detect_format_from_content(content: str) -> Optional[FileFormat]:
    for line in content.splitlines():
        line = line.strip()
        if not line:
            continue
        if line.upper().startswith("#NEXUS"):
            return FileFormat.NEXUS
        if line.startswith(">"):
            return FileFormat.FASTA
        parts = line.split()
        if len(parts) >= 2 and parts[0].isdigit() and parts[1].isdigit():
            return FileFormat.PHYLIP
        return None
    return None


def parse_content(content: str, fmt: Union[FileFormat, str]) -> Alignment:
    try:
        fmt = FileFormat(fmt)
    except ValueError:
        raise InvalidOptionCombination(
            f"unknown format {fmt!r}, expected one of: "
            + ", ".join(f.value for f in FileFormat)
        ) from None
    return PARSERS[fmt](content)


def _decode(raw: Union[bytes, str]) -> str:
    if isinstance(raw, str):
        return raw
    return raw.decode("utf-8", errors="replace")


def detect_and_parse(
    raw: Union[bytes, str],
    format_hint: Optional[Union[FileFormat, str]] = None,
    extension_hint: Optional[str] = None,
) -> Alignment:
    """Parse an alignment from the full content of a file."""
    content = _decode(raw)
    if not content.strip():
        raise EmptyInputError(extension_hint)

    if format_hint:
        return parse_content(content, format_hint)

    by_extension = detect_format_from_extension(extension_hint)
    if by_extension is not None:
        try:
            return parse_content(content, by_extension)
        except FormatError as exc:
            logger.debug("Extension suggested %s but parsing failed: %s", by_extension.value, exc)

    sniffed = detect_format_from_content(content)
    if sniffed is not None:
        return parse_content(content, sniffed)

    for fmt in FALLBACK_ORDER:
        try:
            return parse_content(content, fmt)
        except FormatError as exc:
            logger.debug("Fallback %s parse failed: %s", fmt.value, exc)
    raise UnknownFormatError([fmt.value for fmt in FALLBACK_ORDER])


def read_alignment(
    path: Union[str, Path], format_hint: Optional[Union[FileFormat, str]] = None
) -> Alignment:
    """Read a whole file and parse it."""
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise InputReadError(str(path), exc.strerror or str(exc)) from exc
    if not raw:
        raise EmptyInputError(str(path))
    alignment = detect_and_parse(raw, format_hint, path.name)
    if alignment.warning:
        logger.warning("%s: %s", path.name, alignment.warning)
    return alignment


def file_label(path: Union[str, Path]) -> str:
    """Label used for a file in partitions and VCF output: its basename without extension."""
    return Path(path).stem

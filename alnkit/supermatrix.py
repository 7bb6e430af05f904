"""Concatenation of several alignments into one matrix, with partitions.

Sequences are matched across files by a key taken from their names: the
whole name, or selected fields of it when a delimiter is given
(`sampleA|gene1` with delimiter `|` and fields [1] gives `sampleA`).
In supermatrix mode a key missing from a file is filled with `fill_char`
over that file's width; otherwise every key must be in every file.
"""
import logging
from collections import Counter
from typing import NamedTuple, Optional, Sequence as SequenceOf

from alnkit.config import get_settings
from alnkit.errors import InvalidOptionCombination, OrphanIdError, SupermatrixValidationError
from alnkit.schemas import (
    Alignment,
    ConcatReport,
    FileSummary,
    PartitionRecord,
    Sequence,
)

logger = logging.getLogger(__name__)


class SupermatrixResult(NamedTuple):
    alignment: Alignment
    partitions: list[PartitionRecord]
    report: ConcatReport


def extract_key(name: str, delimiter: Optional[str] = None, keep_fields=None) -> str:
    """Matching key of a sequence name; fields are 1-based, field 1 by default."""
    if not delimiter:
        return name
    fields = name.split(delimiter)
    selected = [fields[i - 1] for i in (keep_fields or [1]) if i <= len(fields)]
    return delimiter.join(selected) if selected else name


def _check_options(delimiter, keep_fields, fill_char) -> None:
    if keep_fields and not delimiter:
        raise InvalidOptionCombination("field selection requires a delimiter")
    if keep_fields and any(i < 1 for i in keep_fields):
        raise InvalidOptionCombination(f"field indices are 1-based, got {list(keep_fields)}")
    if len(fill_char) != 1:
        raise InvalidOptionCombination(f"fill character must be a single character, got {fill_char!r}")


def format_key_diagnostic(keys, presence: Counter, n_files: int) -> str:
    """One line per key with the number of files holding it; orphans are flagged."""
    width = max((len(k) for k in keys), default=0)
    lines = []
    for key in keys:
        flag = "  ORPHAN" if presence[key] == 1 else ""
        lines.append(f"{key:<{width}}  {presence[key]}/{n_files} files{flag}")
    return "\n".join(lines)


def format_partitions(partitions: SequenceOf[PartitionRecord]) -> str:
    """Partition file text: `<label> = <start>-<end>` per source file."""
    return "".join(p.to_line() + "\n" for p in partitions)


def build_supermatrix(
    inputs: SequenceOf[tuple[str, Alignment]],
    delimiter: Optional[str] = None,
    keep_fields: Optional[SequenceOf[int]] = None,
    supermatrix: bool = False,
    fill_char: Optional[str] = None,
    bypass_safety: bool = False,
) -> SupermatrixResult:
    """Concatenate labelled alignments in the order given."""
    settings = get_settings()
    fill_char = fill_char or settings.default_fill_char
    _check_options(delimiter, keep_fields, fill_char)
    if len(inputs) < 2:
        raise SupermatrixValidationError(
            f"concatenation needs at least two input files, got {len(inputs)}"
        )

    warnings = []
    sources = []
    first_seen = {}
    presence = Counter()
    for label, alignment in inputs:
        if not alignment.is_aligned:
            if supermatrix:
                raise SupermatrixValidationError(f"{label}: {alignment.warning}")
            warnings.append(f"{label}: {alignment.warning}")
        by_key = {}
        names = {}
        for seq in alignment.sequences:
            key = extract_key(seq.name, delimiter, keep_fields)
            if key in by_key:
                raise SupermatrixValidationError(
                    f"{label}: sequences '{names[key]}' and '{seq.name}' both give key '{key}'"
                )
            by_key[key] = seq.data
            names[key] = seq.name
            first_seen.setdefault(key, None)
        presence.update(by_key.keys())
        sources.append((label, alignment.width, by_key))

    keys = list(first_seen)
    orphans = [key for key in keys if presence[key] == 1]
    ratio = len(orphans) / len(keys) if keys else 0.0
    diagnostic = format_key_diagnostic(keys, presence, len(sources))
    report = ConcatReport(
        files=[
            FileSummary(
                label=label,
                sequences=len(by_key),
                width=width,
                orphans=sum(1 for key in by_key if presence[key] == 1),
            )
            for label, width, by_key in sources
        ],
        total_keys=len(keys),
        orphan_keys=orphans,
        orphan_ratio=ratio,
        warnings=warnings,
        diagnostic=diagnostic,
    )

    threshold = settings.orphan_ratio_threshold
    if ratio > threshold:
        if not bypass_safety:
            raise OrphanIdError(ratio, threshold, diagnostic)
        logger.warning("Orphan ratio %.1f%% above threshold, check bypassed", ratio * 100)

    chunks = {key: [] for key in keys}
    partitions = []
    start = 1
    for label, width, by_key in sources:
        for key in keys:
            data = by_key.get(key)
            if data is None:
                if not supermatrix:
                    raise SupermatrixValidationError(
                        f"'{key}' is missing from {label}; without supermatrix mode "
                        "every ID must be present in every file"
                    )
                data = fill_char * width
            chunks[key].append(data)
        partitions.append(PartitionRecord(label=label, start=start, end=start + width - 1))
        start += width

    merged = Alignment.from_sequences(
        Sequence(name=key, data="".join(chunks[key])) for key in keys
    )
    logger.info(
        "Concatenated %d files into %d sequences x %d columns (%d orphan IDs)",
        len(sources), merged.count, merged.width, len(orphans),
    )
    return SupermatrixResult(merged, partitions, report)

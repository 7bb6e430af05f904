"""Batch export: read alignment files, transform them and write text output.

Modes, chosen from the options and the number of inputs:
- one file: convert to single-line FASTA, optionally translated;
- several files: concatenate (gap-filled in supermatrix mode) to
  single-line FASTA, optionally with a partition file;
- `vcf`: extract isolated biallelic SNPs from one or more files.
"""
import logging
from pathlib import Path
from typing import NamedTuple, Optional, Sequence as SequenceOf, Union

from pydantic import BaseModel, Field

from alnkit.errors import InvalidOptionCombination, OrphanIdError, SupermatrixValidationError
from alnkit.formats import FileFormat, file_label, read_alignment
from alnkit.schemas import Alignment, ConcatReport, PartitionRecord
from alnkit.sequences import format_fasta
from alnkit.snps import alignment_vcf
from alnkit.supermatrix import build_supermatrix, format_partitions
from alnkit.translation import AlignmentSession

logger = logging.getLogger(__name__)


class ExportOptions(BaseModel):
    format: Optional[FileFormat] = None
    output: Optional[Path] = None
    translate: bool = False
    genetic_code: int = 1
    frame: int = Field(1, ge=1, le=3)
    supermatrix: bool = False
    partitions: Optional[Path] = None
    delimiter: Optional[str] = None
    fields: Optional[list[int]] = None
    fill_char: Optional[str] = None
    bypass_safety: bool = False
    vcf: bool = False
    min_flank_distance: Optional[int] = Field(None, ge=0)
    force: bool = False


class ExportResult(NamedTuple):
    text: str
    partitions: tuple[PartitionRecord, ...] = ()
    report: Optional[ConcatReport] = None


def validate_options(options: ExportOptions, n_inputs: int) -> None:
    if n_inputs == 0:
        raise InvalidOptionCombination("no input files given")
    if options.vcf:
        conflicting = [
            flag
            for flag, value in (
                ("translate", options.translate),
                ("supermatrix", options.supermatrix),
                ("partitions", options.partitions is not None),
            )
            if value
        ]
        if conflicting:
            raise InvalidOptionCombination(
                "VCF output cannot be combined with: " + ", ".join(conflicting)
            )
        if options.output is None:
            raise InvalidOptionCombination("VCF output needs an output file")
        return
    if (options.supermatrix or options.partitions is not None) and n_inputs < 2:
        raise SupermatrixValidationError(
            f"concatenation and partitions need at least two input files, got {n_inputs}"
        )


def _load(paths, options: ExportOptions) -> list[tuple[str, Alignment]]:
    inputs = []
    for path in paths:
        alignment = read_alignment(path, options.format)
        label = file_label(path)
        logger.info("Loaded %s: %d sequences, %d columns", label, alignment.count, alignment.width)
        if options.translate:
            session = AlignmentSession(alignment, label)
            alignment = session.apply_settings(options.genetic_code, options.frame, force=options.force)
        inputs.append((label, alignment))
    return inputs


def run_export(paths: SequenceOf[Union[str, Path]], options: ExportOptions) -> ExportResult:
    """Run one export and write its text to `options.output` when set."""
    validate_options(options, len(paths))
    inputs = _load(paths, options)

    if options.vcf:
        result = ExportResult(
            alignment_vcf(inputs, options.min_flank_distance, force=options.force)
        )
    elif len(inputs) == 1:
        result = ExportResult(format_fasta(inputs[0][1]))
    else:
        try:
            merged, partitions, report = build_supermatrix(
                inputs,
                delimiter=options.delimiter,
                keep_fields=options.fields,
                supermatrix=options.supermatrix,
                fill_char=options.fill_char,
                bypass_safety=options.bypass_safety,
            )
        except OrphanIdError as exc:
            logger.warning("Sequence ID report:\n%s", exc.diagnostic)
            raise
        for warning in report.warnings:
            logger.warning(warning)
        result = ExportResult(format_fasta(merged), tuple(partitions), report)
        if options.partitions is not None:
            options.partitions.write_text(format_partitions(partitions))
            logger.info("Wrote partitions to %s", options.partitions)

    if options.output is not None:
        options.output.write_text(result.text)
        logger.info("Wrote %s", options.output)
    return result

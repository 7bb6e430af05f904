"""Isolated biallelic SNP extraction and VCF-like output.

Each input alignment is its own contig. Per column we track whether every
sample holds a plain nucleotide (A/C/G/T/N/?), which of A/C/G/T occur (as
a 4-bit mask), and whether any sample has a gap. Gapped columns are
ignored altogether. A column is polymorphic when it holds other symbols
or more than one base; it is exported when it holds exactly two bases and
the nearest other polymorphic column on each side is at least
`min_flank_distance` columns away. With no polymorphic column on a side,
the distance runs to the virtual column just outside the alignment.
"""
import logging
from typing import Optional, Sequence as SequenceOf

import numpy as np

from alnkit.config import get_settings
from alnkit.errors import AlignmentValidationError
from alnkit.schemas import Alignment, SnpSite
from alnkit.sequences import validate_nucleotides

logger = logging.getLogger(__name__)

ALLELE_BITS = {"A": 1, "C": 2, "G": 4, "T": 8}
PLAIN_SYMBOLS = "ACGTN?"
GAP_SYMBOLS = "-."

_MASK = np.zeros(256, dtype=np.uint8)
for _base, _bit in ALLELE_BITS.items():
    _MASK[ord(_base)] = _bit
_PLAIN = np.zeros(256, dtype=bool)
_PLAIN[[ord(c) for c in PLAIN_SYMBOLS]] = True
_GAP = np.zeros(256, dtype=bool)
_GAP[[ord(c) for c in GAP_SYMBOLS]] = True
_POPCOUNT = np.array([bin(i).count("1") for i in range(16)], dtype=np.uint8)


def _scan_columns(rows: list[str], width: int, chunk: int):
    """Column flags (polymorphic, biallelic) and allele masks, `chunk` columns at a time."""
    polymorphic = np.zeros(width, dtype=bool)
    biallelic = np.zeros(width, dtype=bool)
    masks = np.zeros(width, dtype=np.uint8)
    for start in range(0, width, chunk):
        stop = min(start + chunk, width)
        block = np.vstack(
            [np.frombuffer(row[start:stop].encode("ascii", "replace"), dtype=np.uint8) for row in rows]
        )
        mask = np.bitwise_or.reduce(_MASK[block], axis=0)
        plain = _PLAIN[block].all(axis=0)
        usable = ~_GAP[block].any(axis=0)
        alleles = _POPCOUNT[mask]
        polymorphic[start:stop] = usable & (~plain | (alleles > 1))
        biallelic[start:stop] = usable & plain & (alleles == 2)
        masks[start:stop] = mask
    return polymorphic, biallelic, masks


def flank_distances(polymorphic: np.ndarray):
    """Distance from each column to the previous and next polymorphic column.

    Running maximum/minimum sweeps over the positions of polymorphic
    columns, left to right and right to left.
    """
    width = len(polymorphic)
    columns = np.arange(width, dtype=np.int64)
    last_seen = np.maximum.accumulate(np.where(polymorphic, columns, -1))
    previous = np.empty(width, dtype=np.int64)
    previous[0] = -1
    previous[1:] = last_seen[:-1]
    next_seen = np.minimum.accumulate(np.where(polymorphic, columns, width)[::-1])[::-1]
    following = np.empty(width, dtype=np.int64)
    following[-1] = width
    following[:-1] = next_seen[1:]
    return columns - previous, following - columns


def sample_order(inputs: SequenceOf[tuple[str, Alignment]]) -> list[str]:
    """Reference sample (first sequence of the first file) first, the rest sorted."""
    names = {seq.name for _, alignment in inputs for seq in alignment.sequences}
    reference = _reference_sample(inputs)
    if reference is None:
        return sorted(names)
    return [reference] + sorted(names - {reference})


def _reference_sample(inputs) -> Optional[str]:
    if not inputs or not inputs[0][1].sequences:
        return None
    return inputs[0][1].sequences[0].name


def _alleles(mask: int) -> list[str]:
    return [base for base, bit in ALLELE_BITS.items() if mask & bit]


def _extract_contig(label, alignment, reference, samples, min_flank, chunk) -> list[SnpSite]:
    rows = [seq.data for seq in alignment.sequences]
    names = [seq.name for seq in alignment.sequences]
    width = alignment.width
    if not rows or width == 0:
        return []

    polymorphic, biallelic, masks = _scan_columns(rows, width, chunk)
    left, right = flank_distances(polymorphic)
    selected = np.flatnonzero(biallelic & (left >= min_flank) & (right >= min_flank))
    logger.debug(
        "%s: %d polymorphic columns, %d biallelic, %d isolated",
        label, int(polymorphic.sum()), int(biallelic.sum()), len(selected),
    )

    reference_row = rows[names.index(reference)] if reference in names else None
    sites = []
    for column in selected.tolist():
        alleles = _alleles(int(masks[column]))
        if reference_row is not None and reference_row[column] in alleles:
            ref = reference_row[column]
        else:
            ref = next(row[column] for row in rows if row[column] in alleles)
        alt = alleles[1] if alleles[0] == ref else alleles[0]

        genotypes = dict.fromkeys(samples, ".")
        for name, row in zip(names, rows):
            base = row[column]
            genotypes[name] = "0" if base == ref else "1" if base == alt else "."
        sites.append(
            SnpSite(
                chromosome=label,
                position=column + 1,
                reference_allele=ref,
                alternate_allele=alt,
                distance_left=int(left[column]),
                distance_right=int(right[column]),
                genotypes=genotypes,
            )
        )
    return sites


def extract_snps(
    inputs: SequenceOf[tuple[str, Alignment]],
    min_flank_distance: Optional[int] = None,
    force: bool = False,
) -> list[SnpSite]:
    """Isolated biallelic SNPs of every (label, alignment), contig by contig."""
    settings = get_settings()
    if min_flank_distance is None:
        min_flank_distance = settings.default_min_flank_distance
    if min_flank_distance < 0:
        raise ValueError(f"min_flank_distance must be >= 0, got {min_flank_distance}")
    if not inputs:
        raise AlignmentValidationError("SNP extraction needs at least one alignment")

    for label, alignment in inputs:
        if not alignment.is_aligned:
            raise AlignmentValidationError(f"{label}: {alignment.warning}")
        if not force:
            validate_nucleotides(alignment, label)

    reference = _reference_sample(inputs)
    samples = sample_order(inputs)
    sites = []
    for label, alignment in inputs:
        sites.extend(
            _extract_contig(
                label, alignment, reference, samples, min_flank_distance, settings.snp_chunk_columns
            )
        )
    logger.info("Extracted %d SNPs from %d alignments", len(sites), len(inputs))
    return sites


def format_vcf(
    sites: SequenceOf[SnpSite],
    samples: SequenceOf[str],
    contigs: Optional[SequenceOf[tuple[str, int]]] = None,
) -> str:
    """VCF-like text: one record per site, DL/DR in INFO and a GT column per sample."""
    lines = [
        "##fileformat=VCFv4.2",
        "##source=alnkit",
    ]
    for label, width in contigs or ():
        lines.append(f"##contig=<ID={label},length={width}>")
    lines += [
        '##INFO=<ID=DL,Number=1,Type=Integer,Description="Distance to the nearest polymorphic site on the left">',
        '##INFO=<ID=DR,Number=1,Type=Integer,Description="Distance to the nearest polymorphic site on the right">',
        '##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">',
        "\t".join(["#CHROM", "POS", "ID", "REF", "ALT", "QUAL", "FILTER", "INFO", "FORMAT", *samples]),
    ]
    for site in sites:
        calls = [site.genotypes.get(sample, ".") for sample in samples]
        lines.append(
            "\t".join(
                [
                    site.chromosome,
                    str(site.position),
                    ".",
                    site.reference_allele,
                    site.alternate_allele,
                    ".",
                    "PASS",
                    f"DL={site.distance_left};DR={site.distance_right}",
                    "GT",
                    *calls,
                ]
            )
        )
    return "\n".join(lines) + "\n"


def alignment_vcf(
    inputs: SequenceOf[tuple[str, Alignment]],
    min_flank_distance: Optional[int] = None,
    force: bool = False,
) -> str:
    """Extract SNPs and render them as VCF text."""
    sites = extract_snps(inputs, min_flank_distance, force=force)
    contigs = [(label, alignment.width) for label, alignment in inputs]
    return format_vcf(sites, sample_order(inputs), contigs)

"""
tests/test_export.py
--------------------
Batch export from files on disk, and the option combination rules.
"""
import pytest

from alnkit.errors import (
    InvalidOptionCombination,
    NonNucleotideError,
    OrphanIdError,
    SupermatrixValidationError,
)
from alnkit.export import ExportOptions, run_export


@pytest.fixture
def gene_files(tmp_path):
    """Two small alignments in different formats sharing sample keys."""
    gene1 = tmp_path / "gene1.phy"
    gene1.write_text("2 6\nsampleA|g1 ATGGCC\nsampleB|g1 ATGGCT\n")
    gene2 = tmp_path / "gene2.fasta"
    gene2.write_text(">sampleA|g2\nTGGAAA\n>sampleB|g2\nTGGAAG\n")
    return gene1, gene2


class TestSingleFile:
    def test_convert_to_fasta(self, gene_files, tmp_path):
        out = tmp_path / "out.fasta"
        result = run_export([gene_files[0]], ExportOptions(output=out))
        assert result.text == ">sampleA|g1\nATGGCC\n>sampleB|g1\nATGGCT\n"
        assert out.read_text() == result.text

    def test_results_do_not_share_partitions(self, gene_files):
        first = run_export([gene_files[0]], ExportOptions())
        second = run_export([gene_files[1]], ExportOptions())
        assert first.partitions == ()
        assert second.partitions == ()
        assert isinstance(first.partitions, tuple)

    def test_translate(self, gene_files):
        result = run_export([gene_files[1]], ExportOptions(translate=True))
        assert result.text == ">sampleA|g2\nWK\n>sampleB|g2\nWK\n"

    def test_translate_with_code_and_frame(self, gene_files):
        options = ExportOptions(translate=True, genetic_code=2, frame=2)
        result = run_export([gene_files[0]], options)
        assert result.text == ">sampleA|g1\nW\n>sampleB|g1\nW\n"

    def test_translate_protein_needs_force(self, tmp_path):
        protein = tmp_path / "prot.fasta"
        protein.write_text(">p\nMKLVWQ\n")
        with pytest.raises(NonNucleotideError):
            run_export([protein], ExportOptions(translate=True))
        result = run_export([protein], ExportOptions(translate=True, force=True))
        assert result.text == ">p\nXX\n"


class TestConcatenation:
    def test_with_partitions(self, gene_files, tmp_path):
        out = tmp_path / "concat.fasta"
        parts = tmp_path / "parts.txt"
        options = ExportOptions(output=out, partitions=parts, delimiter="|")
        result = run_export(list(gene_files), options)
        assert out.read_text() == ">sampleA\nATGGCCTGGAAA\n>sampleB\nATGGCTTGGAAG\n"
        assert parts.read_text() == "gene1 = 1-6\ngene2 = 7-12\n"
        assert result.report.orphan_ratio == 0.0
        assert [p.to_line() for p in result.partitions] == ["gene1 = 1-6", "gene2 = 7-12"]

    def test_orphans_abort(self, gene_files, tmp_path):
        out = tmp_path / "concat.fasta"
        with pytest.raises(OrphanIdError):
            run_export(list(gene_files), ExportOptions(output=out))
        assert not out.exists()

    def test_partitions_need_two_files(self, gene_files, tmp_path):
        options = ExportOptions(partitions=tmp_path / "parts.txt")
        with pytest.raises(SupermatrixValidationError):
            run_export([gene_files[0]], options)


class TestVcf:
    def test_writes_vcf(self, gene_files, tmp_path):
        out = tmp_path / "snps.vcf"
        result = run_export(list(gene_files), ExportOptions(vcf=True, output=out))
        lines = out.read_text().splitlines()
        assert out.read_text() == result.text
        records = [line.split("\t") for line in lines if not line.startswith("#")]
        assert [(r[0], r[1], r[3], r[4]) for r in records] == [
            ("gene1", "6", "C", "T"),
            ("gene2", "6", "A", "G"),
        ]

    @pytest.mark.parametrize(
        "extra",
        [{"translate": True}, {"supermatrix": True}, {"partitions": "parts.txt"}],
    )
    def test_conflicting_options(self, gene_files, tmp_path, extra):
        options = ExportOptions(vcf=True, output=tmp_path / "snps.vcf", **extra)
        with pytest.raises(InvalidOptionCombination):
            run_export(list(gene_files), options)

    def test_needs_output(self, gene_files):
        with pytest.raises(InvalidOptionCombination, match="output"):
            run_export(list(gene_files), ExportOptions(vcf=True))


def test_no_inputs():
    with pytest.raises(InvalidOptionCombination):
        run_export([], ExportOptions())

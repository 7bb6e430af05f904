"""
tests/test_formats.py
---------------------
Format detection cascade and whole-file reading.
"""
import pytest

from alnkit.errors import (
    EmptyInputError,
    FormatError,
    InputReadError,
    InvalidOptionCombination,
    UnknownFormatError,
)
from alnkit.formats import (
    FileFormat,
    detect_and_parse,
    detect_format_from_content,
    detect_format_from_extension,
    file_label,
    read_alignment,
)

FASTA = b">a\nACGT\n>b\nTTTT\n"
PHYLIP = b"2 4\na ACGT\nb TTTT\n"
NEXUS = b"#NEXUS\nBEGIN DATA;\nDIMENSIONS NTAX=2 NCHAR=4;\nMATRIX\na ACGT\nb TTTT\n;\nEND;\n"


class TestDetection:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("gene.fas", FileFormat.FASTA),
            ("gene.FASTA", FileFormat.FASTA),
            ("nex", FileFormat.NEXUS),
            (".phy", FileFormat.PHYLIP),
            ("dir/aln.nxs", FileFormat.NEXUS),
            ("notes.txt", None),
            (None, None),
        ],
    )
    def test_extension(self, name, expected):
        assert detect_format_from_extension(name) is expected

    @pytest.mark.parametrize(
        "content, expected",
        [
            ("\n\n#nexus\n", FileFormat.NEXUS),
            (">a\nACGT", FileFormat.FASTA),
            ("  3 100\n", FileFormat.PHYLIP),
            ("ACGT\n", None),
        ],
    )
    def test_content(self, content, expected):
        assert detect_format_from_content(content) is expected


class TestDetectAndParse:
    @pytest.mark.parametrize("raw", [FASTA, PHYLIP, NEXUS])
    def test_sniffed_without_hints(self, raw):
        alignment = detect_and_parse(raw)
        assert alignment.names == ["a", "b"]
        assert alignment.get("b").data == "TTTT"

    def test_mislabeled_extension_falls_through(self):
        alignment = detect_and_parse(FASTA, extension_hint="aln.phy")
        assert alignment.names == ["a", "b"]

    def test_interleaved_phylip_by_extension(self):
        content = (
            b"2 30\ntaxon_0001 ACGTACGTAC\ntaxon_0002 TTTTTTTTTT\n\n"
            b"GGGGGGGGGG\nCCCCCCCCCC\n\nAAAAAAAAAA\nTTTTTTTTTT\n"
        )
        alignment = detect_and_parse(content, extension_hint="genes.phy")
        assert alignment.is_aligned
        assert alignment.names == ["taxon_0001", "taxon_0002"]
        assert alignment.width == 30

    def test_unknown_explicit_format(self):
        with pytest.raises(InvalidOptionCombination, match="genbank"):
            detect_and_parse(FASTA, format_hint="genbank")

    def test_explicit_format_is_authoritative(self):
        with pytest.raises(FormatError):
            detect_and_parse(PHYLIP, format_hint="fasta")

    def test_explicit_format_enum(self):
        alignment = detect_and_parse(PHYLIP, format_hint=FileFormat.PHYLIP)
        assert alignment.count == 2

    def test_headerless_sequence_via_fallback(self):
        alignment = detect_and_parse(b"ACGTACGT\n")
        assert alignment.count == 1

    def test_unknown_format_lists_attempts(self):
        with pytest.raises(UnknownFormatError) as exc:
            detect_and_parse(b"@@@ ###\n")
        assert exc.value.attempted == ["fasta", "nexus", "phylip"]

    def test_empty(self):
        with pytest.raises(EmptyInputError):
            detect_and_parse(b"  \n")


class TestReadAlignment:
    def test_reads_file(self, tmp_path):
        path = tmp_path / "gene1.nex"
        path.write_bytes(NEXUS)
        alignment = read_alignment(path)
        assert alignment.names == ["a", "b"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputReadError):
            read_alignment(tmp_path / "absent.fasta")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.fasta"
        path.write_bytes(b"")
        with pytest.raises(EmptyInputError):
            read_alignment(path)

    def test_file_label(self):
        assert file_label("data/COI.fasta") == "COI"

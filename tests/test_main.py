"""
tests/test_main.py
------------------
HTTP endpoints through FastAPI's TestClient.
"""
import pytest
from fastapi.testclient import TestClient

from alnkit.main import app

client = TestClient(app)

GENE1 = b">sampleA|g1\nATGGCC\n>sampleB|g1\nATGGCT\n"
GENE2 = b">sampleA|g2\nTGGAAA\n>sampleB|g2\nTGGAAG\n"


def uploads(**files):
    """Helper: multipart entries for the `files` field."""
    return [("files", (name, content, "text/plain")) for name, content in files.items()]


class TestMetadata:
    def test_health(self):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_genetic_codes(self):
        codes = client.get("/api/genetic-codes").json()
        assert {"id": 1, "name": "Standard"} in codes
        assert all(code["id"] not in (7, 8) for code in codes)

    @pytest.mark.parametrize("sequence, kind", [("ACGTACGT", "dna"), ("MKLVWQEF", "protein")])
    def test_detect_type(self, sequence, kind):
        response = client.get("/api/detect-type", params={"sequence": sequence})
        assert response.json() == {"type": kind}


class TestParse:
    def test_fasta_upload(self):
        response = client.post("/api/parse", files={"file": ("gene1.fasta", GENE1)})
        assert response.status_code == 200
        body = response.json()
        assert [s["name"] for s in body["sequences"]] == ["sampleA|g1", "sampleB|g1"]
        assert body["warning"] is None

    def test_explicit_format(self):
        response = client.post(
            "/api/parse",
            files={"file": ("aln.txt", b"2 4\na ACGT\nb TTTT\n")},
            data={"format": "phylip"},
        )
        assert response.status_code == 200
        assert response.json()["sequences"][1] == {"name": "b", "data": "TTTT"}

    def test_unreadable_content(self):
        response = client.post("/api/parse", files={"file": ("junk.txt", b"@@@ ###\n")})
        assert response.status_code == 400
        assert "format" in response.json()["detail"]


class TestTranslate:
    def test_code_and_frame(self):
        response = client.post(
            "/api/translate",
            files={"file": ("gene2.fasta", GENE2)},
            data={"code": "2", "frame": "1"},
        )
        assert response.status_code == 200
        assert response.json()["sequences"][0]["data"] == "WK"

    @pytest.mark.parametrize("data", [{"code": "7"}, {"frame": "4"}])
    def test_invalid_settings(self, data):
        response = client.post("/api/translate", files={"file": ("gene2.fasta", GENE2)}, data=data)
        assert response.status_code == 422

    def test_protein_rejected_unless_forced(self):
        protein = {"file": ("prot.fasta", b">p\nMKLVWQ\n")}
        assert client.post("/api/translate", files=protein).status_code == 400
        response = client.post("/api/translate", files=protein, data={"force": "true"})
        assert response.json()["sequences"][0]["data"] == "XX"


class TestConcatenate:
    def test_with_delimiter(self):
        response = client.post(
            "/api/concatenate",
            files=uploads(**{"gene1.fasta": GENE1, "gene2.fasta": GENE2}),
            data={"delimiter": "|"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["fasta"] == ">sampleA\nATGGCCTGGAAA\n>sampleB\nATGGCTTGGAAG\n"
        assert body["partitions"] == "gene1 = 1-6\ngene2 = 7-12\n"
        assert body["report"]["orphan_ratio"] == 0.0

    def test_orphan_report(self):
        response = client.post(
            "/api/concatenate", files=uploads(**{"gene1.fasta": GENE1, "gene2.fasta": GENE2})
        )
        assert response.status_code == 400
        assert "ORPHAN" in response.json()["diagnostic"]

    def test_bad_fields(self):
        response = client.post(
            "/api/concatenate",
            files=uploads(**{"gene1.fasta": GENE1, "gene2.fasta": GENE2}),
            data={"delimiter": "|", "fields": "one"},
        )
        assert response.status_code == 422


class TestVcf:
    def test_vcf_text(self):
        response = client.post(
            "/api/vcf", files=uploads(**{"gene1.fasta": GENE1, "gene2.fasta": GENE2})
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.startswith("##fileformat=VCFv4.2\n")
        assert "gene1\t6\t.\tC\tT" in response.text

    def test_min_distance_filters(self):
        response = client.post(
            "/api/vcf",
            params={"min_distance": 10},
            files=uploads(**{"gene1.fasta": GENE1}),
        )
        records = [line for line in response.text.splitlines() if not line.startswith("#")]
        assert records == []

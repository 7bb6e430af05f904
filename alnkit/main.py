"""FastAPI application for alignment conversion, translation and export."""
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse

from alnkit import __version__
from alnkit.config import configure_logging
from alnkit.errors import (
    AlignmentError,
    InvalidFrameError,
    InvalidOptionCombination,
    OrphanIdError,
    UnknownGeneticCodeError,
)
from alnkit.formats import FileFormat, detect_and_parse
from alnkit.genetic_code import list_genetic_codes
from alnkit.schemas import Alignment, ConcatResponse, GeneticCodeInfo
from alnkit.sequences import detect_sequence_type, format_fasta, parse_fasta
from alnkit.snps import alignment_vcf
from alnkit.supermatrix import build_supermatrix, format_partitions
from alnkit.translation import AlignmentSession

logger = logging.getLogger(__name__)

app = FastAPI(title="alnkit", version=__version__)

UNPROCESSABLE = (InvalidOptionCombination, UnknownGeneticCodeError, InvalidFrameError)


@app.exception_handler(AlignmentError)
async def alignment_error_handler(request: Request, exc: AlignmentError):
    status = 422 if isinstance(exc, UNPROCESSABLE) else 400
    content = {"detail": str(exc)}
    if isinstance(exc, OrphanIdError):
        content["diagnostic"] = exc.diagnostic
    logger.info("%s %s -> %d: %s", request.method, request.url.path, status, exc)
    return JSONResponse(status_code=status, content=content)


def _parse_fields(fields: Optional[str]) -> Optional[list[int]]:
    if not fields:
        return None
    try:
        return [int(f) for f in fields.split(",") if f.strip()]
    except ValueError:
        raise InvalidOptionCombination(f"fields must be comma-separated integers, got {fields!r}")


async def _read_upload(file: UploadFile, format: Optional[FileFormat] = None) -> tuple[str, Alignment]:
    content = await file.read()
    name = file.filename or "upload"
    alignment = detect_and_parse(content, format, name)
    if alignment.warning:
        logger.warning("%s: %s", name, alignment.warning)
    return Path(name).stem, alignment


# --- Metadata endpoints ---

@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": __version__}


@app.get("/api/genetic-codes")
async def genetic_codes() -> list[GeneticCodeInfo]:
    """List the supported NCBI genetic codes."""
    return list_genetic_codes()


@app.get("/api/detect-type")
async def detect_type(sequence: str) -> dict:
    """Detect if pasted sequence text is DNA or protein."""
    return {"type": detect_sequence_type(parse_fasta(sequence))}


# --- Alignment endpoints ---

@app.post("/api/parse")
async def parse(
    file: UploadFile = File(...),
    format: Optional[FileFormat] = Form(None),
) -> Alignment:
    """Parse an uploaded FASTA, PHYLIP or NEXUS file."""
    _, alignment = await _read_upload(file, format)
    return alignment


@app.post("/api/translate")
async def translate(
    file: UploadFile = File(...),
    code: int = Form(1),
    frame: int = Form(1),
    force: bool = Form(False),
    format: Optional[FileFormat] = Form(None),
) -> Alignment:
    """Translate an uploaded nucleotide alignment."""
    label, alignment = await _read_upload(file, format)
    return AlignmentSession(alignment, label).apply_settings(code, frame, force=force)


@app.post("/api/concatenate")
async def concatenate(
    files: list[UploadFile] = File(...),
    delimiter: Optional[str] = Form(None),
    fields: Optional[str] = Form(None),
    supermatrix: bool = Form(False),
    fill_char: Optional[str] = Form(None),
    bypass_safety: bool = Form(False),
) -> ConcatResponse:
    """Concatenate uploaded alignments into one matrix with partitions."""
    inputs = [await _read_upload(f) for f in files]
    merged, partitions, report = build_supermatrix(
        inputs,
        delimiter=delimiter,
        keep_fields=_parse_fields(fields),
        supermatrix=supermatrix,
        fill_char=fill_char,
        bypass_safety=bypass_safety,
    )
    return ConcatResponse(
        fasta=format_fasta(merged),
        partitions=format_partitions(partitions),
        report=report,
    )


@app.post("/api/vcf")
async def vcf(
    files: list[UploadFile] = File(...),
    min_distance: int = Query(0, ge=0),
    force: bool = Query(False),
) -> PlainTextResponse:
    """Extract isolated biallelic SNPs from uploaded alignments as VCF."""
    inputs = [await _read_upload(f) for f in files]
    return PlainTextResponse(alignment_vcf(inputs, min_distance, force=force))


configure_logging()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

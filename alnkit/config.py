"""Runtime settings and logging setup."""
import logging
import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "ALNKIT_"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseModel):
    fasta_fast_path_bytes: int = 1_000_000  # whole-buffer FASTA scan above this size
    orphan_ratio_threshold: float = Field(0.30, ge=0.0, le=1.0)
    min_nucleotide_fraction: float = Field(0.5, ge=0.0, le=1.0)
    default_fill_char: str = Field("-", min_length=1, max_length=1)
    default_min_flank_distance: int = Field(0, ge=0)
    snp_chunk_columns: int = Field(500_000, gt=0)
    log_level: str = "INFO"


def _from_environ() -> dict:
    values = {}
    for name in Settings.model_fields:
        raw = os.environ.get(ENV_PREFIX + name.upper())
        if raw is not None:
            values[name] = raw
    return values


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings from ALNKIT_* environment variables, built once per process."""
    return Settings(**_from_environ())


def configure_logging(level: Optional[str] = None) -> None:
    """Install a single stream handler on the package logger."""
    logger = logging.getLogger("alnkit")
    logger.setLevel((level or get_settings().log_level).upper())
    logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

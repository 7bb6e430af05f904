"""Alignment translation and the per-session translation cache."""
import logging
import threading
from typing import NamedTuple, Optional

from alnkit.errors import InvalidFrameError
from alnkit.genetic_code import get_genetic_code
from alnkit.schemas import Alignment, Sequence
from alnkit.sequences import validate_nucleotides

logger = logging.getLogger(__name__)

DEFAULT_CODE = 1


def frame_offset(frame: int) -> int:
    """Convert a 1-based reading frame (1, 2, 3) to a column offset."""
    if frame not in (1, 2, 3):
        raise InvalidFrameError(frame)
    return frame - 1


def translate(alignment: Alignment, code_id: int = DEFAULT_CODE, frame: int = 0) -> Alignment:
    """Translate every sequence under genetic code `code_id` from 0-based offset `frame`."""
    if frame not in (0, 1, 2):
        raise InvalidFrameError(frame + 1)
    code = get_genetic_code(code_id)
    return Alignment.from_sequences(
        Sequence(name=seq.name, data=code.translate(seq.data, frame))
        for seq in alignment.sequences
    )


class CachedTranslation(NamedTuple):
    code_id: int
    frame: int
    alignment: Alignment


class AlignmentSession:
    """A loaded alignment plus the one translation computed from it.

    The cache slot holds the translation for a single (code, frame) pair
    and is replaced as a whole. Toggling between the nucleotide and the
    translated view never recomputes; only a change of code or frame does.
    """

    def __init__(self, alignment: Alignment, label: str = "alignment"):
        self.alignment = alignment
        self.label = label
        self.code_id = DEFAULT_CODE
        self.frame = 0
        self.showing_translation = False
        self._cache: Optional[CachedTranslation] = None
        self._lock = threading.Lock()

    @property
    def cached(self) -> Optional[CachedTranslation]:
        return self._cache

    def translation(self, code_id: int, frame: int, force: bool = False) -> Alignment:
        """Translation for (code_id, 0-based frame), reusing the cached one when it matches."""
        cache = self._cache
        if cache is not None and (cache.code_id, cache.frame) == (code_id, frame):
            return cache.alignment
        with self._lock:
            cache = self._cache
            if cache is not None and (cache.code_id, cache.frame) == (code_id, frame):
                return cache.alignment
            if not force:
                validate_nucleotides(self.alignment, self.label)
            logger.info("Translating %s with code %d, frame %d", self.label, code_id, frame + 1)
            translated = translate(self.alignment, code_id, frame)
            self._cache = CachedTranslation(code_id, frame, translated)
            return translated

    def apply_settings(self, code_id: int, frame: int, force: bool = False) -> Alignment:
        """Select code and 1-based frame, then show the translation."""
        offset = frame_offset(frame)
        translated = self.translation(code_id, offset, force=force)
        self.code_id = code_id
        self.frame = offset
        self.showing_translation = True
        return translated

    def show_translation(self, force: bool = False) -> Alignment:
        translated = self.translation(self.code_id, self.frame, force=force)
        self.showing_translation = True
        return translated

    def show_nucleotides(self) -> Alignment:
        self.showing_translation = False
        return self.alignment

    def toggle_view(self, force: bool = False) -> Alignment:
        if self.showing_translation:
            return self.show_nucleotides()
        return self.show_translation(force=force)

    @property
    def current(self) -> Alignment:
        if self.showing_translation and self._cache is not None:
            return self._cache.alignment
        return self.alignment

    def clear_translation(self) -> None:
        with self._lock:
            self._cache = None
        self.showing_translation = False

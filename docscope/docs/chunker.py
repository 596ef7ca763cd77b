"""Document chunker - deterministic text splitting into overlapping fragments."""

import re
from typing import Literal

ChunkStrategy = Literal["sentence", "fixed"]

# A sentence-like unit: text up to and including a run of terminal punctuation plus
# trailing whitespace, or the unterminated remainder of the text.
_SENTENCE_RE = re.compile(r"[^.!?]*[.!?]+\s*|[^.!?]+")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run (newlines included) to one space and strip."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_line_endings(text: str) -> str:
    """Normalize \\r\\n and \\r to \\n and strip surrounding whitespace."""
    return text.replace("\r\n", "\n").replace("\r", "\n").strip()


def _check_window(size: int, overlap: int) -> None:
    if not size > overlap >= 0:
        raise ValueError(f"chunk size must exceed overlap >= 0 (size={size}, overlap={overlap})")


def merge_blank_spans(text: str, spans: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Fold every whitespace-only span into the span before it.

    The merged span ends where the blank one ended, so the next span still starts
    `overlap` chars before its predecessor's end. A merged fragment can exceed the
    window size by the whitespace it absorbed.
    """
    merged: list[tuple[int, int]] = []
    for start, end in spans:
        if merged and not text[start:end].strip():
            merged[-1] = (merged[-1][0], end)
        else:
            merged.append((start, end))
    return merged


def fixed_window_spans(length: int, size: int, overlap: int) -> list[tuple[int, int]]:
    """Compute [start, end) windows of `size` chars advancing by `size - overlap`.

    Window i starts at i * (size - overlap). Stops after the first window that
    reaches the end of the text, so no window is a pure repeat of the previous
    window's overlap.
    """
    _check_window(size, overlap)
    step = size - overlap
    spans: list[tuple[int, int]] = []
    start = 0
    while start < length:
        end = min(start + size, length)
        spans.append((start, end))
        if end == length:
            break
        start += step
    return spans


def sentence_spans(text: str, size: int, overlap: int) -> list[tuple[int, int]]:
    """Greedily pack sentence units into [start, end) spans of at most `size` chars.

    On overflow the current span is emitted and the next one is re-seeded with the
    last `overlap` characters of it. A single sentence longer than `size` is cut
    into fixed windows. Every span after the first starts exactly `overlap` chars
    before the previous span's end.
    """
    _check_window(size, overlap)
    spans: list[tuple[int, int]] = []
    start = end = 0

    for match in _SENTENCE_RE.finditer(text):
        unit_end = match.end()

        # Only emit once the buffer holds more than the re-seeded overlap.
        if end - start > overlap and unit_end - start > size:
            spans.append((start, end))
            start = end - overlap

        end = unit_end

        while end - start > size:
            spans.append((start, start + size))
            start += size - overlap

    if end > start:
        spans.append((start, end))

    return merge_blank_spans(text, spans)


def chunk_fixed(text: str, size: int = 1000, overlap: int = 200) -> list[str]:
    """Fixed-window chunking with exact, reproducible offsets.

    Offsets refer to the text after line-ending normalization and stripping.
    A window that is blank after trimming (only possible inside whitespace runs
    longer than the window) is folded into the preceding fragment, which keeps
    the overlap-drop reconstruction exact.
    """
    normalized = normalize_line_endings(text)
    if not normalized:
        return []

    spans = merge_blank_spans(normalized, fixed_window_spans(len(normalized), size, overlap))
    return [normalized[s:e] for s, e in spans]


def chunk_sentences(text: str, size: int = 1500, overlap: int = 150) -> list[str]:
    """Sentence-aware chunking over whitespace-normalized text.

    Args:
        text: Raw extracted text
        size: Target maximum characters per fragment
        overlap: Characters carried over from the previous fragment

    Returns:
        Ordered fragments. Dropping the first `overlap` characters of every
        fragment after the first and concatenating reproduces
        normalize_whitespace(text) exactly. The last fragment is kept even when
        shorter than `size`.
    """
    normalized = normalize_whitespace(text)
    if not normalized:
        return []

    return [normalized[s:e] for s, e in sentence_spans(normalized, size, overlap)]


def chunk_text(
    text: str,
    *,
    size: int,
    overlap: int,
    strategy: ChunkStrategy = "sentence",
) -> list[str]:
    """Split text into overlapping retrievable fragments with the chosen strategy."""
    if strategy == "fixed":
        return chunk_fixed(text, size=size, overlap=overlap)
    if strategy == "sentence":
        return chunk_sentences(text, size=size, overlap=overlap)
    raise ValueError(f"Unknown chunk strategy: {strategy}")

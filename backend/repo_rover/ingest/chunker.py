"""Chunking utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

from repo_rover.ingest.types import Chunk, FileRecord

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", " ", "")


@dataclass(slots=True)
class Segment:
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


def chunk_text(
    text: str,
    chunk_size: int = 1000,
    chunk_overlap: int = 200,
    separators: Sequence[str] = DEFAULT_SEPARATORS,
) -> list[Segment]:
    """Split text into overlapping windows of at most ``chunk_size`` characters.

    The text is first cut recursively at the coarsest separator that occurs
    (blank lines, then lines, then words, then fixed-width slices) until every
    piece fits. Pieces are then merged greedily; when a window is full, its
    tail of at most ``chunk_overlap`` characters is carried into the next one.
    Separators stay attached to the piece they end, so consecutive windows
    always touch or overlap and ``text[start:end]`` reproduces each chunk.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")
    if not 0 <= chunk_overlap < chunk_size:
        raise ValueError("chunk_overlap must be in [0, chunk_size)")
    if not text or not text.strip():
        return []

    pieces = _split_recursive(text, Segment(0, len(text)), tuple(separators), chunk_size)

    windows: list[Segment] = []
    current: list[Segment] = []
    current_length = 0
    for piece in pieces:
        if current and current_length + piece.length > chunk_size:
            windows.append(Segment(current[0].start, current[-1].end))
            while current and (current_length > chunk_overlap or current_length + piece.length > chunk_size):
                current_length -= current.pop(0).length
        current.append(piece)
        current_length += piece.length
    if current:
        windows.append(Segment(current[0].start, current[-1].end))
    return windows


def _split_recursive(
    text: str,
    segment: Segment,
    separators: tuple[str, ...],
    chunk_size: int,
) -> list[Segment]:
    if segment.length <= chunk_size:
        return [segment]
    for index, separator in enumerate(separators):
        if separator == "":
            break
        if text.find(separator, segment.start, segment.end) == -1:
            continue
        remaining = separators[index + 1 :]
        pieces: list[Segment] = []
        for part in _split_keeping_separator(text, segment, separator):
            if part.length <= chunk_size:
                pieces.append(part)
            else:
                pieces.extend(_split_recursive(text, part, remaining, chunk_size))
        return pieces
    return list(_fixed_windows(segment, chunk_size))


def _split_keeping_separator(text: str, segment: Segment, separator: str) -> Iterator[Segment]:
    cursor = segment.start
    found = text.find(separator, cursor, segment.end)
    while found != -1:
        cut = found + len(separator)
        yield Segment(cursor, cut)
        cursor = cut
        found = text.find(separator, cursor, segment.end)
    if cursor < segment.end:
        yield Segment(cursor, segment.end)


def _fixed_windows(segment: Segment, width: int) -> Iterator[Segment]:
    for start in range(segment.start, segment.end, width):
        yield Segment(start, min(start + width, segment.end))


class TextChunker:
    """Bind chunk parameters and stamp chunks with their source file."""

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 200) -> None:
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def split(self, text: str, source_path: str = "", repository_key: str = "") -> list[Chunk]:
        if not isinstance(text, str):
            return []
        return [
            Chunk(
                text=text[window.start : window.end],
                source_path=source_path,
                repository_key=repository_key,
                start=window.start,
                end=window.end,
            )
            for window in chunk_text(text, self.chunk_size, self.chunk_overlap)
        ]

    def split_record(self, record: FileRecord) -> list[Chunk]:
        return self.split(record.content, source_path=record.path, repository_key=record.repository_key)


__all__ = ["Segment", "chunk_text", "TextChunker", "DEFAULT_SEPARATORS"]

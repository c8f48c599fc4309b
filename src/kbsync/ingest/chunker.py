"""Boundary-aware fixed-window chunker with overlap.

Windows are measured in characters. A window that ends before the end of the
text is pulled back to just after the last ``.`` or newline inside it, so
chunks tend to end on a sentence or line break. Consecutive chunks overlap by
up to ``overlap`` characters. Chunking stops with the first window that
reaches the end of the text.
"""

from __future__ import annotations

from collections.abc import Iterator


class TextChunker:
    """Split normalized text into overlapping, boundary-aware segments.

    Default: 1000 characters / 200 overlap.

    The loop keeps no state beyond its cursor, so the same input always
    yields the same chunks, and the cursor advances by at least one
    character per iteration: chunking terminates in at most ``len(text)``
    iterations for any ``target_size >= 1`` and ``overlap >= 0``.
    """

    def __init__(self, target_size: int = 1000, overlap: int = 200) -> None:
        if target_size < 1:
            raise ValueError("target_size must be >= 1")
        if overlap < 0:
            raise ValueError("overlap must be >= 0")
        self.target_size = target_size
        self.overlap = overlap

    def chunk(self, text: str) -> list[str]:
        return list(self.iter_chunks(text))

    def iter_chunks(self, text: str) -> Iterator[str]:
        for start, end in self.spans(text):
            segment = text[start:end].strip()
            if segment:
                yield segment

    def spans(self, text: str) -> Iterator[tuple[int, int]]:
        """Yield the raw ``(start, end)`` window of every iteration."""
        length = len(text)
        start = 0
        while start < length:
            end = start + self.target_size
            if end < length:
                # A break character sitting exactly at the tentative end is eligible.
                period = text.rfind(".", start + 1, end + 1)
                newline = text.rfind("\n", start + 1, end + 1)
                break_point = max(period, newline)
                if break_point > start:
                    end = break_point + 1
            yield start, min(end, length)
            if end >= length:
                # The window reached the end; another pass would only repeat its tail.
                break
            start = max(start + 1, end - self.overlap)


def chunk_text(text: str, target_size: int = 1000, overlap: int = 200) -> list[str]:
    """Split *text* into trimmed, non-empty chunks (see :class:`TextChunker`)."""
    return TextChunker(target_size=target_size, overlap=overlap).chunk(text)

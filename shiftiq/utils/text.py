from typing import List, NamedTuple


class TextChunk(NamedTuple):
    content: str  # trimmed window text
    start: int
    end: int


def split_into_chunks(text: str, chunk_size: int = 1000, overlap: int = 200,
                      min_length: int = 50) -> List[TextChunk]:
    """Split text into fixed-size character windows that overlap by `overlap`.

    Each window covers text[start:end]; the next one starts at end - overlap.
    Chunks whose trimmed content is min_length characters or shorter are
    dropped, so the result may be empty.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError("overlap must be in [0, chunk_size)")

    chunks: List[TextChunk] = []
    start = 0
    n = len(text or "")
    while start < n:
        end = min(start + chunk_size, n)
        chunks.append(TextChunk(text[start:end].strip(), start, end))
        if end >= n:
            break
        start = end - overlap
    return [c for c in chunks if len(c.content) > min_length]

"""Fixed-width wrapping of plate names for multi-line cell labels."""
from typing import List

DEFAULT_CHUNK_SIZE = 10


def chunk_label(name: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    """
    Split a plate name into consecutive segments of ``chunk_size`` characters.

    Slicing works on code points, so a CJK character is never split.
    The last segment may be shorter; an empty name yields an empty list.

    Raises:
        ValueError: If chunk_size is not positive
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if not name:
        return []
    return [name[i:i + chunk_size] for i in range(0, len(name), chunk_size)]

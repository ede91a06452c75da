"""Partitioning of tournament participants into fixed-size groups."""

from __future__ import annotations

from collections.abc import Iterable


def partition_participants(participant_ids: Iterable[str], size: int) -> list[list[str]]:
    """Slice participants into consecutive chunks of at most ``size``.

    Order is preserved and duplicate or empty ids are dropped, so the chunks
    together hold every participant exactly once. The last chunk may be short.
    """
    if not isinstance(size, int) or isinstance(size, bool) or size < 1:
        raise ValueError("Group size must be a positive integer.")

    unique_ids = list(dict.fromkeys(pid for pid in participant_ids if pid))
    return [unique_ids[i : i + size] for i in range(0, len(unique_ids), size)]


def group_name(number: int) -> str:
    """Default label for the n-th group."""
    return f"Group {number}"

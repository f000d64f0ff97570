"""Baseline comparison for "new token appeared" waits.

The baseline is captured once, before the awaited action, and handed back
in by the caller; nothing here keeps state between calls.
"""

import re
from typing import Awaitable, Callable, Iterable, List, Pattern, Union

NFT_ID_HREF = re.compile(r"nft_id=(\d+)")
HASH_ID_TEXT = re.compile(r"#(\d+)")
BARE_ID = re.compile(r"^\s*(\d+)\s*$")


def extract_token_ids(values: Iterable[str], pattern: Union[str, Pattern] = BARE_ID) -> List[int]:
    """
    Parse unique integer IDs, keeping first-seen order.

    Args:
        values: Hrefs, text blobs or attribute values
        pattern: Regex whose first group is the ID

    Returns:
        Unique IDs in the order they were found
    """
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    seen: List[int] = []
    for value in values:
        if not value:
            continue
        for match in regex.finditer(value):
            token_id = int(match.group(1))
            if token_id not in seen:
                seen.append(token_id)
    return seen


def highest_token_id(ids: Iterable[int], default: int = 0) -> int:
    """Highest ID, or ``default`` when nothing was found."""
    return max(ids, default=default)


def new_ids_above(baseline: int, observed: Iterable[int]) -> List[int]:
    """
    IDs strictly greater than the baseline, highest (newest) first.

    >>> new_ids_above(5, [3, 5, 7])
    [7]
    """
    return sorted({i for i in observed if i > baseline}, reverse=True)


def new_ids_predicate(
    read_ids: Callable[[], Awaitable[Iterable[int]]], baseline: int, expected: int = 1
) -> Callable[[], Awaitable[bool]]:
    """
    Build a polling predicate that holds once ``expected`` IDs exceed the baseline.

    Args:
        read_ids: Reads the IDs currently on the page
        baseline: Highest ID seen before the action started
        expected: Number of new IDs to wait for

    Returns:
        Async predicate
    """

    async def check() -> bool:
        return len(new_ids_above(baseline, await read_ids())) >= expected

    return check

# src/parapdf/partition.py
from __future__ import annotations

import logging
from typing import Iterable, List

from .exceptions import PartitionError
from .models import PageRange

logger = logging.getLogger("parapdf")


class RemainderPolicy:
    DROP = "drop"      # trailing total % workers pages are not built
    LAST = "last"      # the last range absorbs the remainder
    REJECT = "reject"  # non-divisible totals are an error

    ALL = (DROP, LAST, REJECT)


def partition_pages(total: int, workers: int, remainder: str = RemainderPolicy.DROP) -> List[PageRange]:
    """
    Split [0, total) into `workers` contiguous, ordered, disjoint ranges of
    total // workers pages each. What happens to the total % workers leftover
    pages depends on `remainder`.
    """
    if total < 0:
        raise ValueError(f"total must be non-negative, got {total}")
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")
    if remainder not in RemainderPolicy.ALL:
        raise ValueError(f"Unknown remainder policy, '{remainder}'. Supported, {list(RemainderPolicy.ALL)}")

    per_worker = total // workers
    leftover = total % workers

    if leftover and remainder == RemainderPolicy.REJECT:
        raise PartitionError(
            f"{total} pages cannot be split evenly across {workers} workers ({leftover} left over)"
        )

    ranges = [PageRange(i * per_worker, (i + 1) * per_worker) for i in range(workers)]

    if leftover:
        if remainder == RemainderPolicy.LAST:
            ranges[-1] = PageRange(ranges[-1].start, total)
        else:
            logger.warning(
                "%d of %d requested pages are not assigned to any worker and will be missing from the output",
                leftover, total,
            )
    return ranges


def covered_pages(ranges: Iterable[PageRange]) -> int:
    return sum(r.page_count for r in ranges)

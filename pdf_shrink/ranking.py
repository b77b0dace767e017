"""
ranking.py - Order backend results and pick the best one.
"""

from typing import List, Optional, Sequence, Tuple

from .results import BackendResult, Failure, Success


def rank(results: Sequence[BackendResult]) -> Tuple[List[BackendResult], Optional[BackendResult]]:
    """
    Sort successes by output size, failures last.

    Successes are ordered ascending by size; ties keep invocation order
    (sorted() is stable). Failures follow in their original order since
    they have no size to rank by.

    Returns:
        (ordered_results, best) where best is the smallest success or None
    """
    successes = []
    failures = []
    for result in results:
        if isinstance(result.outcome, Success):
            successes.append(result)
        elif isinstance(result.outcome, Failure):
            failures.append(result)
        else:
            raise TypeError(f"Unknown outcome type: {type(result.outcome).__name__}")

    successes = sorted(successes, key=lambda r: r.outcome.size)
    best = successes[0] if successes else None
    return successes + failures, best

"""
Score threshold summaries for exported results.
"""

from typing import Dict, Iterable, Sequence

import numpy as np

from peptide_extractor.config import SCORE_SUMMARY_THRESHOLDS
from peptide_extractor.results.models import OutputRecordIndex


def count_above_thresholds(
    scores: Iterable[float],
    thresholds: Sequence[int] = SCORE_SUMMARY_THRESHOLDS,
) -> Dict[int, int]:
    """
    Count scores strictly greater than each threshold.

    Counts are cumulative: a score of 6.0 counts toward every threshold
    from 0 to 5.

    Example:
        >>> count_above_thresholds([0.5, 1.5, 2.5, 6.0])
        {0: 4, 1: 3, 2: 2, 3: 1, 4: 1, 5: 1}
    """
    values = np.fromiter(scores, dtype=float)
    return {int(t): int(np.count_nonzero(values > t)) for t in thresholds}


def build_score_summary(
    index_list: Iterable[OutputRecordIndex],
    thresholds: Sequence[int] = SCORE_SUMMARY_THRESHOLDS,
) -> Dict[int, int]:
    """Threshold -> number of exported lines scoring above it."""
    return count_above_thresholds((entry.score for entry in index_list), thresholds)


def format_score_summary(stats: Dict[int, int], description: str) -> str:
    """
    Render a summary as a single log line, e.g.::

        Scores (all peptides)     ->       4 peptides above 0,       3 peptides above 1, ...
    """
    label = f"({description})"
    parts = [f"{stats[t]:>7} peptides above {t}" for t in sorted(stats)]
    return f"Scores {label:<18} -> " + ", ".join(parts)

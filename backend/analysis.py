"""
Analysis helpers

Pure functions behind the auxiliary reports: a Pearson correlation over
paired values and a frequency ranking of free-text causes.
"""

from collections import Counter
import re

import numpy as np

from errors import UndefinedCorrelation

CAUSE_SEPARATORS = re.compile(r"[,;]")


def pearson(xs, ys) -> float:
    """
    Pearson correlation coefficient using population statistics.

    coefficient = cov(X, Y) / (std(X) * std(Y)), all with ddof=0.

    Raises:
        ValueError: If the two series differ in length
        UndefinedCorrelation: If fewer than two pairs are given or either
            series is constant
    """
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)

    if x.shape != y.shape:
        raise ValueError(f"Series lengths differ: {x.size} != {y.size}")
    if x.size < 2:
        raise UndefinedCorrelation("At least two paired values are required")
    if x.max() == x.min() or y.max() == y.min():
        raise UndefinedCorrelation("Correlation is undefined for a series with zero variance")

    covariance = np.mean((x - x.mean()) * (y - y.mean()))
    coefficient = covariance / (x.std() * y.std())

    if not np.isfinite(coefficient):
        raise UndefinedCorrelation("Correlation could not be computed")

    # Rounding can push a perfect correlation just past +/-1
    return float(np.clip(coefficient, -1.0, 1.0))


def split_causes(text):
    """Split a free-text answer such as "tone; sarcasm, emojis" into causes."""
    if not text:
        return []
    return [part.strip() for part in CAUSE_SEPARATORS.split(text) if part.strip()]


def rank_frequencies(sequences):
    """
    Count every item across all sequences, most frequent first.

    Ties keep the order in which the items were first seen.

    Returns:
        list: (item, count) tuples
    """
    counts = Counter()
    for sequence in sequences:
        counts.update(sequence)
    return counts.most_common()

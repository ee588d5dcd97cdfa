# =============================================================================
# LeafScan-Hybrid
# services/severity.py - Severity Estimation
# =============================================================================

from typing import Sequence, Union

import numpy as np

from leafscan.constants import DISEASED_PIXEL_THRESHOLD, SEVERITY_LEVELS, SEVERITY_THRESHOLDS


def severity(segmentation_output: Union[Sequence[float], np.ndarray]) -> float:
    """
    Percentage of pixels the segmentation pass marks as diseased.

    A pixel counts as diseased when its value is strictly greater than 0.5.

    Args:
        segmentation_output: Flat per-pixel probabilities

    Returns:
        Severity in [0, 100]; 0.0 for an empty vector
    """
    mask = np.asarray(segmentation_output, dtype=np.float32).reshape(-1)
    if mask.size == 0:
        return 0.0
    diseased = int(np.count_nonzero(mask > DISEASED_PIXEL_THRESHOLD))
    return 100.0 * diseased / mask.size


def severity_level(value: float) -> str:
    """Map a severity percentage to its display band (low .. critical)."""
    for level, upper in SEVERITY_THRESHOLDS.items():
        if value < upper:
            return level
    return SEVERITY_LEVELS[-1]

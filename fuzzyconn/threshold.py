"""
Thresholding of a fuzzy connectedness scene into a binary object mask.
"""

import math
from typing import Optional, Sequence

import numpy as np

from .errors import ConfigurationError

OBJECT = 1
BACKGROUND = 0


def validate_threshold(threshold) -> float:
    try:
        ok = math.isfinite(threshold)
    except TypeError:
        ok = False
    if not ok:
        raise ConfigurationError(f"Threshold must be a finite number, got {threshold!r}")
    return threshold


def threshold_scene(scene: np.ndarray,
                    threshold: float,
                    seeds: Optional[Sequence[Sequence[int]]] = None) -> np.ndarray:
    """
    Binary object mask of the cells whose connectedness reaches the threshold.

    Seeds given here are always classified as OBJECT, even for a threshold
    above MAX_STRENGTH. Pass seeds=None to apply the threshold alone.
    The scene is only read, so several masks can be derived concurrently
    from one scene.

    Returns:
    -------
    np.ndarray
        uint8 array of the scene shape, OBJECT where scene >= threshold.
    """
    validate_threshold(threshold)
    scene = np.asarray(scene)
    # Compare in float so thresholds outside the uint16 range behave.
    mask = (scene >= float(threshold)).astype(np.uint8)
    if seeds is not None:
        for seed in seeds:
            mask[tuple(seed)] = OBJECT
    return mask

"""
Fuzzy Connectedness Segmentation
--------------------------------
Seeded segmentation of grayscale grids of any dimension by thresholding a
fuzzy connectedness scene.

The affinity of two neighbouring cells scores how likely they belong to the
same object. The strength of a path is its weakest affinity, and the
connectedness of a cell is the strength of the best path reaching it from
the seeds. The scene holds that connectedness for every cell, quantized to
[0, 65535], and the object is the set of cells at or above a threshold.

Example:
    >>> import numpy as np
    >>> from fuzzyconn import FuzzyConnectednessSegmenter
    >>>
    >>> image = ...  # Your grid of raw intensities
    >>>
    >>> fc = FuzzyConnectednessSegmenter(image, threshold=30000)
    >>> fc.set_seeds((10, 12), (14, 15))
    >>> fc.set_parameters(mean=120.0, variance=90.0, diff_mean=2.0, diff_variance=4.0, weight=0.5)
    >>> fc.run()
    >>> mask = fc.get_output()
    >>>
    >>> # Re-threshold without propagating again
    >>> fc.set_threshold(45000)
    >>> tighter = fc.get_output()
"""

from .affinity import MAX_STRENGTH, Affinity, AffinityParameters, GaussianAffinity
from .core import FuzzyConnectednessSegmenter, process_image_file, segment_image
from .errors import (ConfigurationError, FuzzyConnectednessError, InsufficientMemoryError,
                     SceneNotComputedError)
from .estimation import RunningStatistics, estimate_parameters
from .propagation import compute_scene, neighbor_offsets
from .threshold import BACKGROUND, OBJECT, threshold_scene

__version__ = "0.1.0"
__all__ = [
    "MAX_STRENGTH", "OBJECT", "BACKGROUND",
    "Affinity", "AffinityParameters", "GaussianAffinity",
    "FuzzyConnectednessSegmenter", "segment_image", "process_image_file",
    "compute_scene", "neighbor_offsets", "threshold_scene",
    "RunningStatistics", "estimate_parameters",
    "FuzzyConnectednessError", "ConfigurationError", "InsufficientMemoryError", "SceneNotComputedError",
]

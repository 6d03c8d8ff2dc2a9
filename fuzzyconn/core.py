"""
Core functionality for fuzzy connectedness segmentation.
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from .affinity import MAX_STRENGTH, Affinity, AffinityParameters, GaussianAffinity
from .errors import ConfigurationError, SceneNotComputedError
from .estimation import estimate_parameters
from .io import load_image
from .propagation import as_coordinate, compute_scene
from .threshold import threshold_scene, validate_threshold

logger = logging.getLogger(__name__)


class FuzzyConnectednessSegmenter:
    """
    Segmentation of a grayscale grid by thresholding a fuzzy connectedness scene.

    Usage:
    1. set_image() with the input grid
    2. set_parameters() (or estimate_parameters(), or set_affinity()) and set_seeds()
    3. run() computes the scene and the binary output at the current threshold
    4. set_threshold() regenerates the output from the cached scene, without
       propagating again
    5. get_output() returns the binary mask, get_scene() the uint16 scene

    Seeds are always part of the object when force_seeds is True, whatever
    the threshold.
    """

    def __init__(self,
                 image: Optional[np.ndarray] = None,
                 connectivity: int = 1,
                 threshold: float = MAX_STRENGTH // 2,
                 force_seeds: bool = True):
        self.image = None if image is None else np.asarray(image)
        self.connectivity = connectivity
        self.force_seeds = force_seeds
        self.affinity: Optional[Affinity] = None
        self.seeds = []
        self.run_count = 0
        self._threshold = None
        self._scene = None
        self._scene_seeds = None
        self._output = None
        self.set_threshold(threshold)

    # --------------------------- configuration ---------------------------

    def set_image(self, image: np.ndarray) -> None:
        self.image = np.asarray(image)

    def set_parameters(self, mean: float, variance: float, diff_mean: float,
                       diff_variance: float, weight: float) -> None:
        """Install a GaussianAffinity with the given object statistics."""
        self.affinity = GaussianAffinity(AffinityParameters(mean, variance, diff_mean, diff_variance, weight))

    def set_affinity(self, affinity: Affinity) -> None:
        if not isinstance(affinity, Affinity):
            raise ConfigurationError(f"Expected an Affinity, got {type(affinity).__name__}")
        self.affinity = affinity

    def estimate_parameters(self, radius: int = 1, weight: float = 0.5) -> AffinityParameters:
        """Estimate the statistics from the seeds' neighbourhood and install them."""
        if self.image is None:
            raise ConfigurationError("No image set")
        params = estimate_parameters(self.image, self.seeds, radius=radius, weight=weight)
        self.affinity = GaussianAffinity(params)
        return params

    def set_seeds(self, *coords: Sequence[int]) -> None:
        self.seeds = [as_coordinate(coord) for coord in coords]

    def add_seed(self, coord: Sequence[int]) -> None:
        self.seeds.append(as_coordinate(coord))

    @property
    def threshold(self) -> float:
        return self._threshold

    def set_threshold(self, threshold: float) -> None:
        """Set the threshold and, if a scene exists, regenerate the output from it."""
        self._threshold = validate_threshold(threshold)
        if self._scene is not None:
            self.make_segment_object()

    # --------------------------- computation ---------------------------

    def run(self) -> np.ndarray:
        """
        Compute the fuzzy scene and the binary output.

        On failure the previous scene and output are left untouched.
        """
        if self.image is None:
            raise ConfigurationError("No image set")
        if self.affinity is None:
            raise ConfigurationError("No affinity parameters set")

        scene, pops = compute_scene(self.image, self.seeds, self.affinity, self.connectivity)
        self.run_count += 1
        self._scene = scene
        self._scene_seeds = list(self.seeds)
        self.make_segment_object()
        logger.debug(f"Run {self.run_count}: pops {pops}, threshold {self._threshold}")
        return scene

    def make_segment_object(self) -> np.ndarray:
        """Threshold the cached scene into the binary output."""
        if self._scene is None:
            raise SceneNotComputedError("run() must complete before thresholding")
        seeds = self._scene_seeds if self.force_seeds else None
        self._output = threshold_scene(self._scene, self._threshold, seeds)
        return self._output

    def get_scene(self) -> np.ndarray:
        if self._scene is None:
            raise SceneNotComputedError("No fuzzy scene, call run() first")
        return self._scene

    def get_output(self) -> np.ndarray:
        if self._output is None:
            raise SceneNotComputedError("No segmentation output, call run() first")
        return self._output


def segment_image(image: np.ndarray,
                  seeds: Sequence[Sequence[int]],
                  params: Optional[AffinityParameters] = None,
                  threshold: float = MAX_STRENGTH // 2,
                  connectivity: int = 1,
                  estimate_radius: int = 1) -> Tuple[np.ndarray, np.ndarray]:
    """
    Perform image segmentation using fuzzy connectedness.

    Parameters:
    ----------
    image : np.ndarray
        Input grayscale grid, any dimension, raw intensities

    seeds : sequence of coordinates
        Cells inside the object of interest

    params : AffinityParameters, optional
        Object statistics. Estimated from the seeds when omitted.

    threshold : float, optional
        Cut-off on the scene, in [0, 65535]. Default: 32767

    connectivity : int, optional
        1 for face neighbours up to image.ndim for the full neighbourhood.
        Default: 1

    estimate_radius : int, optional
        Window radius used when params is estimated. Default: 1

    Returns:
    -------
    mask : np.ndarray
        uint8 binary object mask (1 = object)

    scene : np.ndarray
        uint16 fuzzy connectedness scene
    """
    segmenter = FuzzyConnectednessSegmenter(image, connectivity=connectivity, threshold=threshold)
    segmenter.set_seeds(*seeds)
    if params is None:
        segmenter.estimate_parameters(radius=estimate_radius)
    else:
        segmenter.set_parameters(*params)
    segmenter.run()
    return segmenter.get_output(), segmenter.get_scene()


def process_image_file(image_path: str,
                       seeds: Sequence[Sequence[int]],
                       params: Optional[AffinityParameters] = None,
                       threshold: float = MAX_STRENGTH // 2,
                       connectivity: int = 1) -> Tuple[np.ndarray, np.ndarray]:
    """
    Load an image file and perform segmentation using fuzzy connectedness.

    Returns:
    -------
    (mask, scene) as in segment_image
    """
    image = load_image(image_path)
    return segment_image(image, seeds, params, threshold=threshold, connectivity=connectivity)

"""
Estimation of the affinity statistics from the neighbourhood of the seeds.
"""

import logging
from typing import Sequence, Tuple

import numpy as np

from .affinity import AffinityParameters
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class RunningStatistics:
    """Online mean and population variance (Welford, with Chan's merge)."""

    def __init__(self):
        self.count = 0
        self.mean = 0.0
        self._m2 = 0.0

    @property
    def variance(self) -> float:
        if self.count < 2:
            return 0.0
        return self._m2 / self.count

    def push(self, values) -> "RunningStatistics":
        values = np.asarray(values, dtype=np.float64).ravel()
        if values.size == 0:
            return self
        batch = RunningStatistics()
        batch.count = int(values.size)
        batch.mean = float(values.mean())
        batch._m2 = float(((values - batch.mean) ** 2).sum())
        return self.merge(batch)

    def merge(self, other: "RunningStatistics") -> "RunningStatistics":
        if other.count == 0:
            return self
        total = self.count + other.count
        delta = other.mean - self.mean
        self._m2 += other._m2 + delta * delta * self.count * other.count / total
        self.mean += delta * other.count / total
        self.count = total
        return self

    def __repr__(self) -> str:
        return f"RunningStatistics(count={self.count}, mean={self.mean:.6g}, variance={self.variance:.6g})"


def _window(shape: Tuple[int, ...], seed: Tuple[int, ...], radius: int) -> Tuple[slice, ...]:
    return tuple(slice(max(0, c - radius), min(n, c + radius + 1)) for c, n in zip(seed, shape))


def estimate_parameters(image: np.ndarray,
                        seeds: Sequence[Sequence[int]],
                        radius: int = 1,
                        weight: float = 0.5) -> AffinityParameters:
    """
    Estimate AffinityParameters from windows centred on the seeds.

    Parameters:
    ----------
    image : np.ndarray
        Input grid of any dimension.

    seeds : sequence of coordinates
        Cells known to lie inside the object.

    radius : int, optional
        Half side of the (2*radius+1)^ndim window around each seed, clipped
        at the grid border. Default: 1

    weight : float, optional
        Weight of the intensity term in the returned parameters. Default: 0.5

    Returns:
    -------
    AffinityParameters
        Mean and variance of the window intensities, and mean and variance
        of the absolute differences between face neighbours in the windows.
    """
    if radius < 0:
        raise ConfigurationError(f"radius must be non-negative, got {radius}")
    if len(seeds) == 0:
        raise ConfigurationError("At least one seed is needed to estimate parameters")

    image = np.asarray(image, dtype=np.float64)
    objects = RunningStatistics()
    diffs = RunningStatistics()

    for seed in seeds:
        seed = tuple(int(c) for c in seed)
        if len(seed) != image.ndim or any(c < 0 or c >= n for c, n in zip(seed, image.shape)):
            raise ConfigurationError(f"Seed {seed} is outside the image of shape {image.shape}")
        patch = image[_window(image.shape, seed, radius)]
        objects.push(patch)
        for axis in range(patch.ndim):
            if patch.shape[axis] > 1:
                diffs.push(np.abs(np.diff(patch, axis=axis)))

    params = AffinityParameters(objects.mean, objects.variance, diffs.mean, diffs.variance, weight)
    logger.debug(f"Estimated {params} from {len(seeds)} seeds, radius {radius}")
    return params.validate()

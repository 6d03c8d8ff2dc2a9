"""
Fuzzy affinity between neighbouring cells.

The affinity of two neighbours reflects how likely they are to belong to the
same object. It is the edge weight of the connectedness propagation, quantized
to the integer range of the scene:

    affinity(a, b) in [0, MAX_STRENGTH]

The default model (GaussianAffinity) scores two divergences against Gaussian
kernels and mixes them with a weight w:

    w       * exp(-0.5 * (0.5*(a + b) - mean)^2      / variance)
  + (1 - w) * exp(-0.5 * (|a - b|     - diff_mean)^2 / diff_variance)

Reference:
@article{Udupa_1996,
  title={Fuzzy Connectedness and Object Definition: Theory, Algorithms,
         and Applications in Image Segmentation},
  author={Udupa, Jayaram K. and Samarasekera, Supun},
  journal={Graphical Models and Image Processing},
  volume={58}, number={3}, pages={246--261},
  year={1996}
}
"""

import math
from typing import NamedTuple, Union

import numpy as np

from .errors import ConfigurationError

MAX_STRENGTH = int(np.iinfo(np.uint16).max)
SCENE_DTYPE = np.uint16

ArrayLike = Union[float, np.ndarray]


class AffinityParameters(NamedTuple):
    """Statistics of the object of interest that parameterize GaussianAffinity."""
    mean: float
    variance: float
    diff_mean: float
    diff_variance: float
    weight: float = 0.5

    def validate(self) -> "AffinityParameters":
        for name, value in zip(self._fields, self):
            try:
                ok = math.isfinite(value)
            except TypeError:
                ok = False
            if not ok:
                raise ConfigurationError(f"Affinity parameter {name} must be finite, got {value!r}")
        return AffinityParameters(*(float(v) for v in self))


class Affinity:
    """
    Strategy interface for the affinity model.

    Subclasses implement strength() on float64 arrays and return values in
    [0, 1]. Calling the instance quantizes the strength to the scene range.
    Implementations must be symmetric in (a, b).
    """

    def strength(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def __call__(self, a: ArrayLike, b: ArrayLike):
        a = np.asarray(a, dtype=np.float64)
        b = np.asarray(b, dtype=np.float64)
        s = np.clip(self.strength(a, b), 0.0, 1.0)
        out = np.floor(s * MAX_STRENGTH).astype(SCENE_DTYPE)
        if out.ndim == 0:
            return int(out)
        return out


def _gaussian(deviation: np.ndarray, variance: float) -> np.ndarray:
    # A zero variance only accepts an exact match.
    if variance == 0.0:
        return (deviation == 0.0).astype(np.float64)
    return np.exp(-0.5 * deviation * deviation / variance)


class GaussianAffinity(Affinity):
    """Gaussian affinity on the mean intensity of a pair and on its difference."""

    def __init__(self, params: AffinityParameters):
        self.params = AffinityParameters(*params).validate()

    def strength(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        p = self.params
        intensity = _gaussian(0.5 * (a + b) - p.mean, p.variance)
        gradient = _gaussian(np.abs(a - b) - p.diff_mean, p.diff_variance)
        return p.weight * intensity + (1.0 - p.weight) * gradient

    def __repr__(self) -> str:
        return f"GaussianAffinity({self.params!r})"

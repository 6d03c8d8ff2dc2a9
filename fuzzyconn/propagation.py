"""
Fuzzy connectedness propagation.

The connectedness of a cell c to a seed set S is the strength of the best
path from S to c, where the strength of a path is its weakest affinity:

    K(c, S) = max_{pi in Pi(S, c)} min_{(p, q) in pi} affinity(p, q)

This is a widest path problem. We solve it with a Dijkstra-like search on a
max-heap: the globally strongest pending candidate is popped and settled,
its neighbours are relaxed with min(strength, affinity), and improved
neighbours are pushed again. Outdated heap entries are dropped when popped
instead of being updated in place.
"""

import heapq
import itertools
import logging
import time
from typing import List, Sequence, Tuple

import numpy as np

from .affinity import MAX_STRENGTH, SCENE_DTYPE, Affinity
from .errors import ConfigurationError, InsufficientMemoryError

logger = logging.getLogger(__name__)


def neighbor_offsets(ndim: int, connectivity: int = 1) -> List[Tuple[int, ...]]:
    """
    Offsets of the neighbours of a cell.

    connectivity is the maximum number of orthogonal steps to reach a
    neighbour: 1 gives the 2*ndim face neighbours (4 in 2-D), ndim gives the
    full 3^ndim - 1 neighbourhood (8 in 2-D).
    """
    if not 1 <= connectivity <= max(ndim, 1):
        raise ConfigurationError(f"Connectivity must be between 1 and {ndim}, got {connectivity}")
    return [o for o in itertools.product((-1, 0, 1), repeat=ndim)
            if 0 < sum(abs(d) for d in o) <= connectivity]


def as_coordinate(seed) -> Tuple[int, ...]:
    """Convert a seed to an integer tuple, raising ConfigurationError if it is not a coordinate."""
    try:
        return tuple(int(c) for c in seed)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Seed {seed!r} is not a coordinate") from e


def validate_seeds(shape: Tuple[int, ...], seeds: Sequence[Sequence[int]]) -> List[Tuple[int, ...]]:
    """Return seeds as integer tuples, raising ConfigurationError on bad input."""
    if len(seeds) == 0:
        raise ConfigurationError("The seed set is empty, nothing to propagate from")
    out = []
    for seed in seeds:
        seed = as_coordinate(seed)
        if len(seed) != len(shape):
            raise ConfigurationError(f"Seed {seed} has {len(seed)} coordinates, image has {len(shape)} dimensions")
        if any(c < 0 or c >= n for c, n in zip(seed, shape)):
            raise ConfigurationError(f"Seed {seed} is outside the image of shape {shape}")
        out.append(seed)
    return out


def _edge_tables(padded: np.ndarray, offsets, affinity: Affinity):
    """
    Affinity of every cell to its neighbour at each offset, in padded flat order.

    Entry i of the table for offset o holds affinity(cell i, cell i + o) for
    interior cells. Border entries are never read.
    """
    inner = tuple(slice(1, n - 1) for n in padded.shape)
    a = padded[inner]
    tables = []
    for o in offsets:
        shifted = tuple(slice(1 + d, n - 1 + d) for d, n in zip(o, padded.shape))
        table = np.zeros(padded.shape, dtype=SCENE_DTYPE)
        table[inner] = affinity(a, padded[shifted])
        tables.append(table.ravel())
    return tables


def compute_scene(image: np.ndarray,
                  seeds: Sequence[Sequence[int]],
                  affinity: Affinity,
                  connectivity: int = 1) -> Tuple[np.ndarray, int]:
    """
    Compute the fuzzy connectedness scene of an image from a seed set.

    Parameters:
    ----------
    image : np.ndarray
        Input grid of any dimension with at least one cell.

    seeds : sequence of coordinates
        Cells inside the object of interest. Must be non-empty and in bounds.

    affinity : Affinity
        Affinity model used as edge weight.

    connectivity : int, optional
        Neighbourhood connectivity, see neighbor_offsets. Default: 1

    Returns:
    -------
    scene : np.ndarray
        uint16 array of the image shape. Seeds hold MAX_STRENGTH, unreachable
        cells hold 0. The array is read-only.

    pops : int
        Number of heap pops, stale entries included.

    The search loop runs in pure Python, about two seconds for a 512x512
    image with face connectivity, and grows as cells * neighbours * log(heap).
    """
    image = np.asarray(image)
    if image.size == 0:
        raise ConfigurationError(f"The image has no cells, shape {image.shape}")
    if image.ndim == 0:
        raise ConfigurationError("The image must have at least one dimension")
    if not np.isfinite(image).all():
        raise ConfigurationError("The image holds non-finite samples")
    seeds = validate_seeds(image.shape, seeds)
    offsets = neighbor_offsets(image.ndim, connectivity)
    positive = [o for o in offsets if o > tuple(0 for _ in o)]

    t0 = time.time()
    try:
        padded = np.pad(image.astype(np.float64), 1, mode="edge")
        tables = _edge_tables(padded, positive, affinity)
        scene = np.zeros(padded.size, dtype=SCENE_DTYPE)
        settled = np.ones(padded.shape, dtype=bool)
        settled[tuple(slice(1, n - 1) for n in padded.shape)] = False
        settled = settled.ravel()
    except MemoryError as e:
        raise InsufficientMemoryError(f"Not enough memory to propagate over an image of shape {image.shape}") from e

    strides = [int(s) for s in np.cumprod((padded.shape[1:] + (1,))[::-1])[::-1]]

    def flat(o):
        return sum(d * s for d, s in zip(o, strides))

    # (step, table, read the table at the neighbour instead of the cell)
    steps = [(flat(o), t, False) for o, t in zip(positive, tables)]
    steps += [(-flat(o), t, True) for o, t in zip(positive, tables)]

    heap = []
    push = heapq.heappush
    pop = heapq.heappop
    counter = 0
    for seed in seeds:
        idx = flat(tuple(c + 1 for c in seed))
        scene[idx] = MAX_STRENGTH
        push(heap, (-MAX_STRENGTH, counter, idx))
        counter += 1

    pops = 0
    while heap:
        neg, _, idx = pop(heap)
        pops += 1
        if settled[idx]:
            continue
        settled[idx] = True
        strength = -neg

        for step, table, at_neighbor in steps:
            j = idx + step
            if settled[j]:
                continue
            a = int(table[j] if at_neighbor else table[idx])
            cand = strength if strength < a else a
            if cand > scene[j]:
                scene[j] = cand
                push(heap, (-cand, counter, j))
                counter += 1

    scene = np.ascontiguousarray(scene.reshape(padded.shape)[tuple(slice(1, n - 1) for n in padded.shape)])
    scene.flags.writeable = False
    ms = (time.time() - t0) * 1000.0
    logger.info(f"Propagated {image.shape} from {len(seeds)} seeds, pops {pops}, runtime_ms {ms:.2f}")
    return scene, pops

import itertools

import pytest

np = pytest.importorskip("numpy")

from fuzzyconn.affinity import MAX_STRENGTH, Affinity, AffinityParameters, GaussianAffinity
from fuzzyconn.errors import ConfigurationError, InsufficientMemoryError
from fuzzyconn.propagation import compute_scene, neighbor_offsets


class LinearAffinity(Affinity):
    """1 - |a - b| / 255, exact in floating point on integer grids."""

    def strength(self, a, b):
        return 1.0 - np.abs(a - b) / 255.0


def brute_force_scene(image, seeds, affinity, connectivity):
    """Relax every edge until nothing changes: the max-min fixed point."""
    offsets = neighbor_offsets(image.ndim, connectivity)
    cells = list(itertools.product(*(range(n) for n in image.shape)))
    best = {c: 0 for c in cells}
    for s in seeds:
        best[tuple(s)] = MAX_STRENGTH
    changed = True
    while changed:
        changed = False
        for c in cells:
            for o in offsets:
                n = tuple(ci + oi for ci, oi in zip(c, o))
                if any(x < 0 or x >= size for x, size in zip(n, image.shape)):
                    continue
                cand = min(best[c], affinity(float(image[c]), float(image[n])))
                if cand > best[n]:
                    best[n] = cand
                    changed = True
    out = np.zeros(image.shape, dtype=np.uint16)
    for c, v in best.items():
        out[c] = v
    return out


def test_neighbor_offsets_counts():
    assert len(neighbor_offsets(2, 1)) == 4
    assert len(neighbor_offsets(2, 2)) == 8
    assert len(neighbor_offsets(3, 1)) == 6
    assert len(neighbor_offsets(3, 3)) == 26
    assert len(neighbor_offsets(1, 1)) == 2


@pytest.mark.parametrize("ndim, connectivity", [(2, 0), (2, 3), (3, 4)])
def test_neighbor_offsets_rejects_bad_connectivity(ndim, connectivity):
    with pytest.raises(ConfigurationError):
        neighbor_offsets(ndim, connectivity)


@pytest.mark.parametrize("trial", range(6))
@pytest.mark.parametrize("connectivity", [1, 2])
def test_scene_matches_brute_force_oracle(trial, connectivity):
    rng = np.random.default_rng(100 + trial)
    shape = tuple(rng.integers(2, 7, size=2))
    image = rng.integers(0, 256, size=shape).astype(float)
    n_seeds = int(rng.integers(1, 4))
    seeds = [tuple(int(rng.integers(0, n)) for n in shape) for _ in range(n_seeds)]
    aff = LinearAffinity()

    scene, pops = compute_scene(image, seeds, aff, connectivity)

    assert np.array_equal(scene, brute_force_scene(image, seeds, aff, connectivity))
    assert pops >= len(set(seeds))


def test_scene_matches_oracle_in_3d():
    rng = np.random.default_rng(7)
    image = rng.integers(0, 40, size=(3, 4, 3)).astype(float)
    aff = LinearAffinity()
    for connectivity in (1, 2, 3):
        scene, _ = compute_scene(image, [(1, 2, 1)], aff, connectivity)
        assert np.array_equal(scene, brute_force_scene(image, [(1, 2, 1)], aff, connectivity))


def test_scene_matches_oracle_with_gaussian_affinity():
    rng = np.random.default_rng(11)
    image = rng.integers(90, 111, size=(5, 6)).astype(float)
    aff = GaussianAffinity(AffinityParameters(100.0, 25.0, 3.0, 16.0, 0.5))
    scene, _ = compute_scene(image, [(0, 0), (4, 5)], aff, 1)
    assert np.array_equal(scene, brute_force_scene(image, [(0, 0), (4, 5)], aff, 1))


def test_seeds_hold_max_strength():
    rng = np.random.default_rng(5)
    image = rng.uniform(0, 255, (6, 6))
    seeds = [(0, 0), (2, 3), (5, 5), (2, 3)]
    scene, _ = compute_scene(image, seeds, LinearAffinity())
    for s in seeds:
        assert scene[s] == MAX_STRENGTH


def test_scene_is_read_only_uint16():
    scene, _ = compute_scene(np.ones((3, 3)), [(1, 1)], LinearAffinity())
    assert scene.dtype == np.uint16
    assert scene.shape == (3, 3)
    with pytest.raises(ValueError):
        scene[0, 0] = 1


def test_disconnected_component_stays_zero():
    image = np.full((5, 7), 100.0)
    image[:, 3] = 0.0
    aff = GaussianAffinity(AffinityParameters(100.0, 1.0, 0.0, 1.0, 1.0))
    scene, _ = compute_scene(image, [(2, 0)], aff, connectivity=2)
    assert np.all(scene[:, :3] == MAX_STRENGTH)
    assert np.all(scene[:, 3:] == 0)


def test_low_intensity_cell_gets_lower_strength():
    image = np.full((5, 5), 100.0)
    image[2, 2] = 10.0
    aff = GaussianAffinity(AffinityParameters(100.0, 1.0, 0.0, 1.0, 1.0))
    scene, _ = compute_scene(image, [(0, 0)], aff)
    neighbours = [scene[1, 2], scene[3, 2], scene[2, 1], scene[2, 3]]
    assert all(scene[2, 2] < n for n in neighbours)
    others = np.ones((5, 5), dtype=bool)
    others[2, 2] = False
    assert np.all(scene[others] == MAX_STRENGTH)


def test_single_cell_grid():
    scene, pops = compute_scene(np.array([[42.0]]), [(0, 0)], LinearAffinity())
    assert scene.shape == (1, 1)
    assert scene[0, 0] == MAX_STRENGTH
    assert pops == 1


def test_one_dimensional_grid():
    image = np.array([0.0, 0.0, 51.0, 51.0, 255.0])
    scene, _ = compute_scene(image, [(0,)], LinearAffinity())
    aff = LinearAffinity()
    assert list(scene) == [MAX_STRENGTH, MAX_STRENGTH, aff(0, 51), aff(0, 51), aff(51, 255)]


@pytest.mark.parametrize("image, seeds", [
    (np.zeros((4, 4)), []),
    (np.zeros((0, 4)), [(0, 0)]),
    (np.zeros((4, 4)), [(4, 0)]),
    (np.zeros((4, 4)), [(-1, 2)]),
    (np.zeros((4, 4)), [(1, 1, 1)]),
    (np.zeros((4, 4)), [("a", 1)]),
    (np.zeros((4, 4)), [1, 2]),
    (np.array(5.0), [()]),
    (np.array([[100.0, np.nan], [100.0, 100.0]]), [(0, 0)]),
    (np.array([[100.0, np.inf], [100.0, 100.0]]), [(0, 0)]),
])
def test_configuration_errors(image, seeds):
    with pytest.raises(ConfigurationError):
        compute_scene(image, seeds, LinearAffinity())


def test_allocation_failure_is_reported(monkeypatch):
    def fail(*args, **kwargs):
        raise MemoryError

    monkeypatch.setattr(np, "pad", fail)
    with pytest.raises(InsufficientMemoryError):
        compute_scene(np.zeros((4, 4)), [(0, 0)], LinearAffinity())

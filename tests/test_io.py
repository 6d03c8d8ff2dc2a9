import json

import pytest

np = pytest.importorskip("numpy")
Image = pytest.importorskip("PIL.Image")

from fuzzyconn.errors import ConfigurationError
from fuzzyconn.io import (MASK_PALETTE, find_image_seed_pairs, load_image, load_seed_points, save_mask_png,
                          save_scene_png)


def test_mask_palette_maps_object_to_white(tmp_path):
    save_mask_png(np.array([[0, 1]], dtype=np.uint8), str(tmp_path / "mask.png"))
    rgb = np.asarray(Image.open(tmp_path / "mask.png").convert("RGB"))
    assert rgb[0, 0].tolist() == MASK_PALETTE[:3]
    assert rgb[0, 1].tolist() == MASK_PALETTE[3:6]


def test_load_image_keeps_raw_intensities(tmp_path):
    arr = np.array([[0, 100], [200, 255]], dtype=np.uint8)
    Image.fromarray(arr).save(tmp_path / "img.png")
    image = load_image(str(tmp_path / "img.png"))
    assert image.dtype == np.float64
    assert np.array_equal(image, arr)

    normalized = load_image(str(tmp_path / "img.png"), normalize=True)
    assert normalized.min() == 0.0 and normalized.max() == 1.0


def test_load_image_npy_volume(tmp_path):
    vol = np.arange(24, dtype=np.int16).reshape(2, 3, 4)
    np.save(tmp_path / "vol.npy", vol)
    assert np.array_equal(load_image(str(tmp_path / "vol.npy")), vol)


def test_load_seed_points_formats(tmp_path):
    (tmp_path / "a.json").write_text(json.dumps([[1, 2], [3, 4]]))
    (tmp_path / "b.json").write_text(json.dumps({"seeds": [[0, 0, 1]]}))
    mask = np.zeros((4, 4), dtype=np.uint8)
    mask[2, 3] = 1
    np.save(tmp_path / "c.npy", mask)
    Image.fromarray(mask * 255).save(tmp_path / "d.png")

    assert load_seed_points(str(tmp_path / "a.json")) == [(1, 2), (3, 4)]
    assert load_seed_points(str(tmp_path / "b.json")) == [(0, 0, 1)]
    assert load_seed_points(str(tmp_path / "c.npy")) == [(2, 3)]
    assert load_seed_points(str(tmp_path / "d.png")) == [(2, 3)]


def test_malformed_seed_json(tmp_path):
    (tmp_path / "bad.json").write_text(json.dumps([["x", 1]]))
    with pytest.raises(ConfigurationError):
        load_seed_points(str(tmp_path / "bad.json"))


def test_save_mask_and_scene(tmp_path):
    mask = np.array([[0, 1], [1, 1]], dtype=np.uint8)
    save_mask_png(mask, str(tmp_path / "out" / "mask.png"))
    saved = Image.open(tmp_path / "out" / "mask.png")
    assert saved.mode == "P"
    assert np.array_equal(np.asarray(saved), mask)

    scene = np.array([[0, 1000], [65535, 3]], dtype=np.uint16)
    save_scene_png(scene, str(tmp_path / "scene.png"))
    assert np.array_equal(np.asarray(Image.open(tmp_path / "scene.png")).astype(np.int64), scene)

    save_scene_png(np.zeros((2, 2, 2), dtype=np.uint16), str(tmp_path / "vol_scene.png"))
    assert (tmp_path / "vol_scene.npy").exists()


def test_find_image_seed_pairs_prefers_json(tmp_path):
    images, seeds = tmp_path / "images", tmp_path / "seeds"
    images.mkdir()
    seeds.mkdir()
    for name in ("a.png", "b.png", "c.png", "notes.txt"):
        (images / name).write_bytes(b"")
    (seeds / "a.json").write_text("[]")
    (seeds / "a.npy").write_bytes(b"")
    (seeds / "b.png").write_bytes(b"")

    pairs = find_image_seed_pairs(str(images), str(seeds))
    assert pairs == [
        (str(images / "a.png"), str(seeds / "a.json")),
        (str(images / "b.png"), str(seeds / "b.png")),
        (str(images / "c.png"), None),
    ]

"""
Loading of grids and seeds, saving of masks and fuzzy scenes.
"""

import json
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image

from .errors import ConfigurationError

IMG_EXTS = {".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff", ".npy"}
SEED_EXTS = (".json", ".npy", ".png")


# --------------------------- saving ---------------------------

# Palette index 0 is background (black), 1 is object (white).
MASK_PALETTE = [0, 0, 0, 255, 255, 255]


def save_mask_png(mask: np.ndarray, out_path: str) -> None:
    """Save a 2-D binary mask as an indexed PNG, or a N-d mask as .npy."""
    m = np.asarray(mask, dtype=np.uint8)
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if m.ndim != 2:
        np.save(out_path.with_suffix(".npy"), m)
        return
    im = Image.fromarray(m)
    im.putpalette(MASK_PALETTE)
    im.save(out_path, format="PNG")


def save_scene_png(scene: np.ndarray, out_path: str) -> None:
    """Save a 2-D scene as a 16-bit grayscale PNG, or a N-d scene as .npy."""
    s = np.ascontiguousarray(scene, dtype=np.uint16)
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if s.ndim != 2:
        np.save(out_path.with_suffix(".npy"), s)
        return
    Image.fromarray(s).save(out_path, format="PNG")


# --------------------------- I O helpers ---------------------------

def load_image(path: str, normalize: bool = False) -> np.ndarray:
    """
    Load a grid of intensities.

    .npy files may hold any number of dimensions. Other files are read with
    Pillow and converted to grayscale. Raw intensities are returned as
    float64 unless normalize is set, in which case they are scaled to [0, 1].
    """
    p = Path(path)
    if p.suffix.lower() == ".npy":
        arr = np.asarray(np.load(p), dtype=np.float64)
    else:
        img = Image.open(p)
        if img.mode not in ("L", "I;16", "I", "F"):
            img = img.convert("L")
        arr = np.asarray(img).astype(np.float64)
    if normalize:
        vmin, vmax = float(arr.min()), float(arr.max())
        arr = np.zeros_like(arr) if vmax <= vmin else (arr - vmin) / (vmax - vmin)
    return arr


def load_seed_points(path: str) -> List[Tuple[int, ...]]:
    """
    Load seed coordinates.

    .json holds a list of coordinates, or an object with a "seeds" list.
    .npy and .png hold a mask whose nonzero cells are seeds.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".json":
        with open(p, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("seeds", [])
        try:
            return [tuple(int(c) for c in seed) for seed in data]
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Malformed seed list in {p}") from e
    if suffix == ".npy":
        mask = np.load(p)
    else:
        mask = np.asarray(Image.open(p))
        if mask.ndim == 3:
            mask = mask.max(axis=-1)
    return [tuple(int(c) for c in idx) for idx in np.argwhere(mask != 0)]


def find_image_seed_pairs(images_dir: str, seeds_dir: str) -> List[Tuple[str, Optional[str]]]:
    """Pair images with seed files by basename. Prefer .json, then .npy, then .png."""
    images_dir = Path(images_dir)
    seeds_dir = Path(seeds_dir)
    imgs = [p for p in images_dir.iterdir() if p.is_file() and p.suffix.lower() in IMG_EXTS]
    pairs = []
    for ip in sorted(imgs):
        seed_path = None
        for ext in SEED_EXTS:
            candidate = seeds_dir / f"{ip.stem}{ext}"
            if candidate.exists():
                seed_path = str(candidate)
                break
        pairs.append((str(ip), seed_path))
    return pairs

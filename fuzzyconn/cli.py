"""
Batch fuzzy connectedness segmentation of a directory of images.

Every image is paired by basename with a seed file (.json coordinates, or a
.npy/.png mask whose nonzero cells are seeds). The fuzzy scene is computed
once per image and thresholded at each requested threshold, so extra
thresholds cost no additional propagation.

Outputs, under <output_dir>/fuzzy_connectedness:
  <stem>_t<threshold>_index.png   binary mask, black/white palette (or .npy for N-d)
  <stem>_scene.png                16-bit fuzzy scene with --save-scene
"""

import argparse, json, logging, time
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
from tqdm import tqdm

from .affinity import MAX_STRENGTH, AffinityParameters
from .core import FuzzyConnectednessSegmenter
from .errors import FuzzyConnectednessError, ConfigurationError
from .io import find_image_seed_pairs, load_image, load_seed_points, save_mask_png, save_scene_png

METHOD_NAME = "fuzzy_connectedness"

logger = logging.getLogger(__name__)


def load_parameters(path: str) -> AffinityParameters:
    """Read AffinityParameters from a JSON object with the parameter names as keys."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    try:
        return AffinityParameters(**data).validate()
    except TypeError as e:
        raise ConfigurationError(f"Invalid parameter file {path}: {e}") from e


def resolve_parameters(args) -> Optional[AffinityParameters]:
    """Parameters from --params or the individual flags, None to estimate them."""
    if args.params:
        return load_parameters(args.params)
    values = (args.mean, args.variance, args.diff_mean, args.diff_variance)
    if all(v is None for v in values):
        return None
    if any(v is None for v in values):
        raise ConfigurationError("--mean, --variance, --diff-mean and --diff-variance must be given together")
    return AffinityParameters(*values, args.weight).validate()


def run_single_image(image_path: str, seed_path: str, params: Optional[AffinityParameters],
                     thresholds: Sequence[float], args) -> List[np.ndarray]:
    image = load_image(image_path)
    seeds = load_seed_points(seed_path)

    segmenter = FuzzyConnectednessSegmenter(image, connectivity=args.connectivity,
                                            threshold=thresholds[0],
                                            force_seeds=not args.no_force_seeds)
    segmenter.set_seeds(*seeds)
    if params is None:
        estimated = segmenter.estimate_parameters(radius=args.estimate_radius, weight=args.weight)
        logger.debug(f"{Path(image_path).stem}: estimated {estimated}")
    else:
        segmenter.set_parameters(*params)

    t0 = time.time()
    segmenter.run()
    masks = [segmenter.get_output()]
    for t in thresholds[1:]:
        segmenter.set_threshold(t)
        masks.append(segmenter.get_output())
    ms = (time.time() - t0) * 1000.0

    shape = "x".join(str(n) for n in image.shape)
    logger.info(f"{Path(image_path).stem}, {shape}, seeds {len(seeds)}, thresholds {len(thresholds)}, runtime_ms {ms:.2f}")
    if args.save_scene:
        out_root = Path(args.output_dir) / METHOD_NAME
        save_scene_png(segmenter.get_scene(), str(out_root / f"{Path(image_path).stem}_scene.png"))
    return masks


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Fuzzy connectedness seeded segmentation")
    ap.add_argument("--images_dir", type=str, required=True)
    ap.add_argument("--seeds_dir", type=str, required=True)
    ap.add_argument("--output_dir", type=str, required=True)
    ap.add_argument("--num-images", type=int, default=0, help="0 means all")
    ap.add_argument("--start-one", type=int, default=1, help="1-indexed start position")
    ap.add_argument("--connectivity", type=int, default=1,
                    help="1 for face neighbours, up to the image dimension for the full neighbourhood")
    ap.add_argument("--mean", type=float, default=None, help="estimated object mean")
    ap.add_argument("--variance", type=float, default=None, help="estimated object variance")
    ap.add_argument("--diff-mean", type=float, default=None, help="mean of neighbour differences")
    ap.add_argument("--diff-variance", type=float, default=None, help="variance of neighbour differences")
    ap.add_argument("--weight", type=float, default=0.5, help="weight of the intensity term")
    ap.add_argument("--params", type=str, default=None, help="JSON file with the affinity parameters")
    ap.add_argument("--estimate-radius", type=int, default=1,
                    help="seed window radius used when parameters are estimated")
    ap.add_argument("--threshold", type=float, action="append", default=None,
                    help=f"scene threshold in [0, {MAX_STRENGTH}], repeat for several masks")
    ap.add_argument("--no-force-seeds", action="store_true", help="do not force seeds into the object")
    ap.add_argument("--save-scene", action="store_true", help="also save the 16-bit fuzzy scene")
    ap.add_argument("--verbose", action="store_true")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")

    thresholds = args.threshold or [MAX_STRENGTH // 2]
    try:
        params = resolve_parameters(args)
    except (OSError, ConfigurationError) as e:
        logger.error(f"Invalid parameters: {e}")
        return 2

    pairs = find_image_seed_pairs(args.images_dir, args.seeds_dir)
    start_idx = max(0, int(args.start_one) - 1)
    if start_idx >= len(pairs):
        logger.info(json.dumps({"processed": 0, "skipped": len(pairs), "reason": "start index beyond input"}))
        return 0
    end_idx = len(pairs) if args.num_images == 0 else min(len(pairs), start_idx + int(args.num_images))
    work_list = pairs[start_idx:end_idx]

    out_root = Path(args.output_dir) / METHOD_NAME
    out_root.mkdir(parents=True, exist_ok=True)

    processed, skipped = 0, 0
    times = []

    with tqdm(total=len(work_list), desc="FC") as pbar:
        for img_path, seed_path in work_list:
            base = Path(img_path).stem
            if seed_path is None:
                logger.error(f"Missing seeds for {base}, skipping")
                skipped += 1
                pbar.update(1)
                continue
            try:
                t0 = time.time()
                masks = run_single_image(img_path, seed_path, params, thresholds, args)
                for t, mask in zip(thresholds, masks):
                    save_mask_png(mask, str(out_root / f"{base}_t{t:g}_index.png"))
                times.append((time.time() - t0) * 1000.0)
                processed += 1
            except (FuzzyConnectednessError, OSError, ValueError) as e:
                logger.error(f"Error on {base}: {e}")
                skipped += 1
            pbar.update(1)

    print(json.dumps({
        "total": len(work_list),
        "processed": processed,
        "skipped": skipped,
        "avg_runtime_ms": float(np.mean(times)) if times else None,
        "median_runtime_ms": float(np.median(times)) if times else None,
        "connectivity": int(args.connectivity),
        "thresholds": [float(t) for t in thresholds],
        "method": METHOD_NAME
    }))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

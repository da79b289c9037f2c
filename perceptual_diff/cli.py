"""Command-line entry point: compare two image files.

Usage:
    perceptual-diff ref.png candidate.png
    perceptual-diff ref.png candidate.png -t 2 -d outputs/diff.png
    perceptual-diff ref.png candidate.png --exact --json
    perceptual-diff ref.png candidate.png --config configs/diff.v1.yaml

Exit codes:
    0: images are equal
    1: images differ (diff image written when -d is given)
    2: invalid arguments/config or unreadable images

Command-line flags override values from --config.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .diff import comparator_from_config, compare, render_diff
from .diff.types import DiffResult
from .utils import fs, logging_config, validators

logger = logging.getLogger(__name__)

EXIT_EQUAL = 0
EXIT_DIFFERENT = 1
EXIT_ERROR = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="perceptual-diff",
        description="Compare two images using the CIEDE2000 color difference",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('ref_image', help='Path to reference image')
    parser.add_argument('image', help='Path to image')
    parser.add_argument(
        '-t', '--tolerance',
        type=float,
        default=None,
        help='Tolerance for image diff (floored ΔE2000 must be below it), default: 0'
    )
    parser.add_argument(
        '-d', '--diff-image',
        type=str,
        default=None,
        help='Path for saving diff output image'
    )
    parser.add_argument(
        '--exact',
        action='store_true',
        help='Match channel-identical pixels only'
    )
    parser.add_argument('--config', type=str, default=None, help='Path to diff.v1.yaml')
    parser.add_argument('--workers', type=int, default=None, help='Worker threads')
    parser.add_argument('--chunk-rows', type=int, default=None, help='Rows per work band')
    parser.add_argument('--json', action='store_true', help='Print the result as JSON')
    parser.add_argument(
        '--log-level',
        type=str,
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Log level (overrides config)'
    )
    parser.add_argument('--log-json', action='store_true', help='Emit logs as JSON lines')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> validators.DiffConfig:
    """Load --config (or defaults) and apply command-line overrides.

    Raises
    ------
    FileNotFoundError
        If --config points to a missing file
    ValueError
        If the merged configuration is invalid
    """
    cfg = validators.load_diff_config(args.config) if args.config else validators.DiffConfig()

    data = cfg.model_dump()
    if args.tolerance is not None:
        data['tolerance'] = args.tolerance
    if args.exact:
        data['mode'] = 'exact'
    if args.workers is not None:
        data['workers'] = args.workers
    if args.chunk_rows is not None:
        data['chunk_rows'] = args.chunk_rows
    if args.log_level is not None:
        data['logging']['level'] = args.log_level
    if args.log_json:
        data['logging']['json_format'] = True

    try:
        return validators.DiffConfig(**data)
    except Exception as e:
        raise ValueError(f"Invalid options: {e}") from e


def _report(args: argparse.Namespace, result: DiffResult, diff_path: Optional[Path]) -> None:
    if args.json:
        payload = {
            'ref_image': str(Path(args.ref_image).resolve()),
            'image': str(Path(args.image).resolve()),
            'diff_image': str(diff_path.resolve()) if diff_path else None,
            **result.to_dict(),
        }
        print(json.dumps(payload))
        return

    if result.equal:
        return
    print(f"Images {args.ref_image} and {args.image} differ!")
    box = result.bounding_box
    if box is not None:
        print(
            f"Diff area xmin={box.xmin} ymin={box.ymin} xmax={box.xmax} ymax={box.ymax} "
            f"({result.differing_pixels} pixels)"
        )
    if result.extent_mismatch:
        (w1, h1), (w2, h2) = result.size1, result.size2
        print(f"Image sizes differ: {w1}x{h1} vs {w2}x{h2}")
    if diff_path is not None:
        print(f"diff image saved to {diff_path}")


def run(args: argparse.Namespace, cfg: validators.DiffConfig) -> int:
    """Compare the two images named in args; return the exit code."""
    comparator = comparator_from_config(cfg)
    logger.debug(f"Using {comparator.describe()} comparator, workers={cfg.workers}")

    ref = fs.load_image(args.ref_image)
    img = fs.load_image(args.image)

    result = compare(ref, img, comparator, chunk_rows=cfg.chunk_rows, workers=cfg.workers)

    diff_path = None
    if not result.equal:
        logger.info(f"Images differ: {result.differing_pixels} pixels, box={result.bounding_box}")
        if args.diff_image:
            rendered = render_diff(
                ref, img, comparator,
                highlight=cfg.highlight_color,
                chunk_rows=cfg.chunk_rows,
                workers=cfg.workers,
            )
            diff_path = fs.atomic_save_image(rendered, args.diff_image)
            logger.info(f"Diff image saved to {diff_path}")
    else:
        logger.info("Images are equal")

    _report(args, result, diff_path)
    return EXIT_EQUAL if result.equal else EXIT_DIFFERENT


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        cfg = resolve_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR

    try:
        logging_config.setup_logging(
            cfg.logging.level,
            cfg.logging.file,
            json=cfg.logging.json_format,
            color=cfg.logging.color,
            context={'app': 'perceptual-diff'},
        )
    except (OSError, ValueError) as e:
        print(f"error: cannot set up logging: {e}", file=sys.stderr)
        return EXIT_ERROR

    with logging_config.log_context(ref=args.ref_image, image=args.image):
        try:
            return run(args, cfg)
        except (FileNotFoundError, ValueError, RuntimeError) as e:
            logger.error(str(e))
            print(f"error: {e}", file=sys.stderr)
            return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())

"""Filesystem helpers: image decode/encode and YAML loading.

Provides:
    - Image decoding via Pillow into uint8 RGB/RGBA pixel buffers
    - Atomic image writes: tmp file → rename (no partially written diffs)
    - YAML loading (safe_load)
    - Directory creation with exist_ok semantics

This is the only module that touches image files; the diff core works on
decoded numpy buffers.

Usage:
    from perceptual_diff.utils import fs
    ref = fs.load_image("ref.png")
    fs.atomic_save_image(diff_rgb, "out/diff.png")
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import yaml
from PIL import Image, UnidentifiedImageError


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory (and parents) if missing, return Path object."""
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def pil_to_array(img: Image.Image) -> np.ndarray:
    """Convert a Pillow image to a uint8 pixel buffer.

    Parameters
    ----------
    img : PIL.Image.Image
        Any-mode Pillow image

    Returns
    -------
    np.ndarray
        (H, W, 4) uint8 when the image carries alpha (RGBA, LA, PA or a
        palette with transparency), (H, W, 3) uint8 otherwise
    """
    has_alpha = img.mode in ("RGBA", "LA", "PA") or (
        img.mode == "P" and "transparency" in img.info
    )
    target = "RGBA" if has_alpha else "RGB"
    if img.mode != target:
        img = img.convert(target)
    return np.asarray(img, dtype=np.uint8).copy()


def load_image(path: Union[str, Path]) -> np.ndarray:
    """Decode an image file into a uint8 RGB/RGBA pixel buffer.

    Parameters
    ----------
    path : Union[str, Path]
        Image file path (any format Pillow can read)

    Returns
    -------
    np.ndarray
        Pixel buffer, see pil_to_array()

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    ValueError
        If the file can't be decoded as an image
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    try:
        with Image.open(path) as img:
            img.load()
            return pil_to_array(img)
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Failed to decode image {path}: {e}") from e


def atomic_save_image(
    img: np.ndarray,
    path: Union[str, Path],
    pil_kwargs: Optional[Dict[str, Any]] = None
) -> Path:
    """Save image atomically (prevents partial reads).

    Parameters
    ----------
    img : np.ndarray
        (H, W, 3) / (H, W, 4) / (H, W) image; non-uint8 is clipped to [0, 255]
    path : Union[str, Path]
        Target file path (extension determines format)
    pil_kwargs : Optional[Dict[str, Any]]
        Additional kwargs for PIL.Image.save (e.g., optimize=True)

    Returns
    -------
    Path
        The written path

    Notes
    -----
    The tmp file keeps the target extension so Pillow picks the same format.
    """
    path = Path(path)
    pil_kwargs = pil_kwargs or {}

    if img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)
    if img.ndim == 3 and img.shape[2] == 1:
        img = img.squeeze(2)

    pil_img = Image.fromarray(np.ascontiguousarray(img))

    tmp_path = path.with_name(path.stem + ".tmp" + path.suffix)
    try:
        ensure_dir(path.parent)
        pil_img.save(tmp_path, **pil_kwargs)
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to save image {path} atomically: {e}") from e
    return path


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e

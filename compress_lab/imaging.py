"""
Image input/output around the compression engines.

Decoding, resizing, cropping and encoding are delegated to Pillow. The
engines themselves only see numpy arrays.
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image

PathLike = Union[str, Path]


def load_image(path: PathLike, scale: int = 1) -> Image.Image:
    """
    Decode an image as RGB and shrink it by an integer factor.

    Errors from missing or undecodable files propagate to the caller.
    """
    with Image.open(path) as img:
        image = img.convert('RGB')
    if scale > 1:
        width, height = image.size
        image = image.resize((width // scale, height // scale), Image.Resampling.NEAREST)
    return image


def crop_to_multiple(image: Image.Image, multiple: int) -> Image.Image:
    """Crop from the top-left so both sides are multiples of `multiple`."""
    width, height = image.size
    width -= width % multiple
    height -= height % multiple
    if width == 0 or height == 0:
        raise ValueError(
            f"Image {image.size[0]}x{image.size[1]} is smaller than one {multiple}px tile"
        )
    return image.crop((0, 0, width, height))


def to_array(image: Image.Image) -> np.ndarray:
    """(H, W, 3) uint8 array of an RGB image."""
    return np.asarray(image.convert('RGB'), dtype=np.uint8)


def quantize(buffer: np.ndarray) -> np.ndarray:
    """Clamp to [0, 1] and round half up to 8-bit samples."""
    clipped = np.clip(np.asarray(buffer, dtype=float), 0.0, 1.0)
    return np.floor(clipped * 255 + 0.5).astype(np.uint8)


def rgb_from_unit(buffer: np.ndarray) -> Image.Image:
    """RGB image from an (H, W, 3) buffer of normalized values."""
    buffer = np.asarray(buffer)
    if buffer.ndim != 3 or buffer.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) buffer, got shape {buffer.shape}")
    return Image.fromarray(quantize(buffer))


def gray_from_unit(buffer: np.ndarray, side: Optional[int] = None) -> Image.Image:
    """Grayscale image from an (N, N) or flattened buffer of normalized values."""
    buffer = np.asarray(buffer)
    if buffer.ndim == 1:
        side = side or int(round(np.sqrt(buffer.size)))
        buffer = buffer.reshape(side, -1)
    return Image.fromarray(quantize(buffer))


def save_png(image: Image.Image, path: PathLike) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path, format='PNG')
    return path


def save_jpeg(image: Image.Image, path: PathLike, quality: int = 45) -> Path:
    """Lossy reference encoding at a fixed quality."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    image.convert('RGB').save(path, format='JPEG', quality=quality)
    return path

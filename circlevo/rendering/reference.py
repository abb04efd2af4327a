from __future__ import annotations

from pathlib import Path

from loguru import logger
import numpy as np
from PIL import Image

from circlevo.exceptions import InvalidConfigurationError

__all__ = ["ReferenceImage", "load_reference", "save_rendering"]


class ReferenceImage:
    """Immutable row-major RGBA buffer the population is compared against."""

    __slots__ = ("_pixels",)

    def __init__(self, pixels: np.ndarray):
        pixels = np.asarray(pixels)
        if pixels.ndim == 2:
            pixels = np.stack([pixels] * 3, axis=-1)
        if pixels.ndim != 3 or pixels.shape[-1] not in (3, 4):
            raise InvalidConfigurationError(
                f"Reference must be (height, width, 3|4), got {pixels.shape}"
            )
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise InvalidConfigurationError(
                f"Reference buffer has zero area: {pixels.shape[1]}x{pixels.shape[0]}"
            )
        if pixels.shape[-1] == 3:
            alpha = np.full(pixels.shape[:2] + (1,), 255, dtype=np.uint8)
            pixels = np.concatenate([pixels.astype(np.uint8), alpha], axis=-1)

        frozen = np.array(pixels, dtype=np.uint8, copy=True)
        frozen.flags.writeable = False
        self._pixels = frozen

    @classmethod
    def from_bytes(cls, data: bytes, width: int, height: int) -> ReferenceImage:
        if width <= 0 or height <= 0:
            raise InvalidConfigurationError(
                f"Reference buffer has zero area: {width}x{height}"
            )
        expected = width * height * 4
        if len(data) != expected:
            raise InvalidConfigurationError(
                f"Expected {expected} RGBA bytes for {width}x{height}, got {len(data)}"
            )
        return cls(np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4))

    @classmethod
    def filled(cls, width: int, height: int, rgba: tuple[int, int, int, int]) -> ReferenceImage:
        if width <= 0 or height <= 0:
            raise InvalidConfigurationError(
                f"Reference buffer has zero area: {width}x{height}"
            )
        return cls(np.tile(np.array(rgba, dtype=np.uint8), (height, width, 1)))

    @property
    def pixels(self) -> np.ndarray:
        return self._pixels

    @property
    def width(self) -> int:
        return int(self._pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self._pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def resample(self, width: int, height: int) -> ReferenceImage:
        """Return a copy resized to ``width x height`` (same object if unchanged)."""
        if (width, height) == self.size:
            return self
        if width <= 0 or height <= 0:
            raise InvalidConfigurationError(
                f"Cannot resample reference to zero area: {width}x{height}"
            )
        img = Image.fromarray(self._pixels.copy())
        resized = img.resize((width, height), Image.Resampling.BILINEAR)
        logger.debug(
            "[ReferenceImage] Resampled {}x{} -> {}x{}",
            self.width,
            self.height,
            width,
            height,
        )
        return ReferenceImage(np.asarray(resized))

    def __repr__(self) -> str:
        return f"ReferenceImage({self.width}x{self.height})"


def load_reference(
    path: str | Path, size: tuple[int, int] | None = None
) -> ReferenceImage:
    """Load an image file as an opaque RGBA reference, optionally resized."""
    path = Path(path)
    if not path.is_file():
        raise InvalidConfigurationError(f"Reference image not found: {path}")
    with Image.open(path) as img:
        rgba = img.convert("RGBA")
        if size is not None:
            rgba = rgba.resize(size, Image.Resampling.BILINEAR)
        pixels = np.asarray(rgba).copy()
    # The rendered canvas is opaque, so compare against an opaque target.
    pixels[..., 3] = 255
    logger.info("[ReferenceImage] Loaded {} ({}x{})", path, pixels.shape[1], pixels.shape[0])
    return ReferenceImage(pixels)


def save_rendering(pixels: np.ndarray, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(path)
    logger.info("[ReferenceImage] Saved rendering to {}", path)
    return path

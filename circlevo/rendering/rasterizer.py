"""Turn a chromosome into an RGBA pixel buffer.

Circles are painted in genome order on an opaque black canvas, later circles
over earlier ones, with straight alpha blending. Circles reaching outside the
canvas are clipped by it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np
from PIL import Image, ImageDraw

from circlevo.genome.gene import CircleGene

if TYPE_CHECKING:
    from circlevo.genome.chromosome import Chromosome

__all__ = [
    "DEFAULT_MAX_RADIUS",
    "DEFAULT_MIN_RADIUS",
    "NumpyRasterizer",
    "PillowRasterizer",
    "Rasterizer",
    "build_rasterizer",
]

DEFAULT_MIN_RADIUS = 10
DEFAULT_MAX_RADIUS = 25


class Rasterizer(ABC):
    """Deterministic genome-to-pixels renderer."""

    def __init__(
        self,
        min_radius: float = DEFAULT_MIN_RADIUS,
        max_radius: float = DEFAULT_MAX_RADIUS,
    ):
        if min_radius < 0 or max_radius < min_radius:
            raise ValueError(
                f"Invalid radius range [{min_radius}, {max_radius}]"
            )
        self.min_radius = min_radius
        self.max_radius = max_radius

    def pixel_radius(self, gene: CircleGene, ratio: float = 1.0) -> float:
        """Radius in pixels at display resolution, scaled by *ratio*."""
        radius = round(gene.radius * (self.max_radius - self.min_radius) + self.min_radius)
        return radius * ratio

    def rasterize(
        self,
        chromosome: Chromosome,
        width: int,
        height: int,
        scale_ratio: float = 1.0,
    ) -> np.ndarray:
        """Render *chromosome* into a ``(height, width, 4)`` uint8 array."""
        return self.rasterize_circles(chromosome.circles(), width, height, scale_ratio)

    @abstractmethod
    def rasterize_circles(
        self, circles, width: int, height: int, scale_ratio: float = 1.0
    ) -> np.ndarray:
        ...


class NumpyRasterizer(Rasterizer):
    """Software rasterizer painting pixel centres that fall inside each circle."""

    def rasterize_circles(
        self, circles, width: int, height: int, scale_ratio: float = 1.0
    ) -> np.ndarray:
        canvas = np.zeros((height, width, 3), dtype=np.float64)

        for gene in circles:
            radius = self.pixel_radius(gene, scale_ratio)
            if radius <= 0 or gene.a <= 0:
                continue
            cx = gene.x * width
            cy = gene.y * height

            x0 = max(0, int(np.floor(cx - radius)))
            x1 = min(width, int(np.ceil(cx + radius)) + 1)
            y0 = max(0, int(np.floor(cy - radius)))
            y1 = min(height, int(np.ceil(cy + radius)) + 1)
            if x0 >= x1 or y0 >= y1:
                continue

            ys = np.arange(y0, y1, dtype=np.float64)[:, None] + 0.5
            xs = np.arange(x0, x1, dtype=np.float64)[None, :] + 0.5
            mask = (xs - cx) ** 2 + (ys - cy) ** 2 <= radius * radius
            if not mask.any():
                continue

            color = np.array([gene.r, gene.g, gene.b], dtype=np.float64) * 255.0
            region = canvas[y0:y1, x0:x1]
            region[mask] = region[mask] * (1.0 - gene.a) + color * gene.a

        out = np.empty((height, width, 4), dtype=np.uint8)
        out[..., :3] = np.clip(np.rint(canvas), 0, 255).astype(np.uint8)
        out[..., 3] = 255
        return out


class PillowRasterizer(Rasterizer):
    """Rasterizer backed by ``PIL.ImageDraw`` and alpha compositing."""

    def rasterize_circles(
        self, circles, width: int, height: int, scale_ratio: float = 1.0
    ) -> np.ndarray:
        img = Image.new("RGBA", (width, height), (0, 0, 0, 255))
        for gene in circles:
            radius = self.pixel_radius(gene, scale_ratio)
            if radius <= 0 or gene.a <= 0:
                continue
            layer = Image.new("RGBA", (width, height), (0, 0, 0, 0))
            draw = ImageDraw.Draw(layer, "RGBA")
            cx = gene.x * width
            cy = gene.y * height
            color = (
                int(round(gene.r * 255)),
                int(round(gene.g * 255)),
                int(round(gene.b * 255)),
                int(round(gene.a * 255)),
            )
            draw.ellipse([cx - radius, cy - radius, cx + radius, cy + radius], fill=color)
            img.alpha_composite(layer)
        return np.asarray(img, dtype=np.uint8).copy()


RASTERIZERS: dict[str, type[Rasterizer]] = {
    "numpy": NumpyRasterizer,
    "pillow": PillowRasterizer,
}


def build_rasterizer(
    name: str = "numpy",
    min_radius: float = DEFAULT_MIN_RADIUS,
    max_radius: float = DEFAULT_MAX_RADIUS,
) -> Rasterizer:
    try:
        rasterizer_cls = RASTERIZERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown rasterizer '{name}', expected one of {sorted(RASTERIZERS)}"
        ) from None
    return rasterizer_cls(min_radius=min_radius, max_radius=max_radius)

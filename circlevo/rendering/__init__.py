from circlevo.rendering.rasterizer import (
    NumpyRasterizer,
    PillowRasterizer,
    Rasterizer,
    build_rasterizer,
)
from circlevo.rendering.reference import ReferenceImage, load_reference, save_rendering

__all__ = [
    "NumpyRasterizer",
    "PillowRasterizer",
    "Rasterizer",
    "ReferenceImage",
    "build_rasterizer",
    "load_reference",
    "save_rendering",
]

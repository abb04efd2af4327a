"""Gene encodings.

Every scalar carried by a gene lives in ``[0, 1]``. Genes are frozen: a
mutation replaces the whole gene object rather than one of its fields.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import astuple, dataclass, fields
from typing import ClassVar, Union

import numpy as np

from circlevo.exceptions import GeneLengthMismatchError

__all__ = ["CircleGene", "Gene", "ScalarGene", "clip_unit"]


def clip_unit(value: float) -> float:
    value = float(value)
    if not np.isfinite(value):
        return 0.0
    return min(1.0, max(0.0, value))


@dataclass(frozen=True, slots=True)
class ScalarGene:
    """A single evolvable parameter."""

    WIDTH: ClassVar[int] = 1

    scalar: float

    @classmethod
    def random(cls, rng: np.random.Generator) -> ScalarGene:
        return cls(float(rng.random()))

    @classmethod
    def from_values(cls, values: Sequence[float] | float) -> ScalarGene:
        if np.isscalar(values):
            return cls(clip_unit(values))  # type: ignore[arg-type]
        values = list(values)  # type: ignore[arg-type]
        if len(values) != cls.WIDTH:
            raise GeneLengthMismatchError(
                f"ScalarGene expects {cls.WIDTH} value, got {len(values)}"
            )
        return cls(clip_unit(values[0]))

    def value(self) -> float:
        return self.scalar

    def values(self) -> tuple[float, ...]:
        return (self.scalar,)


@dataclass(frozen=True, slots=True)
class CircleGene:
    """A translucent circle: centre, radius, straight-alpha RGBA color.

    ``x`` and ``y`` are fractions of the canvas size, ``radius`` is mapped onto
    the rasterizer's radius range, and ``r``/``g``/``b``/``a`` are color
    intensities.
    """

    WIDTH: ClassVar[int] = 7

    x: float
    y: float
    radius: float
    r: float
    g: float
    b: float
    a: float

    @classmethod
    def random(cls, rng: np.random.Generator) -> CircleGene:
        return cls(*(float(v) for v in rng.random(cls.WIDTH)))

    @classmethod
    def from_values(cls, values: Sequence[float]) -> CircleGene:
        values = list(values)
        if len(values) != cls.WIDTH:
            raise GeneLengthMismatchError(
                f"CircleGene expects {cls.WIDTH} values, got {len(values)}"
            )
        return cls(*(clip_unit(v) for v in values))

    def value(self) -> tuple[float, ...]:
        return astuple(self)

    def values(self) -> tuple[float, ...]:
        return tuple(getattr(self, f.name) for f in fields(self))


Gene = Union[ScalarGene, CircleGene]

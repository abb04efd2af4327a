from __future__ import annotations

from abc import ABC, abstractmethod
import math

from loguru import logger
import numpy as np

from circlevo.fitness.color import (
    compare_color,
    compare_color_squared,
    compare_color_strict,
)

__all__ = [
    "AbsoluteDifferenceMetric",
    "FitnessMetric",
    "METRICS",
    "PerceptualDistanceMetric",
    "SquaredChannelMetric",
    "StrictChannelMetric",
    "build_metric",
    "finite_or_zero",
]


def finite_or_zero(value: float, source: str = "metric") -> float:
    """Coerce NaN/inf to 0 so a single bad score never poisons sorting."""
    value = float(value)
    if math.isfinite(value):
        return value
    logger.debug("[{}] Degenerate score {} coerced to 0", source, value)
    return 0.0


class FitnessMetric(ABC):
    """Scalar similarity between a rendered buffer and a reference buffer.

    Both buffers are ``(height, width, 4)`` uint8 RGBA arrays of the same shape.
    Higher is better.
    """

    name: str = "metric"

    def score(self, rendered: np.ndarray, reference: np.ndarray) -> float:
        if rendered.shape != reference.shape:
            raise ValueError(
                f"Buffer shapes differ: rendered={rendered.shape}, reference={reference.shape}"
            )
        if rendered.size == 0:
            logger.debug("[{}] Empty buffers, score defaults to 0", type(self).__name__)
            return 0.0
        with np.errstate(invalid="ignore", divide="ignore"):
            raw = self._score(rendered, reference)
        return finite_or_zero(raw, type(self).__name__)

    @abstractmethod
    def _score(self, rendered: np.ndarray, reference: np.ndarray) -> float:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class _SampledPixelMetric(FitnessMetric):
    """Averages a per-pixel color similarity over every *stride*-th pixel."""

    def __init__(self, stride: int = 1):
        if stride < 1:
            raise ValueError(f"stride must be at least 1, got {stride}")
        self.stride = stride

    def _score(self, rendered: np.ndarray, reference: np.ndarray) -> float:
        ren = rendered.reshape(-1, rendered.shape[-1])[:: self.stride]
        ref = reference.reshape(-1, reference.shape[-1])[:: self.stride]
        if len(ren) == 0:
            return 0.0
        similarity = self._compare(
            ref[:, 0], ref[:, 1], ref[:, 2], ren[:, 0], ren[:, 1], ren[:, 2]
        )
        return float(np.mean(similarity))

    @abstractmethod
    def _compare(self, r1, g1, b1, r2, g2, b2) -> np.ndarray:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(stride={self.stride})"


class PerceptualDistanceMetric(_SampledPixelMetric):
    name = "perceptual"

    def _compare(self, r1, g1, b1, r2, g2, b2) -> np.ndarray:
        return compare_color(r1, g1, b1, r2, g2, b2)


class StrictChannelMetric(_SampledPixelMetric):
    """Averaged-channel similarity; sampled every fifth pixel by default."""

    name = "strict"

    def __init__(self, stride: int = 5):
        super().__init__(stride)

    def _compare(self, r1, g1, b1, r2, g2, b2) -> np.ndarray:
        return compare_color_strict(r1, g1, b1, r2, g2, b2)


class SquaredChannelMetric(_SampledPixelMetric):
    name = "squared"

    def _compare(self, r1, g1, b1, r2, g2, b2) -> np.ndarray:
        return compare_color_squared(r1, g1, b1, r2, g2, b2)


class AbsoluteDifferenceMetric(FitnessMetric):
    """``1 - sum(|reference - rendered|) / (num_pixels * 255)``.

    The sum runs over every channel of the buffer. Cheaper than the perceptual
    metric and unbounded below (an inverted image scores around ``-2``).
    """

    name = "difference"

    def _score(self, rendered: np.ndarray, reference: np.ndarray) -> float:
        num_pixels = rendered.shape[0] * rendered.shape[1]
        if num_pixels == 0:
            return 0.0
        diff = np.abs(reference.astype(np.int64) - rendered.astype(np.int64)).sum()
        return 1.0 - float(diff) / (num_pixels * 255.0)


METRICS: dict[str, type[FitnessMetric]] = {
    PerceptualDistanceMetric.name: PerceptualDistanceMetric,
    AbsoluteDifferenceMetric.name: AbsoluteDifferenceMetric,
    StrictChannelMetric.name: StrictChannelMetric,
    SquaredChannelMetric.name: SquaredChannelMetric,
}


def build_metric(name: str, stride: int | None = None) -> FitnessMetric:
    try:
        metric_cls = METRICS[name]
    except KeyError:
        raise ValueError(
            f"Unknown fitness metric '{name}', expected one of {sorted(METRICS)}"
        ) from None
    if stride is not None and issubclass(metric_cls, _SampledPixelMetric):
        return metric_cls(stride=stride)
    return metric_cls()

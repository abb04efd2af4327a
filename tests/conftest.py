import numpy as np
import pytest

from circlevo.evolution.engine import RunConfig
from circlevo.fitness.metrics import FitnessMetric
from circlevo.rendering.reference import ReferenceImage


class ScriptedMetric(FitnessMetric):
    """Returns pre-recorded scores in order, repeating the last one."""

    name = "scripted"

    def __init__(self, scores):
        self.scores = list(scores)
        self.calls = 0

    def _score(self, rendered, reference):
        value = self.scores[min(self.calls, len(self.scores) - 1)]
        self.calls += 1
        return value


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def gradient_reference():
    h, w = 12, 12
    pixels = np.zeros((h, w, 4), dtype=np.uint8)
    pixels[..., 0] = np.linspace(0, 255, w, dtype=np.uint8)[None, :]
    pixels[..., 1] = np.linspace(255, 0, h, dtype=np.uint8)[:, None]
    pixels[..., 2] = 96
    pixels[..., 3] = 255
    return ReferenceImage(pixels)


@pytest.fixture
def small_config():
    return RunConfig(
        population_size=6,
        max_generation=4,
        genome_length=5,
        compute_width=12,
        compute_height=12,
        min_radius=2,
        max_radius=5,
        seed=7,
    )

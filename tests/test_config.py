import pytest

from circlevo.evolution.engine import RunConfig
from circlevo.exceptions import InvalidConfigurationError, ValidationError


def test_defaults():
    config = RunConfig()
    assert config.population_size == 100
    assert config.mutation_rate == 0.3
    assert config.selection_rate == 0.4
    assert config.compute_size == (75, 75)
    assert config.display_size == (75, 75)
    assert config.fitness_metric == "difference"
    assert config.compliance_metric == "strict"


@pytest.mark.parametrize(
    "overrides",
    [
        {"population_size": 0},
        {"max_generation": 0},
        {"genome_length": -1},
        {"mutation_rate": 1.5},
        {"selection_rate": 0.0},
        {"compute_width": 0},
        {"fitness_metric": "psnr"},
        {"crossover": "uniform"},
        {"min_radius": 30, "max_radius": 10},
        {"encoding": "scalar", "genome_length": 10},
        {"unknown_option": 1},
    ],
)
def test_invalid_configuration_is_rejected(overrides):
    with pytest.raises(InvalidConfigurationError):
        RunConfig.parse(overrides)


def test_invalid_configuration_is_a_validation_error():
    with pytest.raises(ValidationError):
        RunConfig.parse({"population_size": -3})


def test_parse_merges_overrides():
    config = RunConfig.parse({"population_size": 20}, max_generation=5)
    assert config.population_size == 20
    assert config.max_generation == 5


def test_ratio_scales_display_to_compute():
    config = RunConfig(compute_width=75, compute_height=75, display_width=300, display_height=300)
    assert config.display_size == (300, 300)
    assert config.ratio == pytest.approx(0.25)

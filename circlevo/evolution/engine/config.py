from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from circlevo.exceptions import InvalidConfigurationError


class RunConfig(BaseModel):
    """Configuration options controlling an evolution run."""

    population_size: int = Field(default=100, gt=0)
    max_generation: int = Field(
        default=1000, gt=0, description="Generation budget of one run"
    )
    genome_length: int = Field(
        default=50,
        gt=0,
        description="Circles per genome (scalars per genome for the flat encoding)",
    )
    encoding: Literal["circle", "scalar"] = "circle"

    mutation_rate: float = Field(default=0.3, ge=0.0, le=1.0)
    selection_rate: float = Field(default=0.4, gt=0.0, le=1.0)
    mutate_elites: bool = Field(
        default=True, description="Whether survivors are also exposed to mutation"
    )
    crossover: Literal["single_point", "two_point"] = "single_point"
    parent_selection: Literal["roulette", "uniform"] = "roulette"

    compute_width: int = Field(default=75, gt=0)
    compute_height: int = Field(default=75, gt=0)
    display_width: int | None = Field(
        default=None, gt=0, description="Defaults to compute_width"
    )
    display_height: int | None = Field(
        default=None, gt=0, description="Defaults to compute_height"
    )
    rasterizer: Literal["numpy", "pillow"] = "numpy"
    min_radius: float = Field(default=10.0, ge=0.0)
    max_radius: float = Field(default=25.0, gt=0.0)

    fitness_metric: Literal["perceptual", "difference", "strict", "squared"] = "difference"
    compliance_metric: Literal["perceptual", "difference", "strict", "squared"] = "strict"
    compliance_stride: int = Field(default=5, gt=0)
    elitist_rollback: bool = Field(
        default=True,
        description="Restore the best-so-far population when compliance regresses",
    )

    evaluation: Literal["sync", "parallel"] = "sync"
    workers: int | None = Field(default=None, gt=0)
    evaluation_timeout: float | None = Field(
        default=None, gt=0, description="Seconds before the fitness barrier fails"
    )
    use_processes: bool = False

    seed: int | None = None

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @model_validator(mode="after")
    def _check_ranges(self) -> RunConfig:
        if self.max_radius < self.min_radius:
            raise ValueError(
                f"max_radius ({self.max_radius}) must be >= min_radius ({self.min_radius})"
            )
        if self.encoding == "scalar" and self.genome_length % 7:
            raise ValueError(
                f"scalar genome_length must be a multiple of 7, got {self.genome_length}"
            )
        return self

    @classmethod
    def parse(cls, data: Mapping[str, Any] | None = None, **overrides: Any) -> RunConfig:
        """Validate *data* (plus *overrides*), raising InvalidConfigurationError."""
        payload = {**(data or {}), **overrides}
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise InvalidConfigurationError(f"Invalid run configuration: {exc}") from exc

    @property
    def display_size(self) -> tuple[int, int]:
        return (
            self.display_width or self.compute_width,
            self.display_height or self.compute_height,
        )

    @property
    def compute_size(self) -> tuple[int, int]:
        return self.compute_width, self.compute_height

    @property
    def ratio(self) -> float:
        """Radius scale from display resolution down to compute resolution."""
        return self.compute_width / self.display_size[0]

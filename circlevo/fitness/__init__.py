from circlevo.fitness.color import (
    compare_color,
    compare_color_squared,
    compare_color_strict,
)
from circlevo.fitness.evaluator import (
    EvaluationJob,
    FitnessEvaluator,
    ParallelFitnessEvaluator,
    SyncFitnessEvaluator,
    run_evaluation_job,
)
from circlevo.fitness.metrics import (
    AbsoluteDifferenceMetric,
    FitnessMetric,
    PerceptualDistanceMetric,
    SquaredChannelMetric,
    StrictChannelMetric,
    build_metric,
)

__all__ = [
    "AbsoluteDifferenceMetric",
    "EvaluationJob",
    "FitnessEvaluator",
    "FitnessMetric",
    "ParallelFitnessEvaluator",
    "PerceptualDistanceMetric",
    "SquaredChannelMetric",
    "StrictChannelMetric",
    "SyncFitnessEvaluator",
    "build_metric",
    "compare_color",
    "compare_color_squared",
    "compare_color_strict",
    "run_evaluation_job",
]

class CirclevoError(Exception):
    """Base for all circlevo exceptions."""

    pass


# High-level families
class ValidationError(CirclevoError):
    """Data validation failures."""

    pass


class GenomeError(CirclevoError):
    """Genome construction or manipulation failures."""

    pass


class EvolutionError(CirclevoError):
    """Evolution process failures."""

    pass


# Validation subtypes
class InvalidConfigurationError(ValidationError):
    """Raised when a run configuration or reference buffer is rejected."""

    pass


# Genome subtypes
class GeneLengthMismatchError(GenomeError):
    """Raised when gene values do not match the fixed genome shape."""

    pass


# Evolution subtypes
class WorkerPoolError(EvolutionError):
    """Raised when a fitness evaluation job fails inside the worker pool."""

    pass


class ConcurrencyTimeoutError(WorkerPoolError):
    """Raised when the evaluation barrier is not reached in time."""

    pass

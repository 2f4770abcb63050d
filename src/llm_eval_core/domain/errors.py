"""
Domain Errors

Exception hierarchy for the evaluation engine. Only ConfigurationError is
fatal to a run; the others are isolated to a sample, a metric or a cache
operation.
"""


class EvalCoreError(Exception):
    """Base exception for all evaluation engine errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(EvalCoreError):
    """Raised before the sample loop when the run setup is broken."""

    pass


class InfrastructureError(EvalCoreError):
    """Raised by cache backends when the store is unreachable."""

    pass


class ModelInvocationError(EvalCoreError):
    """Raised by model clients when a completion call fails."""

    pass


class GradingError(EvalCoreError):
    """Raised when a completion cannot be graded."""

    pass


class UnparseableVerdictError(GradingError):
    """Raised when no verdict token can be found in a grader reply."""

    pass


class MetricComputationError(EvalCoreError):
    """Raised when a metric cannot be calculated."""

    pass

"""
Error types raised by the recursion and importance sampling engines.

Each error subclasses the closest built-in exception so callers can catch
either the specific type or the familiar built-in one.
"""


class CoalescentError(Exception):
    """Base class for all errors raised by this package."""


class IncompatibleAllele(CoalescentError, ValueError):
    """An allele was not produced by ``alleles(event_type)`` on the same configuration."""


class InvalidEventType(CoalescentError, ValueError):
    """The event type is not supported by the model."""


class InvalidState(CoalescentError, RuntimeError):
    """An operation was requested on an object in the wrong state."""


class MissingTransitionsError(CoalescentError, RuntimeError):
    """A non-MRCA configuration has no eligible alleles for any event type."""


class PrematureResultError(CoalescentError, RuntimeError):
    """A result was queried before the computation producing it finished."""


class StaleCacheError(PrematureResultError):
    """A proposal probability was requested for a configuration outside the last draw."""


class EmptyWeightSetError(CoalescentError, ArithmeticError):
    """Proposal weights cannot be normalized (empty, negative or all zero)."""


class CancellationError(CoalescentError, InterruptedError):
    """A recursion or sampler run was cancelled cooperatively."""

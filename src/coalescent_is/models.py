"""
Population genetic models.

A model fixes the set of event types that can occur backward in time and
the probability that the next event is of a given type when ``n`` lineages
are present.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Tuple

from .errors import InvalidEventType
from .events import EventType
from .precision import divide, precise, to_decimal


class PopGenModel(ABC):
    """
    Base class for population genetic models.

    The order of ``event_types`` is the enumeration order used by the
    recursion engine and by proposals.
    """

    def __init__(self, *event_types: EventType):
        """
        Initialize the model.

        Args:
            event_types: Event types supported by this model
        """
        if not event_types:
            raise ValueError("A model needs at least one event type")
        self._event_types: Tuple[EventType, ...] = tuple(dict.fromkeys(event_types))

    @property
    def event_types(self) -> Tuple[EventType, ...]:
        """Supported event types in enumeration order."""
        return self._event_types

    def supports(self, event_type: EventType) -> bool:
        """Whether ``event_type`` is supported by this model."""
        return event_type in self._event_types

    @abstractmethod
    def event_prob(self, event_type: EventType, n: int) -> Decimal:
        """
        Probability that the next event is of type ``event_type``.

        Args:
            event_type: Event type
            n: Number of lineages present

        Returns:
            Event probability
        """


class KC64(PopGenModel):
    """
    Infinite-alleles model (Kimura and Crow, 1964).

    Panmictic, neutral, haploid transmission; every mutation creates a new
    allele. The single parameter is the population mutation rate theta.
    """

    def __init__(self, theta: float):
        """
        Initialize the model.

        Args:
            theta: Population scaled mutation rate (theta = 4Nu)
        """
        super().__init__(EventType.COALESCENT, EventType.MUTATION)

        if theta < 0:
            raise ValueError(f"Mutation rate must be non-negative, got {theta}")

        self._theta = float(theta)
        self._theta_decimal = to_decimal(self._theta)

    @property
    def mutation_rate(self) -> float:
        """Population scaled mutation rate theta."""
        return self._theta

    @property
    def theta_decimal(self) -> Decimal:
        """Theta as a Decimal."""
        return self._theta_decimal

    @precise
    def coalescent_prob(self, n: int) -> Decimal:
        """(n - 1) / (n - 1 + theta)"""
        return divide(n - 1, (n - 1) + self._theta_decimal)

    @precise
    def mutation_prob(self, n: int) -> Decimal:
        """theta / (n - 1 + theta)"""
        return divide(self._theta_decimal, (n - 1) + self._theta_decimal)

    def event_prob(self, event_type: EventType, n: int) -> Decimal:
        if event_type == EventType.COALESCENT:
            return self.coalescent_prob(n)
        if event_type == EventType.MUTATION:
            return self.mutation_prob(n)
        raise InvalidEventType(f"Unsupported event type: {event_type!r}")

    def __eq__(self, other) -> bool:
        if self is other:
            return True
        if other is None or type(other) is not type(self):
            return False
        return self._theta == other._theta

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._theta))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(theta={self._theta})"


class K69(KC64):
    """
    Infinite-sites model (Kimura, 1969).

    Every mutation hits a new site, so the sample carries a perfect
    phylogeny (gene tree). The event structure is that of KC64.
    """

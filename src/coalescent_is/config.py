"""
Ancestral configuration capability.

An ancestral configuration (AC) is a snapshot of a sample's allelic state
during the backward-in-time coalescent recursion. The recursion engine and
the proposals only see this interface; how a configuration represents its
alleles is up to the concrete class.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Iterable, Tuple

from .errors import InvalidEventType
from .events import EventType


class AncestralConfig(ABC):
    """
    Abstract ancestral configuration.

    Implementations are immutable: ``apply`` returns a new configuration and
    never changes the receiver. Equality and hashing must reflect
    genealogical equivalence, since the recursion cache depends on them.
    Equal configurations must report equal ``events_to_mrca()``.
    """

    @property
    @abstractmethod
    def model(self):
        """Population genetic model of this configuration."""

    @property
    def event_types(self) -> Tuple[EventType, ...]:
        """Event types of the model, in enumeration order."""
        return self.model.event_types

    def check_event_type(self, event_type: EventType):
        """
        Raise InvalidEventType if the model does not support ``event_type``.

        Args:
            event_type: Event type to check
        """
        if not isinstance(event_type, EventType) or not self.model.supports(event_type):
            raise InvalidEventType(f"Unsupported event type: {event_type!r}")

    @abstractmethod
    def alleles(self, event_type: EventType) -> Iterable[Any]:
        """
        Alleles eligible for an event of the given type.

        Args:
            event_type: Event type

        Returns:
            Eligible alleles, in a deterministic order
        """

    @abstractmethod
    def apply(self, allele: Any, event_type: EventType) -> "AncestralConfig":
        """
        Ancestral configuration produced by an event on an allele.

        Args:
            allele: Allele returned by ``alleles(event_type)``
            event_type: Event type

        Returns:
            New ancestral configuration
        """

    @abstractmethod
    def transition_prob(self, event_type: EventType, ancestral: "AncestralConfig",
                        model=None) -> Decimal:
        """
        One-step probability from this configuration back to ``ancestral``.

        Args:
            event_type: Type of the event producing ``ancestral``
            ancestral: Configuration returned by ``apply`` on this one
            model: Model to evaluate under (default: this configuration's model)

        Returns:
            Transition probability
        """

    def allele_transition_prob(self, allele: Any, event_type: EventType,
                               model=None) -> Decimal:
        """
        Transition probability of the event on ``allele``.

        Args:
            allele: Allele returned by ``alleles(event_type)``
            event_type: Event type
            model: Model to evaluate under

        Returns:
            Transition probability
        """
        return self.transition_prob(event_type, self.apply(allele, event_type), model=model)

    def lineage_count(self, allele: Any) -> int:
        """Number of lineages carrying ``allele``."""
        raise NotImplementedError

    @property
    @abstractmethod
    def n(self) -> int:
        """Number of lineages."""

    @abstractmethod
    def is_mrca(self) -> bool:
        """Whether this configuration is the most recent common ancestor."""

    @abstractmethod
    def prob_at_mrca(self) -> Decimal:
        """Boundary probability; raises InvalidState unless ``is_mrca()``."""

    @abstractmethod
    def is_events_to_mrca_bounded(self) -> bool:
        """Whether the number of events to the MRCA is bounded."""

    @abstractmethod
    def events_to_mrca(self) -> int:
        """Number of events to the MRCA; raises InvalidState if unbounded."""

    @abstractmethod
    def with_model(self, model) -> "AncestralConfig":
        """Copy of this configuration carrying ``model``."""

    @abstractmethod
    def __eq__(self, other) -> bool:
        pass

    @abstractmethod
    def __hash__(self) -> int:
        pass

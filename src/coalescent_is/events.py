"""
Evolutionary events and genealogies.

A genealogy is the ordered chain of backward-in-time events taking a sample
configuration to its most recent common ancestor (MRCA).
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple

from .precision import precise, product


class EventType(Enum):
    """Closed set of population genetic event types."""

    COALESCENT = "COALESCENT"
    MUTATION = "MUTATION"
    MIGRATION = "MIGRATION"
    RECOMBINATION = "RECOMBINATION"

    @property
    def abbreviation(self) -> str:
        """Short display code of this event type."""
        return _ABBREVIATIONS[self]

    @classmethod
    def from_abbreviation(cls, code: str) -> "EventType":
        """
        Look up an event type by its short code.

        Args:
            code: One of "C", "M", "MG", "R"

        Returns:
            The matching event type
        """
        for event_type, abbreviation in _ABBREVIATIONS.items():
            if abbreviation == code:
                return event_type
        raise ValueError(f"Unknown event type abbreviation: {code}")

    def __str__(self) -> str:
        return self.abbreviation


_ABBREVIATIONS = {
    EventType.COALESCENT: "C",
    EventType.MUTATION: "M",
    EventType.MIGRATION: "MG",
    EventType.RECOMBINATION: "R",
}


@dataclass(frozen=True)
class Event:
    """
    Transition of one configuration (``pre``) to its ancestral configuration
    (``post``) by an event of type ``event_type`` on ``allele`` of ``pre``.
    """

    pre: Any
    """Configuration before the event (closer to the sample)"""

    post: Any
    """Configuration after the event (closer to the MRCA)"""

    allele: Any
    """Allele of ``pre`` on which the event took place"""

    event_type: EventType
    """Type of the event"""

    def __post_init__(self):
        for name in ("pre", "post", "allele", "event_type"):
            if getattr(self, name) is None:
                raise ValueError(f"Event field '{name}' must not be None")

    def __str__(self) -> str:
        return f"{self.event_type}:{self.post}"


class Genealogy:
    """
    Chain of events from a sample configuration to the MRCA.

    The chain is checked on construction: the first event starts at the
    sample, consecutive events link up, and the last one ends at an MRCA.
    """

    def __init__(self, events: Iterable[Event], sample: Optional[Any] = None):
        """
        Initialize a genealogy.

        Args:
            events: Events ordered from the sample to the MRCA
            sample: Sample configuration; required only when ``events`` is empty
        """
        self._events: Tuple[Event, ...] = tuple(events)

        if sample is None:
            if not self._events:
                raise ValueError("An empty genealogy needs an explicit sample")
            sample = self._events[0].pre

        self._sample = sample
        self._validate()

    def _validate(self):
        """Check chain consistency."""
        if not self._events:
            if not self._sample.is_mrca():
                raise ValueError("Empty event chain for a non-MRCA sample")
            return

        if self._events[0].pre != self._sample:
            raise ValueError("First event does not start at the sample")

        for previous, current in zip(self._events, self._events[1:]):
            if previous.post != current.pre:
                raise ValueError(f"Broken event chain at {current}")

        if not self._events[-1].post.is_mrca():
            raise ValueError("Last event does not end at the MRCA")

    @property
    def event_chain(self) -> Tuple[Event, ...]:
        """Events from the sample to the MRCA."""
        return self._events

    @property
    def sample(self) -> Any:
        """Sample configuration of this genealogy."""
        return self._sample

    @property
    def mrca(self) -> Any:
        """Terminal configuration of this genealogy."""
        return self._events[-1].post if self._events else self._sample

    @property
    def model(self):
        """Model of the sample configuration."""
        return self._sample.model

    @precise
    def probability(self, model=None) -> Decimal:
        """
        Probability of this genealogy under the coalescent.

        It is the product of the transition probabilities along the chain
        times the boundary probability at the MRCA.

        Args:
            model: Model to evaluate under (default: the configurations' own model)

        Returns:
            Probability as a 128-digit Decimal
        """
        prob = product(event.pre.transition_prob(event.event_type, event.post, model=model)
                       for event in self._events)
        return prob * self.mrca.prob_at_mrca()

    def with_model(self, model) -> "Genealogy":
        """
        Copy this genealogy with every configuration carrying ``model``.

        Args:
            model: Replacement model

        Returns:
            New Genealogy over re-seated configurations
        """
        sample = self._sample.with_model(model)
        events: List[Event] = []
        pre = sample
        for event in self._events:
            post = event.post.with_model(model)
            events.append(Event(pre, post, event.allele, event.event_type))
            pre = post
        return Genealogy(events, sample=sample)

    def event_sequence(self) -> str:
        """
        Abbreviated event sequence, e.g. "CCMM".

        Returns:
            Concatenated event type codes
        """
        return "".join(event.event_type.abbreviation for event in self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(self._events)

    def __str__(self) -> str:
        parts = [str(self._sample)] + [str(event) for event in self._events]
        return "->".join(parts)

    def __repr__(self) -> str:
        return f"Genealogy(events={len(self._events)}, sequence={self.event_sequence()!r})"

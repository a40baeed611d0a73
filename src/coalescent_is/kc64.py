"""
Infinite-alleles ancestral configuration.

Under KC64 alleles are exchangeable, so a configuration is fully described
by its allele spectrum: ``a[i]`` is the number of distinct alleles carried
by exactly ``i + 1`` lineages. An allele handed to ``apply`` is therefore a
frequency domain, not an allele label.
"""

from decimal import Decimal
from typing import Optional, Sequence, Tuple

from .config import AncestralConfig
from .data import KC64Data, parse_canonical_form
from .errors import IncompatibleAllele, InvalidState
from .events import EventType
from .models import KC64
from .precision import ONE, divide, precise


def _trim(a: Sequence[int]) -> Tuple[int, ...]:
    a = list(a)
    while a and a[-1] == 0:
        a.pop()
    return tuple(a)


class KC64Config(AncestralConfig):
    """
    Allele spectrum configuration.

    Configurations produced by a coalescent event remember the frequency
    domain that coalesced (``freq_domain``); ``transition_prob`` needs it.
    The provenance is not part of equality.
    """

    def __init__(self, model: KC64, a: Sequence[int], freq_domain: Optional[int] = None):
        """
        Initialize the configuration.

        Args:
            model: KC64 model
            a: Allele spectrum; a[i] alleles of frequency i + 1
            freq_domain: Frequency domain of the coalescent event that produced this configuration
        """
        if not isinstance(model, KC64):
            raise ValueError(f"Unknown model: {model!r}")
        if any(int(x) != x or x < 0 for x in a):
            raise ValueError(f"Allele spectrum must be non-negative integers, got {list(a)}")

        self._model = model
        self._a = _trim(int(x) for x in a)
        if not self._a:
            raise ValueError("Allele spectrum must not be empty")

        self._freq_domain = freq_domain
        self._n = sum((i + 1) * count for i, count in enumerate(self._a))
        self._hash = hash((self._model, self._a))

    @classmethod
    def from_data(cls, data: KC64Data) -> "KC64Config":
        """Spectrum of the allele frequencies in ``data``."""
        freqs = [data.allele_frequency(allele) for allele in data.alleles]
        a = [0] * max(freqs)
        for freq in freqs:
            a[freq - 1] += 1
        return cls(data.model, a)

    @classmethod
    def from_canonical_form(cls, model: KC64, form: str) -> "KC64Config":
        """
        Build a configuration from a string such as "1^2_3^1".

        Args:
            model: KC64 model
            form: Underscore separated freq^count tokens

        Returns:
            KC64Config
        """
        pairs = parse_canonical_form(form)
        a = [0] * max(freq for freq, _ in pairs)
        for freq, count in pairs:
            a[freq - 1] += count
        return cls(model, a)

    @property
    def model(self) -> KC64:
        return self._model

    @property
    def a(self) -> Tuple[int, ...]:
        """Trimmed allele spectrum."""
        return self._a

    @property
    def freq_domain(self) -> Optional[int]:
        """Frequency domain that coalesced to produce this configuration, if any."""
        return self._freq_domain

    @property
    def n(self) -> int:
        return self._n

    @property
    def k(self) -> int:
        """Number of distinct alleles."""
        return sum(self._a)

    def lineage_count(self, allele: int) -> int:
        """Lineages in frequency domain ``allele``."""
        return allele * self._a[allele - 1]

    def alleles(self, event_type: EventType) -> Tuple[int, ...]:
        self.check_event_type(event_type)
        if event_type == EventType.COALESCENT:
            return tuple(j for j in range(len(self._a), 1, -1) if self._a[j - 1] > 0)
        return (1,) if self._a[0] > 0 else ()

    def apply(self, allele: int, event_type: EventType) -> "KC64Config":
        if allele not in self.alleles(event_type):
            raise IncompatibleAllele(f"Allele {allele!r} is not eligible for {event_type.name}")

        a = list(self._a)
        if event_type == EventType.COALESCENT:
            a[allele - 1] -= 1
            a[allele - 2] += 1
            return KC64Config(self._model, a, freq_domain=allele)

        a[0] -= 1
        return KC64Config(self._model, a)

    @precise
    def transition_prob(self, event_type: EventType, ancestral: "KC64Config",
                        model: Optional[KC64] = None) -> Decimal:
        self.check_event_type(event_type)
        model = model or self._model

        if event_type == EventType.MUTATION:
            return model.mutation_prob(self._n)

        j = ancestral.freq_domain
        if j is None:
            raise ValueError(f"Configuration {ancestral} was not produced by a coalescent event")
        multiplicity = (j - 1) * (self._a[j - 2] + 1)
        return model.coalescent_prob(self._n) * divide(multiplicity, self._n - 1)

    def is_mrca(self) -> bool:
        return self._n == 1

    def prob_at_mrca(self) -> Decimal:
        if not self.is_mrca():
            raise InvalidState(f"Configuration {self} is not the MRCA")
        return ONE

    def is_events_to_mrca_bounded(self) -> bool:
        return True

    def events_to_mrca(self) -> int:
        return self._n - 1

    def with_model(self, model: KC64) -> "KC64Config":
        return KC64Config(model, self._a, freq_domain=self._freq_domain)

    def canonical_form(self) -> str:
        """Spectrum as "f1^t1_f2^t2", frequencies ascending, empty domains skipped."""
        return "_".join(f"{i + 1}^{count}" for i, count in enumerate(self._a) if count > 0)

    def __eq__(self, other) -> bool:
        if self is other:
            return True
        if not isinstance(other, KC64Config):
            return False
        return self._a == other._a and self._model == other._model

    def __hash__(self) -> int:
        return self._hash

    def __str__(self) -> str:
        return self.canonical_form()

    def __repr__(self) -> str:
        return f"KC64Config({self.canonical_form()!r}, {self._model!r})"

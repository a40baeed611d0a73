"""Tests for infinite-alleles configurations."""

import pytest

from coalescent_is import (
    KC64,
    EventType,
    IncompatibleAllele,
    InvalidEventType,
    InvalidState,
    KC64Config,
    KC64Data,
    is_close,
)
from coalescent_is.precision import divide


def test_spectrum(kc64_sample):
    """The spectrum counts alleles by frequency."""
    assert kc64_sample.a == (2, 1)
    assert kc64_sample.n == 4
    assert kc64_sample.k == 3
    assert kc64_sample.events_to_mrca() == 3
    assert kc64_sample.lineage_count(1) == 2
    assert kc64_sample.lineage_count(2) == 2
    assert kc64_sample.canonical_form() == "1^2_2^1"
    assert str(kc64_sample) == "1^2_2^1"


def test_from_data(kc64):
    """Data and canonical forms give equal configurations."""
    data = KC64Data(kc64, {"x": 2, "y": 1, "z": 1})
    assert KC64Config.from_data(data) == KC64Config.from_canonical_form(kc64, "1^2_2^1")


def test_alleles(kc64_sample):
    """Frequency domains eligible for each event type."""
    assert kc64_sample.alleles(EventType.COALESCENT) == (2,)
    assert kc64_sample.alleles(EventType.MUTATION) == (1,)
    assert KC64Config(kc64_sample.model, [0, 1]).alleles(EventType.MUTATION) == ()

    with pytest.raises(InvalidEventType):
        kc64_sample.alleles(EventType.MIGRATION)


def test_apply(kc64_sample):
    """Coalescence moves an allele down one domain; mutation removes a singleton."""
    coalesced = kc64_sample.apply(2, EventType.COALESCENT)
    assert coalesced.a == (3,)
    assert coalesced.freq_domain == 2

    mutated = kc64_sample.apply(1, EventType.MUTATION)
    assert mutated.a == (1, 1)
    assert mutated.freq_domain is None

    assert kc64_sample.a == (2, 1)

    with pytest.raises(IncompatibleAllele):
        kc64_sample.apply(3, EventType.COALESCENT)


def test_trimmed_equality(kc64):
    """Trailing empty domains and provenance do not affect equality."""
    assert KC64Config(kc64, [1, 0, 0]) == KC64Config(kc64, [1])
    assert KC64Config(kc64, [2, 0]).a == (2,)
    assert KC64Config(kc64, [3]) == KC64Config(kc64, [2, 1]).apply(2, EventType.COALESCENT)
    assert KC64Config(kc64, [3]) != KC64Config(KC64(2.0), [3])


def test_invalid_spectrum(kc64):
    """Spectra must be non-empty, non-negative integers."""
    with pytest.raises(ValueError):
        KC64Config(kc64, [])
    with pytest.raises(ValueError):
        KC64Config(kc64, [1, -1])


def test_transition_prob(kc64_sample):
    """One-step probabilities at theta = 1."""
    coalesced = kc64_sample.apply(2, EventType.COALESCENT)
    assert is_close(kc64_sample.transition_prob(EventType.COALESCENT, coalesced), divide(3, 4))

    mutated = kc64_sample.apply(1, EventType.MUTATION)
    assert is_close(kc64_sample.transition_prob(EventType.MUTATION, mutated), divide(1, 4))
    assert is_close(kc64_sample.transition_prob(EventType.MUTATION, mutated, model=KC64(3.0)),
                    divide(1, 2))


def test_mrca(kc64):
    """Only a single lineage is the MRCA."""
    mrca = KC64Config(kc64, [1])
    assert mrca.is_mrca()
    assert mrca.prob_at_mrca() == 1
    assert mrca.events_to_mrca() == 0

    with pytest.raises(InvalidState):
        KC64Config(kc64, [2]).prob_at_mrca()


def test_with_model(kc64_sample):
    """Re-seating keeps the spectrum."""
    other = kc64_sample.with_model(KC64(2.0))
    assert other.a == kc64_sample.a
    assert other.model == KC64(2.0)
    assert other != kc64_sample

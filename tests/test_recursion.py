"""Tests for the recursion engine."""

from decimal import Decimal

import pytest

from coalescent_is import (
    KC64,
    ACCounter,
    AncestralConfig,
    CacheSizeTracker,
    CancellationError,
    EventType,
    ExactProbComputer,
    InvalidState,
    KC64Config,
    MissingTransitionsError,
    PrematureResultError,
    Recursion,
    RecursionListener,
    RecursionState,
)


class StubConfig(AncestralConfig):
    """Configuration with a fixed MRCA distance and optional transitions."""

    def __init__(self, n, distance, mutable=True):
        self._n = n
        self.distance = distance
        self.mutable = mutable

    @property
    def model(self):
        return KC64(1.0)

    def alleles(self, event_type):
        return (1,) if self.mutable and event_type == EventType.MUTATION else ()

    def apply(self, allele, event_type):
        return StubConfig(self._n - 1, self.distance, self.mutable)

    def transition_prob(self, event_type, ancestral, model=None):
        return Decimal(1)

    @property
    def n(self):
        return self._n

    def is_mrca(self):
        return self._n == 1

    def prob_at_mrca(self):
        return Decimal(1)

    def is_events_to_mrca_bounded(self):
        return True

    def events_to_mrca(self):
        return self.distance

    def with_model(self, model):
        return self

    def __eq__(self, other):
        return isinstance(other, StubConfig) and self._n == other._n

    def __hash__(self):
        return hash(self._n)


class SplitConfig(StubConfig):
    """Three lineages whose two alleles reach equal configurations at different distances."""

    def __init__(self, n=3, distance=10):
        super().__init__(n, distance)

    def alleles(self, event_type):
        if event_type != EventType.MUTATION or self.is_mrca():
            return ()
        return ("a", "b") if self.n == 3 else (1,)

    def apply(self, allele, event_type):
        if self.n == 3:
            return SplitConfig(2, 5 if allele == "a" else 4)
        return SplitConfig(self.n - 1, 0)


class StateRecorder(RecursionListener):
    def __init__(self):
        self.states = []

    def on_recursion_event(self, event):
        self.states.append(event.state)
        super().on_recursion_event(event)


class Canceller(RecursionListener):
    def on_pre_visit(self, event):
        event.source.cancel()


def test_phase_order(kc64):
    """A two-singleton sample walks every phase once, in order."""
    recorder = StateRecorder()
    recursion = Recursion(KC64Config(kc64, [2]))
    recursion.add_listener(recorder)
    recursion.run()

    assert recorder.states == [
        RecursionState.INIT_RECURSION,
        RecursionState.ITR_EVENTS_ON,
        RecursionState.ITR_EVENT_TYPE_ON,
        RecursionState.ITR_EVENT_TYPE_OFF,
        RecursionState.ITR_EVENT_TYPE_ON,
        RecursionState.PRE_VISIT_AC,
        RecursionState.BOUNDARY_CONDN,
        RecursionState.POST_VISIT_AC,
        RecursionState.ITR_EVENT_TYPE_OFF,
        RecursionState.ITR_EVENTS_OFF,
        RecursionState.FINISHED_RECURSION,
    ]


def test_cache_levels(kc64_sample):
    """Every configuration is cached at its MRCA distance."""
    recursion = Recursion(kc64_sample)
    recursion.add_listener(ExactProbComputer())
    recursion.run()

    assert recursion.cache_sizes() == [1, 2, 2, 1]
    assert recursion.is_cached(kc64_sample)
    assert recursion.is_cached(KC64Config(kc64_sample.model, [1]))


def test_inconsistent_levels():
    """A predecessor no closer to the MRCA is an invalid state."""
    recursion = Recursion(StubConfig(3, distance=2))
    recursion.add_listener(RecursionListener())
    with pytest.raises(InvalidState):
        recursion.run()


def test_equal_configs_at_different_levels():
    """Equal configurations must report the same MRCA distance."""
    counter = ACCounter()
    recursion = Recursion(SplitConfig())
    recursion.add_listener(counter)
    with pytest.raises(InvalidState):
        recursion.run()
    assert recursion.cache_sizes()[5] == 1
    assert recursion.cache_sizes()[4] == 0


def test_missing_transitions():
    """A non-MRCA configuration without transitions is an error."""
    recursion = Recursion(StubConfig(3, distance=2, mutable=False))
    recursion.add_listener(RecursionListener())
    with pytest.raises(MissingTransitionsError):
        recursion.run()


def test_cancellation(kc64_sample):
    """Cancelling from a listener stops the traversal."""
    recursion = Recursion(kc64_sample)
    recursion.add_listener(Canceller())
    with pytest.raises(CancellationError):
        recursion.run()
    assert recursion.cancelled


def test_computer_single_use(kc64_sample):
    """A computer serves one run until reset."""
    computer = ExactProbComputer()
    with pytest.raises(PrematureResultError):
        computer.result

    for _ in range(2):
        recursion = Recursion(kc64_sample)
        recursion.add_listener(computer)
        if computer.finished:
            with pytest.raises(InvalidState):
                recursion.run()
        else:
            recursion.run()

    first = computer.result
    computer.reset()
    recursion = Recursion(kc64_sample)
    recursion.add_listener(computer)
    recursion.run()
    assert computer.result == first


def test_duplicate_listener_registered_once(kc64):
    """Adding the same listener twice keeps one registration."""
    recorder = StateRecorder()
    recursion = Recursion(KC64Config(kc64, [2]))
    recursion.add_listener(recorder)
    recursion.add_listener(recorder)
    recursion.run()
    assert recorder.states.count(RecursionState.INIT_RECURSION) == 1


def test_exe_listener(kc64_sample):
    """Progress events report the cache after every commit."""
    tracker = CacheSizeTracker()
    computer = ExactProbComputer()
    recursion = Recursion(kc64_sample)
    recursion.add_listener(computer)
    recursion.add_exe_listener(tracker)
    recursion.run()

    assert tracker.ready
    assert tracker.cache_sizes == recursion.cache_sizes()
    assert tracker.total_cache_size == 6
    assert tracker.computation_chunks[0].startswith("exact values")

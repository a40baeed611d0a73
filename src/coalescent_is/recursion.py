"""
Exact recursion over ancestral configurations.

The recursion walks the directed acyclic graph of ancestral configurations
from a sample back to its MRCA in depth-first post-order. It computes
nothing itself: listeners are notified at every traversal phase and
accumulate their own quantities (exact probabilities, counts, genealogies).

Fully processed configurations are memoized in a cache bucketed by their
distance to the MRCA, so a configuration reached along several paths is
expanded only once.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from .config import AncestralConfig
from .errors import (
    CancellationError,
    InvalidState,
    MissingTransitionsError,
    PrematureResultError,
)
from .events import EventType

logger = logging.getLogger(__name__)


class RecursionState(Enum):
    """Traversal phases, in the order they occur for one configuration."""

    INIT_RECURSION = "init_recursion"
    BOUNDARY_CONDN = "boundary_condn"
    ITR_EVENTS_ON = "itr_events_on"
    ITR_EVENT_TYPE_ON = "itr_event_type_on"
    PRE_VISIT_AC = "pre_visit_ac"
    POST_VISIT_AC = "post_visit_ac"
    ITR_EVENT_TYPE_OFF = "itr_event_type_off"
    ITR_EVENTS_OFF = "itr_events_off"
    FINISHED_RECURSION = "finished_recursion"


@dataclass(frozen=True)
class RecursionEvent:
    """Notification sent to listeners at each traversal phase."""

    source: "Recursion"
    """Recursion firing the event"""

    state: RecursionState
    """Traversal phase"""

    config: AncestralConfig
    """Configuration being expanded (the sample for INIT and FINISHED)"""

    ancestral_config: Optional[AncestralConfig] = None
    """Predecessor being visited (PRE_VISIT_AC and POST_VISIT_AC only)"""

    allele: Any = None
    """Allele of ``config`` the event acts on"""

    event_type: Optional[EventType] = None
    """Event type being iterated"""


@dataclass(frozen=True)
class RecursionExeEvent:
    """Progress notification sent after each configuration is cached."""

    source: "Recursion"
    """Recursion firing the event"""

    cache_sizes: Tuple[int, ...]
    """Number of cached configurations per level"""

    computation_chunks: Tuple[Optional[str], ...]
    """Progress string of each listener, if it reports one"""

    @property
    def total_cache_size(self) -> int:
        return sum(self.cache_sizes)


class RecursionListener:
    """
    Observer of a recursion.

    Every handler is a no-op; subclasses override the phases they need.
    """

    def on_recursion_event(self, event: RecursionEvent):
        """Dispatch ``event`` to the handler of its phase."""
        getattr(self, _HANDLERS[event.state])(event)

    def on_init_recursion(self, event: RecursionEvent):
        pass

    def on_boundary_condition(self, event: RecursionEvent):
        pass

    def on_events_on(self, event: RecursionEvent):
        pass

    def on_event_type_on(self, event: RecursionEvent):
        pass

    def on_pre_visit(self, event: RecursionEvent):
        pass

    def on_post_visit(self, event: RecursionEvent):
        pass

    def on_event_type_off(self, event: RecursionEvent):
        pass

    def on_events_off(self, event: RecursionEvent):
        pass

    def on_finished_recursion(self, event: RecursionEvent):
        pass

    @property
    def update_chunk(self) -> Optional[str]:
        """Short progress description, or None."""
        return None


_HANDLERS = {
    RecursionState.INIT_RECURSION: "on_init_recursion",
    RecursionState.BOUNDARY_CONDN: "on_boundary_condition",
    RecursionState.ITR_EVENTS_ON: "on_events_on",
    RecursionState.ITR_EVENT_TYPE_ON: "on_event_type_on",
    RecursionState.PRE_VISIT_AC: "on_pre_visit",
    RecursionState.POST_VISIT_AC: "on_post_visit",
    RecursionState.ITR_EVENT_TYPE_OFF: "on_event_type_off",
    RecursionState.ITR_EVENTS_OFF: "on_events_off",
    RecursionState.FINISHED_RECURSION: "on_finished_recursion",
}


class RecursionExeListener:
    """Observer of recursion progress."""

    def on_recursion_exe_event(self, event: RecursionExeEvent):
        pass


class RecursionComputer(RecursionListener):
    """
    Listener that computes one value per configuration and a final result.

    A computer serves a single recursion run. Call ``reset()`` before
    attaching it to another run.
    """

    def __init__(self):
        self._values: Dict[AncestralConfig, Any] = {}
        self._result: Any = None
        self._sample: Optional[AncestralConfig] = None
        self._started = False
        self._finished = False

    def on_init_recursion(self, event: RecursionEvent):
        if self._started:
            raise InvalidState(f"{type(self).__name__} already ran; call reset() before reuse")
        self._started = True
        self._sample = event.config

    def on_finished_recursion(self, event: RecursionEvent):
        self._result = self.compute_result()
        self._finished = True

    def compute_result(self) -> Any:
        """Final result; by default the value of the sample."""
        return self._values.get(self._sample)

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def result(self) -> Any:
        if not self._finished:
            raise PrematureResultError(f"{type(self).__name__} has not finished")
        return self._result

    def value(self, config: AncestralConfig) -> Optional[Any]:
        """Value computed for ``config``, or None if not (yet) computed."""
        return self._values.get(config)

    def reset(self):
        self._values = {}
        self._result = None
        self._sample = None
        self._started = False
        self._finished = False

    def __str__(self) -> str:
        return str(self.result)


class Recursion:
    """
    Post-order traversal from a sample to its MRCA.

    Example:
        >>> computer = ExactProbComputer()
        >>> recursion = Recursion(sample)
        >>> recursion.add_listener(computer)
        >>> recursion.run()
        >>> computer.result
    """

    def __init__(self, sample: AncestralConfig, cancel_event: Optional[threading.Event] = None):
        """
        Initialize the recursion.

        Args:
            sample: Sample configuration
            cancel_event: Shared cancellation flag (default: a private one)
        """
        self._sample = sample
        self._cancel_event = cancel_event or threading.Event()
        self._listeners: List[RecursionListener] = []
        self._exe_listeners: List[RecursionExeListener] = []
        self._bounded = sample.is_events_to_mrca_bounded()
        self._cache: Dict[int, Set[AncestralConfig]] = self._new_cache()
        self._levels: Dict[AncestralConfig, int] = {}

    @property
    def sample(self) -> AncestralConfig:
        return self._sample

    def add_listener(self, listener: RecursionListener):
        if listener in self._listeners:
            logger.warning("Listener %r is already registered", listener)
            return
        self._listeners.append(listener)

    def remove_listener(self, listener: RecursionListener):
        self._listeners.remove(listener)

    def add_exe_listener(self, listener: RecursionExeListener):
        if listener in self._exe_listeners:
            logger.warning("Execution listener %r is already registered", listener)
            return
        self._exe_listeners.append(listener)

    def remove_exe_listener(self, listener: RecursionExeListener):
        self._exe_listeners.remove(listener)

    def cancel(self):
        """Request cancellation; the traversal stops at its next allele step."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _new_cache(self) -> Dict[int, Set[AncestralConfig]]:
        if self._bounded:
            return {level: set() for level in range(self._sample.events_to_mrca() + 1)}
        return {0: set()}

    def _level(self, config: AncestralConfig) -> int:
        if not self._bounded:
            return 0
        level = config.events_to_mrca()
        if level not in self._cache:
            raise InvalidState(
                f"Configuration {config} is {level} events from the MRCA, "
                f"outside 0..{len(self._cache) - 1}")
        return level

    def is_cached(self, config: AncestralConfig) -> bool:
        if self._bounded:
            level = config.events_to_mrca()
        else:
            level = 0
        return config in self._cache.get(level, ())

    def cache_sizes(self) -> List[int]:
        """Number of cached configurations per level."""
        return [len(self._cache[level]) for level in sorted(self._cache)]

    def run(self):
        """
        Traverse from the sample to the MRCA, notifying listeners.

        Raises:
            CancellationError: If cancelled during the traversal
            MissingTransitionsError: If a non-MRCA configuration has no transitions
            InvalidState: If configurations report inconsistent MRCA distances
        """
        if not self._listeners:
            logger.warning("Running a recursion on %s without listeners", self._sample)

        self._cache = self._new_cache()
        self._levels = {}
        self._fire(RecursionState.INIT_RECURSION, self._sample)

        stack: List[Iterator[AncestralConfig]] = [self._expand(self._sample)]
        while stack:
            try:
                predecessor = next(stack[-1])
            except StopIteration:
                stack.pop()
                continue
            stack.append(self._expand(predecessor))

        self._fire(RecursionState.FINISHED_RECURSION, self._sample)

    def _expand(self, config: AncestralConfig) -> Iterator[AncestralConfig]:
        """
        Expand one configuration.

        Yields each predecessor that still has to be expanded; the caller
        expands it before resuming this generator.
        """
        level = self._level(config)

        if config.is_mrca():
            self._commit(config, level)
            self._fire(RecursionState.BOUNDARY_CONDN, config)
            return

        transitions = [(event_type, list(config.alleles(event_type)))
                       for event_type in config.event_types]
        if not any(alleles for _, alleles in transitions):
            logger.error("No transitions from non-MRCA configuration %r", config)
            raise MissingTransitionsError(f"No transitions from non-MRCA configuration {config}")

        self._fire(RecursionState.ITR_EVENTS_ON, config)

        for event_type, alleles in transitions:
            self._fire(RecursionState.ITR_EVENT_TYPE_ON, config, event_type=event_type)

            for allele in alleles:
                predecessor = config.apply(allele, event_type)
                if self._bounded:
                    self._check_level(config, level, predecessor)

                self._fire(RecursionState.PRE_VISIT_AC, config, predecessor, allele, event_type)

                if self._cancel_event.is_set():
                    raise CancellationError("Recursion cancelled")

                if not self.is_cached(predecessor):
                    yield predecessor

                self._fire(RecursionState.POST_VISIT_AC, config, predecessor, allele, event_type)

            self._fire(RecursionState.ITR_EVENT_TYPE_OFF, config, event_type=event_type)

        self._fire(RecursionState.ITR_EVENTS_OFF, config)
        self._commit(config, level)

    def _check_level(self, config: AncestralConfig, level: int, predecessor: AncestralConfig):
        predecessor_level = self._level(predecessor)
        if predecessor_level >= level:
            raise InvalidState(
                f"Predecessor {predecessor} is not closer to the MRCA than {config}")

        committed = self._levels.get(predecessor)
        if committed is not None and committed != predecessor_level:
            raise InvalidState(
                f"Predecessor {predecessor} is {predecessor_level} events from the MRCA, "
                f"but an equal configuration was cached at {committed}")

    def _commit(self, config: AncestralConfig, level: int):
        self._cache[level].add(config)
        self._levels[config] = level

        if self._exe_listeners:
            event = RecursionExeEvent(
                source=self,
                cache_sizes=tuple(self.cache_sizes()),
                computation_chunks=tuple(listener.update_chunk for listener in self._listeners),
            )
            for listener in self._exe_listeners:
                listener.on_recursion_exe_event(event)

    def _fire(self, state: RecursionState, config: AncestralConfig,
              ancestral_config: Optional[AncestralConfig] = None,
              allele: Any = None, event_type: Optional[EventType] = None):
        event = RecursionEvent(self, state, config, ancestral_config, allele, event_type)
        for listener in self._listeners:
            listener.on_recursion_event(event)

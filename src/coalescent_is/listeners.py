"""
Recursion listeners.

Each listener accumulates one quantity over the recursion graph: exact
probabilities, configuration counts, genealogy counts or the genealogies
themselves. The runner functions at the bottom wire a listener to a fresh
recursion and return its result.
"""

import logging
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

from .config import AncestralConfig
from .events import Event, Genealogy
from .precision import ZERO, precise
from .recursion import (
    Recursion,
    RecursionComputer,
    RecursionEvent,
    RecursionExeEvent,
    RecursionExeListener,
    RecursionListener,
)

logger = logging.getLogger(__name__)


class ExactProbComputer(RecursionComputer):
    """
    Exact probability of the sample.

    The value of a configuration is the sum, over its transitions, of the
    transition probability times the value of the predecessor; the MRCA is
    seeded with its boundary probability.
    """

    def __init__(self):
        super().__init__()
        self._adders: List[Decimal] = []

    def on_boundary_condition(self, event: RecursionEvent):
        self._values[event.config] = event.config.prob_at_mrca()

    def on_events_on(self, event: RecursionEvent):
        self._adders.append(ZERO)

    @precise
    def on_post_visit(self, event: RecursionEvent):
        transition = event.config.transition_prob(event.event_type, event.ancestral_config)
        self._adders[-1] += transition * self._values[event.ancestral_config]

    def on_events_off(self, event: RecursionEvent):
        self._values[event.config] = self._adders.pop()

    def reset(self):
        super().reset()
        self._adders = []

    @property
    def update_chunk(self) -> Optional[str]:
        return f"exact values: {len(self._values)}"


class MultiExactProbComputer(RecursionComputer):
    """Exact probabilities of the sample at several model points in one pass."""

    def __init__(self, models: Sequence[Any]):
        """
        Args:
            models: Model points; transition probabilities are evaluated under each
        """
        super().__init__()
        if not models:
            raise ValueError("At least one model point is required")
        self.models = list(models)
        self._adders: List[List[Decimal]] = []

    def on_boundary_condition(self, event: RecursionEvent):
        self._values[event.config] = [event.config.prob_at_mrca()] * len(self.models)

    def on_events_on(self, event: RecursionEvent):
        self._adders.append([ZERO] * len(self.models))

    @precise
    def on_post_visit(self, event: RecursionEvent):
        adder = self._adders[-1]
        values = self._values[event.ancestral_config]
        for i, model in enumerate(self.models):
            transition = event.config.transition_prob(event.event_type, event.ancestral_config,
                                                      model=model)
            adder[i] += transition * values[i]

    def on_events_off(self, event: RecursionEvent):
        self._values[event.config] = self._adders.pop()

    def reset(self):
        super().reset()
        self._adders = []


class ACCounter(RecursionComputer):
    """Number of distinct configurations between the sample and the MRCA, both included."""

    def __init__(self):
        super().__init__()
        self._count = 0

    def on_boundary_condition(self, event: RecursionEvent):
        self._count += 1

    def on_events_off(self, event: RecursionEvent):
        self._count += 1

    def compute_result(self) -> int:
        return self._count

    def reset(self):
        super().reset()
        self._count = 0


class ACBuilder(RecursionComputer):
    """Collects every distinct configuration, in post-order."""

    def __init__(self):
        super().__init__()
        self._configs: List[AncestralConfig] = []

    def on_boundary_condition(self, event: RecursionEvent):
        self._configs.append(event.config)

    def on_events_off(self, event: RecursionEvent):
        self._configs.append(event.config)

    def compute_result(self) -> List[AncestralConfig]:
        return list(self._configs)

    def reset(self):
        super().reset()
        self._configs = []


class GenealogyCounter(RecursionComputer):
    """
    Number of genealogies from the sample to the MRCA.

    Each distinct predecessor contributes its count once per configuration,
    even when several transitions lead to it.
    """

    def __init__(self):
        super().__init__()
        self._frames: List[list] = []

    def on_boundary_condition(self, event: RecursionEvent):
        self._values[event.config] = 1

    def on_events_on(self, event: RecursionEvent):
        self._frames.append([0, []])

    def on_post_visit(self, event: RecursionEvent):
        frame = self._frames[-1]
        predecessor = event.ancestral_config
        if predecessor in frame[1]:
            return
        frame[1].append(predecessor)
        frame[0] += self._values[predecessor]

    def on_events_off(self, event: RecursionEvent):
        self._values[event.config] = self._frames.pop()[0]

    def reset(self):
        super().reset()
        self._frames = []


class GenealogyBuilder(RecursionComputer):
    """
    Enumerates every genealogy of the sample.

    Each (allele, event type) transition is a separate edge, so two
    transitions leading to equal predecessors give separate genealogies.
    """

    def __init__(self):
        super().__init__()
        self._frames: List[List[Genealogy]] = []

    def on_boundary_condition(self, event: RecursionEvent):
        self._values[event.config] = [Genealogy([], sample=event.config)]

    def on_events_on(self, event: RecursionEvent):
        self._frames.append([])

    def on_post_visit(self, event: RecursionEvent):
        step = Event(event.config, event.ancestral_config, event.allele, event.event_type)
        for genealogy in self._values[event.ancestral_config]:
            self._frames[-1].append(Genealogy((step,) + genealogy.event_chain, sample=event.config))

    def on_events_off(self, event: RecursionEvent):
        self._values[event.config] = self._frames.pop()

    def reset(self):
        super().reset()
        self._frames = []

    def sorted_by_probability(self) -> List[Genealogy]:
        """Genealogies of the sample, most probable first."""
        return sorted(self.result, key=lambda genealogy: genealogy.probability(), reverse=True)


class FwdCountChecker(RecursionComputer):
    """
    Records, for every configuration, the configurations that transition into it.
    """

    def __init__(self):
        super().__init__()
        self._callers: Dict[AncestralConfig, List[AncestralConfig]] = {}

    def on_post_visit(self, event: RecursionEvent):
        callers = self._callers.setdefault(event.ancestral_config, [])
        if event.config not in callers:
            callers.append(event.config)

    def compute_result(self) -> Dict[AncestralConfig, List[AncestralConfig]]:
        return {config: list(callers) for config, callers in self._callers.items()}

    def callers(self, config: AncestralConfig) -> List[AncestralConfig]:
        return list(self._callers.get(config, ()))

    def caller_count(self, config: AncestralConfig) -> int:
        return len(self._callers.get(config, ()))

    def has_inconsistent_count(self, expected: Callable[[AncestralConfig], int]) -> bool:
        """
        Compare caller counts with a reference.

        Args:
            expected: Reference number of callers of a configuration

        Returns:
            True if any recorded configuration disagrees with the reference
        """
        inconsistent = False
        for config, callers in self._callers.items():
            if len(callers) != expected(config):
                logger.debug("Configuration %s has %d callers, expected %d",
                             config, len(callers), expected(config))
                inconsistent = True
        return inconsistent

    def reset(self):
        super().reset()
        self._callers = {}


class FocusedFwdCountChecker(RecursionComputer):
    """Records the configurations that transition into one focal configuration."""

    def __init__(self, focus: AncestralConfig):
        super().__init__()
        self.focus = focus
        self._callers: List[AncestralConfig] = []

    def on_post_visit(self, event: RecursionEvent):
        if event.ancestral_config == self.focus and event.config not in self._callers:
            self._callers.append(event.config)

    def compute_result(self) -> List[AncestralConfig]:
        return list(self._callers)

    @property
    def callers(self) -> List[AncestralConfig]:
        return list(self._callers)

    def reset(self):
        super().reset()
        self._callers = []


class CacheSizeTracker(RecursionExeListener):
    """Keeps the latest cache sizes reported by a recursion."""

    def __init__(self):
        self.cache_sizes: List[int] = []
        self.computation_chunks: List[Optional[str]] = []
        self.ready = False

    def on_recursion_exe_event(self, event: RecursionExeEvent):
        self.cache_sizes = list(event.cache_sizes)
        self.computation_chunks = list(event.computation_chunks)
        self.ready = True
        logger.debug("Recursion cache size: %d", event.total_cache_size)

    @property
    def total_cache_size(self) -> int:
        return sum(self.cache_sizes)


def run_recursion(sample: AncestralConfig, *listeners: RecursionListener) -> Recursion:
    """
    Run a recursion over ``sample`` with the given listeners.

    Returns:
        The finished Recursion
    """
    recursion = Recursion(sample)
    for listener in listeners:
        recursion.add_listener(listener)
    recursion.run()
    return recursion


def exact_probability(sample: AncestralConfig) -> Decimal:
    """Exact probability of ``sample`` under its model."""
    computer = ExactProbComputer()
    run_recursion(sample, computer)
    return computer.result


def exact_probabilities(sample: AncestralConfig, models: Sequence[Any]) -> List[Decimal]:
    """Exact probabilities of ``sample`` under each model point."""
    computer = MultiExactProbComputer(models)
    run_recursion(sample, computer)
    return computer.result


def count_configs(sample: AncestralConfig) -> int:
    counter = ACCounter()
    run_recursion(sample, counter)
    return counter.result


def build_configs(sample: AncestralConfig) -> List[AncestralConfig]:
    builder = ACBuilder()
    run_recursion(sample, builder)
    return builder.result


def count_genealogies(sample: AncestralConfig) -> int:
    counter = GenealogyCounter()
    run_recursion(sample, counter)
    return counter.result


def build_genealogies(sample: AncestralConfig) -> List[Genealogy]:
    builder = GenealogyBuilder()
    run_recursion(sample, builder)
    return builder.result

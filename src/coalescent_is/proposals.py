"""
Importance sampling proposals over genealogies.

A proposal builds one genealogy at a time: at each configuration every
(allele, event type) pair gets a non-negative weight, one pair is drawn
with probability proportional to its weight and applied, until the MRCA is
reached. The draw distributions of the last genealogy are kept so that the
proposal can report the probability it assigned to that genealogy.

Named proposals differ only in their weights:

- SD (Stephens and Donnelly, 2000): allele frequency
- EGT (Ethier, Griffiths and Tavare): the exact transition probability
- HUW (Hobolth, Uyenoyama and Wiuf, 2008): closed-form mutation weights
- Exact: exact conditional weights from a precomputed recursion
- New: exact weights of the all-singleton sample, projected onto each step
"""

import copy
import logging
import math
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import AncestralConfig
from .errors import (
    CancellationError,
    EmptyWeightSetError,
    InvalidState,
    MissingTransitionsError,
    StaleCacheError,
)
from .events import Event, EventType, Genealogy
from .k69 import K69Config
from .listeners import ExactProbComputer
from .precision import ONE, ZERO, divide, precise, to_decimal
from .recursion import Recursion

logger = logging.getLogger(__name__)

Element = Tuple[Any, EventType]
Factor = Callable[[Genealogy], Decimal]


def _require_k69(sample: AncestralConfig, name: str):
    if not isinstance(sample, K69Config):
        raise ValueError(
            f"The {name} proposal needs an infinite-sites sample, got {type(sample).__name__}")


class ElementSampler:
    """
    Weighted categorical distribution over the (allele, event type) pairs
    of one configuration.
    """

    def __init__(self, elements: Sequence[Element], weights: Sequence[Decimal]):
        """
        Args:
            elements: (allele, event type) pairs
            weights: Non-negative weight of each pair
        """
        if not elements:
            raise EmptyWeightSetError("No elements to sample from")
        if len(elements) != len(weights):
            raise ValueError(f"Got {len(weights)} weights for {len(elements)} elements")

        weights = [to_decimal(w) for w in weights]
        if any(w < 0 for w in weights):
            raise EmptyWeightSetError(f"Negative proposal weight in {weights}")

        self.elements: List[Element] = list(elements)
        self.weights: List[Decimal] = weights
        self.weight_sum: Decimal = sum(weights, ZERO)
        if self.weight_sum == 0:
            raise EmptyWeightSetError("Proposal weights sum to zero")

        self.probabilities: List[Decimal] = [divide(w, self.weight_sum) for w in weights]
        self.chosen: Optional[int] = None

    def propose(self, rng: np.random.Generator) -> Element:
        p = np.array([float(x) for x in self.probabilities])
        p /= p.sum()
        self.chosen = int(rng.choice(len(p), p=p))
        return self.elements[self.chosen]

    @property
    def probability(self) -> Decimal:
        """Probability of the element drawn last."""
        if self.chosen is None:
            raise InvalidState("No element has been drawn")
        return self.probabilities[self.chosen]

    def index_of(self, allele: Any, event_type: EventType) -> Optional[int]:
        for i, (candidate, candidate_type) in enumerate(self.elements):
            if candidate_type == event_type and (candidate is allele or candidate == allele):
                return i
        return None

    def probability_of(self, allele: Any, event_type: EventType) -> Decimal:
        index = self.index_of(allele, event_type)
        if index is None:
            raise StaleCacheError(f"No {event_type.name} element for allele {allele!r}")
        return self.probabilities[index]


class GProposal(ABC):
    """
    Base class of genealogy proposals.

    Subclasses implement ``proposal_weight``. A proposal holds one sample;
    ``with_sample`` makes a copy with the same weighting for another one.
    """

    name = "gt"

    def __init__(self, sample: AncestralConfig):
        """
        Initialize the proposal.

        Args:
            sample: Sample configuration genealogies are drawn for
        """
        self._sample = sample
        self._cache: Dict[AncestralConfig, ElementSampler] = {}
        self._rng = np.random.default_rng(time.time_ns())

    @property
    def sample_config(self) -> AncestralConfig:
        return self._sample

    @property
    def rng(self) -> np.random.Generator:
        return self._rng

    @rng.setter
    def rng(self, rng: np.random.Generator):
        self._rng = rng

    def set_random_seed(self, seed: Optional[int] = None):
        """
        Reseed the random generator.

        Args:
            seed: Seed (default: current time in nanoseconds)
        """
        self._rng = np.random.default_rng(time.time_ns() if seed is None else seed)

    def init(self):
        """Prepare auxiliary state before a sampling run."""

    def clear(self):
        """Release auxiliary state after a sampling run."""

    @abstractmethod
    def proposal_weight(self, config: AncestralConfig, allele: Any,
                        event_type: EventType) -> Decimal:
        """
        Unnormalized weight of an event at a configuration.

        Args:
            config: Current configuration
            allele: Allele of ``config`` eligible for ``event_type``
            event_type: Event type

        Returns:
            Non-negative weight
        """

    def _elements(self, config: AncestralConfig) -> List[Element]:
        elements = [(allele, event_type)
                    for event_type in config.event_types
                    for allele in config.alleles(event_type)]
        if not elements:
            logger.error("No transitions from non-MRCA configuration %r", config)
            raise MissingTransitionsError(f"No transitions from non-MRCA configuration {config}")
        return elements

    def step_weights(self, config: AncestralConfig, elements: Sequence[Element]) -> List[Decimal]:
        """Weights of all elements of one step."""
        return [self.proposal_weight(config, allele, event_type) for allele, event_type in elements]

    @precise
    def element_sampler(self, config: AncestralConfig) -> ElementSampler:
        elements = self._elements(config)
        return ElementSampler(elements, self.step_weights(config, elements))

    def sample(self) -> Genealogy:
        """
        Draw one genealogy.

        Returns:
            Genealogy from the sample to the MRCA
        """
        self._cache = {}
        events: List[Event] = []
        config = self._sample

        while not config.is_mrca():
            sampler = self.element_sampler(config)
            self._cache[config] = sampler
            allele, event_type = sampler.propose(self._rng)
            ancestral = config.apply(allele, event_type)
            events.append(Event(config, ancestral, allele, event_type))
            config = ancestral

        return Genealogy(events, sample=self._sample)

    def _cached_sampler(self, config: AncestralConfig) -> ElementSampler:
        sampler = self._cache.get(config)
        if sampler is None:
            raise StaleCacheError(f"Configuration {config} was not visited by the last draw")
        return sampler

    @precise
    def probability(self, genealogy: Genealogy) -> Decimal:
        """
        Probability this proposal assigned to ``genealogy`` in the last draw.

        Raises:
            StaleCacheError: If a configuration of the genealogy was not visited by the last draw
        """
        result = ONE
        for event in genealogy:
            result *= self._cached_sampler(event.pre).probability_of(event.allele, event.event_type)
        return result

    def factor(self) -> Factor:
        """Importance weight: target probability over proposal probability."""

        @precise
        def importance_weight(genealogy: Genealogy) -> Decimal:
            return divide(genealogy.probability(), self.probability(genealogy))

        return importance_weight

    def step_distribution(self, config: AncestralConfig) -> Dict[Element, Decimal]:
        """Proposal probability of every (allele, event type) pair at ``config``."""
        sampler = self.element_sampler(config)
        return dict(zip(sampler.elements, sampler.probabilities))

    def step_probability(self, config: AncestralConfig, allele: Any,
                         event_type: EventType) -> Decimal:
        return self.element_sampler(config).probability_of(allele, event_type)

    def with_sample(self, sample: AncestralConfig) -> "GProposal":
        """Copy of this proposal drawing genealogies for ``sample``."""
        clone = copy.copy(self)
        clone._sample = sample
        clone._cache = {}
        return clone

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._sample})"


class SDProposal(GProposal):
    """Stephens-Donnelly proposal: weight is the number of lineages carrying the allele."""

    name = "SD"

    def proposal_weight(self, config, allele, event_type) -> Decimal:
        return Decimal(config.lineage_count(allele))


class EGTProposal(GProposal):
    """
    Ethier-Griffiths-Tavare proposal: weight is the exact transition probability.

    The importance weight is the product of the per-step weight sums times
    the MRCA boundary probability.
    """

    name = "EGT"

    def proposal_weight(self, config, allele, event_type) -> Decimal:
        return config.allele_transition_prob(allele, event_type)

    def factor(self) -> Factor:

        @precise
        def importance_weight(genealogy: Genealogy) -> Decimal:
            result = ONE
            for event in genealogy:
                result *= self._cached_sampler(event.pre).weight_sum
            return result * genealogy.mrca.prob_at_mrca()

        return importance_weight


class HUWProposal(GProposal):
    """
    Hobolth-Uyenoyama-Wiuf proposal for infinite-sites configurations.

    The weight of allele a with n_a lineages sums, over every mutation m
    carried by d of the n lineages, p(n, d) n_a / d if a carries m and
    (1 - p(n, d)) n_a / (n - d) otherwise. p(n, d) is the probability that
    the next event is on a lineage carrying m under the infinite-sites
    coalescent with mutation rate theta of the sample.
    """

    name = "HUW"

    def __init__(self, sample: AncestralConfig):
        super().__init__(sample)
        _require_k69(sample, self.name)
        self._p_cache: Dict[Tuple[int, int], Decimal] = {}
        self._binomial_cache: Dict[Tuple[int, int], Decimal] = {}

    @property
    def theta(self) -> Decimal:
        return self._sample.model.theta_decimal

    def clear(self):
        self._p_cache.clear()
        self._binomial_cache.clear()

    def with_sample(self, sample: AncestralConfig) -> "HUWProposal":
        clone = super().with_sample(sample)
        clone._p_cache = {}
        clone._binomial_cache = {}
        return clone

    def choose(self, n: int, k: int) -> Decimal:
        key = (n, k)
        if key not in self._binomial_cache:
            self._binomial_cache[key] = Decimal(math.comb(n, k))
        return self._binomial_cache[key]

    @precise
    def p(self, n: int, d: int) -> Decimal:
        key = (n, d)
        if key in self._p_cache:
            return self._p_cache[key]

        theta = self.theta
        if d == 1:
            total = sum((divide(k - 1, n - 1) / (k - 1 + theta) for k in range(2, n + 1)), ZERO)
            value = ONE / ((n - 1 + theta) * total)
        else:
            numerator = denominator = ZERO
            ks = [k for k in range(2, n - d + 2) if k != n]
            for k in ks:
                f1 = divide(d - 1, n - k)
                f2 = self.choose(n - d - 1, k - 2) / ((k - 1 + theta) * self.choose(n - 1, k - 1))
                numerator += f1 * f2
                denominator += f2
            value = numerator / denominator if ks else ONE

        self._p_cache[key] = value
        return value

    @precise
    def proposal_weight(self, config, allele, event_type) -> Decimal:
        counts = config.mutation_counts()
        if not counts:
            return ONE

        n = config.n
        n_a = Decimal(config.allele_frequency(allele))
        carried = set(allele.upper_mutations())

        weight = ZERO
        for mutation, d in counts.items():
            p = self.p(n, d)
            if mutation in carried:
                weight += p * n_a / d
            elif d != n:
                weight += (ONE - p) * n_a / (n - d)
        return weight


class ExactProposal(GProposal):
    """
    Proposal with exact conditional weights.

    ``init()`` runs an exact recursion over ``exact_sample``. At a
    configuration with an exact value the weight of a transition is its
    transition probability times the exact value of the predecessor, which
    makes the draw follow the true conditional distribution. Elsewhere the
    delegate's weight is used.
    """

    name = "Exact"

    def __init__(self, sample: AncestralConfig, delegate: Optional[GProposal] = None,
                 exact_sample: Optional[AncestralConfig] = None):
        """
        Args:
            sample: Sample configuration
            delegate: Proposal used where no exact value is known
            exact_sample: Configuration the exact recursion starts from (default: ``sample``)
        """
        super().__init__(sample)
        self.delegate = delegate
        self.exact_sample = exact_sample if exact_sample is not None else sample
        self._computer: Optional[ExactProbComputer] = None

    def init(self):
        logger.info("Running exact recursion from %s", self.exact_sample)
        computer = ExactProbComputer()
        recursion = Recursion(self.exact_sample)
        recursion.add_listener(computer)
        recursion.run()
        self._computer = computer
        logger.info("Finished exact recursion with %d cached configurations",
                    sum(recursion.cache_sizes()))
        if self.delegate is not None:
            self.delegate.init()

    def clear(self):
        self._computer = None
        if self.delegate is not None:
            self.delegate.clear()

    def exact_value(self, config: AncestralConfig) -> Optional[Decimal]:
        if self._computer is None:
            return None
        return self._computer.value(config)

    @precise
    def proposal_weight(self, config, allele, event_type) -> Decimal:
        if self.exact_value(config) is not None:
            ancestral = config.apply(allele, event_type)
            return config.transition_prob(event_type, ancestral) * self.exact_value(ancestral)

        if self.delegate is None:
            raise InvalidState(f"No exact value for {config} and no delegate proposal")
        return self.delegate.proposal_weight(config, allele, event_type)


class SingletonExactProposal(GProposal):
    """
    Exact weights projected from the all-singleton version of the sample.

    ``init()`` runs an exact recursion over ``sample.of_singleton()``. The
    weight of an event is its transition probability times an estimate of
    the predecessor's probability: the exact probability of the
    predecessor's all-singleton version, times the probability of
    coalescing its duplicate lineages first,

        (n - k)! / prod_{m=k+1}^{n} (m - 1 + theta)

    for a predecessor of n lineages and k distinct alleles. The estimate is
    exact for predecessors whose only remaining events are coalescences of
    duplicates, and every predecessor's singleton version is reached by the
    singleton recursion, so each configuration gets exact-informed weights.
    """

    name = "New"

    def __init__(self, sample: AncestralConfig):
        super().__init__(sample)
        _require_k69(sample, self.name)
        self._computer: Optional[ExactProbComputer] = None

    @property
    def exact_sample(self) -> AncestralConfig:
        return self._sample.of_singleton()

    def init(self):
        logger.info("Running exact recursion from %s", self.exact_sample)
        computer = ExactProbComputer()
        recursion = Recursion(self.exact_sample)
        recursion.add_listener(computer)
        recursion.run()
        self._computer = computer
        logger.info("Finished exact recursion with %d cached configurations",
                    sum(recursion.cache_sizes()))

    def clear(self):
        self._computer = None

    @precise
    def coalesce_first_prob(self, config: AncestralConfig) -> Decimal:
        """Probability that ``config`` coalesces its duplicate lineages before any other event."""
        theta = config.model.theta_decimal
        result = Decimal(math.factorial(config.n - config.k))
        for m in range(config.k + 1, config.n + 1):
            result /= m - 1 + theta
        return result

    @precise
    def proposal_weight(self, config, allele, event_type) -> Decimal:
        if self._computer is None:
            raise InvalidState(f"{type(self).__name__} used before init()")

        ancestral = config.apply(allele, event_type)
        exact = self._computer.value(ancestral.of_singleton())
        if exact is None:
            raise InvalidState(f"No exact value for the singleton version of {ancestral}")
        return (config.transition_prob(event_type, ancestral) * exact
                * self.coalesce_first_prob(ancestral))


class ExactDelegateProposal(GProposal):
    """
    Delegate proposal warmed up by a background exact recursion.

    ``init()`` moves the all-singleton version of the sample up to
    ``max_exact_events`` events from the MRCA with one delegate draw, then
    starts an exact recursion there on a worker thread. Draws never wait
    for it: a step uses exact weights once its configuration has an exact
    value and the delegate's weights until then.
    """

    name = "ExactDelegate"

    def __init__(self, sample: AncestralConfig, delegate: GProposal, max_exact_events: int = 32):
        super().__init__(sample)
        _require_k69(sample, self.name)
        if max_exact_events < 0:
            raise ValueError(f"max_exact_events must be non-negative, got {max_exact_events}")
        self.delegate = delegate
        self.max_exact_events = max_exact_events
        self.exact_sample: Optional[AncestralConfig] = None
        self._computer: Optional[ExactProbComputer] = None
        self._recursion: Optional[Recursion] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._future: Optional[Future] = None

    def _build_exact_sample(self) -> AncestralConfig:
        start = self._sample.of_singleton()
        gap = start.events_to_mrca() - self.max_exact_events
        if gap <= 0:
            return start
        genealogy = self.delegate.with_sample(start).sample()
        return genealogy.event_chain[gap - 1].post

    def init(self):
        self.delegate.init()
        self.exact_sample = self._build_exact_sample()

        self._computer = ExactProbComputer()
        self._recursion = Recursion(self.exact_sample)
        self._recursion.add_listener(self._computer)

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="exact-recursion")
        self._future = self._executor.submit(self._warm_up, self._recursion)

    @staticmethod
    def _warm_up(recursion: Recursion) -> bool:
        logger.info("Running exact recursion from %s", recursion.sample)
        try:
            recursion.run()
        except CancellationError:
            logger.info("Exact recursion cancelled")
            return False
        logger.info("Finished exact recursion")
        return True

    @property
    def warmed_up(self) -> bool:
        """True once the background recursion completed."""
        future = self._future
        return (future is not None and future.done() and not future.cancelled()
                and future.exception() is None and future.result())

    def clear(self):
        if self._recursion is not None:
            self._recursion.cancel()
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)
        self._recursion = None
        self._executor = None
        self._future = None
        self._computer = None
        self.delegate.clear()

    @precise
    def step_weights(self, config, elements) -> List[Decimal]:
        computer = self._computer
        if computer is None or computer.value(config) is None:
            return self.delegate.step_weights(config, elements)

        weights = []
        for allele, event_type in elements:
            ancestral = config.apply(allele, event_type)
            weights.append(config.transition_prob(event_type, ancestral) * computer.value(ancestral))
        return weights

    def proposal_weight(self, config, allele, event_type) -> Decimal:
        return self.step_weights(config, [(allele, event_type)])[0]


class CompositeProposal(GProposal):
    """
    Proposal that picks, per configuration, which sub-proposal supplies the weights.
    """

    name = "Composite"

    def __init__(self, sample: AncestralConfig, proposals: Dict[str, GProposal],
                 selector: Callable[[AncestralConfig], str]):
        """
        Args:
            sample: Sample configuration
            proposals: Sub-proposals by key
            selector: Maps a configuration to the key of the sub-proposal to use
        """
        super().__init__(sample)
        if not proposals:
            raise ValueError("A composite proposal needs at least one sub-proposal")
        self.proposals = dict(proposals)
        self.selector = selector

    def select(self, config: AncestralConfig) -> GProposal:
        key = self.selector(config)
        if key not in self.proposals:
            raise ValueError(f"Unknown proposal: {key}")
        return self.proposals[key]

    def init(self):
        for proposal in self.proposals.values():
            proposal.init()

    def clear(self):
        for proposal in self.proposals.values():
            proposal.clear()

    def with_sample(self, sample: AncestralConfig) -> "CompositeProposal":
        clone = super().with_sample(sample)
        clone.proposals = {key: p.with_sample(sample) for key, p in self.proposals.items()}
        return clone

    def proposal_weight(self, config, allele, event_type) -> Decimal:
        return self.select(config).proposal_weight(config, allele, event_type)


def sd_huw_selector(config) -> str:
    """SD while (n - 1) / 2 exceeds the number of mutations, HUW afterwards."""
    return "SD" if (config.n - 1) / 2 > config.sn else "HUW"


def sd_proposal(sample: AncestralConfig) -> SDProposal:
    return SDProposal(sample)


def egt_proposal(sample: AncestralConfig) -> EGTProposal:
    return EGTProposal(sample)


def huw_proposal(sample: AncestralConfig) -> HUWProposal:
    return HUWProposal(sample)


def sd_huw_proposal(sample) -> CompositeProposal:
    return CompositeProposal(sample, {"SD": SDProposal(sample), "HUW": HUWProposal(sample)},
                             sd_huw_selector)


def new_proposal(sample) -> SingletonExactProposal:
    return SingletonExactProposal(sample)


def exact_huw_proposal(sample) -> ExactProposal:
    """Exact weights within the all-singleton recursion, HUW elsewhere."""
    return ExactProposal(sample, delegate=HUWProposal(sample), exact_sample=sample.of_singleton())


def exact_delegate_proposal(sample, max_exact_events: int = 32) -> ExactDelegateProposal:
    return ExactDelegateProposal(sample, HUWProposal(sample), max_exact_events)


class MultiProposal:
    """
    Independent draws at several model points.

    Each model point has its own copy of the proposal over the sample
    re-seated on that model, so every draw has its own cache.
    """

    def __init__(self, proposal: GProposal, models: Sequence[Any]):
        """
        Args:
            proposal: Proposal over the sample
            models: Model points
        """
        if not models:
            raise ValueError("At least one model point is required")
        self.proposal = proposal
        self.models = list(models)
        self.proposals = [proposal.with_sample(proposal.sample_config.with_model(m))
                          for m in self.models]

    @property
    def size(self) -> int:
        return len(self.models)

    @property
    def sample_config(self) -> AncestralConfig:
        return self.proposal.sample_config

    def set_random_seed(self, seed: Optional[int] = None):
        self.proposal.set_random_seed(seed)
        for proposal in self.proposals:
            proposal.rng = self.proposal.rng

    def init(self):
        for proposal in self.proposals:
            proposal.init()

    def clear(self):
        for proposal in self.proposals:
            proposal.clear()

    def sample(self) -> List[Genealogy]:
        return [proposal.sample() for proposal in self.proposals]

    def probability(self, genealogies: Sequence[Genealogy]) -> List[Decimal]:
        return [p.probability(g) for p, g in zip(self.proposals, genealogies)]

    def factor(self) -> Callable[[Sequence[Genealogy]], List[Decimal]]:
        factors = [proposal.factor() for proposal in self.proposals]

        def importance_weights(genealogies: Sequence[Genealogy]) -> List[Decimal]:
            return [f(g) for f, g in zip(factors, genealogies)]

        return importance_weights


class NIDMultiProposal(MultiProposal):
    """
    One draw under the first model point, reused at every point.
    """

    def __init__(self, proposal: GProposal, models: Sequence[Any]):
        super().__init__(proposal, models)
        self.base = self.proposals[0]

    def init(self):
        self.base.init()

    def clear(self):
        self.base.clear()

    def sample(self) -> List[Genealogy]:
        return [self.base.sample()] * self.size

    def probability(self, genealogies: Sequence[Genealogy]) -> List[Decimal]:
        return [self.base.probability(genealogies[0])] * self.size

    def factor(self) -> Callable[[Sequence[Genealogy]], List[Decimal]]:

        @precise
        def importance_weights(genealogies: Sequence[Genealogy]) -> List[Decimal]:
            genealogy = genealogies[0]
            q = self.base.probability(genealogy)
            return [divide(genealogy.probability(model=m), q) for m in self.models]

        return importance_weights


class EGTMultiProposal(NIDMultiProposal):
    """
    EGT draws under the first model point, reweighted in closed form.

    Relative to theta_0, a coalescent step under theta_i scales by
    (n - 1 + theta_0) / (n - 1 + theta_i) and a mutation step additionally by
    theta_i / theta_0.
    """

    def __init__(self, sample: AncestralConfig, models: Sequence[Any]):
        super().__init__(EGTProposal(sample), models)
        if self.models[0].theta_decimal <= 0:
            raise ValueError("The first model point must have a positive mutation rate")

    def factor(self) -> Callable[[Sequence[Genealogy]], List[Decimal]]:

        @precise
        def importance_weights(genealogies: Sequence[Genealogy]) -> List[Decimal]:
            genealogy = genealogies[0]
            theta_0 = self.models[0].theta_decimal
            result = [ONE] * self.size
            for event in genealogy:
                weight_sum = self.base._cached_sampler(event.pre).weight_sum
                n = event.pre.n
                for i, model in enumerate(self.models):
                    theta_i = model.theta_decimal
                    scale = divide(n - 1 + theta_0, n - 1 + theta_i)
                    if event.event_type == EventType.MUTATION:
                        scale *= divide(theta_i, theta_0)
                    result[i] *= weight_sum * scale
            mrca = genealogy.mrca.prob_at_mrca()
            return [value * mrca for value in result]

        return importance_weights


def egt_multi(sample, models) -> EGTMultiProposal:
    return EGTMultiProposal(sample, models)


def egt_multi_default(sample, models) -> MultiProposal:
    return MultiProposal(EGTProposal(sample), models)


def egt_multi_improved(sample, models) -> MultiProposal:
    return MultiProposal(EGTProposal(sample), models)


def sd_multi(sample, models) -> NIDMultiProposal:
    return NIDMultiProposal(SDProposal(sample), models)


def huw_multi(sample, models) -> NIDMultiProposal:
    return NIDMultiProposal(HUWProposal(sample), models)

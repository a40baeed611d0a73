"""
Importance sampling driver.

A sampler repeatedly draws genealogies from a proposal and accumulates the
running mean and variance of importance weight times a target function.
With the default target function (constant one) the mean estimates the
probability of the sample.
"""

import threading
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, List, Optional, Sequence, Union

from .errors import CancellationError, InvalidState
from .events import Genealogy
from .precision import ONE, ZERO, divide, precise, sqrt, to_decimal
from .proposals import (
    GProposal,
    MultiProposal,
    egt_multi,
    egt_multi_default,
    egt_multi_improved,
    egt_proposal,
    huw_multi,
    huw_proposal,
    new_proposal,
    sd_huw_proposal,
    sd_multi,
    sd_proposal,
)

Duration = Union[int, str]


@dataclass
class SamplerConfig:
    """Configuration for an importance sampler."""

    sample_size: Optional[int] = None
    """Number of draws; takes precedence over ``duration``"""

    duration: Optional[Duration] = None
    """Wall-clock budget in milliseconds, or a string such as "1m 30s\""""

    per_order_size: int = 500
    """Draws per event to the MRCA when neither sample_size nor duration is set"""

    random_seed: Optional[int] = None
    """Random seed for the proposal"""

    verbose: bool = True
    """Print progress information"""


@dataclass
class SamplerResults:
    """Results of a sampler run."""

    name: str = ""
    """Sampler name"""

    sample_size: int = 0
    """Number of completed draws"""

    mean: Decimal = ZERO
    """Importance sampling estimate"""

    std_error: Decimal = ZERO
    """Standard error of the estimate"""

    ess: Decimal = ZERO
    """Effective sample size"""

    completed: bool = False
    """False if the run was cancelled"""

    elapsed_seconds: float = 0.0
    """Wall-clock time of the run"""


@dataclass
class MultiSamplerResults:
    """Results of a multi-point sampler run, one entry per model point."""

    name: str = ""
    """Sampler name"""

    sample_size: int = 0
    """Number of completed draws"""

    means: List[Decimal] = field(default_factory=list)
    """Importance sampling estimate per model point"""

    std_errors: List[Decimal] = field(default_factory=list)
    """Standard error per model point"""

    ess: List[Decimal] = field(default_factory=list)
    """Effective sample size per model point"""

    completed: bool = False
    """False if the run was cancelled"""

    elapsed_seconds: float = 0.0
    """Wall-clock time of the run"""


_DURATION_UNITS = {"h": 60 * 60 * 1000, "m": 60 * 1000, "s": 1000}


def parse_duration(duration: Duration) -> int:
    """
    Convert a duration to milliseconds.

    Args:
        duration: Milliseconds, or space separated tokens such as "1h 30m 10s"

    Returns:
        Duration in milliseconds
    """
    if isinstance(duration, int):
        if duration < 0:
            raise ValueError(f"Duration must be non-negative, got {duration}")
        return duration

    tokens = str(duration).split()
    if not tokens:
        raise ValueError(f"Invalid duration string: {duration!r}")

    total = 0
    for token in tokens:
        unit = token[-1].lower()
        amount = token[:-1]
        if unit not in _DURATION_UNITS or not amount.isdigit():
            raise ValueError(f"Invalid duration token: {token!r}")
        total += int(amount) * _DURATION_UNITS[unit]
    return total


def format_duration(millis: int) -> str:
    """Inverse of :func:`parse_duration`, e.g. 5410000 -> "1h 30m 10s"."""
    seconds = millis // 1000
    parts = [(seconds // 3600, "h"), (seconds // 60 % 60, "m"), (seconds % 60, "s")]
    return " ".join(f"{value}{unit}" for value, unit in parts if value > 0) or "0s"


class RunningStatistics:
    """
    Welford running mean and variance in 128-digit decimals.
    """

    def __init__(self):
        self.n = 0
        self.mean = ZERO
        self._m2 = ZERO

    @precise
    def add(self, value: Decimal):
        value = to_decimal(value)
        self.n += 1
        delta = value - self.mean
        self.mean += delta / self.n
        self._m2 += delta * (value - self.mean)

    @property
    @precise
    def variance(self) -> Decimal:
        """Sample variance (n - 1 denominator); zero below two values."""
        if self.n < 2:
            return ZERO
        # rounding can push m2 just below zero for near-constant weights
        return max(self._m2, ZERO) / (self.n - 1)

    @property
    @precise
    def std_error(self) -> Decimal:
        if self.n == 0:
            return ZERO
        return sqrt(self.variance / self.n)

    @property
    @precise
    def cov_square(self) -> Decimal:
        """Squared coefficient of variation."""
        if self.n == 0 or self.mean == 0:
            return ZERO
        return self.variance / (self.mean * self.mean)

    @property
    @precise
    def ess(self) -> Decimal:
        """Effective sample size n / (1 + CV^2)."""
        if self.n == 0:
            return ZERO
        if self.mean == 0:
            return ZERO if self.variance > 0 else Decimal(self.n)
        return divide(self.n, ONE + self.cov_square)


class SampleSizeIterator:
    """Stops after a fixed number of draws."""

    def __init__(self, sample_size: int):
        if sample_size < 0:
            raise ValueError(f"Sample size must be non-negative, got {sample_size}")
        self.sample_size = sample_size

    def start(self):
        pass

    def stop(self):
        pass

    def has_next(self, done: int) -> bool:
        return done < self.sample_size

    def fraction_completed(self, done: int) -> float:
        if self.sample_size == 0:
            return 1.0
        return min(1.0, done / self.sample_size)


class TimeIterator:
    """
    Stops once a wall-clock budget is spent.

    A timer flips the stop flag ``duration + 1000`` ms after ``start()``.
    """

    def __init__(self, duration: Duration):
        self.millis = parse_duration(duration)
        self.delay = self.millis + 1000
        self._expired = threading.Event()
        self._timer: Optional[threading.Timer] = None
        self._started_at: Optional[float] = None

    def start(self):
        self._expired.clear()
        self._timer = threading.Timer(self.delay / 1000, self._expired.set)
        self._timer.daemon = True
        self._started_at = time.monotonic()
        self._timer.start()

    def stop(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def has_next(self, done: int) -> bool:
        return self._started_at is not None and not self._expired.is_set()

    def fraction_completed(self, done: int) -> float:
        if self._started_at is None:
            return 0.0
        elapsed = (time.monotonic() - self._started_at) * 1000
        return min(1.0, elapsed / self.delay)


class Sampler:
    """
    Importance sampler over genealogies.

    Each draw contributes ``factor(g) * mean_function(g)`` to the running
    statistics.
    """

    def __init__(
        self,
        name: str,
        proposal: GProposal,
        factor: Optional[Callable[[Genealogy], Decimal]] = None,
        mean_function: Optional[Callable[[Genealogy], Decimal]] = None,
        config: Optional[SamplerConfig] = None
    ):
        """
        Initialize the sampler.

        Args:
            name: Sampler name used in reports
            proposal: Proposal genealogies are drawn from
            factor: Importance weight of a draw (default: ``proposal.factor()``)
            mean_function: Target function of a draw (default: constant one)
            config: Configuration object
        """
        self.name = name
        self.proposal = proposal
        self.factor = factor or proposal.factor()
        self.mean_function = mean_function or (lambda genealogy: ONE)
        self.config = config or SamplerConfig()

        self._cancel = threading.Event()
        self._completed = False
        self._elapsed = 0.0
        self._reset_statistics()

        if self.config.random_seed is not None:
            self.proposal.set_random_seed(self.config.random_seed)

        if self.config.sample_size is not None:
            self.set_iterator_by_sample_size(self.config.sample_size)
        elif self.config.duration is not None:
            self.set_iterator_by_time(self.config.duration)
        else:
            events = self.proposal.sample_config.events_to_mrca()
            self.set_iterator_by_sample_size(events * self.config.per_order_size)

    def _reset_statistics(self):
        self._stats = RunningStatistics()

    def set_iterator_by_sample_size(self, sample_size: int) -> "Sampler":
        self._iterator = SampleSizeIterator(sample_size)
        return self

    def set_iterator_by_time(self, duration: Duration) -> "Sampler":
        self._iterator = TimeIterator(duration)
        return self

    def cancel(self):
        """Stop the current run after the draw in progress, or the next run before its first draw."""
        self._cancel.set()

    @property
    def completed(self) -> bool:
        return self._completed

    def now_sample_size(self) -> int:
        return self._stats.n

    def now_mean(self) -> Decimal:
        return self._stats.mean

    def now_std_error(self) -> Decimal:
        return self._stats.std_error

    def now_ess(self) -> Decimal:
        return self._stats.ess

    def fraction_completed(self) -> float:
        return self._iterator.fraction_completed(self.now_sample_size())

    def next(self):
        """Draw one genealogy and update the statistics."""
        genealogy = self.proposal.sample()
        self._stats.add(self.factor(genealogy) * self.mean_function(genealogy))

    def _print_header(self):
        print("=" * 60)
        print(f"Running importance sampler {self.name}")
        print("=" * 60)
        print(f"Proposal: {self.proposal!r}")
        if isinstance(self._iterator, TimeIterator):
            print(f"Time budget: {format_duration(self._iterator.millis)}")
        else:
            print(f"Sample size: {self._iterator.sample_size}")
        print("=" * 60)

    def _print_summary(self):
        print("=" * 60)
        print("Sampler Complete" if self._completed else "Sampler Cancelled")
        print(f"Draws: {self.now_sample_size()}")
        print(f"Mean: {self._format(self.now_mean())}")
        print(f"Std error: {self._format(self.now_std_error())}")
        print(f"ESS: {self._format(self.now_ess())}")
        print(f"Elapsed: {self._elapsed:.2f}s")
        print("=" * 60)

    @staticmethod
    def _format(value) -> str:
        if isinstance(value, list):
            return ", ".join(f"{float(v):.6e}" for v in value)
        return f"{float(value):.6e}"

    def run(self):
        """
        Run the sampler until its iteration strategy stops.

        Returns:
            Results of the run

        Raises:
            CancellationError: If ``cancel()`` was called; statistics of the
                completed draws remain available
        """
        if self.config.verbose:
            self._print_header()

        self._completed = False
        self._reset_statistics()
        started = time.perf_counter()

        self.proposal.init()
        try:
            self._iterator.start()
            while not self._cancel.is_set() and self._iterator.has_next(self.now_sample_size()):
                self.next()
            if self._cancel.is_set():
                raise CancellationError(
                    f"Sampler {self.name} cancelled after {self.now_sample_size()} draws")
            self._completed = True
        finally:
            self._cancel.clear()
            self._iterator.stop()
            self.proposal.clear()
            self._elapsed = time.perf_counter() - started

        if self.config.verbose:
            self._print_summary()

        return self.results()

    def results(self) -> SamplerResults:
        return SamplerResults(
            name=self.name,
            sample_size=self.now_sample_size(),
            mean=self.now_mean(),
            std_error=self.now_std_error(),
            ess=self.now_ess(),
            completed=self._completed,
            elapsed_seconds=self._elapsed,
        )


class MultiSampler(Sampler):
    """
    Importance sampler at several model points.

    Every draw of the multi-point proposal updates one set of running
    statistics per model point. Measures are lists in model order.
    """

    def __init__(
        self,
        name: str,
        proposal: MultiProposal,
        factor: Optional[Callable[[Sequence[Genealogy]], List[Decimal]]] = None,
        mean_function: Optional[Callable[[Genealogy], Decimal]] = None,
        config: Optional[SamplerConfig] = None
    ):
        self.size = proposal.size
        super().__init__(name, proposal, factor, mean_function, config)

    def _reset_statistics(self):
        self._multi_stats = [RunningStatistics() for _ in range(self.size)]

    def now_sample_size(self) -> int:
        return self._multi_stats[0].n

    def now_mean(self) -> List[Decimal]:
        return [stats.mean for stats in self._multi_stats]

    def now_std_error(self) -> List[Decimal]:
        return [stats.std_error for stats in self._multi_stats]

    def now_ess(self) -> List[Decimal]:
        return [stats.ess for stats in self._multi_stats]

    def next(self):
        genealogies = self.proposal.sample()
        factors = self.factor(genealogies)
        if len(factors) != self.size:
            raise InvalidState(f"Expected {self.size} importance weights, got {len(factors)}")
        for stats, weight, genealogy in zip(self._multi_stats, factors, genealogies):
            stats.add(weight * self.mean_function(genealogy))

    def results(self) -> MultiSamplerResults:
        return MultiSamplerResults(
            name=self.name,
            sample_size=self.now_sample_size(),
            means=self.now_mean(),
            std_errors=self.now_std_error(),
            ess=self.now_ess(),
            completed=self._completed,
            elapsed_seconds=self._elapsed,
        )


PROPOSALS = {
    "gt_EGT": egt_proposal,
    "gt_SD": sd_proposal,
    "gt_HUW": huw_proposal,
    "gt_Mixed_SD_HUW": sd_huw_proposal,
    "gt_New": new_proposal,
}
"""Sampler name -> proposal factory"""

MULTI_PROPOSALS = {
    "gt_EGT": egt_multi,
    "gt_EGT_Default": egt_multi_default,
    "gt_EGT_Improved": egt_multi_improved,
    "gt_SD": sd_multi,
    "gt_HUW": huw_multi,
}
"""Sampler name -> multi-point proposal factory"""


def new_sampler(name: str, sample, config: Optional[SamplerConfig] = None,
                mean_function: Optional[Callable[[Genealogy], Decimal]] = None) -> Sampler:
    """
    Build a named sampler over ``sample``.

    Args:
        name: One of gt_EGT, gt_SD, gt_HUW, gt_Mixed_SD_HUW, gt_New
        sample: Sample configuration
        config: Configuration object
        mean_function: Target function (default: constant one)

    Returns:
        Sampler
    """
    if name not in PROPOSALS:
        raise ValueError(f"Unknown proposal: {name}")
    return Sampler(name, PROPOSALS[name](sample), mean_function=mean_function, config=config)


def new_multi_sampler(name: str, sample, models: Sequence[Any],
                      config: Optional[SamplerConfig] = None,
                      mean_function: Optional[Callable[[Genealogy], Decimal]] = None) -> MultiSampler:
    """
    Build a named multi-point sampler over ``sample``.

    Args:
        name: One of gt_EGT, gt_EGT_Default, gt_EGT_Improved, gt_SD, gt_HUW
        sample: Sample configuration
        models: Model points; the first one drives the shared draws
        config: Configuration object
        mean_function: Target function (default: constant one)

    Returns:
        MultiSampler
    """
    if name not in MULTI_PROPOSALS:
        raise ValueError(f"Unknown proposal: {name}")
    proposal = MULTI_PROPOSALS[name](sample, models)
    return MultiSampler(name, proposal, mean_function=mean_function, config=config)


def run_sampler(
    sample,
    proposal: str = "gt_SD",
    sample_size: Optional[int] = None,
    duration: Optional[Duration] = None,
    per_order_size: int = 500,
    random_seed: Optional[int] = None,
    verbose: bool = True
) -> SamplerResults:
    """
    Convenience function to estimate the probability of a sample.

    Args:
        sample: Sample configuration
        proposal: Sampler name (see ``PROPOSALS``)
        sample_size: Number of draws
        duration: Time budget in milliseconds or as "1m 30s"
        per_order_size: Draws per event to the MRCA if neither budget is set
        random_seed: Random seed
        verbose: Print progress

    Returns:
        SamplerResults
    """
    config = SamplerConfig(
        sample_size=sample_size,
        duration=duration,
        per_order_size=per_order_size,
        random_seed=random_seed,
        verbose=verbose
    )
    return new_sampler(proposal, sample, config=config).run()


def run_multi_sampler(
    sample,
    models: Sequence[Any],
    proposal: str = "gt_EGT",
    sample_size: Optional[int] = None,
    duration: Optional[Duration] = None,
    per_order_size: int = 500,
    random_seed: Optional[int] = None,
    verbose: bool = True
) -> MultiSamplerResults:
    """
    Convenience function to estimate the probability of a sample at several model points.

    Args:
        sample: Sample configuration
        models: Model points
        proposal: Sampler name (see ``MULTI_PROPOSALS``)
        sample_size: Number of draws
        duration: Time budget in milliseconds or as "1m 30s"
        per_order_size: Draws per event to the MRCA if neither budget is set
        random_seed: Random seed
        verbose: Print progress

    Returns:
        MultiSamplerResults
    """
    config = SamplerConfig(
        sample_size=sample_size,
        duration=duration,
        per_order_size=per_order_size,
        random_seed=random_seed,
        verbose=verbose
    )
    return new_multi_sampler(proposal, sample, models, config=config).run()

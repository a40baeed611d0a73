"""Tests for recursion listeners and exact probabilities."""

import math
from decimal import Decimal, localcontext
from fractions import Fraction

import pytest

from coalescent_is import (
    K69,
    KC64,
    ACBuilder,
    FocusedFwdCountChecker,
    FwdCountChecker,
    GenealogyBuilder,
    K69Config,
    K69Data,
    KC64Config,
    build_configs,
    build_genealogies,
    count_configs,
    count_genealogies,
    exact_probabilities,
    exact_probability,
    is_close,
    run_recursion,
)
from coalescent_is.precision import CONTEXT, divide


def partitions(n, largest=None):
    """Integer partitions of n as lists of parts."""
    largest = n if largest is None else largest
    if n == 0:
        yield []
        return
    for part in range(min(n, largest), 0, -1):
        for rest in partitions(n - part, part):
            yield [part] + rest


def spectrum(parts):
    a = [0] * max(parts)
    for part in parts:
        a[part - 1] += 1
    return a


def ewens(parts, theta):
    """Ewens sampling formula for the allele partition ``parts``."""
    theta = Fraction(theta)
    n = sum(parts)
    rising = math.prod(theta + i for i in range(n))
    value = Fraction(math.factorial(n)) / rising
    for j, count in enumerate(spectrum(parts), start=1):
        value *= theta ** count / (Fraction(j) ** count * math.factorial(count))
    with localcontext(CONTEXT):
        return Decimal(value.numerator) / Decimal(value.denominator)


@pytest.mark.parametrize("form,expected", [
    ("3^1", Fraction(1, 3)),
    ("1^1_2^1", Fraction(1, 2)),
    ("1^3", Fraction(1, 6)),
    ("4^1", Fraction(1, 4)),
    ("1^4", Fraction(1, 24)),
])
def test_kc64_golden_values(kc64, form, expected):
    """Exact probabilities at theta = 1."""
    sample = KC64Config.from_canonical_form(kc64, form)
    assert is_close(exact_probability(sample), divide(expected.numerator, expected.denominator))


@pytest.mark.parametrize("theta", [1.0, 2.5])
def test_kc64_matches_ewens(theta):
    """The recursion reproduces the Ewens sampling formula."""
    model = KC64(theta)
    for n in range(2, 7):
        for parts in partitions(n):
            sample = KC64Config(model, spectrum(parts))
            assert is_close(exact_probability(sample), ewens(parts, theta), "1e-40")


def test_kc64_probabilities_sum_to_one():
    """Allele partitions of a sample size exhaust the probability."""
    model = KC64(0.7)
    for n in range(2, 7):
        with localcontext(CONTEXT):
            total = sum(exact_probability(KC64Config(model, spectrum(p))) for p in partitions(n))
        assert is_close(total, Decimal(1))


@pytest.mark.parametrize("theta,expected", [(1.0, Fraction(1, 4)), (2.0, Fraction(2, 9))])
def test_k69_pair(theta, expected):
    """Two lineages one mutation apart: theta / (1 + theta)^2."""
    sample = K69Config.from_data(K69Data.from_sequences(K69(theta), ["1", "0"], [1, 1]))
    assert is_close(exact_probability(sample), divide(expected.numerator, expected.denominator))


def test_k69_no_mutation_sample(k69):
    """Three identical lineages coalesce without mutating."""
    sample = K69Config.mrca(k69, 3)
    assert is_close(exact_probability(sample), divide(1, 3))


def test_exact_equals_genealogy_sum(k69_sample, kc64_sample):
    """The exact probability is the sum over all genealogies."""
    for sample in (k69_sample, kc64_sample):
        genealogies = build_genealogies(sample)
        with localcontext(CONTEXT):
            total = sum(g.probability() for g in genealogies)
        assert is_close(total, exact_probability(sample))


def test_multi_exact(k69_sample):
    """One pass evaluates every model point."""
    models = [K69(1.0), K69(2.0), K69(0.5)]
    values = exact_probabilities(k69_sample, models)
    assert len(values) == 3
    for model, value in zip(models, values):
        assert is_close(value, exact_probability(k69_sample.with_model(model)))


def test_config_counts(kc64_sample, k69_pair):
    """Distinct configurations, sample and MRCA included."""
    assert count_configs(kc64_sample) == 6
    assert count_configs(k69_pair) == 3

    configs = build_configs(kc64_sample)
    assert len(configs) == 6
    assert configs[0] == KC64Config(kc64_sample.model, [1])
    assert configs[-1] == kc64_sample


def test_genealogy_counts(kc64, k69_pair):
    """Genealogies of small samples."""
    sample = KC64Config(kc64, [1, 1])
    assert count_genealogies(sample) == 2
    assert sorted(g.event_sequence() for g in build_genealogies(sample)) == ["CM", "MC"]

    assert count_genealogies(k69_pair) == 1
    assert build_genealogies(k69_pair)[0].event_sequence() == "MC"


def test_identical_lineages(kc64):
    """Four identical lineages coalesce along a single path."""
    sample = KC64Config.from_canonical_form(kc64, "4^1")
    assert count_configs(sample) == 4
    assert count_genealogies(sample) == 1
    assert build_genealogies(sample)[0].event_sequence() == "CCC"
    assert is_close(exact_probability(sample), divide(1, 4))


def test_genealogy_counter_matches_builder(k69_sample, kc64_sample):
    """Counting and enumerating agree when no transitions collide."""
    for sample in (k69_sample, kc64_sample):
        assert count_genealogies(sample) == len(build_genealogies(sample))


def test_sorted_by_probability(kc64_sample):
    """The most probable genealogy comes first."""
    builder = GenealogyBuilder()
    run_recursion(kc64_sample, builder)
    ordered = builder.sorted_by_probability()
    probabilities = [g.probability() for g in ordered]
    assert probabilities == sorted(probabilities, reverse=True)


def test_forward_callers(kc64):
    """Callers are the configurations transitioning into a configuration."""
    sample = KC64Config(kc64, [1, 1])
    mrca = KC64Config(kc64, [1])

    checker = FwdCountChecker()
    focused = FocusedFwdCountChecker(mrca)
    run_recursion(sample, checker, focused)

    assert checker.caller_count(mrca) == 2
    assert checker.callers(sample) == []
    assert set(focused.callers) == {KC64Config(kc64, [2]), KC64Config(kc64, [0, 1])}
    assert not checker.has_inconsistent_count(lambda config: checker.caller_count(config))
    assert checker.has_inconsistent_count(lambda config: 0)


def test_ac_builder_post_order(k69_pair):
    """Configurations are collected MRCA first."""
    builder = ACBuilder()
    run_recursion(k69_pair, builder)
    configs = builder.result
    assert configs[0].is_mrca()
    assert configs[-1] == k69_pair

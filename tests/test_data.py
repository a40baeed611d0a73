"""Tests for KC64Data and K69Data."""

import numpy as np
import pytest

from coalescent_is import K69, KC64, K69Data, KC64Data, parse_canonical_form


def test_parse_canonical_form():
    """Canonical forms list frequency^count tokens."""
    assert parse_canonical_form("1^2_3^1") == [(1, 2), (3, 1)]
    for bad in ("", "1^2_", "1-2", "0^1"):
        with pytest.raises(ValueError):
            parse_canonical_form(bad)


def test_kc64_data_from_canonical_form():
    """Alleles are labelled Type-1, Type-2, ... in order."""
    data = KC64Data.from_canonical_form(1.0, "1^2_3^1")
    assert data.model == KC64(1.0)
    assert data.alleles == ["Type-1", "Type-2", "Type-3"]
    assert data.allele_frequency("Type-3") == 3
    assert data.sample_size == 5
    assert data.allele_count == 3
    assert data.alleles_by_freq(1) == ["Type-1", "Type-2"]
    np.testing.assert_array_equal(data.frequencies(), [1, 1, 3])


def test_kc64_data_validation():
    """Frequencies must be positive integers."""
    with pytest.raises(ValueError):
        KC64Data(1.0, {})
    with pytest.raises(ValueError):
        KC64Data(1.0, {"a": 0})
    with pytest.raises(ValueError):
        KC64Data(1.0, {"a": 1}).allele_frequency("b")


def test_k69_data_accessors(k69_data):
    """Sequences, scores and the binary matrix agree."""
    assert k69_data.model == K69(1.0)
    assert k69_data.mutations == ["1", "2"]
    assert k69_data.mutation_count == 2
    assert k69_data.sample_size == 4
    assert k69_data.allele_sequence("a-1") == "10"
    assert k69_data.mutation_score("a-0", 2) == 1
    assert k69_data.mutation_score("a-1", 2) == 0
    assert k69_data.alleles_by_mutation_count(0) == ["a-2"]
    np.testing.assert_array_equal(k69_data.matrix(), [[1, 1], [1, 0], [0, 0]])

    with pytest.raises(ValueError):
        k69_data.mutation_score("a-0", 3)


@pytest.mark.parametrize("sequences,frequencies", [
    (["11", "10"], [1, 1]),      # site 1 is not segregating
    (["10", "10"], [1, 1]),      # duplicate sequences
    (["10", "0"], [1, 1]),       # unequal lengths
    (["1a", "00"], [1, 1]),      # not binary
])
def test_k69_data_validation(sequences, frequencies):
    """Malformed infinite-sites data is rejected."""
    with pytest.raises(ValueError):
        K69Data.from_sequences(1.0, sequences, frequencies)


def test_k69_data_mutation_labels():
    """Mutation labels must match the sites and be unique."""
    with pytest.raises(ValueError):
        K69Data.from_sequences(1.0, ["1", "0"], [1, 1], mutations=["x", "y"])
    with pytest.raises(ValueError):
        K69Data.from_sequences(1.0, ["11", "00"], [1, 1], mutations=["x", "x"])

    data = K69Data.from_sequences(1.0, ["11", "00"], [1, 1], mutations=["x", "y"])
    assert data.mutations == ["x", "y"]


def test_delete_mutations(k69_data):
    """Alleles that become identical merge into the first one."""
    reduced = k69_data.delete_mutations("2")
    assert reduced.mutations == ["1"]
    assert reduced.alleles == ["a-0", "a-2"]
    assert reduced.allele_frequency("a-0") == 3
    assert reduced.allele_sequence("a-0") == "1"
    assert reduced.sample_size == k69_data.sample_size

    with pytest.raises(ValueError):
        k69_data.delete_mutations("9")


def test_k69_data_equality(k69_data):
    """Equal sequences and frequencies give equal data."""
    same = K69Data.from_sequences(K69(1.0), ["11", "10", "00"], [1, 2, 1])
    assert same == k69_data
    assert hash(same) == hash(k69_data)
    assert K69Data.from_sequences(K69(2.0), ["11", "10", "00"], [1, 2, 1]) != k69_data

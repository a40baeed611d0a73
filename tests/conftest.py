"""Shared fixtures for the coalescent_is tests."""

import logging

import pytest

from coalescent_is import K69, KC64, K69Config, K69Data, KC64Config


def pytest_configure(config):
    """Set up logging before tests run."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@pytest.fixture
def kc64():
    return KC64(1.0)


@pytest.fixture
def k69():
    return K69(1.0)


@pytest.fixture
def kc64_sample(kc64):
    """Two singletons and one doubleton (n = 4)."""
    return KC64Config.from_canonical_form(kc64, "1^2_2^1")


@pytest.fixture
def k69_pair(k69):
    """Two lineages separated by one mutation."""
    return K69Config.from_data(K69Data.from_sequences(k69, ["1", "0"], [1, 1]))


@pytest.fixture
def k69_data(k69):
    """Nested mutations: a-0 carries 1 and 2, a-1 carries 1, a-2 is wild."""
    return K69Data.from_sequences(k69, ["11", "10", "00"], [1, 2, 1])


@pytest.fixture
def k69_sample(k69_data):
    return K69Config.from_data(k69_data)

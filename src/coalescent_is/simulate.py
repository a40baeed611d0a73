"""
Sample simulation with msprime.

Samples are simulated on a single haploid locus with a continuous genome,
so every mutation falls on a new site and the genotype matrix is
infinite-sites data. With pairwise coalescence rate 1/N per generation, a
per-generation mutation rate of theta / (2N) gives the population mutation
rate theta used by the models.
"""

from typing import Dict, Optional, Union

import msprime
import numpy as np
import tskit

from .data import K69Data, KC64Data
from .models import K69, KC64


def simulate_tree_sequence(
    sample_size: int,
    theta: float,
    population_size: float = 10_000,
    random_seed: Optional[int] = None
) -> tskit.TreeSequence:
    """
    Simulate a coalescent genealogy with mutations.

    Args:
        sample_size: Number of haploid samples
        theta: Population mutation rate
        population_size: Effective population size
        random_seed: Random seed for reproducibility

    Returns:
        Tree sequence with one tree and its mutations
    """
    if sample_size < 1:
        raise ValueError(f"Sample size must be positive, got {sample_size}")
    if theta < 0:
        raise ValueError(f"Mutation rate must be non-negative, got {theta}")

    ts = msprime.sim_ancestry(
        samples=sample_size,
        ploidy=1,
        population_size=population_size,
        sequence_length=1,
        discrete_genome=False,
        random_seed=random_seed
    )
    return msprime.sim_mutations(
        ts,
        rate=theta / (2 * population_size),
        discrete_genome=False,
        random_seed=random_seed
    )


def _haplotype_counts(ts: tskit.TreeSequence) -> Dict[str, int]:
    genotypes = np.asarray(ts.genotype_matrix(), dtype=np.int8)
    counts: Dict[str, int] = {}
    for haplotype in genotypes.T:
        key = "".join(str(x) for x in haplotype)
        counts[key] = counts.get(key, 0) + 1
    return counts


def k69_data_from_tree_sequence(ts: tskit.TreeSequence, theta: Union[K69, float]) -> K69Data:
    """
    Infinite-sites data of a tree sequence.

    Identical haplotypes are collapsed into one allele whose frequency is
    the number of samples carrying it.

    Args:
        ts: Tree sequence with binary mutations
        theta: K69 model or its mutation rate

    Returns:
        K69Data with alleles a-0, a-1, ... in order of first appearance
    """
    if ts.num_sites == 0:
        raise ValueError("Tree sequence has no segregating sites")

    counts = _haplotype_counts(ts)
    return K69Data.from_sequences(theta, list(counts), list(counts.values()))


def kc64_data_from_tree_sequence(ts: tskit.TreeSequence, theta: Union[KC64, float]) -> KC64Data:
    """Infinite-alleles data of a tree sequence: every distinct haplotype is one allele."""
    counts = _haplotype_counts(ts)
    allele_freq = {f"Type-{i + 1}": freq for i, freq in enumerate(counts.values())}
    return KC64Data(theta, allele_freq)


def simulate_k69_data(
    sample_size: int,
    theta: float,
    population_size: float = 10_000,
    random_seed: Optional[int] = None
) -> K69Data:
    """
    Simulate infinite-sites data.

    Raises:
        ValueError: If the simulation produced no mutations
    """
    ts = simulate_tree_sequence(sample_size, theta, population_size, random_seed)
    return k69_data_from_tree_sequence(ts, K69(theta))


def simulate_kc64_data(
    sample_size: int,
    theta: float,
    population_size: float = 10_000,
    random_seed: Optional[int] = None
) -> KC64Data:
    """Simulate infinite-alleles data."""
    ts = simulate_tree_sequence(sample_size, theta, population_size, random_seed)
    return kc64_data_from_tree_sequence(ts, KC64(theta))

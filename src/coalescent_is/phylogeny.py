"""
Perfect phylogeny algorithms for infinite-sites data.

Implements Gusfield's (1991) linear-time test and construction, and the
four-gamete test as an independent check.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from .gene_tree import NO_MUTATION, PATH_DELIMITER, Node


class GusfieldAlgorithm:
    """
    Gusfield's perfect phylogeny algorithm.

    Columns of the allele x site matrix are read as binary numbers (first
    row most significant), duplicates merged and sorted in decreasing order
    to give M'. For each 1-cell (i, j) of M', L[i][j] is the 1-based index of
    the last 1 left of j in row i; L[j] is its maximum over rows with a 1 at
    j. The data has a perfect phylogeny iff every 1-cell has L[i][j] == L[j].
    """

    def __init__(self, data):
        """
        Args:
            data: K69Data
        """
        self._alleles: List[str] = data.alleles
        self._frequencies: List[int] = [data.allele_frequency(a) for a in self._alleles]

        matrix = data.matrix()
        mutations = data.mutations

        characters: Dict[int, str] = {}
        columns: Dict[int, int] = {}
        for j in range(matrix.shape[1]):
            number = int("".join(str(int(x)) for x in matrix[:, j]), 2)
            if number in characters:
                characters[number] = characters[number] + PATH_DELIMITER + mutations[j]
            else:
                characters[number] = mutations[j]
            columns[number] = j

        order = sorted(columns, reverse=True)
        self._characters: List[str] = [characters[number] for number in order]
        self._m_prime = matrix[:, [columns[number] for number in order]].astype(np.int8)

        rows, cols = self._m_prime.shape
        self._l_array = np.zeros((rows, cols), dtype=np.int64)
        self._l_vector = np.zeros(cols, dtype=np.int64)

        for i in range(rows):
            last = 0
            for j in range(cols):
                self._l_array[i, j] = last
                if self._m_prime[i, j] == 1:
                    last = j + 1

        for j in range(cols):
            ones = self._m_prime[:, j] == 1
            self._l_vector[j] = self._l_array[ones, j].max() if ones.any() else 0

    @property
    def m_prime(self) -> np.ndarray:
        return self._m_prime.copy()

    @property
    def l_vector(self) -> np.ndarray:
        return self._l_vector.copy()

    @property
    def m_prime_characters(self) -> List[str]:
        return list(self._characters)

    def is_phylogeny(self) -> bool:
        rows, cols = np.nonzero(self._m_prime == 1)
        return bool(np.all(self._l_array[rows, cols] == self._l_vector[cols]))

    def build_gene_tree(self) -> Optional[Tuple[Node, Dict[Node, int]]]:
        """
        Construct the gene tree.

        Returns:
            (root, leaf frequencies), or None if the data has no perfect phylogeny
        """
        if not self.is_phylogeny():
            return None

        root = Node(None, "r")
        column_nodes: List[Node] = []
        for j, parent_index in enumerate(self._l_vector):
            parent = root if parent_index == 0 else column_nodes[parent_index - 1]
            column_nodes.append(parent.add_child(f"n{j + 1}", self._characters[j]))

        allele_nodes = []
        for i, allele in enumerate(self._alleles):
            ones = np.flatnonzero(self._m_prime[i] == 1)
            if len(ones) == 0:
                allele_nodes.append(root.add_child(allele, NO_MUTATION))
                continue

            head = column_nodes[ones[-1]]
            if head.is_leaf:
                head.label = allele
                allele_nodes.append(head)
            else:
                allele_nodes.append(head.add_child(allele, NO_MUTATION))

        freq = {node: f for node, f in zip(allele_nodes, self._frequencies)}
        return root, freq


@dataclass(frozen=True)
class FourGameteViolation:
    """First site pair showing all four gametes 00, 01, 10 and 11."""

    sites: Tuple[str, str]
    """Mutation labels of the offending sites"""

    alleles: Tuple[str, str, str, str]
    """Alleles that first witnessed 00, 01, 10 and 11"""


def four_gamete_test(data) -> Optional[FourGameteViolation]:
    """
    Four-gamete test for compatibility of every site pair.

    Args:
        data: K69Data

    Returns:
        None if all site pairs are compatible, otherwise the first violation
    """
    matrix = data.matrix()
    alleles = data.alleles
    mutations = data.mutations
    sites = matrix.shape[1]

    for i in range(sites - 1):
        for j in range(i + 1, sites):
            witnesses: Dict[Tuple[int, int], str] = {}
            for row, allele in enumerate(alleles):
                gamete = (int(matrix[row, i]), int(matrix[row, j]))
                witnesses.setdefault(gamete, allele)
            if len(witnesses) == 4:
                return FourGameteViolation(
                    sites=(mutations[i], mutations[j]),
                    alleles=tuple(witnesses[g] for g in ((0, 0), (0, 1), (1, 0), (1, 1))),
                )
    return None


class PhylogenyAlgo(Enum):
    """Perfect phylogeny tests."""

    GUSFIELD = "gusfield"
    FOUR_GAMETES = "four_gametes"

    def is_phylogeny(self, data) -> bool:
        """Whether ``data`` admits a perfect phylogeny. Use ``four_gamete_test`` for the offending sites."""
        if self is PhylogenyAlgo.GUSFIELD:
            return GusfieldAlgorithm(data).is_phylogeny()

        return four_gamete_test(data) is None

"""
Infinite-sites ancestral configuration.

A K69 configuration is a gene tree with leaf frequencies. Backward in time
a coalescent event lowers an allele's frequency by one, and a mutation
event on a singleton allele removes the newest mutation on its edge,
merging the allele into its wild sibling once its edge becomes empty.
"""

from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from .config import AncestralConfig
from .errors import IncompatibleAllele, InvalidState
from .events import EventType
from .gene_tree import GeneTree, Node
from .models import KC64
from .precision import ONE, divide, precise


@dataclass(frozen=True)
class Provenance:
    """How a configuration was produced from its predecessor."""

    event_type: EventType
    """Type of the producing event"""

    allele_path: str
    """Upper mutation path of the allele the event acted on"""

    merge_path: Optional[str] = None
    """Upper mutation path of the wild sibling the allele merged into, if any"""


class K69Config(AncestralConfig):
    """
    Gene tree configuration under the infinite-sites model.

    Two configurations are equal when they share the model and the number
    of mutations, and their alleles agree as a multiset of
    (upper mutation path, frequency) pairs.
    """

    def __init__(self, model: KC64, tree: GeneTree, provenance: Optional[Provenance] = None):
        """
        Initialize the configuration.

        Args:
            model: K69 model
            tree: Gene tree; owned by this configuration and never mutated
            provenance: Producing event, for configurations made by ``apply``
        """
        if not isinstance(model, KC64):
            raise ValueError(f"Unknown model: {model!r}")

        self._model = model
        self._tree = tree
        self._provenance = provenance
        self._n = tree.sample_size
        self._sn = tree.mutation_count
        self._pattern = Counter(f"{leaf.upper_mutation_path()}-{f}" for leaf, f in tree.freq.items())
        self._hash = hash((self._model, self._sn, frozenset(self._pattern.items())))

    @classmethod
    def from_data(cls, data) -> "K69Config":
        """
        Configuration of infinite-sites data.

        Raises:
            ValueError: If the data has no perfect phylogeny
        """
        return cls(data.model, GeneTree.from_data(data))

    @classmethod
    def mrca(cls, model: KC64, frequency: int = 1) -> "K69Config":
        """Single wild allele of the given frequency."""
        return cls(model, GeneTree.singleton(frequency))

    @property
    def model(self) -> KC64:
        return self._model

    @property
    def tree(self) -> GeneTree:
        return self._tree

    @property
    def provenance(self) -> Optional[Provenance]:
        return self._provenance

    @property
    def n(self) -> int:
        return self._n

    @property
    def sn(self) -> int:
        """Number of mutations."""
        return self._sn

    @property
    def k(self) -> int:
        """Number of distinct alleles."""
        return len(self._tree.freq)

    def allele_frequency(self, leaf: Node) -> int:
        return self._tree.frequency(leaf)

    def lineage_count(self, leaf: Node) -> int:
        return self._tree.frequency(leaf)

    def alleles(self, event_type: EventType) -> List[Node]:
        self.check_event_type(event_type)
        freq = self._tree.freq
        if event_type == EventType.COALESCENT:
            return [leaf for leaf, f in freq.items() if f > 1]
        return [leaf for leaf, f in freq.items()
                if f == 1 and leaf.parent_edge.mutation_count > 0]

    def _merge_allele(self, leaf: Node) -> Optional[Node]:
        """Wild sibling a mutation event on ``leaf`` merges into, if any."""
        wild_edge = leaf.parent.wild_edge()
        if leaf.parent_edge.mutation_count > 1 or wild_edge is None:
            return None
        return wild_edge.child

    def apply(self, leaf: Node, event_type: EventType) -> "K69Config":
        if not any(leaf is allele for allele in self.alleles(event_type)):
            raise IncompatibleAllele(f"Allele {leaf!r} is not eligible for {event_type.name}")

        tree, leaf_map = self._tree.copy()
        target = leaf_map[leaf]

        if event_type == EventType.COALESCENT:
            tree.freq[target] -= 1
            return K69Config(self._model, tree, Provenance(event_type, leaf.upper_mutation_path()))

        merge = self._merge_allele(leaf)
        if merge is None:
            target.parent_edge.remove_mutation()
            return K69Config(self._model, tree, Provenance(event_type, leaf.upper_mutation_path()))

        target_merge = leaf_map[merge]
        merged_freq = tree.freq[target_merge] + 1
        parent = target.parent

        del tree.freq[target]
        parent.remove_child(target)

        if len(parent.children) > 1 or parent.is_root:
            tree.freq[target_merge] = merged_freq
        else:
            # parent is left with only the wild sibling: it becomes the leaf
            del tree.freq[target_merge]
            parent.remove_child(target_merge)
            tree.freq[parent] = merged_freq

        return K69Config(self._model, tree, Provenance(
            event_type, leaf.upper_mutation_path(), merge.upper_mutation_path()))

    def _find_allele(self, path: str) -> Node:
        leaf = self._tree.find_allele(path)
        if leaf is None:
            raise ValueError(f"No allele with mutation path {path!r} in {self}")
        return leaf

    @precise
    def transition_prob(self, event_type: EventType, ancestral: "K69Config",
                        model: Optional[KC64] = None) -> Decimal:
        self.check_event_type(event_type)
        provenance = ancestral.provenance
        if provenance is None or provenance.event_type != event_type:
            raise ValueError(f"Configuration {ancestral} was not produced by a {event_type.name} event")

        allele = self._find_allele(provenance.allele_path)
        merge = None if provenance.merge_path is None else self._find_allele(provenance.merge_path)
        return self._transition_prob(allele, event_type, merge, model or self._model)

    @precise
    def allele_transition_prob(self, allele: Node, event_type: EventType,
                               model: Optional[KC64] = None) -> Decimal:
        self.check_event_type(event_type)
        merge = self._merge_allele(allele) if event_type == EventType.MUTATION else None
        return self._transition_prob(allele, event_type, merge, model or self._model)

    def _transition_prob(self, allele: Node, event_type: EventType,
                         merge: Optional[Node], model: KC64) -> Decimal:
        n = self._n
        if event_type == EventType.COALESCENT:
            return divide(self._tree.freq[allele] - 1, (n - 1) + model.theta_decimal)

        if merge is None:
            forward = divide(1, n)
        else:
            forward = divide(self._tree.freq[merge] + 1, n)
        return model.mutation_prob(n) * forward

    def is_mrca(self) -> bool:
        return self._n == 1

    def prob_at_mrca(self) -> Decimal:
        if not self.is_mrca():
            raise InvalidState(f"Configuration {self} is not the MRCA")
        return ONE

    def is_events_to_mrca_bounded(self) -> bool:
        return True

    def events_to_mrca(self) -> int:
        return self._sn + self._n - 1

    def with_model(self, model: KC64) -> "K69Config":
        return K69Config(model, self._tree, self._provenance)

    def of_singleton(self) -> "K69Config":
        """Same gene tree with every allele at frequency one."""
        tree, _ = self._tree.copy()
        for leaf in tree.freq:
            tree.freq[leaf] = 1
        return K69Config(self._model, tree)

    def mutation_counts(self) -> Dict[str, int]:
        """Mutation -> number of lineages carrying it."""
        counts: Dict[str, int] = {}
        for leaf, f in self._tree.freq.items():
            for mutation in leaf.upper_mutations():
                counts[mutation] = counts.get(mutation, 0) + f
        return counts

    def leaf_map_from(self, other: "K69Config") -> Dict[Node, Node]:
        """
        Map the leaves of an equal configuration onto the leaves of this one.

        Args:
            other: Configuration equal to this one

        Returns:
            Leaf of ``other`` -> leaf of this configuration with the same mutation path
        """
        return {leaf: self._find_allele(leaf.upper_mutation_path()) for leaf in other.tree.freq}

    def describe(self) -> str:
        lines = [
            f"Data: {self}",
            f"Distinct alleles: {self.k}",
            f"Mutations: {self._sn}",
            f"Sample size: {self._n}",
        ]
        return "\n".join(lines)

    def __eq__(self, other) -> bool:
        if self is other:
            return True
        if not isinstance(other, K69Config):
            return False
        return (self._hash == other._hash and self._sn == other._sn
                and self._model == other._model and self._pattern == other._pattern)

    def __hash__(self) -> int:
        return self._hash

    def __str__(self) -> str:
        return str(self._tree)

    def __repr__(self) -> str:
        return f"K69Config({self._tree}, {self._model!r})"

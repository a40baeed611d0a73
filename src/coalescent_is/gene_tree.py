"""
Gene trees for infinite-sites data.

A gene tree is a rooted tree whose edges carry mutation labels and whose
leaves are the distinct alleles of a sample. Leaf frequencies are held by
the tree, not by the nodes, so that several configurations can share node
shapes while differing in frequencies.
"""

from typing import Dict, List, Optional, Tuple

NO_MUTATION = "0"
"""Edge label of an edge without mutations"""

PATH_DELIMITER = ","
"""Separator of mutation labels in edge labels and mutation paths"""


def split_mutations(label: str) -> List[str]:
    """
    Mutation labels contained in an edge label or a mutation path.

    Args:
        label: Comma delimited label, "0" entries meaning no mutation

    Returns:
        Mutation labels from left to right
    """
    return [m for m in label.split(PATH_DELIMITER) if m and m != NO_MUTATION]


class Edge:
    """Edge from ``parent`` to ``child`` carrying zero or more mutations."""

    def __init__(self, parent: "Node", child: "Node", label: str = NO_MUTATION):
        if child is None or label is None:
            raise ValueError("Edge needs a child and a label")
        self.parent = parent
        self.child = child
        self._mutations: List[str] = split_mutations(label)

    @property
    def mutations(self) -> List[str]:
        return list(self._mutations)

    @property
    def mutation_count(self) -> int:
        return len(self._mutations)

    @property
    def label(self) -> str:
        if not self._mutations:
            return NO_MUTATION
        return PATH_DELIMITER.join(self._mutations)

    def remove_mutation(self) -> str:
        """Remove and return the last mutation on this edge."""
        if not self._mutations:
            raise ValueError("Edge has no mutation to remove")
        return self._mutations.pop()

    def __str__(self) -> str:
        return PATH_DELIMITER.join(self._mutations)

    def __repr__(self) -> str:
        return f"Edge({self.label!r})"


class Node:
    """
    Gene tree node.

    Leaves are sample alleles; internal nodes are their ancestral alleles.
    Nodes compare by identity.
    """

    def __init__(self, parent: Optional["Node"] = None, label: str = ""):
        self.parent = parent
        self.label = label
        self.children: List["Node"] = []
        self._edges: Dict["Node", Edge] = {}

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def is_wild(self) -> bool:
        """True if no mutation lies between this node and the root."""
        return sum(self.upper_mutation_counts()) == 0

    @property
    def parent_edge(self) -> Edge:
        if self.is_root:
            raise ValueError("The root has no parent edge")
        return self.parent.child_edge(self)

    @property
    def edges(self) -> List[Edge]:
        return [self._edges[child] for child in self.children]

    def add_child(self, label: str = "", edge_label: str = NO_MUTATION) -> "Node":
        """
        Attach a new child.

        Args:
            label: Node label
            edge_label: Mutation label(s) of the connecting edge

        Returns:
            The new child node
        """
        child = Node(self, label)
        self.children.append(child)
        self._edges[child] = Edge(self, child, edge_label)
        return child

    def remove_child(self, child: "Node"):
        if child not in self._edges:
            raise ValueError(f"Node {child.label!r} is not a child of {self.label!r}")
        self.children.remove(child)
        del self._edges[child]

    def child_edge(self, child: "Node") -> Edge:
        if child not in self._edges:
            raise ValueError(f"Node {child.label!r} is not a child of {self.label!r}")
        return self._edges[child]

    def wild_edge(self) -> Optional[Edge]:
        """
        First child edge without mutations.

        Returns:
            The wild edge, or None if every child edge carries a mutation
        """
        if self.is_leaf:
            raise ValueError("A leaf has no child edges")
        for child in self.children:
            edge = self._edges[child]
            if edge.mutation_count == 0:
                return edge
        return None

    def _upper_edges(self):
        node = self
        while not node.is_root:
            yield node.parent_edge
            node = node.parent

    def upper_mutation_path(self) -> str:
        """Edge labels from this node up to the root, e.g. "0,3,1"."""
        return PATH_DELIMITER.join(edge.label for edge in self._upper_edges())

    def upper_mutations(self) -> List[str]:
        """Mutations between this node and the root, nearest first."""
        return split_mutations(self.upper_mutation_path())

    def upper_mutation_counts(self) -> List[int]:
        return [edge.mutation_count for edge in self._upper_edges()]

    def lower_mutation_count(self) -> int:
        """Number of mutations below this node."""
        return sum(self._edges[child].mutation_count + child.lower_mutation_count()
                   for child in self.children)

    def leaves(self) -> List["Node"]:
        if self.is_leaf:
            return [self]
        result = []
        for child in self.children:
            result.extend(child.leaves())
        return result

    def find_edge(self, label: str) -> Optional[Edge]:
        for child in self.children:
            if self._edges[child].label == label:
                return self._edges[child]
        for child in self.children:
            found = child.find_edge(label)
            if found is not None:
                return found
        return None

    def __str__(self) -> str:
        return self.upper_mutation_path() if self.is_leaf else self.label

    def __repr__(self) -> str:
        return f"Node({self.label!r}, path={self.upper_mutation_path()!r})"


class GeneTree:
    """
    Rooted gene tree with leaf (allele) frequencies.
    """

    def __init__(self, root: Node, freq: Dict[Node, int]):
        """
        Initialize the tree.

        Args:
            root: Root node
            freq: Leaf -> frequency, one entry per leaf
        """
        self.root = root
        self.freq = freq

    @classmethod
    def singleton(cls, frequency: int) -> "GeneTree":
        """Root with a single wild leaf of the given frequency."""
        root = Node(None, "r")
        leaf = root.add_child("", NO_MUTATION)
        return cls(root, {leaf: frequency})

    @classmethod
    def from_data(cls, data) -> "GeneTree":
        """
        Build the gene tree of infinite-sites data with Gusfield's algorithm.

        Args:
            data: K69Data

        Returns:
            GeneTree
        """
        from .phylogeny import GusfieldAlgorithm

        built = GusfieldAlgorithm(data).build_gene_tree()
        if built is None:
            raise ValueError("Data does not admit a perfect phylogeny")
        root, freq = built
        return cls(root, freq)

    def copy(self) -> Tuple["GeneTree", Dict[Node, Node]]:
        """
        Deep copy of this tree.

        Returns:
            (copy, leaf_map) where leaf_map maps leaves of this tree to leaves of the copy
        """
        root = Node(None, self.root.label)
        leaf_map: Dict[Node, Node] = {}

        if self.root.is_leaf:
            leaf_map[self.root] = root
        else:
            stack = [(self.root, root)]
            while stack:
                source, target = stack.pop()
                for child in source.children:
                    copied = target.add_child(child.label, source.child_edge(child).label)
                    if child.is_leaf:
                        leaf_map[child] = copied
                    else:
                        stack.append((child, copied))

        freq = {leaf_map[leaf]: f for leaf, f in self.freq.items()}
        return GeneTree(root, freq), leaf_map

    @property
    def leaves(self) -> List[Node]:
        return list(self.freq)

    def frequency(self, leaf: Node) -> int:
        if leaf not in self.freq:
            raise ValueError(f"Node {leaf!r} is not a leaf of this tree")
        return self.freq[leaf]

    @property
    def sample_size(self) -> int:
        return sum(self.freq.values())

    @property
    def mutation_count(self) -> int:
        return self.root.lower_mutation_count()

    def alleles_by_freq(self, frequency: int) -> List[Node]:
        return [leaf for leaf, f in self.freq.items() if f == frequency]

    def find_allele(self, upper_path: str) -> Optional[Node]:
        for leaf in self.freq:
            if leaf.upper_mutation_path() == upper_path:
                return leaf
        return None

    def nodes_at_depth(self, depth: int) -> List[Node]:
        """Nodes ``depth`` edges below the root (depth 0 is the root)."""
        nodes = [self.root]
        for _ in range(depth):
            nodes = [child for node in nodes for child in node.children]
        return nodes

    def __str__(self) -> str:
        return "{" + ", ".join(f"{leaf.upper_mutation_path()}={f}"
                               for leaf, f in self.freq.items()) + "}"

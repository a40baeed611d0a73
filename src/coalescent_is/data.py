"""
Sample data for the infinite-alleles and infinite-sites models.

KC64Data is a map from allele labels to frequencies. K69Data adds a 0/1
sequence per allele, one character per segregating site.
"""

import re
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from .models import K69, KC64

CANONICAL_FORM = re.compile(r"(\d+\^\d+_)*(\d+\^\d+)")
"""Pattern of a frequency spectrum written as f1^t1_f2^t2_..."""


def _as_model(model_or_theta, model_class):
    if isinstance(model_or_theta, KC64):
        return model_or_theta
    return model_class(model_or_theta)


def parse_canonical_form(form: str) -> List[tuple]:
    """
    Parse a canonical spectrum string into (frequency, count) pairs.

    Args:
        form: String such as "1^2_3^1"

    Returns:
        List of (frequency, number of alleles) pairs
    """
    if not isinstance(form, str) or not CANONICAL_FORM.fullmatch(form):
        raise ValueError(f"Malformed canonical form: {form!r}")

    pairs = []
    for token in form.split("_"):
        freq, count = (int(x) for x in token.split("^"))
        if freq < 1:
            raise ValueError(f"Allele frequency must be positive in {form!r}")
        pairs.append((freq, count))
    return pairs


class KC64Data:
    """
    Allele frequency data under the infinite-alleles model.
    """

    def __init__(self, model: Union[KC64, float], allele_freq: Dict[str, int]):
        """
        Initialize the data.

        Args:
            model: KC64 model or its mutation rate theta
            allele_freq: Allele label -> frequency (>= 1)
        """
        if not allele_freq:
            raise ValueError("Allele frequencies must not be empty")

        for allele, freq in allele_freq.items():
            if int(freq) != freq or freq < 1:
                raise ValueError(f"Frequency of allele {allele!r} must be a positive integer, got {freq}")

        self._model = _as_model(model, KC64)
        self._allele_freq: Dict[str, int] = {str(a): int(f) for a, f in allele_freq.items()}

    @classmethod
    def from_canonical_form(cls, model: Union[KC64, float], form: str) -> "KC64Data":
        """
        Build data from a spectrum such as "1^2_3^1".

        Alleles are labelled Type-1, Type-2, ... in the order they appear.
        """
        allele_freq = {}
        for freq, count in parse_canonical_form(form):
            for _ in range(count):
                allele_freq[f"Type-{len(allele_freq) + 1}"] = freq
        return cls(model, allele_freq)

    @property
    def model(self) -> KC64:
        return self._model

    @property
    def alleles(self) -> List[str]:
        return list(self._allele_freq)

    def allele_frequency(self, allele: str) -> int:
        if allele not in self._allele_freq:
            raise ValueError(f"Unknown allele: {allele}")
        return self._allele_freq[allele]

    def frequencies(self) -> np.ndarray:
        """Allele frequencies in allele order."""
        return np.array([self._allele_freq[a] for a in self._allele_freq], dtype=np.int64)

    @property
    def allele_count(self) -> int:
        return len(self._allele_freq)

    @property
    def sample_size(self) -> int:
        return sum(self._allele_freq.values())

    def alleles_by_freq(self, freq: int) -> List[str]:
        return [a for a, f in self._allele_freq.items() if f == freq]

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return False
        return self._model == other._model and self._allele_freq == other._allele_freq

    def __hash__(self) -> int:
        return hash((self._model, frozenset(self._allele_freq.items())))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._model!r}, {self._allele_freq})"


class K69Data(KC64Data):
    """
    Binary sequence data under the infinite-sites model.

    Each allele is a string of '0' and '1' characters, one per segregating
    site. Site i carries the mutation label ``mutations[i]``.
    """

    def __init__(self, model: Union[K69, float], allele_seq: Dict[str, str],
                 allele_freq: Dict[str, int], mutations: Optional[Sequence[str]] = None):
        """
        Initialize the data.

        Args:
            model: K69 model or its mutation rate theta
            allele_seq: Allele label -> 0/1 sequence
            allele_freq: Allele label -> frequency
            mutations: Site labels (default: "1" .. "S")
        """
        super().__init__(_as_model(model, K69), allele_freq)

        if set(allele_seq) != set(self._allele_freq):
            raise ValueError("Allele labels of sequences and frequencies differ")

        sequences = [allele_seq[a] for a in self._allele_freq]
        lengths = {len(s) for s in sequences}
        if len(lengths) != 1:
            raise ValueError("All allele sequences must have the same length")

        site_count = lengths.pop()
        if site_count == 0:
            raise ValueError("Data must have at least one segregating site")

        for allele in self._allele_freq:
            if set(allele_seq[allele]) - {"0", "1"}:
                raise ValueError(f"Sequence of allele {allele!r} is not a 0/1 string")

        if mutations is None:
            mutations = [str(i + 1) for i in range(site_count)]
        mutations = [str(m) for m in mutations]
        if len(mutations) != site_count:
            raise ValueError(
                f"Got {len(mutations)} mutation labels for {site_count} sites")
        if len(set(mutations)) != len(mutations):
            raise ValueError("Mutation labels must be unique")

        for site in range(site_count):
            if len({s[site] for s in sequences}) == 1:
                raise ValueError(f"Site {mutations[site]} is not segregating")

        if len(set(sequences)) != len(sequences):
            raise ValueError("Allele sequences must be distinct")

        self._allele_seq: Dict[str, str] = {a: allele_seq[a] for a in self._allele_freq}
        self._mutations: List[str] = mutations

    @classmethod
    def from_sequences(cls, model: Union[K69, float], sequences: Sequence[str],
                       frequencies: Sequence[int],
                       mutations: Optional[Sequence[str]] = None) -> "K69Data":
        """
        Build data from parallel lists; alleles are labelled a-0, a-1, ...
        """
        if len(sequences) != len(frequencies):
            raise ValueError("Sequences and frequencies must have the same length")
        labels = [f"a-{i}" for i in range(len(sequences))]
        return cls(model, dict(zip(labels, sequences)), dict(zip(labels, frequencies)), mutations)

    @property
    def mutations(self) -> List[str]:
        return list(self._mutations)

    @property
    def mutation_count(self) -> int:
        return len(self._mutations)

    def allele_sequence(self, allele: str) -> str:
        if allele not in self._allele_seq:
            raise ValueError(f"Unknown allele: {allele}")
        return self._allele_seq[allele]

    def mutation_score(self, allele: str, site: int) -> int:
        """
        Character of ``allele`` at 1-based ``site``.

        Returns:
            0 or 1
        """
        if site < 1 or site > len(self._mutations):
            raise ValueError(f"Site {site} out of range 1..{len(self._mutations)}")
        return int(self.allele_sequence(allele)[site - 1])

    def matrix(self) -> np.ndarray:
        """
        Alleles x sites matrix of 0/1 scores, rows in allele order.
        """
        return np.array([[int(c) for c in self._allele_seq[a]] for a in self._allele_seq],
                        dtype=np.int8)

    def alleles_by_mutation_count(self, count: int) -> List[str]:
        return [a for a, s in self._allele_seq.items() if s.count("1") == count]

    def delete_mutations(self, *labels: str) -> "K69Data":
        """
        Drop the given sites.

        Alleles whose sequences become identical are merged and their
        frequencies summed; the first allele label is kept.

        Args:
            labels: Mutation labels to remove

        Returns:
            New K69Data
        """
        for label in labels:
            if label not in self._mutations:
                raise ValueError(f"Unknown mutation: {label}")

        keep = [i for i, m in enumerate(self._mutations) if m not in labels]
        mutations = [self._mutations[i] for i in keep]

        by_sequence: Dict[str, str] = {}
        allele_seq: Dict[str, str] = {}
        allele_freq: Dict[str, int] = {}
        for allele, seq in self._allele_seq.items():
            reduced = "".join(seq[i] for i in keep)
            if reduced in by_sequence:
                allele_freq[by_sequence[reduced]] += self._allele_freq[allele]
            else:
                by_sequence[reduced] = allele
                allele_seq[allele] = reduced
                allele_freq[allele] = self._allele_freq[allele]

        return K69Data(self._model, allele_seq, allele_freq, mutations)

    def __eq__(self, other) -> bool:
        return (super().__eq__(other) and self._allele_seq == other._allele_seq
                and self._mutations == other._mutations)

    def __hash__(self) -> int:
        return hash((super().__hash__(), tuple(self._mutations)))

    def __repr__(self) -> str:
        return f"K69Data({self._model!r}, sequences={self._allele_seq}, freq={self._allele_freq})"

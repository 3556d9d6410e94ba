"""
Labels, dominance and Pareto front containers

All objectives are minimised. Label `a` dominates `b` iff a[i] <= b[i] for
every objective and a[i] < b[i] for at least one. Equal cost vectors are
duplicates: a front keeps only the first one it sees.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Set, Tuple

import numpy as np


@dataclass(frozen=True)
class Label:
    """Accumulated cost of a path, optionally with the node sequence"""
    costs: Tuple[float, ...]
    path: Optional[Tuple[int, ...]] = None

    @classmethod
    def zero(cls, num_objectives: int, node: Optional[int] = None) -> "Label":
        path = (node,) if node is not None else None
        return cls(costs=(0.0,) * num_objectives, path=path)

    def extend(self, cost: np.ndarray, node: int) -> "Label":
        """Label for this path followed by one edge of `cost` into `node`"""
        costs = tuple((np.asarray(self.costs) + cost).tolist())
        path = self.path + (node,) if self.path is not None else None
        return Label(costs=costs, path=path)


def dominates(a: Sequence[float], b: Sequence[float]) -> bool:
    """True iff `a` is no worse than `b` everywhere and strictly better somewhere"""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"Objective dimensions must match: {a.shape} vs {b.shape}")
    return bool(np.all(a <= b) and np.any(a < b))


def dominates_or_equal(a: Sequence[float], b: Sequence[float]) -> bool:
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"Objective dimensions must match: {a.shape} vs {b.shape}")
    return bool(np.all(a <= b))


def is_non_dominated(candidate: Sequence[float], front: Iterable) -> bool:
    """
    False iff some member of `front` dominates or equals `candidate`

    `front` may be a ParetoFront or any iterable of Labels / cost vectors.
    """
    if isinstance(front, ParetoFront):
        return not front.covers(candidate)

    for member in front:
        costs = member.costs if isinstance(member, Label) else member
        if dominates_or_equal(costs, candidate):
            return False
    return True


class ParetoFront:
    """
    Antichain of labels at one node

    Costs are mirrored in a (len, m) matrix so a candidate is tested against
    the whole front in one vectorised comparison.
    """

    def __init__(self, num_objectives: int, labels: Iterable[Label] = ()):
        self.num_objectives = num_objectives
        self._labels: List[Label] = []
        self._matrix = np.empty((0, num_objectives), dtype=np.float64)
        for label in labels:
            self.insert(label, evict=True)

    @property
    def labels(self) -> List[Label]:
        return list(self._labels)

    def cost_set(self) -> Set[Tuple[float, ...]]:
        """Order-independent view of the front's cost vectors"""
        return {label.costs for label in self._labels}

    def covers(self, costs: Sequence[float]) -> bool:
        """True if some member dominates or equals `costs`"""
        if not self._labels:
            return False
        vector = self._as_vector(costs)
        return bool(np.any(np.all(self._matrix <= vector, axis=1)))

    def dominated_by(self, costs: Sequence[float]) -> List[Label]:
        """Members strictly dominated by `costs`"""
        if not self._labels:
            return []
        mask = self._dominated_mask(self._as_vector(costs))
        return [label for label, hit in zip(self._labels, mask) if hit]

    def insert(self, label: Label, evict: bool = True) -> Tuple[bool, List[Label]]:
        """
        Add `label` unless it is dominated or duplicated

        Args:
            label: Candidate label
            evict: Remove members the candidate dominates

        Returns:
            (inserted, evicted labels)
        """
        vector = self._as_vector(label.costs)
        if self._labels and np.any(np.all(self._matrix <= vector, axis=1)):
            return False, []

        evicted: List[Label] = []
        if evict and self._labels:
            mask = self._dominated_mask(vector)
            if mask.any():
                evicted = [l for l, hit in zip(self._labels, mask) if hit]
                self._labels = [l for l, hit in zip(self._labels, mask) if not hit]
                self._matrix = self._matrix[~mask]

        self._labels.append(label)
        self._matrix = np.vstack([self._matrix, vector[np.newaxis, :]])
        return True, evicted

    def remove(self, label: Label) -> bool:
        for i, member in enumerate(self._labels):
            if member == label:
                del self._labels[i]
                self._matrix = np.delete(self._matrix, i, axis=0)
                return True
        return False

    def is_antichain(self) -> bool:
        """No member dominates another and no cost vector repeats"""
        for i in range(len(self._labels)):
            row = self._matrix[i]
            others = np.delete(self._matrix, i, axis=0)
            if others.size and np.any(np.all(others <= row, axis=1)):
                return False
        return True

    def clear(self):
        self._labels = []
        self._matrix = np.empty((0, self.num_objectives), dtype=np.float64)

    def copy(self) -> "ParetoFront":
        clone = ParetoFront(self.num_objectives)
        clone._labels = list(self._labels)
        clone._matrix = self._matrix.copy()
        return clone

    def _as_vector(self, costs: Sequence[float]) -> np.ndarray:
        vector = np.asarray(costs, dtype=np.float64)
        if vector.shape != (self.num_objectives,):
            raise ValueError(
                f"Expected {self.num_objectives} objectives, got shape {vector.shape}"
            )
        return vector

    def _dominated_mask(self, vector: np.ndarray) -> np.ndarray:
        return np.all(vector <= self._matrix, axis=1) & np.any(vector < self._matrix, axis=1)

    def __len__(self) -> int:
        return len(self._labels)

    def __iter__(self) -> Iterator[Label]:
        return iter(list(self._labels))

    def __contains__(self, label: Label) -> bool:
        return label in self._labels

    def __repr__(self) -> str:
        return f"ParetoFront({[list(l.costs) for l in self._labels]})"


class FrontStore:
    """Per-node Pareto fronts, indexed by node id"""

    def __init__(self, num_nodes: int, num_objectives: int):
        self.num_objectives = num_objectives
        self._fronts = [ParetoFront(num_objectives) for _ in range(num_nodes)]

    @property
    def num_nodes(self) -> int:
        return len(self._fronts)

    def front(self, node: int) -> ParetoFront:
        return self._fronts[node]

    def resize(self, num_nodes: int):
        """Grow to `num_nodes` empty fronts; shrinking is not supported"""
        if num_nodes < len(self._fronts):
            raise ValueError(f"Cannot shrink front store from {len(self._fronts)} to {num_nodes}")
        while len(self._fronts) < num_nodes:
            self._fronts.append(ParetoFront(self.num_objectives))

    def reset(self):
        for front in self._fronts:
            front.clear()

    def total_labels(self) -> int:
        return sum(len(front) for front in self._fronts)

    def __getitem__(self, node: int) -> ParetoFront:
        return self._fronts[node]

    def __len__(self) -> int:
        return len(self._fronts)

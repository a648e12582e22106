"""Slab and Staircase value types for Stairs Wireframe Studio.

A Slab is one detected step tread, stored as the axis-aligned bounding box of
its point cluster. A Staircase is an ordered run of Slabs, bottom to top.
Both are immutable; every conversion returns a new value.

Serialized form (used by the export/import services):
    {"steps": [{"min": [x, y, z], "max": [x, y, z]}, ...]}
"""
import math
from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np

Point = Tuple[float, float, float]


def _as_point(value, name="point") -> Point:
    """Coerce a 3-element sequence into a float tuple, rejecting anything else."""
    try:
        coords = tuple(float(c) for c in value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a sequence of 3 numbers, got {value!r}") from e
    if len(coords) != 3:
        raise ValueError(f"{name} must have 3 coordinates, got {len(coords)}")
    if not all(math.isfinite(c) for c in coords):
        raise ValueError(f"{name} has non-finite coordinates: {coords}")
    return coords


@dataclass(frozen=True)
class Slab:
    """Axis-aligned bounding box of one step tread.

    ``min`` and ``max`` are the component-wise minimum and maximum corners.
    Zero-extent boxes are allowed.
    """

    min: Point
    max: Point

    @classmethod
    def from_points(cls, points) -> "Slab":
        """Fit the bounding box of a point cluster (N x 3)."""
        try:
            pts = np.asarray(points, dtype=float)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Cluster is not a numeric N x 3 array: {e}") from e
        if pts.size == 0:
            raise ValueError("Cannot fit a bounding box to an empty cluster")
        if pts.ndim != 2 or pts.shape[1] != 3:
            raise ValueError(f"Cluster must be N x 3, got shape {pts.shape}")
        if not np.isfinite(pts).all():
            raise ValueError("Cluster has non-finite coordinates")
        lo = pts.min(axis=0)
        hi = pts.max(axis=0)
        return cls(min=tuple(float(v) for v in lo), max=tuple(float(v) for v in hi))

    @classmethod
    def from_dict(cls, data) -> "Slab":
        if not isinstance(data, dict) or "min" not in data or "max" not in data:
            raise ValueError(f"Slab needs 'min' and 'max', got {data!r}")
        lo = _as_point(data["min"], "min")
        hi = _as_point(data["max"], "max")
        if any(a > b for a, b in zip(lo, hi)):
            raise ValueError(f"Slab min {lo} exceeds max {hi}")
        return cls(min=lo, max=hi)

    def to_dict(self) -> dict:
        return {"min": list(self.min), "max": list(self.max)}

    @property
    def size(self) -> Point:
        return tuple(b - a for a, b in zip(self.min, self.max))

    @property
    def center(self) -> Point:
        return tuple(0.5 * (a + b) for a, b in zip(self.min, self.max))

    def translated(self, offset) -> "Slab":
        """Return a copy shifted by ``offset``; both corners move together."""
        dx, dy, dz = _as_point(offset, "offset")
        return Slab(
            min=(self.min[0] + dx, self.min[1] + dy, self.min[2] + dz),
            max=(self.max[0] + dx, self.max[1] + dy, self.max[2] + dz),
        )

    def __str__(self):
        lo = ", ".join(f"{c:.3f}" for c in self.min)
        hi = ", ".join(f"{c:.3f}" for c in self.max)
        return f"Slab(min=({lo}), max=({hi}))"


@dataclass(frozen=True)
class Staircase:
    """Ordered sequence of Slabs, bottom tread first.

    The order is taken as given and never re-sorted.
    """

    steps: Tuple[Slab, ...] = ()

    @classmethod
    def from_slabs(cls, slabs: Iterable[Slab]) -> "Staircase":
        return cls(steps=tuple(slabs))

    @classmethod
    def from_dict(cls, data) -> "Staircase":
        if not isinstance(data, dict) or not isinstance(data.get("steps"), (list, tuple)):
            raise ValueError(f"Staircase needs a 'steps' list, got {data!r}")
        return cls(steps=tuple(Slab.from_dict(s) for s in data["steps"]))

    def to_dict(self) -> dict:
        return {"steps": [s.to_dict() for s in self.steps]}

    def __len__(self):
        return len(self.steps)


def make_sample_stairs(count: int = 3):
    """Synthetic staircases for smoke testing, three slabs each.

    Staircase ``i`` scales a fixed set of corners by ``i``, so the first one is
    fully degenerate (all corners at the origin).
    """
    stairs = []
    for i in range(count):
        stairs.append(Staircase.from_slabs([
            Slab(min=(1.0 * i, 2.0 * i, 3.0 * i), max=(1.5 * i, 2.5 * i, 3.5 * i)),
            Slab(min=(1.1 * i, 2.1 * i, 3.1 * i), max=(1.4 * i, 2.4 * i, 3.4 * i)),
            Slab(min=(1.2 * i, 2.2 * i, 3.2 * i), max=(1.3 * i, 2.3 * i, 3.3 * i)),
        ]))
    return stairs

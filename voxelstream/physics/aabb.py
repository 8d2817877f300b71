from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass

from voxelstream.constants import Vec3

EPSILON = 1e-6

Point = tuple[float, float, float]


@dataclass(frozen=True)
class AABB:
    """Axis-aligned box given by its minimum and maximum corners."""

    lo: Point
    hi: Point

    @classmethod
    def from_feet(cls, position: Point, half_width: float, height: float) -> AABB:
        x, y, z = position
        return cls((x - half_width, y, z - half_width), (x + half_width, y + height, z + half_width))

    @classmethod
    def of_voxel(cls, voxel: Vec3) -> AABB:
        x, y, z = voxel
        return cls((float(x), float(y), float(z)), (x + 1.0, y + 1.0, z + 1.0))

    def offset(self, axis: int, distance: float) -> AABB:
        lo = list(self.lo)
        hi = list(self.hi)
        lo[axis] += distance
        hi[axis] += distance
        return AABB((lo[0], lo[1], lo[2]), (hi[0], hi[1], hi[2]))

    def intersects(self, other: AABB) -> bool:
        return all(self.lo[i] < other.hi[i] - EPSILON and other.lo[i] < self.hi[i] - EPSILON for i in range(3))

    def cell_range(self, axis: int) -> range:
        """Voxel indices along ``axis`` that the box overlaps with positive volume."""
        return range(math.floor(self.lo[axis] + EPSILON), math.ceil(self.hi[axis] - EPSILON))

    def cells(self) -> Iterator[Vec3]:
        for y in self.cell_range(1):
            for z in self.cell_range(2):
                for x in self.cell_range(0):
                    yield x, y, z

import math
from collections.abc import Callable
from dataclasses import dataclass

from voxelstream.blocks import BlockType
from voxelstream.constants import Vec3


@dataclass(frozen=True)
class RayHit:
    block: Vec3
    previous: Vec3 | None
    normal: Vec3
    distance: float


def ray_voxel_traversal(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    get_block: Callable[[Vec3], BlockType],
    max_distance: float,
) -> RayHit | None:
    """Walk the voxels pierced by a ray (Amanatides and Woo) until a targetable one.

    AIR, WATER and UNLOADED cells are passed through. ``previous`` is the empty
    cell the ray was in before the hit, where a placed block would go.
    """
    length = math.sqrt(sum(d * d for d in direction))
    if length == 0.0:
        return None
    direction = tuple(d / length for d in direction)

    voxel = [math.floor(c) for c in origin]
    step = [0, 0, 0]
    t_max = [math.inf, math.inf, math.inf]
    t_delta = [math.inf, math.inf, math.inf]
    for axis in range(3):
        d = direction[axis]
        if d > 0:
            step[axis] = 1
            t_max[axis] = (voxel[axis] + 1 - origin[axis]) / d
            t_delta[axis] = 1.0 / d
        elif d < 0:
            step[axis] = -1
            t_max[axis] = (origin[axis] - voxel[axis]) / -d
            t_delta[axis] = -1.0 / d

    previous: Vec3 | None = None
    normal: Vec3 = (0, 0, 0)
    distance = 0.0
    while distance <= max_distance:
        cell = (voxel[0], voxel[1], voxel[2])
        if _targetable(get_block(cell)):
            return RayHit(block=cell, previous=previous, normal=normal, distance=distance)
        previous = cell

        axis = min(range(3), key=lambda a: t_max[a])
        distance = t_max[axis]
        voxel[axis] += step[axis]
        t_max[axis] += t_delta[axis]
        n = [0, 0, 0]
        n[axis] = -step[axis]
        normal = (n[0], n[1], n[2])
    return None


def _targetable(block: BlockType) -> bool:
    return block not in (BlockType.AIR, BlockType.WATER, BlockType.UNLOADED)

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from voxelstream.blocks import SOLID_BLOCKS, BlockType
from voxelstream.config import PhysicsConfig
from voxelstream.constants import Vec3
from voxelstream.physics.aabb import EPSILON, AABB
from voxelstream.world.grid import VoxelGrid

if TYPE_CHECKING:
    from voxelstream.entities.player import PlayerBody

logger = logging.getLogger(__name__)


class PhysicsEngine:
    """Swept AABB collision against the voxel grid.

    Movement is resolved one axis at a time in X, Y, Z order. Unloaded cells
    block movement like solid blocks, so a body never falls out of the loaded
    area while terrain streams in.
    """

    PUSH_OUT_ITERATIONS = 4

    def __init__(self, grid: VoxelGrid, config: PhysicsConfig | None = None) -> None:
        self.grid = grid
        self.config = config or PhysicsConfig()

    def _blocks_movement(self, cell: Vec3) -> bool:
        return self.grid.get_block(cell) in SOLID_BLOCKS

    def collides(self, box: AABB) -> bool:
        return any(self._blocks_movement(cell) for cell in box.cells())

    def overlapping_solids(self, box: AABB) -> list[Vec3]:
        """Loaded solid voxels that intersect ``box``."""
        solids = []
        for cell in box.cells():
            block = self.grid.get_block(cell)
            if block is not BlockType.UNLOADED and block in SOLID_BLOCKS:
                solids.append(cell)
        return solids

    def body_box(self, body: PlayerBody) -> AABB:
        return AABB.from_feet(body.position, body.half_width, body.height)

    # Narrow phase --------------------------------------------------------------

    def _sweep_axis(self, box: AABB, axis: int, distance: float) -> tuple[float, bool]:
        """Clamp ``distance`` along ``axis`` to the first blocking cell."""
        if distance == 0.0:
            return 0.0, False
        others = [a for a in range(3) if a != axis]
        span_a = box.cell_range(others[0])
        span_b = box.cell_range(others[1])

        if distance > 0:
            face = box.hi[axis]
            ahead = range(math.ceil(face - EPSILON), math.ceil(face + distance))
        else:
            face = box.lo[axis]
            ahead = range(math.floor(face + EPSILON) - 1, math.floor(face + distance) - 1, -1)

        cell = [0, 0, 0]
        for layer in ahead:
            cell[axis] = layer
            for a in span_a:
                cell[others[0]] = a
                for b in span_b:
                    cell[others[1]] = b
                    if self._blocks_movement((cell[0], cell[1], cell[2])):
                        if distance > 0:
                            return max(0.0, layer - face), True
                        return min(0.0, layer + 1 - face), True
        return distance, False

    def push_out(self, body: PlayerBody) -> bool:
        """Move a body lodged in loaded solids along the axis of least penetration."""
        moved = False
        for _ in range(self.PUSH_OUT_ITERATIONS):
            box = self.body_box(body)
            solids = self.overlapping_solids(box)
            if not solids:
                break
            candidates = []
            for axis in (1, 0, 2):
                candidates.append((max(cell[axis] + 1 for cell in solids) - box.lo[axis], axis))
                candidates.append((min(cell[axis] for cell in solids) - box.hi[axis], axis))
            # min() keeps the first of equal shifts, so ties resolve upwards.
            shift, axis = min(candidates, key=lambda candidate: abs(candidate[0]))
            position = list(body.position)
            position[axis] += shift
            body.position = (position[0], position[1], position[2])
            velocity = list(body.velocity)
            velocity[axis] = 0.0
            body.velocity = (velocity[0], velocity[1], velocity[2])
            if axis == 1 and shift > 0:
                body.grounded = True
            moved = True
            logger.debug("pushed body out of %d solid cells along axis %d by %.3f", len(solids), axis, shift)
        return moved

    # Integration ---------------------------------------------------------------

    def _accelerate(self, body: PlayerBody, wish_velocity: tuple[float, float], dt: float) -> tuple[float, float]:
        vx, _, vz = body.velocity
        accel = self.config.ground_acceleration if body.grounded else self.config.air_acceleration
        dvx = wish_velocity[0] - vx
        dvz = wish_velocity[1] - vz
        change = math.hypot(dvx, dvz)
        max_change = accel * dt
        if change > max_change:
            scale = max_change / change
            dvx *= scale
            dvz *= scale
        vx += dvx
        vz += dvz

        speed = math.hypot(vx, vz)
        if speed > self.config.walk_speed:
            scale = self.config.walk_speed / speed
            vx *= scale
            vz *= scale
        return vx, vz

    def step(self, body: PlayerBody, wish_velocity: tuple[float, float], jump: bool, dt: float) -> None:
        """Advance ``body`` by ``dt`` seconds.

        ``wish_velocity`` is the desired horizontal (x, z) velocity.
        """
        self.push_out(body)

        vy = body.velocity[1]
        if jump and body.grounded:
            vy = self.config.jump_speed
            body.grounded = False
        vy = max(vy - self.config.gravity * dt, -self.config.terminal_velocity)
        vx, vz = self._accelerate(body, wish_velocity, dt)
        velocity = [vx, vy, vz]

        position = list(body.position)
        box = self.body_box(body)
        grounded = False
        for axis in (0, 1, 2):
            moved, hit = self._sweep_axis(box, axis, velocity[axis] * dt)
            position[axis] += moved
            box = box.offset(axis, moved)
            if hit:
                if axis == 1 and velocity[1] < 0:
                    grounded = True
                velocity[axis] = 0.0

        body.position = (position[0], position[1], position[2])
        body.velocity = (velocity[0], velocity[1], velocity[2])
        body.grounded = grounded

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from voxelstream.blocks import BlockType, get_block_definition
from voxelstream.constants import PLAYER_EYE_HEIGHT, PLAYER_HALF_WIDTH, PLAYER_HEIGHT, REACH_DISTANCE
from voxelstream.gameplay.hotbar import Hotbar
from voxelstream.gameplay.intent import ActionEvent, MovementIntent
from voxelstream.graphics.interface import sight_vector
from voxelstream.physics.aabb import AABB
from voxelstream.physics.engine import PhysicsEngine
from voxelstream.world.chunk_manager import ChunkManager
from voxelstream.world.raycast import RayHit, ray_voxel_traversal

logger = logging.getLogger(__name__)

MAX_PITCH = 89.0

_REPLACEABLE = (BlockType.AIR, BlockType.WATER)


@dataclass
class PlayerBody:
    """The player's physical state. ``position`` is the centre of the feet."""

    position: tuple[float, float, float]
    velocity: tuple[float, float, float] = (0.0, 0.0, 0.0)
    half_width: float = PLAYER_HALF_WIDTH
    height: float = PLAYER_HEIGHT
    eye_height: float = PLAYER_EYE_HEIGHT
    grounded: bool = False
    yaw: float = 0.0
    pitch: float = 0.0

    @property
    def eye(self) -> tuple[float, float, float]:
        x, y, z = self.position
        return x, y + self.eye_height, z

    def aabb(self) -> AABB:
        return AABB.from_feet(self.position, self.half_width, self.height)


class CharacterController:
    """Turns per-tick intent into movement, targeting and block edits."""

    def __init__(
        self,
        body: PlayerBody,
        physics: PhysicsEngine,
        chunks: ChunkManager,
        hotbar: Hotbar,
        reach: float = REACH_DISTANCE,
    ) -> None:
        self.body = body
        self.physics = physics
        self.chunks = chunks
        self.hotbar = hotbar
        self.reach = reach
        self.target: RayHit | None = None

    def look(self, yaw_delta: float, pitch_delta: float) -> None:
        self.body.yaw = (self.body.yaw + yaw_delta) % 360.0
        self.body.pitch = max(-MAX_PITCH, min(MAX_PITCH, self.body.pitch + pitch_delta))

    def wish_velocity(self, intent: MovementIntent) -> tuple[float, float]:
        if not intent.forward and not intent.strafe:
            return 0.0, 0.0

        forward_x, _, forward_z = sight_vector(self.body.yaw, 0.0)
        right_x = -forward_z
        right_z = forward_x

        dx = intent.forward * forward_x + intent.strafe * right_x
        dz = intent.forward * forward_z + intent.strafe * right_z
        magnitude = math.hypot(dx, dz)
        if magnitude > 1.0:
            dx /= magnitude
            dz /= magnitude
        speed = self.physics.config.walk_speed
        return dx * speed, dz * speed

    def update(self, intent: MovementIntent, dt: float) -> None:
        self.look(*intent.look_delta)
        self.physics.step(self.body, self.wish_velocity(intent), intent.jump, dt)
        self.chunks.update(self.body.position)
        self.refresh_target()

    def refresh_target(self) -> RayHit | None:
        direction = sight_vector(self.body.yaw, self.body.pitch)
        self.target = ray_voxel_traversal(self.body.eye, direction, self.chunks.get_block, self.reach)
        self.chunks.set_highlight(None if self.target is None else self.target.block)
        return self.target

    def handle_action(self, event: ActionEvent) -> bool:
        if event is ActionEvent.CYCLE_BLOCK:
            self.hotbar.cycle()
            return True
        if event is ActionEvent.PLACE_BLOCK:
            changed = self._place()
        elif event is ActionEvent.BREAK_BLOCK:
            changed = self._break()
        else:
            raise ValueError(f"unknown action {event!r}")
        if changed:
            self.refresh_target()
        return changed

    def _place(self) -> bool:
        target = self.target
        if target is None or target.previous is None:
            return False
        cell = target.previous
        if self.chunks.get_block(cell) not in _REPLACEABLE:
            return False
        block = self.hotbar.active_block
        if AABB.of_voxel(cell).intersects(self.body.aabb()):
            logger.debug("refusing to place %s at %s inside the player", block.name, cell)
            return False
        return bool(self.chunks.set_block(cell, block, immediate=True))

    def _break(self) -> bool:
        target = self.target
        if target is None or not get_block_definition(self.chunks.get_block(target.block)).breakable:
            return False
        return bool(self.chunks.set_block(target.block, BlockType.AIR, immediate=True))

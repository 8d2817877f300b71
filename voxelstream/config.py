from __future__ import annotations

from dataclasses import dataclass

from voxelstream.constants import (
    AIR_ACCELERATION,
    CHUNK_GENERATIONS_PER_TICK,
    CHUNK_MESHES_PER_TICK,
    CHUNK_WORKERS,
    EVICT_RADIUS_CHUNKS,
    GRAVITY,
    GROUND_ACCELERATION,
    JUMP_SPEED,
    LOAD_RADIUS_CHUNKS,
    MAX_EVICTIONS_PER_TICK,
    MAX_LOADED_CHUNKS,
    PLAYER_EYE_HEIGHT,
    PLAYER_HALF_WIDTH,
    PLAYER_HEIGHT,
    TERMINAL_VELOCITY,
    WALK_SPEED,
    WORLD_LAYERS,
)


@dataclass(frozen=True)
class WorldConfig:
    """Streaming tuning values.

    Radii are Chebyshev distances measured in chunk columns around the
    player's column. Budgets are counts of chunks per tick.
    """

    load_radius: int = LOAD_RADIUS_CHUNKS
    evict_radius: int = EVICT_RADIUS_CHUNKS
    generation_budget: int = CHUNK_GENERATIONS_PER_TICK
    mesh_budget: int = CHUNK_MESHES_PER_TICK
    max_loaded_chunks: int = MAX_LOADED_CHUNKS
    max_evictions_per_tick: int = MAX_EVICTIONS_PER_TICK
    workers: int = CHUNK_WORKERS

    def __post_init__(self) -> None:
        if self.load_radius < 0:
            raise ValueError("load_radius must be >= 0")
        if self.evict_radius <= self.load_radius:
            raise ValueError("evict_radius must be greater than load_radius")
        if self.generation_budget < 1 or self.mesh_budget < 1:
            raise ValueError("per-tick budgets must be >= 1")
        if self.max_evictions_per_tick < 1:
            raise ValueError("max_evictions_per_tick must be >= 1")
        if self.workers < 0:
            raise ValueError("workers must be >= 0")
        if self.max_loaded_chunks < self.required_chunk_count:
            raise ValueError(
                f"max_loaded_chunks={self.max_loaded_chunks} cannot hold the "
                f"{self.required_chunk_count} chunks inside load_radius={self.load_radius}"
            )

    @property
    def required_chunk_count(self) -> int:
        side = 2 * self.load_radius + 1
        return side * side * WORLD_LAYERS


@dataclass(frozen=True)
class PhysicsConfig:
    gravity: float = GRAVITY
    jump_speed: float = JUMP_SPEED
    walk_speed: float = WALK_SPEED
    ground_acceleration: float = GROUND_ACCELERATION
    air_acceleration: float = AIR_ACCELERATION
    terminal_velocity: float = TERMINAL_VELOCITY
    half_width: float = PLAYER_HALF_WIDTH
    height: float = PLAYER_HEIGHT
    eye_height: float = PLAYER_EYE_HEIGHT

    def __post_init__(self) -> None:
        if self.gravity < 0:
            raise ValueError("gravity must be >= 0")
        if self.walk_speed <= 0 or self.terminal_velocity <= 0:
            raise ValueError("speeds must be positive")
        if not 0 < self.half_width < 0.5:
            raise ValueError("half_width must be in (0, 0.5)")
        if self.height <= 0 or not 0 < self.eye_height <= self.height:
            raise ValueError("eye_height must be within the body height")

from __future__ import annotations

import logging
from collections.abc import Iterable

from voxelstream.config import PhysicsConfig, WorldConfig
from voxelstream.constants import CHUNK_SIZE, WORLD_HEIGHT, WORLD_LAYERS
from voxelstream.debug.profiler import RuntimeProfiler
from voxelstream.entities.player import CharacterController, PlayerBody
from voxelstream.gameplay.hotbar import Hotbar
from voxelstream.gameplay.intent import ActionEvent, MovementIntent
from voxelstream.graphics.interface import CameraUniform, MeshSink, NullMeshSink, build_camera_uniform
from voxelstream.physics.engine import PhysicsEngine
from voxelstream.world.chunk_manager import ChunkManager
from voxelstream.world.terrain import ChunkGenerator, FlatTerrainGenerator, TerrainGenerator

logger = logging.getLogger(__name__)

DEFAULT_SEED = 90125


class GameSession:
    """Everything that makes up one running world, minus the window."""

    PRIME_RADIUS_CHUNKS = 2
    LOADING_RADIUS_CHUNKS = 1

    def __init__(
        self,
        seed: int = DEFAULT_SEED,
        world_config: WorldConfig | None = None,
        physics_config: PhysicsConfig | None = None,
        sink: MeshSink | None = None,
        profiler: RuntimeProfiler | None = None,
        generator: ChunkGenerator | None = None,
        flat: bool = False,
    ) -> None:
        self.seed = seed
        self.sink = sink or NullMeshSink()
        self.profiler = profiler or RuntimeProfiler(enabled=False)
        if generator is None:
            generator = FlatTerrainGenerator() if flat else TerrainGenerator(seed)
        self.generator = generator

        self.chunks = ChunkManager(generator, config=world_config, sink=self.sink, profiler=self.profiler)
        self.physics = PhysicsEngine(self.chunks.grid, physics_config)
        physics = self.physics.config
        self.body = PlayerBody(
            position=self.spawn_point(),
            half_width=physics.half_width,
            height=physics.height,
            eye_height=physics.eye_height,
            pitch=-25.0,
        )
        self.hotbar = Hotbar()
        self.controller = CharacterController(self.body, self.physics, self.chunks, self.hotbar)

        self.chunks.prime(self.body.position, radius=self.PRIME_RADIUS_CHUNKS)
        self.loading = True
        self.ticks = 0
        logger.info("session started: seed=%d spawn=%s", seed, self.body.position)

    def spawn_point(self) -> tuple[float, float, float]:
        surface = self.generator.height_at(0, 0)
        return 0.5, float(min(surface + 1, WORLD_HEIGHT)), 0.5

    def loading_chunks(self) -> set[tuple[int, int, int]]:
        pcx, pcz = ChunkManager.column_of(self.body.position)
        radius = self.LOADING_RADIUS_CHUNKS
        return {
            (pcx + dx, cy, pcz + dz)
            for dx in range(-radius, radius + 1)
            for dz in range(-radius, radius + 1)
            for cy in range(WORLD_LAYERS)
        }

    def tick(self, intent: MovementIntent, actions: Iterable[ActionEvent] = (), dt: float = 1.0 / 60.0) -> None:
        x, y, z = self.body.position
        self.profiler.begin_frame("tick", {"chunk": [int(x // CHUNK_SIZE), int(z // CHUNK_SIZE)]})
        try:
            if self.loading:
                with self.profiler.section("tick.stream"):
                    self.chunks.update(self.body.position)
                if self.chunks.are_chunks_meshed(self.loading_chunks()):
                    self.loading = False
                    logger.info("spawn area ready after %d ticks", self.ticks)
                return

            with self.profiler.section("tick.controller"):
                self.controller.update(intent, dt)
            for action in actions:
                with self.profiler.section("tick.action"):
                    self.controller.handle_action(action)
        finally:
            self.ticks += 1
            self.profiler.end_frame(extra_context=self.chunks.diagnostics_snapshot())

    def camera_uniform(self, aspect: float) -> CameraUniform:
        return build_camera_uniform(self.body.eye, self.body.yaw, self.body.pitch, aspect)

    def draw_list(self) -> list[tuple[tuple[int, int, int], int]]:
        return self.chunks.draw_list()

    def draw(self, aspect: float) -> None:
        self.sink.draw(self.draw_list(), self.camera_uniform(aspect))

    def shutdown(self) -> None:
        self.chunks.shutdown()
        logger.info("session stopped after %d ticks", self.ticks)

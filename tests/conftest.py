from array import array

import pytest

from voxelstream.config import WorldConfig
from voxelstream.constants import WORLD_LAYERS
from voxelstream.world.chunk import Chunk
from voxelstream.world.chunk_manager import ChunkManager
from voxelstream.world.grid import VoxelGrid
from voxelstream.world.terrain import FlatTerrainGenerator

FLAT_HEIGHT = 16


class RecordingSink:
    """MeshSink that remembers what it was given."""

    def __init__(self) -> None:
        self.meshes: dict = {}
        self.uploads: list = []
        self.releases: list = []
        self.draws: list = []

    def upload_mesh(self, chunk_id, vertex_buffer: array, instance_buffer: array) -> None:
        self.meshes[chunk_id] = (vertex_buffer, instance_buffer)
        self.uploads.append(chunk_id)

    def release_mesh(self, chunk_id) -> None:
        self.meshes.pop(chunk_id, None)
        self.releases.append(chunk_id)

    def draw(self, chunks, camera) -> None:
        self.draws.append((list(chunks), camera))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def flat_generator():
    return FlatTerrainGenerator(height=FLAT_HEIGHT)


@pytest.fixture
def small_config():
    return WorldConfig(
        load_radius=1,
        evict_radius=2,
        generation_budget=4,
        mesh_budget=4,
        max_loaded_chunks=200,
        max_evictions_per_tick=64,
        workers=0,
    )


@pytest.fixture
def manager(flat_generator, small_config, sink):
    chunk_manager = ChunkManager(flat_generator, config=small_config, sink=sink)
    yield chunk_manager
    chunk_manager.shutdown()


def populated_grid(generator, radius: int = 1) -> VoxelGrid:
    """A grid with every layer of the columns around the origin generated."""
    grid = VoxelGrid()
    for cx in range(-radius, radius + 1):
        for cz in range(-radius, radius + 1):
            for cy in range(WORLD_LAYERS):
                chunk = Chunk((cx, cy, cz), version=1)
                chunk.populate(generator.generate((cx, cy, cz)))
                grid.add_chunk(chunk)
    return grid


def settle(chunk_manager: ChunkManager, position, max_ticks: int = 500) -> int:
    for tick in range(max_ticks):
        chunk_manager.update(position)
        if chunk_manager.is_settled():
            return tick + 1
    raise AssertionError(f"world did not settle within {max_ticks} ticks: {chunk_manager.diagnostics_snapshot()}")

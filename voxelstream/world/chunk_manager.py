import heapq
import logging
import math
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import nullcontext
from queue import Empty, Queue

from voxelstream.blocks import BlockType
from voxelstream.config import WorldConfig
from voxelstream.constants import CHUNK_SIZE, FACE_NEIGHBORS, WORLD_LAYERS, ChunkCoord, Vec3
from voxelstream.debug.profiler import RuntimeProfiler
from voxelstream.graphics.interface import MeshSink, NullMeshSink
from voxelstream.world.chunk import Chunk, ChunkState, chunk_coord_of
from voxelstream.world.grid import NeighborBorders, VoxelGrid
from voxelstream.world.mesher import FACE_QUAD, FaceInstance, mesh_blocks, pack_instances
from voxelstream.world.terrain import ChunkGenerator

logger = logging.getLogger(__name__)

Column = tuple[int, int]


class ChunkManager:
    INFLIGHT_PER_BUDGET = 4
    PRESSURE_RELAX_RATIO = 0.75
    # A new target must hold this many consecutive calls before chunks remesh.
    HIGHLIGHT_SETTLE_TICKS = 4

    def __init__(
        self,
        generator: ChunkGenerator,
        config: WorldConfig | None = None,
        sink: MeshSink | None = None,
        profiler: RuntimeProfiler | None = None,
    ) -> None:
        self.config = config or WorldConfig()
        self.generator = generator
        self.sink: MeshSink = sink or NullMeshSink()
        self.profiler = profiler
        self.grid = VoxelGrid()
        self.highlight: Vec3 | None = None
        self._highlight_candidate: Vec3 | None = None
        self._highlight_wait = 0
        self.stale_results_dropped = 0

        self._evict_radius = self.config.evict_radius
        self._column_offsets = self._sorted_column_offsets(self.config.load_radius)
        self._center: Column | None = None
        self._required: list[ChunkCoord] = []
        self._required_set: set[ChunkCoord] = set()
        self._next_version = 0
        self._mesh_pending: set[ChunkCoord] = set()

        self._generation_futures: dict[ChunkCoord, tuple[int, Future[bytearray]]] = {}
        self._generated: Queue[tuple[ChunkCoord, int]] = Queue()
        self._mesh_futures: dict[ChunkCoord, tuple[int, int, Future[list[FaceInstance]]]] = {}
        self._meshed: Queue[tuple[ChunkCoord, int, int]] = Queue()
        # Worker callbacks only enqueue keys; results are applied on the tick thread
        # after the chunk version (and, for meshes, the edit revision) is rechecked.
        self._executor: ThreadPoolExecutor | None = None
        self._mesh_executor: ThreadPoolExecutor | None = None
        if self.config.workers > 0:
            self._executor = ThreadPoolExecutor(max_workers=self.config.workers, thread_name_prefix="chunkgen")
            self._mesh_executor = ThreadPoolExecutor(max_workers=self.config.workers, thread_name_prefix="meshbuild")

    def _profile(self, name: str):
        if self.profiler is None:
            return nullcontext()
        return self.profiler.section(name)

    @staticmethod
    def _sorted_column_offsets(radius: int) -> list[Column]:
        offsets = [(dx, dz) for dx in range(-radius, radius + 1) for dz in range(-radius, radius + 1)]
        offsets.sort(key=lambda o: (o[0] * o[0] + o[1] * o[1], o))
        return offsets

    @staticmethod
    def column_of(position: tuple[float, float, float]) -> Column:
        x, _, z = position
        return math.floor(x / CHUNK_SIZE), math.floor(z / CHUNK_SIZE)

    @staticmethod
    def column_distance(coord: ChunkCoord, center: Column) -> int:
        return max(abs(coord[0] - center[0]), abs(coord[2] - center[1]))

    def _distance_key(self, coord: ChunkCoord) -> int:
        if self._center is None:
            return 0
        dx = coord[0] - self._center[0]
        dz = coord[2] - self._center[1]
        return dx * dx + dz * dz

    @property
    def evict_radius(self) -> int:
        return self._evict_radius

    @property
    def required_coords(self) -> list[ChunkCoord]:
        return list(self._required)

    def get_block(self, position: Vec3) -> BlockType:
        return self.grid.get_block(position)

    def chunk_state(self, coord: ChunkCoord) -> ChunkState | None:
        chunk = self.grid.chunk(coord)
        return None if chunk is None else chunk.state

    # Lifecycle -----------------------------------------------------------------

    def _allocate(self, coord: ChunkCoord) -> Chunk:
        self._next_version += 1
        chunk = Chunk(coord, version=self._next_version)
        self.grid.add_chunk(chunk)
        return chunk

    def _publish_generated(self, chunk: Chunk, blocks: bytearray) -> None:
        chunk.populate(blocks)
        logger.debug("generated chunk %s (version %d)", chunk.coord, chunk.version)
        cx, cy, cz = chunk.coord
        self._mesh_pending.add(chunk.coord)
        # Neighbours meshed against the old (or missing) border must rebuild.
        for dx, dy, dz in FACE_NEIGHBORS:
            neighbor = self.grid.chunk((cx + dx, cy + dy, cz + dz))
            if neighbor is None or not neighbor.is_generated:
                continue
            if neighbor.state is ChunkState.MESH_READY:
                neighbor.mark_dirty()
            self._cancel_mesh(neighbor.coord)
            self._mesh_pending.add(neighbor.coord)

    def _cancel_generation(self, coord: ChunkCoord) -> None:
        entry = self._generation_futures.pop(coord, None)
        if entry is not None:
            entry[1].cancel()

    def _cancel_mesh(self, coord: ChunkCoord) -> None:
        entry = self._mesh_futures.pop(coord, None)
        if entry is not None:
            entry[2].cancel()

    def evict(self, coord: ChunkCoord) -> bool:
        chunk = self.grid.remove_chunk(coord)
        if chunk is None:
            return False
        self._cancel_generation(coord)
        self._cancel_mesh(coord)
        self._mesh_pending.discard(coord)
        if chunk.has_mesh:
            self.sink.release_mesh(coord)
        chunk.release()
        logger.debug("evicted chunk %s", coord)
        return True

    # Streaming -----------------------------------------------------------------

    def _recenter(self, center: Column, layer: int) -> None:
        self._center = center
        pcx, pcz = center
        layers = sorted(range(WORLD_LAYERS), key=lambda cy: abs(cy - layer))
        self._required = [(pcx + dx, cy, pcz + dz) for dx, dz in self._column_offsets for cy in layers]
        self._required_set = set(self._required)

        for chunk in self.grid:
            if chunk.state is ChunkState.UNGENERATED and chunk.coord not in self._required_set:
                self.evict(chunk.coord)

    def _allocate_required(self) -> None:
        for coord in self._required:
            if coord not in self.grid:
                self._allocate(coord)

    def _generate_sync(self, budget: int) -> None:
        generated = 0
        for coord in self._required:
            if generated >= budget:
                break
            chunk = self.grid.chunk(coord)
            if chunk is None or chunk.state is not ChunkState.UNGENERATED:
                continue
            with self._profile("world.generate.single"):
                self._publish_generated(chunk, self.generator.generate(coord))
            generated += 1

    def _on_generation_done(self, coord: ChunkCoord, version: int, future: Future[bytearray]) -> None:
        if future.cancelled():
            return
        self._generated.put((coord, version))

    def _request_generation(self, executor: ThreadPoolExecutor, budget: int) -> None:
        available = max(0, budget * self.INFLIGHT_PER_BUDGET - len(self._generation_futures))
        to_request = min(budget, available)
        requested = 0
        for coord in self._required:
            if requested >= to_request:
                break
            chunk = self.grid.chunk(coord)
            if chunk is None or chunk.state is not ChunkState.UNGENERATED or coord in self._generation_futures:
                continue
            future = executor.submit(self.generator.generate, coord)
            self._generation_futures[coord] = (chunk.version, future)
            future.add_done_callback(lambda f, c=coord, v=chunk.version: self._on_generation_done(c, v, f))
            requested += 1

    def _drain_generated(self, budget: int) -> None:
        applied = 0
        while applied < budget:
            try:
                coord, version = self._generated.get_nowait()
            except Empty:
                break

            entry = self._generation_futures.get(coord)
            if entry is None or entry[0] != version:
                self.stale_results_dropped += 1
                continue
            del self._generation_futures[coord]
            chunk = self.grid.chunk(coord)
            if chunk is None or chunk.version != version or chunk.state is not ChunkState.UNGENERATED:
                self.stale_results_dropped += 1
                continue

            try:
                blocks = entry[1].result()
            except Exception:
                logger.exception("terrain generation failed for chunk %s; retrying", coord)
                continue
            self._publish_generated(chunk, blocks)
            applied += 1

    def _adjust_for_memory_pressure(self) -> None:
        loaded = len(self.grid)
        limit = self.config.max_loaded_chunks
        if loaded > limit and self._evict_radius > self.config.load_radius:
            self._evict_radius -= 1
            logger.warning(
                "%d chunks loaded (limit %d); eviction radius shrunk to %d", loaded, limit, self._evict_radius
            )
        elif loaded < limit * self.PRESSURE_RELAX_RATIO and self._evict_radius < self.config.evict_radius:
            self._evict_radius += 1
            logger.debug("eviction radius relaxed to %d", self._evict_radius)

    def _evict_far_chunks(self) -> int:
        if self._center is None:
            return 0
        center = self._center
        far = [coord for coord in self.grid.coords() if self.column_distance(coord, center) > self._evict_radius]
        victims = heapq.nlargest(self.config.max_evictions_per_tick, far, key=self._distance_key)
        for coord in victims:
            self.evict(coord)
        return len(victims)

    # Meshing -------------------------------------------------------------------

    def _mesh_ready(self, coord: ChunkCoord) -> bool:
        chunk = self.grid.chunk(coord)
        return (
            chunk is not None
            and chunk.needs_mesh
            and coord not in self._mesh_futures
            and self.grid.neighbors_generated(coord)
        )

    def _apply_mesh(self, chunk: Chunk, instances: list[FaceInstance]) -> None:
        if instances:
            self.sink.upload_mesh(chunk.coord, FACE_QUAD, pack_instances(instances))
            chunk.has_mesh = True
        elif chunk.has_mesh:
            self.sink.release_mesh(chunk.coord)
            chunk.has_mesh = False
        chunk.instance_count = len(instances)
        chunk.state = ChunkState.MESH_READY
        self._mesh_pending.discard(chunk.coord)

    def _snapshot(self, chunk: Chunk) -> tuple[bytes, NeighborBorders]:
        if chunk.blocks is None:
            raise ValueError(f"cannot mesh {chunk!r} before it is generated")
        return bytes(chunk.blocks), self.grid.neighbor_borders(chunk.coord)

    def _build_mesh_now(self, chunk: Chunk) -> None:
        self._cancel_mesh(chunk.coord)
        blocks, borders = self._snapshot(chunk)
        with self._profile("world.mesh.single"):
            instances = mesh_blocks(chunk.coord, blocks, borders, self.highlight)
        self._apply_mesh(chunk, instances)

    def _on_mesh_done(self, coord: ChunkCoord, version: int, revision: int, future: Future) -> None:
        if future.cancelled():
            return
        self._meshed.put((coord, version, revision))

    def _schedule_meshes(self, budget: int) -> None:
        ready = [coord for coord in self._mesh_pending if self._mesh_ready(coord)]
        if not ready:
            return
        if self._mesh_executor is not None:
            available = max(0, budget * self.INFLIGHT_PER_BUDGET - len(self._mesh_futures))
            budget = min(budget, available)
        for coord in heapq.nsmallest(budget, ready, key=self._distance_key):
            chunk = self.grid.chunk(coord)
            if chunk is None:
                continue
            if self._mesh_executor is None:
                self._build_mesh_now(chunk)
                continue
            blocks, borders = self._snapshot(chunk)
            future = self._mesh_executor.submit(mesh_blocks, coord, blocks, borders, self.highlight)
            self._mesh_futures[coord] = (chunk.version, chunk.revision, future)
            future.add_done_callback(
                lambda f, c=coord, v=chunk.version, r=chunk.revision: self._on_mesh_done(c, v, r, f)
            )

    def _drain_meshed(self, budget: int) -> None:
        applied = 0
        while applied < budget:
            try:
                coord, version, revision = self._meshed.get_nowait()
            except Empty:
                break

            entry = self._mesh_futures.get(coord)
            if entry is None or entry[0] != version or entry[1] != revision:
                self.stale_results_dropped += 1
                continue
            del self._mesh_futures[coord]
            chunk = self.grid.chunk(coord)
            if chunk is None or chunk.version != version or chunk.revision != revision or not chunk.needs_mesh:
                self.stale_results_dropped += 1
                continue

            try:
                instances = entry[2].result()
            except Exception:
                logger.exception("mesh build failed for chunk %s; retrying", coord)
                continue
            self._apply_mesh(chunk, instances)
            applied += 1

    # Public tick API -----------------------------------------------------------

    def update(self, position: tuple[float, float, float]) -> None:
        center = self.column_of(position)
        if center != self._center:
            self._recenter(center, math.floor(position[1] / CHUNK_SIZE))

        with self._profile("world.update.allocate"):
            self._allocate_required()

        budget = self.config.generation_budget
        with self._profile("world.update.generate"):
            if self._executor is None:
                self._generate_sync(budget)
            else:
                self._drain_generated(budget)
                self._request_generation(self._executor, budget)

        with self._profile("world.update.evict"):
            self._adjust_for_memory_pressure()
            self._evict_far_chunks()

        with self._profile("world.update.mesh"):
            if self._mesh_executor is not None:
                self._drain_meshed(self.config.mesh_budget)
            self._schedule_meshes(self.config.mesh_budget)

    def prime(self, position: tuple[float, float, float], radius: int = 1) -> None:
        """Synchronously generate and mesh the columns around ``position``."""
        if self._center is None:
            self._recenter(self.column_of(position), math.floor(position[1] / CHUNK_SIZE))
        pcx, pcz = self.column_of(position)
        for dx in range(-radius, radius + 1):
            for dz in range(-radius, radius + 1):
                for cy in range(WORLD_LAYERS):
                    coord = (pcx + dx, cy, pcz + dz)
                    chunk = self.grid.chunk(coord) or self._allocate(coord)
                    if chunk.state is ChunkState.UNGENERATED:
                        self._cancel_generation(coord)
                        self._publish_generated(chunk, self.generator.generate(coord))
        for coord in sorted(self._mesh_pending, key=self._distance_key):
            if self._mesh_ready(coord):
                self._build_mesh_now(self.grid.chunk(coord))
        logger.info("primed %d chunks around column %s", len(self.grid), (pcx, pcz))

    def set_block(self, position: Vec3, block: BlockType, immediate: bool = False) -> set[ChunkCoord]:
        dirtied = self.grid.set_block(position, block)
        for coord in dirtied:
            self._cancel_mesh(coord)
            self._mesh_pending.add(coord)
        if immediate:
            self.rebuild_now(dirtied)
        return dirtied

    def rebuild_now(self, coords: set[ChunkCoord]) -> None:
        for coord in sorted(coords, key=self._distance_key):
            if self._mesh_ready(coord):
                self._build_mesh_now(self.grid.chunk(coord))

    def set_highlight(self, position: Vec3 | None, immediate: bool = False) -> bool:
        # Returns True when the baked highlight moved and chunks were dirtied.
        if position == self.highlight:
            self._highlight_candidate, self._highlight_wait = None, 0
            return False
        if not immediate:
            if position != self._highlight_candidate or self._highlight_wait == 0:
                self._highlight_candidate, self._highlight_wait = position, 0
            self._highlight_wait += 1
            if self._highlight_wait < self.HIGHLIGHT_SETTLE_TICKS:
                return False
        self._highlight_candidate, self._highlight_wait = None, 0
        touched = {chunk_coord_of(p) for p in (self.highlight, position) if p is not None}
        self.highlight = position
        for coord in touched:
            chunk = self.grid.chunk(coord)
            if chunk is not None and chunk.is_generated:
                chunk.mark_dirty()
                self._cancel_mesh(coord)
                self._mesh_pending.add(coord)
        return True

    def is_settled(self) -> bool:
        if self._generation_futures or self._mesh_futures:
            return False
        if not self._generated.empty() or not self._meshed.empty():
            return False
        for coord in self._required:
            chunk = self.grid.chunk(coord)
            if chunk is None or not chunk.is_generated:
                return False
        if any(self._mesh_ready(coord) for coord in self._mesh_pending):
            return False
        if self._center is not None:
            center = self._center
            if any(self.column_distance(c, center) > self._evict_radius for c in self.grid.coords()):
                return False
        return True

    def are_chunks_meshed(self, coords: set[ChunkCoord]) -> bool:
        for coord in coords:
            chunk = self.grid.chunk(coord)
            if chunk is None or chunk.state is not ChunkState.MESH_READY:
                return False
        return True

    def draw_list(self) -> list[tuple[ChunkCoord, int]]:
        return [(chunk.coord, chunk.instance_count) for chunk in self.grid if chunk.has_mesh]

    def diagnostics_snapshot(self) -> dict[str, int]:
        states = {state: 0 for state in ChunkState}
        for chunk in self.grid:
            states[chunk.state] += 1
        return {
            "loaded_chunks": len(self.grid),
            "required_chunks": len(self._required),
            "ungenerated": states[ChunkState.UNGENERATED],
            "generated": states[ChunkState.GENERATED],
            "mesh_dirty": states[ChunkState.MESH_DIRTY],
            "mesh_ready": states[ChunkState.MESH_READY],
            "mesh_pending": len(self._mesh_pending),
            "generation_futures": len(self._generation_futures),
            "mesh_futures": len(self._mesh_futures),
            "evict_radius": self._evict_radius,
            "stale_results_dropped": self.stale_results_dropped,
        }

    def shutdown(self) -> None:
        for coord in list(self._generation_futures):
            self._cancel_generation(coord)
        for coord in list(self._mesh_futures):
            self._cancel_mesh(coord)
        for chunk in self.grid:
            self.evict(chunk.coord)
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
        if self._mesh_executor is not None:
            self._mesh_executor.shutdown(wait=False, cancel_futures=True)

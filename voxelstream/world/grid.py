from __future__ import annotations

import logging
from collections.abc import Iterator

from voxelstream.blocks import BlockType, SOLID_BLOCKS
from voxelstream.constants import (
    CHUNK_AREA,
    CHUNK_SIZE,
    FACE_NEIGHBORS,
    WORLD_HEIGHT,
    WORLD_LAYERS,
    ChunkCoord,
    Vec3,
)
from voxelstream.world.chunk import Chunk, to_chunk_local

logger = logging.getLogger(__name__)

_AIR_LAYER = bytes(CHUNK_AREA)

NeighborBorders = dict[int, "bytes | None"]


class VoxelGrid:
    """Sparse world storage: the set of loaded chunks keyed by chunk coordinate.

    Neighbours are always found by coordinate lookup; chunks never point at each
    other. Only the chunk manager adds or removes chunks.
    """

    def __init__(self) -> None:
        self._chunks: dict[ChunkCoord, Chunk] = {}

    def __len__(self) -> int:
        return len(self._chunks)

    def __contains__(self, coord: object) -> bool:
        return coord in self._chunks

    def __iter__(self) -> Iterator[Chunk]:
        return iter(list(self._chunks.values()))

    def coords(self) -> set[ChunkCoord]:
        return set(self._chunks)

    def chunk(self, coord: ChunkCoord) -> Chunk | None:
        return self._chunks.get(coord)

    def add_chunk(self, chunk: Chunk) -> None:
        if chunk.coord in self._chunks:
            raise ValueError(f"chunk {chunk.coord} is already loaded")
        self._chunks[chunk.coord] = chunk

    def remove_chunk(self, coord: ChunkCoord) -> Chunk | None:
        return self._chunks.pop(coord, None)

    @staticmethod
    def in_world(coord: ChunkCoord) -> bool:
        return 0 <= coord[1] < WORLD_LAYERS

    def get_block(self, position: Vec3) -> BlockType:
        y = position[1]
        if y >= WORLD_HEIGHT:
            return BlockType.AIR
        if y < 0:
            return BlockType.UNLOADED
        coord, (lx, ly, lz) = to_chunk_local(position)
        chunk = self._chunks.get(coord)
        if chunk is None:
            return BlockType.UNLOADED
        return chunk.get_local(lx, ly, lz)

    def is_solid_at(self, position: Vec3) -> bool:
        return self.get_block(position) in SOLID_BLOCKS

    def set_block(self, position: Vec3, block: BlockType) -> set[ChunkCoord]:
        """Write ``block`` and return the chunks whose meshes it invalidated.

        Edits outside generated chunks are ignored and return an empty set.
        """
        if block is BlockType.UNLOADED:
            return set()
        if not 0 <= position[1] < WORLD_HEIGHT:
            return set()
        coord, (lx, ly, lz) = to_chunk_local(position)
        chunk = self._chunks.get(coord)
        if chunk is None or not chunk.is_generated:
            logger.debug("ignoring edit at %s: chunk %s not loaded", position, coord)
            return set()
        if not chunk.set_local(lx, ly, lz, block):
            return set()

        chunk.mark_dirty()
        dirtied = {coord}
        cx, cy, cz = coord
        local = (lx, ly, lz)
        for face_index, (dx, dy, dz) in enumerate(FACE_NEIGHBORS):
            axis = face_index // 2
            edge = CHUNK_SIZE - 1 if face_index % 2 == 0 else 0
            if local[axis] != edge:
                continue
            neighbor = self._chunks.get((cx + dx, cy + dy, cz + dz))
            if neighbor is None or not neighbor.is_generated:
                continue
            neighbor.mark_dirty()
            dirtied.add(neighbor.coord)
        return dirtied

    def neighbor_borders(self, coord: ChunkCoord) -> NeighborBorders:
        """Border layers facing ``coord`` from each of its six neighbours.

        A face maps to ``None`` when the neighbour is not generated; above the
        world ceiling the border is all air.
        """
        cx, cy, cz = coord
        borders: NeighborBorders = {}
        for face_index, (dx, dy, dz) in enumerate(FACE_NEIGHBORS):
            neighbor_coord = (cx + dx, cy + dy, cz + dz)
            if neighbor_coord[1] >= WORLD_LAYERS:
                borders[face_index] = _AIR_LAYER
                continue
            neighbor = self._chunks.get(neighbor_coord)
            if neighbor is None or not neighbor.is_generated:
                borders[face_index] = None
                continue
            borders[face_index] = neighbor.border_layer(face_index ^ 1)
        return borders

    def neighbors_generated(self, coord: ChunkCoord) -> bool:
        cx, cy, cz = coord
        for dx, dy, dz in FACE_NEIGHBORS:
            neighbor_coord = (cx + dx, cy + dy, cz + dz)
            if not self.in_world(neighbor_coord):
                continue
            neighbor = self._chunks.get(neighbor_coord)
            if neighbor is None or not neighbor.is_generated:
                return False
        return True

from __future__ import annotations

from enum import IntEnum

from voxelstream.blocks import BlockType
from voxelstream.constants import CHUNK_AREA, CHUNK_SIZE, CHUNK_VOLUME, ChunkCoord, Vec3


class ChunkState(IntEnum):
    UNGENERATED = 0
    GENERATED = 1
    MESH_DIRTY = 2
    MESH_READY = 3


def chunk_coord_of(position: Vec3) -> ChunkCoord:
    x, y, z = position
    return x // CHUNK_SIZE, y // CHUNK_SIZE, z // CHUNK_SIZE


def to_chunk_local(position: Vec3) -> tuple[ChunkCoord, Vec3]:
    x, y, z = position
    return (
        (x // CHUNK_SIZE, y // CHUNK_SIZE, z // CHUNK_SIZE),
        (x % CHUNK_SIZE, y % CHUNK_SIZE, z % CHUNK_SIZE),
    )


def to_world(chunk: ChunkCoord, local: Vec3) -> Vec3:
    cx, cy, cz = chunk
    lx, ly, lz = local
    return cx * CHUNK_SIZE + lx, cy * CHUNK_SIZE + ly, cz * CHUNK_SIZE + lz


def local_index(lx: int, ly: int, lz: int) -> int:
    return (ly * CHUNK_SIZE + lz) * CHUNK_SIZE + lx


def border_index(face_index: int, lx: int, ly: int, lz: int) -> int:
    """Index into a border layer for the two axes that span ``face_index``."""
    axis = face_index // 2
    if axis == 0:
        return ly * CHUNK_SIZE + lz
    if axis == 1:
        return lz * CHUNK_SIZE + lx
    return ly * CHUNK_SIZE + lx


class Chunk:
    """A cubic block of voxels owned by the chunk manager.

    ``version`` is unique per allocation and lets asynchronous work detect that
    the chunk it was started for has been evicted. ``revision`` is bumped on
    every edit so meshes built from older data can be recognised.
    """

    __slots__ = ("coord", "version", "revision", "state", "blocks", "instance_count", "has_mesh")

    def __init__(self, coord: ChunkCoord, version: int = 0) -> None:
        self.coord = coord
        self.version = version
        self.revision = 0
        self.state = ChunkState.UNGENERATED
        self.blocks: bytearray | None = None
        self.instance_count = 0
        self.has_mesh = False

    def __repr__(self) -> str:
        return f"Chunk(coord={self.coord}, version={self.version}, state={self.state.name})"

    @property
    def is_generated(self) -> bool:
        return self.state >= ChunkState.GENERATED

    @property
    def needs_mesh(self) -> bool:
        return self.state in (ChunkState.GENERATED, ChunkState.MESH_DIRTY)

    @property
    def origin(self) -> Vec3:
        return to_world(self.coord, (0, 0, 0))

    def populate(self, blocks: bytearray) -> None:
        if len(blocks) != CHUNK_VOLUME:
            raise ValueError(f"chunk data must hold {CHUNK_VOLUME} blocks, got {len(blocks)}")
        self.blocks = blocks
        self.state = ChunkState.GENERATED

    def get_local(self, lx: int, ly: int, lz: int) -> BlockType:
        if self.blocks is None:
            return BlockType.UNLOADED
        return BlockType(self.blocks[local_index(lx, ly, lz)])

    def set_local(self, lx: int, ly: int, lz: int, block: BlockType) -> bool:
        if self.blocks is None:
            return False
        index = local_index(lx, ly, lz)
        if self.blocks[index] == block:
            return False
        self.blocks[index] = block
        self.revision += 1
        return True

    def mark_dirty(self) -> None:
        if self.is_generated:
            self.state = ChunkState.MESH_DIRTY

    def border_layer(self, face_index: int) -> bytes:
        """The layer of blocks this chunk exposes on its ``face_index`` side."""
        if self.blocks is None:
            raise ValueError(f"{self!r} has no block data")
        axis = face_index // 2
        edge = CHUNK_SIZE - 1 if face_index % 2 == 0 else 0
        layer = bytearray(CHUNK_AREA)
        blocks = self.blocks
        for a in range(CHUNK_SIZE):
            for b in range(CHUNK_SIZE):
                if axis == 0:
                    lx, ly, lz = edge, a, b
                elif axis == 1:
                    lx, ly, lz = b, edge, a
                else:
                    lx, ly, lz = b, a, edge
                layer[border_index(face_index, lx, ly, lz)] = blocks[local_index(lx, ly, lz)]
        return bytes(layer)

    def release(self) -> None:
        self.blocks = None
        self.has_mesh = False
        self.instance_count = 0
        self.state = ChunkState.UNGENERATED

from __future__ import annotations

import math
from array import array
from dataclasses import dataclass

from voxelstream.blocks import BlockType, atlas_offset_for_face
from voxelstream.blocks.registry import OPAQUE_IDS, VISIBLE_IDS
from voxelstream.constants import CHUNK_SIZE, FACE_NEIGHBORS, ChunkCoord, Vec3
from voxelstream.world.chunk import Chunk, border_index, local_index, to_world
from voxelstream.world.grid import NeighborBorders

_S45 = math.sqrt(0.5)

# Rotations (x, y, z, w) taking the canonical +Y face onto each face direction,
# about the voxel centre.
FACE_ROTATIONS: tuple[tuple[float, float, float, float], ...] = (
    (0.0, 0.0, -_S45, _S45),
    (0.0, 0.0, _S45, _S45),
    (0.0, 0.0, 0.0, 1.0),
    (1.0, 0.0, 0.0, 0.0),
    (_S45, 0.0, 0.0, _S45),
    (-_S45, 0.0, 0.0, _S45),
)

FACE_SHADES = (0.86, 0.86, 1.0, 0.55, 0.72, 0.72)
HIGHLIGHT_BOOST = 1.35

# Canonical unit face (top of the unit cube) shared by every instance.
FACE_QUAD_VERTICES = (
    (0.0, 1.0, 0.0),
    (0.0, 1.0, 1.0),
    (1.0, 1.0, 1.0),
    (1.0, 1.0, 0.0),
)
FACE_QUAD_INDICES = (0, 1, 2, 2, 3, 0)
FACE_QUAD = array("f", [c for vertex in FACE_QUAD_VERTICES for c in vertex])

INSTANCE_FLOATS = 14


@dataclass(frozen=True)
class FaceInstance:
    position: tuple[float, float, float]
    rotation: tuple[float, float, float, float]
    face: int
    block: BlockType
    atlas_offset: tuple[float, float]
    color_adjust: tuple[float, float, float, float]


def pack_instances(instances: list[FaceInstance]) -> array:
    """Flatten instances as position4, rotation4, atlas2, color4 floats."""
    data = array("f")
    for instance in instances:
        x, y, z = instance.position
        data.extend((x, y, z, 1.0))
        data.extend(instance.rotation)
        data.extend(instance.atlas_offset)
        data.extend(instance.color_adjust)
    return data


def _face_color(face_index: int, highlighted: bool) -> tuple[float, float, float, float]:
    shade = FACE_SHADES[face_index]
    if highlighted:
        shade *= HIGHLIGHT_BOOST
    return shade, shade, shade, 1.0


def mesh_blocks(
    coord: ChunkCoord,
    blocks: bytes | bytearray,
    borders: NeighborBorders,
    highlight: Vec3 | None = None,
) -> list[FaceInstance]:
    """Visible-face culling over one chunk's block data.

    A face is emitted when the voxel across it is air, or transparent and of a
    different type. Faces against a ``None`` border (neighbour not loaded) are
    skipped.
    """
    instances: list[FaceInstance] = []
    if blocks.count(0) == len(blocks):
        return instances
    ox, oy, oz = to_world(coord, (0, 0, 0))
    last = CHUNK_SIZE - 1

    for ly in range(CHUNK_SIZE):
        for lz in range(CHUNK_SIZE):
            for lx in range(CHUNK_SIZE):
                block_id = blocks[local_index(lx, ly, lz)]
                if not VISIBLE_IDS[block_id]:
                    continue
                local = (lx, ly, lz)
                position = (ox + lx, oy + ly, oz + lz)
                highlighted = highlight is not None and position == highlight
                block: BlockType | None = None

                for face_index, (dx, dy, dz) in enumerate(FACE_NEIGHBORS):
                    axis = face_index // 2
                    edge = last if face_index % 2 == 0 else 0
                    if local[axis] == edge:
                        border = borders.get(face_index)
                        if border is None:
                            continue
                        neighbor_id = border[border_index(face_index, lx, ly, lz)]
                    else:
                        neighbor_id = blocks[local_index(lx + dx, ly + dy, lz + dz)]

                    if OPAQUE_IDS[neighbor_id] or neighbor_id == block_id:
                        continue

                    if block is None:
                        block = BlockType(block_id)
                    instances.append(
                        FaceInstance(
                            position=(float(position[0]), float(position[1]), float(position[2])),
                            rotation=FACE_ROTATIONS[face_index],
                            face=face_index,
                            block=block,
                            atlas_offset=tuple(float(v) for v in atlas_offset_for_face(block, face_index)),
                            color_adjust=_face_color(face_index, highlighted),
                        )
                    )
    return instances


def mesh(chunk: Chunk, neighbor_borders: NeighborBorders, highlight: Vec3 | None = None) -> list[FaceInstance]:
    if chunk.blocks is None:
        return []
    return mesh_blocks(chunk.coord, chunk.blocks, neighbor_borders, highlight)

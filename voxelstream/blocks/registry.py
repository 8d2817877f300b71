from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from voxelstream.constants import FACE_BOTTOM, FACE_TOP


class BlockType(IntEnum):
    AIR = 0
    GRASS = 1
    DIRT = 2
    STONE = 3
    SAND = 4
    OAK_PLANK = 5
    GLASS = 6
    WATER = 7
    BEDROCK = 8
    # Returned for coordinates outside loaded chunks; never stored.
    UNLOADED = 255


@dataclass(frozen=True)
class BlockDefinition:
    name: str
    solid: bool
    transparent: bool
    color: tuple[float, float, float]
    atlas_top: tuple[int, int]
    atlas_bottom: tuple[int, int]
    atlas_side: tuple[int, int]
    breakable: bool = True
    placeable: bool = True


def _uniform(name: str, color: tuple[float, float, float], tile: tuple[int, int], **kwargs) -> BlockDefinition:
    return BlockDefinition(
        name=name,
        color=color,
        atlas_top=tile,
        atlas_bottom=tile,
        atlas_side=tile,
        **kwargs,
    )


BLOCKS: dict[BlockType, BlockDefinition] = {
    BlockType.AIR: _uniform(
        "air", (0.0, 0.0, 0.0), (0, 0), solid=False, transparent=True, breakable=False, placeable=False
    ),
    BlockType.GRASS: BlockDefinition(
        name="grass",
        solid=True,
        transparent=False,
        color=(0.20, 0.66, 0.20),
        atlas_top=(1, 0),
        atlas_bottom=(2, 0),
        atlas_side=(0, 0),
    ),
    BlockType.DIRT: _uniform("dirt", (0.50, 0.35, 0.20), (2, 0), solid=True, transparent=False),
    BlockType.STONE: _uniform("stone", (0.50, 0.50, 0.52), (3, 0), solid=True, transparent=False),
    BlockType.SAND: _uniform("sand", (0.82, 0.76, 0.52), (4, 0), solid=True, transparent=False),
    BlockType.OAK_PLANK: _uniform("oak_plank", (0.66, 0.50, 0.30), (5, 0), solid=True, transparent=False),
    BlockType.GLASS: _uniform("glass", (0.80, 0.90, 0.95), (6, 0), solid=True, transparent=True),
    BlockType.WATER: _uniform("water", (0.18, 0.40, 0.74), (7, 0), solid=False, transparent=True),
    BlockType.BEDROCK: _uniform(
        "bedrock", (0.20, 0.20, 0.22), (0, 1), solid=True, transparent=False, breakable=False, placeable=False
    ),
    BlockType.UNLOADED: _uniform(
        "unloaded", (1.0, 0.0, 1.0), (0, 0), solid=True, transparent=False, breakable=False, placeable=False
    ),
}

SOLID_BLOCKS = frozenset(block for block, definition in BLOCKS.items() if definition.solid)
PLACEABLE_BLOCKS = tuple(block for block, definition in BLOCKS.items() if definition.placeable)

# Indexed by raw block id for the mesher's inner loop.
_OPAQUE_IDS = bytearray(256)
_VISIBLE_IDS = bytearray(256)
for _block, _definition in BLOCKS.items():
    if _block is BlockType.UNLOADED:
        continue
    _OPAQUE_IDS[_block] = int(not _definition.transparent)
    _VISIBLE_IDS[_block] = int(_block is not BlockType.AIR)
OPAQUE_IDS = bytes(_OPAQUE_IDS)
VISIBLE_IDS = bytes(_VISIBLE_IDS)


def get_block_definition(block: BlockType) -> BlockDefinition:
    return BLOCKS[block]


def get_block_color(block: BlockType) -> tuple[float, float, float]:
    return BLOCKS[block].color


def is_solid(block: BlockType) -> bool:
    return block in SOLID_BLOCKS


def atlas_offset_for_face(block: BlockType, face_index: int) -> tuple[int, int]:
    definition = BLOCKS[block]
    if face_index == FACE_TOP:
        return definition.atlas_top
    if face_index == FACE_BOTTOM:
        return definition.atlas_bottom
    return definition.atlas_side

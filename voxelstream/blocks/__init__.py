from voxelstream.blocks.registry import (
    BLOCKS,
    PLACEABLE_BLOCKS,
    SOLID_BLOCKS,
    BlockDefinition,
    BlockType,
    atlas_offset_for_face,
    get_block_color,
    get_block_definition,
    is_solid,
)

__all__ = [
    "BLOCKS",
    "BlockDefinition",
    "BlockType",
    "PLACEABLE_BLOCKS",
    "SOLID_BLOCKS",
    "atlas_offset_for_face",
    "get_block_color",
    "get_block_definition",
    "is_solid",
]

import logging
from pathlib import Path

import pyglet
from pyglet import gl

from voxelstream.blocks import BLOCKS, BlockType

logger = logging.getLogger(__name__)

ATLAS_COLUMNS = 8
ATLAS_ROWS = 2
ATLAS_TILE_SIZE = 16

_SKIPPED = (BlockType.AIR, BlockType.UNLOADED)


def tile_uv(offset: tuple[float, float]) -> tuple[float, float, float, float]:
    """(u0, v0, u1, v1) of an atlas tile; row 0 is the top row of the image."""
    col, row = offset
    u0 = col / ATLAS_COLUMNS
    u1 = (col + 1) / ATLAS_COLUMNS
    v1 = 1.0 - row / ATLAS_ROWS
    v0 = 1.0 - (row + 1) / ATLAS_ROWS
    return u0, v0, u1, v1


def _tile_colors() -> dict[tuple[int, int], tuple[float, float, float]]:
    colors: dict[tuple[int, int], tuple[float, float, float]] = {}
    for block, definition in BLOCKS.items():
        if block in _SKIPPED:
            continue
        colors[definition.atlas_side] = definition.color
        colors[definition.atlas_top] = definition.color
    for block, definition in BLOCKS.items():
        if block in _SKIPPED:
            continue
        colors.setdefault(definition.atlas_bottom, definition.color)
    return colors


def build_color_atlas(tile_size: int = ATLAS_TILE_SIZE) -> pyglet.image.ImageData:
    """Flat-colour atlas with a faint per-pixel pattern, used when no image is supplied."""
    colors = _tile_colors()
    width = ATLAS_COLUMNS * tile_size
    height = ATLAS_ROWS * tile_size
    data = bytearray(width * height * 4)

    for py in range(height):
        row = ATLAS_ROWS - 1 - py // tile_size
        for px in range(width):
            col = px // tile_size
            color = colors.get((col, row))
            i = (py * width + px) * 4
            if color is None:
                data[i : i + 4] = b"\xff\x00\xff\xff"
                continue
            shade = 0.9 + 0.1 * (((px * 7) ^ (py * 13)) % 3) / 2.0
            data[i] = max(0, min(255, int(color[0] * shade * 255)))
            data[i + 1] = max(0, min(255, int(color[1] * shade * 255)))
            data[i + 2] = max(0, min(255, int(color[2] * shade * 255)))
            data[i + 3] = 255
    return pyglet.image.ImageData(width, height, "RGBA", bytes(data))


def load_atlas_texture(path: str | Path | None = None) -> pyglet.image.Texture:
    if path is None:
        image = build_color_atlas()
    else:
        image = pyglet.image.load(str(path))
        logger.info("loaded block atlas %s (%dx%d)", path, image.width, image.height)
    texture = image.get_texture()
    gl.glBindTexture(texture.target, texture.id)
    gl.glTexParameteri(texture.target, gl.GL_TEXTURE_MIN_FILTER, gl.GL_NEAREST)
    gl.glTexParameteri(texture.target, gl.GL_TEXTURE_MAG_FILTER, gl.GL_NEAREST)
    gl.glTexParameteri(texture.target, gl.GL_TEXTURE_WRAP_S, gl.GL_CLAMP_TO_EDGE)
    gl.glTexParameteri(texture.target, gl.GL_TEXTURE_WRAP_T, gl.GL_CLAMP_TO_EDGE)
    return texture

import math
import random
from functools import lru_cache
from typing import Protocol

from voxelstream.blocks import BlockType
from voxelstream.constants import CHUNK_SIZE, CHUNK_VOLUME, WORLD_HEIGHT, ChunkCoord
from voxelstream.world.chunk import local_index

# Gradient directions for 2D lattice noise, indexed by the low three hash bits.
GRADIENTS_2D = ((1, 1), (-1, 1), (1, -1), (-1, -1), (1, 0), (-1, 0), (0, 1), (0, -1))


def smoothstep5(t: float) -> float:
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


class PerlinNoise2D:
    """Classic gradient noise over a seeded, doubled 256-entry permutation."""

    def __init__(self, seed: int) -> None:
        table = list(range(256))
        random.Random(seed).shuffle(table)
        self.table = tuple(table * 2)

    def _corner(self, ix: int, iy: int, dx: float, dy: float) -> float:
        gx, gy = GRADIENTS_2D[self.table[self.table[ix] + iy] & 7]
        return gx * dx + gy * dy

    def sample(self, x: float, y: float) -> float:
        fx, fy = math.floor(x), math.floor(y)
        dx, dy = x - fx, y - fy
        ix, iy = int(fx) & 255, int(fy) & 255
        sx, sy = smoothstep5(dx), smoothstep5(dy)

        bottom = self._corner(ix, iy, dx, dy)
        bottom += sx * (self._corner(ix + 1, iy, dx - 1.0, dy) - bottom)
        top = self._corner(ix, iy + 1, dx, dy - 1.0)
        top += sx * (self._corner(ix + 1, iy + 1, dx - 1.0, dy - 1.0) - top)
        return bottom + sy * (top - bottom)

    def fractal(self, x: float, y: float, octaves: int, persistence: float, lacunarity: float) -> float:
        """Sum of ``octaves`` layers, divided by the total weight."""
        total = weight = 0.0
        amplitude = 1.0
        for _ in range(octaves):
            total += amplitude * self.sample(x, y)
            weight += amplitude
            x *= lacunarity
            y *= lacunarity
            amplitude *= persistence
        return total / weight if weight else 0.0


class ChunkGenerator(Protocol):
    def height_at(self, x: int, z: int) -> int: ...

    def generate(self, chunk: ChunkCoord) -> bytearray: ...


class TerrainGenerator:
    """Seeded Perlin height-field terrain.

    ``generate`` depends only on the seed and the chunk coordinate, so an evicted
    chunk regenerates identically. The permutation table is read-only after
    construction and the column cache is thread safe, so chunks can be built on
    worker threads.
    """

    COLUMN_CACHE_ENTRIES = 512

    def __init__(
        self,
        seed: int,
        min_elevation: int = 8,
        max_elevation: int = 48,
        sea_level: int = 20,
        dirt_depth: int = 3,
        scale: float = 64.0,
        octaves: int = 4,
        persistence: float = 0.5,
        lacunarity: float = 2.0,
        redistribution: float = 1.4,
    ) -> None:
        if not 0 < min_elevation < max_elevation < WORLD_HEIGHT:
            raise ValueError(f"elevations must satisfy 0 < min < max < {WORLD_HEIGHT}")
        self.seed = seed
        self.min_elevation = min_elevation
        self.max_elevation = max_elevation
        self.sea_level = sea_level
        self.dirt_depth = dirt_depth
        self.scale = scale
        self.octaves = octaves
        self.persistence = persistence
        self.lacunarity = lacunarity
        self.redistribution = redistribution

        self.noise = PerlinNoise2D(seed)
        self._column_heights = lru_cache(maxsize=self.COLUMN_CACHE_ENTRIES)(self._compute_column_heights)

    def elevation_at(self, x: int, z: int) -> float:
        """Octave noise normalised to [0, 1] and redistributed."""
        value = self.noise.fractal(x / self.scale, z / self.scale, self.octaves, self.persistence, self.lacunarity)
        return min(1.0, max(0.0, 0.5 * (value + 1.0))) ** self.redistribution

    def height_at(self, x: int, z: int) -> int:
        span = self.max_elevation - self.min_elevation
        return self.min_elevation + min(span - 1, int(self.elevation_at(x, z) * span))

    def _compute_column_heights(self, cx: int, cz: int) -> tuple[int, ...]:
        x0 = cx * CHUNK_SIZE
        z0 = cz * CHUNK_SIZE
        return tuple(self.height_at(x0 + lx, z0 + lz) for lz in range(CHUNK_SIZE) for lx in range(CHUNK_SIZE))

    def block_at(self, y: int, surface: int) -> BlockType:
        if y == 0:
            return BlockType.BEDROCK
        if y > surface:
            return BlockType.WATER if y <= self.sea_level else BlockType.AIR
        beach = surface <= self.sea_level + 1
        if y == surface:
            return BlockType.SAND if beach else BlockType.GRASS
        if y > surface - self.dirt_depth:
            return BlockType.SAND if beach else BlockType.DIRT
        return BlockType.STONE

    def generate(self, chunk: ChunkCoord) -> bytearray:
        cx, cy, cz = chunk
        blocks = bytearray(CHUNK_VOLUME)
        y0 = cy * CHUNK_SIZE
        if y0 >= WORLD_HEIGHT or y0 + CHUNK_SIZE <= 0:
            return blocks

        heights = self._column_heights(cx, cz)
        for lz in range(CHUNK_SIZE):
            for lx in range(CHUNK_SIZE):
                surface = heights[lz * CHUNK_SIZE + lx]
                top = max(surface, self.sea_level)
                if top < y0:
                    continue
                for ly in range(min(CHUNK_SIZE, top - y0 + 1)):
                    block = self.block_at(y0 + ly, surface)
                    if block is not BlockType.AIR:
                        blocks[local_index(lx, ly, lz)] = block
        return blocks


class FlatTerrainGenerator:
    """Flat world: bedrock, stone, three layers of dirt and a grass surface."""

    def __init__(self, height: int = 16) -> None:
        if not 0 < height < WORLD_HEIGHT:
            raise ValueError(f"height must be in (0, {WORLD_HEIGHT})")
        self.height = height

    def height_at(self, x: int, z: int) -> int:
        return self.height

    def block_at(self, y: int) -> BlockType:
        if y == 0:
            return BlockType.BEDROCK
        if y > self.height:
            return BlockType.AIR
        if y == self.height:
            return BlockType.GRASS
        if y > self.height - 3:
            return BlockType.DIRT
        return BlockType.STONE

    def generate(self, chunk: ChunkCoord) -> bytearray:
        _, cy, _ = chunk
        blocks = bytearray(CHUNK_VOLUME)
        y0 = cy * CHUNK_SIZE
        for ly in range(CHUNK_SIZE):
            y = y0 + ly
            if y < 0 or y > self.height:
                continue
            block = self.block_at(y)
            start = local_index(0, ly, 0)
            blocks[start : start + CHUNK_SIZE * CHUNK_SIZE] = bytes((block,)) * (CHUNK_SIZE * CHUNK_SIZE)
        return blocks

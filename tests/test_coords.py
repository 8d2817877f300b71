import pytest

from voxelstream.blocks import BlockType
from voxelstream.constants import CHUNK_SIZE, CHUNK_VOLUME, FACE_NEG_X, FACE_POS_X, FACE_TOP
from voxelstream.world.chunk import (
    Chunk,
    ChunkState,
    border_index,
    chunk_coord_of,
    local_index,
    to_chunk_local,
    to_world,
)


@pytest.mark.parametrize(
    "position",
    [(0, 0, 0), (15, 15, 15), (16, 0, -1), (-1, 5, -16), (-17, 63, 33), (-1000, 7, 999)],
)
def test_chunk_local_round_trip(position):
    chunk, local = to_chunk_local(position)
    assert all(0 <= c < CHUNK_SIZE for c in local)
    assert to_world(chunk, local) == position
    assert chunk_coord_of(position) == chunk


def test_negative_coordinates_floor():
    assert chunk_coord_of((-1, 0, -17)) == (-1, 0, -2)
    assert to_chunk_local((-1, 0, -17)) == ((-1, 0, -2), (15, 0, 15))


def test_local_index_covers_volume_once():
    indices = {local_index(x, y, z) for x in range(CHUNK_SIZE) for y in range(CHUNK_SIZE) for z in range(CHUNK_SIZE)}
    assert indices == set(range(CHUNK_VOLUME))


def test_chunk_populate_and_edit():
    chunk = Chunk((0, 0, 0), version=3)
    assert chunk.get_local(0, 0, 0) is BlockType.UNLOADED
    assert not chunk.set_local(0, 0, 0, BlockType.STONE)

    chunk.populate(bytearray(CHUNK_VOLUME))
    assert chunk.state is ChunkState.GENERATED
    assert chunk.set_local(1, 2, 3, BlockType.STONE)
    assert not chunk.set_local(1, 2, 3, BlockType.STONE)
    assert chunk.revision == 1
    assert chunk.get_local(1, 2, 3) is BlockType.STONE

    with pytest.raises(ValueError):
        Chunk((0, 0, 0)).populate(bytearray(10))


def test_border_layer_picks_edge_blocks():
    chunk = Chunk((0, 0, 0))
    chunk.populate(bytearray(CHUNK_VOLUME))
    chunk.set_local(CHUNK_SIZE - 1, 4, 9, BlockType.SAND)
    chunk.set_local(0, 4, 9, BlockType.DIRT)
    chunk.set_local(2, CHUNK_SIZE - 1, 5, BlockType.GLASS)

    assert chunk.border_layer(FACE_POS_X)[border_index(FACE_POS_X, 0, 4, 9)] == BlockType.SAND
    assert chunk.border_layer(FACE_NEG_X)[border_index(FACE_NEG_X, 0, 4, 9)] == BlockType.DIRT
    assert chunk.border_layer(FACE_TOP)[border_index(FACE_TOP, 2, 0, 5)] == BlockType.GLASS

from conftest import FLAT_HEIGHT, populated_grid

from voxelstream.blocks import BlockType
from voxelstream.constants import CHUNK_AREA, FACE_BOTTOM, FACE_NEG_X, FACE_TOP, WORLD_HEIGHT
from voxelstream.world.chunk import Chunk, ChunkState


def test_unloaded_and_out_of_range_queries(flat_generator):
    grid = populated_grid(flat_generator, radius=0)
    assert grid.get_block((100, 5, 100)) is BlockType.UNLOADED
    assert grid.get_block((0, -1, 0)) is BlockType.UNLOADED
    assert grid.get_block((0, WORLD_HEIGHT, 0)) is BlockType.AIR
    assert grid.get_block((0, FLAT_HEIGHT, 0)) is BlockType.GRASS
    assert grid.is_solid_at((100, 5, 100))


def test_ungenerated_chunk_reads_unloaded(flat_generator):
    grid = populated_grid(flat_generator, radius=0)
    grid.add_chunk(Chunk((1, 0, 0)))
    assert grid.get_block((16, 3, 0)) is BlockType.UNLOADED
    assert grid.set_block((16, 3, 0), BlockType.STONE) == set()


def test_interior_edit_dirties_only_owner(flat_generator):
    grid = populated_grid(flat_generator)
    owner = grid.chunk((0, 1, 0))
    before = owner.revision
    dirtied = grid.set_block((5, 20, 5), BlockType.OAK_PLANK)
    assert dirtied == {(0, 1, 0)}
    assert owner.state is ChunkState.MESH_DIRTY
    assert owner.revision == before + 1
    assert grid.get_block((5, 20, 5)) is BlockType.OAK_PLANK


def test_corner_edit_dirties_face_neighbours(flat_generator):
    grid = populated_grid(flat_generator)
    dirtied = grid.set_block((0, 16, 0), BlockType.AIR)
    assert dirtied == {(0, 1, 0), (-1, 1, 0), (0, 0, 0), (0, 1, -1)}
    for coord in dirtied:
        assert grid.chunk(coord).state is ChunkState.MESH_DIRTY
    assert grid.chunk((1, 1, 0)).state is ChunkState.GENERATED


def test_edit_outside_loaded_area_is_noop(flat_generator):
    grid = populated_grid(flat_generator, radius=0)
    assert grid.set_block((500, 10, 0), BlockType.STONE) == set()
    assert grid.set_block((0, WORLD_HEIGHT + 1, 0), BlockType.STONE) == set()
    assert grid.set_block((0, 5, 0), BlockType.UNLOADED) == set()


def test_repeated_edit_returns_empty_set(flat_generator):
    grid = populated_grid(flat_generator, radius=0)
    assert grid.set_block((3, 3, 3), BlockType.STONE) == set()


def test_neighbor_borders(flat_generator):
    grid = populated_grid(flat_generator, radius=0)
    borders = grid.neighbor_borders((0, 3, 0))
    assert borders[FACE_TOP] == bytes(CHUNK_AREA)
    assert borders[FACE_NEG_X] is None
    assert borders[FACE_BOTTOM] == bytes(CHUNK_AREA)

    borders = grid.neighbor_borders((0, 0, 0))
    assert borders[FACE_TOP] == bytes([BlockType.GRASS]) * CHUNK_AREA
    assert borders[FACE_BOTTOM] is None
    assert not grid.neighbors_generated((0, 0, 0))

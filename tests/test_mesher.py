from voxelstream.blocks import BlockType
from voxelstream.constants import (
    CHUNK_AREA,
    CHUNK_SIZE,
    CHUNK_VOLUME,
    FACE_NEG_X,
    FACE_NEG_Z,
    FACE_POS_X,
    FACE_TOP,
)
from voxelstream.world.chunk import Chunk, local_index
from voxelstream.world.mesher import (
    FACE_QUAD,
    FACE_ROTATIONS,
    HIGHLIGHT_BOOST,
    INSTANCE_FLOATS,
    mesh,
    mesh_blocks,
    pack_instances,
)

AIR_BORDERS = {face: bytes(CHUNK_AREA) for face in range(6)}
UNLOADED_BORDERS = {face: None for face in range(6)}


def blocks_with(*placements):
    blocks = bytearray(CHUNK_VOLUME)
    for (lx, ly, lz), block in placements:
        blocks[local_index(lx, ly, lz)] = block
    return blocks


def test_empty_chunk_has_no_faces():
    assert mesh_blocks((0, 0, 0), bytearray(CHUNK_VOLUME), AIR_BORDERS) == []


def test_isolated_block_emits_six_faces():
    instances = mesh_blocks((1, 0, -1), blocks_with(((4, 5, 6), BlockType.STONE)), AIR_BORDERS)
    assert sorted(i.face for i in instances) == list(range(6))
    for instance in instances:
        assert instance.position == (20.0, 5.0, -10.0)
        assert instance.rotation == FACE_ROTATIONS[instance.face]
        assert instance.block is BlockType.STONE
        assert instance.atlas_offset == (3.0, 0.0)


def test_adjacent_opaque_blocks_hide_shared_faces():
    blocks = blocks_with(((4, 5, 6), BlockType.STONE), ((5, 5, 6), BlockType.DIRT))
    instances = mesh_blocks((0, 0, 0), blocks, AIR_BORDERS)
    assert len(instances) == 10
    assert not any(i.position == (4.0, 5.0, 6.0) and i.face == FACE_POS_X for i in instances)
    assert not any(i.position == (5.0, 5.0, 6.0) and i.face == FACE_NEG_X for i in instances)


def test_transparent_neighbours():
    glass_pair = blocks_with(((4, 5, 6), BlockType.GLASS), ((5, 5, 6), BlockType.GLASS))
    assert len(mesh_blocks((0, 0, 0), glass_pair, AIR_BORDERS)) == 10

    glass_stone = blocks_with(((4, 5, 6), BlockType.GLASS), ((5, 5, 6), BlockType.STONE))
    instances = mesh_blocks((0, 0, 0), glass_stone, AIR_BORDERS)
    assert any(i.position == (5.0, 5.0, 6.0) and i.face == FACE_NEG_X for i in instances)
    assert not any(i.position == (4.0, 5.0, 6.0) and i.face == FACE_POS_X for i in instances)


def test_unloaded_borders_emit_nothing():
    instances = mesh_blocks((0, 0, 0), blocks_with(((0, 0, 0), BlockType.STONE)), UNLOADED_BORDERS)
    assert sorted(i.face for i in instances) == [FACE_POS_X, FACE_TOP, 4]


def test_border_blocks_cull_edge_faces():
    borders = dict(AIR_BORDERS)
    borders[FACE_NEG_Z] = bytes([BlockType.STONE]) * CHUNK_AREA
    instances = mesh_blocks((0, 0, 0), blocks_with(((3, 3, 0), BlockType.SAND)), borders)
    assert len(instances) == 5
    assert FACE_NEG_Z not in {i.face for i in instances}


def test_full_chunk_surrounded_by_air():
    blocks = bytearray([BlockType.STONE]) * CHUNK_VOLUME
    instances = mesh_blocks((0, 0, 0), blocks, AIR_BORDERS)
    assert len(instances) == 6 * CHUNK_SIZE * CHUNK_SIZE


def test_grass_uses_per_face_atlas_tiles():
    instances = mesh_blocks((0, 0, 0), blocks_with(((1, 1, 1), BlockType.GRASS)), AIR_BORDERS)
    offsets = {i.face: i.atlas_offset for i in instances}
    assert offsets[FACE_TOP] == (1.0, 0.0)
    assert offsets[FACE_POS_X] == (0.0, 0.0)
    assert offsets[3] == (2.0, 0.0)


def test_highlight_brightens_only_target():
    blocks = blocks_with(((1, 1, 1), BlockType.STONE), ((8, 1, 1), BlockType.STONE))
    instances = mesh_blocks((0, 0, 0), blocks, AIR_BORDERS, highlight=(1, 1, 1))
    top = {i.position: i.color_adjust for i in instances if i.face == FACE_TOP}
    assert top[(1.0, 1.0, 1.0)][0] == HIGHLIGHT_BOOST
    assert top[(8.0, 1.0, 1.0)][0] == 1.0


def test_mesh_reads_chunk_data():
    chunk = Chunk((0, 0, 0))
    assert mesh(chunk, AIR_BORDERS) == []
    chunk.populate(blocks_with(((2, 2, 2), BlockType.OAK_PLANK)))
    assert len(mesh(chunk, AIR_BORDERS)) == 6


def test_pack_instances_layout():
    instances = mesh_blocks((0, 0, 0), blocks_with(((2, 3, 4), BlockType.STONE)), AIR_BORDERS)
    packed = pack_instances(instances)
    assert len(packed) == INSTANCE_FLOATS * len(instances)
    first = instances[0]
    assert list(packed[:4]) == [2.0, 3.0, 4.0, 1.0]
    assert packed[8:10].tolist() == list(first.atlas_offset)
    assert len(FACE_QUAD) == 12

import pytest
from conftest import FLAT_HEIGHT, populated_grid

from voxelstream.blocks import BlockType
from voxelstream.config import PhysicsConfig
from voxelstream.constants import CHUNK_SIZE, MAX_JUMP_HEIGHT
from voxelstream.entities.player import PlayerBody
from voxelstream.physics.aabb import AABB
from voxelstream.physics.engine import PhysicsEngine

DT = 1.0 / 60.0
FLOOR = float(FLAT_HEIGHT + 1)


@pytest.fixture
def grid(flat_generator):
    return populated_grid(flat_generator)


@pytest.fixture
def physics(grid):
    return PhysicsEngine(grid, PhysicsConfig())


def run(physics, body, ticks, wish=(0.0, 0.0), jump=False):
    for _ in range(ticks):
        physics.step(body, wish, jump, DT)


def test_falling_body_lands_on_surface(physics):
    body = PlayerBody(position=(4.5, FLOOR + 3.0, 4.5))
    run(physics, body, 120)
    assert body.position[1] == pytest.approx(FLOOR)
    assert body.grounded
    assert body.velocity[1] == 0.0
    assert not physics.collides(body.aabb())


def test_resting_body_stays_grounded(physics):
    body = PlayerBody(position=(4.5, FLOOR, 4.5))
    run(physics, body, 30)
    assert body.position[1] == pytest.approx(FLOOR)
    assert body.grounded


def test_jump_reaches_expected_height_and_only_from_ground(physics):
    body = PlayerBody(position=(4.5, FLOOR, 4.5))
    run(physics, body, 2)
    physics.step(body, (0.0, 0.0), True, DT)
    assert not body.grounded
    peak = body.position[1]
    for _ in range(60):
        physics.step(body, (0.0, 0.0), True if body.velocity[1] < 0 and not body.grounded else False, DT)
        peak = max(peak, body.position[1])
    assert 0.9 * MAX_JUMP_HEIGHT < peak - FLOOR <= MAX_JUMP_HEIGHT + 1e-6
    run(physics, body, 60)
    assert body.position[1] == pytest.approx(FLOOR)


def test_air_jump_is_ignored(physics):
    body = PlayerBody(position=(4.5, FLOOR + 2.0, 4.5))
    physics.step(body, (0.0, 0.0), True, DT)
    assert body.velocity[1] < 0.0


def test_walls_stop_horizontal_movement(physics, grid):
    for y in range(FLAT_HEIGHT + 1, FLAT_HEIGHT + 4):
        grid.set_block((7, y, 4), BlockType.STONE)
    body = PlayerBody(position=(4.5, FLOOR, 4.5))
    run(physics, body, 120, wish=(physics.config.walk_speed, 0.0))
    assert body.position[0] == pytest.approx(7.0 - body.half_width)
    assert body.velocity[0] == 0.0
    assert not physics.collides(body.aabb())


def test_horizontal_speed_is_capped(physics):
    body = PlayerBody(position=(4.5, FLOOR, 4.5))
    run(physics, body, 10, wish=(100.0, 0.0))
    assert body.velocity[0] <= physics.config.walk_speed + 1e-9


def test_unloaded_chunks_block_movement(physics):
    edge = 2 * CHUNK_SIZE
    body = PlayerBody(position=(edge - 1.0, FLOOR, 4.5))
    run(physics, body, 120, wish=(physics.config.walk_speed, 0.0))
    assert body.position[0] == pytest.approx(edge - body.half_width)


def test_ceiling_stops_upward_motion(physics, grid):
    grid.set_block((4, FLAT_HEIGHT + 3, 4), BlockType.STONE)
    body = PlayerBody(position=(4.5, FLOOR, 4.5))
    run(physics, body, 2)
    physics.step(body, (0.0, 0.0), True, DT)
    run(physics, body, 30)
    assert body.position[1] + body.height <= FLAT_HEIGHT + 3 + 1e-6
    assert body.position[1] == pytest.approx(FLOOR)


def test_lodged_body_is_pushed_out(physics):
    body = PlayerBody(position=(4.5, FLOOR - 0.3, 4.5))
    assert physics.overlapping_solids(body.aabb())
    physics.step(body, (0.0, 0.0), False, DT)
    assert body.position[1] == pytest.approx(FLOOR)
    assert not physics.overlapping_solids(body.aabb())


def test_collision_helpers(physics):
    assert physics.collides(AABB.of_voxel((0, FLAT_HEIGHT, 0)))
    assert not physics.collides(AABB.of_voxel((0, FLAT_HEIGHT + 1, 0)))
    assert physics.overlapping_solids(AABB.of_voxel((0, FLAT_HEIGHT + 1, 0))) == []
    outside = AABB.of_voxel((10 * CHUNK_SIZE, 5, 0))
    assert physics.collides(outside)
    assert physics.overlapping_solids(outside) == []


def test_invalid_physics_config():
    with pytest.raises(ValueError):
        PhysicsConfig(half_width=0.6)
    with pytest.raises(ValueError):
        PhysicsConfig(eye_height=3.0)


@pytest.mark.parametrize("dt", [1.0 / 240.0, 1.0 / 60.0, 0.25, 1.0])
@pytest.mark.parametrize("speed", [1.0, 6.0, 50.0, 400.0])
def test_walking_into_wall_never_penetrates(grid, speed, dt):
    for y in range(FLAT_HEIGHT + 1, FLAT_HEIGHT + 4):
        grid.set_block((7, y, 4), BlockType.STONE)
    config = PhysicsConfig(walk_speed=speed, ground_acceleration=speed * 1000.0, air_acceleration=speed * 1000.0)
    physics = PhysicsEngine(grid, config)
    body = PlayerBody(position=(4.5, FLOOR, 4.5))
    ticks = min(1000, int(4.0 / (speed * dt)) + 2)
    for _ in range(ticks):
        physics.step(body, (speed, 0.0), False, dt)
        assert not physics.overlapping_solids(body.aabb())
        assert body.position[0] <= 7.0 - body.half_width + 1e-9
    assert body.position[0] == pytest.approx(7.0 - body.half_width)
    assert body.position[1] == pytest.approx(FLOOR)

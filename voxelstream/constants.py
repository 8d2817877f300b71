import math

Vec3 = tuple[int, int, int]
ChunkCoord = tuple[int, int, int]

TICKS_PER_SECOND = 60
MAX_FRAME_TIME = 0.25

CHUNK_SIZE = 16
CHUNK_AREA = CHUNK_SIZE * CHUNK_SIZE
CHUNK_VOLUME = CHUNK_AREA * CHUNK_SIZE
WORLD_HEIGHT = 64
WORLD_LAYERS = WORLD_HEIGHT // CHUNK_SIZE

WALK_SPEED = 6.0
GROUND_ACCELERATION = 60.0
AIR_ACCELERATION = 20.0
GRAVITY = 20.0
MAX_JUMP_HEIGHT = 1.2
JUMP_SPEED = math.sqrt(2 * GRAVITY * MAX_JUMP_HEIGHT)
TERMINAL_VELOCITY = 50.0

PLAYER_HEIGHT = 1.8
PLAYER_HALF_WIDTH = 0.3
PLAYER_EYE_HEIGHT = 1.62
REACH_DISTANCE = 8.0

LOAD_RADIUS_CHUNKS = 4
EVICT_RADIUS_CHUNKS = 6
CHUNK_GENERATIONS_PER_TICK = 2
CHUNK_MESHES_PER_TICK = 2
MAX_LOADED_CHUNKS = 600
MAX_EVICTIONS_PER_TICK = 16
CHUNK_WORKERS = 2

# Face order shared by the mesher, the grid and the renderer.
FACE_NEIGHBORS = (
    (1, 0, 0),
    (-1, 0, 0),
    (0, 1, 0),
    (0, -1, 0),
    (0, 0, 1),
    (0, 0, -1),
)
FACE_POS_X, FACE_NEG_X, FACE_TOP, FACE_BOTTOM, FACE_POS_Z, FACE_NEG_Z = range(6)

import argparse
import logging

import pyglet

from voxelstream.config import WorldConfig
from voxelstream.constants import (
    CHUNK_GENERATIONS_PER_TICK,
    CHUNK_MESHES_PER_TICK,
    CHUNK_WORKERS,
    EVICT_RADIUS_CHUNKS,
    LOAD_RADIUS_CHUNKS,
    MAX_LOADED_CHUNKS,
)
from voxelstream.game.session import DEFAULT_SEED


def run(args: argparse.Namespace) -> None:
    from voxelstream.game.window import GameWindow
    from voxelstream.graphics.rendering import setup_gl

    world_config = WorldConfig(
        load_radius=args.load_radius,
        evict_radius=args.evict_radius,
        generation_budget=args.generation_budget,
        mesh_budget=args.mesh_budget,
        max_loaded_chunks=args.max_loaded_chunks,
        workers=args.workers,
    )
    window = GameWindow(seed=args.seed, world_config=world_config, flat=args.flat, atlas_path=args.atlas)
    setup_gl()
    pyglet.app.run()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="voxelstream: streaming voxel world")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED, help="Terrain seed (same seed => same world)")
    parser.add_argument("--flat", action="store_true", help="Generate a flat world instead of noise terrain")
    parser.add_argument("--atlas", default=None, help="Block atlas image (8x2 tiles); a colour atlas is built otherwise")
    parser.add_argument("--load-radius", type=int, default=LOAD_RADIUS_CHUNKS, help="Chunk columns kept loaded")
    parser.add_argument("--evict-radius", type=int, default=EVICT_RADIUS_CHUNKS, help="Chunk columns before eviction")
    parser.add_argument("--generation-budget", type=int, default=CHUNK_GENERATIONS_PER_TICK)
    parser.add_argument("--mesh-budget", type=int, default=CHUNK_MESHES_PER_TICK)
    parser.add_argument("--max-loaded-chunks", type=int, default=MAX_LOADED_CHUNKS)
    parser.add_argument("--workers", type=int, default=CHUNK_WORKERS, help="Worker threads; 0 runs everything inline")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


if __name__ == "__main__":
    args = build_parser().parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        run(args)
    except ValueError as exc:
        logging.getLogger("voxelstream").error("invalid configuration: %s", exc)
        raise SystemExit(2) from exc

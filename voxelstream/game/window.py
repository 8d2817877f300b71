import logging
from pathlib import Path

import pyglet
from pyglet.window import key, mouse

from voxelstream.config import PhysicsConfig, WorldConfig
from voxelstream.debug.profiler import RuntimeProfiler
from voxelstream.game.hud import WHITE, Hud, LoadingScreen
from voxelstream.game.loop import FixedTimestepLoop
from voxelstream.game.session import DEFAULT_SEED, GameSession
from voxelstream.gameplay.intent import ActionEvent, MovementIntent
from voxelstream.graphics.atlas import load_atlas_texture
from voxelstream.graphics.chunk_renderer import ChunkRenderer
from voxelstream.graphics.rendering import set_2d, set_3d

logger = logging.getLogger(__name__)

BUTTON_ACTIONS = {mouse.RIGHT: ActionEvent.PLACE_BLOCK, mouse.LEFT: ActionEvent.BREAK_BLOCK}


class GameWindow(pyglet.window.Window):
    MOUSE_SENSITIVITY = 0.15

    def __init__(
        self,
        seed: int = DEFAULT_SEED,
        world_config: WorldConfig | None = None,
        physics_config: PhysicsConfig | None = None,
        flat: bool = False,
        atlas_path: str | Path | None = None,
        profile_dir: str | Path = "profiling",
    ):
        super().__init__(width=1280, height=720, caption="voxelstream", resizable=True)
        self.exclusive = False
        self.profile_dir = profile_dir
        self.profiler = RuntimeProfiler(slow_frame_ms=25.0, max_slow_frames=500)
        self.renderer = ChunkRenderer(load_atlas_texture(atlas_path))
        self.session = GameSession(
            seed=seed,
            world_config=world_config,
            physics_config=physics_config,
            sink=self.renderer,
            profiler=self.profiler,
            flat=flat,
        )
        self.loop = FixedTimestepLoop()
        self._look_delta = [0.0, 0.0]
        self._jump_queued = False
        self._actions: list[ActionEvent] = []
        self._show_atlas = False

        self.keys = key.KeyStateHandler()
        self.push_handlers(self.keys)

        self.hud = Hud(self.session.hotbar, self.width, self.height)
        self.loading_screen = LoadingScreen(self.width, self.height)
        self._atlas_caption = pyglet.text.Label(
            "Atlas View (I to close)", x=10, y=self.height - 10, anchor_x="left", anchor_y="top", color=WHITE
        )
        pyglet.clock.schedule(self.update)

    def set_exclusive_mouse(self, exclusive: bool) -> None:
        super().set_exclusive_mouse(exclusive)
        self.exclusive = exclusive

    def _collect_intent(self) -> MovementIntent:
        held = self.keys
        intent = MovementIntent(
            forward=held[key.W] - held[key.S],
            strafe=held[key.D] - held[key.A],
            jump=self._jump_queued or held[key.SPACE],
            look_delta=(self._look_delta[0], self._look_delta[1]),
        )
        self._look_delta = [0.0, 0.0]
        self._jump_queued = False
        return intent

    def _fixed_update(self, dt: float) -> None:
        actions, self._actions = self._actions, []
        self.session.tick(self._collect_intent(), actions, dt)

    def update(self, dt: float) -> None:
        self.loop.next_frame(dt, self._fixed_update)
        x, y, z = self.session.body.position
        stats = self.session.chunks.diagnostics_snapshot()
        self.hud.status.text = (
            f"XYZ: ({x:.1f}, {y:.1f}, {z:.1f})  Held: {self.session.hotbar.active_block.name.lower()}  "
            f"Chunks: {stats['loaded_chunks']} ({stats['mesh_pending']} pending)"
        )

    def on_mouse_press(self, x, y, button, modifiers):
        if self.session.loading:
            return
        if not self.exclusive:
            self.set_exclusive_mouse(True)
        elif button in BUTTON_ACTIONS:
            self._actions.append(BUTTON_ACTIONS[button])

    def on_mouse_scroll(self, x, y, scroll_x, scroll_y):
        if self.session.loading or not scroll_y:
            return
        # Scrolling down advances the selection, scrolling up steps back.
        if scroll_y < 0:
            self._actions.append(ActionEvent.CYCLE_BLOCK)
        else:
            self.session.hotbar.cycle(-1)

    def on_mouse_motion(self, x, y, dx, dy):
        if self.exclusive and not self.session.loading:
            self._look_delta[0] += dx * self.MOUSE_SENSITIVITY
            self._look_delta[1] += dy * self.MOUSE_SENSITIVITY

    def on_key_press(self, symbol, modifiers):
        if symbol == key.I:
            self._show_atlas = not self._show_atlas
        elif self.session.loading:
            return
        elif symbol == key.SPACE:
            self._jump_queued = True
        elif symbol == key.ESCAPE:
            self.set_exclusive_mouse(False)
        elif key._1 <= symbol <= key._9 and symbol - key._1 < self.session.hotbar.size:
            self.session.hotbar.select(symbol - key._1)

    def on_resize(self, width, height):
        super().on_resize(width, height)
        self.hud.resize(width, height)
        self.loading_screen.resize(width, height)
        self._atlas_caption.y = height - 10

    def _draw_overlay(self) -> bool:
        if self._show_atlas:
            with self.profiler.section("draw.atlas"):
                set_2d(self)
                self.renderer.atlas_texture.blit(0, 0, 0, width=self.width, height=self.height)
                self._atlas_caption.draw()
            return True
        if self.session.loading:
            with self.profiler.section("draw.loading"):
                set_2d(self)
                self.loading_screen.draw()
            return True
        return False

    def on_draw(self):
        self.profiler.begin_frame("draw", {"loading": self.session.loading})
        try:
            with self.profiler.section("draw.clear"):
                self.clear()
            if self._draw_overlay():
                return
            with self.profiler.section("draw.world"):
                self.session.draw(set_3d(self))
            with self.profiler.section("draw.hud"):
                set_2d(self)
                self.hud.draw()
        finally:
            self.profiler.end_frame()

    def on_close(self):
        paths = self.profiler.write_report(self.profile_dir)
        if paths:
            logger.info("wrote tick report: %s", ", ".join(str(path) for path in paths))
        self.session.shutdown()
        self.renderer.delete()
        super().on_close()

import pyglet

from voxelstream.blocks import BlockType, get_block_color
from voxelstream.gameplay.hotbar import Hotbar

WHITE = (255, 255, 255, 255)
SLOT_IDLE = (120, 120, 120)
SLOT_ACTIVE = (255, 255, 255)
LOADING_BROWN = (92, 64, 40)


def to_rgb255(color: tuple[float, float, float]) -> tuple[int, int, int]:
    return tuple(max(0, min(255, round(channel * 255))) for channel in color)


class HotbarStrip:
    """Centred row of slot frames mirroring a :class:`Hotbar` selection."""

    SLOT = 48
    GAP = 6
    INSET = 10
    BOTTOM = 24

    def __init__(self, hotbar: Hotbar, batch: pyglet.graphics.Batch) -> None:
        self.hotbar = hotbar
        self.frames = []
        self.swatches = []
        for block in hotbar.slots:
            frame = pyglet.shapes.BorderedRectangle(
                0, self.BOTTOM, self.SLOT, self.SLOT, border=2,
                color=(30, 30, 30), border_color=SLOT_IDLE, batch=batch,
            )
            frame.opacity = 180
            swatch = pyglet.shapes.Rectangle(
                0, self.BOTTOM + self.INSET, self.SLOT - 2 * self.INSET, self.SLOT - 2 * self.INSET,
                color=to_rgb255(get_block_color(block)), batch=batch,
            )
            self.frames.append(frame)
            self.swatches.append(swatch)
        hotbar.push_handlers(self)
        self.highlight_selected()

    def layout(self, window_width: int) -> None:
        pitch = self.SLOT + self.GAP
        left = (window_width - (len(self.frames) * pitch - self.GAP)) // 2
        for index, (frame, swatch) in enumerate(zip(self.frames, self.swatches)):
            frame.x = left + index * pitch
            swatch.x = frame.x + self.INSET

    def highlight_selected(self) -> None:
        for index, frame in enumerate(self.frames):
            frame.border_color = SLOT_ACTIVE if index == self.hotbar.selected else SLOT_IDLE

    def on_active_block_changed(self, block: BlockType) -> None:
        self.highlight_selected()


class Hud:
    """Status text, crosshair and hotbar, all drawn from one batch."""

    CROSSHAIR = 8

    def __init__(self, hotbar: Hotbar, width: int, height: int) -> None:
        self.batch = pyglet.graphics.Batch()
        self.status = pyglet.text.Label(
            "", x=10, y=height - 10, anchor_x="left", anchor_y="top", color=WHITE, batch=self.batch
        )
        self.cross = (
            pyglet.shapes.Line(0, 0, 0, 0, batch=self.batch),
            pyglet.shapes.Line(0, 0, 0, 0, batch=self.batch),
        )
        self.hotbar_strip = HotbarStrip(hotbar, self.batch)
        self.resize(width, height)

    def resize(self, width: int, height: int) -> None:
        cx, cy, arm = width // 2, height // 2, self.CROSSHAIR
        horizontal, vertical = self.cross
        horizontal.x, horizontal.y, horizontal.x2, horizontal.y2 = cx - arm, cy, cx + arm, cy
        vertical.x, vertical.y, vertical.x2, vertical.y2 = cx, cy - arm, cx, cy + arm
        self.status.y = height - 10
        self.hotbar_strip.layout(width)

    def draw(self) -> None:
        self.batch.draw()


class LoadingScreen:
    def __init__(self, width: int, height: int) -> None:
        self.backdrop = pyglet.shapes.Rectangle(0, 0, width, height, color=LOADING_BROWN)
        self.caption = pyglet.text.Label(
            "Generating World", font_size=28, anchor_x="center", anchor_y="center", color=WHITE
        )
        self.resize(width, height)

    def resize(self, width: int, height: int) -> None:
        self.backdrop.width, self.backdrop.height = width, height
        self.caption.position = (width // 2, height // 2, 0)

    def draw(self) -> None:
        self.backdrop.draw()
        self.caption.draw()

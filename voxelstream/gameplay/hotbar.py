from collections.abc import Sequence

from pyglet.event import EventDispatcher

from voxelstream.blocks import PLACEABLE_BLOCKS, BlockType


class Hotbar(EventDispatcher):
    """The row of placeable blocks the player cycles through.

    Dispatches ``on_active_block_changed(block_type)`` whenever the selection
    moves to a different block.
    """

    def __init__(self, blocks: Sequence[BlockType] = PLACEABLE_BLOCKS) -> None:
        if not blocks:
            raise ValueError("hotbar needs at least one block")
        self.slots: tuple[BlockType, ...] = tuple(blocks)
        self.selected = 0

    @property
    def size(self) -> int:
        return len(self.slots)

    @property
    def active_block(self) -> BlockType:
        return self.slots[self.selected]

    def slot(self, index: int) -> BlockType | None:
        if index < 0 or index >= self.size:
            return None
        return self.slots[index]

    def select(self, index: int) -> None:
        index %= self.size
        previous = self.active_block
        self.selected = index
        if self.active_block is not previous:
            self.dispatch_event("on_active_block_changed", self.active_block)

    def cycle(self, step: int = 1) -> BlockType:
        self.select(self.selected + step)
        return self.active_block


Hotbar.register_event_type("on_active_block_changed")

import pytest

from voxelstream.blocks import PLACEABLE_BLOCKS, BlockType
from voxelstream.gameplay.hotbar import Hotbar


def test_cycle_wraps_and_notifies():
    hotbar = Hotbar([BlockType.STONE, BlockType.GLASS])
    changes = []
    hotbar.push_handlers(on_active_block_changed=changes.append)

    assert hotbar.cycle() is BlockType.GLASS
    assert hotbar.cycle() is BlockType.STONE
    assert hotbar.cycle(-1) is BlockType.GLASS
    assert changes == [BlockType.GLASS, BlockType.STONE, BlockType.GLASS]


def test_selecting_current_slot_is_silent():
    hotbar = Hotbar()
    changes = []
    hotbar.push_handlers(on_active_block_changed=changes.append)
    hotbar.select(0)
    assert changes == []
    hotbar.select(2)
    assert changes == [PLACEABLE_BLOCKS[2]]


def test_default_slots_are_placeable():
    hotbar = Hotbar()
    assert hotbar.slots == PLACEABLE_BLOCKS
    assert BlockType.BEDROCK not in hotbar.slots
    assert BlockType.AIR not in hotbar.slots
    assert hotbar.slot(hotbar.size) is None


def test_empty_hotbar_rejected():
    with pytest.raises(ValueError):
        Hotbar([])

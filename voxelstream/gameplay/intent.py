from dataclasses import dataclass
from enum import Enum


def _clamp_axis(value: float) -> float:
    return max(-1.0, min(1.0, float(value)))


@dataclass(frozen=True)
class MovementIntent:
    """Player input for one tick.

    ``forward`` and ``strafe`` are clamped to [-1, 1]; positive strafe is to the
    right. ``look_delta`` is (yaw, pitch) in degrees.
    """

    forward: float = 0.0
    strafe: float = 0.0
    jump: bool = False
    look_delta: tuple[float, float] = (0.0, 0.0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "forward", _clamp_axis(self.forward))
        object.__setattr__(self, "strafe", _clamp_axis(self.strafe))


IDLE = MovementIntent()


class ActionEvent(Enum):
    PLACE_BLOCK = "place_block"
    BREAK_BLOCK = "break_block"
    CYCLE_BLOCK = "cycle_block"

from collections.abc import Callable

from voxelstream.constants import MAX_FRAME_TIME, TICKS_PER_SECOND


class FixedTimestepLoop:
    """Runs simulation updates at a fixed rate regardless of the frame rate.

    Elapsed frame time is clamped to ``max_frame_time`` so a long stall runs a
    bounded number of catch-up updates instead of spiralling.
    """

    def __init__(self, updates_per_second: int = TICKS_PER_SECOND, max_frame_time: float = MAX_FRAME_TIME) -> None:
        if updates_per_second <= 0:
            raise ValueError("updates_per_second must be positive")
        if max_frame_time <= 0:
            raise ValueError("max_frame_time must be positive")
        self.updates_per_second = updates_per_second
        self.max_frame_time = max_frame_time
        self.fixed_time_step = 1.0 / updates_per_second
        self.number_of_updates = 0
        self.number_of_renders = 0
        self.last_frame_time = 0.0
        self.running_time = 0.0
        self.accumulated_time = 0.0
        self.blending_factor = 0.0

    def set_updates_per_second(self, updates_per_second: int) -> None:
        self.updates_per_second = updates_per_second
        self.fixed_time_step = 1.0 / updates_per_second

    def next_frame(
        self,
        elapsed: float,
        update: Callable[[float], None],
        render: Callable[[float], None] | None = None,
    ) -> int:
        """Feed ``elapsed`` seconds of wall time; returns the number of updates run.

        ``update`` receives the fixed step, ``render`` the blending factor.
        """
        elapsed = min(max(elapsed, 0.0), self.max_frame_time)
        self.last_frame_time = elapsed
        self.running_time += elapsed
        self.accumulated_time += elapsed

        updates = 0
        while self.accumulated_time >= self.fixed_time_step:
            update(self.fixed_time_step)
            self.accumulated_time -= self.fixed_time_step
            self.number_of_updates += 1
            updates += 1

        self.blending_factor = self.accumulated_time / self.fixed_time_step

        if render is not None:
            render(self.blending_factor)
            self.number_of_renders += 1
        return updates

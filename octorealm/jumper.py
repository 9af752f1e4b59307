"""Jump height of the local player over time."""

from __future__ import annotations

from dataclasses import dataclass, field

from octorealm.components import Timer, TimerMode

JUMP_DURATION = 1.05
GRAVITY = 9.8
JUMP_SPEED = 10.0


def _jump_timer() -> Timer:
    # A fresh jumper starts mid-jump at height zero.
    return Timer(JUMP_DURATION, TimerMode.ONCE)


@dataclass
class Jumper:
    """A unit that can jump; the timer tracks the current jump."""

    timer: Timer = field(default_factory=_jump_timer)

    def get_y(self) -> float:
        """Height above the ground right now."""
        if self.timer.finished:
            return 0.0
        delta = self.timer.elapsed
        height = -delta * delta * GRAVITY + JUMP_SPEED * delta
        return max(height, 0.0)

    def jump(self) -> bool:
        """Start a new jump if the last one has landed; return whether it started."""
        if not self.timer.finished:
            return False
        self.timer.reset()
        return True
"""Game phases and the timer that keeps spawning enemies while a round is played."""

from __future__ import annotations

import enum
import random
from typing import List, Optional

from octorealm.components import Timer, TimerMode, Transform, Vec3
from octorealm.events import NPC, NetEntId, NpcUnit, SpawnUnit, UnitData

SPAWN_INTERVAL = 0.1
"""Seconds between enemy spawns."""
SPAWN_RANGE = 25.0
"""Enemies appear within this distance of the origin on both axes."""


class GameManagerState(enum.Enum):
    WARMUP = "warmup"
    PLAYING = "playing"
    NOT_PLAYING = "not_playing"


class Spawner:
    """Spawns a penguin every interval while the game is being played."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        interval: float = SPAWN_INTERVAL,
        state: GameManagerState = GameManagerState.WARMUP,
    ) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.timer = Timer(interval, TimerMode.REPEATING)
        self.state = state

    def tick(self, delta: float) -> List[SpawnUnit]:
        """Advance by ``delta`` seconds; return the spawns that are due."""
        if self.state is not GameManagerState.PLAYING:
            return []
        self.timer.tick(delta)
        return [self._spawn() for _ in range(self.timer.times_finished_this_tick)]

    def _spawn(self) -> SpawnUnit:
        enemy = NPC.PENGUIN
        location = Vec3(
            self._rng.uniform(-SPAWN_RANGE, SPAWN_RANGE),
            0.0,
            self._rng.uniform(-SPAWN_RANGE, SPAWN_RANGE),
        )
        return SpawnUnit(
            UnitData(
                unit=NpcUnit(enemy),
                ent_id=NetEntId(self._rng.getrandbits(64)),
                health=enemy.base_health(),
                transform=Transform.from_translation(location),
            )
        )
"""The game server: receives client events, runs the simulation and sends the results."""

from __future__ import annotations

import argparse
import logging
import random
import sys
import threading
import time
from pathlib import Path
from typing import Any, Hashable, List, Optional, Sequence, Tuple, Union

from octorealm.chat import SAVE_STATE_PATH, ChatSystem
from octorealm.components import Timer, TimerMode
from octorealm.config import Config, ConfigError
from octorealm.events import (
    Aoe,
    AttackIntent,
    Buff,
    ConnectRequest,
    Heartbeat,
    Melee,
    Move2d,
    SendChat,
    SetTransform,
    Shoot,
    ShootTargeted,
    StandStill,
    Teleport,
)
from octorealm.npc import ai_tick, apply_movement, send_npc_updates, spawn_unit
from octorealm.spawner import Spawner
from octorealm.spells import SpellSystem
from octorealm.wire import EventQueue, NetNode, NetworkConnectionTarget, WireError
from octorealm.world import HEARTBEAT_MILLIS, World

logger = logging.getLogger(__name__)

NPC_UPDATE_INTERVAL = 0.05
"""Seconds between two broadcasts of NPC movement."""
FRAME_TIME = 1.0 / 60.0
DEFAULT_TARGET = NetworkConnectionTarget("127.0.0.1", 25565)

_CAST_TYPES = (Teleport, Shoot, ShootTargeted, Melee, Aoe, Buff)
_MOVEMENT_TYPES = (StandStill, Move2d, SetTransform, AttackIntent)


class GameServer:
    """Owns the world and every system that acts on it."""

    def __init__(
        self,
        target: NetworkConnectionTarget = DEFAULT_TARGET,
        rng: Optional[random.Random] = None,
        save_path: Union[str, Path] = SAVE_STATE_PATH,
    ) -> None:
        self.target = target
        self._rng = rng if rng is not None else random.Random()
        self.world = World(self._rng)
        self.spells = SpellSystem(self.world)
        self.spawner = Spawner(self._rng)
        self.chat = ChatSystem(self.world, self.spells, self.spawner, save_path, self._rng)
        self.queue = EventQueue()
        self._heartbeat_timer = Timer(HEARTBEAT_MILLIS / 1000.0, TimerMode.REPEATING)
        self._npc_update_timer = Timer(NPC_UPDATE_INTERVAL, TimerMode.REPEATING)
        self._stop = threading.Event()

    def handle_event(self, endpoint: Hashable, event: Any) -> Any:
        """Dispatch one event received from ``endpoint``."""
        if isinstance(event, ConnectRequest):
            return self.world.handle_connect(endpoint, event)
        if isinstance(event, Heartbeat):
            return self.world.handle_heartbeat(endpoint)
        if isinstance(event, SendChat):
            return self.chat.handle_chat(endpoint, event.text)
        if isinstance(event, _CAST_TYPES):
            return self.spells.try_cast(endpoint, event)
        if isinstance(event, _MOVEMENT_TYPES):
            return self.world.handle_movement(endpoint, event)
        raise TypeError(f"not an event for the server: {event!r}")

    def step(self, delta: float) -> List[Tuple[Hashable, Any]]:
        """Advance the game by ``delta`` seconds; return the messages to send."""
        for spawn in self.spawner.tick(delta):
            spawn_unit(self.world, spawn)
        for attack in ai_tick(self.world, delta):
            self.spells.do_cast(attack)
        apply_movement(self.world, delta)
        self.spells.tick(delta)

        if self._npc_update_timer.tick(delta).times_finished_this_tick:
            send_npc_updates(self.world)
        if self._heartbeat_timer.tick(delta).times_finished_this_tick:
            for ent_id in self.world.check_heartbeats():
                self.world.disconnect(ent_id)
        return self.world.take_outbox()

    def stop(self) -> None:
        """Ask a running server to stop after the current frame."""
        self._stop.set()

    def run(self) -> None:
        """Listen on the target address and run frames until stopped."""
        self._stop.clear()
        with NetNode.listen(self.target, self.queue) as node:
            last = time.monotonic()
            while not self._stop.is_set():
                for item in self.queue.drain():
                    try:
                        self.handle_event(item.endpoint, item.event)
                    except (TypeError, ValueError, OSError) as exc:
                        logger.warning("Could not handle %r from %s: %s", item.event, item.endpoint, exc)
                now = time.monotonic()
                delta, last = now - last, now
                for endpoint, event in self.step(delta):
                    self._deliver(node, endpoint, event)
                self._stop.wait(FRAME_TIME)

    @staticmethod
    def _deliver(node: NetNode, endpoint: Hashable, event: Any) -> None:
        try:
            if isinstance(event, list):
                node.send_batch(endpoint, event)
            else:
                node.send(endpoint, event)
        except WireError as exc:
            logger.warning("Could not send to %s: %s", endpoint, exc)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="octorealm-server",
        description="Run the game server with the config.yaml of the current directory.",
    )
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    logger.info("Main Start")

    try:
        config = Config.load_from_dir(Path.cwd())
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        return 1

    server = GameServer(NetworkConnectionTarget(config.ip, config.port))
    try:
        server.run()
    except WireError as exc:
        print(exc, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
"""Server-side registry of units, connected players and their heartbeats."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Hashable, List, Optional, Tuple

from octorealm.animations import ActiveCast
from octorealm.components import (
    AttackIntention,
    Health,
    MovementIntention,
    Transform,
    Vec3,
)
from octorealm.events import (
    NPC,
    AIType,
    ConnectRequest,
    Move2d,
    NetEntId,
    NpcUnit,
    PlayerDisconnected,
    PlayerUnit,
    SetTransform,
    SomeoneMoved,
    SpawnUnit,
    UnitData,
    UnitType,
    WorldData,
)

logger = logging.getLogger(__name__)

HEARTBEAT_MILLIS = 200
"""How often heartbeats are checked."""
HEARTBEAT_TIMEOUT = 1000
"""How long until a silent player is disconnected."""
HEARTBEAT_CONNECTION_GRACE_PERIOD = 5
"""Time allowed to finish connecting, as a multiple of the heartbeat timeout."""

_MISSED_BEATS_LIMIT = HEARTBEAT_TIMEOUT // HEARTBEAT_MILLIS
_GRACE_BEATS = (HEARTBEAT_CONNECTION_GRACE_PERIOD - 1) * _MISSED_BEATS_LIMIT
_RESPAWN_DISTANCE_SQUARED = 10.0


@dataclass
class ServerUnit:
    """A player or NPC living on the server."""

    ent_id: NetEntId
    transform: Transform = field(default_factory=Transform)
    health: Health = Health()
    name: Optional[str] = None
    endpoint: Optional[Hashable] = None
    npc_type: Optional[NPC] = None
    ai_type: Optional[AIType] = None
    controlled: bool = False
    movement: MovementIntention = field(default_factory=MovementIntention)
    attack: AttackIntention = field(default_factory=AttackIntention)
    active_cast: Optional[ActiveCast] = None

    @property
    def is_player(self) -> bool:
        return self.endpoint is not None and self.name is not None

    @property
    def unit_type(self) -> UnitType:
        if self.npc_type is not None:
            return NpcUnit(self.npc_type)
        return PlayerUnit(self.name or "")

    @property
    def unit_data(self) -> UnitData:
        return UnitData(self.unit_type, self.ent_id, self.health, replace(self.transform))


class World:
    """All units on the server and the messages waiting to be sent."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.units: Dict[NetEntId, ServerUnit] = {}
        self.endpoint_to_id: Dict[Hashable, NetEntId] = {}
        self.heartbeats: Dict[NetEntId, int] = {}
        self._outbox: List[Tuple[Hashable, Any]] = []

    def send(self, endpoint: Hashable, event: Any) -> None:
        self._outbox.append((endpoint, event))

    def broadcast(self, event: Any) -> None:
        """Send ``event`` to every connected player."""
        for player in self.players():
            self.send(player.endpoint, event)

    def take_outbox(self) -> List[Tuple[Hashable, Any]]:
        """Take every pending (endpoint, event) pair, oldest first."""
        outbox, self._outbox = self._outbox, []
        return outbox

    def add_unit(self, unit: ServerUnit) -> None:
        self.units[unit.ent_id] = unit

    def remove_unit(self, ent_id: NetEntId) -> Optional[ServerUnit]:
        return self.units.pop(ent_id, None)

    def unit_for_endpoint(self, endpoint: Hashable) -> Optional[ServerUnit]:
        ent_id = self.endpoint_to_id.get(endpoint)
        if ent_id is None:
            return None
        return self.units.get(ent_id)

    def players(self) -> List[ServerUnit]:
        return [unit for unit in self.units.values() if unit.is_player]

    def npcs(self) -> List[ServerUnit]:
        return [unit for unit in self.units.values() if unit.npc_type is not None]

    def handle_connect(self, endpoint: Hashable, request: ConnectRequest) -> ServerUnit:
        """Create a player for ``endpoint`` and tell everyone about it."""
        name = request.name
        if name is None:
            name = f"Player #{self._rng.randint(1, 9999)}"

        location = request.my_location
        default_spawn = location.with_translation(Vec3(0.0, 0.0, 0.0))
        if location.translation.distance_squared(default_spawn.translation) > _RESPAWN_DISTANCE_SQUARED:
            spawn = default_spawn
        else:
            spawn = replace(location)

        unit = ServerUnit(
            ent_id=NetEntId.random(),
            transform=spawn,
            health=Health(),
            name=name,
            endpoint=endpoint,
            controlled=True,
        )
        logger.info("Player Connected: %s %r", name, unit.ent_id)

        new_data = unit.unit_data
        spawn_event = SpawnUnit(new_data)
        unit_list = [new_data]
        for player in self.players():
            unit_list.append(player.unit_data)
            self.send(player.endpoint, spawn_event)
        unit_list.extend(npc.unit_data for npc in self.npcs())

        self.add_unit(unit)
        self.heartbeats[unit.ent_id] = -_GRACE_BEATS
        self.endpoint_to_id[endpoint] = unit.ent_id

        self.send(endpoint, WorldData(unit.ent_id, unit_list))
        return unit

    def handle_heartbeat(self, endpoint: Hashable) -> None:
        ent_id = self.endpoint_to_id.get(endpoint)
        if ent_id is not None and ent_id in self.heartbeats:
            self.heartbeats[ent_id] = min(self.heartbeats[ent_id], 0)

    def handle_movement(self, endpoint: Hashable, movement: Any) -> None:
        """Apply a player's movement and relay it to every other player."""
        moved_id = self.endpoint_to_id.get(endpoint)
        if moved_id is None:
            return
        event = SomeoneMoved(moved_id, movement)
        for player in self.players():
            if player.ent_id == moved_id:
                if isinstance(movement, SetTransform):
                    player.transform = movement.transform
                elif isinstance(movement, Move2d):
                    player.movement = MovementIntention(movement.direction)
            else:
                self.send(player.endpoint, event)

    def check_heartbeats(self) -> List[NetEntId]:
        """Count a missed beat for everyone; return the players who timed out."""
        timed_out = []
        for ent_id, beats in self.heartbeats.items():
            self.heartbeats[ent_id] = beats + 1
            if beats >= _MISSED_BEATS_LIMIT:
                logger.warning("Missed %d beats, disconnecting %r", beats, ent_id)
                timed_out.append(ent_id)
        return timed_out

    def disconnect(self, ent_id: NetEntId) -> None:
        """Drop a player and tell every connected player, the leaver included."""
        self.heartbeats.pop(ent_id, None)
        event = PlayerDisconnected(ent_id)
        for player in self.players():
            self.send(player.endpoint, event)
            if player.ent_id == ent_id:
                self.remove_unit(ent_id)
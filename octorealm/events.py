"""Network identifiers, unit descriptions and every event sent between client and server."""

from __future__ import annotations

import enum
import random
from dataclasses import dataclass, field
from typing import Generic, Hashable, List, Optional, TypeVar, Union

from octorealm.components import (
    AttackIntention,
    Health,
    Transform,
    Vec2,
    Vec3,
)

E = TypeVar("E")


@dataclass(frozen=True, order=True)
class NetEntId:
    """An identifier for a networked entity, shared by all peers."""

    value: int

    @classmethod
    def random(cls) -> NetEntId:
        return cls(random.getrandbits(64))


class AIType(enum.Enum):
    NONE = "none"
    WALK_TO_NEAREST_PLAYER = "walk_to_nearest_player"


class NPC(enum.Enum):
    PENGUIN = "Penguin"
    MAGE = "Mage"

    def model(self) -> str:
        return _NPC_MODELS[self]

    def animation(self) -> str:
        return _NPC_ANIMATIONS[self]

    def base_health(self) -> Health:
        return Health(_NPC_HEALTH[self])

    def ai_type(self) -> AIType:
        return AIType.WALK_TO_NEAREST_PLAYER


_NPC_MODELS = {
    NPC.PENGUIN: "penguinwalk.gltf#Scene0",
    NPC.MAGE: "bookmageIdle.gltf#Scene0",
}
_NPC_ANIMATIONS = {
    NPC.PENGUIN: "penguinwalk.gltf#Animation0",
    NPC.MAGE: "bookmageIdle.gltf#Animation0",
}
_NPC_HEALTH = {NPC.PENGUIN: 50, NPC.MAGE: 20}


@dataclass(frozen=True)
class PlayerUnit:
    name: str


@dataclass(frozen=True)
class NpcUnit:
    npc_type: NPC


UnitType = Union[PlayerUnit, NpcUnit]


@dataclass(frozen=True)
class UnitData:
    """Everything a peer needs to create a unit."""

    unit: UnitType
    ent_id: NetEntId
    health: Health
    transform: Transform


@dataclass(frozen=True)
class EventFromEndpoint(Generic[E]):
    """An event together with the endpoint it arrived from."""

    event: E
    endpoint: Hashable


@dataclass(frozen=True)
class ShootingData:
    shot_from: Vec3 = Vec3()
    target: Vec3 = Vec3()


# Casts


@dataclass(frozen=True)
class Teleport:
    target: Vec3


@dataclass(frozen=True)
class Shoot:
    data: ShootingData


@dataclass(frozen=True)
class ShootTargeted:
    origin: Vec3
    target: NetEntId


@dataclass(frozen=True)
class Melee:
    pass


@dataclass(frozen=True)
class Aoe:
    center: Vec3


@dataclass(frozen=True)
class Buff:
    pass


Cast = Union[Teleport, Shoot, ShootTargeted, Melee, Aoe, Buff]


# Movement changes


@dataclass(frozen=True)
class StandStill:
    pass


@dataclass(frozen=True)
class Move2d:
    direction: Vec2


@dataclass(frozen=True)
class SetTransform:
    transform: Transform


@dataclass(frozen=True)
class AttackIntent:
    intention: AttackIntention


ChangeMovement = Union[StandStill, Move2d, SetTransform, AttackIntent]


# Client to server


@dataclass(frozen=True)
class ConnectRequest:
    name: Optional[str]
    my_location: Transform


@dataclass(frozen=True)
class SendChat:
    text: str


@dataclass(frozen=True)
class Heartbeat:
    pass


# Server to client


@dataclass(frozen=True)
class WorldData:
    your_unit_id: NetEntId
    unit_data: List[UnitData] = field(default_factory=list)


@dataclass(frozen=True)
class SpawnUnit:
    data: UnitData


@dataclass(frozen=True)
class PlayerDisconnected:
    id: NetEntId


@dataclass(frozen=True)
class SomeoneMoved:
    id: NetEntId
    movement: ChangeMovement


@dataclass(frozen=True)
class SomeoneCast:
    caster_id: NetEntId
    cast_id: NetEntId
    cast: Cast


@dataclass(frozen=True)
class CastAccepted:
    """Go ahead with the cast."""

    cast_id: NetEntId


@dataclass(frozen=True)
class CastOffset:
    """Go ahead with the cast, accounting for extra cooldown in seconds."""

    offset: float
    cast_id: NetEntId


@dataclass(frozen=True)
class CastDenied:
    """The cast is refused; ``remaining`` seconds of cooldown are left."""

    remaining: float


YourCastResult = Union[CastAccepted, CastOffset, CastDenied]


@dataclass(frozen=True)
class BulletHit:
    bullet: NetEntId
    player: NetEntId


@dataclass(frozen=True)
class HealthUpdate:
    health: Health


UpdateSharedComponent = HealthUpdate


@dataclass(frozen=True)
class SomeoneUpdateComponent:
    id: NetEntId
    update: UpdateSharedComponent


@dataclass(frozen=True)
class Chat:
    source: Optional[NetEntId]
    text: str


@dataclass(frozen=True)
class UnitDie:
    id: NetEntId
    disappear: bool


@dataclass(frozen=True)
class SpawnInteractable:
    id: NetEntId
    location: Vec3


@dataclass(frozen=True)
class DespawnInteractable:
    id: NetEntId
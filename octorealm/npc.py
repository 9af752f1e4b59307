"""Server-side NPC behaviour: spawning, chasing players, attacking and separating."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import List, Optional

from octorealm.animations import DoCast
from octorealm.components import AttackIntention, MovementIntention, Quat, Vec2, Vec3
from octorealm.events import (
    AIType,
    AttackIntent,
    Melee,
    Move2d,
    NetEntId,
    PlayerUnit,
    SetTransform,
    SomeoneCast,
    SomeoneMoved,
    SpawnUnit,
)
from octorealm.world import ServerUnit, World

logger = logging.getLogger(__name__)

HITBOX_SIZE = 2.0
"""Every unit has the same hitbox size."""
HITBOX_SIZE_SQ = HITBOX_SIZE * HITBOX_SIZE
AUTO_ATTACK_SPEED = 0.5
"""Seconds between two automatic attacks of an NPC."""
NPC_WALK_FACTOR = 0.25
NPC_MOVE_SPEED = 25.0
MAX_EVENTS_PER_BATCH = 250

_STOP_RADIUS_SQ = HITBOX_SIZE_SQ + 0.5
_ATTACK_RADIUS_SQ = HITBOX_SIZE_SQ + 3.0
_STACKING_DISTANCE_SQ = 0.005
_COLLISION_PASSES = 3
_HOP_FACTOR = 1.5
_CORRECTION_FACTOR = 0.25


def _ai_units(world: World) -> List[ServerUnit]:
    return [u for u in world.units.values() if u.ai_type is not None and not u.controlled]


def _controlled_units(world: World) -> List[ServerUnit]:
    return [u for u in world.units.values() if u.controlled]


def spawn_unit(world: World, event: SpawnUnit) -> Optional[ServerUnit]:
    """Create the NPC described by ``event`` and tell every player about it."""
    data = event.data
    if isinstance(data.unit, PlayerUnit):
        # Players are created when they connect, never through a spawn event.
        logger.error("Sent a SpawnUnit event containing a new player: %s", data.unit.name)
        return None

    npc_type = data.unit.npc_type
    unit = ServerUnit(
        ent_id=data.ent_id,
        transform=replace(data.transform),
        health=data.health,
        npc_type=npc_type,
        ai_type=npc_type.ai_type(),
    )
    world.add_unit(unit)
    world.broadcast(SpawnUnit(data))
    return unit


def ai_tick(world: World, delta: float) -> List[DoCast]:
    """Steer every NPC towards its nearest player; return the attacks that landed."""
    targets = [u.transform.translation for u in _controlled_units(world)]
    attacks: List[DoCast] = []

    for unit in _ai_units(world):
        if unit.ai_type is AIType.NONE:
            continue

        position = unit.transform.translation
        closest: Optional[Vec3] = None
        for target in targets:
            if closest is None or not position.distance(closest) < position.distance(target):
                closest = target

        if closest is None:
            if unit.movement.direction.length_squared() > 0.0:
                unit.movement = MovementIntention(Vec2())
                unit.attack = AttackIntention()
            continue

        direction = closest.xz() - position.xz()
        distance_sq = direction.length_squared()
        if distance_sq < _STOP_RADIUS_SQ:
            unit.movement = MovementIntention(Vec2())
        else:
            heading = direction.normalize()
            unit.movement = MovementIntention(heading * NPC_WALK_FACTOR)
            unit.transform.rotation = Quat.from_rotation_y(
                -math.atan2(heading.y, heading.x) - math.pi / 2.0
            )

        if distance_sq < _ATTACK_RADIUS_SQ:
            timer = unit.attack.timer
            if timer is None:
                unit.attack = AttackIntention.auto_attack(AUTO_ATTACK_SPEED)
            else:
                timer.tick(delta)
                attacks.extend(
                    DoCast(SomeoneCast(unit.ent_id, NetEntId.random(), Melee()))
                    for _ in range(timer.times_finished_this_tick)
                )
        else:
            unit.attack = AttackIntention()

    for attack in attacks:
        logger.info("NPC attack: %r", attack)
    return attacks


def apply_movement(world: World, delta: float) -> bool:
    """Move NPCs along their intentions, then push overlapping units apart.

    Returns False if the units were still overlapping after every correction pass.
    """
    npcs = _ai_units(world)
    for unit in npcs:
        direction = unit.movement.direction
        moved = unit.transform.translation + Vec3(direction.x, 0.0, direction.y) * (
            NPC_MOVE_SPEED * delta
        )
        if unit.attack.timer is not None:
            moved = Vec3(moved.x, unit.attack.timer.elapsed * _HOP_FACTOR, moved.z)
        unit.transform.translation = moved

    players = [u.transform.translation for u in _controlled_units(world)]
    for _ in range(_COLLISION_PASSES):
        positions = [u.transform.translation for u in npcs] + players
        corrected = False
        for unit in npcs:
            new_pos = unit.transform.translation
            for other in positions:
                distance_sq = new_pos.xz().distance_squared(other.xz())
                if distance_sq <= _STACKING_DISTANCE_SQ:
                    # Too close to separate: let units stack.
                    continue
                if distance_sq <= HITBOX_SIZE_SQ:
                    diff = (new_pos - other).xz()
                    correction = diff.normalize() * HITBOX_SIZE - diff
                    unit.transform.translation = unit.transform.translation + Vec3(
                        correction.x, 0.0, correction.y
                    ) * _CORRECTION_FACTOR
                    unit.movement = MovementIntention(Vec2())
                    corrected = True
        if not corrected:
            return True

    logger.debug("Too many collisions this frame")
    return False


def movement_updates(world: World) -> List[SomeoneMoved]:
    """Transform, walking direction and attack of every NPC, as movement events."""
    events: List[SomeoneMoved] = []
    for unit in _ai_units(world):
        timer = unit.attack.timer
        attack = AttackIntention(replace(timer) if timer is not None else None)
        events.extend(
            (
                SomeoneMoved(unit.ent_id, SetTransform(replace(unit.transform))),
                SomeoneMoved(unit.ent_id, Move2d(unit.movement.direction)),
                SomeoneMoved(unit.ent_id, AttackIntent(attack)),
            )
        )
    return events


def send_npc_updates(world: World) -> List[List[SomeoneMoved]]:
    """Queue NPC movement for every player; each list queued is sent as one batch."""
    events = movement_updates(world)
    batches = [
        events[start : start + MAX_EVENTS_PER_BATCH]
        for start in range(0, len(events), MAX_EVENTS_PER_BATCH)
    ]
    players = world.players()
    for batch in batches:
        for player in players:
            world.send(player.endpoint, batch)
    return batches
"""Server-side spell resolution: cooldowns, projectiles, damage and deaths."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional, Set

from octorealm.animations import ActiveCast, DoCast, DoDamage, damage, skill_info
from octorealm.components import Health, Timer, TimerMode, Vec3
from octorealm.events import (
    Aoe,
    BulletHit,
    Buff,
    Cast,
    CastAccepted,
    CastDenied,
    HealthUpdate,
    Melee,
    NetEntId,
    Shoot,
    ShootingData,
    ShootTargeted,
    SomeoneCast,
    SomeoneUpdateComponent,
    SpawnInteractable,
    UnitDie,
)
from octorealm.projectiles import bullet_position
from octorealm.world import World

logger = logging.getLogger(__name__)

BULLET_LIFETIME = 5.0
TARGETED_PROJECTILE_DURATION = 1.0
AOE_RADIUS = 25.0
MELEE_RADIUS = 5.0
BUFF_RADIUS = 25.0
BULLET_HIT_DISTANCE_SQUARED = 5.0

_NAN_POSITION = Vec3(float("nan"), float("nan"), float("nan"))


@dataclass
class Cooldown:
    """A skill of one caster that cannot be used again until the timer runs out."""

    cast_type: type
    caster_id: NetEntId
    timer: Timer

    def remaining(self) -> float:
        return self.timer.remaining()


@dataclass
class _Bullet:
    cast_id: NetEntId
    caster_id: NetEntId
    shot: ShootingData
    timer: Timer
    position: Vec3


@dataclass
class _Projectile:
    cast_id: NetEntId
    caster_id: NetEntId
    cast: Cast
    target: NetEntId
    timer: Timer


class SpellSystem:
    """Resolves casts made by the units of a world."""

    def __init__(self, world: World) -> None:
        self.world = world
        self.cooldowns: List[Cooldown] = []
        self.interactables: Dict[NetEntId, Vec3] = {}
        self._bullets: Dict[NetEntId, _Bullet] = {}
        self._projectiles: List[_Projectile] = []
        self._hit_list: Set[BulletHit] = set()

    def try_cast(self, endpoint: Hashable, cast: Cast) -> Optional[NetEntId]:
        """Handle a player's request to cast; return the new cast id if accepted."""
        info = skill_info(cast)
        caster_id = self.world.endpoint_to_id.get(endpoint)
        if caster_id is None:
            return None

        for cooldown in self.cooldowns:
            if cooldown.caster_id == caster_id and cooldown.cast_type is type(cast):
                logger.debug("denied cast for cooldown %r", cooldown)
                self.world.send(endpoint, CastDenied(cooldown.remaining()))
                return None

        cast_id = NetEntId.random()
        self.world.broadcast(SomeoneCast(caster_id, cast_id, cast))
        self.world.send(endpoint, CastAccepted(cast_id))

        unit = self.world.units.get(caster_id)
        if unit is not None:
            logger.debug("Adding the cast %r to %r (%.2fs)", cast, caster_id, info.total_duration())
            unit.active_cast = ActiveCast.start(cast, cast_id)
        return cast_id

    def do_cast(self, do_cast: DoCast) -> List[DoDamage]:
        """Apply the effect of a cast that reached its cast point; return the damage dealt."""
        event = do_cast.cast
        spell = event.cast
        caster_id = event.caster_id
        logger.debug("Cast has completed: %r", event)

        self.cooldowns.append(
            Cooldown(type(spell), caster_id, Timer(skill_info(spell).cooldown, TimerMode.ONCE))
        )

        damages: List[DoDamage] = []
        units = list(self.world.units.values())
        caster = self.world.units.get(caster_id)

        if isinstance(spell, Shoot):
            self._bullets[event.cast_id] = _Bullet(
                cast_id=event.cast_id,
                caster_id=caster_id,
                shot=spell.data,
                timer=Timer(BULLET_LIFETIME, TimerMode.ONCE),
                position=spell.data.shot_from,
            )
        elif isinstance(spell, Aoe):
            damages = [
                DoDamage(unit.ent_id, damage(spell))
                for unit in units
                if unit.transform.translation.distance(spell.center) < AOE_RADIUS
                and unit.ent_id != caster_id
            ]
        elif isinstance(spell, Melee):
            if caster is not None:
                origin = caster.transform.translation
                damages = [
                    DoDamage(unit.ent_id, damage(spell))
                    for unit in units
                    if unit.transform.translation.distance(origin) < MELEE_RADIUS
                    and unit.ent_id != caster_id
                ]
        elif isinstance(spell, ShootTargeted):
            self._projectiles.append(
                _Projectile(
                    cast_id=event.cast_id,
                    caster_id=caster_id,
                    cast=spell,
                    target=spell.target,
                    timer=Timer(TARGETED_PROJECTILE_DURATION, TimerMode.ONCE),
                )
            )
        elif isinstance(spell, Buff):
            if caster is not None:
                origin = caster.transform.translation
                for unit in units:
                    if unit.transform.translation.distance(origin) < BUFF_RADIUS:
                        logger.warning("Buff was cast on %r", unit.ent_id)

        for hit in damages:
            self.apply_damage(hit.target, hit.amount)
        return damages

    def apply_damage(self, target: NetEntId, amount: float) -> Optional[Health]:
        """Take ``amount`` hit points from ``target``; return its new health."""
        unit = self.world.units.get(target)
        if unit is None:
            return None
        logger.debug("Unit %r took %s damage", target, amount)
        unit.health = Health(max(unit.health.value - int(amount), 0))
        self.world.broadcast(SomeoneUpdateComponent(target, HealthUpdate(unit.health)))
        if unit.health.value <= 0:
            self.kill(target, False)
        return unit.health

    def kill(self, ent_id: NetEntId, disappear: bool) -> bool:
        """Remove a unit; unless it disappears, it leaves an interactable behind."""
        unit = self.world.units.get(ent_id)
        self.world.broadcast(UnitDie(ent_id, disappear))
        if unit is None:
            return False
        self.world.remove_unit(ent_id)
        if not disappear:
            self._spawn_interactable(unit.transform.translation)
        return True

    def tick(self, delta: float) -> List[DoCast]:
        """Advance every timer by ``delta`` seconds; return the casts that took effect."""
        self._tick_cooldowns(delta)
        self._tick_projectiles(delta)
        self._tick_bullets(delta)
        return self._tick_casts(delta)

    def _spawn_interactable(self, location: Vec3) -> NetEntId:
        new_id = NetEntId.random()
        self.interactables[new_id] = location
        self.world.broadcast(SpawnInteractable(new_id, location))
        return new_id

    def _hit(self, event: BulletHit) -> None:
        if event in self._hit_list:
            return
        self._hit_list.add(event)
        self.world.broadcast(event)
        if event.player in self.world.units:
            self.apply_damage(event.player, damage(Shoot(ShootingData())))

    def _tick_cooldowns(self, delta: float) -> None:
        for cooldown in self.cooldowns:
            cooldown.timer.tick(delta)
        self.cooldowns = [c for c in self.cooldowns if not c.timer.finished]

    def _tick_projectiles(self, delta: float) -> None:
        remaining = []
        for projectile in self._projectiles:
            projectile.timer.tick(delta)
            if projectile.timer.finished:
                self.apply_damage(projectile.target, damage(projectile.cast))
            else:
                remaining.append(projectile)
        self._projectiles = remaining

    def _tick_bullets(self, delta: float) -> None:
        for bullet_id, bullet in list(self._bullets.items()):
            bullet.timer.tick(delta)
            if bullet.timer.finished:
                del self._bullets[bullet_id]
                continue
            try:
                bullet.position = bullet_position(bullet.shot, bullet.timer.elapsed)
            except ValueError:
                bullet.position = _NAN_POSITION

        for bullet_id, bullet in list(self._bullets.items()):
            for unit in list(self.world.units.values()):
                if unit.ent_id == bullet.caster_id:
                    continue
                distance = bullet.position.distance_squared(unit.transform.translation)
                if distance < BULLET_HIT_DISTANCE_SQUARED:
                    self._hit(BulletHit(bullet_id, unit.ent_id))

    def _tick_casts(self, delta: float) -> List[DoCast]:
        completed = []
        for unit in list(self.world.units.values()):
            active = unit.active_cast
            if active is None:
                continue
            result = active.tick(unit.ent_id, delta)
            if active.finished:
                unit.active_cast = None
            if result is not None:
                completed.append(result)
                self.do_cast(result)
        return completed
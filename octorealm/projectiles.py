"""Where bullets are at a given moment of their flight."""

from __future__ import annotations

from dataclasses import dataclass

from octorealm.components import Vec3
from octorealm.events import NetEntId, ShootingData

BULLET_SPEED = 50.0
"""Distance a straight bullet covers per second."""

TARGETED_ARC_HEIGHT = 20.0


@dataclass(frozen=True)
class TargetedBullet:
    """A homing projectile fired from ``source`` at the unit ``target``."""

    source: Vec3
    target: NetEntId


def bullet_position(shot: ShootingData, elapsed: float) -> Vec3:
    """Position of a straight bullet ``elapsed`` seconds after it was fired."""
    direction = (shot.target - shot.shot_from).normalize()
    return shot.shot_from + direction * (elapsed * BULLET_SPEED)


def targeted_bullet_position(source: Vec3, target: Vec3, elapsed: float) -> Vec3:
    """Position of a homing bullet; it takes one second and flies in an arc."""
    travelled = (target - source) * elapsed
    height = TARGETED_ARC_HEIGHT * elapsed - elapsed * elapsed * TARGETED_ARC_HEIGHT
    return source + travelled + Vec3(0.0, height, 0.0)
"""Skill timing tables and the per-caster cast state machine."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from octorealm.components import Timer, TimerMode
from octorealm.events import (
    Aoe,
    Buff,
    Cast,
    Melee,
    NetEntId,
    Shoot,
    ShootTargeted,
    SomeoneCast,
    Teleport,
)

logger = logging.getLogger(__name__)


class AnimationState(enum.Enum):
    FRONT_SWING = "front_swing"
    """Still cancelable."""
    WIND_UP = "wind_up"
    """Not cancelable; the skill is cast at the end of this phase."""
    WIND_DOWN = "wind_down"
    """Forced part of the backswing."""
    BACKSWING = "backswing"
    """Optional part of the backswing."""
    DONE = "done"


@dataclass(frozen=True)
class SkillInfo:
    """Phase lengths and cooldown of a skill, in seconds."""

    frontswing: float
    windup: float
    winddown: float
    backswing: float
    cooldown: float

    def total_duration(self) -> float:
        """Time until the skill is complete."""
        return self.frontswing + self.windup + self.winddown + self.backswing

    def cast_point(self) -> float:
        """Time until the skill takes effect."""
        return self.frontswing + self.windup

    def free_point(self) -> float:
        return self.frontswing + self.windup + self.winddown


@dataclass(frozen=True)
class DoCast:
    cast: SomeoneCast


@dataclass(frozen=True)
class DoDamage:
    target: NetEntId
    amount: float


_DAMAGE = {
    Teleport: 0.0,
    Buff: 0.0,
    Shoot: 10.0,
    ShootTargeted: 8.0,
    Melee: 25.0,
    Aoe: 30.0,
}

_SKILLS = {
    Teleport: SkillInfo(1.0, 1.0, 1.0, 1.0, cooldown=5.0),
    Shoot: SkillInfo(0.1, 0.1, 0.1, 0.2, cooldown=0.5),
    ShootTargeted: SkillInfo(0.5, 0.0, 0.1, 0.0, cooldown=1.0),
    Melee: SkillInfo(0.2, 0.0, 0.1, 0.3, cooldown=0.3),
    Aoe: SkillInfo(1.0, 1.0, 1.0, 1.0, cooldown=5.0),
    Buff: SkillInfo(0.25, 0.75, 0.0, 0.0, cooldown=30.0),
}


def damage(cast: Cast) -> float:
    try:
        return _DAMAGE[type(cast)]
    except KeyError:
        raise TypeError(f"not a cast: {cast!r}") from None


def skill_info(cast: Cast) -> SkillInfo:
    try:
        return _SKILLS[type(cast)]
    except KeyError:
        raise TypeError(f"not a cast: {cast!r}") from None


def current_animation(cast: Cast, elapsed: float) -> AnimationState:
    """Which phase of the cast ``elapsed`` seconds fall into."""
    skill = skill_info(cast)
    phases = (
        (skill.frontswing, AnimationState.FRONT_SWING),
        (skill.windup, AnimationState.WIND_UP),
        (skill.winddown, AnimationState.WIND_DOWN),
        (skill.backswing, AnimationState.BACKSWING),
    )
    for length, state in phases:
        if elapsed < length:
            return state
        elapsed -= length
    return AnimationState.DONE


@dataclass
class ActiveCast:
    """A cast in progress on one unit."""

    cast: Cast
    animation_timer: Timer
    cast_point_timer: Timer
    cast_id: Optional[NetEntId] = None

    @classmethod
    def start(cls, cast: Cast, cast_id: Optional[NetEntId] = None) -> ActiveCast:
        info = skill_info(cast)
        return cls(
            cast=cast,
            animation_timer=Timer(info.total_duration(), TimerMode.ONCE),
            cast_point_timer=Timer(info.cast_point(), TimerMode.ONCE),
            cast_id=cast_id,
        )

    @property
    def elapsed(self) -> float:
        return self.animation_timer.elapsed

    @property
    def state(self) -> AnimationState:
        return current_animation(self.cast, self.animation_timer.elapsed)

    @property
    def finished(self) -> bool:
        """True once the whole animation has played and the cast can be dropped."""
        return self.animation_timer.finished

    def tick(self, caster_id: NetEntId, delta: float) -> Optional[DoCast]:
        """Advance by ``delta`` seconds; return the effect when the cast point is reached."""
        self.cast_point_timer.tick(delta)
        self.animation_timer.tick(delta)

        result = None
        if self.cast_point_timer.finished:
            if self.cast_id is not None:
                result = DoCast(SomeoneCast(caster_id, self.cast_id, self.cast))
            else:
                logger.warning(
                    "server never sent us the casting data, not sure if we should cast this"
                )
            self.cast_point_timer.reset()
            self.cast_point_timer.pause()
        return result
"""Geometry, timers and the small per-unit components shared by client and server."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field, replace
from typing import Optional, Union


@dataclass(frozen=True)
class Vec2:
    """A 2D vector."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Vec2) -> Vec2:
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2) -> Vec2:
        return Vec2(self.x - other.x, self.y - other.y)

    def __mul__(self, other: Union[float, Vec2]) -> Vec2:
        if isinstance(other, Vec2):
            return Vec2(self.x * other.x, self.y * other.y)
        return Vec2(self.x * other, self.y * other)

    __rmul__ = __mul__

    def __neg__(self) -> Vec2:
        return Vec2(-self.x, -self.y)

    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def normalize(self) -> Vec2:
        """Return the unit vector pointing the same way."""
        length = self.length()
        if length == 0.0 or not math.isfinite(length):
            raise ValueError("cannot normalize a zero-length vector")
        return Vec2(self.x / length, self.y / length)

    def distance_squared(self, other: Vec2) -> float:
        return (self - other).length_squared()

    def distance(self, other: Vec2) -> float:
        return math.sqrt(self.distance_squared(other))


@dataclass(frozen=True)
class Vec3:
    """A 3D vector; y points up."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: Vec3) -> Vec3:
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vec3) -> Vec3:
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, other: Union[float, Vec3]) -> Vec3:
        if isinstance(other, Vec3):
            return Vec3(self.x * other.x, self.y * other.y, self.z * other.z)
        return Vec3(self.x * other, self.y * other, self.z * other)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> Vec3:
        return Vec3(self.x / scalar, self.y / scalar, self.z / scalar)

    def __neg__(self) -> Vec3:
        return Vec3(-self.x, -self.y, -self.z)

    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y + self.z * self.z

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def normalize(self) -> Vec3:
        """Return the unit vector pointing the same way."""
        length = self.length()
        if length == 0.0 or not math.isfinite(length):
            raise ValueError("cannot normalize a zero-length vector")
        return Vec3(self.x / length, self.y / length, self.z / length)

    def distance(self, other: Vec3) -> float:
        return math.sqrt(self.distance_squared(other))

    def distance_squared(self, other: Vec3) -> float:
        return (self - other).length_squared()

    def xz(self) -> Vec2:
        """Project onto the ground plane."""
        return Vec2(self.x, self.z)


@dataclass(frozen=True)
class Quat:
    """A rotation quaternion."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    @classmethod
    def from_rotation_y(cls, angle: float) -> Quat:
        half = angle / 2.0
        return cls(0.0, math.sin(half), 0.0, math.cos(half))


@dataclass
class Transform:
    """Position, rotation and scale of a unit."""

    translation: Vec3 = Vec3()
    rotation: Quat = Quat()
    scale: Vec3 = Vec3(1.0, 1.0, 1.0)

    @classmethod
    def from_translation(cls, translation: Vec3) -> Transform:
        return cls(translation=translation)

    def with_translation(self, translation: Vec3) -> Transform:
        """Return a copy placed at ``translation``."""
        return replace(self, translation=translation)


class TimerMode(enum.Enum):
    ONCE = "once"
    REPEATING = "repeating"


@dataclass
class Timer:
    """A countdown measured in seconds."""

    duration: float
    mode: TimerMode = TimerMode.ONCE
    elapsed: float = 0.0
    paused: bool = False
    finished: bool = False
    times_finished_this_tick: int = 0

    def tick(self, delta: float) -> Timer:
        """Advance the timer by ``delta`` seconds."""
        if self.paused:
            self.times_finished_this_tick = 0
            if self.mode is TimerMode.REPEATING:
                self.finished = False
            return self
        if self.mode is TimerMode.ONCE and self.finished:
            self.times_finished_this_tick = 0
            return self

        self.elapsed += delta
        self.finished = self.elapsed >= self.duration
        if not self.finished:
            self.times_finished_this_tick = 0
        elif self.mode is TimerMode.REPEATING:
            if self.duration > 0.0:
                times, self.elapsed = divmod(self.elapsed, self.duration)
                self.times_finished_this_tick = int(times)
            else:
                self.times_finished_this_tick = 1
                self.elapsed = 0.0
        else:
            self.times_finished_this_tick = 1
            self.elapsed = self.duration
        return self

    def reset(self) -> None:
        self.elapsed = 0.0
        self.finished = False
        self.times_finished_this_tick = 0

    def pause(self) -> None:
        self.paused = True

    def remaining(self) -> float:
        return max(self.duration - self.elapsed, 0.0)


@dataclass(frozen=True)
class Health:
    """Hit points of a unit."""

    value: int = 100


@dataclass
class MovementIntention:
    """The direction a unit intends to walk on the ground plane."""

    direction: Vec2 = Vec2()


@dataclass
class AttackIntention:
    """What a unit intends to attack with; no timer means no attack."""

    timer: Optional[Timer] = field(default=None)

    @classmethod
    def auto_attack(cls, period: float) -> AttackIntention:
        return cls(Timer(period, TimerMode.REPEATING))
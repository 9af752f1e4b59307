"""Player configuration: server address, sensitivities and key bindings."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.yaml"


class GameAction(enum.Enum):
    MOVE_FORWARD = "MoveForward"
    MOVE_BACKWARD = "MoveBackward"
    STRAFE_RIGHT = "StrafeRight"
    STRAFE_LEFT = "StrafeLeft"
    ROTATE_RIGHT = "RotateRight"
    ROTATE_LEFT = "RotateLeft"
    USE = "Use"
    JUMP = "Jump"
    CHANGE_CAMERA = "ChangeCamera"
    UNLOCK_CURSOR = "UnlockCursor"
    FIRE1 = "Fire1"
    FIRE2 = "Fire2"
    MOD1 = "Mod1"
    SPECIAL1 = "Special1"
    CHAT = "Chat"


class ConfigError(Exception):
    """The configuration could not be read or is invalid."""


Keybinds = Dict[GameAction, List[str]]

_DEFAULT_BINDS = (
    (GameAction.MOVE_FORWARD, "KeyW"),
    (GameAction.MOVE_BACKWARD, "KeyS"),
    (GameAction.STRAFE_LEFT, "KeyA"),
    (GameAction.STRAFE_RIGHT, "KeyD"),
    (GameAction.ROTATE_LEFT, "KeyQ"),
    (GameAction.ROTATE_RIGHT, "KeyE"),
    (GameAction.JUMP, "Space"),
    (GameAction.USE, "KeyF"),
    (GameAction.CHANGE_CAMERA, "KeyC"),
    (GameAction.UNLOCK_CURSOR, "KeyX"),
    (GameAction.FIRE1, "KeyT"),
    (GameAction.FIRE2, "KeyE"),
    (GameAction.MOD1, "ShiftLeft"),
    (GameAction.CHAT, "Enter"),
)


def default_binds() -> Keybinds:
    """A fresh copy of the default key bindings."""
    return {action: [key] for action, key in _DEFAULT_BINDS}


def _parse_action(name: object) -> GameAction:
    try:
        return GameAction(name)
    except ValueError:
        raise ConfigError(f"unknown game action: {name!r}") from None


def _parse_keybinds(raw: object) -> Keybinds:
    if not isinstance(raw, dict):
        raise ConfigError("keybindings must be a mapping")
    binds: Keybinds = {}
    for name, keys in raw.items():
        if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
            raise ConfigError(f"keybinding for {name!r} must be a list of key names")
        binds[_parse_action(name)] = list(keys)
    return binds


def _number(data: dict, key: str) -> float:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number")
    return float(value)


@dataclass
class Config:
    ip: str = "127.0.0.1"
    port: int = 25565
    name: Optional[str] = None
    sens: float = 0.003
    qe_sens: float = 3.0
    sound: Optional[bool] = False
    """Should sound play on hits?"""
    keybindings: Keybinds = field(default_factory=default_binds)

    def pressing_keybind(self, is_pressed: Callable[[str], bool], action: GameAction) -> bool:
        """True if any key bound to ``action`` satisfies ``is_pressed``."""
        keys = self.keybindings.get(action)
        if keys is None:
            keys = dict(_DEFAULT_BINDS_MAP).get(action)
            if keys is None:
                raise ConfigError(f"no key bound to {action.value}")
        return any(is_pressed(key) for key in keys)

    def plays_sound(self) -> bool:
        return bool(self.sound)

    def to_yaml(self) -> str:
        data = {
            "ip": self.ip,
            "port": self.port,
            "name": self.name,
            "sens": self.sens,
            "qe_sens": self.qe_sens,
            "sound": self.sound,
            "keybindings": {
                action.value: list(keys) for action, keys in self.keybindings.items()
            },
        }
        return yaml.safe_dump(data, sort_keys=False)

    @classmethod
    def from_yaml(cls, text: str) -> Config:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError("config must be a mapping")

        missing = [k for k in ("ip", "port", "sens", "qe_sens", "keybindings") if k not in data]
        if missing:
            raise ConfigError(f"missing field(s): {', '.join(missing)}")

        ip = data["ip"]
        if not isinstance(ip, str):
            raise ConfigError("ip must be a string")
        port = data["port"]
        if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 0xFFFF:
            raise ConfigError("port must be an integer between 0 and 65535")
        name = data.get("name")
        if name is not None and not isinstance(name, str):
            raise ConfigError("name must be a string")
        sound = data.get("sound")
        if sound is not None and not isinstance(sound, bool):
            raise ConfigError("sound must be a boolean")

        return cls(
            ip=ip,
            port=port,
            name=name,
            sens=_number(data, "sens"),
            qe_sens=_number(data, "qe_sens"),
            sound=sound,
            keybindings=_parse_keybinds(data["keybindings"]),
        )

    @classmethod
    def default_config_str(cls) -> str:
        return cls().to_yaml()

    @classmethod
    def load_from_dir(cls, directory: Union[str, Path, None] = None) -> Config:
        """Load ``config.yaml`` from ``directory``, creating it with defaults if absent."""
        path = Path(directory if directory is not None else Path.cwd()) / CONFIG_FILE_NAME
        logger.info("Loading config from %s", path)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            config = cls()
            try:
                path.write_text(config.to_yaml(), encoding="utf-8")
            except OSError as exc:
                raise ConfigError(f"failed to create config file {path}: {exc}") from exc
            return config
        except OSError as exc:
            raise ConfigError(f"failed to open config file {path}: {exc}") from exc

        try:
            config = cls.from_yaml(text)
        except ConfigError as exc:
            raise ConfigError(
                f"failed to load your config {path}: {exc}\n"
                f"Here is the default config:\n{cls.default_config_str()}"
            ) from exc

        merged = default_binds()
        merged.update(config.keybindings)
        config.keybindings = merged
        return config


_DEFAULT_BINDS_MAP = tuple((action, [key]) for action, key in _DEFAULT_BINDS)
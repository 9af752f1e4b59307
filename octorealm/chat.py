"""Server chat: relaying messages, slash commands and save states."""

from __future__ import annotations

import enum
import json
import logging
import random
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Hashable, List, Optional, Union

from octorealm.components import Health, Quat, Transform, Vec3
from octorealm.events import (
    NPC,
    Chat,
    NetEntId,
    NpcUnit,
    PlayerUnit,
    SpawnUnit,
    UnitData,
    UnitType,
)
from octorealm.npc import spawn_unit
from octorealm.spawner import GameManagerState, Spawner
from octorealm.spells import SpellSystem
from octorealm.world import World

logger = logging.getLogger(__name__)

SAVE_STATE_PATH = "./save.savestate.json"

USAGE = (
    "Usage: / <COMMAND>\n"
    "\n"
    "Commands:\n"
    "  spawn  Spawn a unit\n"
    "  list   List all the units on the server\n"
    "  s      SaveState\n"
    "  l      StateState Load\n"
    "  start\n"
    "  stop\n"
    "  help   Print this message"
)

_HELP_ARGS = ("help", "-h", "--help")


class ChatCommandError(Exception):
    """A slash command could not be parsed."""


class ChatCommandKind(enum.Enum):
    SPAWN = "spawn"
    LIST = "list"
    SAVE = "s"
    LOAD = "l"
    START = "start"
    STOP = "stop"


_VARIANT_NAMES = {
    ChatCommandKind.SAVE: "S",
    ChatCommandKind.LOAD: "L",
    ChatCommandKind.START: "Start",
    ChatCommandKind.STOP: "Stop",
}

_NPC_ARGUMENTS = {npc.value.lower(): npc for npc in NPC}


@dataclass(frozen=True)
class ChatCommand:
    """A parsed slash command."""

    kind: ChatCommandKind
    enemy_type: Optional[NPC] = None
    verbose: bool = True

    def __str__(self) -> str:
        if self.kind is ChatCommandKind.SPAWN:
            enemy = self.enemy_type.value if self.enemy_type else "None"
            return f"Spawn(CmdSpawnUnit {{ enemy_type: {enemy} }})"
        if self.kind is ChatCommandKind.LIST:
            verbose = "true" if self.verbose else "false"
            return f"List(CmdListUnits {{ verbose: {verbose} }})"
        return _VARIANT_NAMES[self.kind]


def _unexpected(arg: str) -> ChatCommandError:
    return ChatCommandError(f"error: unexpected argument '{arg}' found\n\n{USAGE}")


def parse_chat_command(text: str) -> ChatCommand:
    """Parse the words after the leading slash of a chat command."""
    name, *rest = text.split(" ")
    if name in _HELP_ARGS or any(arg in _HELP_ARGS[1:] for arg in rest):
        raise ChatCommandError(USAGE)
    try:
        kind = ChatCommandKind(name)
    except ValueError:
        raise ChatCommandError(
            f"error: unrecognized subcommand '{name}'\n\n{USAGE}"
        ) from None

    if kind is ChatCommandKind.SPAWN:
        if not rest:
            raise ChatCommandError(
                "error: the following required arguments were not provided:\n"
                f"  <ENEMY_TYPE>\n\n{USAGE}"
            )
        value, *extra = rest
        enemy = _NPC_ARGUMENTS.get(value)
        if enemy is None:
            possible = ", ".join(_NPC_ARGUMENTS)
            raise ChatCommandError(
                f"error: invalid value '{value}' for '<ENEMY_TYPE>'\n"
                f"  [possible values: {possible}]"
            )
        if extra:
            raise _unexpected(extra[0])
        return ChatCommand(kind, enemy_type=enemy)

    if kind is ChatCommandKind.LIST:
        flags = [arg for arg in rest if arg == "-v"]
        others = [arg for arg in rest if arg != "-v"]
        if others:
            raise _unexpected(others[0])
        if len(flags) > 1:
            raise ChatCommandError(
                "error: the argument '-v' cannot be used multiple times"
            )
        return ChatCommand(kind, verbose=True)

    if rest:
        raise _unexpected(rest[0])
    return ChatCommand(kind)


def _vec_to_json(vec: Union[Vec3, Quat]) -> List[float]:
    if isinstance(vec, Quat):
        return [vec.x, vec.y, vec.z, vec.w]
    return [vec.x, vec.y, vec.z]


def _transform_to_json(transform: Transform) -> Dict[str, Any]:
    return {
        "translation": _vec_to_json(transform.translation),
        "rotation": _vec_to_json(transform.rotation),
        "scale": _vec_to_json(transform.scale),
    }


def _transform_from_json(data: Dict[str, Any]) -> Transform:
    return Transform(
        translation=Vec3(*map(float, data["translation"])),
        rotation=Quat(*map(float, data["rotation"])),
        scale=Vec3(*map(float, data["scale"])),
    )


def _unit_to_json(unit: UnitType) -> Dict[str, Any]:
    if isinstance(unit, PlayerUnit):
        return {"Player": {"name": unit.name}}
    return {"NPC": {"npc_type": unit.npc_type.value}}


def _unit_from_json(data: Dict[str, Any]) -> UnitType:
    if "Player" in data:
        return PlayerUnit(str(data["Player"]["name"]))
    return NpcUnit(NPC(data["NPC"]["npc_type"]))


@dataclass(frozen=True)
class SaveStateUnit:
    """One saved unit."""

    hp: Health
    unit: UnitType
    transform: Transform

    def to_json(self) -> Dict[str, Any]:
        return {
            "hp": self.hp.value,
            "unit": _unit_to_json(self.unit),
            "transform": _transform_to_json(self.transform),
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> SaveStateUnit:
        hp = data["hp"]
        if isinstance(hp, bool) or not isinstance(hp, int) or hp < 0:
            raise ValueError(f"invalid hit points: {hp!r}")
        return cls(Health(hp), _unit_from_json(data["unit"]), _transform_from_json(data["transform"]))


@dataclass
class SaveState:
    """The NPCs of a world, as written to a save file."""

    npcs: List[SaveStateUnit] = field(default_factory=list)

    @classmethod
    def capture(cls, world: World) -> SaveState:
        return cls(
            [
                SaveStateUnit(unit.health, NpcUnit(unit.npc_type), replace(unit.transform))
                for unit in world.npcs()
            ]
        )

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        data = {"npcs": [unit.to_json() for unit in self.npcs]}
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> SaveState:
        """Read a save file; raise ValueError if it is not a valid save state."""
        text = Path(path).read_text(encoding="utf-8")
        try:
            data = json.loads(text)
            return cls([SaveStateUnit.from_json(unit) for unit in data["npcs"]])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"invalid save state {path}: {exc!r}") from exc


def _state_name(state: GameManagerState) -> str:
    return "".join(part.capitalize() for part in state.value.split("_"))


class ChatSystem:
    """Relays chat messages and runs slash commands for connected players."""

    def __init__(
        self,
        world: World,
        spells: SpellSystem,
        spawner: Spawner,
        save_path: Union[str, Path] = SAVE_STATE_PATH,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.world = world
        self.spells = spells
        self.spawner = spawner
        self.save_path = save_path
        self._rng = rng if rng is not None else random.Random()

    def _reply(self, endpoint: Hashable, text: str) -> None:
        self.world.send(endpoint, Chat(None, text))

    def handle_chat(self, endpoint: Hashable, text: str) -> Optional[ChatCommand]:
        """Handle a chat line from ``endpoint``; return the command it ran, if any."""
        chatter = self.world.endpoint_to_id.get(endpoint)
        if chatter is None:
            return None
        logger.info("Chat from %r: %s", chatter, text)

        if not text.startswith("/"):
            self.world.broadcast(Chat(chatter, text))
            return None

        try:
            command = parse_chat_command(text[1:])
        except ChatCommandError as exc:
            self._reply(endpoint, f"Error in {text}\n{exc}")
            return None
        self._reply(endpoint, f"Running {command}")
        self.run_command(endpoint, chatter, command)
        return command

    def run_command(self, endpoint: Hashable, runner: NetEntId, command: ChatCommand) -> bool:
        """Run ``command`` for the player ``runner``; False if no such player exists."""
        runner_unit = self.world.units.get(runner)
        if runner_unit is None or not runner_unit.is_player:
            return False

        kind = command.kind
        if kind is ChatCommandKind.SPAWN:
            enemy = command.enemy_type
            position = runner_unit.transform.translation * Vec3(1.0, 0.0, 1.0)
            spawn_unit(
                self.world,
                SpawnUnit(
                    UnitData(
                        unit=NpcUnit(enemy),
                        ent_id=NetEntId(self._rng.getrandbits(64)),
                        health=enemy.base_health(),
                        transform=Transform.from_translation(position),
                    )
                ),
            )
        elif kind is ChatCommandKind.LIST:
            self._reply(endpoint, self._listing())
        elif kind is ChatCommandKind.START:
            logger.info("gaming")
            self.spawner.state = GameManagerState.PLAYING
        elif kind is ChatCommandKind.STOP:
            self.spawner.state = GameManagerState.NOT_PLAYING
        elif kind is ChatCommandKind.SAVE:
            logger.info("Saving State")
            SaveState.capture(self.world).save(self.save_path)
            self._reply(endpoint, f"Saved state: {self.save_path}")
        elif kind is ChatCommandKind.LOAD:
            self._load(SaveState.load(self.save_path))
            self._reply(endpoint, f"Loaded savestate: {self.save_path}")
        return True

    def _listing(self) -> str:
        counts: Dict[NPC, int] = {}
        for npc in self.world.npcs():
            counts[npc.npc_type] = counts.get(npc.npc_type, 0) + 1
        names = ", ".join(json.dumps(p.name) for p in self.world.players())
        enemies = ", ".join(f"{npc.value}: {count}" for npc, count in counts.items())
        state = _state_name(self.spawner.state)
        return f"State({state}): Players: [{names}] || NPCs: {{{enemies}}}"

    def _load(self, state: SaveState) -> None:
        for npc in self.world.npcs():
            self.spells.kill(npc.ent_id, True)
        for saved in state.npcs:
            spawn_unit(
                self.world,
                SpawnUnit(
                    UnitData(
                        unit=saved.unit,
                        ent_id=NetEntId(self._rng.getrandbits(64)),
                        health=saved.hp,
                        transform=replace(saved.transform),
                    )
                ),
            )
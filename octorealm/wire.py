"""Message encoding and the UDP transport that carries events between peers."""

from __future__ import annotations

import dataclasses
import enum
import logging
import socket
import threading
from dataclasses import dataclass
from typing import Any, Hashable, Iterable, List, Optional, Sequence, Tuple

import msgpack
from msgpack.exceptions import UnpackException

from octorealm.components import (
    AttackIntention,
    Health,
    MovementIntention,
    Quat,
    Timer,
    TimerMode,
    Transform,
    Vec2,
    Vec3,
)
from octorealm.events import (
    NPC,
    AIType,
    Aoe,
    AttackIntent,
    BulletHit,
    Buff,
    CastAccepted,
    CastDenied,
    CastOffset,
    Chat,
    ConnectRequest,
    DespawnInteractable,
    EventFromEndpoint,
    HealthUpdate,
    Heartbeat,
    Melee,
    Move2d,
    NetEntId,
    NpcUnit,
    PlayerDisconnected,
    PlayerUnit,
    SendChat,
    SetTransform,
    Shoot,
    ShootingData,
    ShootTargeted,
    SomeoneCast,
    SomeoneMoved,
    SomeoneUpdateComponent,
    SpawnInteractable,
    SpawnUnit,
    StandStill,
    Teleport,
    UnitData,
    UnitDie,
    WorldData,
)

logger = logging.getLogger(__name__)

_MAX_DATAGRAM = 65535
_POLL_INTERVAL = 0.1

CLIENT_EVENTS: Tuple[type, ...] = (
    WorldData,
    SpawnUnit,
    PlayerDisconnected,
    SomeoneMoved,
    SomeoneCast,
    CastAccepted,
    CastOffset,
    CastDenied,
    BulletHit,
    SomeoneUpdateComponent,
    Chat,
    UnitDie,
    SpawnInteractable,
    DespawnInteractable,
)
"""Events the server sends to clients."""

SERVER_EVENTS: Tuple[type, ...] = (
    ConnectRequest,
    SendChat,
    Heartbeat,
    Teleport,
    Shoot,
    ShootTargeted,
    Melee,
    Aoe,
    Buff,
    StandStill,
    Move2d,
    SetTransform,
    AttackIntent,
)
"""Events clients send to the server."""

_EVENT_TYPES = CLIENT_EVENTS + SERVER_EVENTS

_VALUE_TYPES = (
    Vec2,
    Vec3,
    Quat,
    Transform,
    Timer,
    Health,
    MovementIntention,
    AttackIntention,
    NetEntId,
    PlayerUnit,
    NpcUnit,
    UnitData,
    ShootingData,
    HealthUpdate,
)

_CLASSES = {cls.__name__: cls for cls in _EVENT_TYPES + _VALUE_TYPES}
_ENUMS = {cls.__name__: cls for cls in (TimerMode, NPC, AIType)}

_TYPE_KEY = "@"
_ENUM_KEY = "@enum"


class WireError(Exception):
    """A message could not be encoded, decoded, sent or received."""


@dataclass(frozen=True)
class NetworkConnectionTarget:
    """Where to listen or connect."""

    ip: str
    port: int


def _to_wire(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, enum.Enum):
        name = type(value).__name__
        if _ENUMS.get(name) is not type(value):
            raise WireError(f"cannot encode enum {value!r}")
        return {_ENUM_KEY: name, "v": value.value}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        name = type(value).__name__
        if _CLASSES.get(name) is not type(value):
            raise WireError(f"cannot encode {value!r}")
        encoded = {_TYPE_KEY: name}
        for f in dataclasses.fields(value):
            encoded[f.name] = _to_wire(getattr(value, f.name))
        return encoded
    if isinstance(value, (list, tuple)):
        return [_to_wire(item) for item in value]
    raise WireError(f"cannot encode {value!r}")


def _from_wire(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, list):
        return [_from_wire(item) for item in value]
    if isinstance(value, dict):
        if _TYPE_KEY in value:
            cls = _CLASSES.get(value[_TYPE_KEY])
            if cls is None:
                raise WireError(f"unknown type {value[_TYPE_KEY]!r}")
            kwargs = {k: _from_wire(v) for k, v in value.items() if k != _TYPE_KEY}
            try:
                return cls(**kwargs)
            except TypeError as exc:
                raise WireError(f"bad fields for {cls.__name__}: {exc}") from exc
        if _ENUM_KEY in value:
            enum_cls = _ENUMS.get(value[_ENUM_KEY])
            if enum_cls is None:
                raise WireError(f"unknown enum {value[_ENUM_KEY]!r}")
            try:
                return enum_cls(value.get("v"))
            except ValueError as exc:
                raise WireError(str(exc)) from exc
    raise WireError(f"cannot decode {value!r}")


def _check_event(event: Any) -> None:
    if not isinstance(event, _EVENT_TYPES):
        raise WireError(f"not a network event: {event!r}")


def _pack(message: list) -> bytes:
    try:
        return msgpack.packb(message, use_bin_type=True)
    except (OverflowError, TypeError, ValueError) as exc:
        raise WireError(f"cannot encode message: {exc}") from exc


def encode_event(event: Any) -> bytes:
    """Encode a single event as one message."""
    _check_event(event)
    return _pack(["Single", _to_wire(event)])


def encode_batch(events: Sequence[Any]) -> bytes:
    """Encode several events as one message, keeping their order."""
    for event in events:
        _check_event(event)
    return _pack(["Batch", [_to_wire(event) for event in events]])


def decode_message(data: bytes) -> List[Any]:
    """Decode a message into the list of events it carries."""
    try:
        raw = msgpack.unpackb(data, raw=False)
    except (ValueError, TypeError, UnpackException) as exc:
        raise WireError(f"invalid message: {exc}") from exc

    if not isinstance(raw, list) or len(raw) != 2:
        raise WireError("message must be a grouping tag and a body")
    tag, body = raw
    if tag == "Single":
        items = [body]
    elif tag == "Batch" and isinstance(body, list):
        items = body
    else:
        raise WireError(f"unknown event grouping {tag!r}")

    decoded = [_from_wire(item) for item in items]
    for event in decoded:
        _check_event(event)
    return decoded


class EventQueue:
    """A thread-safe list of received events waiting to be handled."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: List[EventFromEndpoint] = []

    def push(self, endpoint: Hashable, events: Iterable[Any]) -> None:
        with self._lock:
            self._items.extend(EventFromEndpoint(event, endpoint) for event in events)

    def drain(self) -> List[EventFromEndpoint]:
        """Take every queued event, oldest first."""
        with self._lock:
            items, self._items = self._items, []
        return items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


def _resolve(target: NetworkConnectionTarget) -> Tuple[int, tuple]:
    try:
        infos = socket.getaddrinfo(target.ip, target.port, type=socket.SOCK_DGRAM)
    except (socket.gaierror, UnicodeError, OverflowError) as exc:
        raise WireError(f"cannot resolve {target.ip}:{target.port}: {exc}") from exc
    family, _, _, _, address = infos[0]
    return family, address


class NetNode:
    """A UDP socket that queues every event it receives."""

    def __init__(
        self,
        sock: socket.socket,
        queue: EventQueue,
        server_endpoint: Optional[tuple] = None,
    ) -> None:
        self._sock = sock
        self._sock.settimeout(_POLL_INTERVAL)
        self.queue = queue
        self.server_endpoint = server_endpoint
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._receive, daemon=True)
        self._thread.start()

    @classmethod
    def listen(cls, target: NetworkConnectionTarget, queue: EventQueue) -> NetNode:
        family, address = _resolve(target)
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            sock.bind(address)
        except OSError as exc:
            sock.close()
            raise WireError(f"cannot listen on {target.ip}:{target.port}: {exc}") from exc
        node = cls(sock, queue)
        logger.info("Listening on %s", node.address)
        return node

    @classmethod
    def connect(cls, target: NetworkConnectionTarget, queue: EventQueue) -> NetNode:
        family, address = _resolve(target)
        sock = socket.socket(family, socket.SOCK_DGRAM)
        wildcard = "::" if family == socket.AF_INET6 else "0.0.0.0"
        try:
            sock.bind((wildcard, 0))
        except OSError as exc:
            sock.close()
            raise WireError(f"cannot open a socket: {exc}") from exc
        logger.info("Connected to %s", address)
        return cls(sock, queue, server_endpoint=address)

    @property
    def address(self) -> tuple:
        return self._sock.getsockname()

    def _sendto(self, endpoint: tuple, data: bytes) -> None:
        try:
            self._sock.sendto(data, endpoint)
        except OSError as exc:
            raise WireError(f"cannot send to {endpoint}: {exc}") from exc

    def send(self, endpoint: tuple, event: Any) -> None:
        logger.debug("Sending event %r", event)
        self._sendto(endpoint, encode_event(event))

    def send_batch(self, endpoint: tuple, events: Sequence[Any]) -> None:
        logger.debug("Sending batch event %r", events)
        self._sendto(endpoint, encode_batch(events))

    def _receive(self) -> None:
        while not self._stop.is_set():
            try:
                data, endpoint = self._sock.recvfrom(_MAX_DATAGRAM)
            except socket.timeout:
                continue
            except OSError:
                break
            try:
                events = decode_message(data)
            except WireError as exc:
                logger.warning("Got invalid message from %s: %s", endpoint, exc)
                continue
            self.queue.push(endpoint, events)

    def close(self) -> None:
        self._stop.set()
        self._thread.join()
        self._sock.close()

    def __enter__(self) -> NetNode:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
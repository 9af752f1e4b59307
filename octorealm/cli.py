"""Client command line and resolution of the --autoconnect target."""

from __future__ import annotations

import argparse
import enum
import ipaddress
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from octorealm.wire import NetworkConnectionTarget

MAIN_SERVER = NetworkConnectionTarget("realm.example.com", 25565)
"""The public server reached with ``--autoconnect main``."""

_INVALID_ADDRESS = "--autoconnect was given an invalid ip and port to connect to"


class Optimization(enum.Enum):
    NO_FLOOR = "no-floor"
    """Disable the worldgen and spawn a static floor at 0.0."""

    def __str__(self) -> str:
        return self.value


@dataclass
class CliArgs:
    """Options given to the client on its command line."""

    autoconnect: Optional[str] = None
    name_override: Optional[str] = None
    opts: List[Optimization] = field(default_factory=list)
    print_binds: bool = False
    print_config: bool = False

    def optimize_floor(self) -> bool:
        return Optimization.NO_FLOOR in self.opts


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="octorealm")
    parser.add_argument(
        "-a",
        "--autoconnect",
        metavar="IP",
        help="Automatically connect to this ip and port (no name resolution, must be an ip.)",
    )
    parser.add_argument(
        "-n",
        "--name-override",
        metavar="NAME",
        help="Override your config name when connecting (useful for multiboxing)",
    )
    parser.add_argument(
        "-o",
        "--opts",
        action="append",
        type=Optimization,
        choices=list(Optimization),
        default=[],
        help="Disable some expensive features for debug builds",
    )
    parser.add_argument("--print-binds", action="store_true", help="Print binds and exit")
    parser.add_argument(
        "--print-config", action="store_true", help="Print default config and exit"
    )
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> CliArgs:
    """Parse the client command line; exits with a usage message on bad input."""
    ns = _parser().parse_args(argv)
    return CliArgs(
        autoconnect=ns.autoconnect,
        name_override=ns.name_override,
        opts=list(ns.opts),
        print_binds=ns.print_binds,
        print_config=ns.print_config,
    )


def _parse_socket_address(value: str) -> NetworkConnectionTarget:
    if value.startswith("["):
        host, sep, port_text = value[1:].rpartition("]:")
        if not sep:
            raise ValueError(_INVALID_ADDRESS)
        try:
            ip: Any = ipaddress.IPv6Address(host)
        except ValueError:
            raise ValueError(_INVALID_ADDRESS) from None
    else:
        host, sep, port_text = value.rpartition(":")
        if not sep:
            raise ValueError(_INVALID_ADDRESS)
        try:
            ip = ipaddress.IPv4Address(host)
        except ValueError:
            raise ValueError(_INVALID_ADDRESS) from None

    if not port_text.isascii() or not port_text.isdigit():
        raise ValueError(_INVALID_ADDRESS)
    port = int(port_text)
    if port > 65535:
        raise ValueError(_INVALID_ADDRESS)
    return NetworkConnectionTarget(str(ip), port)


def resolve_autoconnect(value: Optional[str], config: Any) -> Optional[NetworkConnectionTarget]:
    """Turn an --autoconnect value into a connection target, or None for no autoconnect.

    ``main`` is the public server, ``local`` the address in the config, anything
    else must be an ``ip:port`` socket address.
    """
    if not value:
        return None
    if value == "main":
        return MAIN_SERVER
    if value == "local":
        return NetworkConnectionTarget(config.ip, config.port)
    return _parse_socket_address(value)
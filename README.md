# octorealm

A small multiplayer arena game: units, spells, NPCs and chat, with an
authoritative server that talks to its clients over UDP.

## What is in the package

- `octorealm.components`: `Vec2`, `Vec3`, `Quat`, `Transform`, `Timer`
  (with `TimerMode`), `Health`, `MovementIntention` and `AttackIntention`.
- `octorealm.events`: every message that travels between client and server,
  such as `ConnectRequest`, `SendChat`, `Heartbeat`, `WorldData`,
  `SpawnUnit`, `SomeoneMoved`, `SomeoneCast`, `CastAccepted`, `CastDenied`,
  `Chat` and `UnitDie`; the casts (`Teleport`, `Shoot`, `ShootTargeted`,
  `Melee`, `Aoe`, `Buff`); and the NPC kinds (`NPC.PENGUIN`, `NPC.MAGE`)
  with their base health and AI type.
- `octorealm.animations`: skill timings (`skill_info`, `SkillInfo`), damage
  values (`damage`), the animation phase a cast is in (`current_animation`,
  `AnimationState`) and a cast in progress (`ActiveCast`).
- `octorealm.config`: the player configuration (`Config`) with key bindings
  (`GameAction`, `default_binds`), read from and written to YAML;
  problems raise `ConfigError`.
- `octorealm.wire`: packing events into datagrams (`encode_event`,
  `encode_batch`, `decode_message`, raising `WireError` on bad data), a
  thread-safe `EventQueue`, and a UDP `NetNode` that listens or connects and
  queues every event it receives.
- `octorealm.projectiles`: where straight and homing bullets are at a given
  time (`bullet_position`, `targeted_bullet_position`).
- Server-side simulation:
  - `octorealm.world.World`: units, connections and heartbeats;
  - `octorealm.spells.SpellSystem`: casting, cooldowns, bullets, damage and
    deaths;
  - `octorealm.npc`: NPC spawning, chasing, attacking and separation;
  - `octorealm.chat.ChatSystem`: chat relay, slash commands and save states;
  - `octorealm.spawner.Spawner`: timed enemy spawning while a game is played;
  - `octorealm.server.GameServer`: ties them together.
- Client-side helpers: `octorealm.cli` (`parse_args`, `CliArgs`,
  `resolve_autoconnect`), `octorealm.jumper.Jumper` (jump height over time)
  and `octorealm.chat_box.ChatBox` (the chat input line with history).

## Installing

```
pip install .
```

## Running a server

```
octorealm-server
```

The server reads `config.yaml` from the current directory. If the file does
not exist, it is written with the defaults (address `127.0.0.1`, port
`25565`). The `ip` and `port` in that file decide where the server listens.
If the file cannot be read or is invalid, the error and the default config
are printed and the command exits with status 1.

Clients that stop sending heartbeats are disconnected after about a second;
newly connected players get about five seconds of grace.

## Chat commands

Chat text that starts with `/` is run as a command on the server; other text
is relayed to every connected player.

| Command          | Effect                                              |
|------------------|-----------------------------------------------------|
| `/spawn penguin` | spawn an NPC (`penguin` or `mage`) where you stand  |
| `/list`          | list the connected players and the NPCs alive       |
| `/start`         | start spawning enemies                              |
| `/stop`          | stop spawning enemies                               |
| `/s`             | save every NPC to `./save.savestate.json`           |
| `/l`             | replace the NPCs with those in that save file       |

## Using the pieces directly

```python
from octorealm.animations import skill_info, damage
from octorealm.components import Vec3
from octorealm.events import Aoe
from octorealm.wire import encode_event, decode_message

cast = Aoe(Vec3(0.0, 0.0, 0.0))
info = skill_info(cast)
print(info.total_duration(), info.cast_point(), damage(cast))  # 4.0 2.0 30.0

payload = encode_event(cast)
print(decode_message(payload))  # [Aoe(center=Vec3(x=0.0, y=0.0, z=0.0))]
```

A server can also be driven without a network: `GameServer.handle_event`
takes an endpoint and an event, and `GameServer.step(delta)` advances the
game and returns the `(endpoint, event)` pairs to send (a list as the event
means one batch).

## What the package does not do

There is no playable client: no window, rendering, input handling, sound or
world generation. The client-side modules only parse options, compute jump
heights and keep the chat input; a client has to be built on top of
`octorealm.wire` and `octorealm.events`.

## Running the tests

```
pip install .[test]
pytest
```
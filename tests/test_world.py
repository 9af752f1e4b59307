import random

import pytest

from octorealm.components import Health, Quat, Transform, Vec2, Vec3
from octorealm.events import (
    NPC,
    ConnectRequest,
    Move2d,
    NetEntId,
    NpcUnit,
    PlayerDisconnected,
    PlayerUnit,
    SetTransform,
    SomeoneMoved,
    SpawnUnit,
    WorldData,
)
from octorealm.world import ServerUnit, World


def _connect(world, endpoint, name, location=Vec3()):
    return world.handle_connect(endpoint, ConnectRequest(name, Transform(location)))


def _events_for(outbox, endpoint):
    return [event for ep, event in outbox if ep == endpoint]


def test_connect_sends_world_data_to_new_player():
    world = World()
    unit = _connect(world, "a", "alice")
    outbox = world.take_outbox()
    (data,) = _events_for(outbox, "a")
    assert isinstance(data, WorldData)
    assert data.your_unit_id == unit.ent_id
    assert data.unit_data[0].unit == PlayerUnit("alice")
    assert data.unit_data[0].health == Health()


def test_default_name_is_generated():
    world = World(rng=random.Random(3))
    unit = _connect(world, "a", None)
    assert unit.name.startswith("Player #")
    assert 1 <= int(unit.name[len("Player #"):]) <= 9999


def test_far_spawn_is_moved_to_origin_keeping_rotation():
    world = World()
    rotation = Quat.from_rotation_y(1.0)
    request = ConnectRequest("a", Transform(Vec3(10.0, 0.0, 10.0), rotation))
    unit = world.handle_connect("a", request)
    assert unit.transform.translation == Vec3(0.0, 0.0, 0.0)
    assert unit.transform.rotation == rotation


def test_near_spawn_is_kept():
    world = World()
    unit = _connect(world, "a", "alice", Vec3(1.0, 0.0, 1.0))
    assert unit.transform.translation == Vec3(1.0, 0.0, 1.0)


def test_existing_players_and_npcs_are_listed_and_notified():
    world = World()
    first = _connect(world, "a", "alice")
    npc = ServerUnit(NetEntId(99), health=Health(50), npc_type=NPC.PENGUIN)
    world.add_unit(npc)
    world.take_outbox()

    second = _connect(world, "b", "bob")
    outbox = world.take_outbox()

    (spawn,) = _events_for(outbox, "a")
    assert spawn == SpawnUnit(second.unit_data)
    (data,) = _events_for(outbox, "b")
    assert [u.ent_id for u in data.unit_data] == [second.ent_id, first.ent_id, npc.ent_id]
    assert data.unit_data[2].unit == NpcUnit(NPC.PENGUIN)


def test_players_and_npcs_are_separated():
    world = World()
    player = _connect(world, "a", "alice")
    npc = ServerUnit(NetEntId(5), npc_type=NPC.MAGE)
    world.add_unit(npc)
    assert world.players() == [player]
    assert world.npcs() == [npc]
    assert world.unit_for_endpoint("a") is player
    assert world.unit_for_endpoint("zzz") is None


def test_broadcast_reaches_only_players():
    world = World()
    _connect(world, "a", "alice")
    _connect(world, "b", "bob")
    world.add_unit(ServerUnit(NetEntId(5), npc_type=NPC.MAGE))
    world.take_outbox()
    world.broadcast("ping")
    assert sorted(ep for ep, _ in world.take_outbox()) == ["a", "b"]


def test_silent_player_times_out_after_grace_period():
    world = World()
    unit = _connect(world, "a", "alice")
    start = world.heartbeats[unit.ent_id]
    assert start < 0
    calls = 0
    while not world.check_heartbeats():
        calls += 1
        assert calls < 1000
    assert world.heartbeats[unit.ent_id] > 0
    assert calls > -start


def test_heartbeat_resets_counter():
    world = World()
    unit = _connect(world, "a", "alice")
    for _ in range(30):
        world.check_heartbeats()
    world.handle_heartbeat("a")
    assert world.heartbeats[unit.ent_id] == 0
    results = [world.check_heartbeats() for _ in range(6)]
    assert results[:5] == [[], [], [], [], []]
    assert results[5] == [unit.ent_id]


def test_heartbeat_keeps_grace_period():
    world = World()
    unit = _connect(world, "a", "alice")
    before = world.heartbeats[unit.ent_id]
    world.handle_heartbeat("a")
    assert world.heartbeats[unit.ent_id] == before


def test_movement_updates_mover_and_relays_to_others():
    world = World()
    alice = _connect(world, "a", "alice")
    _connect(world, "b", "bob")
    world.take_outbox()

    new_transform = Transform(Vec3(3.0, 0.0, 3.0))
    world.handle_movement("a", SetTransform(new_transform))
    outbox = world.take_outbox()
    assert alice.transform == new_transform
    assert _events_for(outbox, "a") == []
    assert _events_for(outbox, "b") == [SomeoneMoved(alice.ent_id, SetTransform(new_transform))]


def test_move2d_updates_intention():
    world = World()
    alice = _connect(world, "a", "alice")
    world.handle_movement("a", Move2d(Vec2(0.0, 1.0)))
    assert alice.movement.direction == Vec2(0.0, 1.0)


def test_movement_from_unknown_endpoint_is_ignored():
    world = World()
    _connect(world, "a", "alice")
    world.take_outbox()
    world.handle_movement("stranger", Move2d(Vec2(1.0, 0.0)))
    assert world.take_outbox() == []


def test_disconnect_notifies_everyone_and_removes_player():
    world = World()
    alice = _connect(world, "a", "alice")
    bob = _connect(world, "b", "bob")
    world.take_outbox()

    world.disconnect(alice.ent_id)
    outbox = world.take_outbox()
    assert sorted(ep for ep, _ in outbox) == ["a", "b"]
    assert all(event == PlayerDisconnected(alice.ent_id) for _, event in outbox)
    assert alice.ent_id not in world.units
    assert alice.ent_id not in world.heartbeats
    assert world.players() == [bob]


def test_remove_unknown_unit_returns_none():
    world = World()
    assert world.remove_unit(NetEntId(1)) is None


@pytest.mark.parametrize("npc_type", list(NPC))
def test_npc_unit_data_carries_type(npc_type):
    unit = ServerUnit(NetEntId(1), health=npc_type.base_health(), npc_type=npc_type)
    assert unit.unit_data.unit == NpcUnit(npc_type)
    assert unit.unit_data.health == npc_type.base_health()
import pytest

from octorealm.animations import DoCast, damage, skill_info
from octorealm.components import Health, Transform, Vec3
from octorealm.events import (
    NPC,
    Aoe,
    BulletHit,
    Buff,
    CastAccepted,
    CastDenied,
    Melee,
    NetEntId,
    Shoot,
    ShootingData,
    ShootTargeted,
    SomeoneCast,
    SpawnInteractable,
    Teleport,
    UnitDie,
)
from octorealm.spells import SpellSystem
from octorealm.world import ServerUnit, World


def add_player(world, name, endpoint, pos):
    unit = ServerUnit(
        NetEntId.random(),
        Transform.from_translation(pos),
        name=name,
        endpoint=endpoint,
        controlled=True,
    )
    world.add_unit(unit)
    world.endpoint_to_id[endpoint] = unit.ent_id
    return unit


def add_npc(world, pos, npc=NPC.PENGUIN):
    unit = ServerUnit(
        NetEntId.random(),
        Transform.from_translation(pos),
        health=npc.base_health(),
        npc_type=npc,
    )
    world.add_unit(unit)
    return unit


def cast_event(caster, spell):
    return DoCast(SomeoneCast(caster.ent_id, NetEntId.random(), spell))


def test_unknown_endpoint_cannot_cast():
    world = World()
    spells = SpellSystem(world)
    assert spells.try_cast(("nowhere", 1), Melee()) is None
    assert world.take_outbox() == []


def test_non_cast_is_rejected():
    world = World()
    spells = SpellSystem(world)
    add_player(world, "a", "ep-a", Vec3())
    with pytest.raises(TypeError):
        spells.try_cast("ep-a", "fireball")


def test_accepted_cast_is_broadcast_and_started():
    world = World()
    spells = SpellSystem(world)
    caster = add_player(world, "a", "ep-a", Vec3())
    add_player(world, "b", "ep-b", Vec3(50.0, 0.0, 0.0))

    cast_id = spells.try_cast("ep-a", Melee())
    outbox = world.take_outbox()

    someone = SomeoneCast(caster.ent_id, cast_id, Melee())
    assert ("ep-a", someone) in outbox
    assert ("ep-b", someone) in outbox
    assert ("ep-a", CastAccepted(cast_id)) in outbox
    assert caster.active_cast.cast == Melee()
    assert caster.active_cast.cast_id == cast_id


def test_cast_denied_while_on_cooldown():
    world = World()
    spells = SpellSystem(world)
    caster = add_player(world, "a", "ep-a", Vec3())
    spells.do_cast(cast_event(caster, Melee()))
    world.take_outbox()

    assert spells.try_cast("ep-a", Melee()) is None
    assert world.take_outbox() == [("ep-a", CastDenied(skill_info(Melee()).cooldown))]

    assert spells.try_cast("ep-a", Buff()) is not None


def test_cooldown_expires():
    world = World()
    spells = SpellSystem(world)
    caster = add_player(world, "a", "ep-a", Vec3())
    spells.do_cast(cast_event(caster, Teleport(Vec3())))
    spells.tick(skill_info(Teleport(Vec3())).cooldown + 0.01)
    assert spells.cooldowns == []
    assert spells.try_cast("ep-a", Teleport(Vec3())) is not None


def test_melee_hits_only_nearby_others():
    world = World()
    spells = SpellSystem(world)
    caster = add_player(world, "a", "ep-a", Vec3())
    near = add_npc(world, Vec3(2.0, 0.0, 0.0))
    far = add_npc(world, Vec3(30.0, 0.0, 0.0))

    dealt = spells.do_cast(cast_event(caster, Melee()))

    assert [d.target for d in dealt] == [near.ent_id]
    base = NPC.PENGUIN.base_health().value
    assert near.health == Health(base - int(damage(Melee())))
    assert far.health == NPC.PENGUIN.base_health()
    assert caster.health == Health()


def test_aoe_excludes_caster():
    world = World()
    spells = SpellSystem(world)
    caster = add_player(world, "a", "ep-a", Vec3())
    other = add_player(world, "b", "ep-b", Vec3(10.0, 0.0, 0.0))

    dealt = spells.do_cast(cast_event(caster, Aoe(Vec3())))

    assert [d.target for d in dealt] == [other.ent_id]
    assert caster.health == Health()
    assert other.health == Health(Health().value - int(damage(Aoe(Vec3()))))


def test_killing_blow_removes_unit_and_drops_interactable():
    world = World()
    spells = SpellSystem(world)
    caster = add_player(world, "a", "ep-a", Vec3())
    victim = add_npc(world, Vec3(1.0, 0.0, 0.0), NPC.MAGE)

    spells.do_cast(cast_event(caster, Melee()))

    assert victim.ent_id not in world.units
    events = [event for _, event in world.take_outbox()]
    assert UnitDie(victim.ent_id, False) in events
    assert list(spells.interactables.values()) == [Vec3(1.0, 0.0, 0.0)]
    (new_id,) = spells.interactables
    assert SpawnInteractable(new_id, Vec3(1.0, 0.0, 0.0)) in events


def test_disappearing_unit_leaves_nothing():
    world = World()
    spells = SpellSystem(world)
    add_player(world, "a", "ep-a", Vec3())
    npc = add_npc(world, Vec3(3.0, 0.0, 0.0))

    assert spells.kill(npc.ent_id, True) is True
    assert npc.ent_id not in world.units
    assert spells.interactables == {}
    assert world.take_outbox() == [("ep-a", UnitDie(npc.ent_id, True))]


def test_kill_unknown_unit_still_broadcasts():
    world = World()
    spells = SpellSystem(world)
    add_player(world, "a", "ep-a", Vec3())
    ghost = NetEntId.random()
    assert spells.kill(ghost, False) is False
    assert world.take_outbox() == [("ep-a", UnitDie(ghost, False))]


def test_apply_damage_saturates_at_zero():
    world = World()
    spells = SpellSystem(world)
    npc = add_npc(world, Vec3())
    assert spells.apply_damage(npc.ent_id, 1000.0) == Health(0)
    assert npc.ent_id not in world.units
    assert spells.apply_damage(NetEntId.random(), 5.0) is None


def test_targeted_projectile_lands_after_one_second():
    world = World()
    spells = SpellSystem(world)
    caster = add_player(world, "a", "ep-a", Vec3())
    target = add_npc(world, Vec3(40.0, 0.0, 0.0))
    start = target.health.value

    spells.do_cast(cast_event(caster, ShootTargeted(Vec3(), target.ent_id)))
    spells.tick(0.5)
    assert target.health.value == start
    spells.tick(0.6)
    assert target.health == Health(start - int(damage(ShootTargeted(Vec3(), target.ent_id))))


def test_bullet_hits_once_and_not_its_caster():
    world = World()
    spells = SpellSystem(world)
    caster = add_player(world, "a", "ep-a", Vec3())
    target = add_npc(world, Vec3(10.0, 0.0, 0.0))
    start = target.health.value
    event = cast_event(caster, Shoot(ShootingData(Vec3(), Vec3(1.0, 0.0, 0.0))))

    spells.do_cast(event)
    spells.tick(0.2)
    spells.tick(0.01)

    expected = Health(start - int(damage(Shoot(ShootingData()))))
    assert target.health == expected
    assert caster.health == Health()
    events = [e for _, e in world.take_outbox()]
    hits = [e for e in events if isinstance(e, BulletHit)]
    assert hits == [BulletHit(event.cast.cast_id, target.ent_id)]


def test_tick_completes_active_cast():
    world = World()
    spells = SpellSystem(world)
    caster = add_player(world, "a", "ep-a", Vec3())
    cast_id = spells.try_cast("ep-a", Melee())

    info = skill_info(Melee())
    done = spells.tick(info.cast_point() + 0.01)
    assert done == [DoCast(SomeoneCast(caster.ent_id, cast_id, Melee()))]
    assert [c.cast_type for c in spells.cooldowns] == [Melee]

    assert spells.tick(info.total_duration()) == []
    assert caster.active_cast is None
import asyncio

import pytest

from hunters_mark.config import Config, MarkConfig
from hunters_mark.core.attributes import MODULE_NAMESPACE
from hunters_mark.core.components.caster_stats import CasterStats
from hunters_mark.core.components.disposition import FRIENDLY
from hunters_mark.core.events import MARKS_APPLIED
from hunters_mark.errors import (
    NoActiveMark,
    NoCapacity,
    NoTargetsSelected,
    NoUsesRemaining,
    NotACaster,
    PartialApplyError,
    StoreWriteFailed,
)
from hunters_mark.systems.marks.mark_system import USES_KEY


def _ranger(world, level=1, wis=1, prof=2, name="Aria"):
    return world.spawn_actor(
        name,
        0,
        0,
        hp=20,
        disposition=FRIENDLY,
        classes={"ranger": level},
        proficiency=prof,
        wisdom_mod=wis,
    )


def test_level_one_marks_first_candidate_only(world):
    ranger = _ranger(world)
    wolf = world.spawn_actor("Wolf", 100, 0)
    bear = world.spawn_actor("Bear", 200, 0)
    engine = world.mark_engine

    async def scenario():
        result = await engine.apply_marks(ranger, [wolf, bear])
        return (
            result,
            await engine.uses_consumed(ranger),
            await engine.store.get(wolf, ranger),
            await engine.store.get(bear, ranger),
        )

    result, used, wolf_mark, bear_mark = asyncio.run(scenario())
    assert result.marked == [wolf]
    assert result.capacity == 1
    assert result.uses_max == 3
    assert result.uses_remaining == 2
    assert result.die == "1d6"
    assert used == 1
    assert wolf_mark.die == "1d6"
    assert wolf_mark.origin == ranger
    assert wolf_mark.caster_name == "Aria"
    assert bear_mark is None


def test_level_six_two_targets_cost_one_use(world):
    ranger = _ranger(world, level=6)
    a = world.spawn_actor("A", 100, 0)
    b = world.spawn_actor("B", 200, 0)
    engine = world.mark_engine

    async def scenario():
        result = await engine.apply_marks(ranger, [a, b])
        return result, await engine.uses_consumed(ranger)

    result, used = asyncio.run(scenario())
    assert result.marked == [a, b]
    assert result.die == "1d8"
    assert result.capacity == 2
    assert result.slots_after == 0
    assert used == 1


def test_level_fourteen_three_targets_cost_one_use(world):
    ranger = _ranger(world, level=14, wis=3)
    targets = [world.spawn_actor(f"T{i}", 100 * i, 0) for i in range(1, 5)]
    engine = world.mark_engine

    async def scenario():
        result = await engine.apply_marks(ranger, targets)
        return result, await engine.uses_consumed(ranger)

    result, used = asyncio.run(scenario())
    assert result.marked == targets[:3]
    assert used == 1


def test_apply_count_limited_by_remaining_uses(world):
    # capacity 3 but only one use left
    ranger = _ranger(world, level=14, wis=-1, prof=2)
    targets = [world.spawn_actor(f"T{i}") for i in range(3)]
    engine = world.mark_engine

    async def scenario():
        return await engine.apply_marks(ranger, targets)

    result = asyncio.run(scenario())
    assert result.uses_max == 1
    assert result.marked == targets[:1]


def test_indicator_created_with_mark(world):
    ranger = _ranger(world)
    wolf = world.spawn_actor("Wolf", 100, 0)

    asyncio.run(world.mark_engine.apply_marks(ranger, [wolf]))
    indicator = world.effects.find_indicator(wolf, ranger)
    assert indicator is not None
    assert indicator.name == "Marked by Aria"
    assert indicator.icon == "icons/svg/target.svg"


def test_custom_indicator_icon(make_world):
    world = make_world(config=Config(marks=MarkConfig(indicator_icon="icons/mark.png")))
    ranger = _ranger(world)
    wolf = world.spawn_actor("Wolf")
    asyncio.run(world.mark_engine.apply_marks(ranger, [wolf]))
    assert world.effects.find_indicator(wolf, ranger).icon == "icons/mark.png"


def test_reapply_to_marked_target_costs_nothing(world):
    ranger = _ranger(world, level=6)
    wolf = world.spawn_actor("Wolf")
    engine = world.mark_engine

    async def scenario():
        await engine.apply_marks(ranger, [wolf])
        notes = len(world.notifier.history)
        again = await engine.apply_marks(ranger, [wolf])
        return again, await engine.uses_consumed(ranger), notes

    again, used, notes = asyncio.run(scenario())
    assert again.marked == []
    assert again.skipped == [wolf]
    assert used == 1
    assert len(world.notifier.history) == notes
    assert len(world.effects.effects_on(wolf)) == 1


def test_mixed_batch_skips_existing_and_marks_new(world):
    ranger = _ranger(world, level=6)
    wolf = world.spawn_actor("Wolf")
    bear = world.spawn_actor("Bear")
    engine = world.mark_engine

    async def scenario():
        await engine.apply_marks(ranger, [wolf])
        result = await engine.apply_marks(ranger, [wolf, bear])
        return result, await engine.uses_consumed(ranger)

    result, used = asyncio.run(scenario())
    # one slot left, so only the first candidate is considered
    assert result.skipped == [wolf]
    assert result.marked == []
    assert used == 1


def test_no_capacity(world):
    ranger = _ranger(world)
    wolf = world.spawn_actor("Wolf")
    bear = world.spawn_actor("Bear")
    engine = world.mark_engine

    async def scenario():
        await engine.apply_marks(ranger, [wolf])
        await engine.apply_marks(ranger, [bear])

    with pytest.raises(NoCapacity) as exc:
        asyncio.run(scenario())
    assert exc.value.message == "You already have 1/1 targets marked."


def test_no_uses_remaining_leaves_store_untouched(world):
    ranger = _ranger(world, wis=-2)
    wolf = world.spawn_actor("Wolf")
    engine = world.mark_engine

    async def scenario():
        with pytest.raises(NoUsesRemaining):
            await engine.apply_marks(ranger, [wolf])
        return await engine.store.marks_on(wolf), await engine.uses_consumed(ranger)

    assert asyncio.run(scenario()) == ({}, 0)


def test_uses_exhausted_after_spending(world):
    ranger = _ranger(world, wis=-1)  # one use per day
    wolf = world.spawn_actor("Wolf")
    bear = world.spawn_actor("Bear")
    engine = world.mark_engine

    async def scenario():
        await engine.apply_marks(ranger, [wolf])
        await engine.remove_mark(ranger, wolf)
        await engine.apply_marks(ranger, [bear])

    with pytest.raises(NoUsesRemaining):
        asyncio.run(scenario())


def test_no_targets_selected(world):
    ranger = _ranger(world)
    with pytest.raises(NoTargetsSelected):
        asyncio.run(world.mark_engine.apply_marks(ranger, []))


def test_capacity_checked_before_targets(world):
    ranger = _ranger(world)
    wolf = world.spawn_actor("Wolf")

    async def scenario():
        await world.mark_engine.apply_marks(ranger, [wolf])
        await world.mark_engine.apply_marks(ranger, [])

    with pytest.raises(NoCapacity):
        asyncio.run(scenario())


def test_non_ranger_cannot_mark(world):
    fighter = world.spawn_actor("Brute", classes={"fighter": 5})
    wolf = world.spawn_actor("Wolf")
    with pytest.raises(NotACaster):
        asyncio.run(world.mark_engine.apply_marks(fighter, [wolf]))


def test_capacity_counts_marks_across_all_targets(world):
    ranger = _ranger(world, level=6)
    a = world.spawn_actor("A")
    b = world.spawn_actor("B")
    c = world.spawn_actor("C")
    engine = world.mark_engine

    async def scenario():
        await engine.apply_marks(ranger, [a])
        result = await engine.apply_marks(ranger, [b, c])
        return result

    result = asyncio.run(scenario())
    assert result.slots_before == 1
    assert result.marked == [b]


def test_two_casters_mark_same_target_concurrently(world):
    r1 = _ranger(world, name="Aria")
    r2 = _ranger(world, name="Bram")
    wolf = world.spawn_actor("Wolf")
    engine = world.mark_engine

    async def scenario():
        await asyncio.gather(engine.apply_marks(r1, [wolf]), engine.apply_marks(r2, [wolf]))
        return await engine.store.marks_on(wolf)

    marks = asyncio.run(scenario())
    assert set(marks) == {r1, r2}
    assert world.effects.find_indicator(wolf, r1) is not None
    assert world.effects.find_indicator(wolf, r2) is not None


def test_concurrent_applies_by_one_caster_respect_capacity(world):
    ranger = _ranger(world, wis=3)
    a = world.spawn_actor("A")
    b = world.spawn_actor("B")
    engine = world.mark_engine

    async def scenario():
        results = await asyncio.gather(
            engine.apply_marks(ranger, [a]),
            engine.apply_marks(ranger, [b]),
            return_exceptions=True,
        )
        return results, await engine.uses_consumed(ranger)

    results, used = asyncio.run(scenario())
    assert sum(isinstance(r, NoCapacity) for r in results) == 1
    assert used == 1


def test_partial_failure_lists_marked_and_failed(world):
    ranger = _ranger(world, level=6)
    wolf = world.spawn_actor("Wolf")
    ghost = world.spawn_actor("Ghost")
    engine = world.mark_engine

    async def scenario():
        await world.destroy(ghost)
        with pytest.raises(PartialApplyError) as exc:
            await engine.apply_marks(ranger, [wolf, ghost])
        return exc.value, await engine.uses_consumed(ranger)

    error, used = asyncio.run(scenario())
    assert error.result.marked == [wolf]
    assert error.result.failed == [ghost]
    assert error.details == {"marked": [wolf], "failed": [ghost]}
    assert used == 1


def test_uses_write_failure_rolls_back_marks(world, monkeypatch):
    ranger = _ranger(world, level=6)
    wolf = world.spawn_actor("Wolf")
    engine = world.mark_engine
    real_set = world.attributes.set

    async def failing_set(entity, namespace, key, value):
        if key == USES_KEY:
            raise StoreWriteFailed("disk full")
        await real_set(entity, namespace, key, value)

    monkeypatch.setattr(world.attributes, "set", failing_set)

    async def scenario():
        with pytest.raises(StoreWriteFailed):
            await engine.apply_marks(ranger, [wolf])
        return (
            await engine.store.marks_on(wolf),
            await world.attributes.get(ranger, MODULE_NAMESPACE, USES_KEY),
        )

    assert asyncio.run(scenario()) == ({}, None)
    assert world.effects.find_indicator(wolf, ranger) is None


def test_summary_event_published(world):
    ranger = _ranger(world)
    wolf = world.spawn_actor("Wolf")
    seen = []
    world.bus.subscribe(MARKS_APPLIED, seen.append)

    asyncio.run(world.mark_engine.apply_marks(ranger, [wolf]))
    assert len(seen) == 1
    assert seen[0].marked == [wolf]
    assert "Aria applies Mark (1d6, force) to: Wolf" in world.notifier.messages()[-1]
    assert world.event_records[-1]["event_type"] == "MARK_APPLIED"


def test_potency_fixed_at_application(world):
    ranger = _ranger(world, level=4)
    wolf = world.spawn_actor("Wolf")
    engine = world.mark_engine

    async def scenario():
        await engine.apply_marks(ranger, [wolf])
        world.component_manager.get_component(ranger, CasterStats).classes["ranger"] = 9
        return await engine.store.get(wolf, ranger), await engine.status(ranger)

    mark, status = asyncio.run(scenario())
    assert mark.die == "1d6"
    assert status.die == "1d10"


def test_remove_mark(world):
    ranger = _ranger(world)
    wolf = world.spawn_actor("Wolf")
    engine = world.mark_engine

    async def scenario():
        await engine.apply_marks(ranger, [wolf])
        first = await engine.remove_mark(ranger, wolf)
        second = await engine.remove_mark(ranger, wolf)
        return first, second, await engine.store.get(wolf, ranger)

    assert asyncio.run(scenario()) == (True, False, None)
    assert world.effects.find_indicator(wolf, ranger) is None
    assert "Removed mark from Wolf." in world.notifier.messages()


def test_damage_bonus(make_world):
    world = make_world(config=Config(marks=MarkConfig(damage_type="necrotic")))
    ranger = _ranger(world, level=5)
    wolf = world.spawn_actor("Wolf")
    bear = world.spawn_actor("Bear")
    engine = world.mark_engine

    async def scenario():
        await engine.apply_marks(ranger, [wolf])
        return (
            await engine.damage_bonus(ranger, wolf),
            await engine.damage_bonus(ranger, bear),
            await engine.damage_bonus(wolf, ranger),
        )

    on_marked, on_unmarked, from_non_ranger = asyncio.run(scenario())
    assert on_marked.formula == "1d8[necrotic]"
    assert on_marked.flavor == "Hunter's Mark"
    assert on_unmarked is None
    assert from_non_ranger is None


def test_roll_mark_damage(make_world):
    world = make_world(roll=5)
    ranger = _ranger(world)
    wolf = world.spawn_actor("Wolf")
    engine = world.mark_engine

    async def scenario():
        await engine.apply_marks(ranger, [wolf])
        roll = await engine.roll_mark_damage(ranger, wolf)
        with pytest.raises(NoActiveMark):
            await engine.roll_mark_damage(ranger, ranger)
        return roll

    roll = asyncio.run(scenario())
    assert roll.total == 5
    assert world.roller.calls == ["1d6"]
    assert "Hunter's Mark: 1d6 force to Wolf (5)." in world.notifier.messages()


def test_status(world):
    ranger = _ranger(world, level=6)
    wolf = world.spawn_actor("Wolf")
    engine = world.mark_engine

    async def scenario():
        await engine.apply_marks(ranger, [wolf])
        return await engine.status(ranger)

    status = asyncio.run(scenario())
    assert status.die == "1d8"
    assert status.capacity == 2
    assert (status.uses_used, status.uses_max, status.uses_remaining) == (1, 3, 2)
    assert [(m.target, m.name, m.die) for m in status.marks] == [(wolf, "Wolf", "1d8")]

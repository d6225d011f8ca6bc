"""Tests for the conversation registry."""

import asyncio
import time

import pytest

from chatflow.models.conversation import State
from chatflow.session.registry import ConversationRegistry


def test_get_or_create_creates_in_initial_state(registry):
    handle = registry.get_or_create("1")

    assert handle.key == "1"
    assert handle.state == State.IDLE
    assert handle.extended_state.conversation_key == "1"
    assert handle.closed is False
    assert "1" in registry
    assert len(registry) == 1


def test_get_or_create_returns_same_handle(registry):
    assert registry.get_or_create("1") is registry.get_or_create("1")
    assert registry.get_or_create("1") is not registry.get_or_create("2")


@pytest.mark.parametrize("key", ["", None, 123])
def test_invalid_keys_rejected(registry, key):
    with pytest.raises(ValueError):
        registry.get_or_create(key)


def test_remove_closes_handle(registry):
    handle = registry.get_or_create("1")

    assert registry.remove("1") is True
    assert handle.closed is True
    assert registry.get("1") is None
    assert registry.remove("1") is False


def test_remove_after_recreate_starts_fresh(registry):
    old = registry.get_or_create("1")
    old.state = State.HELLO_FLOW_PROMPTING
    registry.remove("1")

    new = registry.get_or_create("1")

    assert new is not old
    assert new.state == State.IDLE


def test_remove_with_stale_handle_keeps_current(registry):
    old = registry.get_or_create("1")
    registry.remove("1")
    current = registry.get_or_create("1")

    assert registry.remove("1", old) is False
    assert registry.get("1") is current
    assert current.closed is False


def test_custom_initial_state():
    registry = ConversationRegistry(initial_state=State.ECHO_FLOW)
    assert registry.get_or_create("x").state == State.ECHO_FLOW


@pytest.mark.parametrize(
    "kwargs", [{"idle_timeout": 0}, {"idle_timeout": -5}, {"cleanup_interval": 0}]
)
def test_invalid_arguments(kwargs):
    with pytest.raises(ValueError):
        ConversationRegistry(**kwargs)


def test_stats(registry):
    registry.get_or_create("1")
    registry.get_or_create("2").state = State.HELLO_FLOW_PROMPTING
    registry.remove("1")

    stats = registry.get_stats()

    assert stats["active_conversations"] == 1
    assert stats["conversations_by_state"] == {"hello_flow_prompting": 1}
    assert stats["created_total"] == 2
    assert stats["removed_total"] == 1
    assert stats["evicted_total"] == 0
    assert stats["cleanup_running"] is False


@pytest.mark.asyncio
async def test_cleanup_idle_evicts_only_idle_conversations():
    registry = ConversationRegistry(idle_timeout=60)
    stale = registry.get_or_create("stale")
    stale.last_activity = time.time() - 120
    fresh = registry.get_or_create("fresh")

    evicted = await registry.cleanup_idle()

    assert evicted == 1
    assert stale.closed is True
    assert registry.active_keys() == ["fresh"]
    assert fresh.closed is False
    assert registry.get_stats()["evicted_total"] == 1


@pytest.mark.asyncio
async def test_cleanup_idle_skips_locked_conversations():
    registry = ConversationRegistry(idle_timeout=60)
    busy = registry.get_or_create("busy")
    busy.last_activity = time.time() - 120

    async with busy.lock:
        assert await registry.cleanup_idle() == 0
    assert "busy" in registry


@pytest.mark.asyncio
async def test_cleanup_idle_disabled_without_timeout(registry):
    handle = registry.get_or_create("1")
    handle.last_activity = 0

    assert await registry.cleanup_idle() == 0
    assert await registry.cleanup_idle(max_idle_seconds=10) == 1


@pytest.mark.asyncio
async def test_cleanup_task_lifecycle():
    registry = ConversationRegistry(idle_timeout=60, cleanup_interval=1)

    await registry.start_cleanup_task()
    assert registry.get_stats()["cleanup_running"] is True
    with pytest.raises(RuntimeError):
        await registry.start_cleanup_task()

    await registry.stop_cleanup_task()
    assert registry.get_stats()["cleanup_running"] is False


@pytest.mark.asyncio
async def test_cleanup_task_not_started_without_timeout(registry):
    await registry.start_cleanup_task()
    assert registry.get_stats()["cleanup_running"] is False
    await registry.stop_cleanup_task()


@pytest.mark.asyncio
async def test_distinct_keys_do_not_contend(registry):
    first = registry.get_or_create("a")
    second = registry.get_or_create("b")

    async with first.lock:
        await asyncio.wait_for(second.lock.acquire(), timeout=1)
        second.lock.release()

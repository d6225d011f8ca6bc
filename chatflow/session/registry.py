"""In-memory conversation registry.

This module maps conversation keys to live state-machine handles. Handles are
created lazily on first contact and removed when the conversation reaches its
terminal state.

Key Features:
- O(1) lookup and creation without a registry-wide lock
- One asyncio lock per conversation to serialize same-key processing
- Closed flag so waiters on a removed handle retry against a fresh one
- Optional background eviction of idle conversations

Example:
    ```python
    registry = ConversationRegistry(idle_timeout=3600)
    await registry.start_cleanup_task()

    handle = registry.get_or_create("12345")
    async with handle.lock:
        ...

    registry.remove("12345")
    await registry.stop_cleanup_task()
    ```
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from chatflow.config.constants import DEFAULT_CLEANUP_INTERVAL
from chatflow.config.logging_config import configure_logging
from chatflow.models.conversation import ExtendedState, State

logger = configure_logging("registry")


@dataclass
class ConversationHandle:
    """A live conversation: current state, extended state and its lock.

    Attributes:
        key: Conversation key
        state: Current state; only the engine mutates it
        extended_state: Per-conversation context for guards and actions
        lock: Serializes processing for this key
        closed: Set once the handle has been removed from the registry
        created_at: Creation time (epoch seconds)
        last_activity: Time of the last processed event (epoch seconds)
    """

    key: str
    state: State
    extended_state: ExtendedState
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    closed: bool = False
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)

    def touch(self) -> None:
        self.last_activity = time.time()

    def idle_seconds(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.time()) - self.last_activity


class ConversationRegistry:
    """Maps conversation keys to their live handles.

    All mutations happen without awaiting, so on a single event loop they are
    atomic and distinct keys never contend. Serializing work for one key is the
    job of the handle's lock, which callers hold around lookup, apply and
    removal.

    Args:
        initial_state: State new conversations start in
        idle_timeout: Seconds of inactivity before a conversation is evicted
            by the cleanup task. None disables eviction.
        cleanup_interval: Seconds between cleanup runs
    """

    def __init__(
        self,
        initial_state: State = State.IDLE,
        idle_timeout: Optional[int] = None,
        cleanup_interval: int = DEFAULT_CLEANUP_INTERVAL,
    ):
        if idle_timeout is not None and idle_timeout <= 0:
            raise ValueError("idle_timeout must be positive")
        if cleanup_interval <= 0:
            raise ValueError("cleanup_interval must be positive")

        self._initial_state = initial_state
        self._handles: Dict[str, ConversationHandle] = {}
        self._idle_timeout = idle_timeout
        self._cleanup_interval = cleanup_interval
        self._cleanup_task: Optional[asyncio.Task] = None
        self._created_total = 0
        self._removed_total = 0
        self._evicted_total = 0

        logger.info(
            f"Conversation registry initialized: idle_timeout={idle_timeout}, "
            f"cleanup_interval={cleanup_interval}s"
        )

    def get_or_create(self, key: str) -> ConversationHandle:
        """Return the live handle for ``key``, creating it in the initial state.

        Repeated calls before removal return the same handle.

        Raises:
            ValueError: If key is empty or not a string
        """
        if not key or not isinstance(key, str):
            raise ValueError("conversation key must be a non-empty string")

        handle = self._handles.get(key)
        if handle is None:
            handle = ConversationHandle(
                key=key,
                state=self._initial_state,
                extended_state=ExtendedState(conversation_key=key),
            )
            self._handles[key] = handle
            self._created_total += 1
            logger.debug(f"Created conversation {key}")
        return handle

    def get(self, key: str) -> Optional[ConversationHandle]:
        return self._handles.get(key)

    def remove(self, key: str, handle: Optional[ConversationHandle] = None) -> bool:
        """Remove the conversation for ``key`` and mark its handle closed.

        Args:
            key: Conversation key
            handle: If given, only remove when it is still the registered handle

        Returns:
            True if a handle was removed
        """
        current = self._handles.get(key)
        if current is None or (handle is not None and current is not handle):
            return False

        del self._handles[key]
        current.closed = True
        self._removed_total += 1
        logger.debug(f"Removed conversation {key}")
        return True

    def active_keys(self) -> List[str]:
        return list(self._handles.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    async def cleanup_idle(self, max_idle_seconds: Optional[float] = None) -> int:
        """Evict conversations idle for longer than ``max_idle_seconds``.

        Conversations whose lock is held are never evicted.

        Args:
            max_idle_seconds: Idle limit; defaults to the configured idle timeout

        Returns:
            Number of conversations evicted
        """
        limit = max_idle_seconds if max_idle_seconds is not None else self._idle_timeout
        if limit is None:
            return 0

        now = time.time()
        expired = [
            handle
            for handle in self._handles.values()
            if not handle.lock.locked() and handle.idle_seconds(now) > limit
        ]
        evicted = 0
        for handle in expired:
            if self.remove(handle.key, handle):
                evicted += 1
                logger.info(
                    f"Evicted idle conversation {handle.key} in state {handle.state.name} "
                    f"after {handle.idle_seconds(now):.0f}s"
                )
        self._evicted_total += evicted
        return evicted

    async def start_cleanup_task(self) -> None:
        """Start the background idle-eviction task.

        Does nothing when no idle timeout is configured.

        Raises:
            RuntimeError: If the cleanup task is already running
        """
        if self._idle_timeout is None:
            logger.debug("Idle eviction disabled; cleanup task not started")
            return
        if self._cleanup_task is not None and not self._cleanup_task.done():
            raise RuntimeError("Cleanup task is already running")

        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.info("Background cleanup task started")

    async def stop_cleanup_task(self) -> None:
        """Stop the background cleanup task and wait for it to finish."""
        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            logger.info("Background cleanup task stopped")
        self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._cleanup_interval)
                evicted = await self.cleanup_idle()
                if evicted > 0:
                    logger.info(f"Evicted {evicted} idle conversations")
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in cleanup loop: {e}")

    def get_stats(self) -> Dict[str, Any]:
        """Registry statistics for health reporting."""
        states: Dict[str, int] = {}
        for handle in self._handles.values():
            states[handle.state.value] = states.get(handle.state.value, 0) + 1

        return {
            "active_conversations": len(self._handles),
            "conversations_by_state": states,
            "created_total": self._created_total,
            "removed_total": self._removed_total,
            "evicted_total": self._evicted_total,
            "idle_timeout": self._idle_timeout,
            "cleanup_running": self._cleanup_task is not None and not self._cleanup_task.done(),
        }

"""Entitlement (license) state and the simulated purchase lifecycle."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from loguru import logger

from core.services.interfaces import EntitlementPersistence

DEFAULT_ENTITLEMENT_KEY = "isPremium"
DEFAULT_PURCHASE_DELAY = 1.0
NO_PREVIOUS_PURCHASE = "No previous purchase found"


class EntitlementState:
    """Boolean license flag loaded once from persistence and written through."""

    def __init__(self, persistence: EntitlementPersistence, key: str = DEFAULT_ENTITLEMENT_KEY):
        self._persistence = persistence
        self._key = key
        self._value = bool(persistence.get(key))
        self._listeners: list[Callable[[bool], None]] = []

    @property
    def is_entitled(self) -> bool:
        return self._value

    def persisted_value(self) -> bool:
        """Read the flag as currently stored, ignoring the in-memory copy."""
        return bool(self._persistence.get(self._key))

    def set(self, value: bool) -> None:
        """Update and persist the flag, notifying listeners on change."""
        value = bool(value)
        changed = value != self._value
        self._value = value
        self._persistence.set(self._key, value)
        if changed:
            logger.info("Entitlement changed: {}", value)
            for listener in list(self._listeners):
                listener(value)

    def subscribe(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        """Register `listener(value)`; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe


class EntitlementService:
    """Stubbed purchase flow: each operation waits a fixed delay then flips the flag.

    Calls made while another one is processing are ignored and return False.
    """

    def __init__(self, state: EntitlementState, delay: float = DEFAULT_PURCHASE_DELAY) -> None:
        self._state = state
        self._delay = max(0.0, float(delay))
        self.is_processing = False
        self.error: str | None = None
        self._processing_listeners: list[Callable[[bool], None]] = []

    @property
    def state(self) -> EntitlementState:
        return self._state

    def subscribe_processing(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        """Register `listener(is_processing)` for busy-state flips."""
        self._processing_listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._processing_listeners:
                self._processing_listeners.remove(listener)

        return _unsubscribe

    async def upgrade(self) -> bool:
        """Simulate a purchase; always grants the entitlement."""
        return await self._run("upgrade", lambda: True)

    async def restore(self) -> bool:
        """Simulate restoring purchases from the persisted flag."""

        def _resolve() -> bool | None:
            if self._state.persisted_value():
                return True
            return None

        return await self._run("restore", _resolve)

    async def reset(self) -> bool:
        """Revoke the entitlement."""
        return await self._run("reset", lambda: False)

    async def _run(self, name: str, resolve: Callable[[], bool | None]) -> bool:
        if self.is_processing:
            logger.info("Purchase {} ignored: another operation is processing", name)
            return False
        self._set_processing(True)
        try:
            await asyncio.sleep(self._delay)
            value = resolve()
            if value is None:
                self.error = NO_PREVIOUS_PURCHASE
                logger.info("Purchase {}: {}", name, NO_PREVIOUS_PURCHASE)
                return False
            self._state.set(value)
            self.error = None
            logger.info("Purchase {} completed: entitled={}", name, value)
            return True
        finally:
            self._set_processing(False)

    def _set_processing(self, value: bool) -> None:
        self.is_processing = value
        for listener in list(self._processing_listeners):
            listener(value)

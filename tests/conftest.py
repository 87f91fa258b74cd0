"""Shared fakes and fixtures for the photo triage tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest

from core.models import AssetHandle, AuthorizationStatus
from core.services.entitlement import EntitlementState
from core.services.interfaces import AssetProviderError, AssetRecord, DeleteResult
from core.services.lifecycle_store import CollectionLifecycleStore

BASE_DATE = datetime(2024, 6, 30, 12, 0, 0)


class MemoryPersistence:
    """In-memory stand-in for the entitlement store."""

    def __init__(self, values: dict[str, bool] | None = None) -> None:
        self.values = dict(values or {})
        self.writes: list[tuple[str, bool]] = []

    def get(self, key: str) -> bool:
        return bool(self.values.get(key, False))

    def set(self, key: str, value: bool) -> None:
        self.values[key] = value
        self.writes.append((key, value))


class FakeProvider:
    """Asset provider whose assets are named strings; image bytes equal the name."""

    def __init__(self, names: list[str], status=AuthorizationStatus.AUTHORIZED) -> None:
        self.status = status
        self.records = [
            AssetRecord(AssetHandle(name), BASE_DATE - timedelta(days=i))
            for i, name in enumerate(names)
        ]
        self.fail_images: set[str] = set()
        self.delays: dict[str, float] = {}
        self.revoke_on: str | None = None
        self.fetch_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.fail_deletes: set[str] = set()
        self.use_gate = False
        self._gate: asyncio.Event | None = None
        self.fetch_calls = 0
        self.resolve_sizes: list[int] = []
        self.delete_calls: list[frozenset[AssetHandle]] = []

    def gate(self) -> asyncio.Event:
        if self._gate is None:
            self._gate = asyncio.Event()
        return self._gate

    async def request_access(self) -> AuthorizationStatus:
        return self.status

    def authorization_status(self) -> AuthorizationStatus:
        return self.status

    def fetch_all(self) -> list[AssetRecord]:
        self.fetch_calls += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.records)

    async def resolve_image(self, handle: AssetHandle, target_size: int) -> bytes | None:
        name = handle.local_identifier
        self.resolve_sizes.append(target_size)
        await asyncio.sleep(self.delays.get(name, 0))
        if self.use_gate:
            await self.gate().wait()
        if name == self.revoke_on:
            self.status = AuthorizationStatus.DENIED
        if name in self.fail_images:
            raise AssetProviderError(f"cannot decode {name}")
        return name.encode()

    async def delete(self, handles: frozenset[AssetHandle]) -> DeleteResult:
        self.delete_calls.append(handles)
        await asyncio.sleep(0)
        if self.delete_error is not None:
            raise self.delete_error
        failed = [(h, "locked") for h in handles if h.local_identifier in self.fail_deletes]
        deleted = frozenset(h for h in handles if h.local_identifier not in self.fail_deletes)
        error = "locked" if failed and not deleted else None
        return DeleteResult(deleted=deleted, failed=failed, error=error)


def names(count: int) -> list[str]:
    return [f"a{i}" for i in range(count)]


def photo_names(photos) -> list[str]:
    return [p.image.decode() for p in photos]


def find(photos, name: str):
    for p in photos:
        if p.image.decode() == name:
            return p
    raise AssertionError(f"{name} not found")


def make_store(provider, entitled: bool = False, quota: int = 10):
    persistence = MemoryPersistence({"isPremium": entitled})
    state = EntitlementState(persistence)
    store = CollectionLifecycleStore(provider, state, free_quota=quota)
    return store, state


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(names(5))


@pytest.fixture
def loaded_store(provider):
    store, _state = make_store(provider, entitled=True)
    asyncio.run(store.refresh())
    return store

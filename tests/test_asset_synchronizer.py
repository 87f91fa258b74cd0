"""Tests for AssetSynchronizer batching, ordering and failure handling."""

import asyncio
from datetime import datetime

from conftest import FakeProvider, names, photo_names

from core.models import AssetHandle, AuthorizationStatus
from core.services.asset_synchronizer import AssetSynchronizer
from core.services.interfaces import AssetProviderError, AssetRecord, SyncStatus


def test_result_is_sorted_regardless_of_completion_order():
    provider = FakeProvider(names(6))
    # oldest assets finish first
    provider.delays = {f"a{i}": 0.001 * (6 - i) for i in range(6)}

    result = asyncio.run(AssetSynchronizer(provider).synchronize())

    assert result.status is SyncStatus.OK
    assert photo_names(result.photos) == names(6)
    dates = [p.date for p in result.photos]
    assert dates == sorted(dates, reverse=True)


def test_identity_map_covers_every_photo():
    provider = FakeProvider(names(4))

    result = asyncio.run(AssetSynchronizer(provider).synchronize())

    assert len({p.id for p in result.photos}) == 4
    assert set(result.identity_map) == {p.id for p in result.photos}
    for photo in result.photos:
        assert result.identity_map[photo.id].local_identifier == photo.image.decode()


def test_failed_materializations_are_excluded():
    provider = FakeProvider(names(5))
    provider.fail_images = {"a1", "a3"}

    result = asyncio.run(AssetSynchronizer(provider).synchronize())

    assert photo_names(result.photos) == ["a0", "a2", "a4"]
    assert len(result.identity_map) == 3


def test_target_size_is_passed_to_provider():
    provider = FakeProvider(names(3))

    asyncio.run(AssetSynchronizer(provider, target_size=320).synchronize())

    assert provider.resolve_sizes == [320, 320, 320]


def test_bounded_concurrency_still_loads_everything():
    provider = FakeProvider(names(9))

    result = asyncio.run(AssetSynchronizer(provider, max_concurrency=2).synchronize())

    assert len(result.photos) == 9


def test_unauthorized_skips_fetch():
    provider = FakeProvider(names(3), status=AuthorizationStatus.NOT_DETERMINED)

    result = asyncio.run(AssetSynchronizer(provider).synchronize())

    assert result.status is SyncStatus.UNAUTHORIZED
    assert result.photos == ()
    assert provider.fetch_calls == 0


def test_limited_access_is_enough_to_sync():
    provider = FakeProvider(names(2), status=AuthorizationStatus.LIMITED)

    result = asyncio.run(AssetSynchronizer(provider).synchronize())

    assert result.status is SyncStatus.OK
    assert len(result.photos) == 2


def test_revocation_mid_flight_yields_empty_result():
    provider = FakeProvider(names(4))
    provider.revoke_on = "a2"

    result = asyncio.run(AssetSynchronizer(provider).synchronize())

    assert result.status is SyncStatus.UNAUTHORIZED
    assert result.photos == ()
    assert result.identity_map == {}


def test_enumeration_failure_yields_empty_failed_result():
    provider = FakeProvider(names(4))
    provider.fetch_error = AssetProviderError("database locked")

    result = asyncio.run(AssetSynchronizer(provider).synchronize())

    assert result.status is SyncStatus.FAILED
    assert result.error == "database locked"
    assert result.photos == ()


def test_duplicate_handles_are_materialized_once():
    provider = FakeProvider(names(2))
    provider.records.append(AssetRecord(AssetHandle("a0"), datetime(2020, 1, 1)))

    result = asyncio.run(AssetSynchronizer(provider).synchronize())

    assert photo_names(result.photos) == ["a0", "a1"]


def test_missing_creation_date_falls_back_to_now():
    provider = FakeProvider([])
    provider.records = [AssetRecord(AssetHandle("undated"), None)]
    before = datetime.now()

    result = asyncio.run(AssetSynchronizer(provider).synchronize())

    assert result.photos[0].date >= before

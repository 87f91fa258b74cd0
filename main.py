from __future__ import annotations

import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication
from loguru import logger

from app.viewmodels.main_vm import MainVM
from app.views.main_window import MainWindow
from core.services.asset_synchronizer import DEFAULT_TARGET_SIZE, AssetSynchronizer
from core.services.entitlement import (
    DEFAULT_ENTITLEMENT_KEY,
    DEFAULT_PURCHASE_DELAY,
    EntitlementService,
    EntitlementState,
)
from core.services.lifecycle_store import FREE_PHOTO_QUOTA, CollectionLifecycleStore
from infrastructure.delete_service import DeleteService
from infrastructure.entitlement_store import JsonEntitlementStore
from infrastructure.folder_provider import FolderAssetProvider
from infrastructure.image_service import ImageService
from infrastructure.logging import get_app_data_directory, init_logging
from infrastructure.settings import JsonSettings

BASE_DIR = Path(__file__).parent


def build_store(settings: JsonSettings) -> tuple[CollectionLifecycleStore, EntitlementService]:
    """Wire provider, synchronizer, entitlement and store from `settings`."""
    root = settings.get_path("library.root") or Path.home() / "Pictures"
    extensions = settings.get("library.extensions")
    delete_dir = settings.get_path("delete.audit_log_dir")
    provider = FolderAssetProvider(
        root,
        image_service=ImageService(settings),
        delete_service=DeleteService(str(delete_dir) if delete_dir else None),
        extensions=extensions if isinstance(extensions, list) else None,
    )
    synchronizer = AssetSynchronizer(
        provider,
        target_size=settings.get_int("sync.target_size", DEFAULT_TARGET_SIZE),
        max_concurrency=settings.get_int("sync.max_concurrency", 0),
    )

    store_path = settings.get_path("entitlement.store_path") or (
        get_app_data_directory() / "entitlement.json"
    )
    state = EntitlementState(
        JsonEntitlementStore(store_path),
        key=str(settings.get("entitlement.key", DEFAULT_ENTITLEMENT_KEY)),
    )
    delay = settings.get_float("entitlement.purchase_delay_seconds", DEFAULT_PURCHASE_DELAY)
    purchases = EntitlementService(state, delay=delay)
    store = CollectionLifecycleStore(
        provider,
        state,
        synchronizer=synchronizer,
        free_quota=settings.get_int("entitlement.free_quota", FREE_PHOTO_QUOTA),
    )
    logger.info("Library root: {} | entitlement store: {}", root, store_path)
    return store, purchases


def main() -> int:
    init_logging()
    settings = JsonSettings(BASE_DIR / "settings.json")

    app = QApplication(sys.argv)

    store, purchases = build_store(settings)
    vm = MainVM(store, purchases)
    win = MainWindow(vm)
    win.show()
    vm.start()

    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())

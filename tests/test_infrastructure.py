"""Tests for settings, logging paths, date helpers, image cache, trash and entitlement store."""

import csv
from datetime import datetime
import json
import os

from PIL import Image

from infrastructure import delete_service
from infrastructure import logging as app_logging
from infrastructure.delete_service import DeleteService
from infrastructure.entitlement_store import JsonEntitlementStore
from infrastructure.image_service import ImageService
from infrastructure.logging import find_latest_log_file, get_app_data_directory
from infrastructure.settings import JsonSettings
from infrastructure.utils import format_display_date, parse_exif_datetime


def test_settings_dotted_access(tmp_path, monkeypatch):
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"sync": {"target_size": "640", "bad": "x"}, "library": {"root": "~/pics"}}),
        encoding="utf-8",
    )
    monkeypatch.setenv("HOME", str(tmp_path))
    settings = JsonSettings(path)

    assert settings.get("sync.target_size") == "640"
    assert settings.get("sync.missing", 3) == 3
    assert settings.get_int("sync.target_size", 800) == 640
    assert settings.get_int("sync.bad", 800) == 800
    assert settings.get_float("sync.missing", 1.5) == 1.5
    assert settings.get_path("library.root") == tmp_path / "pics"
    assert settings.get_path("library.none") is None


def test_app_data_directory_prefers_localappdata(tmp_path, monkeypatch):
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path))
    assert get_app_data_directory() == tmp_path / "PhotoTriage"


def test_find_latest_log_file(tmp_path):
    assert find_latest_log_file(str(tmp_path / "none")) is None
    old = tmp_path / "app_20240101.log"
    new = tmp_path / "app_20240102.log"
    old.write_text("old", encoding="utf-8")
    new.write_text("new", encoding="utf-8")
    os.utime(old, (1, 1))

    assert find_latest_log_file(str(tmp_path)) == new


def test_open_latest_log_opens_newest_file(tmp_path, monkeypatch):
    opened = []
    monkeypatch.setattr(
        app_logging, "open_file_in_default_app", lambda path: opened.append(path) or True
    )

    assert not app_logging.open_latest_log(str(tmp_path))
    log_file = tmp_path / "app_20240101.log"
    log_file.write_text("line", encoding="utf-8")

    assert app_logging.open_latest_log(str(tmp_path))
    assert opened == [str(log_file)]


def test_parse_exif_datetime_formats():
    assert parse_exif_datetime("2020:01:02 03:04:05") == datetime(2020, 1, 2, 3, 4, 5)
    assert parse_exif_datetime("2020/01/02 03:04:05") == datetime(2020, 1, 2, 3, 4, 5)
    assert parse_exif_datetime("garbage") is None
    assert parse_exif_datetime(None) is None
    assert format_display_date(datetime(2020, 1, 2)) == "January 02, 2020"
    assert format_display_date(None) == ""


def test_image_service_caches_and_rejects_non_images(tmp_path):
    img_path = tmp_path / "p.png"
    Image.new("RGBA", (50, 40), (0, 0, 255, 128)).save(img_path)
    txt_path = tmp_path / "x.png"
    txt_path.write_text("nope", encoding="utf-8")
    service = ImageService()

    first = service.get_thumbnail_bytes(str(img_path), 32)
    second = service.get_thumbnail_bytes(str(img_path), 32)

    assert first is second
    assert service.cached_count == 1
    assert service.get_thumbnail_bytes(str(txt_path), 32) is None
    assert service.get_thumbnail_bytes(str(tmp_path / "missing.jpg"), 32) is None


def test_delete_service_writes_audit_log(tmp_path, monkeypatch):
    target = tmp_path / "doomed.jpg"
    target.write_bytes(b"x")
    monkeypatch.setattr(delete_service, "send2trash", os.remove)
    service = DeleteService(str(tmp_path / "logs"))

    report = service.execute_delete([str(target), str(tmp_path / "ghost.jpg")])

    assert report.success_paths == [str(target)]
    assert report.failed == [(str(tmp_path / "ghost.jpg"), "File does not exist")]
    with open(report.log_path, encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["FilePath", "Success", "Reason"]
    assert rows[1] == [str(target), "1", ""]
    assert rows[2][1] == "0"


def test_delete_service_reports_trash_errors(tmp_path, monkeypatch):
    target = tmp_path / "stuck.jpg"
    target.write_bytes(b"x")

    def refuse(_path):
        raise OSError("permission denied")

    monkeypatch.setattr(delete_service, "send2trash", refuse)

    report = DeleteService(str(tmp_path / "logs")).delete_to_recycle([str(target)])

    assert report.success_paths == []
    assert report.failed == [(str(target), "permission denied")]


def test_entitlement_store_round_trip(tmp_path):
    path = tmp_path / "state" / "entitlement.json"
    store = JsonEntitlementStore(path)
    assert store.get("isPremium") is False

    store.set("isPremium", True)

    assert JsonEntitlementStore(path).get("isPremium") is True
    assert not path.with_name("entitlement.json.tmp").exists()


def test_entitlement_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "entitlement.json"
    path.write_text("{not json", encoding="utf-8")

    store = JsonEntitlementStore(path)

    assert store.get("isPremium") is False
    store.set("isPremium", True)
    assert json.loads(path.read_text(encoding="utf-8")) == {"isPremium": True}

from datetime import datetime

from core.models import Photo, new_photo_id
from core.services.sort_service import SortService


def _photo(dt: datetime, tag: str) -> Photo:
    return Photo(id=new_photo_id(), image=tag.encode(), date=dt)


def test_newest_first_is_stable_for_equal_dates():
    same = datetime(2023, 3, 1)
    photos = [_photo(same, "x"), _photo(datetime(2023, 4, 1), "new"), _photo(same, "y")]

    ordered = SortService().newest_first(photos)

    assert [p.image for p in ordered] == [b"new", b"x", b"y"]


def test_group_by_month_orders_months_descending():
    photos = [
        _photo(datetime(2022, 12, 31), "dec"),
        _photo(datetime(2023, 1, 15), "jan-a"),
        _photo(datetime(2023, 1, 2), "jan-b"),
    ]

    groups = SortService().group_by_month(photos)

    assert [label for label, _ in groups] == ["January 2023", "December 2022"]
    assert [p.image for p in groups[0][1]] == [b"jan-a", b"jan-b"]


def test_photo_equality_uses_id_only():
    pid = new_photo_id()
    a = Photo(id=pid, image=b"1", date=datetime(2020, 1, 1))
    b = Photo(id=pid, image=b"2", date=datetime(2021, 1, 1))

    assert a == b
    assert len({a, b}) == 1

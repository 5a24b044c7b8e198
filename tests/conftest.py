import pytest

from stockroom import settings
from stockroom.schemas import AppState, InventoryItem, Location, Stock
from stockroom.seed_data import default_locations, demo_state


@pytest.fixture(autouse=True)
def isolated_output(tmp_path, monkeypatch):
    """Keeps every test's files and webhook settings away from the real configuration."""
    monkeypatch.setattr(settings, "OUTPUT_DIR", tmp_path / "output")
    monkeypatch.setattr(settings, "WEBHOOK_URL", None)
    monkeypatch.setattr(settings, "SAVE_JSON_OUTPUT", False)


@pytest.fixture
def locations() -> list[Location]:
    return default_locations()


@pytest.fixture
def state() -> AppState:
    return demo_state()


def make_item(item_id, description=None, category=None, sub_category=None, usage=None, low=None):
    return InventoryItem(
        id=item_id,
        description=description or f"{item_id} DESCRIPTION",
        category=category,
        sub_category=sub_category,
        prior_usage=[{"year": year, "usage": value} for year, value in (usage or {}).items()],
        low_alert_quantity=low,
    )


def make_stock(item_id, location_id, quantity, sub_location=None, **extra):
    return Stock(
        item_id=item_id,
        location_id=location_id,
        quantity=quantity,
        sub_location_detail=sub_location,
        **extra,
    )


class FakeResponse:
    def __init__(self, status_code=200, payload=None, etag=None):
        self.status_code = status_code
        self._payload = payload
        self.headers = {"ETag": etag} if etag else {}

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._payload


class FakeSession:
    """Stands in for requests.Session: replays queued PUT statuses and records requests."""

    def __init__(self, document, put_statuses=()):
        self.document = document
        self.version = 1
        self.put_statuses = list(put_statuses)
        self.puts = []

    def get(self, url, headers=None, timeout=None):
        return FakeResponse(200, self.document, etag=f'"v{self.version}"')

    def put(self, url, json=None, headers=None, timeout=None):
        self.puts.append(headers or {})
        status = self.put_statuses.pop(0) if self.put_statuses else 200
        if status == 200:
            self.document = json
            self.version += 1
        return FakeResponse(status)

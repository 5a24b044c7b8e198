import pandas as pd
import pytest

from stockroom import data_handler, settings
from stockroom.pipelines.exports import LabelPipeline, ListingsExportPipeline, ReportPipeline
from stockroom.pipelines.imports import ImportPipeline
from stockroom.store import MemoryStore


@pytest.fixture
def store(state):
    return MemoryStore(state)


@pytest.fixture
def webhook_calls(monkeypatch):
    calls = []

    def fake_post(records, metadata=None, report_type=""):
        calls.append((records, metadata, report_type))
        return True

    monkeypatch.setattr(data_handler, "post_to_webhook", fake_post)
    return calls


def write_csv(tmp_path, text):
    path = tmp_path / "import.csv"
    path.write_text(text, encoding="utf-8")
    return path


def test_import_pipeline_updates_store(tmp_path, store, caplog):
    path = write_csv(
        tmp_path,
        "ID,DESCRIPTION,LOCATION,QTY\n"
        "563-11-SAMP,11 INCH,WH-K,40\n"
        "NEW-1,NEW,INSPECT,3\n"
        "NEW-1,NEW,BASEMENT,1\n",
    )

    result = ImportPipeline(path, store).run()

    state = store.load()
    assert [item.id for item in state.items] == ["563-11-SAMP", "563-15-SAMP", "NEW-1"]
    assert [(row.location_id, row.quantity) for row in state.stock if row.item_id == "563-11-SAMP"] == [
        ("wh-k", 40)
    ]
    assert len(result.skipped) == 1
    assert "Item 'NEW-1' for location 'BASEMENT'" in caplog.text


def test_import_pipeline_rejects_bad_header(tmp_path, store, state):
    path = write_csv(tmp_path, "ID,NAME\nA,B\n")
    assert ImportPipeline(path, store).run() is None
    assert store.load() == state


def test_import_pipeline_missing_file(tmp_path, store):
    assert ImportPipeline(tmp_path / "nope.csv", store).run() is None


def test_listings_export_round_trips_through_import(store, state):
    pipeline = ListingsExportPipeline(store)
    pipeline.run()

    exported = pd.read_csv(
        pipeline.output_path, dtype=str, keep_default_na=False, encoding="utf-8-sig"
    )
    assert len(exported) == 4
    assert set(exported["LOCATION"]) == {"WH-C", "PROD"}

    reimport = MemoryStore(state.model_copy(update={"stock": []}))
    ImportPipeline(pipeline.output_path, reimport).run()
    assert sorted((r.item_id, r.location_id, r.quantity) for r in reimport.load().stock) == sorted(
        (r.item_id, r.location_id, r.quantity) for r in state.stock
    )


def test_report_pipeline_posts_to_webhook(store, webhook_calls):
    rows = ReportPipeline(store, "category", "OUTDOOR LED BOARD").run()

    assert len(rows) == 4
    records, metadata, report_type = webhook_calls[0]
    assert report_type == "category"
    assert metadata["Items"] == 2
    assert list(settings.OUTPUT_DIR.glob("inventory_report_*.csv"))


def test_report_pipeline_test_mode_skips_webhook(store, webhook_calls):
    ReportPipeline(store, "all", test_mode=True).run()
    assert webhook_calls == []


def test_report_pipeline_with_nothing_to_report(store, webhook_calls):
    assert ReportPipeline(store, "low-alert").run() is None
    assert webhook_calls == []


def test_label_pipeline(store, webhook_calls):
    labels = LabelPipeline(store, "location", "wh-c").run()

    assert [(label.item_id, label.location_name) for label in labels] == [
        ("563-11-SAMP", "WH-C"),
        ("563-15-SAMP", "WH-C"),
    ]
    assert labels[0].sub_location_detail is None
    assert webhook_calls == []

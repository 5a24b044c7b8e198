import pytest
from conftest import make_item, make_stock

from stockroom import mutations, reports
from stockroom.exceptions import MissingFieldError
from stockroom.schemas import AppState


def test_listing_frame_has_one_row_per_stock_row(state, locations):
    df = reports.build_listing_frame(state, locations, usage_years=[2023, 2024, 2025])

    assert list(df.columns) == [
        "ID", "DESCRIPTION", "CATEGORY", "SUB_CATEGORY", "LOW_ALERT_QTY",
        "USAGE_2023", "USAGE_2024", "USAGE_2025",
        "AVG_USAGE", "ETR", "LOCATION", "SUB_LOCATION", "QTY", "SOURCE", "PO_NUMBER", "DATE_RECEIVED",
    ]
    assert len(df) == 4
    first = df.iloc[0]
    assert first["LOCATION"] == "WH-C"
    assert first["AVG_USAGE"] == "1100"
    assert first["ETR"] == "10.6 MONTHS"


def test_listing_frame_includes_items_without_stock(locations):
    state = AppState(items=[make_item("EMPTY")])
    df = reports.build_listing_frame(state, locations, usage_years=[2025])

    assert len(df) == 1
    row = df.iloc[0]
    assert (row["ID"], row["QTY"], row["LOCATION"], row["AVG_USAGE"], row["ETR"]) == ("EMPTY", 0, "", "", "N/A")


def test_select_report_items(state):
    assert len(reports.select_report_items(state, "all")) == 2
    assert len(reports.select_report_items(state, "category", "OUTDOOR LED BOARD")) == 2
    assert [i.id for i in reports.select_report_items(state, "single", "563-15-SAMP")] == ["563-15-SAMP"]
    assert [
        i.id for i in reports.select_report_items(state, "selected", selected_ids={"563-11-SAMP"})
    ] == ["563-11-SAMP"]
    assert reports.select_report_items(state, "low-alert") == []

    with pytest.raises(MissingFieldError):
        reports.select_report_items(state, "category")


def test_low_alert_report_uses_total_stock(state):
    moved = mutations.edit_item(state, state.items[1], [make_stock("563-15-SAMP", "wh-c", 50)])
    assert [i.id for i in reports.select_report_items(moved, "low-alert")] == ["563-15-SAMP"]


def test_generate_report_data(locations):
    items = [make_item("A", category="CAT"), make_item("B")]
    stock = [
        make_stock("A", "wh-j", 3, sub_location="RACK 1"),
        make_stock("A", "gone", 2, source="PO", po_number="PO-1", date_received="2025-02-02"),
    ]

    rows = reports.generate_report_data(items, stock, locations)

    assert [(r.id, r.location_name, r.quantity) for r in rows] == [
        ("A", "WH-J", 3),
        ("A", "UNKNOWN LOCATION", 2),
        ("B", "N/A", 0),
    ]
    assert rows[0].sub_location_detail == "RACK 1"
    assert (rows[1].source, rows[1].po_number) == ("PO", "PO-1")

    df = reports.report_frame(rows)
    assert list(df.columns)[:4] == ["ID", "Description", "Category", "Sub-Category"]
    assert df.iloc[2]["Location"] == "N/A"


def test_labels_for_selected_items(state, locations):
    labels = reports.build_labels(state, locations, "selected", selected_ids={"563-11-SAMP"})
    assert [(label.item_id, label.location_name) for label in labels] == [
        ("563-11-SAMP", "WH-C"),
        ("563-11-SAMP", "PROD"),
    ]


def test_labels_for_a_location_only_cover_that_location(state, locations):
    labels = reports.build_labels(state, locations, "location", "prod")
    assert {label.location_name for label in labels} == {"PROD"}
    assert len(labels) == 2


def test_labels_for_item_without_stock(state, locations):
    state = mutations.import_data(state, [make_item("EMPTY", category="BARE")], [])
    labels = reports.build_labels(state, locations, "category", "BARE")
    assert [(label.item_id, label.location_name) for label in labels] == [("EMPTY", "NO STOCK")]


def test_labels_need_a_selection(state, locations):
    with pytest.raises(MissingFieldError):
        reports.build_labels(state, locations, "selected")

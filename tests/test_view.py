import pytest
from conftest import make_item, make_stock

from stockroom import view as view_engine
from stockroom.schemas import GroupMode, SortDirection, SortKey, ViewState
from stockroom.utils import locale_compare


@pytest.fixture
def catalogue():
    items = [
        make_item("B-200", "BLUE PANEL", category="PANELS", sub_category="BLUE"),
        make_item("A-100", "RED PANEL", category="PANELS", sub_category="RED", low=30),
        make_item("C-300", "CABLE", category="CABLES"),
        make_item("D-400", "LOOSE PART"),
    ]
    stock = [
        make_stock("A-100", "wh-c", 5),
        make_stock("A-100", "wh-j", 20, sub_location="RACK 2"),
        make_stock("B-200", "wh-c", 40),
        make_stock("C-300", "prod", 7, sub_location="ROOM 1"),
    ]
    return items, stock


def build(catalogue, locations, **view_state):
    items, stock = catalogue
    return view_engine.build_view(items, stock, locations, {}, ViewState(**view_state))


def ids(view):
    return [item.id for item in view.items]


def test_search_matches_case_insensitively_and_composes_with_category(locations):
    items = [make_item("A", category="X"), make_item("B", category="X")]

    searched = view_engine.build_view(items, [], locations, {}, ViewState(search_text="a"))
    assert ids(searched) == ["A"]

    narrowed = view_engine.build_view(
        items, [], locations, {}, ViewState(search_text="a", category_filter="Y")
    )
    assert ids(narrowed) == []


def test_search_covers_description_and_sub_category(catalogue, locations):
    assert ids(build(catalogue, locations, search_text="cable")) == ["C-300"]
    assert ids(build(catalogue, locations, search_text="blue")) == ["B-200"]


def test_category_filter(catalogue, locations):
    assert ids(build(catalogue, locations, category_filter="PANELS")) == ["A-100", "B-200"]
    assert ids(build(catalogue, locations, category_filter="PANELS|RED")) == ["A-100"]
    assert ids(build(catalogue, locations, category_filter="UNCATEGORIZED")) == ["D-400"]


def test_composite_filter_with_empty_sub_category_matches_nothing(catalogue, locations):
    assert ids(build(catalogue, locations, category_filter="CABLES|")) == []


def test_composite_filter_splits_on_first_bar_only(locations):
    items = [
        make_item("PIPE", category="FITTINGS", sub_category="1/2|3/4"),
        make_item("HALF", category="FITTINGS", sub_category="1/2"),
    ]
    view = view_engine.build_view(
        items, [], locations, {}, ViewState(category_filter="FITTINGS|1/2|3/4")
    )
    assert ids(view) == ["PIPE"]


def test_location_filter_keeps_full_totals(catalogue, locations):
    view = build(catalogue, locations, location_filter="wh-j")
    assert ids(view) == ["A-100"]
    assert view.items[0].quantity_in_view == 25


def test_descending_is_reverse_of_ascending(catalogue, locations):
    ascending = ids(build(catalogue, locations, sort_key=SortKey.ID))
    descending = ids(
        build(catalogue, locations, sort_key=SortKey.ID, sort_direction=SortDirection.DESC)
    )
    assert ascending == ["A-100", "B-200", "C-300", "D-400"]
    assert descending == list(reversed(ascending))


def test_descending_category_sort_keeps_ties_in_input_order(locations):
    items = [
        make_item("Z", category="SAME"),
        make_item("B", category="OTHER"),
        make_item("M", category="SAME"),
        make_item("A", category="SAME"),
    ]
    view = view_engine.build_view(
        items, [], locations, {},
        ViewState(sort_key=SortKey.CATEGORY, sort_direction=SortDirection.DESC),
    )
    assert ids(view) == ["Z", "M", "A", "B"]


def test_category_sort_uses_sub_category_as_tiebreaker(catalogue, locations):
    view = build(catalogue, locations, sort_key=SortKey.CATEGORY)
    assert ids(view) == ["C-300", "B-200", "A-100", "D-400"]


def test_quantity_sort_is_numeric(locations):
    items = [make_item("A"), make_item("B"), make_item("C")]
    stock = [make_stock("A", "wh-c", 100), make_stock("B", "wh-c", 9), make_stock("C", "wh-c", 20)]
    view = view_engine.build_view(
        items, stock, locations, {}, ViewState(sort_key=SortKey.QUANTITY_IN_VIEW)
    )
    assert ids(view) == ["B", "C", "A"]


def test_sort_is_stable_for_equal_keys(locations):
    items = [make_item("Z", category="SAME"), make_item("M", category="SAME"), make_item("A", category="SAME")]
    view = view_engine.build_view(items, [], locations, {}, ViewState(sort_key=SortKey.CATEGORY))
    assert ids(view) == ["Z", "M", "A"]


def test_locale_compare_ignores_case_first():
    assert locale_compare("apple", "Banana") < 0
    assert locale_compare("a", "A") < 0
    assert locale_compare("same", "same") == 0


def test_group_by_category_orders_groups_and_keeps_item_order(catalogue, locations):
    view = build(catalogue, locations, group_mode=GroupMode.CATEGORY)
    assert [group.key for group in view.category_groups] == ["CABLES", "PANELS", "UNCATEGORIZED"]
    assert [item.id for item in view.category_groups[1].items] == ["A-100", "B-200"]
    assert view.location_groups == []


def test_group_by_location_emits_one_row_per_stock_entry(catalogue, locations):
    view = build(catalogue, locations, group_mode=GroupMode.LOCATION)

    groups = {group.key: group.rows for group in view.location_groups}
    assert list(groups) == ["PROD - ROOM 1", "WH-C", "WH-J - RACK 2"]
    assert [(row.item.id, row.quantity) for row in groups["WH-C"]] == [("A-100", 5), ("B-200", 40)]
    assert [(row.item.id, row.quantity) for row in groups["WH-J - RACK 2"]] == [("A-100", 20)]
    # Items without stock do not appear anywhere.
    assert all(row.item.id != "D-400" for rows in groups.values() for row in rows)


def test_identical_inputs_give_identical_output(catalogue, locations):
    first = build(catalogue, locations, group_mode=GroupMode.LOCATION, search_text="p")
    second = build(catalogue, locations, group_mode=GroupMode.LOCATION, search_text="p")
    assert first.model_dump_json() == second.model_dump_json()


def test_build_view_does_not_touch_inputs(catalogue, locations):
    items, stock = catalogue
    before = [item.model_dump() for item in items], [row.model_dump() for row in stock]
    view_engine.build_view(items, stock, locations, {}, ViewState(sort_key=SortKey.CATEGORY))
    assert ([item.model_dump() for item in items], [row.model_dump() for row in stock]) == before


def test_low_stock_count_ignores_filters(catalogue, locations):
    view = build(catalogue, locations, search_text="cable")
    assert view.low_stock_count == 1
    assert view.total_items == 4


def test_toggle_sort_flips_direction_then_resets_on_new_key():
    state = ViewState()
    state = view_engine.toggle_sort(state, SortKey.ID)
    assert state.sort_direction == SortDirection.DESC
    state = view_engine.toggle_sort(state, SortKey.DESCRIPTION)
    assert (state.sort_key, state.sort_direction) == (SortKey.DESCRIPTION, SortDirection.ASC)


def test_toggle_group_mode_switches_off_when_reselected():
    state = view_engine.toggle_group_mode(ViewState(), GroupMode.LOCATION)
    assert state.group_mode == GroupMode.LOCATION
    assert view_engine.toggle_group_mode(state, GroupMode.LOCATION).group_mode == GroupMode.NONE


def test_select_all_only_touches_visible_items(catalogue, locations):
    view = build(catalogue, locations, category_filter="PANELS")

    selected = view_engine.select_all(frozenset({"C-300"}), view, True)
    assert selected == {"A-100", "B-200", "C-300"}
    assert view_engine.all_visible_selected(selected, view)

    assert view_engine.select_all(selected, view, False) == {"C-300"}


def test_category_hierarchy(catalogue):
    items, _ = catalogue
    assert view_engine.category_hierarchy(items) == {
        "CABLES": [],
        "PANELS": ["BLUE", "RED"],
        "UNCATEGORIZED": [],
    }

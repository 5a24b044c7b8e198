from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from . import settings

StockSource = Literal["OH", "PO"]


class UsageEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    usage: int


class InventoryItem(BaseModel):
    """
    A catalogue entry. The camelCase aliases are the field names used by the
    document store and the JSON state file.
    """

    # Frozen so that the view engine can never mutate its inputs.
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    description: str
    category: Optional[str] = None
    sub_category: Optional[str] = Field(default=None, alias="subCategory")
    prior_usage: list[UsageEntry] = Field(default_factory=list, alias="priorUsage")
    low_alert_quantity: Optional[int] = Field(default=None, ge=0, alias="lowAlertQuantity")

    @field_validator("prior_usage", mode="before")
    @classmethod
    def _missing_usage_is_empty(cls, value):
        return [] if value is None else value

    @field_validator("prior_usage")
    @classmethod
    def _one_entry_per_year(cls, value: list[UsageEntry]) -> list[UsageEntry]:
        years = [entry.year for entry in value]
        if len(years) != len(set(years)):
            raise ValueError("priorUsage may hold at most one entry per year")
        return value


class Location(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    sub_location_prompt: Optional[str] = Field(default=None, alias="subLocationPrompt")


class Stock(BaseModel):
    """A quantity of one item at one location (optionally a sub-location)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    item_id: str = Field(..., alias="itemId")
    location_id: str = Field(..., alias="locationId")
    quantity: int = Field(..., ge=0)
    sub_location_detail: Optional[str] = Field(default=None, alias="subLocationDetail")
    source: StockSource = "OH"
    po_number: Optional[str] = Field(default=None, alias="poNumber")
    date_received: Optional[str] = Field(default=None, alias="dateReceived")

    @model_validator(mode="before")
    @classmethod
    def _po_fields_only_for_purchase_orders(cls, data):
        # PO number and receive date only exist on purchase-order stock.
        if isinstance(data, dict) and data.get("source", "OH") != "PO":
            data = {
                key: value
                for key, value in data.items()
                if key not in ("poNumber", "po_number", "dateReceived", "date_received")
            }
        return data


class AppState(BaseModel):
    """The whole serializable application state: one snapshot in the undo history."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    items: list[InventoryItem] = Field(default_factory=list)
    stock: list[Stock] = Field(default_factory=list)
    category_colors: dict[str, str] = Field(default_factory=dict, alias="categoryColors")


# --- View parameters ---


class SortKey(str, Enum):
    ID = "id"
    DESCRIPTION = "description"
    CATEGORY = "category"
    QUANTITY_IN_VIEW = "quantityInView"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class GroupMode(str, Enum):
    NONE = "none"
    CATEGORY = "category"
    LOCATION = "location"


class ViewState(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    search_text: str = Field(default="", alias="searchText")
    # Either "<category>" or "<category>|<subCategory>".
    category_filter: str = Field(default="", alias="categoryFilter")
    location_filter: str = Field(default="", alias="locationFilter")
    sort_key: SortKey = Field(default=SortKey.ID, alias="sortKey")
    sort_direction: SortDirection = Field(default=SortDirection.ASC, alias="sortDirection")
    group_mode: GroupMode = Field(default=GroupMode.NONE, alias="groupMode")


# --- Derived view model ---


class LocationStock(Stock):
    location_name: str = Field(..., alias="locationName")


class DerivedItem(InventoryItem):
    """An item annotated with everything the inventory table renders."""

    # Effective category: never empty.
    category: str = settings.UNCATEGORIZED
    total_quantity: int = Field(..., alias="totalQuantity")
    quantity_in_view: int = Field(..., alias="quantityInView")
    locations_with_stock: list[LocationStock] = Field(
        default_factory=list, alias="locationsWithStock"
    )
    average_usage: float = Field(default=0.0, alias="averageUsage")
    etr: str = settings.ETR_NOT_AVAILABLE
    is_low_stock: bool = Field(default=False, alias="isLowStock")
    accent_color: Optional[str] = Field(default=None, alias="accentColor")
    stock_tooltip: str = Field(..., alias="stockTooltip")


class LocationRow(BaseModel):
    """One stock entry of an item, as shown when grouping by location."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    item: DerivedItem
    stock: LocationStock
    quantity: int


class CategoryGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    items: list[DerivedItem]


class LocationGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    rows: list[LocationRow]


class InventoryView(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    # Filtered and sorted, before grouping. Selection always works on this list.
    items: list[DerivedItem]
    group_mode: GroupMode = Field(default=GroupMode.NONE, alias="groupMode")
    category_groups: list[CategoryGroup] = Field(default_factory=list, alias="categoryGroups")
    location_groups: list[LocationGroup] = Field(default_factory=list, alias="locationGroups")
    low_stock_count: int = Field(default=0, alias="lowStockCount")
    total_items: int = Field(default=0, alias="totalItems")


# --- Reports, labels and imports ---


class ReportRow(BaseModel):
    """
    Defines the data contract for a single row of a generated report.
    The aliases are the report's CSV headers.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., alias="ID")
    description: str = Field(..., alias="Description")
    category: str = Field(default="", alias="Category")
    sub_category: str = Field(default="", alias="Sub-Category")
    location_name: str = Field(..., alias="Location")
    sub_location_detail: str = Field(default="", alias="Sub-Location")
    quantity: int = Field(default=0, ge=0, alias="Quantity")
    source: StockSource = Field(default="OH", alias="Source")
    po_number: str = Field(default="", alias="PO Number")
    date_received: str = Field(default="", alias="Date Received")


class PrintableLabel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    item_id: str = Field(..., alias="itemId")
    description: str
    location_name: str = Field(..., alias="locationName")
    sub_location_detail: Optional[str] = Field(default=None, alias="subLocationDetail")


class ImportedStockRow(BaseModel):
    """A stock row read from an import file, still keyed by location name."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    item_id: str = Field(..., alias="itemId")
    location_name: str = Field(..., alias="locationName")
    quantity: int = Field(..., ge=0)
    sub_location_detail: Optional[str] = Field(default=None, alias="subLocationDetail")
    source: StockSource = "OH"
    po_number: Optional[str] = Field(default=None, alias="poNumber")
    date_received: Optional[str] = Field(default=None, alias="dateReceived")


class SkippedStockEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    item_id: str = Field(..., alias="itemId")
    location_name: str = Field(..., alias="locationName")


class ParsedImport(BaseModel):
    items: list[InventoryItem] = Field(default_factory=list)
    rows: list[ImportedStockRow] = Field(default_factory=list)
    rows_read: int = 0
    rows_invalid: int = 0


class ImportResult(BaseModel):
    items: list[InventoryItem] = Field(default_factory=list)
    stock: list[Stock] = Field(default_factory=list)
    skipped: list[SkippedStockEntry] = Field(default_factory=list)
    rows_read: int = 0
    rows_invalid: int = 0

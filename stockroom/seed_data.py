"""Demo data used when no persistent store is configured."""

from . import settings
from .schemas import AppState, InventoryItem, Location, Stock

DEMO_ITEMS = [
    {
        "id": "563-11-SAMP",
        "description": '11" SAMPLE',
        "category": "OUTDOOR LED BOARD",
        "subCategory": "RED",
        "priorUsage": [
            {"year": 2023, "usage": 1000},
            {"year": 2024, "usage": 1100},
            {"year": 2025, "usage": 1200},
        ],
        "lowAlertQuantity": 100,
    },
    {
        "id": "563-15-SAMP",
        "description": '15" SAMPLE',
        "category": "OUTDOOR LED BOARD",
        "subCategory": "AMBER",
        "priorUsage": [
            {"year": 2023, "usage": 500},
            {"year": 2024, "usage": 550},
            {"year": 2025, "usage": 600},
        ],
        "lowAlertQuantity": 50,
    },
]

DEMO_STOCK = [
    {"itemId": "563-11-SAMP", "locationId": "wh-c", "quantity": 900, "source": "OH"},
    {"itemId": "563-11-SAMP", "locationId": "prod", "quantity": 75, "source": "OH"},
    {"itemId": "563-15-SAMP", "locationId": "wh-c", "quantity": 450, "source": "OH"},
    {"itemId": "563-15-SAMP", "locationId": "prod", "quantity": 25, "source": "OH"},
]

DEMO_COLORS = {
    "RED": "#EF4444",
    "AMBER": "#F59E0B",
    "GREEN": "#10B981",
    "BLUE": "#3B82F6",
}


def default_locations() -> list[Location]:
    return [Location.model_validate(location) for location in settings.LOCATIONS]


def demo_state() -> AppState:
    return AppState(
        items=[InventoryItem.model_validate(item) for item in DEMO_ITEMS],
        stock=[Stock.model_validate(row) for row in DEMO_STOCK],
        category_colors=dict(DEMO_COLORS),
    )

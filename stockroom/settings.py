import os
from pathlib import Path
from dotenv import load_dotenv

# --- Base Directory ---
BASE_DIR = Path(__file__).resolve().parent.parent

# --- Load Environment Variables ---
load_dotenv(BASE_DIR / ".env")

# --- Path Configuration ---
# Use Path objects for robust, OS-agnostic path handling.
INPUT_DIR = BASE_DIR / os.getenv("INPUT_DIR", "input")
OUTPUT_DIR = BASE_DIR / os.getenv("OUTPUT_DIR", "output")
STATE_FILE = BASE_DIR / os.getenv("STATE_FILE", "data/inventory_state.json")

# --- Filename Configuration ---
LISTINGS_FILENAME_BASE = os.getenv("LISTINGS_FILENAME", "inventory_listings")
REPORT_FILENAME_BASE = os.getenv("REPORT_FILENAME", "inventory_report")
LABELS_FILENAME_BASE = os.getenv("LABELS_FILENAME", "barcode_labels")
SAVE_JSON_OUTPUT = os.getenv("SAVE_JSON_OUTPUT", "false").lower() == "true"

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
# Set LOG_FILE to an empty value to disable the rotating file log.
_log_file = os.getenv("LOG_FILE", "logs/app.log")
LOG_FILE = BASE_DIR / _log_file if _log_file else None

# --- Persistence ---
# "memory" keeps the demo state, "file" a local JSON document,
# "remote" the hosted document database.
STORE_BACKEND = os.getenv("STORE_BACKEND", "file").lower()
REMOTE_STORE_URL = os.getenv("REMOTE_STORE_URL", "").rstrip("/")
REMOTE_STORE_TOKEN = os.getenv("REMOTE_STORE_TOKEN")
REMOTE_STORE_TIMEOUT = int(os.getenv("REMOTE_STORE_TIMEOUT", "15"))
REMOTE_STORE_MAX_ATTEMPTS = int(os.getenv("REMOTE_STORE_MAX_ATTEMPTS", "3"))

# --- Webhook ---
WEBHOOK_URL = os.getenv("WEBHOOK_URL")

# --- Undo/Redo ---
HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "50"))

# --- Shared Business Logic ---
UNCATEGORIZED = "UNCATEGORIZED"
UNKNOWN_LOCATION = "UNKNOWN LOCATION"
NO_STOCK_LABEL = "NO STOCK"
ETR_NOT_AVAILABLE = "N/A"

# Years exported as USAGE_<year> columns in the listings CSV.
USAGE_YEARS = [
    int(year) for year in os.getenv("USAGE_YEARS", "2021,2022,2023,2024,2025").split(",")
]

# The fixed reference set of warehouse locations.
LOCATIONS = [
    {"id": "wh-j", "name": "WH-J", "subLocationPrompt": "SHELF or RACK"},
    {"id": "wh-c", "name": "WH-C"},
    {"id": "wh-k", "name": "WH-K"},
    {"id": "prod", "name": "PROD", "subLocationPrompt": "SHELF, OFFICE, or ROOM"},
    {"id": "inspect", "name": "INSPECT"},
]

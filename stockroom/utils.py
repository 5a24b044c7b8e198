import logging
import unicodedata
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP, localcontext
from pathlib import Path
import pandas as pd

logger = logging.getLogger(__name__)


def get_date_suffix_for_filename() -> str:
    """Returns the current date as a YYYY-MM-DD string for filenames."""
    return datetime.now().strftime("%Y-%m-%d")


def load_csv(file_path: Path) -> pd.DataFrame | None:
    """
    A robust CSV loader with a multi-stage encoding fallback.
    Every cell is read as a string; empty cells stay empty strings.
    It will attempt to read a file in the following order:
    1. UTF-8 with BOM support ('utf-8-sig') - The best practice.
    2. Latin-1 - A permissive fallback that never fails but might misinterpret characters.
    """
    read_options = {"dtype": str, "keep_default_na": False}
    try:
        return pd.read_csv(file_path, encoding="utf-8-sig", **read_options)

    except UnicodeDecodeError:
        logger.info(
            f"INFO: UTF-8 decoding failed for {file_path.name}. Retrying with 'latin-1'."
        )
        try:
            return pd.read_csv(file_path, encoding="latin-1", **read_options)
        except (OSError, ValueError) as e_latin1:
            logger.error(
                f"ERROR: Could not read {file_path.name} even with latin-1. Reason: {e_latin1}"
            )
            return None

    except FileNotFoundError:
        logger.info(f"INFO: File not found at {file_path}, skipping.")
        return None

    except pd.errors.EmptyDataError:
        logger.warning(f"WARNING: {file_path.name} is empty.")
        return pd.DataFrame()

    except (OSError, ValueError) as e_general:
        logger.error(
            f"ERROR: An unexpected error occurred while reading {file_path.name}. Reason: {e_general}"
        )
        return None


def _collation_key(value: str) -> tuple:
    # Primary: letters compared without case or accents, with punctuation
    # before digits before letters. Tertiary: lowercase before uppercase.
    decomposed = unicodedata.normalize("NFKD", value)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    primary = tuple((2 if ch.isalpha() else 1 if ch.isdigit() else 0, ch) for ch in base)
    return primary, value.swapcase()


def locale_compare(a: str, b: str) -> int:
    """Locale-aware three-way string comparison: negative, zero or positive."""
    key_a, key_b = _collation_key(a), _collation_key(b)
    return (key_a > key_b) - (key_a < key_b)


def to_fixed(value: Decimal | float, digits: int = 1) -> str:
    """Formats a number with a fixed number of decimals, rounding halves up."""
    number = Decimal(value)
    quantum = Decimal(1).scaleb(-digits)
    with localcontext() as ctx:
        # Room for every integer digit plus the decimals.
        ctx.prec = max(ctx.prec, number.adjusted() + digits + 2)
        return str(number.quantize(quantum, rounding=ROUND_HALF_UP))

import logging
import re
import secrets
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd

logger = logging.getLogger(__name__)

_DISPLAY_NAME_PATTERN = re.compile(r"(?P<prefix>[^/_]+)_(\d{2})-(\d{2})-(\d{4})")


def today_iso() -> str:
    """Returns today's date as YYYY-MM-DD, the format stored in the `date` column."""
    return date.today().isoformat()


def get_date_suffix_for_filename() -> str:
    """Returns the current date as a YYYY-MM-DD string for filenames."""
    return datetime.now().strftime("%Y-%m-%d")


def generate_archive_filename(
    prefix: str, extension: str, when: Optional[date] = None
) -> str:
    """
    Builds the archive name `<prefix>_<DD>-<MM>-<YYYY>.<ext>`, e.g. 'Productos_19-10-2026.pdf'.
    """
    when = when or date.today()
    return f"{prefix}_{when.strftime('%d-%m-%Y')}.{extension.lstrip('.')}"


def add_random_suffix(filename: str, nbytes: int = 4) -> str:
    """'Productos_19-10-2026.pdf' -> 'Productos_19-10-2026-3f9a1c0b.pdf'"""
    path = Path(filename)
    return f"{path.stem}-{secrets.token_hex(nbytes)}{path.suffix}"


def get_display_filename(filename: str) -> str:
    """Turns an archive name back into a friendly label like 'Productos 19/10/2026'."""
    match = _DISPLAY_NAME_PATTERN.search(filename)
    if match:
        prefix, day, month, year = match.groups()
        return f"{prefix} {day}/{month}/{year}"
    return filename


def parse_quantity(value: Any) -> Optional[int]:
    """
    Parses a stored quantity into a whole number of units.
    Returns None for anything that is not a whole number (text, fractions, booleans, blanks).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    if not re.fullmatch(r"[+-]?\d+", text):
        return None
    return int(text)


def load_csv(file_path: Path, skiprows: int = 0) -> pd.DataFrame | None:
    """
    A CSV loader with an encoding fallback.
    1. UTF-8 with BOM support ('utf-8-sig').
    2. Latin-1, which reads any byte but might misinterpret characters.
    All columns are read as text so quantities keep the form they were typed in.
    """
    try:
        return pd.read_csv(
            file_path, encoding="utf-8-sig", skiprows=skiprows, dtype=str
        )

    except UnicodeDecodeError:
        logger.info(
            f"UTF-8 decoding failed for {file_path.name}. Retrying with 'latin-1'."
        )
        try:
            return pd.read_csv(
                file_path, encoding="latin-1", skiprows=skiprows, dtype=str
            )
        except (OSError, ValueError) as e_latin1:
            logger.error(
                f"Could not read {file_path.name} even with latin-1. Reason: {e_latin1}"
            )
            return None

    except FileNotFoundError:
        logger.info(f"File not found at {file_path}, skipping.")
        return None

    except (OSError, ValueError) as e_general:
        # pandas parser errors subclass ValueError
        logger.error(
            f"An unexpected error occurred while reading {file_path.name}. Reason: {e_general}"
        )
        return None

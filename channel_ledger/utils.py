import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Optional
import pandas as pd

from .errors import ParseError

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


def get_date_suffix_for_filename() -> str:
    """Returns the current date as a YYYY-MM-DD string for filenames."""
    return datetime.now().strftime("%Y-%m-%d")


def now_iso() -> str:
    return datetime.now().isoformat()


def load_csv(file_path: Path) -> pd.DataFrame:
    """
    CSV loader with a two-stage encoding fallback:
    1. UTF-8 with BOM support ('utf-8-sig').
    2. Latin-1, which can decode any byte sequence.
    Every cell is read as text so SKUs and HSN codes keep their leading zeros.
    """
    try:
        return pd.read_csv(file_path, encoding="utf-8-sig", dtype=str)
    except UnicodeDecodeError:
        logger.info(
            f"INFO: UTF-8 decoding failed for {file_path.name}. Retrying with 'latin-1'."
        )
        return pd.read_csv(file_path, encoding="latin-1", dtype=str)


def load_table(file_path: Path | str) -> list[dict[str, Any]]:
    """
    Reads the first sheet of a workbook (or a CSV) into an ordered list of rows.

    Each row maps header -> cell value in the file's column order. Blank cells
    are left out of the row entirely, so a header only "exists" for a row when
    it carries a value.

    Raises:
        ParseError: the file is missing, empty, or not a readable table.
    """
    path = Path(file_path)
    try:
        if path.suffix.lower() in EXCEL_SUFFIXES:
            df = pd.read_excel(path, sheet_name=0, dtype=str)
        else:
            df = load_csv(path)
    except FileNotFoundError as e:
        raise ParseError(f"File not found: {path}") from e
    except pd.errors.EmptyDataError as e:
        raise ParseError(f"No data found in {path.name}.") from e
    except Exception as e:
        # pandas/openpyxl raise a wide range of errors for malformed input.
        raise ParseError(
            f"Failed to parse {path.name}. Please ensure it's a valid Excel or CSV file. Reason: {e}"
        ) from e

    rows = []
    for record in df.to_dict("records"):
        rows.append(
            {str(header): value for header, value in record.items() if not is_blank(value)}
        )

    logger.info(f"✅ Parsed {path.name}: {len(rows)} rows.")
    return rows


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def to_number(value: Any) -> float:
    """Numeric cell -> float. Anything missing or unparseable becomes 0."""
    if is_blank(value) or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", "")
    try:
        number = float(text)
    except ValueError:
        return 0.0
    return 0.0 if math.isnan(number) or math.isinf(number) else number


def to_int(value: Any) -> int:
    return int(to_number(value))


def to_text(value: Any) -> str:
    """Cell -> trimmed string. Integral floats (12345.0) lose their fraction."""
    if is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_date(value: Any) -> Optional[datetime]:
    """
    Best-effort date parsing for ordering ledger entries.
    Timezone-aware values are converted to naive UTC so mixed inputs compare.
    """
    if is_blank(value):
        return None
    ts = pd.to_datetime(str(value), errors="coerce")
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.to_pydatetime()

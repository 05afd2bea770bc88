from __future__ import annotations

import io
import re
import unicodedata
from decimal import Decimal

import pandas as pd

from routingplan.core.models import WorkCenterType
from routingplan.core.numeric import to_decimal


def read_excel_bytes(content: bytes) -> pd.DataFrame:
    """Read .xlsx bytes into a DataFrame.

    v1: reads first sheet.
    """
    bio = io.BytesIO(content)
    df = pd.read_excel(bio)
    # normalize column names
    df.columns = [str(c).strip() for c in df.columns]
    return df


def normalize_col_name(name: str) -> str:
    """Normalize Excel column names to an ASCII-ish snake_case token.

    Handles exports with accents, non-breaking spaces, tabs, and punctuation.
    """

    s = str(name or "").strip().lower()
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = s.replace("\u00a0", " ")
    s = re.sub(r"[\s\t]+", " ", s)
    # keep alnum + spaces, turn the rest into spaces
    s = re.sub(r"[^a-z0-9 ]+", " ", s)
    s = re.sub(r"\s+", "_", s).strip("_")
    return s


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [normalize_col_name(c) for c in df.columns]
    return df


def _unbox(value):
    # numpy scalars coming out of DataFrame rows
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        return value.item()
    return value


def is_blank(value) -> bool:
    if value is None:
        return True
    try:
        if isinstance(value, float) and pd.isna(value):
            return True
    except Exception:
        pass
    return not str(value).strip() or str(value).strip().lower() == "nan"


_DIGITS_RE = re.compile(r"^\d+$")


def parse_int_strict(value, *, field: str) -> int:
    """Parse a non-negative integer from an Excel cell.

    Accepts ints, floats like 123.0, and digit-only strings.
    Raises ValueError otherwise.
    """
    value = _unbox(value)
    if is_blank(value):
        raise ValueError(f"{field} is empty")

    if isinstance(value, int):
        return int(value)

    if isinstance(value, float):
        if float(value).is_integer():
            return int(value)
        raise ValueError(f"{field} is not an integer: {value!r}")

    s = str(value).strip()
    if _DIGITS_RE.match(s):
        return int(s)

    raise ValueError(f"{field} is invalid: {value!r}")


def parse_int_or_default(value, *, field: str, default: int = 0) -> int:
    if is_blank(value):
        return default
    return parse_int_strict(value, field=field)


def coerce_decimal(value, *, default: Decimal | None = None) -> Decimal | None:
    """Coerce common Excel/Pandas numeric representations to Decimal.

    Returns ``default`` when value is empty/NaN.
    Accepts numbers and strings (handles ',' as decimal separator).
    """
    value = _unbox(value)
    if is_blank(value):
        return default

    if isinstance(value, (int, float, Decimal)):
        return to_decimal(value)

    s = str(value).strip()
    # Handle LATAM formats: 1.234,56 -> 1234.56
    if "," in s and "." in s:
        s = s.replace(".", "").replace(",", ".")
    elif "," in s:
        s = s.replace(",", ".")

    return to_decimal(s)


_TYPE_ALIASES = {
    "1": WorkCenterType.HUMAN,
    "human": WorkCenterType.HUMAN,
    "humano": WorkCenterType.HUMAN,
    "2": WorkCenterType.MACHINE,
    "machine": WorkCenterType.MACHINE,
    "maquina": WorkCenterType.MACHINE,
    "3": WorkCenterType.BOTH,
    "both": WorkCenterType.BOTH,
    "ambos": WorkCenterType.BOTH,
}


def parse_work_center_type(value) -> WorkCenterType:
    """Map an Excel cell (1/2/3 or a label) to a WorkCenterType; blanks mean machine."""
    if is_blank(value):
        return WorkCenterType.MACHINE
    s = normalize_col_name(str(value))
    if isinstance(value, float) and float(value).is_integer():
        s = str(int(value))
    try:
        return _TYPE_ALIASES[s]
    except KeyError:
        raise ValueError(f"work center type is invalid: {value!r}") from None

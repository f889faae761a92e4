"""
Repair of malformed numeric strings coming from the Soliton API.

Upstream sometimes serializes amounts with more than one decimal point,
e.g. "2291.000.00" or "0.0034.64". The rules below are a data-repair policy,
report totals depend on them being reproduced exactly.
"""
import math
import re
from typing import Any, Dict, Optional

from inkas.config import logger

# leading numeric prefix, same idea as parseFloat(): "12abc" -> 12
_NUM_PREFIX_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def _parse_prefix(s: str) -> Optional[float]:
    m = _NUM_PREFIX_RE.match(s or "")
    if not m:
        return None
    try:
        v = float(m.group(1))
    except ValueError:
        return None
    if not math.isfinite(v):
        return None
    return v


def _or_zero(s: str) -> float:
    v = _parse_prefix(s)
    return 0.0 if v is None else v


def clean_numeric(value: Any) -> float:
    """Turn whatever upstream put in a numeric field into a float. Never raises."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        # "true"/"false" are not numbers
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0

    s = str(value).strip()
    if s in ("", "null", "undefined"):
        return 0.0

    parts = s.split(".")
    if len(parts) == 1:
        return _or_zero(parts[0])
    if len(parts) == 2:
        return _or_zero(s)

    if len(parts) == 3:
        first, middle, last = parts
        if first == "0" and middle.startswith("0"):
            # "0.0034.64" -> 0.003464
            return _or_zero(f"{first}.{middle}{last}")
        if middle in ("000", "00"):
            # "2291.000.00" -> 2291.00
            return _or_zero(f"{first}.{last}")
        return _or_zero(f"{first}.{middle}{last}")

    return _or_zero(f"{parts[0]}.{parts[-1]}")


def sanitize_entry(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of an upstream entry with banknotes/coins/total_sum cleaned.

    total_sum from upstream is trusted only when it parses to a positive value,
    otherwise it is recalculated from the components.
    """
    banknotes = clean_numeric(entry.get("banknotes"))
    coins = clean_numeric(entry.get("coins"))
    total = clean_numeric(entry.get("total_sum"))

    out = dict(entry)
    out["banknotes"] = banknotes
    out["coins"] = coins
    out["total_sum"] = total if total > 0 else banknotes + coins
    return out


def validate_numeric_bounds(value: Any, lo: float = 0, hi: float = 1_000_000) -> float:
    return max(lo, min(hi, clean_numeric(value)))


def log_sanitization_issue(raw: Any, cleaned: float, context: str = "") -> bool:
    """Log a repair when the cleaned value differs from a naive parse. Returns True if logged."""
    if raw is None or isinstance(raw, (int, float)):
        return False
    naive = _parse_prefix(str(raw).strip())
    if naive is not None and naive == cleaned:
        return False
    if naive is None and cleaned == 0 and str(raw).strip() in ("", "null", "undefined"):
        return False
    logger.warning("data sanitization %s: %r -> %s", context, raw, cleaned)
    return True

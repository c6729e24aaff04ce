import logging
import math
import os
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from logging.handlers import RotatingFileHandler
from pathlib import Path
import json
from typing import Any, Optional

from paydesk.core.config import settings

def mkdir_safe(path: str):
    Path(path).mkdir(parents=True, exist_ok=True)

def atomic_write_json(path: str, obj: Any):
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, default=str)
    os.replace(str(tmp), str(p))

def setup_logging(tenant_id: str = "system", *, log_level: str = None, log_dir: str = None):
    logger_name = f"{settings.APP_NAME}.{tenant_id}"
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger
    level = log_level or settings.LOG_LEVEL
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    audit_dir = log_dir or settings.AUDIT_LOG_PATH
    mkdir_safe(audit_dir)
    logfile = Path(audit_dir) / f"{tenant_id}.log"
    handler = RotatingFileHandler(str(logfile), maxBytes=10_000_000, backupCount=5)
    formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    if os.getenv("DEV", "").lower() in ("1","true","yes"):
        ch = logging.StreamHandler()
        ch.setFormatter(formatter)
        logger.addHandler(ch)
    logger.propagate = False
    return logger

def to_decimal(value: Any, default: Optional[Decimal] = Decimal("0")) -> Optional[Decimal]:
    """Coerce a cell/field value to Decimal. Blank, non-numeric and non-finite values give `default`."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return default
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default
    if not result.is_finite():
        return default
    return result

def round_half_up(value: Any) -> int:
    """Round to the nearest whole currency unit, halves away from zero."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def normalize_code(value: Any) -> str:
    """Employee codes arrive as text or as spreadsheet numbers (1001 / 1001.0)."""
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, float):
        if not math.isfinite(value):
            return ""
        if value.is_integer():
            value = int(value)
    return str(value).strip()

def fold_name(value: Any) -> str:
    """Key used for case-insensitive name comparisons."""
    if value is None:
        return ""
    return str(value).strip().casefold()

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

def month_number(month: Any) -> int:
    """1-12 from a full month name, a 3-letter abbreviation or a number. Raises ValueError."""
    if isinstance(month, (int, float)) and not isinstance(month, bool):
        number = int(month)
    else:
        text = str(month or "").strip()
        if text.isdigit():
            number = int(text)
        else:
            key = text.casefold()
            for idx, name in enumerate(MONTH_NAMES, start=1):
                if key == name.casefold() or (len(key) == 3 and name.casefold().startswith(key)):
                    return idx
            raise ValueError(f"Unknown month: {month!r}")
    if not 1 <= number <= 12:
        raise ValueError(f"Unknown month: {month!r}")
    return number

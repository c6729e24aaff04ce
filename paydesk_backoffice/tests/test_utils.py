import logging
import logging.handlers
from decimal import Decimal

import pytest

from paydesk.core.utils import fold_name, month_number, normalize_code, round_half_up, setup_logging, to_decimal

def test_setup_logging_idempotent(tmp_path):
    tenant = "tmptest"
    logger1 = setup_logging(tenant, log_dir=str(tmp_path))
    handlers_before = len(logger1.handlers)
    logger2 = setup_logging(tenant, log_dir=str(tmp_path))
    handlers_after = len(logger2.handlers)
    assert handlers_before == handlers_after
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logger2.handlers)

@pytest.mark.parametrize("value,expected", [
    (2.5, 3), (157.5, 158), (Decimal("0.49"), 0), ("1,200.5", 1201), (None, 0), ("", 0),
])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected

def test_to_decimal():
    assert to_decimal(" 25,000 ") == Decimal("25000")
    assert to_decimal(float("nan")) == 0
    assert to_decimal("abc", default=None) is None
    assert to_decimal(True, default=None) is None

def test_codes_and_names():
    assert normalize_code(1001.0) == "1001"
    assert normalize_code(" E7 ") == "E7"
    assert normalize_code(None) == ""
    assert fold_name("  Night ") == "night"

@pytest.mark.parametrize("month,number", [("January", 1), ("sep", 9), ("12", 12), (3, 3)])
def test_month_number(month, number):
    assert month_number(month) == number

@pytest.mark.parametrize("month", ["Sept.", "13", 0, None])
def test_month_number_invalid(month):
    with pytest.raises(ValueError):
        month_number(month)

"""Amount in words, grouped Crore / Lakh / Thousand / Hundred."""
from typing import Any, List

from paydesk.core.utils import round_half_up

ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen",
]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

# (divisor, label) for a 9-digit number split as 2-2-2-1-2
GROUPS = [(10_000_000, "Crore"), (100_000, "Lakh"), (1_000, "Thousand"), (100, "Hundred")]

MAX_DIGITS = 9

def two_digit_words(n: int) -> str:
    if n < 20:
        return ONES[n]
    tens, ones = divmod(n, 10)
    return f"{TENS[tens]} {ONES[ones]}".strip()

def amount_in_words(amount: Any) -> str:
    """
    Render a non-negative whole amount, e.g. 1234567 ->
    'Twelve Lakh Thirty Four Thousand Five Hundred and Sixty Seven Only'.
    Fractions are rounded half-up first; 0 is 'Only' and more than nine digits is 'Overflow'.
    """
    n = round_half_up(amount)
    if n < 0:
        raise ValueError("amount must be non-negative")
    if len(str(n)) > MAX_DIGITS:
        return "Overflow"

    words: List[str] = []
    for divisor, label in GROUPS:
        group, n = divmod(n, divisor)
        if group:
            words.append(f"{two_digit_words(group)} {label}")
    if n:
        if words:
            words.append("and")
        words.append(two_digit_words(n))
    words.append("Only")
    return " ".join(words)

"""Integer money utilities.

All limits, balances and amounts are int minor units (paise). No float, no Decimal.
"""

from src.cc_common.errors import ValidationError


def require_positive(value: int, field: str) -> None:
    """Raise ValidationError unless value is a strictly positive int."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer, got {value!r}")


def _group_indian(whole: int) -> str:
    """12345678 -> '1,23,45,678' (last three digits, then groups of two)."""
    digits = str(whole)
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def paise_to_display(paise: int) -> str:
    """Convert paise to display string: 10000000 -> '₹1,00,000.00', -1200 -> '-₹12.00'."""
    sign = "-" if paise < 0 else ""
    abs_paise = abs(paise)
    return f"{sign}₹{_group_indian(abs_paise // 100)}.{abs_paise % 100:02d}"

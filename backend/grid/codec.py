"""Format Codec: display masks for numbers and dash-grouped digit strings.

Numbers are shown with a comma as the decimal separator and, when the mask
contains a space, with integer digits grouped by three. Digit strings with a
``#`` mask are grouped in pairs separated by dashes, at most eight digits.
"""

import re
from dataclasses import dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation


# Mask value meaning "free text, no pattern".
UNTYPED_MASK = "$"
MAX_PATTERN_DIGITS = 8

NUMBER_PATTERN = re.compile(r"-?(\d+\.?\d*|\.\d+)")
GROUPING_PATTERN = re.compile(r"\B(?=(\d{3})+(?!\d))")
BLANK_PATTERN = re.compile(r"[\s,.\-]")

DASH_PATTERNS = [
    re.compile(r"\d"),
    re.compile(r"\d{2}"),
    re.compile(r"\d{2}-\d{2}"),
    re.compile(r"\d{2}-\d{2}-\d{2}"),
    re.compile(r"\d{2}-\d{2}-\d{2}-\d{2}"),
]

# Keys a dash-pattern field accepts besides digits.
PATTERN_NAVIGATION_KEYS = {"Backspace", "Delete", "ArrowLeft", "ArrowRight", "Tab", "Enter"}


@dataclass(frozen=True)
class NumberFormat:
    grouped: bool
    decimals: int


def parse_format(mask: str) -> NumberFormat:
    """Derive grouping and decimal places from a mask such as ``# ##0,00``."""
    decimal_part = ""
    if "." in mask:
        decimal_part = mask.split(".")[1]
    elif "," in mask:
        decimal_part = mask.split(",")[1]
    return NumberFormat(grouped=" " in mask, decimals=len(decimal_part))


def _to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def render_number(value: Decimal | int | float | str, fmt: NumberFormat) -> str:
    number = _to_decimal(value)
    if fmt.decimals == 0:
        rounded = (number + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR)
    else:
        rounded = number.quantize(Decimal(1).scaleb(-fmt.decimals), rounding=ROUND_HALF_UP)
    if rounded == 0:
        rounded = abs(rounded)

    text = format(rounded, "f")
    negative = text.startswith("-")
    int_part, _, dec_part = text.lstrip("-").partition(".")
    if fmt.grouped:
        int_part = GROUPING_PATTERN.sub(" ", int_part)

    result = ("-" if negative else "") + int_part
    if dec_part:
        result += "," + dec_part
    return result


def parse_number(text: str) -> Decimal | None:
    """Parse user or stored text; ``None`` when it is not a number."""
    raw = re.sub(r"\s", "", text).replace(",", ".", 1)
    if raw in ("", "-", "."):
        return None
    if not NUMBER_PATTERN.fullmatch(raw):
        return None
    try:
        return Decimal(raw)
    except InvalidOperation:
        return None


def is_blank(text: str) -> bool:
    return BLANK_PATTERN.sub("", text) == ""


def normalize_number_input(text: str, fmt: NumberFormat) -> str:
    """Clean a keystroke result so only a valid partial number remains."""
    value = text.replace(".", ",", 1)
    if fmt.decimals > 0:
        value = re.sub(r"[^\d,\-]", "", value)
    else:
        value = re.sub(r"[^\d\-]", "", value)

    if "-" in value:
        sign = "-" if value.startswith("-") else ""
        value = sign + value.replace("-", "")

    if value.count(",") > 1:
        first = value.index(",")
        value = value[: first + 1] + value[first + 1 :].replace(",", "")

    if fmt.decimals > 0 and "," in value:
        int_part, _, dec_part = value.partition(",")
        value = f"{int_part},{dec_part[: fmt.decimals]}"

    return value


def uses_dash_pattern(mask: str | None) -> bool:
    return bool(mask) and mask != UNTYPED_MASK and "#" in mask


def format_dash_pattern(text: str) -> str:
    digits = re.sub(r"[^0-9]", "", text)[:MAX_PATTERN_DIGITS]
    return "-".join(digits[i : i + 2] for i in range(0, len(digits), 2))


def is_dash_pattern(value: str, mask: str) -> bool:
    if mask == UNTYPED_MASK:
        return True
    return value == "" or any(p.fullmatch(value) for p in DASH_PATTERNS)


def dash_pattern_error(value: str, mask: str | None) -> str | None:
    if not uses_dash_pattern(mask):
        return None
    if value and not is_dash_pattern(value, mask):
        return "Invalid format (e.g. 12, 12-34, 12-34-56)"
    return None


def accepts_pattern_key(key: str) -> bool:
    return key in PATTERN_NAVIGATION_KEYS or (len(key) == 1 and key.isdigit())

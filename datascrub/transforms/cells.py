from __future__ import annotations

import re
from datetime import date, datetime

from dateutil import parser as date_parser

"""Per-cell transforms and classifiers.

Every transform takes a string and returns a string, never raises, returns
empty input unchanged and leaves already clean values alone. When a repair
cannot be applied with confidence the original value is returned.

Classifiers (looks_like_*) return a bool; parse_date / parse_number return the
parsed value or None instead of raising.
"""

__all__ = [
    "collapse_whitespace",
    "fix_email",
    "fix_encoding_issues",
    "fix_number_format",
    "fuzzy_normalize",
    "has_html_tags",
    "is_null_sentinel",
    "is_phone_column_name",
    "looks_like_date",
    "looks_like_email",
    "looks_like_phone",
    "normalize_case",
    "normalize_null",
    "parse_date",
    "parse_number",
    "remove_html_tags",
    "remove_special_chars",
    "standardize_date",
    "standardize_phone",
]

# ---------------------------------------------------------------------------
# encoding / whitespace / nulls
# ---------------------------------------------------------------------------

# UTF-8 bytes mis-decoded as Latin-1 -> intended character
_MOJIBAKE_FIXES: tuple[tuple[str, str], ...] = (
    ("\u00c3\u00a9", "\u00e9"),
    ("\u00c3\u00a8", "\u00e8"),
    ("\u00c3\u00a0", "\u00e0"),
    ("\u00c3\u00a2", "\u00e2"),
    ("\u00c3\u00ae", "\u00ee"),
    ("\u00c3\u00b4", "\u00f4"),
    ("\u00c3\u00bb", "\u00fb"),
    ("\u00c3\u00a7", "\u00e7"),
    ("\u00c3\u00bc", "\u00fc"),
    ("\u00c3\u00b6", "\u00f6"),
    ("\u00c3\u00a4", "\u00e4"),
    ("\u00c3\u00b1", "\u00f1"),
    ("\u00e2\u0080\u0099", "'"),
    ("\u00e2\u0080\u009c", '"'),
    ("\u00e2\u0080\u009d", '"'),
    ("\u00e2\u0080\u0094", "\u2014"),
    ("\u00e2\u0080\u0093", "\u2013"),
    ("\u00e2\u0080\u00a6", "\u2026"),
    ("\u00c2\u00a0", " "),
    ("\u00c2\u00b0", "\u00b0"),
)
_BOM_ARTIFACTS = ("\ufeff", "\u00ef\u00bb\u00bf")

_WHITESPACE_RUN = re.compile(r"\s+")

_NULL_SENTINEL = re.compile(
    r"^(null|n/a|na|none|undefined|nil|\?|#n/a|#value!|#ref!|#name\?|#div/0!|-|\u2014|\.{2,})$",
    re.IGNORECASE,
)


def fix_encoding_issues(value: str) -> str:
    if not value:
        return value
    result = value
    for bad, good in _MOJIBAKE_FIXES:
        if bad in result:
            result = result.replace(bad, good)
    for bom in _BOM_ARTIFACTS:
        if result.startswith(bom):
            result = result[len(bom):]
    return result


def collapse_whitespace(value: str) -> str:
    if not value:
        return value
    return _WHITESPACE_RUN.sub(" ", value).strip()


def is_null_sentinel(value: str) -> bool:
    return bool(value) and _NULL_SENTINEL.match(value.strip()) is not None


def normalize_null(value: str) -> str:
    """Replace null-like tokens (null, N/A, #REF!, '..', ...) with an empty string."""
    if is_null_sentinel(value):
        return ""
    return value


# ---------------------------------------------------------------------------
# email
# ---------------------------------------------------------------------------

_EMAIL_DOMAIN_FIXES: tuple[tuple[str, str], ...] = (
    ("gmial.com", "gmail.com"),
    ("gmai.com", "gmail.com"),
    ("gamil.com", "gmail.com"),
    ("gnail.com", "gmail.com"),
    ("gmail.co", "gmail.com"),
    ("gmail.con", "gmail.com"),
    ("yahooo.com", "yahoo.com"),
    ("yahoo.con", "yahoo.com"),
    ("hotmial.com", "hotmail.com"),
    ("hotmail.con", "hotmail.com"),
    ("outlok.com", "outlook.com"),
    ("outlook.con", "outlook.com"),
)
_EMAIL_SHAPE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def looks_like_email(value: str) -> bool:
    return bool(value) and "@" in value and len(value) > 5


def fix_email(value: str) -> str:
    """Lower-case, squeeze, fix common domain typos; original value if the result is not an address."""
    if not value:
        return value
    fixed = _WHITESPACE_RUN.sub("", value.lower().strip())
    fixed = re.sub(r",,+", ",", fixed)
    fixed = re.sub(r"\.+", ".", fixed)
    for typo, correct in _EMAIL_DOMAIN_FIXES:
        if fixed.endswith("@" + typo):
            fixed = fixed[: -len(typo)] + correct
            break
    if not _EMAIL_SHAPE.match(fixed):
        return value
    return fixed


# ---------------------------------------------------------------------------
# phone
# ---------------------------------------------------------------------------

_PHONE_COLUMN = re.compile(r"phone|mobile|cell|fax|tel|contact_no|contact_num|whatsapp", re.IGNORECASE)
_PHONE_CHARS = re.compile(r"[\d\s+\-.()]")
_NON_DIGIT = re.compile(r"\D")


def is_phone_column_name(column_name: str) -> bool:
    return _PHONE_COLUMN.search(column_name or "") is not None


def looks_like_phone(value: str) -> bool:
    """True only for values made exclusively of phone characters with 7-15 digits."""
    if not value:
        return False
    trimmed = value.strip()
    if _PHONE_CHARS.sub("", trimmed):
        return False
    digits = _NON_DIGIT.sub("", trimmed)
    return 7 <= len(digits) <= 15


def standardize_phone(value: str) -> str:
    if not value:
        return value
    digits = _NON_DIGIT.sub("", value)
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    if len(digits) == 11 and digits[0] == "1":
        return f"+1 ({digits[1:4]}) {digits[4:7]}-{digits[7:]}"
    if len(digits) >= 11:
        cc, rest = digits[:-10], digits[-10:]
        return f"+{cc} ({rest[:3]}) {rest[3:6]}-{rest[6:]}"
    return value


# ---------------------------------------------------------------------------
# dates
# ---------------------------------------------------------------------------

_YMD = (
    re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$"),
    re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$"),
    re.compile(r"^(\d{4})\.(\d{1,2})\.(\d{1,2})$"),
)
# D/M/Y or M/D/Y, disambiguated in _day_month
_AMBIGUOUS = (
    re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$"),
    re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$"),
    re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$"),
)
_TEXTUAL = (
    re.compile(r"^[A-Za-z]+ \d{1,2},? \d{4}$"),
    re.compile(r"^\d{1,2} [A-Za-z]+ \d{4}$"),
)
_ALL_DIGITS = re.compile(r"^\d+$")
_MIN_YEAR, _MAX_YEAR = 1900, 2100


def _build_date(year: int, month: int, day: int) -> date | None:
    if not _MIN_YEAR <= year <= _MAX_YEAR:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _day_month(first: int, second: int) -> tuple[int, int]:
    # day>12 かつ month<=12 のときだけ日付先頭とみなす
    if first > 12 and second <= 12:
        return first, second
    return second, first


def parse_date(value: str) -> date | None:
    """Parse a value in one of the supported date layouts; None when it is not one."""
    if not value or not 6 <= len(value) <= 30:
        return None
    if _ALL_DIGITS.match(value) and len(value) > 8:
        return None
    s = value.strip()
    for pattern in _YMD:
        m = pattern.match(s)
        if m:
            return _build_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    for pattern in _AMBIGUOUS:
        m = pattern.match(s)
        if m:
            day, month = _day_month(int(m.group(1)), int(m.group(2)))
            return _build_date(int(m.group(3)), month, day)
    if any(p.match(s) for p in _TEXTUAL):
        try:
            parsed = date_parser.parse(s, default=datetime(2000, 1, 1))
        except (ValueError, OverflowError):
            return None
        return _build_date(parsed.year, parsed.month, parsed.day)
    return None


def looks_like_date(value: str) -> bool:
    return parse_date(value) is not None


def standardize_date(value: str) -> str:
    parsed = parse_date(value)
    if parsed is None:
        return value
    return parsed.isoformat()


# ---------------------------------------------------------------------------
# case / html / special chars / numbers
# ---------------------------------------------------------------------------

_LOWER_COLUMNS = re.compile(r"email|e_mail|url|website|href|link")
_TITLE_COLUMNS = re.compile(r"^(first|last|middle|full)?_?name$|^city$|^country$|^state$|^street$|^address$")
_WORD_SPLIT = re.compile(r"(\s+)")


def normalize_case(value: str, column_name: str) -> str:
    """Lower-case email/URL columns, title-case name and address columns, leave the rest."""
    if not value:
        return value
    col = (column_name or "").lower()
    if _LOWER_COLUMNS.search(col):
        return value.lower()
    if _TITLE_COLUMNS.search(col):
        return "".join(
            word if not word.strip() else word[0].upper() + word[1:].lower()
            for word in _WORD_SPLIT.split(value)
        )
    return value


_HTML_TAG = re.compile(r"<[^>]*>")
_HTML_TAG_PRESENT = re.compile(r"<[^>]+>")
_ENTITIES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"&nbsp;", re.IGNORECASE), " "),
    (re.compile(r"&amp;", re.IGNORECASE), "&"),
    (re.compile(r"&lt;", re.IGNORECASE), "<"),
    (re.compile(r"&gt;", re.IGNORECASE), ">"),
    (re.compile(r"&quot;", re.IGNORECASE), '"'),
    (re.compile(r"&#039;", re.IGNORECASE), "'"),
)


def has_html_tags(value: str) -> bool:
    return bool(value) and _HTML_TAG_PRESENT.search(value) is not None


def remove_html_tags(value: str) -> str:
    if not value:
        return value
    result = _HTML_TAG.sub("", value)
    for pattern, repl in _ENTITIES:
        result = pattern.sub(repl, result)
    return result


_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def remove_special_chars(value: str) -> str:
    """Drop ASCII control characters except tab, LF and CR."""
    if not value:
        return value
    return _CONTROL_CHARS.sub("", value)


_CURRENCY = re.compile("[$\u20ac\u00a3\u00a5\u20b9]")
_GROUPED_NUMBER = re.compile(r"^\d{1,3}(,\d{3})+(\.\d+)?$")
_PLAIN_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def fix_number_format(value: str) -> str:
    """'$1,234.50' -> '1234.50'; anything not thousands-grouped is returned as is."""
    if not value:
        return value
    cleaned = _CURRENCY.sub("", value).strip()
    if _GROUPED_NUMBER.match(cleaned):
        return cleaned.replace(",", "")
    return value


def parse_number(value: str) -> float | None:
    if not value:
        return None
    s = value.strip()
    if not _PLAIN_NUMBER.match(s):
        return None
    return float(s)


# ---------------------------------------------------------------------------
# dedup
# ---------------------------------------------------------------------------

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def fuzzy_normalize(value: str) -> str:
    """Case, whitespace and punctuation folded form used by fuzzy dedup."""
    return _NON_ALNUM.sub("", _WHITESPACE_RUN.sub("", value.lower()))

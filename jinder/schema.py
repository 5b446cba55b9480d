"""
Job application schema.

One declarative constraint set (``FIELDS``) drives validation for the store,
the HTTP layer and the ``jinder validate`` command. Validation collects every
violated field instead of stopping at the first one.
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from .errors import ValidationError

STATUSES = (
    "applied",
    "phone_screen",
    "interview",
    "technical_interview",
    "final_interview",
    "offer",
    "rejected",
    "withdrawn",
)
DEFAULT_STATUS = "applied"
INACTIVE_STATUSES = ("rejected", "withdrawn")

CURRENCIES = ("USD", "EUR", "GBP", "CAD", "AUD", "JPY", "CNY")
PERIODS = ("annual", "monthly", "hourly")
DEFAULT_CURRENCY = "USD"
DEFAULT_PERIOD = "annual"

MAX_REQUIREMENTS = 50
MAX_REQUIREMENT_LENGTH = 200
MAX_SALARY_TEXT_LENGTH = 100

# Input aliases, mapped onto the canonical field name.
ALIASES = {"title": "position"}

# Fields the server owns; ignored when present in a request body.
READ_ONLY_FIELDS = (
    "id",
    "userId",
    "createdAt",
    "updatedAt",
    "version",
    "daysSinceApplication",
    "formattedDate",
    "formattedSalary",
    "isActive",
)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_AMOUNT = r"(\d[\d,]*(?:\.\d+)?)\s*([kKmM])?"
_RANGE_RE = re.compile(r"\$?\s*" + _AMOUNT + r"\s*(?:-|–|—|to)\s*\$?\s*" + _AMOUNT)
_SINGLE_RE = re.compile(r"\$?\s*" + _AMOUNT)
_MULTIPLIERS = {"k": 1_000, "m": 1_000_000}


class FieldError(Exception):
    """Raised by a field cleaner; collected into a ValidationError."""


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: str
    required: bool = False
    min_length: int = 0
    max_length: Optional[int] = None
    label: str = ""

    @property
    def display(self) -> str:
        return self.label or self.name


FIELDS: Dict[str, FieldSpec] = {
    spec.name: spec
    for spec in (
        FieldSpec("company", "string", required=True, min_length=1, max_length=100, label="Company name"),
        FieldSpec("position", "string", required=True, min_length=2, max_length=200, label="Position"),
        FieldSpec("applicationDate", "date", required=True, label="Application date"),
        FieldSpec("status", "status", label="Status"),
        FieldSpec("location", "string", max_length=100, label="Location"),
        FieldSpec("description", "string", max_length=2000, label="Description"),
        FieldSpec("notes", "string", max_length=1000, label="Notes"),
        FieldSpec("salary", "salary", label="Salary"),
        FieldSpec("jobUrl", "url", max_length=2048, label="Job URL"),
        FieldSpec("contactEmail", "email", max_length=254, label="Contact email"),
        FieldSpec("requirements", "string_list", label="Requirements"),
    )
}

MUTABLE_FIELDS = tuple(FIELDS)


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _valid_url(v: str) -> bool:
    try:
        p = urlparse(v)
        return p.scheme in ("http", "https") and bool(p.netloc)
    except ValueError:
        return False


def _is_number(v: Any) -> bool:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return False
    try:
        return math.isfinite(v)
    except OverflowError:
        # int too large for a float
        return False


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def normalize_status(value: str) -> str:
    """Lower-case a status and fold spaces/hyphens into underscores."""
    return re.sub(r"[\s\-]+", "_", value.strip().lower())


def parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise FieldError("must be a valid date (YYYY-MM-DD)")
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise FieldError("must be a valid date (YYYY-MM-DD)")


def _amount(number: str, suffix: Optional[str]) -> float:
    value = float(number.replace(",", ""))
    if suffix:
        value *= _MULTIPLIERS[suffix.lower()]
    return value


def parse_salary_text(text: str) -> Tuple[Optional[float], Optional[float]]:
    """
    Extract numeric bounds from a free-text salary.

    "$120,000 - $150,000" -> (120000.0, 150000.0)
    "120k to 150k"        -> (120000.0, 150000.0)
    "$155k base"          -> (155000.0, 155000.0)
    "competitive"         -> (None, None)
    """
    m = _RANGE_RE.search(text)
    if m:
        return _amount(m.group(1), m.group(2)), _amount(m.group(3), m.group(4))
    m = _SINGLE_RE.search(text)
    if m:
        value = _amount(m.group(1), m.group(2))
        return value, value
    return None, None


def salary_bounds(salary: Any) -> Tuple[Optional[float], Optional[float]]:
    """Numeric (min, max) of an already-cleaned salary value."""
    if salary is None:
        return None, None
    if _is_number(salary):
        return float(salary), float(salary)
    if isinstance(salary, str):
        return parse_salary_text(salary)
    if isinstance(salary, dict):
        lo, hi = salary.get("min"), salary.get("max")
        return (float(lo) if lo is not None else None, float(hi) if hi is not None else None)
    return None, None


def _clean_string(spec: FieldSpec, value: Any) -> Optional[str]:
    if not isinstance(value, str):
        raise FieldError("must be a string")
    value = value.strip()
    if not value:
        if spec.required:
            raise FieldError("cannot be empty")
        return None
    if len(value) < spec.min_length:
        raise FieldError(f"must be at least {spec.min_length} characters long")
    if spec.max_length is not None and len(value) > spec.max_length:
        raise FieldError(f"cannot exceed {spec.max_length} characters")
    return value


def _clean_date(spec: FieldSpec, value: Any, today: date) -> date:
    parsed = parse_date(value)
    if parsed > today:
        raise FieldError("cannot be in the future")
    return parsed


def _clean_status(spec: FieldSpec, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise FieldError(f"must be one of: {', '.join(STATUSES)}")
    status = normalize_status(value)
    if status not in STATUSES:
        raise FieldError(f"must be one of: {', '.join(STATUSES)}")
    return status


def _clean_url(spec: FieldSpec, value: Any) -> Optional[str]:
    value = _clean_string(spec, value)
    if value is not None and not _valid_url(value):
        raise FieldError("must be a valid absolute URL (http or https)")
    return value


def _clean_email(spec: FieldSpec, value: Any) -> Optional[str]:
    value = _clean_string(spec, value)
    if value is not None and not _EMAIL_RE.match(value):
        raise FieldError("must be a valid email address")
    return value


def _clean_string_list(spec: FieldSpec, value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        raise FieldError("must be a list of strings")
    if len(value) > MAX_REQUIREMENTS:
        raise FieldError(f"cannot contain more than {MAX_REQUIREMENTS} items")
    items = []
    for i, item in enumerate(value):
        if not _is_non_empty_str(item):
            raise FieldError(f"item {i} must be a non-empty string")
        item = item.strip()
        if len(item) > MAX_REQUIREMENT_LENGTH:
            raise FieldError(f"item {i} cannot exceed {MAX_REQUIREMENT_LENGTH} characters")
        items.append(item)
    return items


def _clean_salary_object(value: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for bound in ("min", "max"):
        v = value.get(bound)
        if v is None:
            continue
        if not _is_number(v):
            raise FieldError(f"{bound} must be a number")
        if v < 0:
            raise FieldError(f"{bound} cannot be negative")
        out[bound] = v
    if not out:
        raise FieldError("must include min or max")
    if "min" in out and "max" in out and out["max"] < out["min"]:
        raise FieldError("max must be greater than or equal to min")

    currency = value.get("currency") or DEFAULT_CURRENCY
    if not isinstance(currency, str) or currency.strip().upper() not in CURRENCIES:
        raise FieldError(f"currency must be one of: {', '.join(CURRENCIES)}")
    period = value.get("period") or DEFAULT_PERIOD
    if not isinstance(period, str) or period.strip().lower() not in PERIODS:
        raise FieldError(f"period must be one of: {', '.join(PERIODS)}")
    out["currency"] = currency.strip().upper()
    out["period"] = period.strip().lower()
    return out


def _clean_salary(spec: FieldSpec, value: Any) -> Any:
    if _is_number(value):
        if value < 0:
            raise FieldError("cannot be negative")
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if len(text) > MAX_SALARY_TEXT_LENGTH:
            raise FieldError(f"cannot exceed {MAX_SALARY_TEXT_LENGTH} characters")
        lo, hi = parse_salary_text(text)
        if lo is not None and hi is not None and hi < lo:
            raise FieldError("range maximum must be greater than or equal to minimum")
        return text
    if isinstance(value, dict):
        return _clean_salary_object(value)
    raise FieldError("must be a number, a text range, or an object with min/max")


_CLEANERS: Dict[str, Callable[..., Any]] = {
    "string": _clean_string,
    "status": _clean_status,
    "url": _clean_url,
    "email": _clean_email,
    "string_list": _clean_string_list,
    "salary": _clean_salary,
}


def _resolve_aliases(data: Dict[str, Any]) -> Dict[str, Any]:
    resolved = dict(data)
    for alias, canonical in ALIASES.items():
        if alias in resolved:
            value = resolved.pop(alias)
            resolved.setdefault(canonical, value)
    return resolved


def extract_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only schema fields (aliases resolved); read-only and unknown keys are dropped."""
    resolved = _resolve_aliases(data)
    return {k: v for k, v in resolved.items() if k in FIELDS}


def _check(data: Dict[str, Any], partial: bool, today: date) -> Tuple[Dict[str, Any], List[Dict[str, str]]]:
    cleaned: Dict[str, Any] = {}
    errors: List[Dict[str, str]] = []
    for name, spec in FIELDS.items():
        if name not in data:
            if spec.required and not partial:
                errors.append({"field": name, "message": f"{spec.display} is required"})
            continue
        if data[name] is None:
            if spec.required:
                errors.append({"field": name, "message": f"{spec.display} is required"})
            else:
                cleaned[name] = None
            continue
        try:
            if spec.kind == "date":
                cleaned[name] = _clean_date(spec, data[name], today)
            else:
                cleaned[name] = _CLEANERS[spec.kind](spec, data[name])
        except FieldError as e:
            errors.append({"field": name, "message": f"{spec.display} {e}"})
    return cleaned, errors


def validate_application(data: Dict[str, Any], partial: bool = False, today: Optional[date] = None) -> List[Dict[str, str]]:
    """
    Returns a list of ``{"field", "message"}`` errors. Empty list means valid.

    With ``partial=True`` only the fields present are checked, which is what a
    patch body looks like before it is merged into the stored record.
    """
    if not isinstance(data, dict):
        return [{"field": "body", "message": "Job application must be a JSON object"}]
    _, errors = _check(extract_fields(data), partial, today or today_utc())
    return errors


def clean_application(data: Dict[str, Any], partial: bool = False, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Validate and normalize a job application.

    Returns the cleaned fields keyed by their canonical names. A full (non
    partial) clean also fills in the default status. Raises ValidationError
    listing every violated field.
    """
    if not isinstance(data, dict):
        raise ValidationError([{"field": "body", "message": "Job application must be a JSON object"}])
    cleaned, errors = _check(extract_fields(data), partial, today or today_utc())
    if errors:
        raise ValidationError(errors)
    if not partial and not cleaned.get("status"):
        cleaned["status"] = DEFAULT_STATUS
    return cleaned

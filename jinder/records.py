"""
Record <-> row mapping and the public JSON shape of a job application.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from .schema import DEFAULT_CURRENCY, DEFAULT_PERIOD, INACTIVE_STATUSES, today_utc

# Public field name -> JobApplication column
COLUMNS = {
    "id": "id",
    "userId": "owner_id",
    "company": "company",
    "position": "position",
    "applicationDate": "application_date",
    "status": "status",
    "location": "location",
    "description": "description",
    "notes": "notes",
    "salary": "salary",
    "jobUrl": "job_url",
    "contactEmail": "contact_email",
    "requirements": "requirements",
    "version": "version",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def row_to_record(row: Any) -> Dict[str, Any]:
    return {field: getattr(row, column) for field, column in COLUMNS.items()}


def isoformat(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat(timespec="microseconds") + "Z"


def _money(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def format_salary(salary: Any) -> str:
    if salary is None or salary == "":
        return "Salary not specified"
    if isinstance(salary, str):
        return salary
    if isinstance(salary, (int, float)):
        return f"{DEFAULT_CURRENCY} {_money(salary)} ({DEFAULT_PERIOD})"

    currency = salary.get("currency") or DEFAULT_CURRENCY
    period = salary.get("period") or DEFAULT_PERIOD
    lo, hi = salary.get("min"), salary.get("max")
    if lo is not None and hi is not None:
        text = f"{currency} {_money(lo)} - {_money(hi)}"
    elif lo is not None:
        text = f"{currency} {_money(lo)}+"
    elif hi is not None:
        text = f"Up to {currency} {_money(hi)}"
    else:
        return "Salary not specified"
    return f"{text} ({period})"


def format_date(value: Optional[date]) -> Optional[str]:
    return value.strftime("%b %d, %Y") if value else None


def days_since(value: Optional[date], today: Optional[date] = None) -> Optional[int]:
    if value is None:
        return None
    return ((today or today_utc()) - value).days


def is_active(record: Dict[str, Any]) -> bool:
    return record.get("status") not in INACTIVE_STATUSES


def serialize(record: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    """Render a stored record as JSON-ready data, derived fields included."""
    out = dict(record)
    app_date = record.get("applicationDate")
    out["applicationDate"] = app_date.isoformat() if app_date else None
    out["createdAt"] = isoformat(record.get("createdAt"))
    out["updatedAt"] = isoformat(record.get("updatedAt"))
    out["requirements"] = list(record.get("requirements") or [])
    out["daysSinceApplication"] = days_since(app_date, today)
    out["formattedDate"] = format_date(app_date)
    out["formattedSalary"] = format_salary(record.get("salary"))
    out["isActive"] = is_active(record)
    return out

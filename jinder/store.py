"""
Job record store.

``JobStore`` owns validation and the persistence lifecycle of job
applications. ``SqlJobStore`` is the SQLAlchemy-backed implementation; the
in-memory one lives in ``memory_store``. Both hand out plain record dicts
keyed by public field names (see ``records.COLUMNS``).
"""

import math
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterator, List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .database import JobApplication, get_session_factory, init_database, utcnow
from .errors import ConflictError, NotFoundError, StorageError, ValidationError
from .logger import get_logger
from .records import COLUMNS, row_to_record
from .schema import MUTABLE_FIELDS, STATUSES, clean_application, extract_fields, normalize_status, salary_bounds

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
# Largest OFFSET a database accepts (signed 64-bit)
MAX_OFFSET = 2 ** 63 - 1

# sortBy value -> column it orders on
SORT_FIELDS = {
    "createdAt": "created_at",
    "applicationDate": "application_date",
    "title": "position",
    "position": "position",
    "company": "company",
    "salary": "salary_min",
}
SORT_ORDERS = ("asc", "desc")
CASE_INSENSITIVE_SORTS = ("company", "position")


@dataclass
class JobFilter:
    status: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    search: Optional[str] = None

    def __post_init__(self):
        for name in ("status", "company", "location", "search"):
            value = getattr(self, name)
            if isinstance(value, str):
                value = value.strip()
            setattr(self, name, value or None)
        if self.status is not None:
            status = normalize_status(self.status)
            if status not in STATUSES:
                raise ValidationError(
                    [{"field": "status", "message": f"Status must be one of: {', '.join(STATUSES)}"}]
                )
            self.status = status


@dataclass
class Pagination:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    def clamp(self, max_page_size: int = MAX_PAGE_SIZE) -> "Pagination":
        limit = min(max(1, self.limit), max_page_size)
        last_page = MAX_OFFSET // limit
        return Pagination(page=min(max(1, self.page), last_page), limit=limit)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Sort:
    field: str = "createdAt"
    order: str = "desc"

    def __post_init__(self):
        errors = []
        if self.field not in SORT_FIELDS:
            errors.append({"field": "sortBy", "message": f"sortBy must be one of: {', '.join(SORT_FIELDS)}"})
        self.order = (self.order or "").lower()
        if self.order not in SORT_ORDERS:
            errors.append({"field": "sortOrder", "message": "sortOrder must be 'asc' or 'desc'"})
        if errors:
            raise ValidationError(errors)

    @property
    def column(self) -> str:
        return SORT_FIELDS[self.field]

    @property
    def descending(self) -> bool:
        return self.order == "desc"


@dataclass
class QueryResult:
    items: List[Dict[str, Any]]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> Dict[str, Any]:
        return {
            "currentPage": self.page,
            "totalPages": self.total_pages,
            "totalItems": self.total,
            "itemsPerPage": self.limit,
            "hasNextPage": self.page < self.total_pages,
            "hasPrevPage": self.page > 1,
        }


class JobStore(ABC):
    """
    Interface shared by all job application stores.

    ``owner`` scopes an operation to one user's records; ``None`` means no
    scoping (single-tenant mode).
    """

    def __init__(
        self,
        max_page_size: int = MAX_PAGE_SIZE,
        reject_duplicates: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.max_page_size = max_page_size
        self.reject_duplicates = reject_duplicates
        self._clock = clock

    @abstractmethod
    def create(self, data: Dict[str, Any], owner: Optional[str] = None) -> Dict[str, Any]:
        ...

    @abstractmethod
    def get(self, job_id: str, owner: Optional[str] = None) -> Dict[str, Any]:
        ...

    @abstractmethod
    def query(
        self,
        filters: Optional[JobFilter] = None,
        pagination: Optional[Pagination] = None,
        sort: Optional[Sort] = None,
        owner: Optional[str] = None,
    ) -> QueryResult:
        ...

    @abstractmethod
    def update(
        self,
        job_id: str,
        data: Dict[str, Any],
        owner: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        ...

    @abstractmethod
    def delete(self, job_id: str, owner: Optional[str] = None) -> Dict[str, Any]:
        ...

    @abstractmethod
    def stats(self, owner: Optional[str] = None) -> Dict[str, Any]:
        ...

    def close(self) -> None:
        pass

    # Shared lifecycle helpers

    def _today(self):
        return self._clock().date()

    def _build_record(self, data: Dict[str, Any], owner: Optional[str]) -> Dict[str, Any]:
        cleaned = clean_application(data, today=self._today())
        now = self._clock()
        record = {name: None for name in COLUMNS}
        record.update(cleaned)
        record.update(
            id=uuid.uuid4().hex,
            userId=owner,
            version=1,
            createdAt=now,
            updatedAt=now,
        )
        return record

    def _merge(self, current: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a partial body onto a stored record and re-validate the result."""
        if not isinstance(data, dict):
            raise ValidationError([{"field": "body", "message": "Job application must be a JSON object"}])
        merged = {name: current.get(name) for name in MUTABLE_FIELDS}
        merged.update(extract_fields(data))
        return clean_application(merged, today=self._today())

    def _next_timestamp(self, previous: datetime) -> datetime:
        now = self._clock()
        if now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    @staticmethod
    def _check_version(job_id: str, current: int, expected: Optional[int]) -> None:
        if expected is not None and expected != current:
            raise ConflictError(
                f"Job application {job_id} was modified (version {current}, expected {expected})",
                details=[{"field": "version", "message": f"Current version is {current}"}],
            )

    @staticmethod
    def _duplicate_error(record: Dict[str, Any]) -> ConflictError:
        return ConflictError(
            f"An application for {record['position']} at {record['company']} "
            f"on {record['applicationDate'].isoformat()} already exists"
        )

    def _pagination(self, pagination: Optional[Pagination]) -> Pagination:
        return (pagination or Pagination()).clamp(self.max_page_size)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _contains(column, text: str):
    return column.ilike(f"%{_escape_like(text)}%", escape="\\")


class SqlJobStore(JobStore):
    """Job store backed by a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker, **kwargs):
        super().__init__(**kwargs)
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str, **kwargs) -> "SqlJobStore":
        engine = init_database(database_url)
        return cls(get_session_factory(engine), **kwargs)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            get_logger().error("Storage operation failed", error=str(e), error_type=type(e).__name__)
            raise StorageError("Storage operation failed") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        bind = self._session_factory.kw.get("bind")
        if bind is not None:
            bind.dispose()

    @staticmethod
    def _owned(session: Session, job_id: str, owner: Optional[str], for_update: bool = False) -> JobApplication:
        row = session.get(JobApplication, job_id, with_for_update=for_update or None)
        if row is None or (owner is not None and row.owner_id != owner):
            raise NotFoundError(job_id)
        return row

    @staticmethod
    def _apply(row: JobApplication, record: Dict[str, Any]) -> None:
        for name, column in COLUMNS.items():
            if name in record:
                setattr(row, column, record[name])
        row.salary_min, row.salary_max = salary_bounds(row.salary)

    @staticmethod
    def _owner_clause(owner: Optional[str]):
        return JobApplication.owner_id.is_(None) if owner is None else JobApplication.owner_id == owner

    def _find_duplicate(self, session: Session, record: Dict[str, Any], owner: Optional[str]) -> bool:
        stmt = select(JobApplication.id).where(
            self._owner_clause(owner),
            func.lower(JobApplication.company) == record["company"].lower(),
            func.lower(JobApplication.position) == record["position"].lower(),
            JobApplication.application_date == record["applicationDate"],
        )
        return session.scalar(stmt.limit(1)) is not None

    def create(self, data: Dict[str, Any], owner: Optional[str] = None) -> Dict[str, Any]:
        record = self._build_record(data, owner)
        with self._session() as session:
            if self.reject_duplicates and self._find_duplicate(session, record, owner):
                raise self._duplicate_error(record)
            row = JobApplication()
            self._apply(row, record)
            session.add(row)
            session.flush()
            created = row_to_record(row)
        get_logger().info("Job application created", id=created["id"], company=created["company"])
        return created

    def get(self, job_id: str, owner: Optional[str] = None) -> Dict[str, Any]:
        with self._session() as session:
            return row_to_record(self._owned(session, job_id, owner))

    def _conditions(self, filters: JobFilter, owner: Optional[str]) -> list:
        conds = []
        if owner is not None:
            conds.append(JobApplication.owner_id == owner)
        if filters.status:
            conds.append(JobApplication.status == filters.status)
        if filters.company:
            conds.append(_contains(JobApplication.company, filters.company))
        if filters.location:
            conds.append(_contains(JobApplication.location, filters.location))
        if filters.search:
            conds.append(
                or_(
                    _contains(JobApplication.position, filters.search),
                    _contains(JobApplication.company, filters.search),
                    _contains(JobApplication.description, filters.search),
                )
            )
        return conds

    def _order_by(self, sort: Sort) -> list:
        column = getattr(JobApplication, sort.column)
        expr = func.lower(column) if sort.column in CASE_INSENSITIVE_SORTS else column
        order = [expr.desc() if sort.descending else expr.asc(), JobApplication.id.asc()]
        if sort.column == "salary_min":
            order.insert(0, column.is_(None))
        return order

    def query(
        self,
        filters: Optional[JobFilter] = None,
        pagination: Optional[Pagination] = None,
        sort: Optional[Sort] = None,
        owner: Optional[str] = None,
    ) -> QueryResult:
        filters = filters or JobFilter()
        pagination = self._pagination(pagination)
        sort = sort or Sort()
        conds = self._conditions(filters, owner)
        where = and_(*conds) if conds else None

        count_stmt = select(func.count()).select_from(JobApplication)
        rows_stmt = select(JobApplication).order_by(*self._order_by(sort))
        if where is not None:
            count_stmt = count_stmt.where(where)
            rows_stmt = rows_stmt.where(where)
        rows_stmt = rows_stmt.offset(pagination.offset).limit(pagination.limit)

        with self._session() as session:
            total = session.scalar(count_stmt) or 0
            items = [row_to_record(row) for row in session.scalars(rows_stmt)]
        return QueryResult(items=items, total=total, page=pagination.page, limit=pagination.limit)

    def update(
        self,
        job_id: str,
        data: Dict[str, Any],
        owner: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        with self._session() as session:
            row = self._owned(session, job_id, owner, for_update=True)
            self._check_version(job_id, row.version, expected_version)
            cleaned = self._merge(row_to_record(row), data)
            self._apply(row, cleaned)
            row.version = row.version + 1
            row.updated_at = self._next_timestamp(row.updated_at)
            session.flush()
            updated = row_to_record(row)
        get_logger().info("Job application updated", id=job_id, version=updated["version"])
        return updated

    def delete(self, job_id: str, owner: Optional[str] = None) -> Dict[str, Any]:
        with self._session() as session:
            row = self._owned(session, job_id, owner)
            summary = {"id": row.id, "company": row.company, "position": row.position}
            session.delete(row)
        get_logger().info("Job application deleted", id=job_id)
        return summary

    def stats(self, owner: Optional[str] = None) -> Dict[str, Any]:
        stmt = select(JobApplication.status, func.count()).group_by(JobApplication.status)
        if owner is not None:
            stmt = stmt.where(JobApplication.owner_id == owner)
        with self._session() as session:
            counts = dict(session.execute(stmt).all())
        by_status = {status: counts.get(status, 0) for status in STATUSES}
        return {"total": sum(by_status.values()), "byStatus": by_status}

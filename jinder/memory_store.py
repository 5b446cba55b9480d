"""
In-memory job store.

Same semantics as ``SqlJobStore`` (filtering, ordering, ownership, versions)
without a database. State lives on the instance; every call hands out copies.
"""

import copy
from typing import Any, Dict, List, Optional

from .errors import NotFoundError
from .logger import get_logger
from .schema import STATUSES, salary_bounds
from .store import CASE_INSENSITIVE_SORTS, JobFilter, JobStore, Pagination, QueryResult, Sort

# Sort column -> record field
_SORT_KEYS = {
    "created_at": "createdAt",
    "application_date": "applicationDate",
    "position": "position",
    "company": "company",
}


def _contains(value: Optional[str], needle: str) -> bool:
    return value is not None and needle.lower() in value.lower()


class MemoryJobStore(JobStore):
    """Job store holding records in a dict keyed by id."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._records: Dict[str, Dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._records)

    def _owned(self, job_id: str, owner: Optional[str]) -> Dict[str, Any]:
        record = self._records.get(job_id)
        if record is None or (owner is not None and record["userId"] != owner):
            raise NotFoundError(job_id)
        return record

    def _is_duplicate(self, record: Dict[str, Any], owner: Optional[str]) -> bool:
        for other in self._records.values():
            if (
                other["userId"] == owner
                and other["company"].lower() == record["company"].lower()
                and other["position"].lower() == record["position"].lower()
                and other["applicationDate"] == record["applicationDate"]
            ):
                return True
        return False

    def create(self, data: Dict[str, Any], owner: Optional[str] = None) -> Dict[str, Any]:
        record = self._build_record(data, owner)
        if self.reject_duplicates and self._is_duplicate(record, owner):
            raise self._duplicate_error(record)
        self._records[record["id"]] = record
        get_logger().info("Job application created", id=record["id"], company=record["company"])
        return copy.deepcopy(record)

    def get(self, job_id: str, owner: Optional[str] = None) -> Dict[str, Any]:
        return copy.deepcopy(self._owned(job_id, owner))

    def _matches(self, record: Dict[str, Any], filters: JobFilter, owner: Optional[str]) -> bool:
        if owner is not None and record["userId"] != owner:
            return False
        if filters.status and record["status"] != filters.status:
            return False
        if filters.company and not _contains(record["company"], filters.company):
            return False
        if filters.location and not _contains(record["location"], filters.location):
            return False
        if filters.search and not any(
            _contains(record[name], filters.search) for name in ("position", "company", "description")
        ):
            return False
        return True

    @staticmethod
    def _ordered(records: List[Dict[str, Any]], sort: Sort) -> List[Dict[str, Any]]:
        # Stable sorts applied from the least to the most significant key:
        # id ascending, then the sort value, then records without a value last.
        records = sorted(records, key=lambda r: r["id"])
        if sort.column == "salary_min":
            def value(r):
                return salary_bounds(r["salary"])[0]
        else:
            name = _SORT_KEYS[sort.column]

            def value(r):
                v = r[name]
                return v.lower() if sort.column in CASE_INSENSITIVE_SORTS else v

        def key(r):
            v = value(r)
            return (v is None, v)

        records.sort(key=key, reverse=sort.descending)
        records.sort(key=lambda r: value(r) is None)
        return records

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
        matched = [r for r in self._records.values() if self._matches(r, filters, owner)]
        ordered = self._ordered(matched, sort)
        page = ordered[pagination.offset:pagination.offset + pagination.limit]
        return QueryResult(
            items=copy.deepcopy(page),
            total=len(matched),
            page=pagination.page,
            limit=pagination.limit,
        )

    def update(
        self,
        job_id: str,
        data: Dict[str, Any],
        owner: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        current = self._owned(job_id, owner)
        self._check_version(job_id, current["version"], expected_version)
        cleaned = self._merge(current, data)
        updated = dict(current)
        updated.update(cleaned)
        updated["version"] = current["version"] + 1
        updated["updatedAt"] = self._next_timestamp(current["updatedAt"])
        self._records[job_id] = updated
        get_logger().info("Job application updated", id=job_id, version=updated["version"])
        return copy.deepcopy(updated)

    def delete(self, job_id: str, owner: Optional[str] = None) -> Dict[str, Any]:
        record = self._owned(job_id, owner)
        del self._records[job_id]
        get_logger().info("Job application deleted", id=job_id)
        return {"id": record["id"], "company": record["company"], "position": record["position"]}

    def stats(self, owner: Optional[str] = None) -> Dict[str, Any]:
        by_status = {status: 0 for status in STATUSES}
        for record in self._records.values():
            if owner is None or record["userId"] == owner:
                by_status[record["status"]] += 1
        return {"total": sum(by_status.values()), "byStatus": by_status}

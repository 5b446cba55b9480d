"""
Job query/command API.

Flask application factory plus the ``/api/jobs`` blueprint. Views parse the
request, call the injected store and wrap results in one envelope:

    {"success": true,  "message": ..., "data": ...}
    {"success": false, "message": ..., "error": {"kind": ..., "details": [...]}}
"""

import functools
from typing import Any, Dict, List, Optional, Tuple

from flask import Blueprint, Flask, current_app, g, jsonify, request, url_for
from werkzeug.exceptions import HTTPException

from . import __version__
from .config import Settings
from .errors import InternalError, JinderError, UnauthorizedError, ValidationError
from .logger import get_logger
from .records import serialize
from .store import JobFilter, JobStore, Pagination, Sort, SqlJobStore

jobs_bp = Blueprint("jobs", __name__, url_prefix="/api/jobs")

_HTTP_KINDS = {
    400: "bad_request",
    404: "not_found",
    405: "method_not_allowed",
    413: "payload_too_large",
    415: "unsupported_media_type",
}


def get_store() -> JobStore:
    return current_app.extensions["jinder_store"]


def get_settings() -> Settings:
    return current_app.config["JINDER_SETTINGS"]


def success(data: Any, message: str, status: int = 200, headers: Optional[Dict[str, str]] = None):
    body = {"success": True, "message": message, "data": data}
    return jsonify(body), status, headers or {}


def failure(error: JinderError, headers: Optional[List[Tuple[str, str]]] = None):
    body = {"success": False, "message": error.message, "error": error.to_dict()}
    return jsonify(body), error.status_code, headers or []


def operation(name: str):
    """Tag a view with its operation name and count it in the request metrics."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            g.operation = name
            get_logger().record_request(name)
            response = func(*args, **kwargs)
            get_logger().record_success(name)
            return response
        return wrapper
    return decorator


def _owner() -> Optional[str]:
    settings = get_settings()
    owner = (request.headers.get(settings.owner_header) or "").strip() or None
    if owner is None and settings.multi_tenant:
        raise UnauthorizedError(f"Missing {settings.owner_header} header")
    return owner


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError([{"field": "body", "message": "Request body must be a JSON object"}])
    return data


def _int_arg(name: str, default: int, errors: List[Dict[str, str]]) -> int:
    raw = request.args.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        errors.append({"field": name, "message": f"{name} must be an integer"})
        return default


def _list_params() -> Tuple[JobFilter, Pagination, Sort]:
    settings = get_settings()
    errors: List[Dict[str, str]] = []
    pagination = Pagination(
        page=_int_arg("page", 1, errors),
        limit=_int_arg("limit", settings.default_page_size, errors),
    )

    filters = sort = None
    try:
        filters = JobFilter(
            status=request.args.get("status"),
            company=request.args.get("company"),
            location=request.args.get("location"),
            search=request.args.get("search"),
        )
    except ValidationError as e:
        errors.extend(e.errors)
    try:
        sort = Sort(
            field=request.args.get("sortBy") or "createdAt",
            order=request.args.get("sortOrder") or "desc",
        )
    except ValidationError as e:
        errors.extend(e.errors)

    if errors:
        raise ValidationError(errors, message="Invalid query parameters")
    return filters, pagination, sort


def _expected_version() -> Optional[int]:
    raw = request.headers.get("If-Match", "").strip()
    if raw.startswith("W/"):
        raw = raw[2:]
    raw = raw.strip('"')
    if not raw or raw == "*":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError([{"field": "If-Match", "message": "If-Match must carry a record version"}])


def _etag(record: Dict[str, Any]) -> Dict[str, str]:
    return {"ETag": f'"{record["version"]}"'}


@jobs_bp.route("", methods=["GET"])
@operation("list")
def list_jobs():
    filters, pagination, sort = _list_params()
    result = get_store().query(filters, pagination, sort, owner=_owner())
    data = {
        "items": [serialize(r) for r in result.items],
        "pagination": result.pagination(),
    }
    return success(data, "Jobs retrieved successfully")


@jobs_bp.route("/stats", methods=["GET"])
@operation("stats")
def job_stats():
    return success(get_store().stats(owner=_owner()), "Job statistics retrieved successfully")


@jobs_bp.route("/<job_id>", methods=["GET"])
@operation("get")
def get_job(job_id: str):
    record = get_store().get(job_id, owner=_owner())
    return success(serialize(record), "Job retrieved successfully", headers=_etag(record))


@jobs_bp.route("", methods=["POST"])
@operation("create")
def create_job():
    owner = _owner()
    record = get_store().create(_json_body(), owner=owner)
    headers = {"Location": url_for("jobs.get_job", job_id=record["id"])}
    headers.update(_etag(record))
    return success(serialize(record), "Job created successfully", status=201, headers=headers)


@jobs_bp.route("/<job_id>", methods=["PUT", "PATCH"])
@operation("update")
def update_job(job_id: str):
    owner = _owner()
    expected = _expected_version()
    record = get_store().update(job_id, _json_body(), owner=owner, expected_version=expected)
    return success(serialize(record), "Job updated successfully", headers=_etag(record))


@jobs_bp.route("/<job_id>", methods=["DELETE"])
@operation("delete")
def delete_job(job_id: str):
    summary = get_store().delete(job_id, owner=_owner())
    return success(summary, "Job deleted successfully")


def health():
    return success({"status": "OK", "version": __version__}, "JINDER API is running")


def _record_failure(kind: str) -> None:
    name = g.get("operation")
    if name:
        get_logger().record_failure(name, kind)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(JinderError)
    def handle_jinder_error(error: JinderError):
        _record_failure(error.kind)
        if isinstance(error, InternalError):
            cause = error.__cause__ or error
            get_logger().error(
                "Request failed",
                path=request.path,
                method=request.method,
                error=str(cause),
                error_type=type(cause).__name__,
            )
            if not get_settings().expose_errors:
                return failure(InternalError(error.message))
            return failure(InternalError(error.message, details=[str(cause)]))
        get_logger().info(
            "Request rejected",
            path=request.path,
            method=request.method,
            kind=error.kind,
            details=error.details,
        )
        return failure(error)

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        kind = _HTTP_KINDS.get(error.code, "http_error")
        _record_failure(kind)
        wrapped = JinderError(error.description or error.name)
        wrapped.kind = kind
        wrapped.status_code = error.code
        headers = [(k, v) for k, v in error.get_headers() if k.lower() != "content-type"]
        return failure(wrapped, headers=headers)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        _record_failure(InternalError.kind)
        get_logger().exception("Unhandled error", path=request.path, method=request.method)
        details = [f"{type(error).__name__}: {error}"] if get_settings().expose_errors else None
        return failure(InternalError("An unexpected error occurred", details=details))


def create_app(store: Optional[JobStore] = None, settings: Optional[Settings] = None) -> Flask:
    """
    Build the Flask application.

    Args:
        store: Job store handle; built from settings.database_url when omitted
        settings: Application settings (default: Settings.from_env())

    Returns:
        Configured Flask app
    """
    settings = settings or Settings.from_env()
    if store is None:
        store = SqlJobStore.from_url(
            settings.database_url,
            max_page_size=settings.max_page_size,
            reject_duplicates=settings.reject_duplicates,
        )

    app = Flask(__name__)
    app.config["JINDER_SETTINGS"] = settings
    app.json.sort_keys = False
    app.extensions["jinder_store"] = store

    app.register_blueprint(jobs_bp)
    app.add_url_rule("/api/health", "health", health, methods=["GET"])
    register_error_handlers(app)
    return app

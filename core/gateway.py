"""
Remote data gateway for the hosted platform.

The print shop owns no database. Every read and write is an authenticated
REST call to the platform: tables under ``/rest/v1`` (PostgREST dialect),
auth under ``/auth/v1``, storage buckets under ``/storage/v1`` and
serverless functions under ``/functions/v1``.

The gateway does request construction and error mapping only. There is
no retry and no caching here; the offline cache sits one layer up.

Usage:
    gateway = DataGateway(url, anon_key)

    jobs = (gateway.table("jobs")
            .select("*, customers(name, customer_display_id)")
            .eq("status", "Printing")
            .order("created_at", ascending=False)
            .limit(20)
            .execute())

    gateway.table("jobs").eq("id", job_id).update({"status": "Completed"})

    result = gateway.invoke_function("send-notification", {...})

Thread Safety:
    A DataGateway holds a requests.Session and can be shared between Flask
    request threads. Query builders are per-call objects and never shared.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import requests

from .exceptions import AuthenticationError, NotFoundError, RateLimitedError, RemoteCallError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

# PostgREST error code for "single row requested, zero (or many) returned"
NO_ROWS_CODE = "PGRST116"

SINGLE_OBJECT_ACCEPT = "application/vnd.pgrst.object+json"


def format_filter_value(value: Any) -> str:
    """Render a Python value the way PostgREST expects it in a filter."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass
class Filter:
    """One ``column=op.value`` condition on a table query."""

    column: str
    operator: str
    value: Any
    negated: bool = False

    def to_param(self) -> Tuple[str, str]:
        if self.operator == "in":
            rendered = "(" + ",".join(format_filter_value(v) for v in self.value) + ")"
        else:
            rendered = format_filter_value(self.value)
        prefix = "not." if self.negated else ""
        return self.column, f"{prefix}{self.operator}.{rendered}"


@dataclass
class TableQuery:
    """
    Fluent query against one table.

    Filter methods return ``self`` so calls chain. Nothing is sent until a
    terminal method runs: ``execute()`` for reads, ``insert()``, ``upsert()``,
    ``update()`` or ``delete()`` for writes. Writes honour the same filters
    as reads, so ``.eq("id", x).update({...})`` touches one row.
    """

    gateway: "DataGateway"
    table: str
    columns: str = "*"
    filters: List[Filter] = field(default_factory=list)
    or_filters: List[str] = field(default_factory=list)
    orders: List[Tuple[str, bool]] = field(default_factory=list)
    limit_count: Optional[int] = None
    offset_count: Optional[int] = None
    result_mode: str = "many"

    # -- selection --------------------------------------------------------

    def select(self, columns: str = "*") -> "TableQuery":
        self.columns = columns
        return self

    # -- filters ----------------------------------------------------------

    def _add(self, column: str, operator: str, value: Any, negated: bool = False) -> "TableQuery":
        self.filters.append(Filter(column, operator, value, negated))
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "eq", value)

    def neq(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "neq", value)

    def gt(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "gt", value)

    def gte(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "gte", value)

    def lt(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "lt", value)

    def lte(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "lte", value)

    def in_(self, column: str, values: List[Any]) -> "TableQuery":
        return self._add(column, "in", list(values))

    def is_(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "is", value)

    def ilike(self, column: str, pattern: str) -> "TableQuery":
        return self._add(column, "ilike", pattern)

    def not_(self, column: str, operator: str, value: Any) -> "TableQuery":
        return self._add(column, operator, value, negated=True)

    def or_(self, expression: str) -> "TableQuery":
        """Raw PostgREST ``or`` group, e.g. ``name.ilike.%ann%,email.ilike.%ann%``."""
        self.or_filters.append(expression)
        return self

    # -- modifiers --------------------------------------------------------

    def order(self, column: str, ascending: bool = True) -> "TableQuery":
        self.orders.append((column, ascending))
        return self

    def limit(self, count: int) -> "TableQuery":
        self.limit_count = count
        return self

    def range(self, start: int, end: int) -> "TableQuery":
        """Inclusive row range, same semantics as the platform client."""
        self.offset_count = start
        self.limit_count = end - start + 1
        return self

    def single(self) -> "TableQuery":
        """Expect exactly one row; zero rows raises NotFoundError."""
        self.result_mode = "single"
        return self

    def maybe_single(self) -> "TableQuery":
        """Expect zero or one row; zero rows returns None."""
        self.result_mode = "maybe_single"
        return self

    # -- terminals --------------------------------------------------------

    def execute(self) -> Any:
        return self.gateway.run_query(self, "GET")

    def insert(self, rows: Any) -> Any:
        return self.gateway.run_query(self, "POST", rows)

    def upsert(self, rows: Any) -> Any:
        return self.gateway.run_query(self, "UPSERT", rows)

    def update(self, values: Dict[str, Any]) -> Any:
        return self.gateway.run_query(self, "PATCH", values)

    def delete(self) -> Any:
        return self.gateway.run_query(self, "DELETE")

    def to_params(self) -> List[Tuple[str, str]]:
        """Query-string parameters for this query, in a stable order."""
        params: List[Tuple[str, str]] = [("select", self.columns)]
        params.extend(f.to_param() for f in self.filters)
        for expression in self.or_filters:
            params.append(("or", f"({expression})"))
        if self.orders:
            params.append((
                "order",
                ",".join(f"{col}.{'asc' if asc else 'desc'}" for col, asc in self.orders)
            ))
        if self.limit_count is not None:
            params.append(("limit", str(self.limit_count)))
        if self.offset_count is not None:
            params.append(("offset", str(self.offset_count)))
        return params


class StorageBucket:
    """Upload, public-URL and delete operations on one storage bucket."""

    def __init__(self, gateway: "DataGateway", bucket: str):
        self._gateway = gateway
        self.bucket = bucket

    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream",
               upsert: bool = False) -> Dict[str, Any]:
        return self._gateway.request(
            "POST",
            f"/storage/v1/object/{self.bucket}/{path}",
            operation=f"storage.upload:{self.bucket}",
            data=data,
            headers={"Content-Type": content_type, "x-upsert": "true" if upsert else "false"},
        )

    def public_url(self, path: str) -> str:
        return f"{self._gateway.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    def remove(self, paths: List[str]) -> Any:
        return self._gateway.request(
            "DELETE",
            f"/storage/v1/object/{self.bucket}",
            operation=f"storage.remove:{self.bucket}",
            json={"prefixes": list(paths)},
        )


class DataGateway:
    """
    Authenticated REST client for the hosted platform.

    Args:
        base_url: Project URL, e.g. ``https://xyz.supabase.co``
        api_key: Project API key (anon key, or service-role key for
            server-side functions)
        access_token: Signed-in user's JWT; requests run as that user so
            row-level security applies. Falls back to ``api_key``.
        session: Optional requests.Session (tests inject a fake)
        timeout: Per-request timeout in seconds; None means no timeout
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token
        self.timeout = timeout
        self._session = session or requests.Session()

    def with_token(self, access_token: Optional[str]) -> "DataGateway":
        """Same connection pool, requests signed as another user."""
        return DataGateway(
            self.base_url,
            self.api_key,
            access_token=access_token,
            session=self._session,
            timeout=self.timeout,
        )

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def table(self, name: str) -> TableQuery:
        return TableQuery(self, name)

    def storage(self, bucket: str) -> StorageBucket:
        return StorageBucket(self, bucket)

    def invoke_function(self, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Invoke a serverless function and return its JSON body."""
        return self.request(
            "POST",
            f"/functions/v1/{name}",
            operation=f"function:{name}",
            json=body,
        ) or {}

    def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        """
        Exchange credentials for a session.

        Returns:
            Dict with ``access_token``, ``refresh_token`` and ``user``

        Raises:
            AuthenticationError: Credentials rejected
            RateLimitedError: The platform is throttling this account
        """
        try:
            return self.request(
                "POST",
                "/auth/v1/token",
                operation="auth.sign_in",
                params=[("grant_type", "password")],
                json={"email": email, "password": password},
                authorized=False,
            )
        except RemoteCallError as e:
            if e.remote_status == 429:
                raise RateLimitedError(email, retry_after_seconds=60) from e
            if e.remote_status in (400, 401):
                raise AuthenticationError(e.message) from e
            raise

    def get_user(self) -> Dict[str, Any]:
        """Resolve the user behind this gateway's access token."""
        try:
            return self.request("GET", "/auth/v1/user", operation="auth.get_user")
        except RemoteCallError as e:
            if e.remote_status in (401, 403):
                raise AuthenticationError("Session expired", code="JWT") from e
            raise

    def sign_out(self) -> None:
        self.request("POST", "/auth/v1/logout", operation="auth.sign_out")

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _headers(self, authorized: bool = True) -> Dict[str, str]:
        headers = {"apikey": self.api_key}
        if authorized:
            headers["Authorization"] = f"Bearer {self.access_token or self.api_key}"
        return headers

    def run_query(self, query: TableQuery, method: str, body: Any = None) -> Any:
        """Send a TableQuery. Subclasses may override to serve rows from elsewhere."""
        headers: Dict[str, str] = {}
        http_method = method
        if method in ("POST", "PATCH", "DELETE", "UPSERT"):
            prefer = "return=representation"
            if method == "UPSERT":
                prefer += ",resolution=merge-duplicates"
                http_method = "POST"
            headers["Prefer"] = prefer
        if query.result_mode == "single":
            headers["Accept"] = SINGLE_OBJECT_ACCEPT

        params = query.to_params()
        if method in ("POST", "UPSERT"):
            params = [("select", query.columns)]

        result = self.request(
            http_method,
            f"/rest/v1/{query.table}",
            operation=f"{method.lower()}:{query.table}",
            params=params,
            json=body,
            headers=headers,
        )

        if query.result_mode == "maybe_single":
            rows = result or []
            return rows[0] if rows else None
        return result

    def request(
        self,
        method: str,
        path: str,
        operation: str,
        params: Optional[List[Tuple[str, str]]] = None,
        json: Any = None,
        data: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
        authorized: bool = True,
    ) -> Any:
        """
        Perform one HTTP call and decode the JSON body.

        Raises:
            RemoteCallError: Transport failure or non-2xx status
            NotFoundError: Single-row request matched nothing
        """
        all_headers = self._headers(authorized)
        if headers:
            all_headers.update(headers)

        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json,
                data=data,
                headers=all_headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"{operation} failed: {e}")
            raise RemoteCallError(operation, f"Network error: {e}") from e

        if response.status_code >= 400:
            raise self._error_from_response(operation, response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _error_from_response(operation: str, response: requests.Response) -> RemoteCallError:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        code = payload.get("code") or payload.get("error")
        message = (
            payload.get("message")
            or payload.get("error_description")
            or payload.get("msg")
            or response.text
            or f"HTTP {response.status_code}"
        )
        code = str(code) if code is not None else None

        logger.warning(f"{operation} returned {response.status_code}: {message}")

        if code == NO_ROWS_CODE:
            return NotFoundError(operation, message, status_code=response.status_code, code=code)
        return RemoteCallError(operation, message, status_code=response.status_code, code=code)

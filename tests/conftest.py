"""
Shared fixtures.

FakeGateway serves table queries from in-memory dicts so services can be
tested without the hosted platform. Filters, ordering, ranges and the
single/maybe_single modes behave like the real REST API; embedded
relations are not resolved, so tests put the embedded dict straight into
the row (e.g. ``{"customers": {"name": "Ann"}}``).
"""

import copy
import re
from datetime import datetime, timezone
from typing import Any, Dict, List

import pytest

from core.exceptions import NotFoundError, RemoteCallError
from core.gateway import DataGateway, Filter, format_filter_value


# =============================================================================
# FAKE PLATFORM
# =============================================================================

def _text(value: Any) -> str:
    return format_filter_value(value)


def _compare(left: Any, right: Any) -> int:
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return (left > right) - (left < right)
    a, b = _text(left), _text(right)
    return (a > b) - (a < b)


def _like(value: Any, pattern: str) -> bool:
    regex = "^" + ".*".join(re.escape(part) for part in str(pattern).split("%")) + "$"
    return value is not None and re.match(regex, str(value), re.IGNORECASE | re.DOTALL) is not None


def _matches(row: Dict[str, Any], flt: Filter) -> bool:
    value = row.get(flt.column)
    op = flt.operator
    if op == "eq":
        result = value is not None and _text(value) == _text(flt.value)
    elif op == "neq":
        result = value is None or _text(value) != _text(flt.value)
    elif op == "in":
        result = value is not None and _text(value) in {_text(v) for v in flt.value}
    elif op == "is":
        result = value is flt.value if flt.value in (None, True, False) else value == flt.value
    elif op == "ilike":
        result = _like(value, flt.value)
    elif op in ("gt", "gte", "lt", "lte"):
        if value is None:
            return False
        cmp = _compare(value, flt.value)
        result = {"gt": cmp > 0, "gte": cmp >= 0, "lt": cmp < 0, "lte": cmp <= 0}[op]
    else:
        raise AssertionError(f"FakeGateway does not support operator {op}")
    return not result if flt.negated else result


def _matches_or(row: Dict[str, Any], expression: str) -> bool:
    for clause in expression.split(","):
        column, op, value = clause.split(".", 2)
        if _matches(row, Filter(column, op, value)):
            return True
    return False


class FakeBucket:
    def __init__(self, gateway: "FakeGateway", bucket: str):
        self._gateway = gateway
        self.bucket = bucket

    def upload(self, path, data, content_type="application/octet-stream", upsert=False):
        self._gateway.uploads.append((self.bucket, path, data, content_type))
        return {"Key": f"{self.bucket}/{path}"}

    def public_url(self, path):
        return f"{self._gateway.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    def remove(self, paths):
        if self._gateway.storage_error is not None:
            raise self._gateway.storage_error
        self._gateway.removed.append((self.bucket, list(paths)))
        return []


class FakeGateway(DataGateway):
    """
    In-memory stand-in for the platform.

    Attributes:
        tables: table name -> list of row dicts
        calls: (method, table) for every query run
        errors: table name -> exception raised for any query on it
        offline: raise a connectivity RemoteCallError for every query
    """

    def __init__(self, tables: Dict[str, List[Dict[str, Any]]] = None):
        super().__init__("https://test-project.supabase.co", "test-anon-key")
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self.calls: List[tuple] = []
        self.errors: Dict[str, Exception] = {}
        self.offline = False
        self.tokens: List[str] = []
        self.function_calls: List[tuple] = []
        self.function_response: Dict[str, Any] = {"success": True, "email_sent": True, "sms_sent": False}
        self.function_error: Exception = None
        self.uploads: List[tuple] = []
        self.removed: List[tuple] = []
        self.storage_error: Exception = None
        self.users: Dict[str, Dict[str, Any]] = {}
        self.signed_out: List[str] = []
        self._next_id = 1000

    # -- helpers ------------------------------------------------------------

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def add_user(self, email: str, password: str, user_id: str) -> None:
        self.users[email] = {"password": password, "user": {"id": user_id, "email": email}}

    # -- gateway overrides ----------------------------------------------------

    def with_token(self, access_token):
        self.tokens.append(access_token)
        return self

    def storage(self, bucket):
        return FakeBucket(self, bucket)

    def invoke_function(self, name, body):
        self.function_calls.append((name, copy.deepcopy(body)))
        if self.function_error is not None:
            raise self.function_error
        return copy.deepcopy(self.function_response)

    def sign_in_with_password(self, email, password):
        if self.offline:
            raise RemoteCallError("auth.sign_in", "Network error: offline")
        account = self.users.get(email)
        if account is None or account["password"] != password:
            from core.exceptions import AuthenticationError
            raise AuthenticationError()
        return {"access_token": f"token-{account['user']['id']}", "user": dict(account["user"])}

    def get_user(self):
        return {"id": "user"}

    def sign_out(self):
        self.signed_out.append(self.access_token)

    def run_query(self, query, method, body=None):
        self.calls.append((method, query.table))
        if self.offline:
            raise RemoteCallError(f"{method.lower()}:{query.table}", "Network error: offline")
        if query.table in self.errors:
            raise self.errors[query.table]

        rows = self.rows(query.table)
        if method == "GET":
            return self._select(query, rows)
        if method in ("POST", "UPSERT"):
            return self._insert(query.table, rows, body, upsert=method == "UPSERT")
        selected = [row for row in rows if self._row_matches(query, row)]
        if method == "PATCH":
            for row in selected:
                row.update(copy.deepcopy(body))
            return copy.deepcopy(selected)
        if method == "DELETE":
            self.tables[query.table] = [row for row in rows if row not in selected]
            return copy.deepcopy(selected)
        raise AssertionError(f"Unsupported method {method}")

    def _row_matches(self, query, row) -> bool:
        return (all(_matches(row, f) for f in query.filters)
                and all(_matches_or(row, expr) for expr in query.or_filters))

    def _select(self, query, rows):
        selected = [row for row in rows if self._row_matches(query, row)]
        for column, ascending in reversed(query.orders):
            present = [r for r in selected if r.get(column) is not None]
            missing = [r for r in selected if r.get(column) is None]
            present.sort(key=lambda r: _text(r[column]) if not isinstance(r[column], (int, float)) else r[column],
                         reverse=not ascending)
            selected = present + missing
        start = query.offset_count or 0
        if query.limit_count is not None:
            selected = selected[start:start + query.limit_count]
        else:
            selected = selected[start:]
        selected = copy.deepcopy(selected)

        if query.result_mode == "single":
            if len(selected) != 1:
                raise NotFoundError(f"get:{query.table}", "JSON object requested, multiple (or no) rows returned",
                                    status_code=406, code="PGRST116")
            return selected[0]
        if query.result_mode == "maybe_single":
            return selected[0] if selected else None
        return selected

    def _insert(self, table, rows, body, upsert=False):
        new_rows = body if isinstance(body, list) else [body]
        inserted = []
        for new_row in new_rows:
            row = copy.deepcopy(new_row)
            existing = None
            if upsert and row.get("id") is not None:
                existing = next((r for r in rows if _text(r.get("id")) == _text(row["id"])), None)
            if existing is not None:
                existing.update(row)
                inserted.append(copy.deepcopy(existing))
                continue
            if row.get("id") is None:
                self._next_id += 1
                row["id"] = self._next_id
            row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
            rows.append(row)
            inserted.append(copy.deepcopy(row))
        return inserted


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def gateway():
    """Empty fake platform."""
    return FakeGateway()


@pytest.fixture
def app(gateway):
    """Flask app in testing mode, wired to the fake platform."""
    from app import create_app
    from services.auth_service import AuthService, LoginRateLimiter
    from services.notification_providers import ConsoleEmailProvider, ConsoleSMSProvider
    from services.notification_sender import NotificationSender
    from services.offline_sync import OfflineSync

    flask_app = create_app("config.TestingConfig")
    cache = flask_app.config["CACHE_STORE"]
    flask_app.config["GATEWAY"] = gateway
    flask_app.config["SERVICE_GATEWAY"] = gateway
    flask_app.config["AUTH_SERVICE"] = AuthService(
        gateway, LoginRateLimiter(max_attempts=3), offline=OfflineSync(gateway, cache),
    )
    flask_app.config["NOTIFICATION_SENDER"] = NotificationSender(
        gateway, ConsoleEmailProvider(), ConsoleSMSProvider(),
    )
    yield flask_app
    flask_app.config["CACHE_STORE"].close()


@pytest.fixture
def client(app):
    return app.test_client()


def sign_in(client, role: str = "Admin", customer_id: str = None, internal_user_id: str = None):
    """Put a UserSession straight into the session cookie."""
    from core.roles import Role
    from models.session import UserSession
    from routes.helpers import SESSION_KEY

    role_enum = Role.parse(role)
    user_session = UserSession(
        user_id=f"user-{role_enum.name.lower()}",
        email=f"{role_enum.name.lower()}@shop.example.com",
        access_token=f"token-{role_enum.name.lower()}",
        role=role_enum,
        customer_id=customer_id,
        internal_user_id=internal_user_id or (None if role_enum is Role.CUSTOMER else "staff-1"),
        display_name="Test User",
    )
    with client.session_transaction() as flask_session:
        flask_session[SESSION_KEY] = user_session.to_dict()
    return user_session

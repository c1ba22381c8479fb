"""Shared pytest fixtures: an in-memory Supabase stand-in and API clients."""

import os

os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["LLM_API_KEY"] = "test-llm-key"

import copy
import re
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

import luxe.db.supabase as supabase_module
from luxe.core.security import create_token

# (table, embedded table) -> (foreign key column, one or many)
EMBEDS = {
    ("orders", "order_items"): ("order_id", "many"),
    ("cart", "products"): ("product_id", "one"),
    ("wishlist", "products"): ("product_id", "one"),
    ("products", "categories"): ("category_id", "one"),
}

UNIQUE = {
    "coupons": ("code",),
    "serviceable_pincodes": ("pincode",),
    "user_roles": ("user_id", "role"),
    "wishlist": ("user_id", "product_id"),
}

EMBED_RE = re.compile(r"(\w+)\(")


class FakeResult:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload = None
        self.filters = []
        self.orders = []
        self.max_rows = None
        self.want_count = False

    # --- builders ---

    def select(self, *columns, count=None):
        self.columns = ", ".join(columns) or "*"
        self.want_count = count == "exact"
        return self

    def insert(self, data):
        self.op, self.payload = "insert", data
        return self

    def update(self, data):
        self.op, self.payload = "update", data
        return self

    def delete(self):
        self.op = "delete"
        return self

    def _filter(self, column, fn):
        self.filters.append((column, fn))
        return self

    def eq(self, column, value):
        return self._filter(column, lambda v: v == value)

    def neq(self, column, value):
        return self._filter(column, lambda v: v != value)

    def lt(self, column, value):
        return self._filter(column, lambda v: v is not None and v < value)

    def gt(self, column, value):
        return self._filter(column, lambda v: v is not None and v > value)

    def gte(self, column, value):
        return self._filter(column, lambda v: v is not None and v >= value)

    def lte(self, column, value):
        return self._filter(column, lambda v: v is not None and v <= value)

    def ilike(self, column, pattern):
        regex = re.compile("^" + ".*".join(re.escape(p) for p in pattern.split("%")) + "$", re.IGNORECASE)
        return self._filter(column, lambda v: v is not None and bool(regex.match(str(v))))

    def in_(self, column, values):
        values = list(values)
        return self._filter(column, lambda v: v in values)

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    # --- execution ---

    def _matches(self, row):
        return all(fn(row.get(column)) for column, fn in self.filters)

    def _embed(self, row):
        row = copy.deepcopy(row)
        for name in EMBED_RE.findall(self.columns):
            key, kind = EMBEDS[(self.table, name)]
            if kind == "many":
                row[name] = [copy.deepcopy(r) for r in self.db.tables.get(name, []) if r.get(key) == row["id"]]
            else:
                found = [r for r in self.db.tables.get(name, []) if r["id"] == row.get(key)]
                row[name] = copy.deepcopy(found[0]) if found else None
        return row

    def _check_unique(self, row):
        keys = UNIQUE.get(self.table)
        if not keys:
            return
        for existing in self.db.tables[self.table]:
            if existing is not row and all(existing.get(k) == row.get(k) for k in keys):
                raise APIError({"message": "duplicate key value violates unique constraint",
                                "code": "23505", "hint": None, "details": None})

    def execute(self):
        if self.db.fail_tables.get(self.table) == self.op:
            raise APIError({"message": "simulated failure", "code": "XX000", "hint": None, "details": None})
        rows = self.db.tables[self.table]

        if self.op == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for data in payload:
                row = {"id": str(uuid.uuid4()), "created_at": self.db.tick(), **copy.deepcopy(data)}
                self._check_unique(row)
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResult(inserted)

        matched = [r for r in rows if self._matches(r)]

        if self.op == "update":
            for r in matched:
                r.update(copy.deepcopy(self.payload))
                self._check_unique(r)
            return FakeResult([copy.deepcopy(r) for r in matched])

        if self.op == "delete":
            self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
            return FakeResult([copy.deepcopy(r) for r in matched])

        for column, desc in reversed(self.orders):
            matched.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        count = len(matched) if self.want_count else None
        if self.max_rows is not None:
            matched = matched[:self.max_rows]
        return FakeResult([self._embed(r) for r in matched], count)


class FakeBucket:
    def __init__(self, storage, name):
        self.storage = storage
        self.name = name

    def upload(self, path, content, options=None):
        self.storage.files[(self.name, path)] = (content, options)
        return {"path": path}

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.files = {}

    def from_(self, bucket):
        return FakeBucket(self, bucket)


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.storage = FakeStorage()
        # table -> op that raises, to exercise error paths
        self.fail_tables = {}
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def tick(self):
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def table(self, name):
        self.tables.setdefault(name, [])
        return FakeQuery(self, name)

    def add(self, table, **row):
        """Insert a row directly, bypassing constraints."""
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", self.tick())
        self.tables.setdefault(table, []).append(row)
        return row

    def rows(self, table):
        return self.tables.get(table, [])


@pytest.fixture
def db(monkeypatch):
    fake = FakeSupabase()
    monkeypatch.setattr(supabase_module, "supabase", fake)
    return fake


@pytest.fixture
def client(db):
    from luxe.main import app

    return TestClient(app)


def auth_headers(user_id, email="shopper@example.com", full_name=None):
    token = create_token(user_id, email=email, metadata={"full_name": full_name} if full_name else None)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer(db):
    """A signed-in shopper."""
    user = db.add("profiles", email="shopper@example.com", full_name="Asha Rao")
    return {"id": user["id"], "email": user["email"],
            "headers": auth_headers(user["id"], user["email"], user["full_name"])}


@pytest.fixture
def admin(db):
    """A signed-in user holding the admin role."""
    user = db.add("profiles", email="admin@example.com", full_name="Store Admin")
    db.add("user_roles", user_id=user["id"], role="admin")
    return {"id": user["id"], "email": user["email"], "headers": auth_headers(user["id"], user["email"])}


@pytest.fixture
def product(db):
    category = db.add("categories", name="Dresses", slug="dresses")
    return db.add(
        "products", name="Silk Wrap Dress", slug="silk-wrap-dress", price=2000, sale_price=1500,
        stock=5, active=True, featured=True, cod_available=True, images=["https://img.test/dress.jpg"],
        category_id=category["id"], description="A flowing silk dress",
    )

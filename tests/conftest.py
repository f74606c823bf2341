import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock
import itertools
import sys
from pathlib import Path

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
sys.path.append(project_root)

# Mock Supabase before importing app
import supabase
def mock_create_client(*args, **kwargs):
    mock_client = MagicMock()
    mock_client.table = MagicMock()
    mock_client.auth = MagicMock()
    return mock_client

supabase.create_client = mock_create_client

import lib.database
lib.database.create_client = mock_create_client
lib.database.reset_client()

# Now we can safely import the app
from api import routes
from api.routes import app


class FakeQuery:
    """Just enough of the postgrest query builder for the stores"""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = 'select'
        self.payload = None
        self.filters = []
        self.order_by = None
        self.max_rows = None

    def select(self, *columns):
        self.op = 'select'
        return self

    def insert(self, data):
        self.op = 'insert'
        self.payload = data
        return self

    def delete(self):
        self.op = 'delete'
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def execute(self):
        if self.db.fail:
            raise self.db.fail
        rows = self.db.tables.setdefault(self.table, [])
        self.db.calls.append((self.op, self.table))

        if self.op == 'insert':
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            stored = [dict(row, id=next(self.db.ids)) for row in new_rows]
            rows.extend(stored)
            return SimpleNamespace(data=stored, error=None)

        matched = [row for row in rows if all(f(row) for f in self.filters)]
        if self.op == 'delete':
            self.db.tables[self.table] = [row for row in rows if row not in matched]
            return SimpleNamespace(data=matched, error=None)

        if self.order_by:
            column, desc = self.order_by
            matched = sorted(matched, key=lambda row: row.get(column) or '', reverse=desc)
        if self.max_rows is not None:
            matched = matched[:self.max_rows]
        return SimpleNamespace(data=[dict(row) for row in matched], error=None)


class FakeSupabase:
    def __init__(self, tables=None, fail=None):
        self.ids = itertools.count(1)
        self.tables = {}
        self.calls = []
        self.fail = fail
        for name, rows in (tables or {}).items():
            self.tables[name] = [dict(row, id=row.get('id', next(self.ids))) for row in rows]

    def table(self, name):
        return FakeQuery(self, name)

    def writes(self):
        return [call for call in self.calls if call[0] in ('insert', 'delete')]


@pytest.fixture
def make_supabase():
    return FakeSupabase

@pytest.fixture
def test_client():
    app.config['TESTING'] = True
    return app.test_client()

@pytest.fixture
def fake_db():
    """Point the app's stores at an in-memory Supabase"""
    db = FakeSupabase()
    original = (routes.consent_store.supabase, routes.tip_store.supabase)
    routes.consent_store.supabase = db
    routes.tip_store.supabase = db
    yield db
    routes.consent_store.supabase, routes.tip_store.supabase = original

"""Admin Seed Command: the CLI that creates or promotes the admin account.

Invariants:
    - seed() is idempotent: running it twice leaves one Admin
    - An existing plain user is promoted rather than duplicated
    - main() exits 1 without touching the database when credentials are missing

Design Decisions:
    - A file-backed SQLite database: the command opens its own engine, so an
      in-memory database would vanish between connections
    - Schema created with a synchronous engine so main() can own its event loop
"""

import sys

import pytest
from sqlalchemy import create_engine, select

from calcsync.db.base import Base
from calcsync.db.session import standalone_session
from calcsync.models.user import User
from calcsync.seed import main, seed


@pytest.fixture
def db_path(tmp_path):
    """Empty schema in a temporary SQLite file."""
    path = tmp_path / "seed.db"
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    engine.dispose()
    return path


@pytest.fixture
def db_url(db_path):
    return f"sqlite+aiosqlite:///{db_path}"


def _users(db_path):
    engine = create_engine(f"sqlite:///{db_path}")
    try:
        with engine.connect() as conn:
            rows = conn.execute(select(User.username, User.role)).all()
    finally:
        engine.dispose()
    return [tuple(row) for row in rows]


async def test_seed_creates_admin_once(db_url, db_path, capsys):
    """Running seed() twice leaves exactly one Admin account."""
    await seed(db_url, "root", "password123")
    await seed(db_url, "root", "password123")

    assert _users(db_path) == [("root", "Admin")]
    assert capsys.readouterr().out.count("Admin account ready: root") == 2


async def test_seed_promotes_existing_user(db_url, db_path):
    """An account registered as User is promoted in place."""
    async with standalone_session(db_url) as db:
        db.add(User(username="root", password_hash="x", role="User"))
        await db.commit()

    await seed(db_url, "root", "password123")

    assert _users(db_path) == [("root", "Admin")]


def test_main_seeds_from_arguments(db_url, db_path, monkeypatch):
    """The CLI reads credentials and database URL from its arguments."""
    monkeypatch.setattr(sys, "argv", [
        "calcsync.seed", "--username", "boss", "--password", "password123",
        "--database-url", db_url,
    ])

    assert main() == 0
    assert _users(db_path) == [("boss", "Admin")]


def test_main_without_password_exits_nonzero(db_url, db_path, monkeypatch, capsys):
    """Missing credentials are reported on stderr and nothing is written."""
    monkeypatch.setattr(sys, "argv", [
        "calcsync.seed", "--username", "boss", "--database-url", db_url,
    ])

    assert main() == 1
    assert "--username and --password" in capsys.readouterr().err
    assert _users(db_path) == []

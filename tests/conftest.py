import sqlite3

import pytest

from sqllink.link.models import LinkDefinition, LinkKey
from sqllink.link.session import SessionPool


@pytest.fixture()
def sqlite_db_path(tmp_path):
    db_path = tmp_path / "remote.db"
    conn = sqlite3.connect(db_path)
    try:
        conn.execute(
            "CREATE TABLE users (id INTEGER PRIMARY KEY, name VARCHAR(20) NOT NULL, age INTEGER, email VARCHAR(50))"
        )
        conn.execute("CREATE INDEX ix_users_name_age ON users (name, age)")
        conn.execute("CREATE UNIQUE INDEX ux_users_email ON users (email)")
        conn.executemany(
            "INSERT INTO users (id, name, age, email) VALUES (?, ?, ?, ?)",
            [(1, "Ada", 30, "ada@example.com"), (2, "Linus", 45, None), (3, "Grace", 50, "grace@example.com")],
        )
        conn.commit()
    finally:
        conn.close()
    return db_path


@pytest.fixture()
def sqlite_url(sqlite_db_path):
    return f"sqlite:///{sqlite_db_path}"


@pytest.fixture()
def unreachable_url(tmp_path):
    return f"sqlite:///{tmp_path / 'missing' / 'remote.db'}"


@pytest.fixture()
def pool():
    session_pool = SessionPool(share_sessions=False, breaker_fail_max=50)
    yield session_pool
    session_pool.close()


@pytest.fixture()
def users_link(sqlite_url):
    return LinkDefinition(url=sqlite_url, remote_table="users")


@pytest.fixture()
def remote_session(pool, sqlite_url):
    session = pool.acquire(LinkKey(driver=None, url=sqlite_url, user=None, password=None))
    yield session
    if not session.closed:
        pool.release(session)

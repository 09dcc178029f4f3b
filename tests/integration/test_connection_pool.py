"""
Integration tests for the database connection pool

Tests the PostgreSQL connection pool functionality using testcontainers.
"""
import psycopg
import pytest

from payroll_audit.database.connection import (
    DatabaseConnectionPool,
    close_pool,
    get_pool,
    initialize_pool,
)


@pytest.mark.integration
def test_connection_pool_initialization(db_settings):
    """Test that connection pool initializes correctly"""
    pool = DatabaseConnectionPool(**db_settings, min_size=2, max_size=5)

    pool.open()
    try:
        assert pool.is_open
        assert pool._pool.min_size == 2
        assert pool._pool.max_size == 5
    finally:
        pool.close()

    assert not pool.is_open


@pytest.mark.integration
def test_rows_are_dictionaries(db_pool):
    """Test that the pool returns dict rows"""
    with db_pool.get_cursor() as cur:
        cur.execute("SELECT 1 AS test")
        assert cur.fetchone()["test"] == 1


@pytest.mark.integration
def test_execute_query_and_command(clean_db):
    """Test executing queries and commands through the pool"""
    inserted = clean_db.execute_command(
        "INSERT INTO departments (dept_id, dept_name) VALUES (%s, %s)", (10, "Sales")
    )
    assert inserted == 1

    result = clean_db.execute_query("SELECT dept_name FROM departments WHERE dept_id = %s", (10,))
    assert result == [{"dept_name": "Sales"}]


@pytest.mark.integration
def test_execute_batch(clean_db):
    clean_db.execute_batch(
        "INSERT INTO departments (dept_id, dept_name) VALUES (%s, %s)",
        [(10, "Sales"), (20, "IT"), (30, "HR")],
    )
    assert clean_db.execute_query("SELECT COUNT(*) AS n FROM departments")[0]["n"] == 3


@pytest.mark.integration
def test_context_manager(db_settings):
    with DatabaseConnectionPool(**db_settings) as pool:
        assert pool.execute_query("SELECT 42 AS answer")[0]["answer"] == 42
    assert not pool.is_open


@pytest.mark.integration
def test_global_pool_lifecycle(db_settings):
    try:
        pool = initialize_pool(**db_settings)
        assert get_pool() is pool
    finally:
        close_pool()

    with pytest.raises(RuntimeError):
        get_pool()


@pytest.mark.integration
def test_open_fails_after_retries(db_settings):
    pool = DatabaseConnectionPool(**{**db_settings, "password": "wrong"}, timeout=2.0)

    with pytest.raises(psycopg.OperationalError, match="after 2 attempts"):
        pool.open(max_retries=2, retry_delay=0.1)

    assert not pool.is_open

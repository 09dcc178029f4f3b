"""
Pytest configuration and fixtures for payroll-audit tests

Unit tests need nothing external. Integration tests share one PostgreSQL
container per session with the payroll schema installed once; every test
starts from empty tables.
"""
from typing import Generator

import pytest
from testcontainers.postgres import PostgresContainer

from payroll_audit.core.config import ENV_VARS
from payroll_audit.database.connection import DatabaseConnectionPool
from payroll_audit.database.schema_mgmt import SchemaManager
from payroll_audit.database.seed import seed_sample_data

TEST_DB_NAME = "test_payroll"
TEST_DB_USER = "test_payroll"
TEST_DB_PASSWORD = "test_password"


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )


# =======================
# ENVIRONMENT FIXTURES
# =======================

@pytest.fixture
def clean_env(monkeypatch):
    """Remove every configuration environment variable for the test"""
    for env_var in ENV_VARS:
        monkeypatch.delenv(env_var, raising=False)
    return monkeypatch


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        Running PostgresContainer
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username=TEST_DB_USER,
        password=TEST_DB_PASSWORD,
        dbname=TEST_DB_NAME,
    ) as postgres:
        yield postgres


@pytest.fixture(scope="session")
def db_settings(postgres_container) -> dict:
    """Connection arguments for the test container"""
    return {
        "host": postgres_container.get_container_host_ip(),
        "port": int(postgres_container.get_exposed_port(5432)),
        "database": TEST_DB_NAME,
        "user": TEST_DB_USER,
        "password": TEST_DB_PASSWORD,
    }


@pytest.fixture(scope="session")
def db_pool(db_settings) -> Generator[DatabaseConnectionPool, None, None]:
    """
    Open a pool against the container and install the payroll schema

    Yields:
        Open DatabaseConnectionPool
    """
    pool = DatabaseConnectionPool(**db_settings, min_size=2, max_size=5)
    pool.open()
    SchemaManager(pool).create_schema()

    yield pool

    pool.close()


@pytest.fixture(scope="function")
def clean_db(db_pool) -> DatabaseConnectionPool:
    """
    Provide the pool with every payroll table emptied and identities reset

    Returns:
        Open DatabaseConnectionPool
    """
    SchemaManager(db_pool).truncate_tables()
    return db_pool


@pytest.fixture(scope="function")
def seeded_db(clean_db) -> DatabaseConnectionPool:
    """
    Provide the pool with the sample data loaded

    Employees get emp_id 1..6 in insertion order:
    Alice, Bob, Charlie, Diana, Eve, Frank.

    Returns:
        Open DatabaseConnectionPool
    """
    seed_sample_data(clean_db)
    return clean_db

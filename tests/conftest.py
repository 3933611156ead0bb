"""
Pytest configuration and fixtures.

This file provides pytest-specific configuration and fixtures.
For standard test utilities, see tests/__init__.py
"""

import os
import pytest
import pytest_asyncio


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "db: marks tests as requiring database (deselect with '-m \"not db\"')"
    )


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def test_database():
    """
    Session-scoped fixture that manages the test database.

    Uses testcontainers to start PostgreSQL before the DB tests and stop it
    afterwards. Uses an external database instead when TEST_DATABASE_URL is set.
    Tables are created with database.init_db either way.
    """
    from database.init_db import init_db

    external_url = os.environ.get("TEST_DATABASE_URL")
    if external_url:
        from tests import check_db_available
        if not await check_db_available():
            pytest.skip("External database not available")
        await init_db(external_url)
        yield external_url
        return

    try:
        from testcontainers.postgres import PostgresContainer

        postgres = PostgresContainer(
            image="postgres:16-alpine",
            username="testuser",
            password="testpass",
            dbname="matching_test",
            driver="asyncpg",
        )
        postgres.start()
    except Exception as e:
        pytest.skip(f"Could not start test database container: {e}")

    try:
        db_url = postgres.get_connection_url()
        await init_db(db_url)
        print(f"\n✓ Test database started: {db_url}")

        yield db_url
    finally:
        postgres.stop()
        print("\n✓ Test database stopped")


@pytest.fixture(scope="session")
def test_db_url(test_database):
    """Get test database URL."""
    return test_database

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from docintake.config.settings import Settings
from docintake.database.connection import SCHEMA_PATH, close_pool, get_connection, init_pool
from docintake.database.models import JobRecord
from docintake.database.repositories.job_repository import JobRepository


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docintake_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest_asyncio.fixture
async def integration_pool(test_settings: Settings) -> AsyncGenerator[None, None]:
    try:
        await init_pool(test_settings)
    except Exception as e:
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    schema = SCHEMA_PATH.read_text(encoding="utf-8")
    async with get_connection() as conn:
        await conn.execute(schema)
        await conn.commit()
    try:
        yield
    finally:
        await close_pool()


@pytest_asyncio.fixture
async def seed_document(integration_pool: None) -> AsyncGenerator[str, None]:
    async with get_connection() as conn:
        cur = await conn.execute(
            """
            INSERT INTO documents (filename, storage_path)
            VALUES (%s, %s)
            RETURNING id
            """,
            ("factura_2024_0117.pdf", "2024/factura_2024_0117.pdf"),
        )
        row = await cur.fetchone()
        await conn.commit()
    assert row is not None
    document_id = str(row[0])
    try:
        yield document_id
    finally:
        async with get_connection() as conn:
            await conn.execute("DELETE FROM documents WHERE id = %s", (document_id,))
            await conn.commit()


@pytest_asyncio.fixture
async def seed_job(seed_document: str, test_settings: Settings) -> JobRecord:
    job_repo = JobRepository(test_settings.max_job_attempts)
    job_id = await job_repo.enqueue(seed_document)
    job = await job_repo.find_by_id(job_id)
    assert job is not None
    return job

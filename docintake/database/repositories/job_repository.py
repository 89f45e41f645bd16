from typing import Any

import psycopg
from psycopg.rows import dict_row

from docintake.database.connection import get_connection
from docintake.database.models import JobRecord


class JobRepository:
    """Database operations for the document_jobs table."""

    def __init__(self, max_attempts: int) -> None:
        self._max_attempts = max_attempts

    async def claim_next_job(self, conn: psycopg.AsyncConnection[Any]) -> JobRecord | None:
        """Claim the next pending job using SELECT FOR UPDATE SKIP LOCKED."""
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                """
                SELECT id, document_id, status, attempts, level, reprocess
                FROM document_jobs
                WHERE status = 'pending'
                  AND attempts < %s
                ORDER BY created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._max_attempts,),
            )
            row = await cur.fetchone()

        if row is None:
            await conn.commit()
            return None

        await conn.execute(
            """
            UPDATE document_jobs
            SET status = 'processing', locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        await conn.commit()

        return JobRecord(
            id=row["id"],
            document_id=str(row["document_id"]),
            status="processing",
            attempts=row["attempts"],
            level=row["level"],
            reprocess=row["reprocess"],
        )

    async def enqueue(self, document_id: str, level: int = 4, reprocess: bool = False) -> int:
        """Add a pending job for a document and return its ID."""
        async with get_connection() as conn:
            cur = await conn.execute(
                """
                INSERT INTO document_jobs (document_id, level, reprocess, status, attempts)
                VALUES (%s, %s, %s, 'pending', 0)
                RETURNING id
                """,
                (document_id, level, reprocess),
            )
            row = await cur.fetchone()
            await conn.commit()
        assert row is not None
        job_id: int = row[0]
        return job_id

    async def mark_done(self, job_id: int) -> None:
        """Mark a job as done."""
        async with get_connection() as conn:
            await conn.execute(
                """
                UPDATE document_jobs
                SET status = 'done', error_message = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (job_id,),
            )
            await conn.commit()

    async def mark_failed(self, job_id: int, error: str) -> None:
        """Mark a job as permanently failed."""
        async with get_connection() as conn:
            await conn.execute(
                """
                UPDATE document_jobs
                SET status = 'failed', error_message = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            await conn.commit()

    async def increment_attempts(self, job_id: int, error: str | None = None) -> None:
        """Increment attempt count and return job to pending."""
        async with get_connection() as conn:
            await conn.execute(
                """
                UPDATE document_jobs
                SET attempts = attempts + 1, status = 'pending',
                    error_message = %s, locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            await conn.commit()

    async def find_by_id(self, job_id: int) -> JobRecord | None:
        """Find a job by ID. Useful for tests."""
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    SELECT id, document_id, status, attempts, level, reprocess,
                           error_message, locked_at, created_at, updated_at
                    FROM document_jobs
                    WHERE id = %s
                    """,
                    (job_id,),
                )
                row = await cur.fetchone()

        if row is None:
            return None

        return JobRecord(
            id=row["id"],
            document_id=str(row["document_id"]),
            status=row["status"],
            attempts=row["attempts"],
            level=row["level"],
            reprocess=row["reprocess"],
            error_message=row["error_message"],
            locked_at=row["locked_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

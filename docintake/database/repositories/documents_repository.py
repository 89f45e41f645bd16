from typing import Any, ClassVar

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docintake.database.connection import TRANSIENT_DB_ERRORS, get_connection
from docintake.database.exceptions import PersistenceError
from docintake.pipeline.exceptions import DocumentNotFoundError
from docintake.pipeline.models import Document, Stage, StageStatus
from docintake.resilience.retry import RetryPolicy, retry_async


class DocumentsRepository:
    """Database operations for the documents table.

    Transient database errors are retried with the given policy before they
    surface as ``PersistenceError``.
    """

    UPDATABLE_COLUMNS: ClassVar[frozenset[str]] = frozenset(
        {
            *(stage.value for stage in Stage),
            "document_type",
            "extracted_text",
            "text_length",
            "page_count",
            "extraction_method",
            "chunks_count",
            "processing_error",
            "processing_config",
        }
    )

    def __init__(self, retry_policy: RetryPolicy | None = None) -> None:
        self._retry_policy = retry_policy or RetryPolicy()

    async def find_by_id(self, document_id: str) -> Document:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
            PersistenceError: if the query fails.
        """

        async def query() -> dict[str, Any] | None:
            async with get_connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(
                        """
                        SELECT id, filename, storage_path, document_type,
                               extracted_text, page_count,
                               extraction_status, classification_status,
                               metadata_status, chunking_status
                        FROM documents
                        WHERE id = %s
                        """,
                        (document_id,),
                    )
                    return await cur.fetchone()

        try:
            row = await retry_async(
                query,
                policy=self._retry_policy,
                retry_on=TRANSIENT_DB_ERRORS,
                description=f"Loading document {document_id}",
            )
        except psycopg.Error as exc:
            raise PersistenceError(f"Failed to load document {document_id}: {exc}") from exc

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        return Document(
            id=str(row["id"]),
            filename=row["filename"],
            storage_path=row["storage_path"],
            document_type=row["document_type"],
            extracted_text=row["extracted_text"],
            page_count=row["page_count"],
            extraction_status=StageStatus(row["extraction_status"]),
            classification_status=StageStatus(row["classification_status"]),
            metadata_status=StageStatus(row["metadata_status"]),
            chunking_status=StageStatus(row["chunking_status"]),
        )

    async def update_status(self, document_id: str, fields: dict[str, Any]) -> None:
        """Update status and result columns of a document.

        Raises:
            ValueError: if a field is not an updatable column.
            PersistenceError: if the update fails or matches no row.
        """
        if not fields:
            return
        unknown = set(fields) - self.UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update document columns: {sorted(unknown)}")

        assignments = [
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in fields
        ]
        query = sql.SQL("UPDATE documents SET {}, updated_at = NOW() WHERE id = %s").format(
            sql.SQL(", ").join(assignments)
        )
        params = [self._adapt(value) for value in fields.values()]

        async def execute() -> int:
            async with get_connection() as conn:
                cur = await conn.execute(query, (*params, document_id))
                await conn.commit()
                return cur.rowcount

        try:
            rowcount = await retry_async(
                execute,
                policy=self._retry_policy,
                retry_on=TRANSIENT_DB_ERRORS,
                description=f"Updating document {document_id}",
            )
        except psycopg.Error as exc:
            raise PersistenceError(f"Failed to update document {document_id}: {exc}") from exc
        if rowcount == 0:
            raise PersistenceError(f"Document {document_id} not found for update")

    async def reset_statuses(self, document_id: str) -> None:
        """Return all four stage statuses to pending for reprocessing."""
        await self.update_status(
            document_id,
            {stage.value: StageStatus.PENDING for stage in Stage} | {"processing_error": None},
        )

    @staticmethod
    def _adapt(value: Any) -> Any:
        if isinstance(value, StageStatus):
            return value.value
        if isinstance(value, dict):
            return Jsonb(value)
        return value

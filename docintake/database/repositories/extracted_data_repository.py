from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docintake.database.connection import TRANSIENT_DB_ERRORS, get_connection
from docintake.database.exceptions import PersistenceError
from docintake.registry.type_registry import TypeRegistry
from docintake.resilience.retry import RetryPolicy, retry_async


class ExtractedDataRepository:
    """Persists structured metadata into the per-type ``extracted_*`` tables.

    Table names come from the type registry; any other name is rejected before
    a query is built.
    """

    def __init__(
        self, type_registry: TypeRegistry, retry_policy: RetryPolicy | None = None
    ) -> None:
        self._type_registry = type_registry
        self._retry_policy = retry_policy or RetryPolicy()

    async def save(self, table_name: str, document_id: str, data: dict[str, Any]) -> None:
        """Insert or replace the structured data of a document.

        Raises:
            PersistenceError: on unknown tables or failed writes.
        """
        table = self._table(table_name)
        query = sql.SQL(
            """
            INSERT INTO {} (document_id, data)
            VALUES (%s, %s)
            ON CONFLICT (document_id)
            DO UPDATE SET data = EXCLUDED.data, updated_at = NOW()
            """
        ).format(table)

        async def execute() -> None:
            async with get_connection() as conn:
                await conn.execute(query, (document_id, Jsonb(data)))
                await conn.commit()

        try:
            await retry_async(
                execute,
                policy=self._retry_policy,
                retry_on=TRANSIENT_DB_ERRORS,
                description=f"Saving {table_name} for document {document_id}",
            )
        except psycopg.Error as exc:
            raise PersistenceError(
                f"Failed to save {table_name} for document {document_id}: {exc}"
            ) from exc

    async def find(self, table_name: str, document_id: str) -> dict[str, Any] | None:
        table = self._table(table_name)
        try:
            async with get_connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(
                        sql.SQL("SELECT data FROM {} WHERE document_id = %s").format(table),
                        (document_id,),
                    )
                    row = await cur.fetchone()
        except psycopg.Error as exc:
            raise PersistenceError(
                f"Failed to read {table_name} for document {document_id}: {exc}"
            ) from exc
        if row is None:
            return None
        data: dict[str, Any] = row["data"]
        return data

    def _table(self, table_name: str) -> sql.Identifier:
        if table_name not in self._type_registry.table_names():
            raise PersistenceError(f"Unknown storage table '{table_name}'")
        return sql.Identifier(table_name)

"""Document and collection persistence.

The pipeline only needs point lookups, point updates and one bulk text
lookup (for context expansion); no read-modify-write transactions.
"""

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path

from indexqa.models.document import Collection, DocumentRecord
from indexqa.models.enums import DocumentStatus

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {
    "title",
    "content",
    "processed_content",
    "summary",
    "topics",
    "chunk_count",
    "token_count",
    "status",
    "error",
}

_SCHEMA = """
CREATE TABLE IF NOT EXISTS collections (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    namespace TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    collection_id TEXT NOT NULL,
    title TEXT NOT NULL,
    source_type TEXT NOT NULL,
    source_url TEXT,
    content TEXT,
    processed_content TEXT,
    summary TEXT,
    topics TEXT NOT NULL DEFAULT '[]',
    chunk_count INTEGER NOT NULL DEFAULT 0,
    token_count INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'pending',
    error TEXT,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents (collection_id);
"""


class DocumentStore(ABC):
    """Read/write access to collections and document records."""

    @abstractmethod
    def save_collection(self, collection: Collection) -> None: ...

    @abstractmethod
    def get_collection(self, collection_id: str) -> Collection | None: ...

    @abstractmethod
    def save_document(self, record: DocumentRecord) -> None: ...

    @abstractmethod
    def get_document(self, document_id: str) -> DocumentRecord | None: ...

    @abstractmethod
    def list_documents(self, collection_id: str) -> list[DocumentRecord]: ...

    @abstractmethod
    def update_document(self, document_id: str, **fields) -> None:
        """Update selected fields of one document."""
        ...

    @abstractmethod
    def get_document_texts(self, document_ids: list[str]) -> dict[str, str]:
        """Chunked text per document id, for documents that have any."""
        ...

    def get_document_titles(self, collection_id: str) -> dict[str, str]:
        return {d.id: d.title for d in self.list_documents(collection_id)}


class SQLiteDocumentStore(DocumentStore):
    """SQLite-backed store. Use ``":memory:"`` for a throwaway database."""

    def __init__(self, path: str = "./data/indexqa.db"):
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)

    def close(self) -> None:
        self._conn.close()

    def save_collection(self, collection: Collection) -> None:
        with self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO collections (id, title, namespace) VALUES (?, ?, ?)",
                (collection.id, collection.title, collection.namespace),
            )

    def get_collection(self, collection_id: str) -> Collection | None:
        row = self._conn.execute(
            "SELECT id, title, namespace FROM collections WHERE id = ?", (collection_id,)
        ).fetchone()
        if row is None:
            return None
        return Collection(id=row["id"], title=row["title"], namespace=row["namespace"])

    def save_document(self, record: DocumentRecord) -> None:
        with self._conn:
            self._conn.execute(
                """INSERT OR REPLACE INTO documents
                   (id, collection_id, title, source_type, source_url, content,
                    processed_content, summary, topics, chunk_count, token_count,
                    status, error)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.id,
                    record.collection_id,
                    record.title,
                    record.source_type.value,
                    record.source_url,
                    record.content,
                    record.processed_content,
                    record.summary,
                    json.dumps(record.topics),
                    record.chunk_count,
                    record.token_count,
                    record.status.value,
                    record.error,
                ),
            )

    def get_document(self, document_id: str) -> DocumentRecord | None:
        row = self._conn.execute(
            "SELECT * FROM documents WHERE id = ?", (document_id,)
        ).fetchone()
        return self._to_record(row) if row else None

    def list_documents(self, collection_id: str) -> list[DocumentRecord]:
        rows = self._conn.execute(
            "SELECT * FROM documents WHERE collection_id = ? ORDER BY rowid",
            (collection_id,),
        ).fetchall()
        return [self._to_record(r) for r in rows]

    def update_document(self, document_id: str, **fields) -> None:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update document fields: {sorted(unknown)}")
        if not fields:
            return

        values = []
        for name, value in fields.items():
            if name == "topics":
                value = json.dumps(value or [])
            elif name == "status":
                value = DocumentStatus(value).value
            values.append(value)

        assignments = ", ".join(f"{name} = ?" for name in fields)
        with self._conn:
            self._conn.execute(
                f"UPDATE documents SET {assignments}, updated_at = datetime('now') WHERE id = ?",
                (*values, document_id),
            )
        logger.debug("Updated document %s: %s", document_id, sorted(fields))

    def get_document_texts(self, document_ids: list[str]) -> dict[str, str]:
        if not document_ids:
            return {}
        placeholders = ",".join("?" for _ in document_ids)
        rows = self._conn.execute(
            f"SELECT id, content, processed_content FROM documents WHERE id IN ({placeholders})",
            list(document_ids),
        ).fetchall()
        texts = {}
        for row in rows:
            text = row["processed_content"] or row["content"]
            if text:
                texts[row["id"]] = text
        return texts

    @staticmethod
    def _to_record(row: sqlite3.Row) -> DocumentRecord:
        return DocumentRecord(
            id=row["id"],
            collection_id=row["collection_id"],
            title=row["title"],
            source_type=row["source_type"],
            source_url=row["source_url"],
            content=row["content"],
            processed_content=row["processed_content"],
            summary=row["summary"],
            topics=json.loads(row["topics"] or "[]"),
            chunk_count=row["chunk_count"],
            token_count=row["token_count"],
            status=row["status"],
            error=row["error"],
        )

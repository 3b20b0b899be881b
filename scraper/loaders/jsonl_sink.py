"""
Append-only JSONL output, one stream per collection
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Union
from pydantic import BaseModel
from core.exceptions import SinkWriteError
import logging

logger = logging.getLogger(__name__)

Document = Union[BaseModel, Dict[str, Any]]


class JSONLSink:
    """
    Write documents to <output_dir>/<collection>.jsonl.

    Ensures:
    - Files are only ever opened in append mode (never truncated or rewritten)
    - One self-contained JSON document per line, in the order given
    - Data is flushed and fsynced before append returns
    """

    def __init__(self, output_dir: Union[str, Path], fsync: bool = True):
        self.output_dir = Path(output_dir)
        self.fsync = fsync
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, collection_id: str) -> Path:
        return self.output_dir / f"{collection_id}.jsonl"

    def append(self, collection_id: str, document: Document) -> int:
        """Append a single document"""
        return self.append_many(collection_id, [document])

    def append_many(self, collection_id: str, documents: Iterable[Document]) -> int:
        """
        Append documents in order.

        All documents are serialized before the file is opened, so a bad
        document never leaves half a batch behind.

        Returns:
            Number of lines written
        """
        path = self.path_for(collection_id)

        try:
            lines = [self.serialize(doc) + "\n" for doc in documents]
        except (TypeError, ValueError) as e:
            raise SinkWriteError(
                "Failed to serialize document",
                context={"collection": collection_id, "path": str(path)},
                original_exception=e
            )

        if not lines:
            return 0

        try:
            with open(path, "a", encoding="utf-8") as fh:
                fh.write("".join(lines))
                fh.flush()
                if self.fsync:
                    os.fsync(fh.fileno())
        except OSError as e:
            raise SinkWriteError(
                "Failed to append to output stream",
                context={
                    "collection": collection_id,
                    "path": str(path),
                    "documents": len(lines)
                },
                original_exception=e
            )

        logger.debug(f"Appended {len(lines)} documents to {path}")
        return len(lines)

    @staticmethod
    def serialize(document: Document) -> str:
        if isinstance(document, BaseModel):
            return document.model_dump_json(by_alias=True)
        return json.dumps(document, ensure_ascii=False)

    def count_lines(self, collection_id: str) -> int:
        """Number of documents in a collection's stream (0 if absent)"""
        path = self.path_for(collection_id)
        if not path.exists():
            return 0
        with open(path, "rb") as fh:
            return sum(1 for _ in fh)

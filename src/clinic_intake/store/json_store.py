"""Document store backed by a JSON file.

The file maps collection paths to documents keyed by id::

    {
      "days": {"3-5-24": {"officeId": "office-1"}},
      "offices/office-1/appointments": {"a1": {"dateTime": "2024-03-05T09:30:00"}}
    }

Datetimes are stored as ISO-8601 strings.
"""

import copy
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from clinic_intake.store.base import Document, DocumentStore, validate_collection_path
from clinic_intake.utils.exceptions import DataStoreError

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _deep_merge(target: Dict[str, Any], updates: Dict[str, Any]) -> None:
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value


class JsonDocumentStore(DocumentStore):
    """JSON file (or in-memory) document store.

    Attributes:
        file_path: Backing file; None keeps data in memory only
    """

    def __init__(
        self,
        file_path: Optional[Path] = None,
        data: Optional[Dict[str, Dict[str, Document]]] = None,
    ) -> None:
        self.file_path = file_path
        if data is not None:
            self._collections = copy.deepcopy(data)
        elif file_path is not None:
            self._collections = self._read(file_path)
        else:
            self._collections = {}
        logger.debug(
            f"JsonDocumentStore ready with {len(self._collections)} collections"
        )

    @staticmethod
    def _read(file_path: Path) -> Dict[str, Dict[str, Document]]:
        if not file_path.exists():
            logger.info(f"Store file not found: {file_path}. Starting empty.")
            return {}
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise DataStoreError(
                f"Invalid JSON in store file: {file_path}\n"
                f"Error: {e}\n"
                f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
            ) from e
        except OSError as e:
            raise DataStoreError(f"Failed to read store file {file_path}: {e}") from e

        if not isinstance(data, dict):
            raise DataStoreError(
                f"Store file {file_path} must contain a JSON object of collections"
            )
        return data

    def get(self, path: str, doc_id: str) -> Optional[Document]:
        collection = self._collections.get(validate_collection_path(path), {})
        document = collection.get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    def list(self, path: str) -> List[Tuple[str, Document]]:
        collection = self._collections.get(validate_collection_path(path), {})
        return [(doc_id, copy.deepcopy(doc)) for doc_id, doc in collection.items()]

    def set(self, path: str, doc_id: str, data: Document, merge: bool = True) -> None:
        collection = self._collections.setdefault(validate_collection_path(path), {})
        # Round-trip through JSON so stored values match what a reload returns
        encoded = json.loads(json.dumps(data, default=_json_default))
        if merge and doc_id in collection:
            _deep_merge(collection[doc_id], encoded)
        else:
            collection[doc_id] = encoded
        logger.debug(f"Stored document {path}/{doc_id}")
        self._flush()

    def _flush(self) -> None:
        if self.file_path is None:
            return
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.file_path, "w", encoding="utf-8") as f:
                json.dump(self._collections, f, indent=2, default=_json_default)
        except OSError as e:
            raise DataStoreError(
                f"Failed to write store file {self.file_path}: {e}"
            ) from e

"""Document store interface.

Clinic data lives in a hierarchical document database: collections of
documents, where a document may own sub-collections. Paths are slash
separated collection paths such as "offices/abc/appointments".
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from clinic_intake.utils.exceptions import DataStoreError

Document = Dict[str, Any]


def validate_collection_path(path: str) -> str:
    """Check that a path names a collection (odd number of segments).

    Raises:
        DataStoreError: If the path is empty or names a document
    """
    segments = [segment for segment in path.split("/") if segment]
    if not segments or len(segments) % 2 == 0:
        raise DataStoreError(
            f"Invalid collection path: '{path}'. Expected collection or "
            f"collection/document/collection"
        )
    return "/".join(segments)


class DocumentStore(ABC):
    """Abstract access to the clinic document database."""

    @abstractmethod
    def get(self, path: str, doc_id: str) -> Optional[Document]:
        """Fetch one document.

        Args:
            path: Collection path
            doc_id: Document id

        Returns:
            Document fields, or None when the document does not exist

        Raises:
            DataStoreError: If the store cannot be read
        """

    @abstractmethod
    def list(self, path: str) -> List[Tuple[str, Document]]:
        """List every document of a collection as (id, fields) pairs.

        Raises:
            DataStoreError: If the store cannot be read
        """

    @abstractmethod
    def set(self, path: str, doc_id: str, data: Document, merge: bool = True) -> None:
        """Create or update a document.

        Args:
            path: Collection path
            doc_id: Document id
            data: Fields to write
            merge: Update only the given fields instead of replacing the
                document. Nested maps merge key by key, so writing
                {"vitals": {"spo2": 98}} keeps the other vitals fields.

        Raises:
            DataStoreError: If the store cannot be written
        """

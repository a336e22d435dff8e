"""Store module.

This module provides access to the clinic document database.
"""

from pathlib import Path

from clinic_intake.config.schema import DataStoreConfig
from clinic_intake.store.base import Document, DocumentStore
from clinic_intake.store.json_store import JsonDocumentStore


def create_store(config: DataStoreConfig) -> DocumentStore:
    """Create the document store selected by configuration.

    Example:
        >>> store = create_store(load_config().datastore)
    """
    if config.backend == "firestore":
        # firebase-admin is only imported for the firestore backend
        from clinic_intake.store.firestore_store import FirestoreDocumentStore

        return FirestoreDocumentStore(
            credentials_path=config.credentials_path,
            project_id=config.project_id,
        )
    return JsonDocumentStore(Path(config.json_path))


__all__ = [
    "Document",
    "DocumentStore",
    "JsonDocumentStore",
    "create_store",
]

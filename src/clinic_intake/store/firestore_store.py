"""Document store backed by Cloud Firestore via firebase-admin."""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions

from clinic_intake.store.base import Document, DocumentStore, validate_collection_path
from clinic_intake.utils.exceptions import DataStoreError

logger = logging.getLogger(__name__)


class FirestoreDocumentStore(DocumentStore):
    """Firestore document store.

    The default firebase app is initialized once per process from the service
    account key; later instances reuse it.

    Args:
        credentials_path: Service account key JSON file
        project_id: Optional project id override
        client: Existing Firestore client (skips app initialization)
    """

    def __init__(
        self,
        credentials_path: Optional[Path] = None,
        project_id: Optional[str] = None,
        client=None,
    ) -> None:
        if client is not None:
            self._db = client
            return

        if credentials_path is None or not credentials_path.exists():
            raise DataStoreError(
                f"Firestore credentials not found at {credentials_path}. "
                f"Set datastore.credentials_path to the service account key file."
            )

        try:
            try:
                firebase_admin.get_app()
            except ValueError:
                cred = credentials.Certificate(str(credentials_path))
                options = {"projectId": project_id} if project_id else None
                firebase_admin.initialize_app(cred, options)
            self._db = firestore.client()
        except (ValueError, OSError, google_exceptions.GoogleAPIError) as e:
            raise DataStoreError(f"Failed to initialize Firestore: {e}") from e

        logger.info("Firestore document store initialized")

    def get(self, path: str, doc_id: str) -> Optional[Document]:
        try:
            snapshot = (
                self._db.collection(validate_collection_path(path))
                .document(doc_id)
                .get()
            )
        except google_exceptions.GoogleAPIError as e:
            raise DataStoreError(f"Failed to read {path}/{doc_id}: {e}") from e
        return snapshot.to_dict() if snapshot.exists else None

    def list(self, path: str) -> List[Tuple[str, Document]]:
        try:
            snapshots = self._db.collection(validate_collection_path(path)).stream()
            return [(snapshot.id, snapshot.to_dict() or {}) for snapshot in snapshots]
        except google_exceptions.GoogleAPIError as e:
            raise DataStoreError(f"Failed to list {path}: {e}") from e

    def set(self, path: str, doc_id: str, data: Document, merge: bool = True) -> None:
        try:
            self._db.collection(validate_collection_path(path)).document(doc_id).set(
                data, merge=merge
            )
        except google_exceptions.GoogleAPIError as e:
            raise DataStoreError(f"Failed to write {path}/{doc_id}: {e}") from e
        logger.debug(f"Stored document {path}/{doc_id}")

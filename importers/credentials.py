"""Builds the service context (document store + blob store) from service-account credentials."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore, storage

from exceptions import CredentialError
from .document_store import ServiceContext
from .firestore_store import CloudStorageBlobStore, FirestoreDocumentStore

CREDENTIALS_ENV_VAR = 'GOOGLE_APPLICATION_CREDENTIALS'
DEFAULT_CREDENTIALS_FILE = 'service-account.json'
APP_NAME = 'wp-cms-migrator'


class ServiceContextLoader:
    """
    Resolves service-account credentials and connects the stores.

    Credentials are looked up in ``target.credentials_path``, then the
    ``GOOGLE_APPLICATION_CREDENTIALS`` environment variable, then
    ``./service-account.json``.
    """

    def __init__(self, config: Dict[str, Any], logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger('wp_cms_migrator.importers.credentials')
        target_config = config.get('target', {}) or {}
        self.credentials_path = target_config.get('credentials_path')
        self.storage_bucket = target_config.get('storage_bucket')
        self.timeout = (config.get('media', {}) or {}).get('timeout', 30)

    def resolve_credentials_path(self) -> Path:
        """
        Locate the service-account file.

        Raises:
            CredentialError: If no candidate file exists
        """
        candidates = [
            self.credentials_path,
            os.environ.get(CREDENTIALS_ENV_VAR),
            DEFAULT_CREDENTIALS_FILE
        ]
        for candidate in candidates:
            if candidate and Path(candidate).is_file():
                return Path(candidate)

        raise CredentialError(
            f"No service account credentials found. Set {CREDENTIALS_ENV_VAR} "
            f"or place {DEFAULT_CREDENTIALS_FILE} in the working directory."
        )

    def read_service_account(self, path: Path) -> Dict[str, Any]:
        """
        Read and sanity-check a service-account JSON file.

        Raises:
            CredentialError: If the file is unreadable or not a service account
        """
        try:
            data = json.loads(path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            raise CredentialError(f"Invalid credentials file {path}: {e}") from e

        if not isinstance(data, dict) or not data.get('project_id'):
            raise CredentialError(f"Invalid credentials file {path}: missing project_id")
        return data

    def load(self) -> ServiceContext:
        """
        Connect to the document store and blob store.

        Raises:
            CredentialError: If credentials are missing or rejected
        """
        path = self.resolve_credentials_path()
        service_account = self.read_service_account(path)
        bucket_name = self.storage_bucket or f"{service_account['project_id']}.appspot.com"

        try:
            certificate = credentials.Certificate(str(path))
            try:
                app = firebase_admin.get_app(APP_NAME)
            except ValueError:
                app = firebase_admin.initialize_app(certificate, {'storageBucket': bucket_name}, name=APP_NAME)
        except (OSError, ValueError) as e:
            raise CredentialError(f"Credentials rejected: {e}") from e

        self.logger.info(f"Connected to project '{service_account['project_id']}' (bucket: {bucket_name})")

        return ServiceContext(
            document_store=FirestoreDocumentStore(firestore.client(app), timeout=self.timeout),
            blob_store=CloudStorageBlobStore(storage.bucket(bucket_name, app=app), timeout=self.timeout)
        )


__all__ = ['ServiceContextLoader', 'CREDENTIALS_ENV_VAR', 'DEFAULT_CREDENTIALS_FILE']

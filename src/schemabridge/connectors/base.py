# src/schemabridge/connectors/base.py

import logging
from typing import Optional
from google.cloud import bigquery, datastore, storage
from google.oauth2 import service_account

from ..config import GCPConfig
from ..errors import ConnectionError

logger = logging.getLogger(__name__)


def load_credentials(path: Optional[str]) -> Optional[service_account.Credentials]:
    """
    Load service account credentials, or None to use application default credentials.

    Raises:
        ConnectionError: if the key file is missing or unreadable
    """
    if path is None:
        return None
    try:
        return service_account.Credentials.from_service_account_file(path)
    except (OSError, ValueError) as e:
        suggestions = [
            "Check that serviceFilePath points to a service account JSON key.",
            "Or set it to 'auto-detect' and run `gcloud auth application-default login`.",
        ]
        suggestion_str = "\n".join(f"  • {s}" for s in suggestions)
        raise ConnectionError(
            f"Unable to load credentials from {path}: {e}\n\nSuggestions:\n{suggestion_str}"
        ) from e


def get_bigquery_client(config: GCPConfig, location: Optional[str] = None) -> bigquery.Client:
    credentials = load_credentials(config.get_service_account_file_path())
    try:
        return bigquery.Client(project=config.get_project(), credentials=credentials, location=location)
    except Exception as e:
        raise ConnectionError(f"BigQuery authentication failed: {e}") from e


def get_storage_client(config: GCPConfig) -> storage.Client:
    credentials = load_credentials(config.get_service_account_file_path())
    try:
        return storage.Client(project=config.get_project(), credentials=credentials)
    except Exception as e:
        raise ConnectionError(f"Cloud Storage authentication failed: {e}") from e


def get_datastore_client(config: GCPConfig, namespace: Optional[str] = None) -> datastore.Client:
    credentials = load_credentials(config.get_service_account_file_path())
    try:
        return datastore.Client(project=config.get_project(), namespace=namespace, credentials=credentials)
    except Exception as e:
        raise ConnectionError(f"Cloud Datastore authentication failed: {e}") from e

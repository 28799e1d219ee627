# src/schemabridge/provisioning.py

import logging
from http import HTTPStatus
from typing import Callable, Optional
from google.api_core.exceptions import GoogleAPICallError, NotFound
from google.cloud import bigquery, storage
from pydantic import BaseModel

from .errors import ProvisioningError

logger = logging.getLogger(__name__)


class ProvisionRequest(BaseModel):
    """Dataset and bucket a sink needs before it can load data. One-shot, never persisted."""
    dataset_name: str
    bucket_name: str
    temporary_bucket: bool = False


def _is_conflict(error: Exception) -> bool:
    return getattr(error, "code", None) == HTTPStatus.CONFLICT


class ResourceProvisioner:
    """
    Creates a BigQuery dataset and a Cloud Storage bucket if they do not exist.

    Several pipeline stages may provision the same names at the same time and
    no lock is taken: a 409 conflict from a create call means another caller
    won the race, which is as good as success.
    """

    def __init__(self, bigquery_client: bigquery.Client, storage_client: storage.Client):
        self.bigquery = bigquery_client
        self.storage = storage_client

    def provision(self, request: ProvisionRequest) -> None:
        self.ensure(request.dataset_name, request.bucket_name)

    def ensure(self, dataset_name: str, bucket_name: str) -> None:
        """
        Make sure both resources exist. If only one exists, the other is created
        in the same location. Creating a dataset in a bucket's location may fail
        if BigQuery does not support that location.

        Raises:
            ProvisioningError: if a resource could not be read or created
        """
        dataset = self._get_dataset(dataset_name)
        bucket = self._get_bucket(bucket_name)

        if dataset is None and bucket is None:
            self._create_bucket(
                bucket_name, None,
                lambda: f"Unable to create Cloud Storage bucket '{bucket_name}'",
            )
            self._create_dataset(
                dataset_name, None,
                lambda: f"Unable to create BigQuery dataset '{dataset_name}'",
            )
        elif bucket is None:
            self._create_bucket(
                bucket_name, dataset.location,
                lambda: (
                    f"Unable to create Cloud Storage bucket '{bucket_name}' in the same location "
                    f"('{dataset.location}') as BigQuery dataset '{dataset_name}'. "
                    f"Please use a bucket that is in the same location as the dataset."
                ),
            )
        elif dataset is None:
            self._create_dataset(
                dataset_name, bucket.location,
                lambda: (
                    f"Unable to create BigQuery dataset '{dataset_name}' in the same location "
                    f"('{bucket.location}') as Cloud Storage bucket '{bucket_name}'. "
                    f"Please use a bucket that is in a supported location."
                ),
            )
        else:
            logger.debug(f"Dataset '{dataset_name}' and bucket '{bucket_name}' already exist")

    def _get_dataset(self, dataset_name: str) -> Optional[bigquery.Dataset]:
        try:
            return self.bigquery.get_dataset(self._dataset_ref(dataset_name))
        except NotFound:
            return None
        except GoogleAPICallError as e:
            raise ProvisioningError(
                f"Unable to get details about BigQuery dataset '{dataset_name}': {e}", resource=dataset_name
            ) from e

    def _get_bucket(self, bucket_name: str) -> Optional[storage.Bucket]:
        try:
            return self.storage.lookup_bucket(bucket_name)
        except GoogleAPICallError as e:
            raise ProvisioningError(
                f"Unable to get details about Cloud Storage bucket '{bucket_name}': {e}", resource=bucket_name
            ) from e

    def _create_dataset(self, dataset_name: str, location: Optional[str], error_message: Callable[[], str]) -> None:
        dataset = bigquery.Dataset(self._dataset_ref(dataset_name))
        if location is not None:
            dataset.location = location
        try:
            self.bigquery.create_dataset(dataset)
            logger.info(f"Created BigQuery dataset '{dataset_name}'" + (f" in {location}" if location else ""))
        except GoogleAPICallError as e:
            if not _is_conflict(e):
                raise ProvisioningError(error_message(), resource=dataset_name) from e
            # Another stage created it first
            logger.debug(f"Dataset '{dataset_name}' was created concurrently, continuing")

    def _create_bucket(self, bucket_name: str, location: Optional[str], error_message: Callable[[], str]) -> None:
        try:
            self.storage.create_bucket(bucket_name, location=location)
            logger.info(f"Created Cloud Storage bucket '{bucket_name}'" + (f" in {location}" if location else ""))
        except GoogleAPICallError as e:
            if not _is_conflict(e):
                raise ProvisioningError(error_message(), resource=bucket_name) from e
            logger.debug(f"Bucket '{bucket_name}' was created concurrently, continuing")

    def _dataset_ref(self, dataset_name: str) -> bigquery.DatasetReference:
        return bigquery.DatasetReference(self.bigquery.project, dataset_name)

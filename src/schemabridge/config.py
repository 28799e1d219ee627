# src/schemabridge/config.py

import os
from typing import Any, Dict, List, Optional, Union
from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

from .errors import SchemaParseError
from .failures import FailureCollector
from .schema import Schema, SchemaType, parse_json

AUTO_DETECT = "auto-detect"

NAME_PROJECT = "project"
NAME_SERVICE_ACCOUNT_FILE_PATH = "serviceFilePath"
NAME_SCHEMA = "schema"


class GCPConfig(BaseModel):
    """Settings shared by every Google Cloud plugin."""
    name: str
    project: Optional[str] = AUTO_DETECT
    service_file_path: Optional[str] = AUTO_DETECT

    def try_get_project(self) -> Optional[str]:
        """Configured project, or the one from the environment when set to auto-detect."""
        if self.project and self.project != AUTO_DETECT:
            return self.project
        load_dotenv()
        return os.getenv("GOOGLE_CLOUD_PROJECT") or os.getenv("GCLOUD_PROJECT")

    def get_project(self) -> str:
        project = self.try_get_project()
        if project is None:
            raise ValueError("Could not detect Google Cloud project id from the environment. Please specify a project id.")
        return project

    def get_service_account_file_path(self) -> Optional[str]:
        if not self.service_file_path or self.service_file_path == AUTO_DETECT:
            return None
        return self.service_file_path

    def validate_common(self, collector: FailureCollector) -> None:
        if self.try_get_project() is None:
            collector.add_failure(
                "Could not detect Google Cloud project id from the environment.",
                "Specify a project id.",
            ).with_config_property(NAME_PROJECT)
        path = self.get_service_account_file_path()
        if path is not None and not os.path.exists(path):
            collector.add_failure(
                f"Service account file '{path}' does not exist.",
                "Ensure the service account file is available on the local filesystem.",
            ).with_config_property(NAME_SERVICE_ACCOUNT_FILE_PATH)


def parse_schema_property(
    text: Optional[str],
    collector: FailureCollector,
    property_name: str = NAME_SCHEMA,
) -> Optional[Schema]:
    """Parse a schema property, adding a failure instead of raising when it is invalid or not a record."""
    if not text:
        return None
    try:
        schema = parse_json(text)
    except SchemaParseError as e:
        collector.add_failure(str(e), "Provide a valid record schema.").with_config_property(property_name)
        return None
    if schema.type != SchemaType.RECORD:
        collector.add_failure(
            f"Schema is of invalid type '{schema.display_name}'. The schema must be a record.",
            "Provide a record schema.",
        ).with_config_property(property_name)
        return None
    return schema


class BigQuerySinkConfig(GCPConfig):
    dataset: str
    table: str
    bucket: Optional[str] = None
    declared_schema: Optional[str] = None
    location: Optional[str] = None


class BigQueryExecuteConfig(GCPConfig):
    sql: Optional[str] = None
    mode: str = "interactive"
    legacy: bool = False
    use_cache: bool = True
    location: str = "US"
    dataset: Optional[str] = None
    table: Optional[str] = None


class BigtableSourceConfig(GCPConfig):
    table: Optional[str] = None
    instance: Optional[str] = None
    key_alias: Optional[str] = None
    column_mappings: Optional[str] = None
    scan_row_start: Optional[str] = None
    scan_row_stop: Optional[str] = None
    scan_time_range_start: Optional[int] = None
    scan_time_range_stop: Optional[int] = None
    bigtable_options: Optional[str] = None
    on_error: Optional[str] = "skip-error"
    declared_schema: Optional[str] = None


class DatastoreSourceConfig(GCPConfig):
    namespace: Optional[str] = None
    kind: str
    # Path elements from root to parent, e.g. [{"kind": "Book", "name": "b1"}]
    ancestor: List[Dict[str, Any]] = []
    key_type: str = "none"
    key_alias: str = "__key__"
    declared_schema: Optional[str] = None

    @field_validator('key_type')
    def validate_key_type(cls, v):
        allowed = ['none', 'key literal', 'url-safe key']
        if v.lower() not in allowed:
            raise ValueError(f"key_type must be one of {allowed}")
        return v.lower()

    @property
    def include_key(self) -> bool:
        return self.key_type != "none"


class SpeechToTextConfig(BaseModel):
    name: str
    audio_field: Optional[str] = None
    encoding: str = "linear16"
    sample_rate: Optional[Union[int, str]] = 16000
    profanity: bool = False
    language: Optional[str] = "en-US"
    transcription_parts_field: Optional[str] = "parts"
    transcription_text_field: Optional[str] = None
    service_file_path: Optional[str] = AUTO_DETECT
    input_schema_json: Optional[str] = None


class BridgeConfig(BaseModel):
    bigquery_sinks: List[BigQuerySinkConfig] = []
    bigquery_execute: List[BigQueryExecuteConfig] = []
    bigtable_sources: List[BigtableSourceConfig] = []
    datastore_sources: List[DatastoreSourceConfig] = []
    speech_transforms: List[SpeechToTextConfig] = []


def load_config(filepath: str) -> BridgeConfig:
    """Load and validate plugin configurations from a YAML file."""
    import yaml

    with open(filepath, 'r') as f:
        config_dict = yaml.safe_load(f) or {}

    return BridgeConfig(**config_dict)

# src/schemabridge/connectors/bigquery.py
import logging
import uuid
from typing import List, Optional
from google.cloud import bigquery
from google.api_core.exceptions import GoogleAPICallError, NotFound

from ..config import BigQueryExecuteConfig, BigQuerySinkConfig, parse_schema_property
from ..errors import UnsupportedTypeError
from ..failures import FailureCollector
from ..provisioning import ProvisionRequest
from ..schema import LogicalType, Schema, SchemaType
from ..schema_validator import SchemaValidator
from ..type_mapping import BIGQUERY, ColumnMode, ExternalColumn, NativeType, generic_to_native

logger = logging.getLogger(__name__)

NAME_DATASET = "dataset"
NAME_TABLE = "table"
NAME_SQL = "sql"
NAME_MODE = "mode"

EXECUTE_MODES = ("batch", "interactive")


def to_external_column(schema_field: bigquery.SchemaField) -> ExternalColumn:
    """Snapshot a BigQuery SchemaField as an ExternalColumn."""
    return ExternalColumn(
        name=schema_field.name,
        native_type=NativeType.parse(schema_field.field_type),
        mode=ColumnMode((schema_field.mode or "NULLABLE").upper()),
    )


def fetch_table_columns(
    client: bigquery.Client,
    dataset: str,
    table: str,
    collector: FailureCollector,
) -> Optional[List[ExternalColumn]]:
    """
    Read the live schema of a table.

    Returns None when the table does not exist or has no schema, in which case
    there is nothing to validate against. Any other API error is fatal: it is
    added to the collector and the collector is raised.
    """
    table_id = f"{client.project}.{dataset}.{table}"
    try:
        bq_table = client.get_table(table_id)
    except NotFound:
        logger.debug(f"Table {table_id} does not exist, skipping schema validation")
        return None
    except GoogleAPICallError as e:
        collector.add_failure(f"Unable to get details about the BigQuery table: {e}", None) \
            .with_config_property(NAME_TABLE)
        collector.get_or_raise()

    if not bq_table.schema:
        return None

    columns = []
    for schema_field in bq_table.schema:
        try:
            columns.append(to_external_column(schema_field))
        except UnsupportedTypeError:
            collector.add_failure(
                f"Column '{schema_field.name}' in BigQuery table '{dataset}.{table}' "
                f"is of unsupported type '{schema_field.field_type}'.",
                "Write to a table whose columns use supported types.",
            ).with_config_property(NAME_TABLE)
    return columns


def _preferred_native(schema: Schema) -> NativeType:
    # Enum order puts STRING ahead of DATETIME
    natives = generic_to_native(schema, BIGQUERY)
    return next(n for n in NativeType if n in natives)


def to_table_schema(schema: Schema) -> List[bigquery.SchemaField]:
    """
    Translate a generic record schema into BigQuery SchemaFields for table creation.

    Raises:
        UnsupportedTypeError: if a field has no BigQuery counterpart
    """
    return [_to_schema_field(f.name, f.field_schema) for f in schema.fields or ()]


def _to_schema_field(name: str, field_schema: Schema) -> bigquery.SchemaField:
    field_schema = field_schema.non_nullable()
    mode = ColumnMode.NULLABLE
    if field_schema.type == SchemaType.ARRAY:
        mode = ColumnMode.REPEATED
        field_schema = field_schema.component.non_nullable()

    native = _preferred_native(field_schema)
    if field_schema.type == SchemaType.RECORD:
        return bigquery.SchemaField(name, native.value, mode=mode.value, fields=to_table_schema(field_schema))
    if field_schema.logical_type == LogicalType.DECIMAL:
        return bigquery.SchemaField(
            name, native.value, mode=mode.value, precision=field_schema.precision, scale=field_schema.scale,
        )
    return bigquery.SchemaField(name, native.value, mode=mode.value)


class BigQuerySinkValidator:
    """Configuration-time validation of a BigQuery sink."""

    def __init__(self, config: BigQuerySinkConfig, client: Optional[bigquery.Client] = None):
        self.config = config
        self.client = client
        self.validator = SchemaValidator(BIGQUERY)

    def validate(self, collector: Optional[FailureCollector] = None) -> FailureCollector:
        """
        Check the sink settings and, when a client is available, the declared
        schema against the existing table. Failures are collected, not raised.
        """
        collector = collector if collector is not None else FailureCollector(self.config.name)
        self.config.validate_common(collector)

        if not self.config.dataset:
            collector.add_failure("Dataset must be specified.", None).with_config_property(NAME_DATASET)
        if not self.config.table:
            collector.add_failure("Table must be specified.", None).with_config_property(NAME_TABLE)

        schema = parse_schema_property(self.config.declared_schema, collector)
        if schema is None or self.client is None or collector.has_failures():
            return collector

        columns = fetch_table_columns(self.client, self.config.dataset, self.config.table, collector)
        if columns:
            self.validator.validate(schema, columns, self.config.dataset, self.config.table, collector)
        return collector

    def provision_request(self) -> ProvisionRequest:
        """Resources to create before the first load. Without a bucket a temporary one is named after a UUID."""
        if self.config.bucket:
            return ProvisionRequest(dataset_name=self.config.dataset, bucket_name=self.config.bucket)
        return ProvisionRequest(
            dataset_name=self.config.dataset,
            bucket_name=str(uuid.uuid4()),
            temporary_bucket=True,
        )


def validate_execute_config(config: BigQueryExecuteConfig, collector: FailureCollector) -> FailureCollector:
    """Validate a BigQuery execute action: SQL present, known mode, dataset and table given together."""
    if config.mode.lower() not in EXECUTE_MODES:
        collector.add_failure(
            f"Mode '{config.mode}' is invalid.",
            f"Use one of: {', '.join(EXECUTE_MODES)}.",
        ).with_config_property(NAME_MODE)

    if not config.sql:
        collector.add_failure("SQL not specified.", "Please specify a SQL to execute.") \
            .with_config_property(NAME_SQL)

    if bool(config.dataset) != bool(config.table):
        collector.add_failure(
            "Dataset and table must be specified together.",
            "Specify both dataset and table, or neither.",
        ).with_config_property(NAME_DATASET).with_config_property(NAME_TABLE)
    return collector


def build_query_job_config(config: BigQueryExecuteConfig, project: str) -> bigquery.QueryJobConfig:
    """Translate an execute action into a QueryJobConfig. Batch priority does not count toward the concurrent rate limit."""
    job_config = bigquery.QueryJobConfig(
        priority=(
            bigquery.QueryPriority.BATCH if config.mode.lower() == "batch" else bigquery.QueryPriority.INTERACTIVE
        ),
        use_legacy_sql=config.legacy,
        use_query_cache=config.use_cache,
    )
    if config.dataset and config.table:
        job_config.destination = bigquery.TableReference(
            bigquery.DatasetReference(project, config.dataset), config.table,
        )
    return job_config

# src/schemabridge/connectors/__init__.py

from .bigquery import BigQuerySinkValidator, fetch_table_columns, to_table_schema, validate_execute_config
from .bigtable import BigtableSourceValidator
from .datastore import DatastoreSchemaResolver, fetch_sample
from .speech import output_schema, validate_speech_config

__all__ = [
    'BigQuerySinkValidator',
    'fetch_table_columns',
    'to_table_schema',
    'validate_execute_config',
    'BigtableSourceValidator',
    'DatastoreSchemaResolver',
    'fetch_sample',
    'output_schema',
    'validate_speech_config',
]

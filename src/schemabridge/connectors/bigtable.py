# src/schemabridge/connectors/bigtable.py

import logging
from typing import Dict, List, Optional

from ..column_mapping import ColumnMappingEntry, ColumnMappingResolver, parse_key_value_config
from ..config import BigtableSourceConfig, NAME_SCHEMA, parse_schema_property
from ..failures import FailureCollector
from ..schema import Schema
from ..schema_validator import SchemaValidator
from ..type_mapping import BIGTABLE

logger = logging.getLogger(__name__)

NAME_TABLE = "table"
NAME_INSTANCE = "instance"
NAME_ON_ERROR = "on-error"
NAME_BIGTABLE_OPTIONS = "bigtableOptions"
NAME_SCAN_ROW_START = "scanRowStart"
NAME_SCAN_ROW_STOP = "scanRowStop"
NAME_SCAN_TIME_RANGE_START = "scanTimeRangeStart"
NAME_SCAN_TIME_RANGE_STOP = "scanTimeRangeStop"

ERROR_HANDLING = ("skip-error", "fail-pipeline")


class BigtableSourceValidator:
    """
    Configuration-time validation of a Bigtable source.

    Bigtable has no typed schema of its own, so the declared schema is only
    checked for supported field types and for full coverage by the column
    mappings.
    """

    def __init__(self, config: BigtableSourceConfig):
        self.config = config
        self.resolver = ColumnMappingResolver()
        self.validator = SchemaValidator(BIGTABLE)
        self.mappings: List[ColumnMappingEntry] = []

    def validate(self, collector: Optional[FailureCollector] = None) -> FailureCollector:
        collector = collector if collector is not None else FailureCollector(self.config.name)
        config = self.config
        config.validate_common(collector)

        if not config.table:
            collector.add_failure("Table must be specified.", None).with_config_property(NAME_TABLE)
        if not config.instance:
            collector.add_failure("Instance ID must be specified.", None).with_config_property(NAME_INSTANCE)

        if not config.on_error:
            collector.add_failure("Error handling must be specified.", None).with_config_property(NAME_ON_ERROR)
        elif config.on_error not in ERROR_HANDLING:
            collector.add_failure(
                f"Invalid record error handling strategy name '{config.on_error}'.",
                f"Use one of: {', '.join(ERROR_HANDLING)}.",
            ).with_config_property(NAME_ON_ERROR)

        try:
            self.bigtable_options()
        except ValueError as e:
            collector.add_failure(f"Invalid Bigtable options: {e}.", None) \
                .with_config_property(NAME_BIGTABLE_OPTIONS)

        self._validate_scan_range(collector)
        schema = self._validate_schema(collector)
        self.mappings = self.resolver.resolve(config.column_mappings, schema, config.key_alias, collector)
        return collector

    def _validate_scan_range(self, collector: FailureCollector) -> None:
        config = self.config
        for value, name in (
            (config.scan_time_range_start, NAME_SCAN_TIME_RANGE_START),
            (config.scan_time_range_stop, NAME_SCAN_TIME_RANGE_STOP),
        ):
            if value is not None and value < 0:
                collector.add_failure(
                    f"Scan time range bound '{value}' is negative.",
                    "Use a timestamp in milliseconds since the epoch.",
                ).with_config_property(name)

        start, stop = config.scan_time_range_start, config.scan_time_range_stop
        if start is not None and stop is not None and start >= stop:
            collector.add_failure(
                f"Scan time range start '{start}' must be before stop '{stop}'.",
                None,
            ).with_config_property(NAME_SCAN_TIME_RANGE_START).with_config_property(NAME_SCAN_TIME_RANGE_STOP)

        # Row keys sort lexicographically; the stop row is exclusive
        row_start, row_stop = config.scan_row_start, config.scan_row_stop
        if row_start and row_stop and row_start >= row_stop:
            collector.add_failure(
                f"Scan row start '{row_start}' must sort before stop '{row_stop}'.",
                None,
            ).with_config_property(NAME_SCAN_ROW_START).with_config_property(NAME_SCAN_ROW_STOP)

    def _validate_schema(self, collector: FailureCollector) -> Optional[Schema]:
        if not self.config.declared_schema:
            collector.add_failure("Schema must be specified.", None).with_config_property(NAME_SCHEMA)
            return None
        schema = parse_schema_property(self.config.declared_schema, collector)
        if schema is None:
            return None
        if not schema.fields:
            collector.add_failure("Schema should contain fields to map.", None).with_config_property(NAME_SCHEMA)
            return schema
        self.validator.validate_supported_types(schema, collector)
        return schema

    def bigtable_options(self) -> Dict[str, str]:
        return parse_key_value_config(self.config.bigtable_options)

    def requested_columns(self) -> List[str]:
        """Full 'family:qualifier' names of the columns to scan, once validate() has run."""
        return [entry.column_name for entry in self.mappings]

    def field_to_column(self) -> Dict[str, ColumnMappingEntry]:
        """Mapping from record field to its column, for the scan layer."""
        return {entry.target_field: entry for entry in self.mappings}

# src/schemabridge/schema_validator.py
from typing import List, Optional, Sequence
import logging

from .errors import UnsupportedTypeError
from .failures import FailureCollector, ValidationFailure
from .schema import Field, LogicalType, Schema, SchemaType
from .type_mapping import (
    BIGQUERY,
    UNSUPPORTED_ARRAY_TYPES,
    ColumnMode,
    ExternalColumn,
    StoreTypeSystem,
    generic_to_native,
    native_to_generic,
)

logger = logging.getLogger(__name__)

# BigQuery NUMERIC limits
MAX_DECIMAL_PRECISION = 38
MAX_DECIMAL_SCALE = 9

SCHEMA_PROPERTY = "schema"


def schema_minus_columns(fields: Sequence[Field], columns: Sequence[ExternalColumn]) -> List[str]:
    """Names of schema fields that have no column (schema fields - table columns)."""
    column_names = {c.name for c in columns}
    return [f.name for f in fields if f.name not in column_names]


def columns_minus_schema(columns: Sequence[ExternalColumn], fields: Sequence[Field]) -> List[str]:
    """Names of table columns that have no schema field (table columns - schema fields)."""
    field_names = {f.name for f in fields}
    return [c.name for c in columns if c.name not in field_names]


class SchemaValidator:
    """Checks a generic schema against the live schema of an existing external table."""

    def __init__(self, system: StoreTypeSystem = BIGQUERY):
        self.system = system

    def validate(
        self,
        candidate: Schema,
        existing: Sequence[ExternalColumn],
        dataset: Optional[str] = None,
        table: Optional[str] = None,
        collector: Optional[FailureCollector] = None,
    ) -> FailureCollector:
        """
        Validate every field of `candidate` against the table columns in `existing`.

        Failures are only collected; call get_or_raise() on the returned
        collector to turn them into an exception.

        Args:
            candidate: record schema the pipeline will write
            existing: columns of the table as it exists in the store
            dataset: dataset name, used in messages
            table: table name, used in messages
            collector: collector to add to, a new one is created if omitted
        """
        collector = collector if collector is not None else FailureCollector()
        fields = list(candidate.fields or ())
        table_label = self._table_label(dataset, table)

        # Output schema should not have fields that are not present in the table
        extra = schema_minus_columns(fields, existing)
        if extra:
            failure = collector.add_failure(
                f"The output schema does not match the {self.system.name} table schema for '{table_label}' table. "
                f"The table does not contain the {', '.join(repr(n) for n in extra)} column(s).",
                "Remove the field(s) from the output schema or add the column(s) to the table.",
            ).with_config_property(SCHEMA_PROPERTY)
            for name in extra:
                failure.with_input_schema_field(name)

        # Columns absent from the schema are fine only if the table allows nulls in them
        columns = {c.name: c for c in existing}
        for name in columns_minus_schema(existing, fields):
            if columns[name].mode != ColumnMode.NULLABLE:
                collector.add_failure(
                    f"The output schema does not match the {self.system.name} table schema for '{table_label}'. "
                    f"The table requires column '{name}', which is not in the output schema.",
                    f"Add field '{name}' to the output schema.",
                ).with_config_property(SCHEMA_PROPERTY)

        for field in fields:
            column = columns.get(field.name)
            if column is None:
                continue
            self.validate_field(column, field, collector, table_label)

        if collector.has_failures():
            logger.info(f"Schema validation for '{table_label}' found {collector.failure_count()} problem(s)")
        return collector

    def validate_field(
        self,
        column: ExternalColumn,
        field: Field,
        collector: FailureCollector,
        table_label: str = "table",
    ) -> Optional[ValidationFailure]:
        """Validate one field against its column. Returns the first failure found, if any."""
        name = field.name
        field_schema = field.field_schema.non_nullable()
        column_type_name = native_to_generic(column.native_type, self.system)

        if field_schema.logical_type is not None:
            return self._validate_logical(column, name, field_schema, collector, table_label)

        if field_schema.type not in self.system.supported_types:
            return self._unsupported(collector, name, field_schema.display_name)

        if field_schema.type == SchemaType.ARRAY:
            failure = self.validate_array_schema(field.field_schema, name, collector)
            if failure is not None:
                return failure
            if not (self.system.supports_repeated and column.mode == ColumnMode.REPEATED):
                return collector.add_failure(
                    f"Field '{name}' of type 'array' is incompatible with column '{column.name}' "
                    f"in {self.system.name} table '{table_label}', which is not repeated.",
                    f"It must be of type '{column_type_name}'.",
                ).with_input_schema_field(name)
            field_schema = field_schema.component
            if field_schema.logical_type is not None:
                return self._validate_logical(column, name, field_schema, collector, table_label)

        try:
            allowed = generic_to_native(field_schema, self.system)
        except UnsupportedTypeError:
            return self._unsupported(collector, name, field_schema.display_name)

        if column.native_type not in allowed:
            return collector.add_failure(
                f"Field '{name}' of type '{field_schema.display_name}' is incompatible with column "
                f"'{column.name}' of type '{column_type_name}' in {self.system.name} table '{table_label}'.",
                f"It must be of type '{column_type_name}'.",
            ).with_input_schema_field(name)
        return None

    def _validate_logical(
        self,
        column: ExternalColumn,
        name: str,
        field_schema: Schema,
        collector: FailureCollector,
        table_label: str,
    ) -> Optional[ValidationFailure]:
        """Logical types map to exactly one native type; decimals must also fit NUMERIC."""
        column_type_name = native_to_generic(column.native_type, self.system)
        expected = self.system.logical_type_map.get(field_schema.logical_type)
        if expected is None:
            return self._unsupported(collector, name, field_schema.display_name)

        if expected != column.native_type:
            return collector.add_failure(
                f"Field '{name}' of type '{field_schema.display_name}' has incompatible type with column "
                f"'{column.name}' in {self.system.name} table '{table_label}'.",
                f"Modify the input so that it is of type '{column_type_name}'.",
            ).with_input_schema_field(name)

        if field_schema.logical_type == LogicalType.DECIMAL:
            if field_schema.precision > MAX_DECIMAL_PRECISION or field_schema.scale > MAX_DECIMAL_SCALE:
                return collector.add_failure(
                    f"Decimal Field '{name}' has invalid precision '{field_schema.precision}' "
                    f"and scale '{field_schema.scale}'.",
                    f"Precision must be at most {MAX_DECIMAL_PRECISION} "
                    f"and scale must be at most {MAX_DECIMAL_SCALE}.",
                ).with_input_schema_field(name)
        return None

    @staticmethod
    def validate_array_schema(
        array_schema: Schema,
        name: str,
        collector: FailureCollector,
    ) -> Optional[ValidationFailure]:
        """Arrays must be non-nullable, hold non-nullable values, and not nest arrays or maps."""
        if array_schema.is_nullable:
            return collector.add_failure(
                f"Field '{name}' is of type array.",
                "Change the field to be non-nullable.",
            ).with_input_schema_field(name)

        component = array_schema.component
        if component.is_nullable:
            return collector.add_failure(
                f"Field '{name}' contains null values in its array.",
                "Change the array component type to be non-nullable.",
            ).with_input_schema_field(name)

        if component.type in UNSUPPORTED_ARRAY_TYPES:
            return collector.add_failure(
                f"Field '{name}' is an array of unsupported type '{component.display_name}'.",
                "Change the array component type to be a valid type.",
            ).with_input_schema_field(name)

        return None

    def validate_supported_types(
        self,
        schema: Schema,
        collector: FailureCollector,
        config_property: str = SCHEMA_PROPERTY,
    ) -> FailureCollector:
        """Check that every field's declared type is one the store accepts (no live schema needed)."""
        for field in schema.fields or ():
            field_schema = field.field_schema.non_nullable()
            logical_ok = (
                field_schema.logical_type is None
                or field_schema.logical_type in self.system.logical_type_map
            )
            if not logical_ok or field_schema.type not in self.system.supported_types:
                self._unsupported(collector, field.name, field_schema.display_name) \
                    .with_config_property(config_property)
        return collector

    def _unsupported(self, collector: FailureCollector, name: str, type_name: str) -> ValidationFailure:
        supported = self.system.supported_type_names()
        if self.system.logical_type_map:
            supported += ", date, time, timestamp and decimal"
        return collector.add_failure(
            f"Field '{name}' is of unsupported type '{type_name}'.",
            f"Supported types are: {supported}.",
        ).with_input_schema_field(name)

    @staticmethod
    def _table_label(dataset: Optional[str], table: Optional[str]) -> str:
        if dataset and table:
            return f"{dataset}.{table}"
        return table or dataset or "table"

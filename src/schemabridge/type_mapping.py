# src/schemabridge/type_mapping.py

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict

from .errors import UnsupportedTypeError
from .schema import LogicalType, Schema, SchemaType

logger = logging.getLogger(__name__)


class NativeType(str, Enum):
    """Column types as reported by the stores (BigQuery legacy SQL names)."""
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    BOOLEAN = "BOOLEAN"
    BYTES = "BYTES"
    RECORD = "RECORD"
    STRING = "STRING"
    DATETIME = "DATETIME"
    DATE = "DATE"
    TIME = "TIME"
    TIMESTAMP = "TIMESTAMP"
    NUMERIC = "NUMERIC"
    BIGNUMERIC = "BIGNUMERIC"
    GEOGRAPHY = "GEOGRAPHY"
    JSON = "JSON"

    @classmethod
    def parse(cls, name: str) -> "NativeType":
        """Parse a native type name, accepting standard SQL aliases."""
        key = name.strip().upper()
        key = NATIVE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UnsupportedTypeError(f"Unknown native column type '{name}'", type_name=name) from None


NATIVE_ALIASES = {
    "INT64": "INTEGER",
    "FLOAT64": "FLOAT",
    "BOOL": "BOOLEAN",
    "STRUCT": "RECORD",
    "DECIMAL": "NUMERIC",
    "BIGDECIMAL": "BIGNUMERIC",
}


class ColumnMode(str, Enum):
    REQUIRED = "REQUIRED"
    NULLABLE = "NULLABLE"
    REPEATED = "REPEATED"


class ExternalColumn(BaseModel):
    """Read-only snapshot of one column of a live external table."""
    model_config = ConfigDict(frozen=True)

    name: str
    native_type: NativeType
    mode: ColumnMode = ColumnMode.NULLABLE


class StoreTypeSystem(BaseModel):
    """
    Data-driven description of one store's type system.

    Adding a store means adding a table like BIGQUERY below, not new control flow.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    type_map: Dict[SchemaType, FrozenSet[NativeType]]
    logical_type_map: Dict[LogicalType, NativeType] = {}
    native_names: Dict[NativeType, str]
    supported_types: FrozenSet[SchemaType]
    supports_repeated: bool = False

    def supported_type_names(self) -> str:
        order = [t for t in SchemaType if t in self.supported_types]
        return ", ".join(t.value for t in order)


# Arrays of arrays and arrays of maps are not supported by any store
UNSUPPORTED_ARRAY_TYPES = frozenset({SchemaType.ARRAY, SchemaType.MAP})


BIGQUERY = StoreTypeSystem(
    name="BigQuery",
    type_map={
        SchemaType.INT: frozenset({NativeType.INTEGER}),
        SchemaType.LONG: frozenset({NativeType.INTEGER}),
        SchemaType.STRING: frozenset({NativeType.STRING, NativeType.DATETIME}),
        SchemaType.FLOAT: frozenset({NativeType.FLOAT}),
        SchemaType.DOUBLE: frozenset({NativeType.FLOAT}),
        SchemaType.BOOLEAN: frozenset({NativeType.BOOLEAN}),
        SchemaType.BYTES: frozenset({NativeType.BYTES}),
        SchemaType.RECORD: frozenset({NativeType.RECORD}),
    },
    logical_type_map={
        LogicalType.DATE: NativeType.DATE,
        LogicalType.TIME_MILLIS: NativeType.TIME,
        LogicalType.TIME_MICROS: NativeType.TIME,
        LogicalType.TIMESTAMP_MILLIS: NativeType.TIMESTAMP,
        LogicalType.TIMESTAMP_MICROS: NativeType.TIMESTAMP,
        LogicalType.DECIMAL: NativeType.NUMERIC,
    },
    native_names={
        NativeType.INTEGER: "long",
        NativeType.FLOAT: "double",
        NativeType.BOOLEAN: "boolean",
        NativeType.BYTES: "bytes",
        NativeType.RECORD: "record",
        NativeType.STRING: "string",
        NativeType.DATETIME: "string",
        NativeType.DATE: "date",
        NativeType.TIME: "time",
        NativeType.TIMESTAMP: "timestamp",
        NativeType.NUMERIC: "decimal",
    },
    supported_types=frozenset({
        SchemaType.BOOLEAN,
        SchemaType.BYTES,
        SchemaType.DOUBLE,
        SchemaType.FLOAT,
        SchemaType.INT,
        SchemaType.LONG,
        SchemaType.STRING,
        SchemaType.ARRAY,
        SchemaType.RECORD,
    }),
    supports_repeated=True,
)

# Bigtable cells are raw bytes; a field type only decides how the bytes are decoded
BIGTABLE = StoreTypeSystem(
    name="Bigtable",
    type_map={
        t: frozenset({NativeType.BYTES})
        for t in (
            SchemaType.BOOLEAN,
            SchemaType.INT,
            SchemaType.LONG,
            SchemaType.FLOAT,
            SchemaType.DOUBLE,
            SchemaType.BYTES,
            SchemaType.STRING,
        )
    },
    native_names={NativeType.BYTES: "bytes"},
    supported_types=frozenset({
        SchemaType.BOOLEAN,
        SchemaType.INT,
        SchemaType.LONG,
        SchemaType.FLOAT,
        SchemaType.DOUBLE,
        SchemaType.BYTES,
        SchemaType.STRING,
    }),
)


_CANONICAL_TYPE_NAMES = {
    SchemaType.INT: "long",
    SchemaType.FLOAT: "double",
}

_CANONICAL_LOGICAL_NAMES = {
    LogicalType.DATE: "date",
    LogicalType.TIME_MILLIS: "time",
    LogicalType.TIME_MICROS: "time",
    LogicalType.TIMESTAMP_MILLIS: "timestamp",
    LogicalType.TIMESTAMP_MICROS: "timestamp",
    LogicalType.DECIMAL: "decimal",
}


def generic_to_native(schema: Schema, system: StoreTypeSystem = BIGQUERY) -> FrozenSet[NativeType]:
    """
    Return every native type a (possibly nullable) generic schema may be stored as.

    Raises:
        UnsupportedTypeError: if the store has no counterpart for the type
    """
    schema = schema.non_nullable()
    if schema.logical_type is not None:
        native = system.logical_type_map.get(schema.logical_type)
        if native is None:
            raise UnsupportedTypeError(
                f"Type '{schema.display_name}' is not supported by {system.name}",
                type_name=schema.display_name, store=system.name,
            )
        return frozenset({native})

    natives = system.type_map.get(schema.type)
    if natives is None:
        raise UnsupportedTypeError(
            f"Type '{schema.display_name}' is not supported by {system.name}",
            type_name=schema.display_name, store=system.name,
        )
    return natives


def native_to_generic(native: NativeType, system: StoreTypeSystem = BIGQUERY) -> str:
    """Canonical generic type name for a native type, for use in diagnostics."""
    return system.native_names.get(native, native.value.lower())


def canonical_name(schema: Schema) -> str:
    """Canonical generic type name of a schema (int collapses to long, time-millis to time, ...)."""
    schema = schema.non_nullable()
    if schema.logical_type is not None:
        return _CANONICAL_LOGICAL_NAMES[schema.logical_type]
    return _CANONICAL_TYPE_NAMES.get(schema.type, schema.type.value)


# --- Value kinds for schema inference ---

# Order matters: bool is a subclass of int
DATASTORE_VALUE_TYPES: List[Tuple[Tuple[type, ...], Schema]] = [
    ((bool,), Schema.of(SchemaType.BOOLEAN)),
    ((str,), Schema.of(SchemaType.STRING)),
    ((int,), Schema.of(SchemaType.LONG)),
    ((float,), Schema.of(SchemaType.DOUBLE)),
    ((datetime,), Schema.of(LogicalType.TIMESTAMP_MICROS)),
    ((bytes, bytearray), Schema.of(SchemaType.BYTES)),
    ((type(None),), Schema.of(SchemaType.NULL)),
]


def simple_schema_for(value: Any) -> Optional[Schema]:
    """Map a simple value to its generic schema, or None if it is not a simple kind."""
    for kinds, schema in DATASTORE_VALUE_TYPES:
        if isinstance(value, kinds):
            return schema
    return None

# src/schemabridge/schema.py

import json
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from .errors import SchemaParseError

logger = logging.getLogger(__name__)


class SchemaType(str, Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BYTES = "bytes"
    STRING = "string"
    ENUM = "enum"
    ARRAY = "array"
    MAP = "map"
    RECORD = "record"
    UNION = "union"

    def is_simple(self) -> bool:
        return self in SIMPLE_TYPES


class LogicalType(str, Enum):
    DATE = "date"
    TIME_MILLIS = "time-millis"
    TIME_MICROS = "time-micros"
    TIMESTAMP_MILLIS = "timestamp-millis"
    TIMESTAMP_MICROS = "timestamp-micros"
    DECIMAL = "decimal"


SIMPLE_TYPES = frozenset({
    SchemaType.NULL,
    SchemaType.BOOLEAN,
    SchemaType.INT,
    SchemaType.LONG,
    SchemaType.FLOAT,
    SchemaType.DOUBLE,
    SchemaType.BYTES,
    SchemaType.STRING,
    SchemaType.ENUM,
})

# Physical type each logical type is carried in
LOGICAL_PRIMITIVES: Dict[LogicalType, SchemaType] = {
    LogicalType.DATE: SchemaType.INT,
    LogicalType.TIME_MILLIS: SchemaType.INT,
    LogicalType.TIME_MICROS: SchemaType.LONG,
    LogicalType.TIMESTAMP_MILLIS: SchemaType.LONG,
    LogicalType.TIMESTAMP_MICROS: SchemaType.LONG,
    LogicalType.DECIMAL: SchemaType.BYTES,
}


class Schema(BaseModel):
    """
    A node of the generic, store-agnostic type model.

    Nullability is not a flag: a nullable T is union(T, null), the same way
    inference builds unions of heterogeneous list elements. Instances are
    frozen and compare by value, so two independently built schemas with the
    same shape are equal and hashable.
    """
    model_config = ConfigDict(frozen=True)

    type: SchemaType
    logical_type: Optional[LogicalType] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    name: Optional[str] = None
    fields: Optional[Tuple["Field", ...]] = None
    component: Optional["Schema"] = None
    values: Optional["Schema"] = None
    members: Optional[Tuple["Schema", ...]] = None
    symbols: Optional[Tuple[str, ...]] = None

    @model_validator(mode='after')
    def check_shape(self):
        if self.logical_type is not None:
            expected = LOGICAL_PRIMITIVES[self.logical_type]
            if self.type != expected:
                raise ValueError(f"Logical type '{self.logical_type.value}' must be carried by '{expected.value}'")
            if self.logical_type == LogicalType.DECIMAL:
                if self.precision is None or self.precision < 1:
                    raise ValueError("Decimal precision must be a positive integer")
                if self.scale is None or self.scale < 0 or self.scale > self.precision:
                    raise ValueError(
                        f"Decimal scale must be between 0 and the precision ({self.precision}), got {self.scale}"
                    )
        if self.type == SchemaType.RECORD:
            names = [f.name for f in self.fields or ()]
            duplicates = sorted({n for n in names if names.count(n) > 1})
            if duplicates:
                raise ValueError(f"Record '{self.name}' has duplicate field names: {duplicates}")
        if self.type == SchemaType.ARRAY and self.component is None:
            raise ValueError("Array schema requires a component schema")
        if self.type == SchemaType.MAP and self.values is None:
            raise ValueError("Map schema requires a value schema")
        if self.type == SchemaType.UNION and not self.members:
            raise ValueError("Union schema requires at least one member")
        return self

    # --- Constructors ---

    @classmethod
    def of(cls, schema_type: Union[SchemaType, LogicalType]) -> "Schema":
        """Create a simple schema, or a logical one that needs no parameters."""
        if isinstance(schema_type, LogicalType):
            if schema_type == LogicalType.DECIMAL:
                raise ValueError("Use Schema.decimal_of() to create a decimal schema")
            return cls(type=LOGICAL_PRIMITIVES[schema_type], logical_type=schema_type)
        schema_type = SchemaType(schema_type)
        if not schema_type.is_simple() or schema_type == SchemaType.ENUM:
            raise ValueError(f"Type '{schema_type.value}' is not a simple type")
        return cls(type=schema_type)

    @classmethod
    def decimal_of(cls, precision: int, scale: int = 0) -> "Schema":
        return cls(type=SchemaType.BYTES, logical_type=LogicalType.DECIMAL, precision=precision, scale=scale)

    @classmethod
    def enum_with(cls, *symbols: str) -> "Schema":
        return cls(type=SchemaType.ENUM, symbols=tuple(symbols))

    @classmethod
    def array_of(cls, component: "Schema") -> "Schema":
        return cls(type=SchemaType.ARRAY, component=component)

    @classmethod
    def map_of(cls, values: "Schema") -> "Schema":
        return cls(type=SchemaType.MAP, values=values)

    @classmethod
    def record_of(cls, name: str, fields: Iterable["Field"]) -> "Schema":
        return cls(type=SchemaType.RECORD, name=name, fields=tuple(fields))

    @classmethod
    def union_of(cls, members: Iterable["Schema"]) -> "Schema":
        """Build a union; nested unions are flattened and duplicates dropped, keeping first-seen order."""
        ordered: List[Schema] = []
        for member in members:
            flat = member.members if member.type == SchemaType.UNION else (member,)
            for m in flat:
                if m not in ordered:
                    ordered.append(m)
        return cls(type=SchemaType.UNION, members=tuple(ordered))

    @classmethod
    def nullable_of(cls, schema: "Schema") -> "Schema":
        if schema.is_nullable:
            return schema
        return cls.union_of([schema, cls.of(SchemaType.NULL)])

    # --- Inspection ---

    @property
    def is_nullable(self) -> bool:
        return (
            self.type == SchemaType.UNION
            and len(self.members) == 2
            and any(m.type == SchemaType.NULL for m in self.members)
        )

    def non_nullable(self) -> "Schema":
        """Return the non-null member of a nullable union, or the schema itself."""
        if not self.is_nullable:
            return self
        return next(m for m in self.members if m.type != SchemaType.NULL)

    @property
    def display_name(self) -> str:
        if self.logical_type is not None:
            return self.logical_type.value
        return self.type.value

    def get_field(self, name: str) -> Optional["Field"]:
        for field in self.fields or ():
            if field.name == name:
                return field
        return None

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields or ()]

    # --- Serialization ---

    def to_dict(self) -> Any:
        """Serialize to the Avro-style JSON structure accepted by parse_json()."""
        if self.logical_type is not None:
            out: Dict[str, Any] = {"type": self.type.value, "logicalType": self.logical_type.value}
            if self.logical_type == LogicalType.DECIMAL:
                out["precision"] = self.precision
                out["scale"] = self.scale
            return out
        if self.type == SchemaType.UNION:
            return [m.to_dict() for m in self.members]
        if self.type == SchemaType.RECORD:
            return {
                "type": "record",
                "name": self.name,
                "fields": [{"name": f.name, "type": f.field_schema.to_dict()} for f in self.fields],
            }
        if self.type == SchemaType.ARRAY:
            return {"type": "array", "items": self.component.to_dict()}
        if self.type == SchemaType.MAP:
            return {"type": "map", "keys": "string", "values": self.values.to_dict()}
        if self.type == SchemaType.ENUM:
            return {"type": "enum", "symbols": list(self.symbols or ())}
        return self.type.value

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)


class Field(BaseModel):
    """A named member of a record schema."""
    model_config = ConfigDict(frozen=True)

    name: str
    field_schema: Schema

    @classmethod
    def of(cls, name: str, schema: Schema) -> "Field":
        return cls(name=name, field_schema=schema)

    @property
    def nullable(self) -> bool:
        return self.field_schema.is_nullable


Schema.model_rebuild()
Field.model_rebuild()


def parse_json(text: str) -> Schema:
    """
    Parse a user supplied record schema declaration.

    Raises:
        SchemaParseError: if the text is not JSON or does not describe a schema
    """
    try:
        obj = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise SchemaParseError(f"Invalid schema: {e}") from e
    try:
        return _from_json(obj)
    except (ValueError, ValidationError) as e:
        raise SchemaParseError(f"Invalid schema: {e}") from e


def _from_json(obj: Any) -> Schema:
    if isinstance(obj, str):
        try:
            schema_type = SchemaType(obj)
        except ValueError:
            raise ValueError(f"Unknown type '{obj}'") from None
        return Schema.of(schema_type)

    if isinstance(obj, list):
        return Schema.union_of(_from_json(member) for member in obj)

    if not isinstance(obj, dict) or "type" not in obj:
        raise ValueError(f"Cannot interpret {obj!r} as a schema")

    type_value = obj["type"]
    logical = obj.get("logicalType")
    if logical is not None:
        try:
            logical_type = LogicalType(logical)
        except ValueError:
            raise ValueError(f"Unknown logical type '{logical}'") from None
        carrier = LOGICAL_PRIMITIVES[logical_type]
        if type_value != carrier.value:
            raise ValueError(f"Logical type '{logical}' must be carried by '{carrier.value}', not {type_value!r}")
        if logical_type == LogicalType.DECIMAL:
            return Schema.decimal_of(obj.get("precision"), obj.get("scale", 0))
        return Schema.of(logical_type)

    if type_value == "record":
        raw_fields = obj.get("fields") or []
        if not isinstance(raw_fields, list):
            raise ValueError(f"Record 'fields' must be a list, got {raw_fields!r}")
        fields = []
        for field in raw_fields:
            if not isinstance(field, dict) or "name" not in field or "type" not in field:
                raise ValueError(f"Record field {field!r} must have a 'name' and a 'type'")
            fields.append(Field.of(field["name"], _from_json(field["type"])))
        return Schema.record_of(obj.get("name", "record"), fields)
    if type_value == "array":
        if "items" not in obj:
            raise ValueError("Array schema requires 'items'")
        return Schema.array_of(_from_json(obj["items"]))
    if type_value == "map":
        if "values" not in obj:
            raise ValueError("Map schema requires 'values'")
        return Schema.map_of(_from_json(obj["values"]))
    if type_value == "enum":
        symbols = obj.get("symbols", [])
        if not isinstance(symbols, list):
            raise ValueError(f"Enum 'symbols' must be a list, got {symbols!r}")
        return Schema.enum_with(*symbols)

    # {"type": "string"} and {"type": {...}} forms
    return _from_json(type_value)

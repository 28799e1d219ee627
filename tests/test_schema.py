# tests/test_schema.py

import json
import pytest
from pydantic import ValidationError

from schemabridge.errors import SchemaParseError
from schemabridge.schema import Field, LogicalType, Schema, SchemaType, parse_json


def test_nullable_of_is_idempotent():
    """Test that wrapping an already nullable schema returns it unchanged."""
    nullable = Schema.nullable_of(Schema.of(SchemaType.STRING))
    assert Schema.nullable_of(nullable) == nullable
    assert nullable.is_nullable
    assert nullable.non_nullable() == Schema.of(SchemaType.STRING)


def test_union_flattens_and_dedupes_in_first_seen_order():
    s, l, n = Schema.of(SchemaType.STRING), Schema.of(SchemaType.LONG), Schema.of(SchemaType.NULL)
    union = Schema.union_of([s, Schema.union_of([l, s]), n, l])
    assert union.members == (s, l, n)
    assert not union.is_nullable


def test_record_rejects_duplicate_field_names():
    with pytest.raises(ValidationError, match="duplicate"):
        Schema.record_of("r", [
            Field.of("a", Schema.of(SchemaType.INT)),
            Field.of("a", Schema.of(SchemaType.STRING)),
        ])


def test_decimal_scale_cannot_exceed_precision():
    with pytest.raises(ValidationError):
        Schema.decimal_of(5, 6)


def test_schema_of_rejects_complex_types():
    with pytest.raises(ValueError):
        Schema.of(SchemaType.RECORD)
    with pytest.raises(ValueError):
        Schema.of(LogicalType.DECIMAL)


def test_logical_schema_uses_carrier_type():
    assert Schema.of(LogicalType.DATE).type == SchemaType.INT
    assert Schema.of(LogicalType.TIMESTAMP_MICROS).type == SchemaType.LONG
    assert Schema.decimal_of(10, 2).type == SchemaType.BYTES
    assert Schema.of(LogicalType.TIME_MILLIS).display_name == "time-millis"


def test_parse_json_record():
    """Test that an Avro-style record declaration is parsed."""
    text = json.dumps({
        "type": "record",
        "name": "user",
        "fields": [
            {"name": "id", "type": "long"},
            {"name": "name", "type": ["string", "null"]},
            {"name": "born", "type": {"type": "int", "logicalType": "date"}},
            {"name": "price", "type": {"type": "bytes", "logicalType": "decimal", "precision": 10, "scale": 2}},
            {"name": "tags", "type": {"type": "array", "items": "string"}},
            {"name": "attrs", "type": {"type": "map", "keys": "string", "values": "long"}},
        ],
    })
    schema = parse_json(text)

    assert schema.type == SchemaType.RECORD
    assert schema.name == "user"
    assert schema.field_names == ["id", "name", "born", "price", "tags", "attrs"]
    assert not schema.get_field("id").nullable
    assert schema.get_field("name").nullable
    assert schema.get_field("born").field_schema.logical_type == LogicalType.DATE
    price = schema.get_field("price").field_schema
    assert (price.precision, price.scale) == (10, 2)
    assert schema.get_field("tags").field_schema.component == Schema.of(SchemaType.STRING)
    assert schema.get_field("attrs").field_schema.values == Schema.of(SchemaType.LONG)


def test_to_json_parses_back_to_equal_schema(user_schema):
    assert parse_json(user_schema.to_json()) == user_schema


@pytest.mark.parametrize("text", [
    "{not json",
    '"varchar"',
    '{"type": "record", "fields": [{"name": "a"}]}',
    '{"type": "int", "logicalType": "interval"}',
    '{"fields": []}',
])
def test_parse_json_invalid_raises(text):
    with pytest.raises(SchemaParseError, match="Invalid schema"):
        parse_json(text)


def test_get_field_missing_returns_none(user_schema):
    assert user_schema.get_field("missing") is None


@pytest.mark.parametrize("text, reason", [
    ('{"type": "map"}', "requires 'values'"),
    ('{"type": "array"}', "requires 'items'"),
    ('{"type": "record", "fields": [{"name": "a", "type": {"type": "array"}}]}', "requires 'items'"),
    ('{"type": "record", "fields": 5}', "must be a list"),
    ('{"type": "enum", "symbols": "A"}', "must be a list"),
    ('{"type": "string", "logicalType": "date"}', "must be carried by 'int'"),
    ('{"type": "long", "logicalType": "decimal", "precision": 10}', "must be carried by 'bytes'"),
])
def test_parse_json_malformed_declarations_raise_parse_error(text, reason):
    """Test that structurally broken declarations surface as SchemaParseError, not KeyError or TypeError."""
    with pytest.raises(SchemaParseError, match=reason):
        parse_json(text)

# tests/test_column_mapping.py

import pytest

from schemabridge.column_mapping import (
    ColumnMappingResolver,
    parse_column,
    parse_key_value_config,
)
from schemabridge.failures import FailureCollector
from schemabridge.schema import Field, Schema, SchemaType


@pytest.fixture
def abc_schema():
    """Record {a, b, c, id} where id is the row key."""
    return Schema.record_of("row", [
        Field.of(name, Schema.nullable_of(Schema.of(SchemaType.STRING)))
        for name in ("id", "a", "b", "c")
    ])


@pytest.fixture
def resolver():
    return ColumnMappingResolver()


def test_unmapped_field_is_reported(resolver, abc_schema):
    """Test that a schema field with no column mapping fails, naming the field."""
    collector = FailureCollector()
    entries = resolver.resolve("cf:a=a,cf:b=b", abc_schema, "id", collector)

    assert [e.target_field for e in entries] == ["a", "b"]
    assert collector.failure_count() == 1
    failure = collector.failures[0]
    assert failure.message == "Some schema fields do not have corresponding column mappings: c."
    assert failure.config_properties == ["columnMappings"]


def test_full_mapping_passes(resolver, abc_schema):
    collector = FailureCollector()
    entries = resolver.resolve("cf:a=a,cf:b=b,cf:c=c", abc_schema, "id", collector)

    assert not collector.has_failures()
    assert entries[2].column_family == "cf"
    assert entries[2].qualifier == "c"
    assert entries[2].column_name == "cf:c"


def test_key_field_without_key_alias_must_be_mapped(resolver, abc_schema):
    collector = FailureCollector()
    resolver.resolve("cf:a=a,cf:b=b,cf:c=c", abc_schema, None, collector)
    assert "id" in collector.failures[0].message


def test_unmapped_store_columns_are_allowed(resolver):
    schema = Schema.record_of("row", [Field.of("a", Schema.of(SchemaType.STRING))])
    collector = FailureCollector()
    resolver.resolve("cf:a=a", schema, None, collector)
    assert not collector.has_failures()


def test_qualifier_may_contain_separator(resolver):
    assert parse_column("cf:x:y") == ("cf", "x:y")


@pytest.mark.parametrize("mapping, reason", [
    ("a=a", "must be formatted"),
    (":a=a", "family is empty"),
    ("cf:=a", "qualifier is empty"),
])
def test_invalid_column_names(resolver, mapping, reason):
    collector = FailureCollector()
    schema = Schema.record_of("row", [Field.of("a", Schema.of(SchemaType.STRING))])
    resolver.resolve(mapping, schema, None, collector)

    messages = [f.message for f in collector.failures]
    assert any(m.startswith("Invalid column in mapping") and reason in m for m in messages)


def test_malformed_mapping_string(resolver, abc_schema):
    collector = FailureCollector()
    entries = resolver.resolve("cf:a=a,cf:b", abc_schema, "id", collector)
    assert entries == []
    assert collector.failure_count() == 1
    assert collector.failures[0].message.startswith("Invalid column mappings")


def test_empty_mapping_fails(resolver, abc_schema):
    collector = FailureCollector()
    resolver.resolve("", abc_schema, "id", collector)
    assert collector.failures[0].message == "Column mappings must be specified."


def test_field_mapped_twice_fails(resolver):
    schema = Schema.record_of("row", [Field.of("a", Schema.of(SchemaType.STRING))])
    collector = FailureCollector()
    resolver.resolve("cf:a=a,cf:b=a", schema, None, collector)
    assert collector.failure_count() == 1
    assert collector.failures[0].field_paths == ["a"]


def test_custom_separators():
    resolver = ColumnMappingResolver(pair_separator=";", key_value_separator="->")
    schema = Schema.record_of("row", [Field.of("a", Schema.of(SchemaType.STRING))])
    collector = FailureCollector()
    entries = resolver.resolve("cf:a->a;", schema, None, collector)
    assert not collector.has_failures()
    assert entries[0].column_name == "cf:a"


def test_parse_key_value_config_trims_and_skips_blanks():
    assert parse_key_value_config(" a = 1 ,, b=2 ") == {"a": "1", "b": "2"}
    assert parse_key_value_config(None) == {}
    with pytest.raises(ValueError):
        parse_key_value_config("a=")

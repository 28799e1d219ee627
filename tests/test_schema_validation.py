# tests/test_schema_validation.py

import pytest

from schemabridge.errors import ValidationException
from schemabridge.failures import FailureCollector
from schemabridge.schema import Field, LogicalType, Schema, SchemaType
from schemabridge.schema_validator import SchemaValidator, columns_minus_schema, schema_minus_columns
from schemabridge.type_mapping import BIGTABLE, ColumnMode, ExternalColumn, NativeType


@pytest.fixture
def user_table():
    return [
        ExternalColumn(name="id", native_type=NativeType.INTEGER, mode=ColumnMode.REQUIRED),
        ExternalColumn(name="name", native_type=NativeType.STRING),
        ExternalColumn(name="note", native_type=NativeType.STRING),
    ]


@pytest.fixture
def validator():
    return SchemaValidator()


def _record(*fields):
    return Schema.record_of("record", list(fields))


def test_matching_schema_has_no_failures(validator, user_schema, user_table):
    collector = validator.validate(user_schema, user_table, "ds", "users")
    assert not collector.has_failures()
    assert collector.get_or_raise() is collector


def test_extra_field_is_exactly_one_failure(validator, user_schema, user_table):
    """Test that a schema field with no column yields a single failure naming it."""
    schema = _record(*user_schema.fields, Field.of("age", Schema.of(SchemaType.LONG)))
    collector = validator.validate(schema, user_table, "ds", "users")

    assert collector.failure_count() == 1
    failure = collector.failures[0]
    assert "'age'" in failure.message
    assert "'ds.users'" in failure.message
    assert failure.config_properties == ["schema"]
    assert failure.field_paths == ["age"]


def test_several_extra_fields_are_one_failure(validator, user_table):
    schema = _record(
        Field.of("id", Schema.of(SchemaType.LONG)),
        Field.of("a", Schema.of(SchemaType.STRING)),
        Field.of("b", Schema.of(SchemaType.STRING)),
    )
    collector = validator.validate(schema, user_table)
    assert collector.failure_count() == 1
    assert "'a', 'b'" in collector.failures[0].message


def test_missing_nullable_column_is_allowed(validator, user_table):
    schema = _record(Field.of("id", Schema.of(SchemaType.LONG)))
    assert not validator.validate(schema, user_table).has_failures()


def test_missing_required_column_fails(validator, user_table):
    schema = _record(Field.of("name", Schema.nullable_of(Schema.of(SchemaType.STRING))))
    collector = validator.validate(schema, user_table)
    assert collector.failure_count() == 1
    assert "requires column 'id'" in collector.failures[0].message


def test_incompatible_type_fails(validator, user_table):
    schema = _record(
        Field.of("id", Schema.of(SchemaType.STRING)),
        Field.of("name", Schema.of(SchemaType.STRING)),
    )
    collector = validator.validate(schema, user_table, "ds", "users")
    assert collector.failure_count() == 1
    failure = collector.failures[0]
    assert "Field 'id' of type 'string' is incompatible with column 'id' of type 'long'" in failure.message
    assert failure.corrective_action == "It must be of type 'long'."


def test_string_field_accepts_datetime_column(validator):
    columns = [ExternalColumn(name="at", native_type=NativeType.DATETIME)]
    schema = _record(Field.of("at", Schema.of(SchemaType.STRING)))
    assert not validator.validate(schema, columns).has_failures()


@pytest.mark.parametrize("precision, scale, ok", [
    (38, 9, True),
    (39, 2, False),
    (20, 10, False),
])
def test_decimal_precision_and_scale_limits(validator, precision, scale, ok):
    columns = [ExternalColumn(name="price", native_type=NativeType.NUMERIC)]
    schema = _record(Field.of("price", Schema.decimal_of(precision, scale)))
    collector = validator.validate(schema, columns)
    assert collector.has_failures() is not ok
    if not ok:
        assert "invalid precision" in collector.failures[0].message


def test_logical_type_mismatch_fails(validator):
    columns = [ExternalColumn(name="born", native_type=NativeType.TIMESTAMP)]
    schema = _record(Field.of("born", Schema.of(LogicalType.DATE)))
    collector = validator.validate(schema, columns)
    assert collector.failure_count() == 1
    assert "has incompatible type with column 'born'" in collector.failures[0].message
    assert "'timestamp'" in collector.failures[0].corrective_action


def test_unsupported_type_lists_supported_types(validator):
    columns = [ExternalColumn(name="attrs", native_type=NativeType.STRING)]
    schema = _record(Field.of("attrs", Schema.map_of(Schema.of(SchemaType.STRING))))
    failure = validator.validate(schema, columns).failures[0]
    assert failure.message == "Field 'attrs' is of unsupported type 'map'."
    assert failure.corrective_action.endswith("date, time, timestamp and decimal.")


def test_repeated_column_accepts_array(validator):
    columns = [ExternalColumn(name="tags", native_type=NativeType.STRING, mode=ColumnMode.REPEATED)]
    schema = _record(Field.of("tags", Schema.array_of(Schema.of(SchemaType.STRING))))
    assert not validator.validate(schema, columns).has_failures()


def test_array_field_needs_repeated_column(validator):
    columns = [ExternalColumn(name="tags", native_type=NativeType.STRING)]
    schema = _record(Field.of("tags", Schema.array_of(Schema.of(SchemaType.STRING))))
    collector = validator.validate(schema, columns)
    assert collector.failure_count() == 1
    assert "which is not repeated" in collector.failures[0].message


@pytest.mark.parametrize("array_schema, expected", [
    (Schema.nullable_of(Schema.array_of(Schema.of(SchemaType.STRING))), "is of type array"),
    (Schema.array_of(Schema.nullable_of(Schema.of(SchemaType.STRING))), "contains null values in its array"),
    (Schema.array_of(Schema.array_of(Schema.of(SchemaType.STRING))), "is an array of unsupported type 'array'"),
    (Schema.array_of(Schema.map_of(Schema.of(SchemaType.STRING))), "is an array of unsupported type 'map'"),
])
def test_array_rules(validator, array_schema, expected):
    columns = [ExternalColumn(name="tags", native_type=NativeType.STRING, mode=ColumnMode.REPEATED)]
    collector = validator.validate(_record(Field.of("tags", array_schema)), columns)
    assert collector.failure_count() == 1
    assert expected in collector.failures[0].message


def test_array_rules_stop_at_first_breach():
    """Test that a nullable array of nullable elements reports only the outer problem."""
    collector = FailureCollector()
    schema = Schema.nullable_of(Schema.array_of(Schema.nullable_of(Schema.of(SchemaType.LONG))))
    failure = SchemaValidator.validate_array_schema(schema, "xs", collector)
    assert failure is collector.failures[0]
    assert collector.failure_count() == 1
    assert failure.field_paths == ["xs"]


def test_get_or_raise_reports_all_failures(validator, user_table):
    schema = _record(
        Field.of("id", Schema.of(SchemaType.BOOLEAN)),
        Field.of("name", Schema.of(SchemaType.LONG)),
        Field.of("extra", Schema.of(SchemaType.STRING)),
    )
    collector = validator.validate(schema, user_table)
    with pytest.raises(ValidationException) as exc_info:
        collector.get_or_raise()
    assert len(exc_info.value.failures) == 3
    assert "Errors were encountered during validation (3)" in str(exc_info.value)


def test_validate_supported_types_for_bigtable():
    validator = SchemaValidator(BIGTABLE)
    schema = _record(
        Field.of("a", Schema.of(SchemaType.STRING)),
        Field.of("b", Schema.of(LogicalType.DATE)),
        Field.of("c", Schema.array_of(Schema.of(SchemaType.STRING))),
    )
    collector = validator.validate_supported_types(schema, FailureCollector())
    assert [f.field_paths for f in collector.failures] == [["b"], ["c"]]
    assert all(f.config_properties == ["schema"] for f in collector.failures)
    assert "date, time" not in collector.failures[0].corrective_action


def test_set_differences_keep_order(user_schema, user_table):
    fields = list(user_schema.fields) + [Field.of("z", Schema.of(SchemaType.STRING))]
    assert schema_minus_columns(fields, user_table) == ["z"]
    assert columns_minus_schema(user_table, fields[:1]) == ["name", "note"]


@pytest.mark.parametrize("component, ok", [
    (Schema.decimal_of(39, 2), False),
    (Schema.decimal_of(20, 10), False),
    (Schema.decimal_of(38, 9), True),
])
def test_decimal_limits_apply_to_array_components(validator, component, ok):
    """Test that an array of decimals is held to the same NUMERIC limits as a single decimal."""
    columns = [ExternalColumn(name="prices", native_type=NativeType.NUMERIC, mode=ColumnMode.REPEATED)]
    collector = validator.validate(_record(Field.of("prices", Schema.array_of(component))), columns)

    assert collector.has_failures() is not ok
    if not ok:
        assert collector.failure_count() == 1
        assert "Decimal Field 'prices' has invalid precision" in collector.failures[0].message


def test_logical_array_component_must_match_column(validator):
    columns = [ExternalColumn(name="days", native_type=NativeType.TIMESTAMP, mode=ColumnMode.REPEATED)]
    collector = validator.validate(_record(Field.of("days", Schema.array_of(Schema.of(LogicalType.DATE)))), columns)
    assert collector.failure_count() == 1
    assert "has incompatible type with column 'days'" in collector.failures[0].message


def test_logical_array_component_matching_column_passes(validator):
    columns = [ExternalColumn(name="days", native_type=NativeType.DATE, mode=ColumnMode.REPEATED)]
    collector = validator.validate(_record(Field.of("days", Schema.array_of(Schema.of(LogicalType.DATE)))), columns)
    assert not collector.has_failures()

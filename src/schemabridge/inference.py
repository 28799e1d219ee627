# src/schemabridge/inference.py

import logging
from collections.abc import Mapping
from typing import Any, List, Optional

from .schema import Field, Schema, SchemaType
from .type_mapping import simple_schema_for

logger = logging.getLogger(__name__)

DEFAULT_KEY_FIELD = "__key__"
ROOT_RECORD_NAME = "schema"


class SchemaInferenceEngine:
    """
    Derives a generic record schema from one sample of schemaless data.

    The sample is a mapping of names to values (a Datastore entity is a dict,
    so entities can be passed directly). Inference is best-effort: values of
    kinds with no generic counterpart are dropped from the schema rather than
    reported. Every inferred field is nullable, except NULL-typed ones, since
    later samples may omit or null any property.
    """

    def infer(
        self,
        sample: Mapping,
        include_key: bool = False,
        key_field_name: str = DEFAULT_KEY_FIELD,
    ) -> Schema:
        """
        Infer a record schema from a single sample.

        Args:
            sample: named values, possibly nested or listed
            include_key: append a non-nullable string field for the record key
            key_field_name: name of the key field

        Returns:
            A record schema named 'schema'
        """
        fields = self._fields_of(sample)
        if include_key:
            fields.append(Field.of(key_field_name, Schema.of(SchemaType.STRING)))

        logger.debug(f"Inferred {len(fields)} field(s) from sample with {len(sample)} value(s)")
        return Schema.record_of(ROOT_RECORD_NAME, fields)

    def _fields_of(self, values: Mapping) -> List[Field]:
        fields = []
        for name, value in values.items():
            field = self._to_field(name, value)
            if field is not None:
                fields.append(field)
        return fields

    def _to_field(self, name: str, value: Any) -> Optional[Field]:
        schema = self._schema_of(name, value)
        if schema is None:
            return None
        if schema.type == SchemaType.NULL:
            return Field.of(name, schema)
        return Field.of(name, Schema.nullable_of(schema))

    def _schema_of(self, name: str, value: Any) -> Optional[Schema]:
        schema = simple_schema_for(value)
        if schema is not None:
            return schema

        if isinstance(value, Mapping):
            return Schema.record_of(name, self._fields_of(value))

        if isinstance(value, (list, tuple)):
            return self._array_schema_of(name, value)

        logger.debug(f"Field '{name}' is of unsupported type '{type(value).__name__}', skipping field from the schema")
        return None

    def _array_schema_of(self, name: str, values) -> Optional[Schema]:
        element_schemas: List[Schema] = []
        for value in values:
            schema = self._schema_of(name, value)
            if schema is None:
                return None
            if schema not in element_schemas:
                element_schemas.append(schema)

        if not element_schemas:
            return Schema.array_of(Schema.of(SchemaType.NULL))

        if len(element_schemas) == 1:
            component = element_schemas[0]
            if component.type == SchemaType.NULL:
                return Schema.array_of(component)
            return Schema.array_of(Schema.nullable_of(component))

        logger.debug(
            f"Field '{name}' has several schemas in array, add them as union of schemas "
            f"plus {SchemaType.NULL.value} schema for null values"
        )
        return Schema.array_of(Schema.union_of(element_schemas + [Schema.of(SchemaType.NULL)]))


def infer_schema(sample: Mapping, include_key: bool = False, key_field_name: str = DEFAULT_KEY_FIELD) -> Schema:
    """Module-level shortcut for SchemaInferenceEngine().infer()."""
    return SchemaInferenceEngine().infer(sample, include_key=include_key, key_field_name=key_field_name)

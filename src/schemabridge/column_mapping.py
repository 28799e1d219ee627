# src/schemabridge/column_mapping.py

import logging
from typing import Dict, List, Optional, Set
from pydantic import BaseModel, ConfigDict

from .failures import FailureCollector
from .schema import Schema

logger = logging.getLogger(__name__)

COLUMN_MAPPINGS_PROPERTY = "columnMappings"
FAMILY_SEPARATOR = ":"


class ColumnMappingEntry(BaseModel):
    """One 'family:qualifier=field' association of a wide-column store."""
    model_config = ConfigDict(frozen=True)

    column_family: str
    qualifier: str
    target_field: str

    @property
    def column_name(self) -> str:
        return f"{self.column_family}{FAMILY_SEPARATOR}{self.qualifier}"


def parse_key_value_config(
    text: Optional[str],
    pair_separator: str = ",",
    key_value_separator: str = "=",
) -> Dict[str, str]:
    """
    Parse 'k1=v1,k2=v2' into an ordered dict.

    Blank pairs are ignored and whitespace around keys and values is trimmed.

    Raises:
        ValueError: if a pair has no separator, or an empty key or value
    """
    result: Dict[str, str] = {}
    if not text:
        return result
    for pair in text.split(pair_separator):
        if not pair.strip():
            continue
        if key_value_separator not in pair:
            raise ValueError(f"Pair '{pair.strip()}' is missing the '{key_value_separator}' separator")
        key, value = pair.split(key_value_separator, 1)
        key, value = key.strip(), value.strip()
        if not key or not value:
            raise ValueError(f"Pair '{pair.strip()}' must have a non-empty key and value")
        result[key] = value
    return result


def parse_column(full_name: str):
    """
    Split 'family:qualifier' on the first separator.

    Raises:
        ValueError: if the separator is missing or either part is empty
    """
    if FAMILY_SEPARATOR not in full_name:
        raise ValueError(f"Column name must be formatted as <family>{FAMILY_SEPARATOR}<qualifier>")
    family, qualifier = full_name.split(FAMILY_SEPARATOR, 1)
    if not family:
        raise ValueError("Column family is empty")
    if not qualifier:
        raise ValueError("Column qualifier is empty")
    return family, qualifier


class ColumnMappingResolver:
    """Resolves a flat column mapping string against a record schema."""

    def __init__(self, pair_separator: str = ",", key_value_separator: str = "="):
        self.pair_separator = pair_separator
        self.key_value_separator = key_value_separator

    def resolve(
        self,
        mappings: Optional[str],
        schema: Optional[Schema],
        key_field: Optional[str],
        collector: FailureCollector,
    ) -> List[ColumnMappingEntry]:
        """
        Parse the mapping and check it covers every non-key schema field exactly once.

        Unmapped store columns are allowed. Problems are added to the collector;
        the entries that could be parsed are returned either way.
        """
        try:
            raw = parse_key_value_config(mappings, self.pair_separator, self.key_value_separator)
        except ValueError as e:
            collector.add_failure(
                f"Invalid column mappings: {e}.",
                f"Use the format '<family>:<qualifier>{self.key_value_separator}<field>' "
                f"separated by '{self.pair_separator}'.",
            ).with_config_property(COLUMN_MAPPINGS_PROPERTY)
            return []

        if not raw:
            collector.add_failure(
                "Column mappings must be specified.",
                "Map every schema field to a '<family>:<qualifier>' column.",
            ).with_config_property(COLUMN_MAPPINGS_PROPERTY)
            return []

        entries: List[ColumnMappingEntry] = []
        mapped_to: Dict[str, List[str]] = {}
        for column_name, field_name in raw.items():
            try:
                family, qualifier = parse_column(column_name)
            except ValueError as e:
                collector.add_failure(
                    f"Invalid column in mapping '{column_name}'. Reason: {e}.",
                    f"Column names must be formatted as <family>{FAMILY_SEPARATOR}<qualifier>.",
                ).with_config_property(COLUMN_MAPPINGS_PROPERTY)
                continue
            entries.append(ColumnMappingEntry(column_family=family, qualifier=qualifier, target_field=field_name))
            mapped_to.setdefault(field_name, []).append(column_name)

        for field_name, columns in mapped_to.items():
            if len(columns) > 1:
                collector.add_failure(
                    f"Field '{field_name}' is mapped from more than one column: {', '.join(columns)}.",
                    "Map each schema field from exactly one column.",
                ).with_config_property(COLUMN_MAPPINGS_PROPERTY).with_input_schema_field(field_name)

        if schema is not None:
            unmapped = self.unmapped_fields(schema, key_field, set(mapped_to))
            if unmapped:
                collector.add_failure(
                    f"Some schema fields do not have corresponding column mappings: {', '.join(unmapped)}.",
                    "Add a column mapping for each of these fields.",
                ).with_config_property(COLUMN_MAPPINGS_PROPERTY)

        logger.debug(f"Resolved {len(entries)} column mapping(s)")
        return entries

    @staticmethod
    def unmapped_fields(schema: Schema, key_field: Optional[str], mapped: Set[str]) -> List[str]:
        """Schema fields, minus the key field, with no mapping; in schema order."""
        return [name for name in schema.field_names if name != key_field and name not in mapped]

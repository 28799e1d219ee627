# src/schemabridge/connectors/datastore.py

import logging
from typing import Any, Dict, List, Optional
from google.api_core.exceptions import GoogleAPICallError
from google.cloud import datastore

from ..config import DatastoreSourceConfig, parse_schema_property
from ..errors import ConnectionError
from ..failures import FailureCollector
from ..inference import SchemaInferenceEngine
from ..schema import Schema

logger = logging.getLogger(__name__)

NAME_NAMESPACE = "namespace"
NAME_KIND = "kind"
NAME_ANCESTOR = "ancestor"


def build_ancestor_key(
    client: datastore.Client,
    ancestor: List[Dict[str, Any]],
    namespace: Optional[str],
    collector: FailureCollector,
) -> Optional[datastore.Key]:
    """Build the ancestor key from root-to-parent path elements, or None if there is no ancestor."""
    if not ancestor:
        return None
    flat_path = []
    for element in ancestor:
        kind = element.get("kind")
        has_name, has_id = "name" in element, "id" in element
        if not kind or has_name == has_id:
            collector.add_failure(
                f"Invalid ancestor path element {element!r}.",
                "Each element needs a 'kind' and exactly one of 'name' or 'id'.",
            ).with_config_property(NAME_ANCESTOR)
            return None
        flat_path.extend([kind, element["name"] if has_name else int(element["id"])])
    return client.key(*flat_path, namespace=namespace)


def fetch_sample(
    client: datastore.Client,
    kind: str,
    namespace: Optional[str] = None,
    ancestor: Optional[datastore.Key] = None,
) -> Optional[datastore.Entity]:
    """Return the first entity of a kind, or None if the query has no results."""
    query = client.query(kind=kind, namespace=namespace, ancestor=ancestor)
    logger.debug(f"Executing query for sample entity: kind={kind}, namespace={namespace}, ancestor={ancestor}")
    try:
        results = list(query.fetch(limit=1))
    except GoogleAPICallError as e:
        raise ConnectionError(f"Cloud Datastore query for kind '{kind}' failed: {e}") from e
    return results[0] if results else None


class DatastoreSchemaResolver:
    """Determines the output schema of a Datastore source: declared if given, otherwise inferred."""

    def __init__(self, engine: Optional[SchemaInferenceEngine] = None):
        self.engine = engine or SchemaInferenceEngine()

    def resolve(
        self,
        config: DatastoreSourceConfig,
        client: Optional[datastore.Client],
        collector: Optional[FailureCollector] = None,
    ) -> Schema:
        """
        Raises:
            ValidationException: if the configuration is invalid or no sample entity exists
            ConnectionError: if the sample query fails
        """
        collector = collector if collector is not None else FailureCollector(config.name)
        config.validate_common(collector)
        if not config.kind:
            collector.add_failure("Kind must be specified.", None).with_config_property(NAME_KIND)

        configured = parse_schema_property(config.declared_schema, collector)
        collector.get_or_raise()
        if configured is not None:
            return configured

        if client is None:
            collector.add_failure(
                "Schema must be specified when the source cannot connect to Cloud Datastore.",
                "Provide a schema or connection settings.",
            ).with_config_property("schema")
            collector.get_or_raise()

        ancestor = build_ancestor_key(client, config.ancestor, config.namespace, collector)
        collector.get_or_raise()

        entity = fetch_sample(client, config.kind, config.namespace, ancestor)
        if entity is None:
            collector.add_failure(
                "Cloud Datastore query did not return any results.",
                "Ensure Namespace, Kind and Ancestor properties are correct.",
            ).with_config_property(NAME_NAMESPACE).with_config_property(NAME_KIND) \
                .with_config_property(NAME_ANCESTOR)
            collector.get_or_raise()

        return self.engine.infer(entity, include_key=config.include_key, key_field_name=config.key_alias)

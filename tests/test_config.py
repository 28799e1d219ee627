# tests/test_config.py
import pytest
from pydantic import ValidationError

from schemabridge.config import (
    BridgeConfig,
    DatastoreSourceConfig,
    GCPConfig,
    load_config,
    parse_schema_property,
)
from schemabridge.failures import FailureCollector


def test_load_valid_config(tmp_path):
    """Test that a valid plugins.yml file is parsed into typed stage configs."""
    config_content = """
    bigquery_sinks:
      - name: users_sink
        project: my-project
        dataset: analytics
        table: users
    datastore_sources:
      - name: books
        kind: Book
        key_type: Key Literal
    speech_transforms:
      - name: transcribe
        audio_field: audio
        sample_rate: 16000
    """
    config_file = tmp_path / "plugins.yml"
    config_file.write_text(config_content)

    config = load_config(config_file)

    assert isinstance(config, BridgeConfig)
    assert config.bigquery_sinks[0].table == "users"
    assert config.bigquery_sinks[0].get_project() == "my-project"
    assert config.datastore_sources[0].key_type == "key literal"
    assert config.datastore_sources[0].include_key
    assert config.speech_transforms[0].sample_rate == 16000
    assert config.bigtable_sources == []


def test_empty_config_file(tmp_path):
    config_file = tmp_path / "plugins.yml"
    config_file.write_text("")
    assert load_config(config_file) == BridgeConfig()


def test_missing_required_field_raises(tmp_path):
    config_file = tmp_path / "plugins.yml"
    config_file.write_text("""
    bigquery_sinks:
      - name: users_sink
        dataset: analytics
    """)
    with pytest.raises(ValidationError):
        load_config(config_file)


def test_invalid_key_type_raises():
    with pytest.raises(ValidationError, match="key_type"):
        DatastoreSourceConfig(name="books", kind="Book", key_type="uuid")


def test_project_auto_detected_from_environment(monkeypatch):
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "env-project")
    assert GCPConfig(name="x").get_project() == "env-project"


def test_undetectable_project_is_a_failure(monkeypatch):
    monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
    monkeypatch.delenv("GCLOUD_PROJECT", raising=False)
    monkeypatch.setattr("schemabridge.config.load_dotenv", lambda: None)
    config = GCPConfig(name="x")

    collector = FailureCollector()
    config.validate_common(collector)

    assert collector.failures[0].config_properties == ["project"]
    with pytest.raises(ValueError):
        config.get_project()


def test_missing_service_account_file_is_a_failure(tmp_path):
    config = GCPConfig(name="x", project="p", service_file_path=str(tmp_path / "missing.json"))
    collector = FailureCollector()
    config.validate_common(collector)
    assert collector.failures[0].config_properties == ["serviceFilePath"]


def test_parse_schema_property_requires_record():
    collector = FailureCollector()
    assert parse_schema_property('"string"', collector) is None
    assert "must be a record" in collector.failures[0].message


def test_parse_schema_property_reports_bad_json():
    collector = FailureCollector()
    assert parse_schema_property("{oops", collector, "inputSchema") is None
    assert collector.failures[0].config_properties == ["inputSchema"]


def test_parse_schema_property_blank_is_none():
    collector = FailureCollector()
    assert parse_schema_property("", collector) is None
    assert not collector.has_failures()


def test_parse_schema_property_collects_malformed_array():
    collector = FailureCollector()
    assert parse_schema_property('{"type": "record", "fields": [{"name": "a", "type": {"type": "array"}}]}', collector) is None
    assert "requires 'items'" in collector.failures[0].message
    assert collector.failures[0].config_properties == ["schema"]

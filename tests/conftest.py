# tests/conftest.py
import pytest
from typer.testing import CliRunner
from schemabridge.cli import app  # Typer app
from schemabridge.schema import Field, Schema, SchemaType


@pytest.fixture
def cli_runner():
    """Provide a reusable CLI test runner for Schema Bridge."""
    return CliRunner()


@pytest.fixture
def user_schema():
    """Record schema {id: long, name: string?, note: string?}."""
    return Schema.record_of("user", [
        Field.of("id", Schema.of(SchemaType.LONG)),
        Field.of("name", Schema.nullable_of(Schema.of(SchemaType.STRING))),
        Field.of("note", Schema.nullable_of(Schema.of(SchemaType.STRING))),
    ])

# src/schemabridge/errors.py

import logging

logger = logging.getLogger(__name__)


class ConnectionError(Exception):
    """Raised when a store cannot be reached or credentials cannot be loaded."""
    pass


class SchemaParseError(Exception):
    """Raised when a user supplied schema declaration is not valid schema JSON."""
    def __init__(self, message, **kwargs):
        super().__init__(message)
        for key, value in kwargs.items():
            setattr(self, key, value)


class UnsupportedTypeError(Exception):
    """Raised when a generic type has no counterpart in a store's type system."""
    def __init__(self, message, type_name: str = None, store: str = None):
        super().__init__(message)
        self.type_name = type_name
        self.store = store


class ProvisioningError(Exception):
    """Raised when a dataset or bucket could not be read or created."""
    def __init__(self, message, resource: str = None):
        super().__init__(message)
        self.resource = resource


class ValidationException(Exception):
    """Raised by a FailureCollector that holds one or more validation failures."""

    def __init__(self, failures):
        self.failures = list(failures)
        super().__init__(self._format(self.failures))

    @staticmethod
    def _format(failures) -> str:
        lines = [f"Errors were encountered during validation ({len(failures)}):"]
        for failure in failures:
            lines.append(f"  • {failure.full_message()}")
        return "\n".join(lines)

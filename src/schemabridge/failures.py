# src/schemabridge/failures.py

import logging
from typing import List, Optional
from pydantic import BaseModel

from .errors import ValidationException

logger = logging.getLogger(__name__)


class FailureCause(BaseModel):
    """Points a failure at the configuration property or schema field that caused it."""
    config_property: Optional[str] = None
    field_path: Optional[str] = None


class ValidationFailure(BaseModel):
    """A single non-fatal validation diagnostic."""
    message: str
    corrective_action: Optional[str] = None
    causes: List[FailureCause] = []

    def with_config_property(self, name: str) -> "ValidationFailure":
        self.causes.append(FailureCause(config_property=name))
        return self

    def with_input_schema_field(self, name: str) -> "ValidationFailure":
        self.causes.append(FailureCause(field_path=name))
        return self

    @property
    def config_properties(self) -> List[str]:
        return [c.config_property for c in self.causes if c.config_property]

    @property
    def field_paths(self) -> List[str]:
        return [c.field_path for c in self.causes if c.field_path]

    def full_message(self) -> str:
        """Return the message, corrective action and causes as one line."""
        text = self.message.strip()
        if self.corrective_action:
            text += f" {self.corrective_action.strip()}"
        context = []
        if self.config_properties:
            context.append(f"property: {', '.join(self.config_properties)}")
        if self.field_paths:
            context.append(f"field: {', '.join(self.field_paths)}")
        if context:
            text += f" ({'; '.join(context)})"
        return text


class FailureCollector:
    """
    Accumulates validation failures across a whole validation pass.

    Nothing is raised while failures are added; the caller converts the
    collector into a single ValidationException with get_or_raise() once every
    check has run, so the user sees all problems at once.
    """

    def __init__(self, stage_name: Optional[str] = None):
        self.stage_name = stage_name
        self.failures: List[ValidationFailure] = []

    def add_failure(self, message: str, corrective_action: Optional[str] = None) -> ValidationFailure:
        failure = ValidationFailure(message=message, corrective_action=corrective_action)
        self.failures.append(failure)
        logger.debug(f"Validation failure{self._stage_suffix()}: {message}")
        return failure

    def has_failures(self) -> bool:
        return bool(self.failures)

    def failure_count(self) -> int:
        return len(self.failures)

    def get_or_raise(self) -> "FailureCollector":
        """Raise a ValidationException if any failure was collected, else return self."""
        if self.failures:
            raise ValidationException(self.failures)
        return self

    def _stage_suffix(self) -> str:
        return f" [{self.stage_name}]" if self.stage_name else ""

    def __len__(self) -> int:
        return len(self.failures)

    def __iter__(self):
        return iter(self.failures)

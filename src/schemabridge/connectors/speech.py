# src/schemabridge/connectors/speech.py

import logging
from typing import List, Optional

from ..config import SpeechToTextConfig
from ..failures import FailureCollector
from ..schema import Field, Schema, SchemaType

logger = logging.getLogger(__name__)

NAME_AUDIO_FIELD = "audiofield"
NAME_ENCODING = "encoding"
NAME_RATE = "samplerate"
NAME_TRANS_PART = "transcriptionPartsField"
NAME_TRANS_TEXT = "transcriptionTextField"

MIN_SAMPLE_RATE = 8000
MAX_SAMPLE_RATE = 48000

AUDIO_ENCODINGS = ("linear16", "amr", "amr_wb", "flac", "mulaw", "ogg_opus")

SPEECH = Schema.record_of("speech", [
    Field.of("transcript", Schema.nullable_of(Schema.of(SchemaType.STRING))),
    Field.of("confidence", Schema.nullable_of(Schema.of(SchemaType.FLOAT))),
])


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value or None


def get_sample_rate(config: SpeechToTextConfig) -> Optional[int]:
    """
    Raises:
        ValueError: if the sample rate is not a number
    """
    if config.sample_rate is None or config.sample_rate == "":
        return None
    try:
        return int(config.sample_rate)
    except (TypeError, ValueError):
        raise ValueError("Sample rate should be a valid number") from None


def validate_speech_config(
    config: SpeechToTextConfig,
    input_schema: Optional[Schema],
    collector: FailureCollector,
) -> FailureCollector:
    """Validate a speech-to-text transform against the schema of the records it receives."""
    parts_field = _blank_to_none(config.transcription_parts_field)
    text_field = _blank_to_none(config.transcription_text_field)

    if parts_field is None and text_field is None:
        collector.add_failure(
            "'Transcript Parts Field' or 'Transcript Text Field' are not provided.",
            "Provide at least one of them.",
        ).with_config_property(NAME_TRANS_PART).with_config_property(NAME_TRANS_TEXT)

    if input_schema is not None:
        audio_field = config.audio_field
        field = input_schema.get_field(audio_field) if audio_field else None
        if field is None:
            collector.add_failure(
                f"Field '{audio_field}' does not exist in the input schema.",
                "Change audio field to be one of the schema fields.",
            ).with_config_property(NAME_AUDIO_FIELD)
        else:
            field_schema = field.field_schema.non_nullable()
            if field_schema.logical_type is not None or field_schema.type != SchemaType.BYTES:
                collector.add_failure(
                    f"Field '{audio_field}' is of unsupported type '{field_schema.display_name}'.",
                    "Ensure it is of type 'bytes'.",
                ).with_config_property(NAME_AUDIO_FIELD).with_input_schema_field(audio_field)

        existing = set(input_schema.field_names)
        if text_field is not None and text_field in existing:
            collector.add_failure(
                f"Transcript text field '{text_field}' already exists in the input schema.",
                "Change the field name.",
            ).with_config_property(NAME_TRANS_TEXT).with_input_schema_field(text_field)
        if parts_field is not None and parts_field in existing:
            collector.add_failure(
                f"Transcript parts field '{parts_field}' already exists in the input schema.",
                "Change the field name.",
            ).with_config_property(NAME_TRANS_PART).with_input_schema_field(parts_field)

    if config.encoding.lower() not in AUDIO_ENCODINGS:
        collector.add_failure(
            f"Audio encoding '{config.encoding}' is not supported.",
            f"Use one of: {', '.join(AUDIO_ENCODINGS)}.",
        ).with_config_property(NAME_ENCODING)

    try:
        sample_rate = get_sample_rate(config)
        if sample_rate is not None and not MIN_SAMPLE_RATE <= sample_rate <= MAX_SAMPLE_RATE:
            raise ValueError("Sample rate out of range")
    except ValueError:
        collector.add_failure(
            "Invalid sample rate.",
            f"Ensure the value is between {MIN_SAMPLE_RATE} and {MAX_SAMPLE_RATE}.",
        ).with_config_property(NAME_RATE)

    return collector


def output_schema(config: SpeechToTextConfig, input_schema: Optional[Schema]) -> Optional[Schema]:
    """
    The input fields followed by the transcript field(s).

    Raises:
        ValueError: if neither transcript field is configured
    """
    if input_schema is None:
        return None
    fields: List[Field] = list(input_schema.fields or ())
    parts_field = _blank_to_none(config.transcription_parts_field)
    text_field = _blank_to_none(config.transcription_text_field)
    if parts_field is None and text_field is None:
        raise ValueError("Either 'Transcript Parts Field' or 'Transcript Text Field' or both must be specified.")

    if parts_field is not None:
        fields.append(Field.of(parts_field, Schema.array_of(SPEECH)))
    if text_field is not None:
        fields.append(Field.of(text_field, Schema.nullable_of(Schema.of(SchemaType.STRING))))
    return Schema.record_of("record", fields)

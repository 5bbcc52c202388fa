"""
Requested output kinds and the service role each one maps to.
"""

from dataclasses import dataclass
from enum import StrEnum


class DescriptionField(StrEnum):
    alt_text = "alt_text"
    caption = "caption"
    description = "description"


@dataclass(frozen=True)
class FieldConfig:
    """
    Static settings attached to a field.

    Parameters
    ----------
    role : str
        Role string sent to the vision service.
    label : str
        Human-readable label used in messages.
    """

    role: str
    label: str


FIELD_CONFIGS: dict[DescriptionField, FieldConfig] = {
    DescriptionField.alt_text: FieldConfig(role="alttext", label="Alt Text"),
    DescriptionField.caption: FieldConfig(role="caption", label="Caption"),
    DescriptionField.description: FieldConfig(role="general", label="Description"),
}


def field_labels(fields: list[DescriptionField]) -> str:
    return ", ".join(FIELD_CONFIGS[field].label for field in fields)

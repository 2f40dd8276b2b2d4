"""Session record serialization with schema versioning.

Supports JSON and YAML round-trips.  Schema version is embedded in every
serialised document so that future readers can perform migrations.

Classes
-------
- RecordSerializer    — serialize/deserialize SessionRecord to JSON or YAML
- SchemaVersionError  — raised on an unsupported ``schema_version``
"""
from __future__ import annotations

import json
from typing import Literal

import yaml

from askshell.session.state import SessionRecord

_SUPPORTED_SCHEMA_VERSIONS: frozenset[str] = frozenset({"1.0"})

SerializationFormat = Literal["json", "yaml"]


class SchemaVersionError(ValueError):
    """Raised when a serialised document uses an unsupported schema version."""

    def __init__(self, version: str) -> None:
        self.version = version
        supported = ", ".join(sorted(_SUPPORTED_SCHEMA_VERSIONS))
        super().__init__(
            f"Unsupported schema version {version!r}. "
            f"Supported versions: {supported}"
        )


class RecordSerializer:
    """Serialize and deserialize ``SessionRecord`` objects.

    Timestamps are written as ISO-8601 strings and come back as aware
    ``datetime`` values, so a round trip compares equal field by field.
    """

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    def to_json(self, record: SessionRecord, *, indent: int = 2) -> str:
        data = record.model_dump(mode="json")
        return json.dumps(data, indent=indent)

    def from_json(self, raw: str) -> SessionRecord:
        """Deserialize a ``SessionRecord`` from a JSON string.

        Raises
        ------
        SchemaVersionError
            If the ``schema_version`` field is not in the supported set.
        pydantic.ValidationError
            If the document does not describe a valid record.
        json.JSONDecodeError
            If ``raw`` is not valid JSON.
        """
        return self._deserialize(json.loads(raw))

    # ------------------------------------------------------------------
    # YAML
    # ------------------------------------------------------------------

    def to_yaml(self, record: SessionRecord) -> str:
        data = record.model_dump(mode="json")
        return yaml.dump(data, default_flow_style=False, allow_unicode=True, sort_keys=True)

    def from_yaml(self, raw: str) -> SessionRecord:
        return self._deserialize(yaml.safe_load(raw))

    # ------------------------------------------------------------------
    # Format dispatch
    # ------------------------------------------------------------------

    def serialize(self, record: SessionRecord, format: SerializationFormat = "json") -> str:
        if format == "yaml":
            return self.to_yaml(record)
        return self.to_json(record)

    def deserialize(self, raw: str, format: SerializationFormat = "json") -> SessionRecord:
        if format == "yaml":
            return self.from_yaml(raw)
        return self.from_json(raw)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _deserialize(self, data: object) -> SessionRecord:
        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping, got {type(data).__name__}")
        version = str(data.get("schema_version", SessionRecord.SCHEMA_VERSION))
        if version not in _SUPPORTED_SCHEMA_VERSIONS:
            raise SchemaVersionError(version)
        return SessionRecord.model_validate(data)

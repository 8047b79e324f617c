"""Configuration contracts for altcount runs."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from jsonschema import FormatChecker
from jsonschema.validators import validator_for

from altcount.errors import RunConfigError
from altcount.models import AlterationType, FilterScope

WHOLE_EXOME_SEQUENCING = "WES"

ALTERATION_TYPE_NAMES: tuple[str, ...] = tuple(item.value for item in AlterationType)

RUN_CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["db_path", "scope"],
    "additionalProperties": False,
    "properties": {
        "db_path": {"type": "string", "minLength": 1},
        "tables": {
            "type": "object",
            "additionalProperties": {"type": "string", "minLength": 1},
        },
        "scope": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "study_ids": {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                },
                "samples": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["study_id", "sample_id"],
                        "properties": {
                            "study_id": {"type": "string", "minLength": 1},
                            "sample_id": {"type": "string", "minLength": 1},
                        },
                    },
                },
            },
        },
        "alteration_types": {
            "type": "array",
            "items": {"enum": list(ALTERATION_TYPE_NAMES)},
            "uniqueItems": True,
        },
        "engine": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "max_workers": {"type": ["integer", "null"], "minimum": 1},
            },
        },
        "publishers": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "params": {"type": "object"},
                },
            },
        },
    },
}


@dataclass(frozen=True)
class EngineSettings:
    """Runtime knobs for the counting engine."""

    max_workers: int | None = None


@dataclass(frozen=True)
class PublisherSpec:
    """Named publisher plus constructor params."""

    name: str
    params: Mapping[str, Any] = field(default_factory=dict)



@dataclass(frozen=True)
class RunConfig:
    """Everything needed to execute one command-line counting run."""

    db_path: Path
    scope: FilterScope
    alteration_types: tuple[AlterationType, ...] = tuple(AlterationType)
    tables: Mapping[str, Path] = field(default_factory=dict)
    engine: EngineSettings = field(default_factory=EngineSettings)
    publishers: tuple[PublisherSpec, ...] = ()


class RunConfigLoader:
    """Load and validate run configs from JSON files or parsed payloads."""

    def __init__(self, schema: dict[str, Any] | None = None) -> None:
        schema = schema or RUN_CONFIG_SCHEMA
        validator_cls = validator_for(schema)
        validator_cls.check_schema(schema)
        self.validator = validator_cls(schema, format_checker=FormatChecker())

    def load(self, path: str | Path) -> RunConfig:
        """Load a run config from a JSON file."""

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Run config not found: {config_path}")

        try:
            payload = json.loads(config_path.read_text())
        except json.JSONDecodeError as exc:
            raise RunConfigError(
                f"Run config {config_path} is not valid JSON: {exc.msg} "
                f"(line {exc.lineno}, col {exc.colno})"
            ) from exc
        return self.parse(payload)

    def parse(self, payload: Any) -> RunConfig:
        """Validate a parsed payload and convert it into a ``RunConfig``."""

        errors = sorted(self.validator.iter_errors(payload), key=lambda err: [str(part) for part in err.path])
        if errors:
            problems = [
                f"/{'/'.join(str(part) for part in err.path)}: {err.message}"
                for err in errors
            ]
            raise RunConfigError("Invalid run config: " + "; ".join(problems), problems)

        scope_payload = payload["scope"]
        scope = FilterScope(
            study_ids=tuple(scope_payload.get("study_ids", ())),
            samples=tuple(
                (item["study_id"], item["sample_id"])
                for item in scope_payload.get("samples", ())
            ),
        )
        if not scope.study_ids and not scope.samples:
            raise RunConfigError("Invalid run config: scope must list study_ids or samples")

        alteration_types = tuple(
            AlterationType(name)
            for name in payload.get("alteration_types", ALTERATION_TYPE_NAMES)
        )

        engine_payload = payload.get("engine", {})
        publishers = tuple(
            PublisherSpec(
                name=str(item["name"]).strip().lower(),
                params=dict(item.get("params", {})),
            )
            for item in payload.get("publishers", ())
        )

        return RunConfig(
            db_path=Path(payload["db_path"]),
            scope=scope,
            alteration_types=alteration_types,
            tables={name: Path(path) for name, path in payload.get("tables", {}).items()},
            engine=EngineSettings(max_workers=engine_payload.get("max_workers")),
            publishers=publishers,
        )

"""Run configuration and manifest loading.

A run is described by a RunConfig: which matrix files to process, where to
write the report, and how strictly invalid-matrix rows are checked. A config
is built either from a directory of generator output (see
:func:`productmatrix.matrix.discover_matrices`) or from a JSON manifest::

    {
        "matrices": [
            {"path": "pict/valid_test_cases.csv", "category": "valid"},
            {"path": "pict/invalid_price_cases.csv", "category": "price"}
        ],
        "reportPath": "test-reports/report.md",
        "expectationMode": "strict"
    }

Manifests are checked against MANIFEST_SCHEMA (JSON Schema Draft 7). Relative
paths resolve against the manifest's directory. When the
PRODUCTMATRIX_REPORT_PATH environment variable is set it replaces the report
path of every loaded config.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import jsonschema
from jsonschema import Draft7Validator
from typing_extensions import Final

from productmatrix.errors import FieldError, ManifestError
from productmatrix.matrix import MATRIX_COLUMNS, VALID_CATEGORY, MatrixFile, discover_matrices
from productmatrix.report import DEFAULT_REPORT_PATH
from productmatrix.types import ExpectationMode

logger = logging.getLogger(__name__)

REPORT_PATH_ENV: Final = "PRODUCTMATRIX_REPORT_PATH"

MANIFEST_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "matrices": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "properties": {
                    "path": {"type": "string", "minLength": 1},
                    "category": {"type": "string", "enum": [VALID_CATEGORY, *MATRIX_COLUMNS]},
                },
                "required": ["path", "category"],
                "additionalProperties": False,
            },
        },
        "matrixDir": {"type": "string", "minLength": 1},
        "reportPath": {"type": "string", "minLength": 1},
        "expectationMode": {"type": "string", "enum": [m.value for m in ExpectationMode]},
        "includeCategory": {"type": "boolean"},
        "eventsPath": {"type": "string", "minLength": 1},
    },
    "oneOf": [
        {"required": ["matrices"]},
        {"required": ["matrixDir"]},
    ],
    "additionalProperties": False,
}

Draft7Validator.check_schema(MANIFEST_SCHEMA)
_MANIFEST_VALIDATOR = Draft7Validator(MANIFEST_SCHEMA)


@dataclass(frozen=True)
class RunConfig:
    """Everything a run needs to know.

    Attributes:
        matrices: Matrix files to process, in order
        report_path: Where the Markdown report is written
        expectation_mode: How invalid-matrix rows are checked
        include_category: Whether the report has the leading attribute column
        events_path: Optional JSON Lines file receiving the run's events
    """
    matrices: Tuple[MatrixFile, ...]
    report_path: Path = DEFAULT_REPORT_PATH
    expectation_mode: ExpectationMode = ExpectationMode.LOOSE
    include_category: bool = True
    events_path: Optional[Path] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "matrices": [m.to_dict() for m in self.matrices],
            "reportPath": str(self.report_path),
            "expectationMode": self.expectation_mode.value,
            "includeCategory": self.include_category,
        }
        if self.events_path is not None:
            result["eventsPath"] = str(self.events_path)
        return result


def _report_path(configured: Path, environ: Mapping[str, str]) -> Path:
    override = environ.get(REPORT_PATH_ENV)
    if override:
        logger.debug("Report path overridden by %s=%s", REPORT_PATH_ENV, override)
        return Path(override)
    return configured


def _translate_error(error: jsonschema.ValidationError) -> FieldError:
    """Translate a jsonschema ValidationError into a FieldError."""
    path = ".".join(str(p) for p in error.absolute_path)

    if error.validator == "required":
        missing_prop = error.message.split("'")[1] if "'" in error.message else "field"
        full_path = f"{path}.{missing_prop}" if path else missing_prop
        return FieldError(
            path=full_path,
            code="required",
            message=f"Field '{full_path}' is required but was not provided",
            expected="required field",
        )

    if error.validator == "oneOf" and not path:
        return FieldError(
            path="matrices",
            code="oneOf",
            message="Manifest must define exactly one of 'matrices' or 'matrixDir'",
            expected="matrices or matrixDir",
        )

    return FieldError(
        path=path,
        code=str(error.validator),
        message=f"Field '{path}' validation failed: {error.message}",
        expected=error.validator_value,
        received=error.instance,
    )


def validate_manifest(data: Any) -> List[FieldError]:
    """Check manifest data against MANIFEST_SCHEMA.

    Returns:
        One FieldError per schema violation; empty when the manifest is valid

    Examples:
        >>> validate_manifest({"matrixDir": "pict"})
        []
        >>> [e.path for e in validate_manifest({"matrixDir": "pict", "expectationMode": "lax"})]
        ['expectationMode']
    """
    errors = sorted(_MANIFEST_VALIDATOR.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])
    return [_translate_error(e) for e in errors]


def config_from_directory(
    directory: Path,
    report_path: Path = DEFAULT_REPORT_PATH,
    expectation_mode: ExpectationMode = ExpectationMode.LOOSE,
    include_category: bool = True,
    events_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RunConfig:
    """Build a config from the matrix files found in a directory.

    Raises:
        FixtureError: If the directory holds no matrix files
    """
    return RunConfig(
        matrices=tuple(discover_matrices(Path(directory))),
        report_path=_report_path(Path(report_path), os.environ if environ is None else environ),
        expectation_mode=expectation_mode,
        include_category=include_category,
        events_path=events_path,
    )


def config_from_dict(
    data: Any,
    base_dir: Path = Path("."),
    environ: Optional[Mapping[str, str]] = None,
    source: Optional[Path] = None,
) -> RunConfig:
    """Build a config from already decoded manifest data.

    Args:
        data: The decoded manifest
        base_dir: Directory relative paths resolve against
        environ: Environment used for overrides (defaults to os.environ)
        source: Manifest location, used in error messages

    Raises:
        ManifestError: If the data does not match MANIFEST_SCHEMA
        FixtureError: If matrixDir holds no matrix files
    """
    errors = validate_manifest(data)
    if errors:
        location = source or Path("<manifest>")
        raise ManifestError(
            location,
            f"{location}: invalid manifest ({'; '.join(e.message for e in errors)})",
            errors,
        )

    def resolve(value: str) -> Path:
        path = Path(value)
        return path if path.is_absolute() else base_dir / path

    if "matrixDir" in data:
        matrices: Sequence[MatrixFile] = discover_matrices(resolve(data["matrixDir"]))
    else:
        matrices = [
            MatrixFile(path=resolve(entry["path"]), category=entry["category"])
            for entry in data["matrices"]
        ]

    report_path = resolve(data["reportPath"]) if "reportPath" in data else DEFAULT_REPORT_PATH
    events_path = resolve(data["eventsPath"]) if "eventsPath" in data else None

    return RunConfig(
        matrices=tuple(matrices),
        report_path=_report_path(report_path, os.environ if environ is None else environ),
        expectation_mode=ExpectationMode(data.get("expectationMode", ExpectationMode.LOOSE.value)),
        include_category=data.get("includeCategory", True),
        events_path=events_path,
    )


def load_manifest(path: Path, environ: Optional[Mapping[str, str]] = None) -> RunConfig:
    """Load and validate a JSON run manifest.

    Raises:
        ManifestError: If the file cannot be read, is not JSON, or does not
            match MANIFEST_SCHEMA
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ManifestError(path, f"{path}: cannot read manifest: {e}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(path, f"{path}: manifest is not valid JSON: {e}") from e

    config = config_from_dict(data, base_dir=path.parent, environ=environ, source=path)
    logger.info("Loaded manifest %s with %d matrix file(s)", path, len(config.matrices))
    return config


__all__ = [
    "REPORT_PATH_ENV",
    "MANIFEST_SCHEMA",
    "RunConfig",
    "validate_manifest",
    "config_from_directory",
    "config_from_dict",
    "load_manifest",
]

"""YAML loader for feed source lists."""

import hashlib
import time
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from devfeed.config.schemas import SourcesConfig


logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


def _format_errors(exc: ValidationError) -> list[dict[str, str]]:
    return [
        {
            "location": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]


def load_sources_config(path: Path) -> SourcesConfig:
    """Load and validate a sources YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Validated sources configuration.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed or fails validation.
    """
    start_time = time.perf_counter()
    log = logger.bind(component="config", file_path=str(path))

    content_bytes = path.read_bytes()
    checksum = hashlib.sha256(content_bytes).hexdigest()

    try:
        parsed = yaml.safe_load(content_bytes.decode("utf-8")) or {}
    except yaml.YAMLError as e:
        log.warning("config_yaml_invalid", error=str(e))
        raise ConfigValidationError(
            [{"location": "", "message": str(e), "type": "yaml_error"}], str(path)
        ) from e

    try:
        config = SourcesConfig.model_validate(parsed)
    except ValidationError as e:
        errors = _format_errors(e)
        log.warning("config_validation_failed", error_count=len(errors))
        raise ConfigValidationError(errors, str(path)) from e

    log.info(
        "config_loaded",
        sources=len(config.sources),
        checksum=checksum,
        duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
    )
    return config

"""
Runtime and rule configuration for the document scanner.

Two layers live here:

- ScannerConfig: process-level limits and feature flags, read once from
  DOCSCAN_* environment variables at startup and immutable afterwards.
- RuleConfig: per document type rule suppression (enabled, disabledRules,
  severityFilter, maxFileSize), read from project configuration files
  and optionally overridden per call.

Rule configuration merge order, per key:

    built-in defaults  <  configuration file  <  explicit overrides

Unknown keys are ignored. A configuration file that cannot be read or
validated is logged and replaced by the built-in defaults; it never fails
a scan.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from docscan.app.errors import ConfigParseError
from docscan.app.schemas.findings import DocumentType, Severity

logger = logging.getLogger(__name__)


OFFICE_CONFIG_FILENAME = ".a11y-office-config.json"
PDF_CONFIG_FILENAME = ".a11y-pdf-config.json"

DEFAULT_PDF_MAX_FILE_SIZE = 100 * 1024 * 1024


# ---------------------------------------------------------------------------
# Runtime configuration
# ---------------------------------------------------------------------------

class ScannerConfig(BaseModel):
    """
    Runtime configuration for the scanner service.

    Configuration is environment-driven and read-only at runtime.
    """

    # ------------------------------------------------------------------
    # Safety and resource limits
    # ------------------------------------------------------------------

    MAX_ENTRY_UNCOMPRESSED_BYTES: int = Field(
        200 * 1024 * 1024,
        description="Ceiling on the uncompressed size of one archive entry",
    )

    MAX_UPLOAD_SIZE_MB: int = Field(
        100,
        description="Maximum accepted upload size in megabytes",
    )

    # ------------------------------------------------------------------
    # PDF structural scanning
    # ------------------------------------------------------------------

    EXPAND_PDF_STREAMS: bool = Field(
        True,
        description="Inflate FlateDecode streams before pattern matching",
    )

    MAX_PDF_STREAM_INFLATE_BYTES: int = Field(
        64 * 1024 * 1024,
        description="Total inflation budget for PDF stream expansion",
    )

    # ------------------------------------------------------------------
    # Rule configuration
    # ------------------------------------------------------------------

    RULE_CONFIG_DIR: Optional[Path] = Field(
        None,
        description=(
            "Directory holding .a11y-office-config.json and "
            ".a11y-pdf-config.json for service requests"
        ),
    )

    # ------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ------------------------------------------------------------------

    @field_validator(
        "MAX_ENTRY_UNCOMPRESSED_BYTES",
        "MAX_UPLOAD_SIZE_MB",
        "MAX_PDF_STREAM_INFLATE_BYTES",
    )
    @classmethod
    def limits_must_be_positive(cls, v: int, info: ValidationInfo) -> int:
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got {v}")
        return v

    @field_validator("RULE_CONFIG_DIR")
    @classmethod
    def rule_config_dir_must_exist(cls, v: Optional[Path]) -> Optional[Path]:
        if v is not None and not v.is_dir():
            raise ValueError(
                f"Configured RULE_CONFIG_DIR is not a directory: {v}"
            )
        return v

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "ScannerConfig":
        """
        Load configuration from environment variables.

        All values are parsed once at startup and must remain immutable.
        """

        def env_bool(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None:
                return default
            return raw.lower() in {"1", "true", "yes", "on"}

        rule_config_dir = os.getenv("DOCSCAN_RULE_CONFIG_DIR")

        return cls(
            MAX_ENTRY_UNCOMPRESSED_BYTES=int(
                os.getenv(
                    "DOCSCAN_MAX_ENTRY_UNCOMPRESSED_BYTES",
                    str(200 * 1024 * 1024),
                )
            ),
            MAX_UPLOAD_SIZE_MB=int(
                os.getenv("DOCSCAN_MAX_UPLOAD_SIZE_MB", "100")
            ),
            EXPAND_PDF_STREAMS=env_bool(
                "DOCSCAN_EXPAND_PDF_STREAMS", True
            ),
            MAX_PDF_STREAM_INFLATE_BYTES=int(
                os.getenv(
                    "DOCSCAN_MAX_PDF_STREAM_INFLATE_BYTES",
                    str(64 * 1024 * 1024),
                )
            ),
            RULE_CONFIG_DIR=(
                Path(rule_config_dir)
                if rule_config_dir
                else None
            ),
        )

    model_config = {
        "frozen": True,
    }


# ---------------------------------------------------------------------------
# Rule configuration
# ---------------------------------------------------------------------------

class RuleConfig(BaseModel):
    """
    Rule suppression settings for one document type.

    Field names follow the on-disk JSON keys through aliases.
    """

    enabled: bool = True

    disabled_rules: List[str] = Field(
        default_factory=list,
        alias="disabledRules",
    )

    severity_filter: List[Severity] = Field(
        default_factory=lambda: list(Severity),
        alias="severityFilter",
    )

    max_file_size: Optional[int] = Field(
        None,
        alias="maxFileSize",
        gt=0,
        description="Byte ceiling for one document (PDF only by default)",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )


def default_rule_config(document_type: DocumentType) -> RuleConfig:
    if document_type is DocumentType.PDF:
        return RuleConfig(max_file_size=DEFAULT_PDF_MAX_FILE_SIZE)
    return RuleConfig()


def default_rule_configs() -> Dict[DocumentType, RuleConfig]:
    return {doc_type: default_rule_config(doc_type) for doc_type in DocumentType}


def merge_rule_config(base: RuleConfig, overrides: Mapping[str, Any]) -> RuleConfig:
    """
    Overlay raw JSON-style keys on an existing configuration.

    Only keys present in overrides change; unknown keys are dropped.
    Raises ConfigParseError when the merged values fail validation.
    """
    if not isinstance(overrides, Mapping):
        raise ConfigParseError(
            f"Rule configuration must be an object, got {type(overrides).__name__}"
        )

    merged = base.model_dump(by_alias=True)
    merged.update(overrides)

    try:
        return RuleConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigParseError(f"Invalid rule configuration: {exc}") from exc


# ---------------------------------------------------------------------------
# Configuration files
# ---------------------------------------------------------------------------

def _read_json_object(path: Path) -> Optional[Dict[str, Any]]:
    """
    Parse a JSON object from path, or None when the file does not exist.

    Raises ConfigParseError for unreadable files, malformed JSON and
    non-object documents.
    """
    if not path.is_file():
        return None

    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except OSError as exc:
        raise ConfigParseError(f"Cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigParseError(f"Malformed JSON in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigParseError(f"{path} must contain a JSON object")
    return data


def _load_office_configs(root: Path) -> Dict[DocumentType, RuleConfig]:
    configs = {
        doc_type: default_rule_config(doc_type)
        for doc_type in DocumentType
        if doc_type.is_office
    }

    data = _read_json_object(root / OFFICE_CONFIG_FILENAME)
    if data is None:
        return configs

    for doc_type in list(configs):
        section = data.get(doc_type.value)
        if section is not None:
            configs[doc_type] = merge_rule_config(configs[doc_type], section)
    return configs


def _load_pdf_config(root: Path) -> RuleConfig:
    base = default_rule_config(DocumentType.PDF)

    data = _read_json_object(root / PDF_CONFIG_FILENAME)
    if data is None:
        return base

    # Either a flat object or one keyed by "pdf".
    section = data.get(DocumentType.PDF.value, data)
    return merge_rule_config(base, section)


def load_rule_configs(
    root: Optional[Path] = None,
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> Dict[DocumentType, RuleConfig]:
    """
    Resolve the effective rule configuration for every document type.

    root is the project directory holding the configuration files; when
    None only defaults and overrides apply. overrides is keyed by document
    type value ("docx", "pdf", ...). A broken file falls back to defaults
    for the types it covers; an invalid override section is logged and
    leaves that type's configuration unchanged.
    """
    configs = default_rule_configs()

    if root is not None:
        try:
            configs.update(_load_office_configs(root))
        except ConfigParseError as exc:
            logger.warning("Ignoring Office rule configuration: %s", exc)

        try:
            configs[DocumentType.PDF] = _load_pdf_config(root)
        except ConfigParseError as exc:
            logger.warning("Ignoring PDF rule configuration: %s", exc)

    for key, section in (overrides or {}).items():
        try:
            doc_type = DocumentType(key)
        except ValueError:
            logger.debug("Ignoring overrides for unknown document type %s", key)
            continue
        try:
            configs[doc_type] = merge_rule_config(configs[doc_type], section)
        except ConfigParseError as exc:
            logger.warning("Ignoring %s rule overrides: %s", doc_type.value, exc)

    return configs

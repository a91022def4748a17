"""Catalog file loading and validation.

This module provides functions to load YAML (or JSON) catalog documents and
validate them using Pydantic models before converting them into the frozen
dataclasses in mediabroker.catalog.models.

Document shape:

    codec_map:
      vorbis: libvorbis
    formats:
      ogg:
        containers: [ogg]
        ext: ogg
        mime_type: audio/ogg
        streams:
          - media: audio
            codecs: [vorbis, opus]
"""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from mediabroker.catalog.models import (
    Catalog,
    CodecSpec,
    Format,
    Media,
    Prepend,
    StreamSpec,
)
from mediabroker.core.errors import BrokerError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_RESOURCE = "formats.yaml"


class CatalogValidationError(BrokerError):
    """Error during catalog loading or validation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class CodecModel(BaseModel):
    """Pydantic model for one codec entry."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1)
    flags: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def casefold_name(cls, v: str) -> str:
        """Casefold codec names for case-insensitive matching."""
        return v.casefold().strip()


class StreamModel(BaseModel):
    """Pydantic model for a stream slot."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    media: Literal["audio", "video"]
    codecs: list[CodecModel] = Field(min_length=1)

    @field_validator("codecs", mode="before")
    @classmethod
    def expand_codec_names(cls, v: Any) -> Any:
        """Allow bare codec names as shorthand for {name: ...}."""
        if isinstance(v, list):
            return [{"name": c} if isinstance(c, str) else c for c in v]
        return v


class FormatModel(BaseModel):
    """Pydantic model for a catalog format."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    containers: list[str] = Field(min_length=1)
    ext: str = Field(min_length=1)
    mime_type: str = Field(min_length=1)
    streams: list[StreamModel] = Field(min_length=1)
    muxer: str | None = None
    prepend: Literal["", "id3v2"] = ""
    format_flags: list[str] = Field(default_factory=list)

    @field_validator("containers")
    @classmethod
    def validate_containers(cls, v: list[str]) -> list[str]:
        """Reject blank container names."""
        if any(not c.strip() for c in v):
            raise ValueError("container names must not be blank")
        return [c.strip() for c in v]


class CatalogModel(BaseModel):
    """Pydantic model for a whole catalog document."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    codec_map: dict[str, str] = Field(default_factory=dict)
    formats: dict[str, FormatModel] = Field(min_length=1)

    @field_validator("formats")
    @classmethod
    def validate_format_names(
        cls, v: dict[str, FormatModel]
    ) -> dict[str, FormatModel]:
        """Reject blank format names."""
        if any(not name.strip() for name in v):
            raise ValueError("format names must not be blank")
        return v


def _convert_stream(model: StreamModel) -> StreamSpec:
    return StreamSpec(
        media=Media(model.media),
        codecs=tuple(
            CodecSpec(name=c.name, flags=tuple(c.flags)) for c in model.codecs
        ),
    )


def _convert_format(name: str, model: FormatModel) -> Format:
    return Format(
        name=name,
        streams=tuple(_convert_stream(s) for s in model.streams),
        containers=tuple(model.containers),
        mime_type=model.mime_type,
        ext=model.ext,
        muxer=model.muxer or "",
        prepend=Prepend(model.prepend),
        format_flags=tuple(model.format_flags),
    )


def _format_validation_error(error: Exception) -> str:
    """Format a Pydantic validation error into a user-friendly message."""
    from pydantic import ValidationError

    if isinstance(error, ValidationError):
        errors = error.errors()
        if errors:
            first_error = errors[0]
            loc = ".".join(str(x) for x in first_error.get("loc", []))
            msg = first_error.get("msg", str(error))
            if loc:
                return f"Catalog validation failed: {loc}: {msg}"
            return f"Catalog validation failed: {msg}"

    return f"Catalog validation failed: {error}"


def load_catalog_from_dict(data: dict[str, Any]) -> Catalog:
    """Load and validate a catalog from a dictionary.

    Args:
        data: Dictionary containing the catalog document.

    Returns:
        Validated, immutable Catalog.

    Raises:
        CatalogValidationError: If the catalog data is invalid.
    """
    try:
        model = CatalogModel.model_validate(data)
    except Exception as e:
        raise CatalogValidationError(_format_validation_error(e)) from e

    codec_map = {k.casefold(): v for k, v in model.codec_map.items()}
    formats = {
        name: _convert_format(name, fmt) for name, fmt in model.formats.items()
    }
    return Catalog(formats=formats, codec_map=codec_map)


def _parse_document(text: str, source: str) -> Catalog:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise CatalogValidationError(f"Invalid YAML syntax in {source}: {e}") from e

    if data is None:
        raise CatalogValidationError(f"Catalog file is empty: {source}")

    if not isinstance(data, dict):
        raise CatalogValidationError(f"Catalog file must be a mapping: {source}")

    return load_catalog_from_dict(data)


def load_catalog(path: Path) -> Catalog:
    """Load and validate a catalog from a YAML or JSON file.

    Args:
        path: Path to the catalog document.

    Returns:
        Validated Catalog.

    Raises:
        CatalogValidationError: If the catalog file is invalid.
        FileNotFoundError: If the catalog file does not exist.
    """
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")

    catalog = _parse_document(path.read_text(encoding="utf-8"), str(path))
    logger.debug("Loaded %d formats from %s", len(catalog.formats), path)
    return catalog


def load_default_catalog() -> Catalog:
    """Load the catalog bundled with the package."""
    text = (
        resources.files("mediabroker.catalog")
        .joinpath(DEFAULT_CATALOG_RESOURCE)
        .read_text(encoding="utf-8")
    )
    return _parse_document(text, DEFAULT_CATALOG_RESOURCE)

"""Format catalog and matcher.

- Catalog, Format, StreamSpec, CodecSpec: immutable catalog models
- load_catalog / load_default_catalog: YAML/JSON loading with validation
- find_by_format_codecs: first-match lookup by container and codecs
"""

from mediabroker.catalog.loader import (
    CatalogValidationError,
    load_catalog,
    load_catalog_from_dict,
    load_default_catalog,
)
from mediabroker.catalog.matcher import align_codecs, find_by_format_codecs
from mediabroker.catalog.models import (
    Catalog,
    CodecSpec,
    Format,
    Media,
    Prepend,
    StreamSpec,
)

__all__ = [
    # Models
    "Catalog",
    "CodecSpec",
    "Format",
    "Media",
    "Prepend",
    "StreamSpec",
    # Loader
    "CatalogValidationError",
    "load_catalog",
    "load_catalog_from_dict",
    "load_default_catalog",
    # Matcher
    "align_codecs",
    "find_by_format_codecs",
]

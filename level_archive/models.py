"""
msgspec-based data models for the catalog store.
All records crossing a module boundary use msgspec.Struct for validation and speed.

This module provides:
- The Game record and its derived sort title
- Load/save errors represented as data (never raised across the save queue)
- Catalog configuration and platform summary structures
- Convenience functions for JSON encoding/decoding
"""

from typing import List, Optional

import msgspec


# =============================================================================
# Global Encoders/Decoders
# =============================================================================

json_encoder = msgspec.json.Encoder()
json_decoder = msgspec.json.Decoder()


def encode_json(obj) -> bytes:
    """
    Encode object to JSON bytes using msgspec.

    Args:
        obj: Any msgspec.Struct or serializable object

    Returns:
        JSON as bytes
    """
    return json_encoder.encode(obj)


def decode_json(data: bytes, type=None):
    """
    Decode JSON bytes to object using msgspec.

    Args:
        data: JSON as bytes
        type: Optional msgspec.Struct type for validation

    Returns:
        Decoded object (validated if type provided)

    Example:
        >>> games = decode_json(data, type=list[Game])
    """
    if type:
        decoder = msgspec.json.Decoder(type)
        return decoder.decode(data)
    return json_decoder.decode(data)


# =============================================================================
# Catalog Records
# =============================================================================

class Game(msgspec.Struct, kw_only=True, frozen=True):
    """
    A single catalog entry.

    Games are immutable, edit them with replace(). `order_title` is derived
    from `title` on construction and is never written to a platform file.
    `placeholder` games only exist for the UI and are refused by the
    catalog manager.

    Multi-value fields (`play_mode`, `tags`, `language`) hold
    semicolon-joined text, see codec.split_field_value().
    """
    id: str
    title: str = ""
    series: str = ""
    developer: str = ""
    publisher: str = ""
    platform: str = ""
    library: str = ""
    date_added: str = ""
    release_date: str = ""
    version: str = ""
    play_mode: str = ""
    status: str = ""
    notes: str = ""
    curation_notes: str = ""
    tags: str = ""
    language: str = ""
    source: str = ""
    application_path: str = ""
    launch_command: str = ""
    original_description: str = ""
    broken: bool = False
    extreme: bool = False
    placeholder: bool = False
    order_title: str = ""

    def __post_init__(self):
        """Derive the sort title"""
        msgspec.structs.force_setattr(self, "order_title", self.title.lower())

    def replace(self, **changes) -> "Game":
        """
        Return a copy of this game with some fields changed.

        The sort title is always recomputed from the (possibly new) title.
        """
        values = msgspec.structs.asdict(self)
        values.update(changes)
        values.pop("order_title", None)
        return Game(**values)


class PlatformInfo(msgspec.Struct):
    """
    Summary of one platform file.

    Attributes:
        name: Platform name (file stem)
        library: Library (parent folder) the platform belongs to
        size: Number of games in the platform
    """
    name: str
    library: str
    size: int


# =============================================================================
# Errors as data
# =============================================================================

class PlatformParseError(msgspec.Struct):
    """
    A platform file that could not be loaded.

    Collected by CatalogManager.load_all() while loading continues with the
    remaining files.
    """
    file_path: str
    message: str

    def __str__(self) -> str:
        return f"Failed to load platform file {self.file_path}: {self.message}"


class PlatformWriteError(msgspec.Struct):
    """
    A platform file that could not be written by a save task.
    """
    file_path: str
    platform: str
    library: str
    message: str

    def __str__(self) -> str:
        return f"Failed to save platform '{self.platform}' ({self.library}) to {self.file_path}: {self.message}"


class SaveReport(msgspec.Struct):
    """
    Outcome of one CatalogManager.save() call.

    Attributes:
        written: Paths of every platform file written successfully
        errors: One entry per platform file that failed
    """
    written: List[str] = msgspec.field(default_factory=list)
    errors: List[PlatformWriteError] = msgspec.field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every requested platform file was written"""
        return not self.errors


# =============================================================================
# Configuration Structures
# =============================================================================

class CatalogConfig(msgspec.Struct):
    """
    Catalog store configuration.

    Attributes:
        platforms_folder: Root folder holding one sub-folder per library
        platform_extension: Extension of platform files (without dot)
        log_level: Name of the logging level
    """
    platforms_folder: str
    platform_extension: str = "xml"
    log_level: str = "INFO"

    def __post_init__(self):
        """Normalize and validate the platform extension and log level"""
        self.platform_extension = self.platform_extension.strip().lstrip(".")
        if not self.platform_extension:
            raise ValueError("platform_extension must not be empty")
        self.log_level = self.log_level.strip().upper()
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {self.log_level}")


class CurationMeta(msgspec.Struct, kw_only=True):
    """
    Game meta imported from a curation field-map.

    Every field is optional: None means the field was absent (or empty) in
    the source meta.
    """
    title: Optional[str] = None
    library: Optional[str] = None
    series: Optional[str] = None
    developer: Optional[str] = None
    publisher: Optional[str] = None
    play_mode: Optional[str] = None
    release_date: Optional[str] = None
    version: Optional[str] = None
    language: Optional[str] = None
    extreme: Optional[bool] = None
    tags: Optional[str] = None
    source: Optional[str] = None
    platform: Optional[str] = None
    status: Optional[str] = None
    application_path: Optional[str] = None
    launch_command: Optional[str] = None
    notes: Optional[str] = None
    original_description: Optional[str] = None
    curation_notes: Optional[str] = None

from .catalog import CatalogManager
from .codec import decode_game, encode_game, join_field_value, split_field_value
from .config import ConfigManager, config_manager
from .curation import game_from_curation_meta, game_to_curation_meta, parse_curation_meta
from .escaping import escape_html, unescape_html
from .logger import setup_logger
from .models import (
    CatalogConfig,
    CurationMeta,
    Game,
    PlatformInfo,
    PlatformParseError,
    PlatformWriteError,
    SaveReport,
)
from .platform_file import (
    PlatformEntry,
    PlatformFile,
    PlatformFileFormatError,
    RawElement,
    load_platform_file,
    serialize_platform_file,
    write_platform_file,
)
from .task_queue import SerializedTaskQueue
from .version import __version__

__all__ = [
    "CatalogManager",
    "decode_game",
    "encode_game",
    "join_field_value",
    "split_field_value",
    "ConfigManager",
    "config_manager",
    "game_from_curation_meta",
    "game_to_curation_meta",
    "parse_curation_meta",
    "escape_html",
    "unescape_html",
    "setup_logger",
    "CatalogConfig",
    "CurationMeta",
    "Game",
    "PlatformInfo",
    "PlatformParseError",
    "PlatformWriteError",
    "SaveReport",
    "PlatformEntry",
    "PlatformFile",
    "PlatformFileFormatError",
    "RawElement",
    "load_platform_file",
    "serialize_platform_file",
    "write_platform_file",
    "SerializedTaskQueue",
    "__version__",
]

"""
Record codec: converts the raw field-maps of a platform file to Game records and back.

A raw field-map maps platform file tag names (ID, Title, Genre...) to the
escaped text stored in the file. Flags (Broken, Hide) are stored as
"true"/"false". The derived sort title, the library and the placeholder
flag are never stored.
"""

import re
from typing import Dict, List

from level_archive.escaping import escape_html, unescape_html
from level_archive.models import Game

# (Game attribute, platform file tag) in the order they are written
TEXT_FIELDS = (
    ("id", "ID"),
    ("title", "Title"),
    ("series", "Series"),
    ("developer", "Developer"),
    ("publisher", "Publisher"),
    ("platform", "Platform"),
    ("date_added", "DateAdded"),
    ("play_mode", "PlayMode"),
    ("status", "Status"),
    ("notes", "Notes"),
    ("curation_notes", "CurationNotes"),
    ("tags", "Genre"),
    ("source", "Source"),
    ("application_path", "ApplicationPath"),
    ("launch_command", "CommandLine"),
    ("release_date", "ReleaseDate"),
    ("version", "Version"),
    ("original_description", "OriginalDescription"),
    ("language", "Language"),
)

FLAG_FIELDS = (
    ("broken", "Broken"),
    ("extreme", "Hide"),
)

# Every tag the codec reads, anything else in a <Game> element is opaque
KNOWN_TAGS = frozenset(tag for _, tag in TEXT_FIELDS + FLAG_FIELDS)

_TRUE_VALUES = frozenset({"true", "1", "yes"})
_FIELD_SEPARATOR = re.compile(r"\s*;\s*")


def _is_flag_set(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE_VALUES


def decode_game(field_map: Dict[str, str], library: str) -> Game:
    """
    Decode a raw field-map into a Game.

    Args:
        field_map: Tag name -> escaped text, missing tags decode to ""
        library: Library of the platform file the game was read from

    Returns:
        The decoded game (never a placeholder)
    """
    values = {attr: unescape_html(field_map.get(tag)) for attr, tag in TEXT_FIELDS}
    for attr, tag in FLAG_FIELDS:
        values[attr] = _is_flag_set(field_map.get(tag))
    return Game(library=library, placeholder=False, **values)


def encode_game(game: Game) -> Dict[str, str]:
    """
    Encode a Game into the raw field-map written to its platform file.

    Args:
        game: Game to encode

    Returns:
        Tag name -> escaped text, in file order
    """
    raw = {tag: escape_html(getattr(game, attr)) for attr, tag in TEXT_FIELDS}
    for attr, tag in FLAG_FIELDS:
        raw[tag] = "true" if getattr(game, attr) else "false"
    return raw


def split_field_value(value: str) -> List[str]:
    """
    Split a multi-value field (tags, languages, play modes) into its values.

    Whitespace around each semicolon is ignored. An empty field has no values.
    """
    if not value.strip():
        return []
    return _FIELD_SEPARATOR.split(value.strip())


def join_field_value(values: List[str]) -> str:
    """Join values into a single multi-value field"""
    return "; ".join(values)

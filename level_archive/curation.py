"""
Curation meta boundary.

Converts the generic field-maps produced by curation meta files (keys are
matched case-insensitively) into games, and games back into field-maps.
Reading the meta files themselves is left to the caller.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from level_archive.codec import join_field_value, split_field_value
from level_archive.constants import ARCADE
from level_archive.models import CurationMeta, Game

ErrorCallback = Callable[[str], None]


def _text(value: Any) -> str:
    return str(value)


def _multi(value: Any) -> str:
    # Lists become semicolon separated values
    if isinstance(value, (list, tuple)):
        return join_field_value([str(v) for v in value])
    return join_field_value(split_field_value(str(value)))


def _yes(value: Any) -> bool:
    # YAML loaders already turn Yes/No into booleans
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "yes"


def _lower(value: Any) -> str:
    return str(value).lower()


# (lower-case key, CurationMeta attribute, converter), later keys override earlier ones
META_PROPERTIES = (
    # Old curation format
    ("author notes", "curation_notes", _text),
    ("notes", "notes", _text),
    # New curation format
    ("application path", "application_path", _text),
    ("curation notes", "curation_notes", _text),
    ("author", "developer", _multi),
    ("developer", "developer", _multi),
    ("publisher", "publisher", _multi),
    ("extreme", "extreme", _yes),
    ("game notes", "notes", _text),
    ("languages", "language", _multi),
    ("launch command", "launch_command", _text),
    ("description", "original_description", _text),
    ("original description", "original_description", _text),
    ("level type", "play_mode", _multi),
    ("play mode", "play_mode", _multi),
    ("platform", "platform", _text),
    ("release date", "release_date", _text),
    ("series", "series", _text),
    ("source", "source", _text),
    ("status", "status", _text),
    ("title", "title", _text),
    ("revision", "version", _text),
    ("version", "version", _text),
    ("library", "library", _lower),
    ("genre", "tags", _multi),
    ("genres", "tags", _multi),
    ("tags", "tags", _multi),
    # Property aliases
    ("animation notes", "notes", _text),
)


def parse_curation_meta(data: Any, on_error: Optional[ErrorCallback] = None) -> CurationMeta:
    """
    Convert a raw curation field-map into a CurationMeta.

    Args:
        data: Mapping of field name -> value, empty values are ignored
        on_error: Called with a message for every problem found

    Returns:
        The converted meta, empty if `data` is empty or not a mapping
    """
    meta = CurationMeta()
    if not data:
        return meta
    if not isinstance(data, Mapping):
        if on_error:
            on_error(f"Error while converting Curation Meta: expected a mapping, got {type(data).__name__}")
        return meta

    # Treat field names case-insensitively
    lower_case_data = {
        str(key).lower(): value for key, value in data.items()
        if value or isinstance(value, bool)
    }
    for key, attr, convert in META_PROPERTIES:
        if key not in lower_case_data:
            continue
        value = lower_case_data[key]
        if isinstance(value, Mapping):
            if on_error:
                on_error(f"Error while converting Curation Meta: '{key}' must not be a mapping")
            continue
        setattr(meta, attr, convert(value))
    return meta


def game_from_curation_meta(meta: CurationMeta, game_id: Optional[str] = None, date_added: Optional[str] = None) -> Game:
    """
    Create a game from curation meta.

    Args:
        meta: Converted curation meta
        game_id: Id of the new game (a random UUID if omitted)
        date_added: ISO date-time the game was added (now if omitted)
    """
    values = {
        attr: getattr(meta, attr)
        for attr in CurationMeta.__struct_fields__
        if getattr(meta, attr) is not None
    }
    values.setdefault("library", ARCADE)
    return Game(
        id=game_id or str(uuid4()),
        date_added=date_added or datetime.now().isoformat(),
        **values,
    )


def game_to_curation_meta(game: Game) -> Dict[str, str]:
    """Convert a game into a curation field-map (for saving)."""
    return {
        "Title": game.title,
        "Library": game.library,
        "Series": game.series,
        "Developer": game.developer,
        "Publisher": game.publisher,
        "Play Mode": game.play_mode,
        "Release Date": game.release_date,
        "Version": game.version,
        "Languages": game.language,
        "Extreme": "Yes" if game.extreme else "No",
        "Tags": game.tags,
        "Source": game.source,
        "Platform": game.platform,
        "Status": game.status,
        "Application Path": game.application_path,
        "Launch Command": game.launch_command,
        "Game Notes": game.notes,
        "Original Description": game.original_description,
        "Curation Notes": game.curation_notes,
    }

"""
Platform File Index: one backing file of the catalog.

Platform files use a LaunchBox-style tag tree:
<?xml version="1.0" standalone="yes"?>
<LaunchBox>
  <Game>
    <ID>...</ID>
    <Title>...</Title>
  </Game>
  <AdditionalApplication>
    <GameID>...</GameID>
  </AdditionalApplication>
</LaunchBox>

Field text is kept verbatim by the grammar, entities are handled by the
record codec. Children of <LaunchBox> other than <Game> are carried through
unchanged, as are <Game> children the codec does not know.

Uses pre-compiled regex for tag tokenizing and aiofiles for async I/O.
"""

import asyncio
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import aiofiles

from level_archive.codec import KNOWN_TAGS, decode_game, encode_game
from level_archive.constants import (
    ATTACHMENT_REFERENCE_TAG,
    GAME_TAG,
    PLATFORM_ROOT_TAG,
    XML_DECLARATION,
)
from level_archive.escaping import unescape_html
from level_archive.logger import setup_logger
from level_archive.models import Game, PlatformParseError

logger = setup_logger()

# (tag, text) pairs, order and duplicates preserved
FieldList = List[Tuple[str, str]]


class PlatformFileFormatError(ValueError):
    """Platform file content does not match the tag grammar."""


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class RawElement:
    """
    An opaque child of the root element (e.g. <AdditionalApplication>).

    Attributes:
        tag: Element name
        fields: (tag, text) pairs of its children, text kept verbatim
    """
    tag: str
    fields: FieldList = field(default_factory=list)

    def get(self, tag: str) -> Optional[str]:
        """Text of the first child named `tag`, None if there is none."""
        for name, text in self.fields:
            if name == tag:
                return text
        return None

    def references(self, game_id: str) -> bool:
        """True if this element is attached to the game `game_id`."""
        reference = self.get(ATTACHMENT_REFERENCE_TAG)
        return reference is not None and unescape_html(reference) == game_id


@dataclass
class PlatformEntry:
    """
    One <Game> of a platform file.

    Attributes:
        game: The decoded game
        raw: Encoded field-map written back to the file
        extras: <Game> children unknown to the codec, written after `raw`
    """
    game: Game
    raw: Dict[str, str]
    extras: FieldList = field(default_factory=list)


@dataclass
class PlatformFile:
    """
    In-memory representation of one platform file.

    `collection` and `raw` are views over the same entries, so they always
    have the same length and order. Mutate through touch() and pop_game().
    """
    file_path: Path
    name: str
    library: str
    entries: List[PlatformEntry] = field(default_factory=list)
    siblings: List[RawElement] = field(default_factory=list)

    @property
    def collection(self) -> List[Game]:
        return [entry.game for entry in self.entries]

    @property
    def raw(self) -> List[Dict[str, str]]:
        return [entry.raw for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def index_of(self, game_id: str) -> int:
        """Index of the game with this id, -1 if the platform does not hold it."""
        for index, entry in enumerate(self.entries):
            if entry.game.id == game_id:
                return index
        return -1

    def touch(self, game: Game, index: Optional[int] = None, extras: Optional[FieldList] = None) -> PlatformEntry:
        """
        Set a game and its encoded form together.

        Args:
            game: Game to store
            index: Entry to replace (keeps its extras), None appends a new entry
            extras: Opaque fields of a new entry

        Returns:
            The stored entry
        """
        if index is None:
            entry = PlatformEntry(game=game, raw=encode_game(game), extras=list(extras or []))
            self.entries.append(entry)
            return entry
        entry = self.entries[index]
        entry.game = game
        entry.raw = encode_game(game)
        return entry

    def pop_game(self, game_id: str) -> Optional[PlatformEntry]:
        """
        Remove every entry holding the game `game_id`, keeping the order of the rest.

        Returns:
            The removed entry, None if there was none
        """
        removed = [entry for entry in self.entries if entry.game.id == game_id]
        if not removed:
            return None
        self.entries = [entry for entry in self.entries if entry.game.id != game_id]
        return removed[0]

    def attachments_of(self, game_id: str) -> List[RawElement]:
        """Sibling elements referencing the game `game_id`."""
        return [element for element in self.siblings if element.references(game_id)]

    def take_attachments(self, game_id: str) -> List[RawElement]:
        """Remove and return the sibling elements referencing the game `game_id`."""
        taken = self.attachments_of(game_id)
        if taken:
            self.siblings = [element for element in self.siblings if not element.references(game_id)]
        return taken


def platform_file_path(root: Path, library: str, name: str, extension: str) -> Path:
    """Path of the platform file of (library, name): <root>/<library>/<name>.<extension>"""
    return Path(root) / library / f"{name}.{extension}"


# =============================================================================
# Tag Grammar
# =============================================================================

class PlatformFileParser:
    """
    Lightweight parser for the platform file tag tree.

    Supports the XML declaration, comments, self-closing empty elements and
    exactly three levels: the root, its elements and their fields.
    """

    # Pre-compiled patterns
    _TOKEN_PATTERN = re.compile(
        r"<\?.*?\?>"                                   # declaration
        r"|<!--.*?-->"                                 # comment
        r"|<(/?)([A-Za-z_][\w.\-:]*)\s*(/?)>",         # open, close or empty tag
        re.DOTALL,
    )

    @classmethod
    def parse_content(cls, content: str) -> Tuple[List[RawElement], List[RawElement]]:
        """
        Parse platform file content.

        Args:
            content: Full file content

        Returns:
            (games, siblings): the <Game> elements and every other root child,
            each in file order

        Raises:
            PlatformFileFormatError: If the content does not match the grammar
        """
        games: List[RawElement] = []
        siblings: List[RawElement] = []
        stack: List[str] = []
        element: Optional[RawElement] = None
        field_start = 0
        root_closed = False
        position = 0

        for match in cls._TOKEN_PATTERN.finditer(content):
            between = content[position:match.start()]
            position = match.end()
            closing, tag, empty = match.groups()

            if len(stack) < 3 and between.strip():
                raise PlatformFileFormatError(f"Unexpected text {between.strip()[:40]!r}")
            if tag is None:
                # Declaration or comment
                if len(stack) == 3:
                    raise PlatformFileFormatError(f"Unexpected markup inside <{stack[-1]}>")
                continue
            if root_closed:
                raise PlatformFileFormatError(f"Unexpected <{tag}> after the root element")

            if closing:
                if empty:
                    raise PlatformFileFormatError(f"Malformed closing tag </{tag}/>")
                if not stack or stack[-1] != tag:
                    expected = f"</{stack[-1]}>" if stack else "no closing tag"
                    raise PlatformFileFormatError(f"Mismatched </{tag}>, expected {expected}")
                if len(stack) == 3:
                    element.fields.append((tag, content[field_start:match.start()]))
                elif len(stack) == 2:
                    (games if element.tag == GAME_TAG else siblings).append(element)
                    element = None
                else:
                    root_closed = True
                stack.pop()
                continue

            # Opening or empty tag
            depth = len(stack)
            if depth == 0:
                if tag != PLATFORM_ROOT_TAG:
                    raise PlatformFileFormatError(f"Root element must be <{PLATFORM_ROOT_TAG}>, found <{tag}>")
                if empty:
                    root_closed = True
                else:
                    stack.append(tag)
            elif depth == 1:
                element = RawElement(tag=tag)
                if empty:
                    (games if tag == GAME_TAG else siblings).append(element)
                    element = None
                else:
                    stack.append(tag)
            elif depth == 2:
                if empty:
                    element.fields.append((tag, ""))
                else:
                    stack.append(tag)
                    field_start = match.end()
            else:
                raise PlatformFileFormatError(f"Unexpected nested <{tag}> inside <{stack[-1]}>")

        if content[position:].strip():
            raise PlatformFileFormatError(f"Unexpected text {content[position:].strip()[:40]!r}")
        if stack:
            raise PlatformFileFormatError(f"Unclosed <{stack[-1]}>")
        if not root_closed:
            raise PlatformFileFormatError(f"Missing <{PLATFORM_ROOT_TAG}> root element")
        return games, siblings

    @classmethod
    async def parse_file(cls, file_path: Path) -> Tuple[List[RawElement], List[RawElement]]:
        """
        Read and parse a platform file.

        Raises:
            OSError: If the file cannot be read
            UnicodeDecodeError: If the file is not valid UTF-8
            PlatformFileFormatError: If the content does not match the grammar
        """
        async with aiofiles.open(file_path, "r", encoding="utf-8-sig") as f:
            content = await f.read()
        return cls.parse_content(content)


def _write_fields(lines: List[str], fields) -> None:
    for tag, text in fields:
        if text == "":
            lines.append(f"    <{tag} />")
        else:
            lines.append(f"    <{tag}>{text}</{tag}>")


def _write_element(lines: List[str], tag: str, fields) -> None:
    if not fields:
        lines.append(f"  <{tag} />")
        return
    lines.append(f"  <{tag}>")
    _write_fields(lines, fields)
    lines.append(f"  </{tag}>")


# =============================================================================
# Load / Serialize / Write
# =============================================================================

def build_platform_file(
    file_path: Path,
    games: List[RawElement],
    siblings: List[RawElement],
    library: Optional[str] = None,
) -> PlatformFile:
    """
    Decode parsed elements into a PlatformFile.

    Each entry's raw field-map is re-encoded from its decoded game, so the
    file text of known fields is normalized (e.g. &apos; becomes &#39;).
    Unknown and repeated fields are kept verbatim as extras.
    """
    file_path = Path(file_path)
    library = library if library is not None else file_path.parent.name
    platform = PlatformFile(file_path=file_path, name=file_path.stem, library=library, siblings=siblings)
    for element in games:
        known: Dict[str, str] = {}
        extras: FieldList = []
        for tag, text in element.fields:
            if tag in KNOWN_TAGS and tag not in known:
                known[tag] = text
            else:
                extras.append((tag, text))
        platform.touch(decode_game(known, library), extras=extras)
    return platform


async def load_platform_file(file_path: Path, library: Optional[str] = None) -> PlatformFile | PlatformParseError:
    """
    Load one platform file.

    Args:
        file_path: Path of the platform file
        library: Library of the platform (defaults to the parent folder name)

    Returns:
        The loaded platform, or a PlatformParseError naming the file
    """
    try:
        games, siblings = await PlatformFileParser.parse_file(file_path)
    except (OSError, UnicodeDecodeError, PlatformFileFormatError) as e:
        logger.error(f"Error parsing platform file {file_path}: {e}")
        return PlatformParseError(file_path=str(file_path), message=str(e))

    platform = build_platform_file(file_path, games, siblings, library)
    logger.debug(f"Loaded platform '{platform.name}' ({platform.library}) with {len(platform)} games")
    return platform


def serialize_platform_file(platform: PlatformFile) -> str:
    """
    Serialize a platform to file content.

    Only the raw entries and opaque elements are written, Game objects are
    never consulted.
    """
    lines = [XML_DECLARATION, f"<{PLATFORM_ROOT_TAG}>"]
    for entry in platform.entries:
        _write_element(lines, GAME_TAG, list(entry.raw.items()) + entry.extras)
    for element in platform.siblings:
        _write_element(lines, element.tag, element.fields)
    lines.append(f"</{PLATFORM_ROOT_TAG}>")
    return "\n".join(lines) + "\n"


async def write_platform_file(platform: PlatformFile) -> Path:
    """
    Serialize a platform and write it to its file path.

    The content is written to a temp file first, then renamed over the
    platform file so readers never see a partial file.

    Returns:
        The written path

    Raises:
        OSError: If the file cannot be written
    """
    content = serialize_platform_file(platform)
    file_path = Path(platform.file_path)
    await asyncio.to_thread(file_path.parent.mkdir, parents=True, exist_ok=True)

    temp_path = file_path.with_name(f"{file_path.name}.tmp")
    try:
        async with aiofiles.open(temp_path, "w", encoding="utf-8", newline="\n") as f:
            await f.write(content)
        await asyncio.to_thread(os.replace, temp_path, file_path)
    except OSError:
        if temp_path.exists():
            await asyncio.to_thread(temp_path.unlink)
        raise

    logger.debug(f"Wrote platform '{platform.name}' ({platform.library}) to {file_path}")
    return file_path

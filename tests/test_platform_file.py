"""
Tests for the platform file index: tag grammar, load, serialize and write.
"""

import asyncio

import pytest

from conftest import STATIC_PLATFORMS_PATH, assert_mirrored, create_game, create_platform
from level_archive.models import PlatformParseError
from level_archive.platform_file import (
    PlatformFile,
    PlatformFileFormatError,
    PlatformFileParser,
    RawElement,
    load_platform_file,
    platform_file_path,
    serialize_platform_file,
    write_platform_file,
)

FLASH_PATH = STATIC_PLATFORMS_PATH / "arcade" / "Flash.xml"
FIRST_ID = "0a3e7a5e-2f37-4c2b-9d0b-3b9f7e0c1a01"
SECOND_ID = "0a3e7a5e-2f37-4c2b-9d0b-3b9f7e0c1a02"


def load(path, library=None):
    return asyncio.run(load_platform_file(path, library))


class TestParser:
    """PlatformFileParser reads the tag tree without touching entities"""

    def test_games_and_siblings(self):
        games, siblings = PlatformFileParser.parse_content(FLASH_PATH.read_text(encoding="utf-8"))

        assert [g.tag for g in games] == ["Game", "Game"]
        assert [s.tag for s in siblings] == ["AdditionalApplication"]
        assert siblings[0].get("GameID") == FIRST_ID

    def test_field_text_is_verbatim(self):
        games, _ = PlatformFileParser.parse_content(FLASH_PATH.read_text(encoding="utf-8"))

        assert games[0].get("Title") == "Tom &amp; Jerry&#39;s Chase"
        assert games[0].get("Series") == ""
        assert games[0].get("OriginalDescription") == "Line one\nLine two"

    def test_empty_root(self):
        assert PlatformFileParser.parse_content("<LaunchBox />") == ([], [])
        assert PlatformFileParser.parse_content("<LaunchBox>\n</LaunchBox>\n") == ([], [])

    def test_declaration_and_comments(self):
        content = '<?xml version="1.0"?>\n<!-- c -->\n<LaunchBox><!-- c --><Game><ID>a</ID></Game></LaunchBox><!-- end -->'
        games, _ = PlatformFileParser.parse_content(content)

        assert games[0].fields == [("ID", "a")]

    def test_duplicate_fields_kept(self):
        content = "<LaunchBox><Extra><Path>a</Path><Path>b</Path></Extra></LaunchBox>"
        _, siblings = PlatformFileParser.parse_content(content)

        assert siblings[0].fields == [("Path", "a"), ("Path", "b")]

    @pytest.mark.parametrize("content", [
        "",
        "   \n",
        "<Platforms></Platforms>",
        "<LaunchBox><Game><ID>a</ID></Game>",
        "<LaunchBox><Game><ID>a</Title></Game></LaunchBox>",
        "<LaunchBox><Game><ID>a</ID></LaunchBox>",
        "<LaunchBox>stray<Game></Game></LaunchBox>",
        "<LaunchBox><Game>stray<ID>a</ID></Game></LaunchBox>",
        "<LaunchBox><Game><ID><Inner>a</Inner></ID></Game></LaunchBox>",
        "<LaunchBox></LaunchBox><LaunchBox></LaunchBox>",
        "<LaunchBox></LaunchBox> trailing",
        "</LaunchBox>",
    ])
    def test_malformed_content(self, content):
        with pytest.raises(PlatformFileFormatError):
            PlatformFileParser.parse_content(content)


class TestLoadPlatformFile:
    """load_platform_file() decodes every game in file order"""

    def test_loads_static_file(self):
        platform = load(FLASH_PATH)

        assert isinstance(platform, PlatformFile)
        assert platform.name == "Flash"
        assert platform.library == "arcade"
        assert platform.file_path == FLASH_PATH
        assert [g.id for g in platform.collection] == [FIRST_ID, SECOND_ID]

    def test_games_are_decoded(self):
        first, second = load(FLASH_PATH).collection

        assert first.title == "Tom & Jerry's Chase"
        assert first.order_title == "tom & jerry's chase"
        assert first.developer == "Turner © 2004"
        assert first.tags == "Action; Chase;Cartoon"
        assert first.library == "arcade"
        assert first.broken is False
        assert second.title == "'Zero' & ★ &unknown;"
        assert second.broken is True
        assert second.extreme is True

    def test_raw_is_canonical_encoding(self):
        platform = load(FLASH_PATH)

        assert platform.raw[0]["Title"] == "Tom &amp; Jerry&#39;s Chase"
        assert platform.raw[1]["Title"] == "&#39;Zero&#39; &amp; ★ &amp;unknown;"
        assert platform.raw[1]["Series"] == ""
        assert_mirrored(platform)

    def test_unknown_game_fields_are_extras(self):
        platform = load(FLASH_PATH)

        assert platform.entries[0].extras == [("StarRating", "5")]
        assert "StarRating" not in platform.raw[0]

    def test_library_override(self):
        assert load(FLASH_PATH, library="custom").collection[0].library == "custom"

    def test_malformed_file_is_reported(self, tmp_path):
        path = tmp_path / "arcade" / "Broken.xml"
        path.parent.mkdir()
        path.write_text("<LaunchBox><Game><ID>a</ID></LaunchBox>", encoding="utf-8")

        error = load(path)

        assert isinstance(error, PlatformParseError)
        assert error.file_path == str(path)
        assert "Mismatched" in error.message
        assert str(path) in str(error)

    def test_missing_file_is_reported(self, tmp_path):
        error = load(tmp_path / "arcade" / "Missing.xml")

        assert isinstance(error, PlatformParseError)

    def test_invalid_encoding_is_reported(self, tmp_path):
        path = tmp_path / "Latin.xml"
        path.write_bytes("<LaunchBox><Game><Title>caf\xe9</Title></Game></LaunchBox>".encode("latin-1"))

        assert isinstance(load(path), PlatformParseError)

    def test_byte_order_mark_is_ignored(self, tmp_path):
        path = tmp_path / "Bom.xml"
        path.write_bytes("\ufeff<LaunchBox><Game><ID>a</ID></Game></LaunchBox>".encode("utf-8"))

        assert load(path).collection[0].id == "a"


class TestSerialize:
    """serialize_platform_file() is the inverse of the parse step"""

    def test_reparse_gives_same_content(self, tmp_path):
        platform = load(FLASH_PATH)
        path = tmp_path / "arcade" / "Flash.xml"
        path.parent.mkdir()
        path.write_text(serialize_platform_file(platform), encoding="utf-8")

        reloaded = load(path)

        assert reloaded.raw == platform.raw
        assert reloaded.collection == platform.collection
        assert [e.extras for e in reloaded.entries] == [e.extras for e in platform.entries]
        assert reloaded.siblings == platform.siblings

    def test_uses_raw_entries_only(self, tmp_path):
        platform = create_platform("Flash", "arcade", tmp_path)
        platform.touch(create_game("Flash", "arcade", title="A & B"))
        # Games are never consulted when serializing
        platform.entries[0].game = platform.entries[0].game.replace(title="Changed")

        assert "<Title>A &amp; B</Title>" in serialize_platform_file(platform)

    def test_empty_fields_are_self_closing(self, tmp_path):
        platform = create_platform("Flash", "arcade", tmp_path)
        platform.touch(create_game("Flash", "arcade"))

        content = serialize_platform_file(platform)

        assert "<Series />" in content
        assert "<Broken>false</Broken>" in content

    def test_empty_platform(self, tmp_path):
        content = serialize_platform_file(create_platform("Flash", "arcade", tmp_path))

        assert content.splitlines()[0].startswith("<?xml")
        assert PlatformFileParser.parse_content(content) == ([], [])


class TestEntries:
    """touch() and pop_game() keep raw and collection together"""

    def test_touch_appends(self, tmp_path):
        platform = create_platform("Flash", "arcade", tmp_path)
        games = [create_game("Flash", "arcade", title=f"Game {i}") for i in range(3)]
        for game in games:
            platform.touch(game)

        assert platform.collection == games
        assert_mirrored(platform)

    def test_touch_replaces_and_keeps_extras(self):
        platform = load(FLASH_PATH)
        updated = platform.collection[0].replace(title="New Title")

        platform.touch(updated, 0)

        assert platform.collection[0] == updated
        assert platform.raw[0]["Title"] == "New Title"
        assert platform.entries[0].extras == [("StarRating", "5")]
        assert len(platform) == 2

    def test_pop_game_keeps_order(self, tmp_path):
        platform = create_platform("Flash", "arcade", tmp_path)
        games = [create_game("Flash", "arcade") for _ in range(4)]
        for game in games:
            platform.touch(game)

        entry = platform.pop_game(games[1].id)

        assert entry.game == games[1]
        assert platform.collection == [games[0], games[2], games[3]]
        assert_mirrored(platform)
        assert platform.pop_game(games[1].id) is None

    def test_attachments(self):
        platform = load(FLASH_PATH)

        assert [a.get("Name") for a in platform.attachments_of(FIRST_ID)] == ["Extras"]
        assert platform.attachments_of(SECOND_ID) == []

        taken = platform.take_attachments(FIRST_ID)

        assert len(taken) == 1
        assert platform.siblings == []

    def test_escaped_attachment_reference(self):
        element = RawElement(tag="AdditionalApplication", fields=[("GameID", "a&amp;b")])

        assert element.references("a&b")
        assert not element.references("a&amp;b")


class TestWritePlatformFile:
    """write_platform_file() replaces the file in one step"""

    def test_creates_library_folder(self, tmp_path):
        platform = create_platform("Flash", "new_library", tmp_path)
        platform.touch(create_game("Flash", "new_library", title="Game"))

        path = asyncio.run(write_platform_file(platform))

        assert path == tmp_path / "new_library" / "Flash.xml"
        assert path.read_text(encoding="utf-8") == serialize_platform_file(platform)
        assert list(path.parent.iterdir()) == [path]

    def test_overwrites_existing_file(self, tmp_path):
        platform = create_platform("Flash", "arcade", tmp_path)
        asyncio.run(write_platform_file(platform))
        platform.touch(create_game("Flash", "arcade", title="Game"))

        asyncio.run(write_platform_file(platform))

        assert load(platform.file_path).collection == platform.collection

    def test_unwritable_path_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a folder")
        platform = create_platform("Flash", "arcade", blocker)

        with pytest.raises(OSError):
            asyncio.run(write_platform_file(platform))


def test_platform_file_path(tmp_path):
    assert platform_file_path(tmp_path, "arcade", "Flash", "xml") == tmp_path / "arcade" / "Flash.xml"

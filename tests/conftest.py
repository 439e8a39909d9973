"""
Shared fixtures for the catalog store tests.
"""

import uuid
from pathlib import Path

import pytest

from level_archive.codec import encode_game
from level_archive.models import Game
from level_archive.platform_file import PlatformFile, platform_file_path

STATIC_PLATFORMS_PATH = Path(__file__).parent / "static" / "platforms"


def create_game(platform: str, library: str, **fields) -> Game:
    """Create a game with a random id"""
    return Game(id=str(uuid.uuid4()), platform=platform, library=library, **fields)


def create_platform(name: str, library: str, folder_path: Path) -> PlatformFile:
    """Create an empty platform file (not written to disk)"""
    return PlatformFile(
        file_path=platform_file_path(folder_path, library, name, "xml"),
        name=name,
        library=library,
    )


def assert_mirrored(platform: PlatformFile):
    """raw and collection have the same length and raw[i] encodes collection[i]"""
    assert len(platform.raw) == len(platform.collection)
    for raw, game in zip(platform.raw, platform.collection):
        assert raw == encode_game(game)


@pytest.fixture
def static_platforms_path() -> Path:
    return STATIC_PLATFORMS_PATH


@pytest.fixture
def platforms_path(tmp_path) -> Path:
    """Empty platforms folder for catalogs written by a test"""
    path = tmp_path / "platforms"
    path.mkdir()
    return path

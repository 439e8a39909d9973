"""
Catalog Manager for the platform-backed game catalog.

The only mutation and query surface of the catalog:
- load_all() reads every platform file below the platforms folder
- upsert() adds, updates in place, or moves a game between platform files
- remove() and find() operate over every platform file in catalog order
- save() writes platform files through the serialized task queue

Invariants kept by construction:
- every platform file's `raw` and `collection` have the same length and order
- (library, platform name) is unique across the catalog
- a game id is held by at most one platform file

In-memory mutation is synchronous and expects a single owner. Disk I/O
(loading, and every save task) is the only suspension point.
"""

import asyncio
import os
from functools import partial
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from level_archive.constants import DEFAULT_PLATFORM_EXTENSION, MAX_CONCURRENT_LOADS
from level_archive.logger import setup_logger
from level_archive.models import (
    CatalogConfig,
    Game,
    PlatformInfo,
    PlatformParseError,
    PlatformWriteError,
    SaveReport,
    encode_json,
)
from level_archive.platform_file import (
    PlatformFile,
    load_platform_file,
    platform_file_path,
    write_platform_file,
)
from level_archive.task_queue import SerializedTaskQueue

logger = setup_logger()

GamePredicate = Callable[[Game], bool]


def _platform_key(library: str, name: str) -> Tuple[str, str]:
    """Case-insensitive identity of a platform file"""
    return library.casefold(), name.casefold()


class CatalogManager:
    """
    In-memory catalog of platform files kept in sync with the platforms folder.

    Usage:
        catalog = CatalogManager("Data/Platforms")
        errors = await catalog.load_all()

        catalog.upsert(game)
        report = await catalog.save([catalog.find_platform(game.library, game.platform)])
        if not report.ok:
            ...
    """

    def __init__(
        self,
        platforms_path: Path,
        extension: str = DEFAULT_PLATFORM_EXTENSION,
        save_queue: Optional[SerializedTaskQueue] = None,
    ):
        self.platforms_path = Path(platforms_path)
        self.extension = extension.lstrip(".")
        self.platforms: List[PlatformFile] = []
        self.save_queue = save_queue if save_queue is not None else SerializedTaskQueue()

    @classmethod
    def from_config(cls, config: CatalogConfig) -> "CatalogManager":
        """Create a catalog manager from the catalog configuration."""
        return cls(Path(config.platforms_folder), extension=config.platform_extension)

    # =========================================================================
    # Loading
    # =========================================================================

    def _list_platform_files(self) -> Tuple[List[Path], List[PlatformParseError]]:
        """
        Enumerate <root>/<library>/*.<ext>, sorted by library then file name.

        Raises:
            OSError: If the platforms folder itself cannot be read
        """
        suffix = f".{self.extension}"
        files: List[Path] = []
        errors: List[PlatformParseError] = []

        with os.scandir(self.platforms_path) as entries:
            libraries = sorted(entry.path for entry in entries if entry.is_dir())

        for library_path in libraries:
            try:
                with os.scandir(library_path) as entries:
                    files.extend(sorted(
                        Path(entry.path) for entry in entries
                        if entry.is_file() and entry.name.endswith(suffix)
                    ))
            except OSError as e:
                logger.error(f"Cannot read library folder {library_path}: {e}")
                errors.append(PlatformParseError(file_path=library_path, message=str(e)))
        return files, errors

    async def load_all(self) -> List[PlatformParseError]:
        """
        Load every platform file below the platforms folder.

        Replaces the current catalog content. Files that fail to load are
        reported and skipped, loading continues with the remaining files.

        Returns:
            One PlatformParseError per file (or library folder) that failed

        Raises:
            OSError: If the platforms folder cannot be read
        """
        files, errors = await asyncio.to_thread(self._list_platform_files)
        logger.info(f"Loading {len(files)} platform files from {self.platforms_path}")

        # Parse files concurrently with semaphore limit
        semaphore = asyncio.Semaphore(MAX_CONCURRENT_LOADS)

        async def load_with_limit(file_path: Path):
            async with semaphore:
                return await load_platform_file(file_path)

        results = await asyncio.gather(*[load_with_limit(f) for f in files])

        platforms: List[PlatformFile] = []
        seen = set()
        for result in results:
            if isinstance(result, PlatformParseError):
                errors.append(result)
                continue
            # Names differing only by case share one file on case-insensitive filesystems
            key = _platform_key(result.library, result.name)
            if key in seen:
                logger.error(f"Duplicate platform '{result.name}' ({result.library}) at {result.file_path}")
                errors.append(PlatformParseError(
                    file_path=str(result.file_path),
                    message=f"Duplicate platform '{result.name}' in library '{result.library}'",
                ))
                continue
            seen.add(key)
            platforms.append(result)
        self.platforms = platforms

        game_count = sum(len(platform) for platform in platforms)
        logger.info(f"Loaded {len(platforms)} platforms with {game_count} games ({len(errors)} errors)")
        return errors

    # =========================================================================
    # Queries
    # =========================================================================

    def find_platform(self, library: str, name: str) -> Optional[PlatformFile]:
        """Platform file of (library, name), None if the catalog has none."""
        for platform in self.platforms:
            if platform.library == library and platform.name == name:
                return platform
        return None

    def platforms_of(self, library: str) -> List[PlatformFile]:
        """Every platform file of a library, in catalog order."""
        return [platform for platform in self.platforms if platform.library == library]

    def libraries(self) -> List[str]:
        """Names of every library with at least one platform file, in catalog order."""
        return list(dict.fromkeys(platform.library for platform in self.platforms))

    def platform_infos(self) -> List[PlatformInfo]:
        return [PlatformInfo(name=p.name, library=p.library, size=len(p)) for p in self.platforms]

    def find(self, predicate: GamePredicate) -> Optional[Game]:
        """
        First game matching a predicate.

        Platform files are searched in catalog order, games in collection order.

        Returns:
            The first matching game, None if no game matches
        """
        for platform in self.platforms:
            for game in platform.collection:
                if predicate(game):
                    return game
        return None

    def find_all(self, predicate: GamePredicate) -> List[Game]:
        """Every game matching a predicate, in catalog order."""
        return [game for platform in self.platforms for game in platform.collection if predicate(game)]

    def get_game(self, game_id: str) -> Optional[Game]:
        return self.find(lambda game: game.id == game_id)

    def _locate(self, game_id: str) -> Tuple[Optional[PlatformFile], int]:
        for platform in self.platforms:
            index = platform.index_of(game_id)
            if index >= 0:
                return platform, index
        return None, -1

    # =========================================================================
    # Mutations
    # =========================================================================

    def _get_or_create_platform(self, library: str, name: str) -> PlatformFile:
        platform = self.find_platform(library, name)
        if platform is None:
            # Reuse a platform whose names only differ by case, they share one path on Windows
            key = _platform_key(library, name)
            platform = next((p for p in self.platforms if _platform_key(p.library, p.name) == key), None)
        if platform is None:
            platform = PlatformFile(
                file_path=platform_file_path(self.platforms_path, library, name, self.extension),
                name=name,
                library=library,
            )
            self.platforms.append(platform)
            logger.info(f"Created platform '{name}' ({library}) at {platform.file_path}")
        return platform

    def upsert(self, game: Game) -> PlatformFile:
        """
        Add a game, update it in place, or move it to another platform file.

        The target platform file is picked by the game's (library, platform),
        compared case-insensitively, and created if the catalog has none. The
        stored game takes the spelling of an existing target. Then:
        - no game with the same id: the game is appended to the target
        - the id is in the target: the game is replaced at its index
        - the id is in another platform file: it is removed there and
          appended to the target, together with its attached elements

        Args:
            game: Game to store

        Returns:
            The platform file now holding the game

        Raises:
            ValueError: If the game is a placeholder or has no library/platform
        """
        if game.placeholder:
            raise ValueError(f"Placeholder game '{game.id}' cannot be stored")
        if not game.library or not game.platform:
            raise ValueError(f"Game '{game.id}' has no library or platform")

        target = self._get_or_create_platform(game.library, game.platform)
        if (game.library, game.platform) != (target.library, target.name):
            game = game.replace(library=target.library, platform=target.name)
        source, index = self._locate(game.id)

        if source is None:
            target.touch(game)
            logger.debug(f"Added game '{game.id}' to '{target.name}' ({target.library})")
        elif source is target:
            target.touch(game, index)
            logger.debug(f"Updated game '{game.id}' in '{target.name}' ({target.library})")
        else:
            entry = source.pop_game(game.id)
            attachments = source.take_attachments(game.id)
            target.touch(game, extras=entry.extras)
            target.siblings.extend(attachments)
            logger.debug(
                f"Moved game '{game.id}' from '{source.name}' ({source.library}) "
                f"to '{target.name}' ({target.library})"
            )
        return target

    def remove(self, game_id: str) -> Optional[Game]:
        """
        Remove a game, and the elements attached to it, from its platform file.

        Removing an id the catalog does not hold does nothing.

        Returns:
            The removed game, None if no platform file held it
        """
        platform, _ = self._locate(game_id)
        if platform is None:
            logger.debug(f"Game '{game_id}' not found, nothing to remove")
            return None
        entry = platform.pop_game(game_id)
        platform.take_attachments(game_id)
        logger.debug(f"Removed game '{game_id}' from '{platform.name}' ({platform.library})")
        return entry.game

    # =========================================================================
    # Persistence
    # =========================================================================

    async def save(self, platforms: Iterable[PlatformFile]) -> SaveReport:
        """
        Write platform files through the save queue.

        Each file is serialized when its task runs, so overlapping saves of
        the same file each write a complete snapshot. A failed file does not
        stop the others.

        Returns:
            Report listing the written files and one error per failed file
        """
        platforms = list(platforms)
        handles = [
            self.save_queue.enqueue(
                partial(write_platform_file, platform),
                name=f"save:{platform.library}/{platform.name}",
            )
            for platform in platforms
        ]
        results = await asyncio.gather(*handles, return_exceptions=True)

        report = SaveReport()
        for platform, result in zip(platforms, results):
            if isinstance(result, BaseException):
                logger.error(f"Failed to save platform '{platform.name}' ({platform.library}): {result!r}")
                report.errors.append(PlatformWriteError(
                    file_path=str(platform.file_path),
                    platform=platform.name,
                    library=platform.library,
                    message=str(result) or type(result).__name__,
                ))
            else:
                report.written.append(str(result))
        logger.info(f"Saved {len(report.written)}/{len(platforms)} platform files")
        return report

    async def save_all(self) -> SaveReport:
        """Write every platform file of the catalog."""
        return await self.save(self.platforms)

    def export_json(self) -> bytes:
        """JSON snapshot of the catalog: one object per platform with its games."""
        return encode_json([
            {"library": p.library, "platform": p.name, "games": p.collection}
            for p in self.platforms
        ])

"""
Level Archive - Catalog store entry point
Loads every platform file, reports what was found and optionally re-saves the catalog
"""

import argparse
import asyncio
import sys
from pathlib import Path

from level_archive.catalog import CatalogManager
from level_archive.config import config_manager
from level_archive.logger import set_log_level, setup_logger
from level_archive.version import __version__


async def run(platforms_folder: Path, extension: str, resave: bool, export_path: Path | None) -> int:
    """
    Load the catalog and run the requested actions.

    Returns:
        Process exit code (1 if any platform failed to load or save)
    """
    logger = setup_logger()
    catalog = CatalogManager(platforms_folder, extension=extension)

    try:
        errors = await catalog.load_all()
    except OSError as e:
        logger.error(f"Cannot read platforms folder {platforms_folder}: {e}")
        return 1

    for info in catalog.platform_infos():
        logger.info(f"{info.library}/{info.name}: {info.size} games")
    for error in errors:
        logger.error(str(error))

    if resave:
        report = await catalog.save_all()
        for error in report.errors:
            logger.error(str(error))
        if not report.ok:
            return 1

    if export_path is not None:
        export_path.write_bytes(catalog.export_json())
        logger.info(f"Exported catalog to {export_path}")

    return 1 if errors else 0


def main() -> int:
    settings = config_manager.catalog_config()

    parser = argparse.ArgumentParser(description="Load and check a platform-backed game catalog")
    parser.add_argument("platforms_folder", nargs="?", default=settings.platforms_folder,
                        help="folder holding one sub-folder per library")
    parser.add_argument("--extension", default=settings.platform_extension,
                        help="extension of platform files")
    parser.add_argument("--resave", action="store_true",
                        help="write every loaded platform file back to disk")
    parser.add_argument("--export", type=Path, default=None,
                        help="write a JSON snapshot of the catalog to this path")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args()

    set_log_level(settings.log_level)
    return asyncio.run(run(Path(args.platforms_folder), args.extension, args.resave, args.export))


if __name__ == "__main__":
    sys.exit(main())

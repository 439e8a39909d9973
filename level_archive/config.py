import configparser
import threading
from enum import StrEnum
from pathlib import Path

import appdirs

from .constants import APP_AUTHOR, APP_NAME, DEFAULT_PLATFORM_EXTENSION, DEFAULT_PLATFORMS_FOLDER
from .logger import setup_logger
from .models import CatalogConfig

logger = setup_logger()

CATALOG_SECTION = "Catalog"


class CatalogSetting(StrEnum):
    PLATFORMS_FOLDER = 'PlatformsFolder'
    PLATFORM_EXTENSION = 'PlatformExtension'
    LOG_LEVEL = 'LogLevel'


DEFAULT_SETTINGS = {
    CATALOG_SECTION: {
        CatalogSetting.PLATFORMS_FOLDER: DEFAULT_PLATFORMS_FOLDER,
        CatalogSetting.PLATFORM_EXTENSION: DEFAULT_PLATFORM_EXTENSION,
        CatalogSetting.LOG_LEVEL: 'INFO',
    }
}


def get_config_path() -> str:
    """Path of config.ini inside the user config directory"""
    return str(Path(appdirs.user_config_dir(APP_NAME, APP_AUTHOR)) / "config.ini")


class ConfigManager(configparser.ConfigParser):
    _instance = None
    _instance_lock = threading.Lock()

    def __new__(cls, *args, **kwargs):
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = super(ConfigManager, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        with self._instance_lock:
            if not hasattr(self, 'initialized'):
                super().__init__(interpolation=None)
                self.logger = setup_logger()
                self.config_path = get_config_path()
                self.read_dict(DEFAULT_SETTINGS)
                self.read(self.config_path, encoding='utf-8')
                self.initialized = True

    def _save(self):
        Path(self.config_path).parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as configfile:
            self.write(configfile)

    def update_setting(self, setting: CatalogSetting, value: str):
        self.logger.debug(f'Attempting to update {setting}.')
        # Write changes back to the INI file
        self[CATALOG_SECTION][setting] = value
        self._save()
        self.logger.debug(f'Updated {setting} to {value}.')

    def update_platforms_folder(self, new_platforms_folder: str):
        self.update_setting(CatalogSetting.PLATFORMS_FOLDER, new_platforms_folder)

    def check_setting_value(self, setting: CatalogSetting) -> str:
        return self[CATALOG_SECTION].get(setting)

    def catalog_config(self) -> CatalogConfig:
        """
        Build the validated catalog configuration.

        Raises:
            ValueError: If a setting holds an invalid value
        """
        return CatalogConfig(
            platforms_folder=self.check_setting_value(CatalogSetting.PLATFORMS_FOLDER),
            platform_extension=self.check_setting_value(CatalogSetting.PLATFORM_EXTENSION),
            log_level=self.check_setting_value(CatalogSetting.LOG_LEVEL),
        )


config_manager = ConfigManager()

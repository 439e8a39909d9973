APP_NAME = "LevelArchive"
APP_AUTHOR = "LevelArchive"

# Default library of imported curations
ARCADE = "arcade"

# Platform files
DEFAULT_PLATFORMS_FOLDER = "Data/Platforms"
DEFAULT_PLATFORM_EXTENSION = "xml"
XML_DECLARATION = '<?xml version="1.0" standalone="yes"?>'
PLATFORM_ROOT_TAG = "LaunchBox"
GAME_TAG = "Game"
# Child of a root element that attaches it to a game
ATTACHMENT_REFERENCE_TAG = "GameID"

# Platform files read concurrently by CatalogManager.load_all()
MAX_CONCURRENT_LOADS = 20

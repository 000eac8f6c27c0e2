"""Folder names, file names and defaults shared across the build."""

from __future__ import annotations

PRODUCT_NAME = "LiveDocs"
PRODUCT_VARIABLE = "LiveDocs"
PRODUCT_WEBSITE_URL = "https://livedocs.dev"

SITE_CONFIG_NAME = "site.yml"
CONFIG_FOLDER_NAME = "_livedocs"
TEMP_FOLDER_NAME = ".tmp"
OUTPUT_FOLDER_NAME = "_site"
LOGS_FOLDER_PATH = f"{CONFIG_FOLDER_NAME}/logs"
USER_VARIABLES_PATH = f"{CONFIG_FOLDER_NAME}/variables.yml"
LAYOUT_FOLDER_PATH = f"{CONFIG_FOLDER_NAME}/layouts"
PROJECT_PLUGIN_FOLDER_PATH = f"{CONFIG_FOLDER_NAME}/plugins"

SITE_DATA_NAME = "siteData.json"
SITE_ASSET_FOLDER_NAME = "livedocs"
LAYOUT_SITE_FOLDER_NAME = "layouts"
LAYOUT_DEFAULT_NAME = "default"

FAVICON_DEFAULT_PATH = "favicon.ico"
HEADING_INDEXING_LEVEL_DEFAULT = 3

PLUGIN_PREFIX = "livedocs_"

BASE_URL_PLACEHOLDER = "{{baseUrl}}"

SOURCE_EXTENSIONS = frozenset({".md", ".markdown"})
RESULT_EXTENSION = ".html"

REBUILD_DELAY_SECONDS = 1.0

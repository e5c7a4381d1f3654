# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file),
see src/project_tms/config.py.

This file exists to make the repo self-documenting without opening the code.
"""

ENV_VARS = {
    # App / logging
    "TMS_APP_NAME": "App display name (default: project-tms).",
    "TMS_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Storage
    "TMS_STORAGE_MODE": "local (SQLite cache only) | files (JSON files) | remote (file server + local cache).",
    "TMS_DATA_DIR": "Local data dir for logs and the SQLite cache (default: .local/project-tms).",
    "TMS_STORAGE_DIR": "Directory for <collection>.json files in 'files' mode (default: <data_dir>/storage).",
    "TMS_CACHE_DB_PATH": "SQLite key/value cache (default: <data_dir>/local_cache.sqlite3).",
    "TMS_API_URL": "File server base URL for 'remote' mode (default: http://localhost:3000/api).",
    "TMS_REQUEST_TIMEOUT_SECONDS": "HTTP timeout for the file server (default: 5.0).",
    # Timer ticker
    "TMS_TICKER_ENABLED": "Run the live timer ticker in the background (default: true).",
    "TMS_TICK_INTERVAL_SECONDS": "Ticker interval (default: 1.0).",
}

EXAMPLE_DOTENV = """
TMS_STORAGE_MODE=remote
TMS_API_URL=http://localhost:3000/api
TMS_LOG_LEVEL=INFO
"""

# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets (the API token). Use a local, gitignored .env.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKSYNC_APP_NAME": "App display name (default: tasksync).",
    "TASKSYNC_LOG_LEVEL": "Console logging level (default: INFO).",
    "TASKSYNC_DATA_DIR": "Local data directory for logs (default: .local/tasksync).",
    # Remote task store
    "TASKSYNC_API_BASE_URL": "Task API base URL, e.g. http://localhost:5000/api (empty => offline demo store).",
    "TASKSYNC_API_TOKEN": "Bearer token issued by the auth provider (optional).",
    "TASKSYNC_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    "TASKSYNC_READ_TIMEOUT_SECONDS": "HTTP read timeout (default: 15).",
    # Offline store / console
    "TASKSYNC_OFFLINE_PAGE_SIZE": "Page size of the offline demo store (default: 10).",
    "TASKSYNC_REFRESH_STATS_AFTER_MUTATION": "Re-fetch stats after create/update/delete (default: true).",
}

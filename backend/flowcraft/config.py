"""Configuration loading.

Defaults, then ``config/flowcraft-config.json`` when present, then
``FLOWCRAFT_*`` environment variables, then explicit overrides.
"""

import json
import os

CONFIG_DIR = os.path.join(os.path.dirname(__file__), "..", "config")

DEFAULTS = {
    # "appwrite" talks to the hosted backend, "memory" keeps data in-process
    "BACKEND": "appwrite",
    "ENDPOINT": "http://localhost:80/v1",
    "PROJECT_ID": "default",
    "API_KEY": None,
    "DATABASE_ID": "flowcraft",
    "COLLECTIONS": {
        "issue": "issue",
        "sprint": "sprint",
        "project": "project",
    },
    "REQUEST_TIMEOUT": 30,
    "SELECTION_FILE": os.path.join(CONFIG_DIR, "selection.json"),
    "RESTORE_SELECTION": True,
    "USER_ID": None,
    "STRICT_SPRINTS": False,
    "CORS_ORIGINS": ["http://localhost:3000", "http://127.0.0.1:3000"],
    "INVITE_REDIRECT_URL": "http://localhost:3000/teams/accept-invite",
    "LOG_LEVEL": "INFO",
}


def load_config(app, overrides: dict = None) -> None:
    """Populate ``app.config`` from every configuration source."""
    app.config.from_mapping(DEFAULTS)

    config_path = os.path.join(CONFIG_DIR, "flowcraft-config.json")
    try:
        if app.config.from_file(config_path, load=json.load, silent=True):
            app.logger.info(f"Loaded configuration from {config_path}")
    except json.JSONDecodeError as e:
        app.logger.warning(f"Failed to load FlowCraft config: {e}")

    app.config.from_prefixed_env("FLOWCRAFT")

    if overrides:
        app.config.update(overrides)

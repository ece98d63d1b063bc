# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "CHORES_APP_NAME": "App display name, also the log file name (default: chores).",
    "CHORES_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Connectors
    "CHORES_CONSOLE_ENABLED": (
        "Run the interactive console (true/false). When false, refresh the status cache, "
        "log the Due/Upcoming panels and exit."
    ),
    # Paths (gitignored)
    "CHORES_DATA_DIR": "Local data directory, also holds <app_name>.log (default: .local/chores).",
    "CHORES_DEFINITIONS_PATH": "Chore definitions JSON (default: <data_dir>/tasks.json).",
    "CHORES_HISTORY_PATH": "Completion history CSV (default: <data_dir>/history.csv).",
    # Tuning
    "CHORES_LOCK_TIMEOUT_SECONDS": "Max wait for the write lock before 'store busy' (default: 5).",
    "CHORES_TIMELINE_HORIZON_DAYS": "Timeline projection window in days (default: 365).",
    "CHORES_STRICT_DEFINITIONS": (
        "Fail at startup on any malformed chore instead of excluding it (default: false)."
    ),
}

EXAMPLE_DEFINITIONS = {
    "Mop Floor": {"period_days": 7, "lead_days": 2},
    "Dust Shelves": {"period_days": 14, "lead_days": 3},
    "Water Plants": {"period_days": 3, "lead_days": 0},
    "Clean Fridge": {"period_days": 30, "lead_days": 5},
}

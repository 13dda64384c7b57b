"""
Application configuration using python-dotenv.

Values come from the process environment, optionally seeded from a .env
file next to the project root. The .env file is ignored under pytest so
tests see predictable defaults.
"""

import os
import pathlib

from dotenv import load_dotenv


is_testing = os.getenv("PYTEST_VERSION") is not None

if not is_testing:
    for env_path in (
        pathlib.Path(__file__).parent.parent / ".env",
        pathlib.Path.cwd() / ".env",
    ):
        if env_path.exists():
            load_dotenv(env_path)
            break


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./agenda.db")

# Sessions
SESSION_SECRET_KEY = os.getenv("SESSION_SECRET_KEY", "dev-secret-key-change-in-production")
SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "agenda_session")

# Seeded administrator credential
SEED_ADMIN_CODE = os.getenv("SEED_ADMIN_CODE", "ADM123456")
SEED_ADMIN_LOCATION = os.getenv("SEED_ADMIN_LOCATION", "Sede")

# Business rules
MAX_SLOT_MINUTES = int(os.getenv("MAX_SLOT_MINUTES", "120"))
MIN_ACCESS_CODE_LENGTH = 6

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

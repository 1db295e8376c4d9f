# backend/rentalhub/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/rentalhub.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///rentalhub.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sliding inactivity window for rental sessions (30 minutes)
    SESSION_TIMEOUT_SECONDS = int(os.environ.get("SESSION_TIMEOUT_SECONDS", "1800"))

    # Cookie carrying the opaque session token
    RENTAL_SESSION_COOKIE = os.environ.get("SESSION_COOKIE_NAME", "rental_session")
    RENTAL_SESSION_COOKIE_SECURE = os.environ.get("SESSION_COOKIE_SECURE", "0") == "1"

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

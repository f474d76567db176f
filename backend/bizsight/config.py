# backend/bizsight/config.py
from __future__ import annotations
import os
import tempfile


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/bizsight.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///bizsight.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # CSV uploads are staged here and removed once the import finishes
    UPLOAD_FOLDER = os.environ.get(
        "UPLOAD_FOLDER",
        os.path.join(tempfile.gettempdir(), "bizsight-uploads"),
    )
    MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
    # Werkzeug rejects larger request bodies with 413 before any route runs
    MAX_CONTENT_LENGTH = MAX_UPLOAD_BYTES + 64 * 1024

    # Headerless / oddly headed CSVs: map unknown columns by position
    CSV_POSITIONAL_HEADER_FALLBACK = _env_flag("CSV_POSITIONAL_HEADER_FALLBACK", True)

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "168"))

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    ]

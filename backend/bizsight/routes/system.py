# backend/bizsight/routes/system.py
"""
System health endpoint.

Reports database connectivity and whether the CSV upload folder is usable.
"""

import os
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import User
from bizsight.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"users": user_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_upload_folder_health() -> dict:
    """Degraded (not unhealthy) when uploads cannot be staged; CRUD still works."""
    folder = current_app.config["UPLOAD_FOLDER"]
    try:
        os.makedirs(folder, exist_ok=True)
    except OSError:
        current_app.logger.exception("Upload folder %s is not usable", folder)
        return {"status": "degraded", "error": "Upload folder not writable"}
    if not os.access(folder, os.W_OK):
        return {"status": "degraded", "error": "Upload folder not writable"}
    return {"status": "healthy"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    uploads_health = check_upload_folder_health()

    all_checks = [database_health, uploads_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "uploads": uploads_health,
        },
    }
    return response, http_status

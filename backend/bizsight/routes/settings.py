# Overview: Flask API routes for settings and data management; parses input and returns JSON responses.

from flask import Blueprint, Response, request, g, current_app

from ..services import settings_service
from ..validation import ValidationError
from ..decorators import require_auth

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings_route():
    settings = settings_service.get_or_create_settings(user_id=g.current_user.id)
    return settings.to_dict()


@settings_bp.put("")
@require_auth
def update_settings_route():
    payload = request.get_json(silent=True) or {}
    try:
        settings = settings_service.update_settings(user_id=g.current_user.id, payload=payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    return settings.to_dict()


@settings_bp.post("/reset-data")
@require_auth
def reset_data_route():
    """Delete all of the caller's products and sales. Irreversible."""
    counts = settings_service.reset_user_data(user_id=g.current_user.id)
    current_app.logger.warning(
        "User %s reset their data: %s products, %s sales deleted",
        g.current_user.id,
        counts["products_deleted"],
        counts["sales_deleted"],
    )
    return {"message": "All sales and product data has been reset.", **counts}


@settings_bp.get("/download-raw-data")
@require_auth
def download_raw_data_route():
    body = settings_service.export_raw_data(user_id=g.current_user.id)
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=bizsight_raw_data.csv"},
    )

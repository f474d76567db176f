# Overview: Shared multipart CSV upload handling for the inventory and sales import routes.

from flask import request, jsonify, current_app, g

from ..services import import_service
from ..services.csv_extractor import CsvStreamError, UploadRejectedError, check_upload


def csv_upload_response(import_type: str, field_name: str):
    """
    Run one CSV import from the multipart field field_name.

    Status codes:
    - 200 every row processed
    - 207 some rows failed, the rest were applied
    - 400 upload rejected, unreadable CSV, or the batch was vetoed
    """
    file = request.files.get(field_name)
    try:
        check_upload(file, max_bytes=current_app.config["MAX_UPLOAD_BYTES"])
    except UploadRejectedError as e:
        return jsonify({"error": str(e)}), 400

    try:
        outcome = import_service.run_import(
            import_type,
            user_id=g.current_user.id,
            stream=file.stream,
        )
    except CsvStreamError as e:
        current_app.logger.exception("Failed to read %s CSV upload %r", import_type, file.filename)
        return jsonify({"error": f"Error processing CSV file: {e}"}), 400
    except Exception:
        current_app.logger.exception("Failed to import %s CSV", import_type)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(outcome.to_dict()), outcome.http_status

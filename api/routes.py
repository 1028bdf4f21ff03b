"""
API routes for the Business Card Scanner.

Flask REST API endpoints for scanning cards and managing the contact history.
"""

import io
import logging

from flask import Blueprint, request, jsonify, send_file, current_app

from src.errors import (
    EmptyResultError,
    FormatError,
    NotFound,
    RecognitionError,
    ScannerError,
    StorageError,
    TooManyRecordsError,
    ValidationError,
)
from src.models import LANGUAGES, ContactRecord, CONTACT_FIELDS
from src.pipeline import CardScanPipeline, describe_item

logger = logging.getLogger(__name__)

# Create Blueprint
api_bp = Blueprint("api", __name__, url_prefix="/api")

# HTTP status per error type
ERROR_STATUS = {
    ValidationError: 400,
    FormatError: 400,
    EmptyResultError: 400,
    TooManyRecordsError: 400,
    NotFound: 404,
    RecognitionError: 502,
    StorageError: 500,
}


def get_pipeline() -> CardScanPipeline:
    """Get the pipeline bound to the current application.
    
    Returns:
        CardScanPipeline instance
    """
    return current_app.extensions["card_pipeline"]


def error_response(error: ScannerError):
    """Build the JSON error response for a scanner error."""
    body = {
        "success": False,
        "error": error.message,
        "error_type": type(error).__name__
    }
    if isinstance(error, TooManyRecordsError):
        body["count"] = error.count
        body["limit"] = error.limit
    return jsonify(body), ERROR_STATUS.get(type(error), 400)


def download_response(filename: str, content: bytes, mimetype: str):
    return send_file(
        io.BytesIO(content),
        mimetype=mimetype,
        as_attachment=True,
        download_name=filename
    )


def requested_language() -> str:
    return request.form.get("language") or request.args.get("language") or \
        current_app.config.get("DEFAULT_LANGUAGE", "eng")


@api_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint.
    
    Returns:
        JSON with health status
    """
    return jsonify({
        "success": True,
        "status": "healthy",
        "message": "Business Card Scanner API is running",
        "version": "1.0.0"
    }), 200


@api_bp.route("/status", methods=["GET"])
def get_status():
    """Get pipeline status."""
    return jsonify({
        "success": True,
        "data": get_pipeline().get_status()
    }), 200


@api_bp.route("/languages", methods=["GET"])
def list_languages():
    """List the supported recognizer languages."""
    return jsonify({
        "success": True,
        "data": [{"code": code, "name": name} for code, name in LANGUAGES.items()]
    }), 200


@api_bp.route("/scan", methods=["POST"])
def scan_card():
    """Scan a single business card image and store the contact.
    
    Expects:
        - multipart/form-data with 'file' field
        - Optional 'language' field or query param: eng/hin/mar (default: eng)
    
    Returns:
        JSON with the new history item
    """
    if "file" not in request.files:
        return jsonify({
            "success": False,
            "error": "No file provided. Use 'file' field in form-data."
        }), 400
    
    file = request.files["file"]
    
    if file.filename == "":
        return jsonify({
            "success": False,
            "error": "No file selected"
        }), 400
    
    result = get_pipeline().process_image(file.filename, file.read(), requested_language())
    
    if result["success"]:
        return jsonify(result), 200
    status = {error.__name__: code for error, code in ERROR_STATUS.items()}.get(result.get("error_type"), 400)
    return jsonify(result), status


@api_bp.route("/parse-text", methods=["POST"])
def parse_text():
    """Parse raw text (skip OCR). Nothing is stored.
    
    Expects:
        - JSON body with 'text' field and optional 'confidence' (0-100)
    
    Returns:
        JSON with parsed contact data
    """
    data = request.get_json(silent=True)
    
    if not data or "text" not in data:
        return jsonify({
            "success": False,
            "error": "No text provided. Send JSON with 'text' field."
        }), 400
    
    result = get_pipeline().process_text(str(data["text"]), data.get("confidence", 100))
    return jsonify(result), 200


@api_bp.route("/history", methods=["GET"])
def list_history():
    """List stored contacts, newest first."""
    store = get_pipeline().store
    selected = store.selected
    return jsonify({
        "success": True,
        "data": {
            "items": [describe_item(item) for item in store.items()],
            "selected_id": selected.id if selected else None
        }
    }), 200


@api_bp.route("/history/<item_id>", methods=["GET"])
def select_history_item(item_id: str):
    """Select a history item and return it."""
    item = get_pipeline().store.select(item_id)
    if item is None:
        return error_response(NotFound(item_id))
    return jsonify({
        "success": True,
        "data": describe_item(item)
    }), 200


@api_bp.route("/history/<item_id>", methods=["PUT"])
def edit_history_item(item_id: str):
    """Replace the contact details of a history item.
    
    Expects:
        - JSON body with any of the contact fields; an empty string clears a field
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({
            "success": False,
            "error": "No data provided. Send JSON with contact fields."
        }), 400
    
    store = get_pipeline().store
    current = store.get(item_id)
    if current is None:
        return error_response(NotFound(item_id))
    
    merged = current.contact.to_dict()
    merged.update({k: v for k, v in data.items() if k in CONTACT_FIELDS})
    item = store.edit(item_id, ContactRecord.from_dict(merged))
    if item is None:
        return error_response(NotFound(item_id))
    
    return jsonify({
        "success": True,
        "data": describe_item(item)
    }), 200


@api_bp.route("/history/<item_id>", methods=["DELETE"])
def delete_history_item(item_id: str):
    """Delete a history item."""
    if not get_pipeline().store.delete(item_id):
        return error_response(NotFound(item_id))
    return jsonify({"success": True}), 200


@api_bp.route("/history/<item_id>/vcard", methods=["GET"])
def download_vcard(item_id: str):
    """Download a stored contact as vCard."""
    try:
        filename, content = get_pipeline().export_item_vcard(item_id)
    except ScannerError as e:
        return error_response(e)
    return download_response(filename, content, "text/vcard")


@api_bp.route("/history/<item_id>/csv", methods=["GET"])
def download_item_csv(item_id: str):
    """Download a stored contact as a one-row CSV."""
    try:
        filename, content = get_pipeline().export_item_csv(item_id)
    except ScannerError as e:
        return error_response(e)
    return download_response(filename, content, "text/csv")


@api_bp.route("/import", methods=["POST"])
def import_contacts():
    """Import contacts from a CSV file.
    
    Expects:
        - multipart/form-data with 'file' field (.csv, max 50 contacts)
        - Optional 'language' field for the imported items
    """
    if "file" not in request.files or request.files["file"].filename == "":
        return jsonify({
            "success": False,
            "error": "No file provided. Use 'file' field in form-data."
        }), 400
    
    file = request.files["file"]
    
    try:
        items = get_pipeline().import_csv(file.filename, file.read(), requested_language())
    except ScannerError as e:
        logger.info(f"Import of {file.filename} rejected: {e.message}")
        return error_response(e)
    
    return jsonify({
        "success": True,
        "message": f"Successfully imported {len(items)} contacts.",
        "count": len(items),
        "items": [describe_item(item) for item in items]
    }), 200


@api_bp.route("/export", methods=["GET"])
def export_contacts():
    """Download the whole history as CSV."""
    try:
        filename, content = get_pipeline().export_csv()
    except ScannerError as e:
        return error_response(e)
    return download_response(filename, content, "text/csv")

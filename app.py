"""
Business Card Scanner - Flask Application Entry Point.

Extracts contact details from business card images, keeps an editable
history of contacts and exchanges it as CSV or vCard.
"""

import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import get_config
from api.routes import api_bp
from src.ocr import OCRExtractor
from src.pipeline import CardScanPipeline
from src.store import InMemorySnapshot, JsonFileSnapshot, RecordStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def build_pipeline(config_class) -> CardScanPipeline:
    """Create the scan pipeline and its history store for one app.
    
    Args:
        config_class: Configuration class
        
    Returns:
        CardScanPipeline bound to the configured history backend
    """
    if config_class.HISTORY_PATH:
        persistence = JsonFileSnapshot(config_class.HISTORY_PATH)
    else:
        persistence = InMemorySnapshot()
    
    return CardScanPipeline(
        store=RecordStore(persistence),
        ocr=OCRExtractor(gpu=config_class.OCR_GPU, model_dir=config_class.OCR_MODEL_DIR),
        allowed_extensions=config_class.ALLOWED_EXTENSIONS,
        max_image_size=config_class.MAX_IMAGE_SIZE,
        max_import_records=config_class.MAX_IMPORT_RECORDS
    )


def create_app(config_name: str = None) -> Flask:
    """Application factory for creating Flask app.
    
    Args:
        config_name: Configuration name (development, production, testing)
        
    Returns:
        Configured Flask application
    """
    app = Flask(__name__)
    
    # Load configuration
    config_class = get_config(config_name)
    config_class.init_app(app)
    
    # Enable CORS
    CORS(app, resources={
        r"/api/*": {
            "origins": "*",
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"]
        }
    })
    
    app.extensions["card_pipeline"] = build_pipeline(config_class)
    
    # Register blueprints
    app.register_blueprint(api_bp)
    
    @app.route("/")
    def index():
        """API information endpoint."""
        return jsonify({
            "name": "Business Card Scanner API",
            "version": "1.0.0",
            "description": "Extract contact details from business card images",
            "endpoints": {
                "health": "/api/health",
                "languages": "/api/languages",
                "scan": "POST /api/scan",
                "parse_text": "POST /api/parse-text",
                "history": "GET /api/history",
                "history_item": "GET|PUT|DELETE /api/history/<id>",
                "vcard": "GET /api/history/<id>/vcard",
                "item_csv": "GET /api/history/<id>/csv",
                "import": "POST /api/import",
                "export": "GET /api/export"
            }
        })
    
    # Global error handlers
    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return jsonify({
            "success": False,
            "error": "Not found"
        }), 404
    
    @app.errorhandler(413)
    def request_entity_too_large(error):
        """Handle file too large errors."""
        return jsonify({
            "success": False,
            "error": f"File too large. Maximum size: {config_class.MAX_IMAGE_SIZE // (1024*1024)}MB"
        }), 413
    
    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        if isinstance(error, HTTPException):
            return jsonify({
                "success": False,
                "error": error.description
            }), error.code
        logger.error(f"Uncaught exception: {str(error)}", exc_info=True)
        return jsonify({
            "success": False,
            "error": "An unexpected error occurred"
        }), 500
    
    logger.info(f"Application created with config: {config_class.__name__}")
    
    return app


if __name__ == "__main__":
    # Get port from environment or default to 5000
    port = int(os.getenv("PORT", 5000))
    debug = os.getenv("CARD_SCANNER_DEBUG", "True").lower() == "true"
    
    logger.info(f"Starting server on port {port}, debug={debug}")
    
    create_app().run(
        host="0.0.0.0",
        port=port,
        debug=debug
    )

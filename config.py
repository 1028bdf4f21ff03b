"""
Configuration management for the Business Card Scanner.

Handles environment variables and application settings.
"""

import os
import logging
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


class Config:
    """Application configuration class.
    
    Attributes:
        DEBUG: Enable debug mode
        TESTING: Enable testing mode
        SECRET_KEY: Flask secret key
        MAX_IMAGE_SIZE: Maximum card image size (10MB)
        MAX_CONTENT_LENGTH: Maximum request size (MAX_IMAGE_SIZE plus 1MB for form data)
        ALLOWED_EXTENSIONS: Allowed card image extensions
        HISTORY_PATH: JSON file holding the contact history, empty for in-memory
    """
    
    # Flask Settings
    DEBUG: bool = os.getenv("CARD_SCANNER_DEBUG", "False").lower() == "true"
    TESTING: bool = os.getenv("CARD_SCANNER_TESTING", "False").lower() == "true"
    SECRET_KEY: str = os.getenv("CARD_SCANNER_SECRET_KEY", "dev-secret-key-change-in-production")
    
    # File Upload Settings
    MAX_IMAGE_SIZE: int = 10 * 1024 * 1024  # 10MB max card image
    MAX_CONTENT_LENGTH: int = MAX_IMAGE_SIZE + 1024 * 1024  # room for form overhead
    ALLOWED_EXTENSIONS: set = {"png", "jpg", "jpeg"}
    
    # History Settings
    HISTORY_PATH: str = os.getenv("CARD_SCANNER_HISTORY_PATH", "data/business-card-history.json")
    MAX_IMPORT_RECORDS: int = int(os.getenv("CARD_SCANNER_MAX_IMPORT_RECORDS", "50"))
    DEFAULT_LANGUAGE: str = os.getenv("CARD_SCANNER_DEFAULT_LANGUAGE", "eng")
    
    # OCR Settings
    OCR_GPU: bool = os.getenv("CARD_SCANNER_OCR_GPU", "False").lower() == "true"
    OCR_MODEL_DIR: str = os.getenv("CARD_SCANNER_OCR_MODEL_DIR", "./models")
    
    # Logging
    LOG_LEVEL: str = os.getenv("CARD_SCANNER_LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    
    @classmethod
    def init_app(cls, app) -> None:
        """Initialize Flask app with configuration.
        
        Args:
            app: Flask application instance
        """
        app.config.from_object(cls)
        
        if cls.HISTORY_PATH:
            os.makedirs(os.path.dirname(cls.HISTORY_PATH) or ".", exist_ok=True)
        
        # Configure logging
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL.upper()),
            format=cls.LOG_FORMAT
        )
        
        logger.info("Configuration initialized successfully")


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = "DEBUG"


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    LOG_LEVEL = "INFO"


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True
    LOG_LEVEL = "DEBUG"
    HISTORY_PATH = ""  # keep history in memory


# Configuration mapping
config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig
}


def get_config(config_name: Optional[str] = None) -> Config:
    """Get configuration class by name.
    
    Args:
        config_name: Configuration name (development, production, testing)
        
    Returns:
        Configuration class
    """
    if config_name is None:
        config_name = os.getenv("CARD_SCANNER_ENV", "development")
    return config_by_name.get(config_name, DevelopmentConfig)

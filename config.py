# config.py - Configuration management for Form to HighLevel Router

import os
from typing import Dict, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

class AppConfig:
    """
    Centralized configuration management for the application
    """

    # GHL API Configuration
    GHL_PRIVATE_TOKEN: str = os.getenv("GHL_PRIVATE_TOKEN", "")
    GHL_LOCATION_ID: str = os.getenv("GHL_LOCATION_ID", "")
    GHL_API_BASE_URL: str = os.getenv("GHL_API_BASE_URL", "https://services.leadconnectorhq.com")
    GHL_REQUEST_TIMEOUT: int = int(os.getenv("GHL_REQUEST_TIMEOUT", "30"))
    GHL_SCHEMA_TIMEOUT: int = int(os.getenv("GHL_SCHEMA_TIMEOUT", "15"))
    CUSTOM_FIELDS_CACHE_TTL: int = int(os.getenv("CUSTOM_FIELDS_CACHE_TTL", "3600"))

    # Lead source sent with every contact unless a mapping overrides it
    DEFAULT_LEAD_SOURCE: str = os.getenv("DEFAULT_LEAD_SOURCE", "Website Form")

    # Basic (global) field mapping used when a form has no per-form mapping
    BASIC_FULL_NAME_FIELD: str = os.getenv("BASIC_FULL_NAME_FIELD", "your-name")
    BASIC_EMAIL_FIELD: str = os.getenv("BASIC_EMAIL_FIELD", "your-email")
    BASIC_PHONE_FIELD: str = os.getenv("BASIC_PHONE_FIELD", "your-phone")
    BASIC_MESSAGE_FIELD: str = os.getenv("BASIC_MESSAGE_FIELD", "your-message")

    # Server Configuration
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Database Configuration
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")

    @classmethod
    def validate_config(cls) -> bool:
        """
        Validate that required configuration is present
        """
        return not cls.get_missing_fields()

    @classmethod
    def get_missing_fields(cls) -> list:
        required_fields = [
            "GHL_PRIVATE_TOKEN",
            "GHL_LOCATION_ID",
        ]
        return [field for field in required_fields if not getattr(cls, field)]

    @classmethod
    def get_basic_field_mapping(cls) -> Dict[str, str]:
        """
        Global form field names for the default payload, keyed by basic role
        """
        return {
            "full_name": cls.BASIC_FULL_NAME_FIELD,
            "email": cls.BASIC_EMAIL_FIELD,
            "phone": cls.BASIC_PHONE_FIELD,
            "message": cls.BASIC_MESSAGE_FIELD,
        }

    @classmethod
    def get_ghl_config(cls) -> dict:
        """
        Get GHL connection settings
        """
        return {
            "private_token": cls.GHL_PRIVATE_TOKEN,
            "location_id": cls.GHL_LOCATION_ID,
            "base_url": cls.GHL_API_BASE_URL,
            "timeout": cls.GHL_REQUEST_TIMEOUT,
            "schema_timeout": cls.GHL_SCHEMA_TIMEOUT,
        }

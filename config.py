"""
Configuration management for S3 Content Search.
Loads settings from environment variables with sensible defaults.
"""

import os
from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


class Settings:
    """Application settings loaded from environment."""

    # Environment ("dev" targets a local S3 emulator)
    APP_ENV: str = os.getenv("APP_ENV", "prod")

    # AWS
    AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
    AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
    AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")
    S3_ENDPOINT_URL: str = os.getenv("S3_ENDPOINT_URL", "")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Application
    APP_NAME: str = "S3 Content Search"
    APP_VERSION: str = "1.0.0"
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "7981"))

    # ==========================================================================
    # Search tunables
    # ==========================================================================

    # Objects larger than this (bytes) are never fetched (default 500 MiB)
    MAX_ALLOWED_FILE_SIZE: int = int(os.getenv("MAX_ALLOWED_FILE_SIZE", str(500 * 1024 * 1024)))

    # Keys requested per list_objects_v2 call
    LIST_PAGE_SIZE: int = int(os.getenv("LIST_PAGE_SIZE", "1000"))

    # Concurrent fetch+match workers per search
    MAX_WORKERS: int = int(os.getenv("MAX_WORKERS", "32"))

    # Bytes read from an object body per chunk (default 1 MiB)
    DOWNLOAD_CHUNK_SIZE: int = int(os.getenv("DOWNLOAD_CHUNK_SIZE", str(1024 * 1024)))

    # Total attempts per get_object call; 1 disables retries
    FETCH_MAX_ATTEMPTS: int = int(os.getenv("FETCH_MAX_ATTEMPTS", "1"))

    # Searches started from the API are cancelled after this many seconds (0 = no deadline)
    SEARCH_TIMEOUT_SECONDS: float = float(os.getenv("SEARCH_TIMEOUT_SECONDS", "60"))

    @classmethod
    def validate(cls) -> list[str]:
        """Validate settings. Returns list of missing/invalid settings."""
        issues = []

        # Credentials are optional (boto3 falls back to its default chain)
        # but warn if partially configured
        aws_vars = [cls.AWS_ACCESS_KEY_ID, cls.AWS_SECRET_ACCESS_KEY]
        if any(aws_vars) and not all(aws_vars):
            issues.append("AWS credentials partially configured - need both ACCESS_KEY_ID and SECRET_ACCESS_KEY")

        positive = {
            "MAX_ALLOWED_FILE_SIZE": cls.MAX_ALLOWED_FILE_SIZE,
            "LIST_PAGE_SIZE": cls.LIST_PAGE_SIZE,
            "MAX_WORKERS": cls.MAX_WORKERS,
            "DOWNLOAD_CHUNK_SIZE": cls.DOWNLOAD_CHUNK_SIZE,
            "FETCH_MAX_ATTEMPTS": cls.FETCH_MAX_ATTEMPTS,
        }
        for name, value in positive.items():
            if value < 1:
                issues.append(f"{name} must be a positive integer, got {value}")

        # S3 caps MaxKeys at 1000 per request
        if cls.LIST_PAGE_SIZE > 1000:
            issues.append(f"LIST_PAGE_SIZE above 1000 is capped by S3, got {cls.LIST_PAGE_SIZE}")

        if cls.SEARCH_TIMEOUT_SECONDS < 0:
            issues.append("SEARCH_TIMEOUT_SECONDS must not be negative")

        return issues


settings = Settings()

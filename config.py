"""
Application configuration.

This module defines the configuration settings for the order desk service: database connection, secret key,
logging level and dashboard preview sizes. It uses environment variables for sensitive information and defaults
for development. In production, make sure to set the appropriate environment variables and secure the secret key.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Base configuration shared by all environments."""

    # IMPORTANT: change this in production
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me-please")

    # Database: SQLite for development (simple file in project folder)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'orderdesk.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging level for the "orderdesk" logger hierarchy
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Currency used for new purchase orders
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "INR")

    # Dashboard cards show only the first N rows
    PAYMENT_TRACKER_PREVIEW = int(os.environ.get("PAYMENT_TRACKER_PREVIEW", "3"))
    ORDER_UPDATES_PREVIEW = int(os.environ.get("ORDER_UPDATES_PREVIEW", "10"))

    # App name (returned by the API root)
    APP_NAME = "Order Desk"


class TestingConfig(Config):
    """In-memory database, used by the test suite."""

    TESTING = True
    SECRET_KEY = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "DEBUG"

# backend/stocktrack/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stocktrack.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Reports bucket sales by calendar day in this zone, not UTC
    REPORT_TIMEZONE = os.environ.get("STOCKTRACK_TIMEZONE", "UTC")

    LOW_STOCK_THRESHOLD = int(os.environ.get("STOCKTRACK_LOW_STOCK_THRESHOLD", "10"))

    LOG_LEVEL = os.environ.get("STOCKTRACK_LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    REPORT_TIMEZONE = "UTC"
    LOW_STOCK_THRESHOLD = 10

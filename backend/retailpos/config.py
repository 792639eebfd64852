# backend/retailpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/retailpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///retailpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Angular admin dev/preview servers
    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:4200,http://127.0.0.1:4200",
        ).split(",")
        if origin.strip()
    }

    # Catalog defaults
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "USD")
    DEFAULT_MIN_STOCK = int(os.environ.get("DEFAULT_MIN_STOCK", "10"))
    DEFAULT_LOCATION = os.environ.get("DEFAULT_LOCATION", "Main Store")

    # Rates are decimal strings so they reach Decimal() unrounded
    SALE_TAX_RATE = os.environ.get("SALE_TAX_RATE", "0")
    INVOICE_TAX_RATE = os.environ.get("INVOICE_TAX_RATE", "0.10")
    INVOICE_DUE_DAYS = int(os.environ.get("INVOICE_DUE_DAYS", "30"))
    INVOICE_TERMS = os.environ.get("INVOICE_TERMS", "Net 30")

    TOP_PRODUCTS_LIMIT = int(os.environ.get("TOP_PRODUCTS_LIMIT", "10"))
    TOP_CUSTOMERS_LIMIT = int(os.environ.get("TOP_CUSTOMERS_LIMIT", "10"))
    CUSTOMER_REPORT_LIMIT = int(os.environ.get("CUSTOMER_REPORT_LIMIT", "20"))
    POS_SEARCH_LIMIT = int(os.environ.get("POS_SEARCH_LIMIT", "10"))

    # Loyalty points earned per unit of currency on completed sales
    LOYALTY_POINTS_RATE = os.environ.get("LOYALTY_POINTS_RATE", "0.10")

    DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "20"))
    MAX_PAGE_SIZE = int(os.environ.get("MAX_PAGE_SIZE", "100"))

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    # bcrypt cost factor; tests lower it to keep fixtures fast
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

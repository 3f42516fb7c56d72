# backend/dealerhub/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/dealerhub.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///dealerhub.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # bcrypt cost factor for the database identity provider
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Transaction retry budget for code transfers (optimistic-lock conflicts, deadlocks)
    TRANSFER_RETRY_ATTEMPTS = int(os.environ.get("TRANSFER_RETRY_ATTEMPTS", "3"))
    TRANSFER_RETRY_BACKOFF = float(os.environ.get("TRANSFER_RETRY_BACKOFF", "0.1"))

    # Largest quantity a single transfer may move
    MAX_TRANSFER_QUANTITY = int(os.environ.get("MAX_TRANSFER_QUANTITY", "100000"))

    # Shown on root Admin profiles only; Admin balance never limits generation
    ADMIN_DISPLAY_BALANCE = int(os.environ.get("ADMIN_DISPLAY_BALANCE", "99999"))

    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:9002",
        ).split(",")
        if origin.strip()
    )

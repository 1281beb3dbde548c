# -*- coding: utf-8 -*-
"""
Environment-driven settings for the ops console backend
"""
import os

from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
ENV_PATH = os.path.join(BASE_DIR, ".env")


def _int(name, default):
    return int(os.getenv(name, default))


def _float(name, default):
    return float(os.getenv(name, default))


def load_config(overrides=None):
    """Settings from .env / the environment, with explicit overrides on top."""
    load_dotenv(ENV_PATH)

    config = {
        "DATABASE_URL": os.getenv("DATABASE_URL"),
        "SECRET_KEY": os.getenv("SECRET_KEY", "dev-secret-key-change-in-production"),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
        "CORS_ORIGINS": os.getenv("CORS_ORIGINS", "*"),
        "OPS_CACHE_TTL_SECONDS": _float("OPS_CACHE_TTL_SECONDS", 300),
        "OPS_IDENTITY_RETRIES": _int("OPS_IDENTITY_RETRIES", 3),
        "OPS_IDENTITY_BACKOFF_SECONDS": _float("OPS_IDENTITY_BACKOFF_SECONDS", 0.2),
        "OPS_HISTORY_DEFAULT_LIMIT": _int("OPS_HISTORY_DEFAULT_LIMIT", 10),
        "OPS_DEFAULT_PAGE_SIZE": _int("OPS_DEFAULT_PAGE_SIZE", 5),
        "OPS_MAX_PAGE_SIZE": _int("OPS_MAX_PAGE_SIZE", 100),
        "OPS_CREATE_TABLES": os.getenv("OPS_CREATE_TABLES", "").lower() in ("1", "true", "yes"),
    }
    if overrides:
        config.update(overrides)
    return config

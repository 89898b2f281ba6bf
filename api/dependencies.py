"""
FastAPI dependencies
"""

from core.config import Settings, load_settings


def get_settings() -> Settings:
    """Settings for the current request; raises ConfigError when invalid"""
    return load_settings()

from .settings import Settings, settings
from .logger_config import logger

__all__ = ["Settings", "settings", "logger"]

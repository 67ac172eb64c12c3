"""
Utilities Module
================

Common utilities shared across the application:
- logger: Context-aware logging with levels and structured data
- config: Centralized, typed configuration loaded from the environment
"""

from advisor_bot.utils.logger import Logger, logger
from advisor_bot.utils.config import get_config, load_config, Config

__all__ = ["Logger", "logger", "get_config", "load_config", "Config"]

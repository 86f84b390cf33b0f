"""
Configuration module for the StoryCall application.

This module provides centralized configuration management for the entire application,
including constants, prompt text, logging setup, and environment-based settings.

Key components:
- constants: Application-wide constants such as the logger name, upstream paths,
  retry limits and data-channel event kinds.
- prompts: Default agent instructions and greeting text.
- settings: Process-wide settings read once from the environment at start-up.
- logging_config: Console and rotating file logging setup.

Usage examples:
```python
from storycall.config.settings import Settings
from storycall.config.logging_config import configure_logging

logger = configure_logging()
settings = Settings.from_env()
logger.info(f"Realtime model: {settings.model}")
```
"""

# Config module initialization

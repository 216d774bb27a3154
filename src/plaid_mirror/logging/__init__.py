"""Centralized logging configuration for plaid-mirror.

Standard usage:
    ```python
    import logging
    from plaid_mirror.logging import setup_logging

    # Configure once at application startup
    setup_logging()

    # Get loggers in each module
    logger = logging.getLogger(__name__)
    ```
"""

from .config import LoggingConfig, setup_logging

__all__ = ["LoggingConfig", "setup_logging"]

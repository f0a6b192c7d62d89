"""Utility modules for logging."""

from email_footer.utils.logging import OperationLogger, logger, setup_logging

__all__ = ["logger", "setup_logging", "OperationLogger"]

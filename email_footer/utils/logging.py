"""Logging configuration and utilities."""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from email_footer.models.signature import SignResult

# Create module logger
logger = logging.getLogger("email_footer")


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    verbose: bool = False,
) -> None:
    """Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional path to log file.
        verbose: If True, include timestamps and logger names.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)

    # Clear existing handlers
    logger.handlers.clear()

    # Console goes to stderr so signed output can be piped from stdout
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)

    if verbose:
        console_format = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    else:
        console_format = logging.Formatter("%(message)s")

    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # Always verbose in file

        file_format = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)


class OperationLogger:
    """Structured logging for signing operations with JSONL output."""

    def __init__(self, log_path: Path | None = None) -> None:
        """Initialize operation logger.

        Args:
            log_path: Path to JSONL log file.
        """
        self.log_path = log_path
        if log_path:
            log_path.parent.mkdir(parents=True, exist_ok=True)

    def log_operation(
        self,
        operation: str,
        message_id: str,
        success: bool,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Log operation with structured data.

        Args:
            operation: Operation name (sign, validate).
            message_id: Message-ID of the processed email.
            success: Whether operation succeeded.
            details: Additional details.
        """
        entry = {
            "timestamp": datetime.now().isoformat(),
            "operation": operation,
            "message_id": message_id,
            "success": success,
            "details": details or {},
        }

        if success:
            logger.info(f"{operation}: {message_id or '<no message-id>'} - success")
        else:
            logger.warning(f"{operation}: {message_id or '<no message-id>'} - failed")

        if self.log_path:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")

    def log_sign(self, result: "SignResult", output: Path | None = None) -> None:
        """Log a completed signing run.

        Records which heuristic placed each footer, how many attachments went
        into the tree and how many had to fall back to multipart/mixed.

        Args:
            result: Result returned by the signer.
            output: File the signed message was written to, None for stdout.
        """
        details = {
            "plain_tier": result.plain_tier,
            "html_tier": result.html_tier,
            "attachments_placed": result.attachments_placed,
            "attachments_flushed": result.attachments_flushed,
            "skipped_parts": result.skipped_parts,
            "output": str(output) if output else None,
        }
        if result.attachments_flushed:
            logger.info(f"{result.attachments_flushed} attachment(s) fell back to multipart/mixed")

        self.log_operation("sign", result.message_id, success=True, details=details)

    def log_error(
        self,
        operation: str,
        message_id: str,
        error: Exception,
    ) -> None:
        """Log error with its type and message.

        Args:
            operation: Operation that failed.
            message_id: Message-ID of the processed email.
            error: Exception that occurred.
        """
        details = {
            "error_type": type(error).__name__,
            "error_message": str(error),
        }

        self.log_operation(operation, message_id, success=False, details=details)
        logger.error(f"{operation} failed for {message_id or '<no message-id>'}: {error}")

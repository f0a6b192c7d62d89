"""Data models for footers, attachments and signing results."""

from email_footer.models.signature import (
    AttachmentSpec,
    AttachmentState,
    Footer,
    SigningContext,
    SignResult,
    ValidationResult,
)

__all__ = [
    "Footer",
    "AttachmentSpec",
    "AttachmentState",
    "SigningContext",
    "SignResult",
    "ValidationResult",
]

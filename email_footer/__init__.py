"""Add a signature footer and attachments to email messages."""

from email_footer.exceptions import (
    AttachmentError,
    ConfigError,
    InvalidArgumentError,
    SignatureError,
    UnsupportedStructureError,
)
from email_footer.models.signature import AttachmentSpec, Footer, SignResult
from email_footer.processor.signer import Signer

__version__ = "1.0.0"

__all__ = [
    "Signer",
    "Footer",
    "AttachmentSpec",
    "SignResult",
    "SignatureError",
    "InvalidArgumentError",
    "UnsupportedStructureError",
    "AttachmentError",
    "ConfigError",
]

"""Exceptions raised by the signing engine."""


class SignatureError(Exception):
    """Base class for all email-footer errors."""


class InvalidArgumentError(SignatureError, ValueError):
    """Raised when a footer, attachment spec or message argument is malformed."""


class UnsupportedStructureError(SignatureError):
    """Raised when a MIME part cannot be handled by the rewrite rules.

    Never fatal: the driver logs it and passes the part through unchanged.
    """


class AttachmentError(SignatureError):
    """Raised when an attachment file cannot be read."""


class ConfigError(SignatureError):
    """Raised when the YAML configuration cannot be loaded."""

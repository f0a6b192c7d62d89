"""Email processing module for footer insertion and attachment placement."""

from email_footer.processor.attachments import AttachmentPlacementRule
from email_footer.processor.footer import FooterInsertionRule
from email_footer.processor.signer import MIMETreeWalker, Signer
from email_footer.processor.validator import PreflightChecker, SignatureValidator

__all__ = [
    "Signer",
    "MIMETreeWalker",
    "AttachmentPlacementRule",
    "FooterInsertionRule",
    "SignatureValidator",
    "PreflightChecker",
]

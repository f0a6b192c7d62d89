"""Validation of signed emails."""

from collections import Counter
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from typing import Iterable

from email_footer.models.signature import (
    HTML_MARKER,
    PLAIN_MARKER,
    AttachmentSpec,
    ValidationResult,
)
from email_footer.processor.mime_handler import MIMEHandler


class SignatureValidator:
    """Validates signed emails before they are sent on.

    Ensures the message identity is untouched, the MIME structure is
    valid, each attachment was added exactly once and each footer at most
    once.
    """

    # Headers that must be preserved exactly
    CRITICAL_HEADERS = [
        "Message-ID",
        "Date",
        "From",
        "Subject",
        "In-Reply-To",
        "References",
    ]

    def __init__(self) -> None:
        """Initialize validator."""
        self._parser = BytesParser(policy=policy.default)

    def validate(
        self,
        original: bytes,
        signed: bytes,
        attachments: Iterable[AttachmentSpec] = (),
    ) -> ValidationResult:
        """Comprehensive validation of a signed message.

        Args:
            original: Original email bytes.
            signed: Signed email bytes.
            attachments: Attachments the signer was configured with.

        Returns:
            ValidationResult with detailed analysis.
        """
        original_msg = self._parser.parsebytes(original)
        signed_msg = self._parser.parsebytes(signed)

        header_issues = self._check_headers_preserved(original_msg, signed_msg)
        mime_issues = self._check_mime_validity(signed_msg)
        attachment_issues = self._check_attachments(original_msg, signed_msg, list(attachments))

        warnings = self._check_markers(original_msg, signed_msg)

        return ValidationResult(
            is_valid=not (header_issues or mime_issues or attachment_issues),
            original_size=len(original),
            signed_size=len(signed),
            header_issues=header_issues,
            mime_issues=mime_issues,
            attachment_issues=attachment_issues,
            warnings=warnings,
        )

    def _check_headers_preserved(
        self,
        original: EmailMessage,
        signed: EmailMessage,
    ) -> list[str]:
        """Verify critical headers are preserved.

        Args:
            original: Original email message.
            signed: Signed email message.

        Returns:
            List of issues found.
        """
        issues = []

        for header in self.CRITICAL_HEADERS:
            original_value = original.get(header, "")
            signed_value = signed.get(header, "")

            if original_value and not signed_value:
                issues.append(f"Missing critical header: {header}")
            elif original_value != signed_value:
                issues.append(f"Modified critical header: {header}")

        return issues

    def _check_mime_validity(self, msg: EmailMessage) -> list[str]:
        """Verify MIME structure is valid.

        Args:
            msg: Email message to check.

        Returns:
            List of issues found.
        """
        issues = []

        if msg.is_multipart() and msg.get_content_maintype() == "multipart":
            if not msg.get_boundary():
                issues.append("Multipart message missing boundary")

            parts = list(msg.iter_parts())
            if not parts:
                issues.append("Multipart message has no parts")

            for i, part in enumerate(parts):
                for issue in self._check_mime_validity(part):
                    issues.append(f"Part {i + 1}: {issue}")

        return issues

    def _check_attachments(
        self,
        original: EmailMessage,
        signed: EmailMessage,
        attachments: list[AttachmentSpec],
    ) -> list[str]:
        """Verify every attachment appears exactly once more than before.

        Attachments with a Content-ID are counted by Content-ID, others by
        file name.
        """
        expected = Counter(self._attachment_key(spec) for spec in attachments)
        before = self._count_keys(original)
        after = self._count_keys(signed)

        issues = []
        for key, count in expected.items():
            added = after[key] - before[key]
            if added != count:
                issues.append(f"Attachment {key[1]} added {added} time(s), expected {count}")
        return issues

    def _check_markers(self, original: EmailMessage, signed: EmailMessage) -> list[str]:
        warnings = []
        for token in (PLAIN_MARKER, HTML_MARKER):
            added = self._count_marker(signed, token) - self._count_marker(original, token)
            if added > 1:
                warnings.append(f"{token} marker found on {added} parts")
        return warnings

    @staticmethod
    def _attachment_key(spec: AttachmentSpec) -> tuple[str, str]:
        if spec.content_id:
            return ("cid", spec.content_id)
        return ("filename", spec.filename)

    @staticmethod
    def _count_keys(msg: EmailMessage) -> Counter:
        counts: Counter = Counter()
        for part in msg.walk():
            if part.is_multipart():
                continue
            cid = part.get("Content-ID")
            if cid:
                counts[("cid", str(cid).strip())] += 1
            filename = part.get_filename()
            if filename:
                counts[("filename", filename)] += 1
        return counts

    @staticmethod
    def _count_marker(msg: EmailMessage, token: str) -> int:
        return sum(1 for part in msg.walk() if MIMEHandler.has_marker(part, token))


class PreflightChecker:
    """Pre-flight checks before signing an email."""

    # Adding content would break the signature or cannot be done at all
    PROTECTED_TYPES = {
        "multipart/signed",
        "multipart/encrypted",
        "application/pkcs7-mime",
        "application/x-pkcs7-mime",
        "application/pgp-encrypted",
    }

    @staticmethod
    def can_sign(msg: EmailMessage) -> tuple[bool, list[str]]:
        """Check if a message can be safely signed.

        Args:
            msg: Parsed email message.

        Returns:
            Tuple of (can_sign, list of reasons if not).
        """
        reasons = []

        content_type = msg.get_content_type()
        if content_type in PreflightChecker.PROTECTED_TYPES:
            reasons.append(f"Message is {content_type} (S/MIME or PGP)")

        return len(reasons) == 0, reasons

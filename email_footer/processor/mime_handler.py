"""Low-level MIME manipulation utilities."""

import copy
from email.message import EmailMessage
from email.utils import collapse_rfc2231_value
from enum import Enum

from email_footer.exceptions import AttachmentError, UnsupportedStructureError
from email_footer.models.signature import MARKER_HEADER, AttachmentSpec
from email_footer.utils.logging import logger


class PartKind(Enum):
    """The kinds of MIME part the rewrite rules distinguish."""

    PLAIN_TEXT = "plain"
    HTML = "html"
    MULTIPART = "multipart"
    OTHER = "other"


class MIMEHandler:
    """Low-level MIME manipulation utilities.

    Provides helper methods for classifying parts, reading and writing the
    marker header, replacing text bodies and restructuring containers.
    """

    @staticmethod
    def kind_of(part: EmailMessage) -> PartKind:
        """Classify a part for the rewrite rules.

        Text parts sent as attachments, inline files included, are OTHER:
        footers only go into message bodies. ``message/rfc822`` parts are
        OTHER so the walker does not descend into forwarded messages.

        Args:
            part: Email message part.

        Returns:
            PartKind of the part.
        """
        if part.get_content_maintype() == "multipart" and part.is_multipart():
            return PartKind.MULTIPART

        if MIMEHandler.is_attachment(part):
            return PartKind.OTHER

        content_type = part.get_content_type()
        if content_type == "text/plain":
            return PartKind.PLAIN_TEXT
        if content_type == "text/html":
            return PartKind.HTML
        return PartKind.OTHER

    @staticmethod
    def is_attachment(part: EmailMessage) -> bool:
        """Check if part is an attached file rather than a message body.

        Parts with attachment disposition, and inline parts that name a
        file (such as the parts build_attachment_part creates), count.

        Args:
            part: Email message part.

        Returns:
            True if part is an attached file.
        """
        disposition = part.get_content_disposition()
        if disposition == "attachment":
            return True
        return disposition == "inline" and part.get_filename() is not None

    @staticmethod
    def get_children(part: EmailMessage) -> list[EmailMessage]:
        """Return the child parts of a multipart container.

        Args:
            part: Multipart part.

        Returns:
            List of child parts (the container's own payload list).

        Raises:
            UnsupportedStructureError: If the payload is not a part list,
                e.g. a multipart with a missing or broken boundary.
        """
        payload = part.get_payload()
        if not isinstance(payload, list):
            raise UnsupportedStructureError(
                f"{part.get_content_type()} part has no parsable sub-parts"
            )
        return payload

    @staticmethod
    def get_markers(part: EmailMessage) -> list[str]:
        """Get all marker header values on a part."""
        return [str(value) for value in part.get_all(MARKER_HEADER) or []]

    @staticmethod
    def has_marker(part: EmailMessage, token: str) -> bool:
        """Check if a part carries a marker token.

        Args:
            part: Email message part.
            token: Marker token (footer_added_plain or footer_added_html).

        Returns:
            True if any marker header value contains the token.
        """
        return any(token in value for value in MIMEHandler.get_markers(part))

    @staticmethod
    def wrap_multipart(part: EmailMessage, subtype: str) -> EmailMessage:
        """Turn a part into a multipart container holding its old content.

        The content headers and body move into a new first child. Other
        headers (Message-ID, From, ...) stay on the container. Marker
        headers move to the child, so the container never carries one.

        Args:
            part: Part to wrap, modified in place.
            subtype: ``related``, ``mixed`` or ``alternative``.

        Returns:
            The same part, now a multipart container.

        Raises:
            UnsupportedStructureError: If the part cannot be converted.
        """
        markers = MIMEHandler.get_markers(part)
        del part[MARKER_HEADER]

        # Without any Content-* header the body would be dropped by make_*
        if "Content-Type" not in part:
            part["Content-Type"] = part.get_content_type()

        try:
            if subtype == "related":
                part.make_related()
            elif subtype == "mixed":
                part.make_mixed()
            elif subtype == "alternative":
                part.make_alternative()
            else:
                raise UnsupportedStructureError(f"Cannot wrap into multipart/{subtype}")
        except ValueError as e:
            raise UnsupportedStructureError(str(e)) from e

        inner = MIMEHandler.get_children(part)[0]
        for value in markers:
            inner[MARKER_HEADER] = value

        return part

    @staticmethod
    def replace_text_body(part: EmailMessage, text: str, marker: str) -> EmailMessage:
        """Build a copy of a text part with a new body and a marker header.

        The new body keeps the original transfer encoding and charset where
        they can represent the text. Content-Type parameters other than the
        charset, and other Content-* headers, are carried over.

        Args:
            part: Original text/plain or text/html part.
            text: New decoded body.
            marker: Marker token to add.

        Returns:
            New part; the original is not modified.
        """
        new_part = copy.deepcopy(part)
        subtype = part.get_content_subtype()
        charset = EncodingHandler.get_safe_charset(part)
        cte = str(part.get("Content-Transfer-Encoding", "")).strip().lower() or None

        params = {
            name: collapse_rfc2231_value(value)
            for name, value in (part.get_params() or [])[1:]
            if name.lower() != "charset"
        }
        preserved = [
            (name, value)
            for name, value in part.items()
            if name.lower().startswith("content-")
            and name.lower() not in ("content-type", "content-transfer-encoding")
        ]
        had_mime_version = "MIME-Version" in part

        try:
            new_part.set_content(text, subtype=subtype, charset=charset, cte=cte, params=params)
        except (UnicodeError, ValueError) as e:
            logger.debug(
                f"Cannot re-encode {part.get_content_type()} as {charset}/{cte} ({e}), using utf-8"
            )
            new_part.set_content(text, subtype=subtype, charset="utf-8", params=params)

        for name, value in preserved:
            new_part[name] = value
        if not had_mime_version:
            del new_part["MIME-Version"]

        new_part[MARKER_HEADER] = marker
        return new_part

    @staticmethod
    def build_attachment_part(spec: AttachmentSpec) -> EmailMessage:
        """Encode an attachment file as a base64 MIME part.

        Args:
            spec: Attachment to encode.

        Returns:
            New part with Content-Disposition and, if set, Content-ID.

        Raises:
            AttachmentError: If the file cannot be read.
        """
        try:
            data = spec.source.read_bytes()
        except OSError as e:
            raise AttachmentError(f"Cannot read attachment {spec.source}: {e}") from e

        part = EmailMessage()
        part.set_content(
            data,
            maintype=spec.maintype,
            subtype=spec.subtype,
            disposition=spec.disposition,
            filename=spec.filename,
            cid=spec.content_id,
        )
        del part["MIME-Version"]

        logger.debug(f"Encoded attachment {spec} ({len(data)} bytes)")
        return part

    @staticmethod
    def strip_markers(msg: EmailMessage) -> int:
        """Remove every marker header from a message tree.

        Args:
            msg: Email message, modified in place.

        Returns:
            Number of parts that carried a marker.
        """
        stripped = 0
        for part in msg.walk():
            if MARKER_HEADER in part:
                del part[MARKER_HEADER]
                stripped += 1
        return stripped


class EncodingHandler:
    """Handle various character and content encodings."""

    @staticmethod
    def safe_decode_payload(part: EmailMessage) -> str:
        """Safely decode part payload with fallbacks.

        Args:
            part: Email message part.

        Returns:
            Decoded string content.
        """
        payload = part.get_payload(decode=True)

        if payload is None:
            return ""

        if isinstance(payload, str):
            return payload

        # Try charset from Content-Type
        charset = part.get_content_charset()

        if charset:
            try:
                return payload.decode(charset, errors="replace")
            except (LookupError, UnicodeDecodeError):
                pass

        # Try common charsets
        for encoding in ["utf-8", "latin-1", "cp1252", "iso-8859-1"]:
            try:
                return payload.decode(encoding)
            except (UnicodeDecodeError, LookupError):
                continue

        # Last resort
        return payload.decode("utf-8", errors="replace")

    @staticmethod
    def get_safe_charset(part: EmailMessage) -> str:
        """Get charset from part or default to utf-8.

        Args:
            part: Email message part.

        Returns:
            Charset name.
        """
        charset = part.get_content_charset()
        if charset:
            # Validate charset
            try:
                "test".encode(charset)
                return charset
            except (LookupError, UnicodeError):
                pass
        return "utf-8"

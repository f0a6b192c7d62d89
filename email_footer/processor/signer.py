"""Signing of email messages with a footer and attachments."""

import copy
import html
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Iterable

from email_footer.exceptions import InvalidArgumentError, UnsupportedStructureError
from email_footer.models.signature import (
    AttachmentSpec,
    Footer,
    SigningContext,
    SignResult,
)
from email_footer.processor.attachments import AttachmentPlacementRule
from email_footer.processor.footer import FooterInsertionRule
from email_footer.processor.mime_handler import EncodingHandler, MIMEHandler, PartKind
from email_footer.utils.logging import logger

if TYPE_CHECKING:
    from email_footer.cli.config import Config

Visitor = Callable[[EmailMessage, EmailMessage | None], EmailMessage]


class Signer:
    """Adds a footer and attachments to email messages.

    The footer is placed where a person would put their signature: for a
    top-posted reply after the reply text, for a bottom-posted or inline
    reply at the end. Inline attachments (images referenced from the HTML
    footer by Content-ID) go into a ``multipart/related`` container next to
    the HTML part, other attachments into a top-level ``multipart/mixed``.

    A Signer only holds configuration. All state of a signing run lives in
    a fresh SigningContext, so one Signer can sign any number of messages.
    """

    def __init__(
        self,
        footer: Footer | None = None,
        attachments: Iterable[AttachmentSpec] = (),
        strip_markers: bool = False,
        add_html_alternative: bool = False,
    ) -> None:
        """Initialize signer.

        Args:
            footer: Footer to insert.
            attachments: Attachments to add to every message.
            strip_markers: If True, remove marker headers from the output.
            add_html_alternative: If True, give plain-only messages an HTML
                alternative so the HTML footer has somewhere to go.
        """
        self._footer = footer or Footer()
        self._attachments: tuple[AttachmentSpec, ...] = ()
        for spec in attachments:
            self.add_attachment(spec)
        self.strip_markers = strip_markers
        self.add_html_alternative = add_html_alternative
        self._parser = BytesParser(policy=policy.default)

    @classmethod
    def from_config(cls, config: "Config", **overrides: Any) -> "Signer":
        """Create a signer from loaded configuration.

        Args:
            config: Loaded configuration.
            **overrides: Keyword arguments that replace configured flags.

        Returns:
            Configured Signer.
        """
        options = {
            "strip_markers": config.signing.strip_markers,
            "add_html_alternative": config.signing.add_html_alternative,
        }
        options.update(overrides)
        return cls(
            footer=config.footer.to_footer(),
            attachments=config.attachments,
            **options,
        )

    @property
    def footer(self) -> Footer:
        return self._footer

    @property
    def attachments(self) -> tuple[AttachmentSpec, ...]:
        return self._attachments

    def configure_footer(self, plain: str | None = None, html: str | None = None) -> Footer:
        """Replace the footer.

        Args:
            plain: Plain text footer.
            html: HTML footer; may reference inline attachments as ``cid:``.

        Returns:
            The new Footer.

        Raises:
            InvalidArgumentError: If neither footer is given.
        """
        if plain is None and html is None:
            raise InvalidArgumentError("configure_footer() needs a plain and/or html footer")
        self._footer = Footer(plain=plain, html=html)
        return self._footer

    def add_attachment(self, spec: AttachmentSpec | dict[str, Any]) -> tuple[AttachmentSpec, ...]:
        """Add one attachment.

        Args:
            spec: AttachmentSpec, or a mapping with ``file``, ``mimetype``
                and optional ``cid`` and ``disposition`` keys.

        Returns:
            All attachments added so far.

        Raises:
            InvalidArgumentError: If the attachment description is malformed.
        """
        if isinstance(spec, dict):
            spec = AttachmentSpec.from_dict(spec)
        elif not isinstance(spec, AttachmentSpec):
            raise InvalidArgumentError("add_attachment() expects an AttachmentSpec or a mapping")

        self._attachments = (*self._attachments, spec)
        return self._attachments

    def attach(
        self,
        source: str | Path,
        mime_type: str,
        content_id: str | None = None,
        disposition: str | None = None,
    ) -> tuple[AttachmentSpec, ...]:
        """Add one attachment from its parts. See add_attachment."""
        return self.add_attachment(
            AttachmentSpec(
                source=source,
                mime_type=mime_type,
                content_id=content_id,
                disposition=disposition,
            )
        )

    def sign(self, message: EmailMessage) -> EmailMessage:
        """Sign a message.

        Args:
            message: Message to sign; it is not modified.

        Returns:
            New signed message with the same Message-ID.
        """
        return self.sign_with_result(message).message

    def sign_bytes(self, raw_email: bytes) -> bytes:
        """Parse, sign and serialize a raw message.

        Args:
            raw_email: Raw email bytes.

        Returns:
            Signed email bytes.
        """
        signed = self.sign(self._parser.parsebytes(raw_email))
        return signed.as_bytes(policy=policy.SMTP)

    def sign_with_result(self, message: EmailMessage) -> SignResult:
        """Sign a message and report what was done.

        Args:
            message: Message to sign; it is not modified.

        Returns:
            SignResult holding the signed message.

        Raises:
            InvalidArgumentError: If message is not an EmailMessage.
            AttachmentError: If an attachment file cannot be read.
        """
        if not isinstance(message, EmailMessage):
            raise InvalidArgumentError(
                "sign() must be called with an email.message.EmailMessage"
            )

        if self._footer.is_empty and not self._attachments:
            logger.warning("No footer and no attachments configured, copying message unchanged")

        context = SigningContext.for_call(self._footer, self._attachments)
        placement = AttachmentPlacementRule()
        footer_rule = FooterInsertionRule(self._footer)
        skipped: list[str] = []

        def visit(part: EmailMessage, parent: EmailMessage | None) -> EmailMessage:
            for rule in (placement, footer_rule):
                try:
                    part = rule.apply(part, parent, context)
                except UnsupportedStructureError as e:
                    logger.warning(f"Leaving {part.get_content_type()} part unchanged: {e}")
                    skipped.append(part.get_content_type())
            return part

        def revisit(part: EmailMessage, parent: EmailMessage | None) -> EmailMessage:
            # Images flagged while visiting the HTML child go in now
            if part.get_content_type() != "multipart/related":
                return part
            try:
                return placement.add_to_related(part, context)
            except UnsupportedStructureError as e:
                logger.warning(f"Leaving {part.get_content_type()} part unchanged: {e}")
                return part

        message_id = message.get("Message-ID")
        signed = copy.deepcopy(message)

        if self.add_html_alternative:
            self._ensure_html_alternative(signed)

        signed = MIMETreeWalker.rewrite(signed, visit, post_visitor=revisit)

        flushed = 0
        if context.remaining():
            names = ", ".join(str(state.spec) for state in context.remaining())
            logger.warning(f"No place found for {names}, attaching to multipart/mixed")
            try:
                flushed = placement.flush(signed, context)
            except UnsupportedStructureError as e:
                logger.warning(f"Could not attach remaining attachments: {e}")
                skipped.append(signed.get_content_type())

        if message_id is not None and signed.get("Message-ID") != message_id:
            del signed["Message-ID"]
            signed["Message-ID"] = message_id

        if self.strip_markers:
            MIMEHandler.strip_markers(signed)

        result = SignResult(
            message=signed,
            plain_added=self._footer.plain is not None and not context.need_plain,
            html_added=self._footer.html is not None and not context.need_html,
            attachments_placed=context.placed,
            attachments_flushed=flushed,
            skipped_parts=skipped,
            plain_tier=context.plain_tier,
            html_tier=context.html_tier,
        )
        logger.info(
            f"Signed {result.message_id or '<no message-id>'}: "
            f"plain={result.plain_added} html={result.html_added} "
            f"attachments={result.attachments_placed}"
        )
        return result

    def _ensure_html_alternative(self, msg: EmailMessage) -> None:
        """Give the first plain body part an HTML alternative.

        Only when an HTML footer is set and the message has no HTML body.

        Args:
            msg: Message, modified in place.
        """
        if self._footer.html is None:
            return

        text_parts = MIMETreeWalker.find_text_parts(msg)
        if any(MIMEHandler.kind_of(part) is PartKind.HTML for part in text_parts):
            return
        if not text_parts:
            return

        plain = text_parts[0]
        text = EncodingHandler.safe_decode_payload(plain).replace("\r\n", "\n")

        html_part = EmailMessage()
        html_part.set_content(_plain_to_html(text), subtype="html")
        del html_part["MIME-Version"]

        MIMEHandler.wrap_multipart(plain, "alternative")
        plain.attach(html_part)
        logger.debug("Added HTML alternative to plain text body")


def _plain_to_html(text: str) -> str:
    """Render plain text as a minimal HTML document."""
    lines = html.escape(text).split("\n")
    return "<html><body>" + "<br>\n".join(lines) + "</body></html>"


class MIMETreeWalker:
    """Recursively process MIME tree structure."""

    MAX_DEPTH = 20  # Prevent infinite recursion

    @staticmethod
    def rewrite(
        msg: EmailMessage,
        visitor: Visitor,
        parent: EmailMessage | None = None,
        depth: int = 0,
        post_visitor: Visitor | None = None,
    ) -> EmailMessage:
        """Walk the MIME tree in pre-order, replacing parts with visitor results.

        Each part is visited before its children, and the children of the
        visitor's result are walked next. post_visitor, if given, sees each
        container again after its children were replaced.

        Args:
            msg: Email message or part.
            visitor: Callable taking (part, parent) and returning the part
                or its replacement.
            parent: Parent of msg, None for the root.
            depth: Current recursion depth.
            post_visitor: Callable like visitor, called on containers.

        Returns:
            The part that replaces msg.
        """
        if depth > MIMETreeWalker.MAX_DEPTH:
            logger.warning(f"MIME tree depth exceeded {MIMETreeWalker.MAX_DEPTH}")
            return msg

        msg = visitor(msg, parent)

        if MIMEHandler.kind_of(msg) is not PartKind.MULTIPART:
            return msg

        new_parts = [
            MIMETreeWalker.rewrite(part, visitor, msg, depth + 1, post_visitor)
            for part in msg.iter_parts()
        ]
        msg.set_payload(new_parts)

        if post_visitor is not None:
            msg = post_visitor(msg, parent)

        return msg

    @staticmethod
    def get_depth(msg: EmailMessage) -> int:
        """Get maximum depth of MIME tree.

        Args:
            msg: Email message.

        Returns:
            Maximum nesting depth.
        """
        if MIMEHandler.kind_of(msg) is not PartKind.MULTIPART:
            return 1

        max_child_depth = 0
        for part in msg.iter_parts():
            child_depth = MIMETreeWalker.get_depth(part)
            max_child_depth = max(max_child_depth, child_depth)

        return 1 + max_child_depth

    @staticmethod
    def count_parts(msg: EmailMessage) -> int:
        """Count total parts in MIME tree.

        Args:
            msg: Email message.

        Returns:
            Total part count.
        """
        if MIMEHandler.kind_of(msg) is not PartKind.MULTIPART:
            return 1

        count = 1
        for part in msg.iter_parts():
            count += MIMETreeWalker.count_parts(part)

        return count

    @staticmethod
    def find_text_parts(msg: EmailMessage) -> list[EmailMessage]:
        """Find all text/plain and text/html body parts, in tree order.

        Args:
            msg: Email message.

        Returns:
            List of text parts.
        """
        kind = MIMEHandler.kind_of(msg)

        if kind is PartKind.PLAIN_TEXT or kind is PartKind.HTML:
            return [msg]
        if kind is not PartKind.MULTIPART:
            return []

        text_parts = []
        for part in msg.iter_parts():
            text_parts.extend(MIMETreeWalker.find_text_parts(part))

        return text_parts

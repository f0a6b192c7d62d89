"""Footer insertion into the first plain text and first HTML body part."""

from email.message import EmailMessage

from email_footer.models.signature import HTML_MARKER, PLAIN_MARKER, Footer, SigningContext
from email_footer.processor.heuristics import insert_html_footer, insert_plain_footer
from email_footer.processor.mime_handler import EncodingHandler, MIMEHandler, PartKind
from email_footer.utils.logging import logger


class FooterInsertionRule:
    """Tree visitor that adds the footer to at most one part of each kind.

    A part that receives a footer is replaced by a modified copy carrying a
    marker header. When the HTML footer is added, inline attachments are
    either flagged for the enclosing ``multipart/related`` container or
    wrapped together with the HTML part into a new one.
    """

    def __init__(self, footer: Footer) -> None:
        """Initialize rule.

        Args:
            footer: Footer to insert.
        """
        self.footer = footer

    def apply(
        self,
        part: EmailMessage,
        parent: EmailMessage | None,
        context: SigningContext,
    ) -> EmailMessage:
        """Visit one part.

        Args:
            part: Current part.
            parent: Parent container, None for the root.
            context: State shared across the walk.

        Returns:
            The part itself, or its replacement.
        """
        kind = MIMEHandler.kind_of(part)

        if kind is PartKind.PLAIN_TEXT:
            return self._add_plain(part, context)
        if kind is PartKind.HTML:
            return self._add_html(part, parent, context)
        if kind is PartKind.MULTIPART or kind is PartKind.OTHER:
            return part

        raise AssertionError(f"Unhandled part kind: {kind}")

    def _add_plain(self, part: EmailMessage, context: SigningContext) -> EmailMessage:
        if not context.need_plain or self.footer.plain is None:
            return part
        if MIMEHandler.has_marker(part, PLAIN_MARKER):
            return part

        body = EncodingHandler.safe_decode_payload(part).replace("\r\n", "\n")
        splice = insert_plain_footer(body, self.footer.plain)

        new_part = MIMEHandler.replace_text_body(part, splice.body, PLAIN_MARKER)
        context.need_plain = False
        context.plain_tier = splice.tier

        logger.debug(f"Plain footer added ({splice.tier})")
        return new_part

    def _add_html(
        self,
        part: EmailMessage,
        parent: EmailMessage | None,
        context: SigningContext,
    ) -> EmailMessage:
        if not context.need_html or self.footer.html is None:
            return part
        if MIMEHandler.has_marker(part, HTML_MARKER):
            return part

        markup = EncodingHandler.safe_decode_payload(part).replace("\r\n", "\n")
        splice = insert_html_footer(markup, self.footer.html)

        new_part = MIMEHandler.replace_text_body(part, splice.body, HTML_MARKER)
        context.need_html = False
        context.html_tier = splice.tier
        logger.debug(f"HTML footer added ({splice.tier})")

        if parent is not None and parent.get_content_type() == "multipart/related":
            # The container is already there; it takes the images once its
            # children have been visited
            for state in context.pending_inline():
                state.pending_related = True
            return new_part

        inline = context.pending_inline()
        if not inline:
            return new_part

        images = [MIMEHandler.build_attachment_part(state.spec) for state in inline]
        MIMEHandler.wrap_multipart(new_part, "related")
        for state, image in zip(inline, images):
            new_part.attach(image)
            state.done = True

        logger.debug(f"Wrapped HTML part in multipart/related with {len(images)} inline part(s)")
        return new_part

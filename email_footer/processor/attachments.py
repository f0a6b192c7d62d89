"""Placement of attachment parts into multipart containers."""

from email.message import EmailMessage

from email_footer.exceptions import UnsupportedStructureError
from email_footer.models.signature import HTML_MARKER, AttachmentState, SigningContext
from email_footer.processor.mime_handler import MIMEHandler
from email_footer.utils.logging import logger


class AttachmentPlacementRule:
    """Tree visitor that splices encoded attachments into the message.

    Regular attachments go into a top-level ``multipart/mixed``, created
    around the existing content when needed. Inline attachments flagged by
    the footer rule go into the ``multipart/related`` container holding the
    HTML part that received the footer.
    """

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
            The part, possibly restructured.

        Raises:
            UnsupportedStructureError: If a container has no parsable parts.
            AttachmentError: If an attachment file cannot be read.
        """
        if parent is None:
            return self._add_to_mixed(part, context.pending_regular())
        if part.get_content_type() == "multipart/related":
            return self.add_to_related(part, context)
        return part

    def flush(self, root: EmailMessage, context: SigningContext) -> int:
        """Attach every attachment not placed yet to the top-level mixed part.

        Args:
            root: Top-level message.
            context: State shared across the walk.

        Returns:
            Number of attachments placed.
        """
        leftovers = context.remaining()
        if leftovers:
            self._add_to_mixed(root, leftovers)
        return len(leftovers)

    def _add_to_mixed(self, root: EmailMessage, states: list[AttachmentState]) -> EmailMessage:
        if not states:
            return root

        # Encode everything before touching the tree
        parts = [MIMEHandler.build_attachment_part(state.spec) for state in states]

        if root.get_content_type() != "multipart/mixed":
            MIMEHandler.wrap_multipart(root, "mixed")
        elif not root.is_multipart():
            raise UnsupportedStructureError("multipart/mixed message has no parsable sub-parts")

        for state, part in zip(states, parts):
            root.attach(part)
            state.done = True

        logger.debug(f"Added {len(parts)} attachment(s) to multipart/mixed")
        return root

    def add_to_related(self, part: EmailMessage, context: SigningContext) -> EmailMessage:
        """Attach inline parts flagged by the footer rule to a related container.

        Raises:
            UnsupportedStructureError: If the container has no parsable parts.
        """
        children = MIMEHandler.get_children(part)

        # Several related containers may exist; only the one holding the
        # signed HTML part takes the images
        if not any(MIMEHandler.has_marker(child, HTML_MARKER) for child in children):
            return part

        states = context.pending_related()
        if not states:
            return part

        images = [MIMEHandler.build_attachment_part(state.spec) for state in states]
        for state, image in zip(states, images):
            part.attach(image)
            state.done = True
            state.pending_related = False

        logger.debug(f"Added {len(images)} inline part(s) to existing multipart/related")
        return part

"""Data models for footers, attachments and per-call signing state."""

from dataclasses import dataclass, field
from email.message import EmailMessage
from pathlib import Path
from typing import Any

from email_footer.exceptions import InvalidArgumentError
from email_footer.utils.logging import logger

MARKER_HEADER = "X-Signature-Modified"
PLAIN_MARKER = "footer_added_plain"
HTML_MARKER = "footer_added_html"

DISPOSITION_INLINE = "inline"
DISPOSITION_ATTACHMENT = "attachment"


@dataclass(frozen=True)
class Footer:
    """Plain text and HTML footer content."""

    plain: str | None = None
    html: str | None = None

    @property
    def is_empty(self) -> bool:
        """True when neither a plain nor an HTML footer is set."""
        return self.plain is None and self.html is None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Footer":
        """Create from a mapping with ``plain`` and/or ``html`` keys.

        Args:
            data: Footer mapping.

        Returns:
            Footer instance.

        Raises:
            InvalidArgumentError: If the mapping has any other key.
        """
        if not isinstance(data, dict):
            raise InvalidArgumentError("Footer expects a mapping")

        for key in data:
            if key not in ("plain", "html"):
                raise InvalidArgumentError(
                    f"Unknown footer key {key!r}. Must be either plain or html."
                )

        return cls(plain=data.get("plain"), html=data.get("html"))


@dataclass(frozen=True)
class AttachmentSpec:
    """A file to attach to every signed message."""

    source: Path
    mime_type: str
    content_id: str | None = None  # Stored as "<id>"
    disposition: str = DISPOSITION_ATTACHMENT

    def __post_init__(self) -> None:
        if not self.source:
            raise InvalidArgumentError("Attachment must specify a source file")
        if not self.mime_type:
            raise InvalidArgumentError("Attachment must specify a mime type")

        maintype, _, subtype = self.mime_type.partition("/")
        if not maintype or not subtype:
            raise InvalidArgumentError(f"Invalid mime type: {self.mime_type}")

        disposition = (self.disposition or DISPOSITION_ATTACHMENT).lower()
        if disposition not in (DISPOSITION_INLINE, DISPOSITION_ATTACHMENT):
            raise InvalidArgumentError(f"Invalid disposition: {self.disposition}")

        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "source", Path(self.source))
        object.__setattr__(self, "mime_type", self.mime_type.lower())
        object.__setattr__(self, "disposition", disposition)
        if self.content_id:
            object.__setattr__(self, "content_id", f"<{self.content_id.strip('<>')}>")

    @property
    def is_inline(self) -> bool:
        """Check if this attachment belongs next to the HTML footer."""
        return self.disposition == DISPOSITION_INLINE

    @property
    def maintype(self) -> str:
        return self.mime_type.split("/", 1)[0]

    @property
    def subtype(self) -> str:
        return self.mime_type.split("/", 1)[1]

    @property
    def filename(self) -> str:
        return self.source.name

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AttachmentSpec":
        """Create from a mapping.

        Accepts ``file``/``source``, ``mimetype``/``mime_type``,
        ``cid``/``content_id`` and ``disposition``. Other keys are ignored.
        """
        if not isinstance(data, dict):
            raise InvalidArgumentError("Attachment expects a mapping")

        known = {"file", "source", "mimetype", "mime_type", "cid", "content_id", "disposition"}
        for key in data:
            if key not in known:
                logger.debug(f"Ignoring unknown attachment key: {key}")

        source = data.get("file") or data.get("source")
        if not source:
            raise InvalidArgumentError("Attachment must contain 'file' key to specify file to attach")
        mime_type = data.get("mimetype") or data.get("mime_type")
        if not mime_type:
            raise InvalidArgumentError("Attachment must contain 'mimetype' key")

        return cls(
            source=Path(source),
            mime_type=mime_type,
            content_id=data.get("cid") or data.get("content_id"),
            disposition=data.get("disposition") or DISPOSITION_ATTACHMENT,
        )

    def __str__(self) -> str:
        """Human-readable representation."""
        return f"{self.filename} ({self.mime_type}, {self.disposition})"


@dataclass
class AttachmentState:
    """Runtime flags for one attachment during one signing call."""

    spec: AttachmentSpec
    done: bool = False
    pending_related: bool = False  # Waiting for the related container of the HTML part


@dataclass
class SigningContext:
    """Mutable state shared by the rewrite rules during one signing call."""

    need_plain: bool
    need_html: bool
    attachments: list[AttachmentState] = field(default_factory=list)
    plain_tier: str | None = None  # Heuristic that placed each footer
    html_tier: str | None = None

    @classmethod
    def for_call(cls, footer: Footer, specs: tuple[AttachmentSpec, ...]) -> "SigningContext":
        """Fresh state for one call; specs are wrapped, never mutated."""
        return cls(
            need_plain=footer.plain is not None,
            need_html=footer.html is not None,
            attachments=[AttachmentState(spec) for spec in specs],
        )

    def pending_inline(self) -> list[AttachmentState]:
        return [a for a in self.attachments if a.spec.is_inline and not a.done]

    def pending_regular(self) -> list[AttachmentState]:
        return [a for a in self.attachments if not a.spec.is_inline and not a.done]

    def pending_related(self) -> list[AttachmentState]:
        return [a for a in self.attachments if a.pending_related and not a.done]

    def remaining(self) -> list[AttachmentState]:
        return [a for a in self.attachments if not a.done]

    @property
    def placed(self) -> int:
        """Number of attachments spliced into the tree so far."""
        return sum(1 for a in self.attachments if a.done)


@dataclass
class SignResult:
    """Result of signing a single message."""

    message: EmailMessage
    plain_added: bool
    html_added: bool
    attachments_placed: int = 0
    attachments_flushed: int = 0  # Placed in multipart/mixed as a fallback
    skipped_parts: list[str] = field(default_factory=list)
    plain_tier: str | None = None
    html_tier: str | None = None

    @property
    def message_id(self) -> str:
        return str(self.message.get("Message-ID", ""))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for the operations log."""
        return {
            "message_id": self.message_id,
            "plain_added": self.plain_added,
            "html_added": self.html_added,
            "plain_tier": self.plain_tier,
            "html_tier": self.html_tier,
            "attachments_placed": self.attachments_placed,
            "attachments_flushed": self.attachments_flushed,
            "skipped_parts": self.skipped_parts,
        }


@dataclass
class ValidationResult:
    """Result of validating a signed message against its original."""

    is_valid: bool
    original_size: int
    signed_size: int
    header_issues: list[str] = field(default_factory=list)
    mime_issues: list[str] = field(default_factory=list)
    attachment_issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def issues(self) -> list[str]:
        """All issues that make the result invalid."""
        return self.header_issues + self.mime_issues + self.attachment_issues

    @property
    def size_increase(self) -> int:
        """Bytes added by signing."""
        return self.signed_size - self.original_size

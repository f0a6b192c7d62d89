"""Pytest configuration and shared fixtures."""

from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from pathlib import Path
from typing import Callable

import pytest

from email_footer.models.signature import AttachmentSpec, Footer

# Smallest valid PNG: 1x1 transparent pixel
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


def parse(raw: bytes) -> EmailMessage:
    """Parse raw bytes the way the signer does."""
    return BytesParser(policy=policy.default).parsebytes(raw)


@pytest.fixture
def parse_email() -> Callable[[bytes], EmailMessage]:
    """Parser for raw email bytes."""
    return parse


@pytest.fixture
def footer() -> Footer:
    """Footer with both plain and HTML content."""
    return Footer(
        plain="Jane Doe\nExample Ltd",
        html='<p class="sig">Jane Doe</p><img src="cid:logo@example.com">',
    )


@pytest.fixture
def logo_file(tmp_path: Path) -> Path:
    """PNG file used as inline image."""
    path = tmp_path / "logo.png"
    path.write_bytes(PNG_BYTES)
    return path


@pytest.fixture
def pdf_file(tmp_path: Path) -> Path:
    """PDF file used as regular attachment."""
    path = tmp_path / "terms.pdf"
    path.write_bytes(b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<< /Type /Catalog >>\nendobj\n")
    return path


@pytest.fixture
def inline_spec(logo_file: Path) -> AttachmentSpec:
    """Inline image referenced from the HTML footer."""
    return AttachmentSpec(
        source=logo_file,
        mime_type="image/png",
        content_id="logo@example.com",
        disposition="inline",
    )


@pytest.fixture
def attachment_spec(pdf_file: Path) -> AttachmentSpec:
    """Regular attachment."""
    return AttachmentSpec(source=pdf_file, mime_type="application/pdf")


@pytest.fixture
def plain_email() -> EmailMessage:
    """Single part plain text message."""
    return parse(b"""From: jane@example.com
To: bob@example.com
Subject: Re: Lunch
Date: Mon, 15 Jan 2024 10:30:00 +0000
Message-ID: <plain123@example.com>
MIME-Version: 1.0
Content-Type: text/plain; charset="utf-8"
Content-Transfer-Encoding: 7bit

First line
""")


@pytest.fixture
def html_email() -> EmailMessage:
    """Single part HTML message."""
    return parse(b"""From: jane@example.com
To: bob@example.com
Subject: Re: Lunch
Date: Mon, 15 Jan 2024 10:30:00 +0000
Message-ID: <html123@example.com>
MIME-Version: 1.0
Content-Type: text/html; charset="utf-8"
Content-Transfer-Encoding: 7bit

<html>First line
</html>
""")


@pytest.fixture
def alternative_email() -> EmailMessage:
    """Reply with plain and HTML alternatives, quoting the original."""
    return parse(b"""From: jane@example.com
To: bob@example.com
Subject: Re: Lunch
Date: Mon, 15 Jan 2024 10:30:00 +0000
Message-ID: <alt123@example.com>
In-Reply-To: <orig@example.com>
References: <orig@example.com>
MIME-Version: 1.0
Content-Type: multipart/alternative; boundary="alt-boundary"

--alt-boundary
Content-Type: text/plain; charset="utf-8"
Content-Transfer-Encoding: quoted-printable

Sounds good.

On Mon, 15 Jan 2024, Bob wrote:
> Lunch tomorrow?

--alt-boundary
Content-Type: text/html; charset="utf-8"
Content-Transfer-Encoding: quoted-printable

<html><body><div>Sounds good.</div><blockquote>Lunch tomorrow?</blockquote></b=
ody></html>

--alt-boundary--
""")


@pytest.fixture
def related_email() -> EmailMessage:
    """Reply whose HTML part already sits in a multipart/related container."""
    return parse(b"""From: jane@example.com
To: bob@example.com
Subject: Re: Photos
Date: Mon, 15 Jan 2024 10:30:00 +0000
Message-ID: <rel123@example.com>
MIME-Version: 1.0
Content-Type: multipart/alternative; boundary="outer"

--outer
Content-Type: text/plain; charset="utf-8"

See below.

--outer
Content-Type: multipart/related; boundary="inner"

--inner
Content-Type: text/html; charset="utf-8"

<html><body><p>See below.</p><img src="cid:photo@example.com"></body></html>

--inner
Content-Type: image/png
Content-ID: <photo@example.com>
Content-Disposition: inline; filename="photo.png"
Content-Transfer-Encoding: base64

iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR4nGNgAAIAAAUAAUqiT10AAAAASUVORK5CYII=

--inner--

--outer--
""")


# Markers for test categories
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )

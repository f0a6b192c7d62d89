"""Configuration loading and validation."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from email_footer.exceptions import ConfigError, InvalidArgumentError
from email_footer.models.signature import AttachmentSpec, Footer

DEFAULT_CONFIG_PATHS = ["email-footer.yaml", "email-footer.yml", "config.yaml"]


@dataclass
class FooterConfig:
    """Footer text, inline or read from files."""

    plain: str | None = None
    html: str | None = None
    plain_file: Path | None = None
    html_file: Path | None = None

    def to_footer(self) -> Footer:
        """Build the Footer, reading footer files if configured.

        Raises:
            ConfigError: If a footer file cannot be read.
        """
        return Footer(
            plain=self.plain if self.plain is not None else _read_text(self.plain_file),
            html=self.html if self.html is not None else _read_text(self.html_file),
        )


@dataclass
class SigningConfig:
    """Signing options."""

    strip_markers: bool = False
    add_html_alternative: bool = False
    validate: bool = True


@dataclass
class LoggingConfig:
    """Logging options."""

    level: str = "INFO"
    file: Path | None = None
    operations_log: Path | None = None  # JSONL, one line per signed message


@dataclass
class Config:
    """Complete application configuration."""

    footer: FooterConfig = field(default_factory=FooterConfig)
    attachments: list[AttachmentSpec] = field(default_factory=list)
    signing: SigningConfig = field(default_factory=SigningConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file.

    Args:
        config_path: Path to YAML config file. Defaults to the first of
            DEFAULT_CONFIG_PATHS that exists.

    Returns:
        Loaded Config object.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    if config_path is None:
        for default_path in DEFAULT_CONFIG_PATHS:
            if Path(default_path).exists():
                config_path = Path(default_path)
                break

    if config_path is None:
        return Config()

    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot load config {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must be a mapping")

    return _parse_config(data, config_path.parent)


def _parse_config(data: dict[str, Any], base_dir: Path) -> Config:
    """Parse configuration dictionary into Config object.

    Relative file paths are resolved against base_dir.

    Args:
        data: Raw configuration dictionary.
        base_dir: Directory of the config file.

    Returns:
        Config object.
    """
    config = Config()

    # Footer section
    if "footer" in data:
        footer_data = dict(_section(data, "footer"))
        plain_file = footer_data.pop("plain_file", None)
        html_file = footer_data.pop("html_file", None)
        try:
            footer = Footer.from_dict(footer_data)
        except InvalidArgumentError as e:
            raise ConfigError(f"Invalid footer section: {e}") from e
        config.footer = FooterConfig(
            plain=footer.plain,
            html=footer.html,
            plain_file=_resolve(plain_file, base_dir),
            html_file=_resolve(html_file, base_dir),
        )

    # Attachments section
    attachments = data.get("attachments") or []
    if not isinstance(attachments, list):
        raise ConfigError("Invalid attachments section: expected a list")
    for index, att_data in enumerate(attachments):
        try:
            spec = AttachmentSpec.from_dict(att_data)
        except InvalidArgumentError as e:
            raise ConfigError(f"Invalid attachment #{index + 1}: {e}") from e
        config.attachments.append(
            AttachmentSpec(
                source=_resolve(spec.source, base_dir),
                mime_type=spec.mime_type,
                content_id=spec.content_id,
                disposition=spec.disposition,
            )
        )

    # Signing section
    if "signing" in data:
        signing_data = _section(data, "signing")
        config.signing = SigningConfig(
            strip_markers=signing_data.get("strip_markers", False),
            add_html_alternative=signing_data.get("add_html_alternative", False),
            validate=signing_data.get("validate", True),
        )

    # Logging section
    if "logging" in data:
        logging_data = _section(data, "logging")
        config.logging = LoggingConfig(
            level=logging_data.get("level", "INFO"),
            file=_resolve(logging_data.get("file"), base_dir),
            operations_log=_resolve(logging_data.get("operations_log"), base_dir),
        )

    return config


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a config section, which must be a mapping or empty."""
    section = data[name] or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Invalid {name} section: expected a mapping")
    return section


def validate_config(config: Config) -> list[str]:
    """Validate configuration, return list of issues.

    Args:
        config: Configuration to validate.

    Returns:
        List of validation issue messages.
    """
    issues = []

    footer = config.footer
    if (
        footer.plain is None
        and footer.html is None
        and footer.plain_file is None
        and footer.html_file is None
        and not config.attachments
    ):
        issues.append("No footer and no attachments configured")

    for footer_file in (footer.plain_file, footer.html_file):
        if footer_file and not footer_file.exists():
            issues.append(f"Footer file not found: {footer_file}")

    for spec in config.attachments:
        if not spec.source.exists():
            issues.append(f"Attachment file not found: {spec.source}")

    if not isinstance(logging.getLevelName(config.logging.level.upper()), int):
        issues.append(f"Invalid log level: {config.logging.level}")

    return issues


def create_default_config(path: Path) -> None:
    """Create default configuration file.

    Args:
        path: Path to write config file.
    """
    default_config = """# email-footer configuration
# Relative paths are resolved against the directory of this file.

footer:
  # Plain text footer. A line "--" in the message body is replaced by it.
  plain: |-
    Jane Doe
    Example Ltd
  # HTML footer. Inline images are referenced by their cid.
  html: '<p>Jane Doe<br>Example Ltd</p><img src="cid:logo@example.com">'
  # Alternatively read footers from files:
  # plain_file: footer.txt
  # html_file: footer.html

attachments:
  - file: logo.png
    mimetype: image/png
    cid: logo@example.com
    disposition: inline
  # - file: terms.pdf
  #   mimetype: application/pdf

signing:
  # Remove X-Signature-Modified headers from the output
  strip_markers: false
  # Give plain text only messages an HTML alternative for the HTML footer
  add_html_alternative: false
  # Check the signed message before writing it
  validate: true

logging:
  level: INFO
  # file: ./logs/email-footer.log
  # operations_log: ./logs/operations.jsonl
"""
    with open(path, "w", encoding="utf-8") as f:
        f.write(default_config)


def _resolve(value: str | Path | None, base_dir: Path) -> Path | None:
    if value is None:
        return None
    path = Path(value)
    return path if path.is_absolute() else base_dir / path


def _read_text(path: Path | None) -> str | None:
    if path is None:
        return None
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read footer file {path}: {e}") from e

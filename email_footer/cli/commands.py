"""CLI commands using Typer."""

import sys
from email import policy
from email.parser import BytesParser
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from email_footer.cli.config import Config, create_default_config, load_config, validate_config
from email_footer.cli.output import RichOutput
from email_footer.exceptions import SignatureError
from email_footer.utils.logging import OperationLogger, setup_logging

app = typer.Typer(
    name="email-footer",
    help="Add a signature footer and attachments to email messages, placed where a person would put them.",
    add_completion=False,
)
# Status goes to stderr; stdout may carry the signed message
output = RichOutput(Console(stderr=True))


def get_config(config_path: Optional[Path]) -> Config:
    """Load and validate configuration.

    Args:
        config_path: Optional path to config file.

    Returns:
        Loaded Config object.

    Raises:
        typer.Exit: If the configuration cannot be loaded.
    """
    try:
        config = load_config(config_path)
    except SignatureError as e:
        output.print_error("Invalid configuration", str(e))
        raise typer.Exit(1)

    for issue in validate_config(config):
        output.print_warning(issue)

    return config


@app.command()
def sign(
    input_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="Email message (.eml) to sign",
    ),
    output_file: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Where to write the signed message (default: stdout)",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
    strip_markers: bool = typer.Option(
        False,
        "--strip-markers",
        help="Remove X-Signature-Modified headers from the output",
    ),
    html_alternative: bool = typer.Option(
        False,
        "--html-alternative",
        help="Add an HTML alternative to plain text only messages",
    ),
    validate: bool = typer.Option(
        True,
        "--validate/--no-validate",
        help="Check the signed message before writing it",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Sign even S/MIME or PGP protected messages",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
) -> None:
    """Sign one email message with the configured footer and attachments."""
    from email_footer.processor.signer import Signer
    from email_footer.processor.validator import PreflightChecker, SignatureValidator

    config = get_config(config_path)
    setup_logging(
        "DEBUG" if verbose else config.logging.level,
        config.logging.file,
        verbose,
    )
    op_logger = OperationLogger(config.logging.operations_log)

    raw_email = input_file.read_bytes()
    message = BytesParser(policy=policy.default).parsebytes(raw_email)
    message_id = str(message.get("Message-ID", ""))

    can_sign, reasons = PreflightChecker.can_sign(message)
    if not can_sign and not force:
        for reason in reasons:
            output.print_error("Refusing to sign", reason)
        raise typer.Exit(1)

    try:
        signer = Signer.from_config(
            config,
            strip_markers=strip_markers or config.signing.strip_markers,
            add_html_alternative=html_alternative or config.signing.add_html_alternative,
        )
        result = signer.sign_with_result(message)
    except SignatureError as e:
        op_logger.log_error("sign", message_id, e)
        output.print_error("Signing failed", str(e))
        raise typer.Exit(1)

    signed = result.message.as_bytes(policy=policy.SMTP)

    if validate and config.signing.validate:
        validation = SignatureValidator().validate(raw_email, signed, signer.attachments)
        if not validation.is_valid:
            op_logger.log_operation(
                "validate", message_id, success=False, details={"issues": validation.issues}
            )
            output.print_error("Signed message failed validation")
            output.print_validation(validation)
            raise typer.Exit(1)
        if validation.warnings:
            output.print_validation(validation)

    if output_file:
        output_file.write_bytes(signed)
    else:
        sys.stdout.buffer.write(signed)
        sys.stdout.flush()

    op_logger.log_sign(result, output_file)
    output.print_sign_result(result)
    if output_file:
        output.print_success(f"Signed message written to {output_file}")


@app.command()
def inspect(
    input_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="Email message (.eml) to inspect",
    ),
) -> None:
    """Show the MIME structure of a message, including footer markers."""
    message = BytesParser(policy=policy.default).parsebytes(input_file.read_bytes())
    RichOutput(Console()).print_mime_tree(message, title=escape(input_file.name))


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(
        Path("email-footer.yaml"),
        help="Where to write the configuration template",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing file",
    ),
) -> None:
    """Write a commented configuration template."""
    if path.exists() and not force:
        output.print_error(f"{path} already exists", "Use --force to overwrite it")
        raise typer.Exit(1)

    create_default_config(path)
    output.print_success(f"Configuration template written to {path}")


if __name__ == "__main__":
    app()

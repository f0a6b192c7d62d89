"""Rich console output formatting."""

from email.message import EmailMessage

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.tree import Tree

from email_footer.models.signature import SignResult, ValidationResult
from email_footer.processor.mime_handler import MIMEHandler, PartKind
from email_footer.processor.signer import MIMETreeWalker


class RichOutput:
    """Rich console output formatting."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize with Rich console.

        Args:
            console: Rich Console instance.
        """
        self.console = console or Console()

    def print_sign_result(self, result: SignResult) -> None:
        """Display what signing did.

        Args:
            result: Signing result.
        """
        panel_content = f"""
[bold]Message-ID:[/bold] {result.message_id or '[dim]none[/dim]'}
[bold]Plain footer:[/bold] {self._yes_no(result.plain_added)}{self._tier(result.plain_tier)}
[bold]HTML footer:[/bold] {self._yes_no(result.html_added)}{self._tier(result.html_tier)}
[bold]Attachments placed:[/bold] {result.attachments_placed}
"""
        if result.attachments_flushed:
            panel_content += (
                f"[yellow]Attached to multipart/mixed as fallback:[/yellow] "
                f"{result.attachments_flushed}\n"
            )
        if result.skipped_parts:
            panel_content += f"[dim]Unsupported parts left unchanged: {', '.join(result.skipped_parts)}[/dim]\n"

        self.console.print(Panel(panel_content, title="Signed"))

    def print_validation(self, result: ValidationResult) -> None:
        """Display validation issues and warnings.

        Args:
            result: Validation result.
        """
        for issue in result.issues:
            self.console.print(f"  [red]-[/red] {issue}")
        for warning in result.warnings:
            self.console.print(f"  [yellow]-[/yellow] {warning}")

        self.console.print(
            f"[dim]Size: {self._format_size(result.original_size)} -> "
            f"{self._format_size(result.signed_size)} (+{self._format_size(result.size_increase)})[/dim]"
        )

    def print_mime_tree(self, msg: EmailMessage, title: str = "Message") -> None:
        """Display the MIME structure of a message.

        Args:
            msg: Email message.
            title: Label of the root node.
        """
        tree = Tree(f"[bold]{title}[/bold]")
        self._add_tree_node(tree, msg)
        self.console.print(tree)
        self.console.print(
            f"[dim]Depth: {MIMETreeWalker.get_depth(msg)}, "
            f"parts: {MIMETreeWalker.count_parts(msg)}[/dim]"
        )

    def _add_tree_node(self, tree: Tree, part: EmailMessage) -> None:
        label = f"[cyan]{part.get_content_type()}[/cyan]"

        disposition = part.get_content_disposition()
        if disposition:
            label += f" {disposition}"
        filename = part.get_filename()
        if filename:
            label += f" [green]{escape(filename)}[/green]"
        cid = part.get("Content-ID")
        if cid:
            label += f" [dim]{escape(str(cid))}[/dim]"
        for marker in MIMEHandler.get_markers(part):
            label += f" [magenta]{marker}[/magenta]"

        node = tree.add(label)
        if MIMEHandler.kind_of(part) is PartKind.MULTIPART:
            for child in part.iter_parts():
                self._add_tree_node(node, child)

    def print_error(self, message: str, details: str | None = None) -> None:
        """Display error message.

        Args:
            message: Error message.
            details: Optional additional details.
        """
        self.console.print(f"[bold red]Error:[/bold red] {message}")
        if details:
            self.console.print(f"[dim]{details}[/dim]")

    def print_success(self, message: str) -> None:
        """Display success message.

        Args:
            message: Success message.
        """
        self.console.print(f"[bold green]Success:[/bold green] {message}")

    def print_warning(self, message: str) -> None:
        """Display warning message.

        Args:
            message: Warning message.
        """
        self.console.print(f"[bold yellow]Warning:[/bold yellow] {message}")

    def _yes_no(self, value: bool) -> str:
        return "[green]added[/green]" if value else "[dim]not added[/dim]"

    def _tier(self, tier: str | None) -> str:
        return f" [dim]({tier})[/dim]" if tier else ""

    def _format_size(self, size: int) -> str:
        """Format size in human-readable form.

        Args:
            size: Size in bytes.

        Returns:
            Human-readable size string.
        """
        if size < 1024:
            return f"{size} B"
        elif size < 1024 * 1024:
            return f"{size / 1024:.1f} KB"
        else:
            return f"{size / (1024 * 1024):.1f} MB"

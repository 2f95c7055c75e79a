"""Pack, unpack and size commands.

Each command works on one repository object, addressed by handle, in the
repository snapshot named by --snapshot or the configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from bagforge.cli.command_base import BagForgeCommand, CliOptions
from bagforge.content.snapshot import save_snapshot
from bagforge.core.config import ARCHIVE_FORMATS
from bagforge.core.exceptions import BagForgeError, ConfigurationError
from bagforge.pack import SIZE_DEFAULT, SIZE_NORECURSE, packer_for


def _format_size(bytes_count: float) -> str:
    """Format byte count as human-readable size."""
    for unit in ["B", "KB", "MB", "GB"]:
        if bytes_count < 1024:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024
    return f"{bytes_count:.1f} TB"


class PackCommand(BagForgeCommand):
    """Write an object's AIP."""

    def execute(
        self,
        handle: str,
        output: Optional[Path] = None,
        archive_format: Optional[str] = None,
    ) -> int:
        try:
            config = self.config
            context = self.open_context()
            dso = self.resolve(context, handle)
            fmt = (archive_format or config.pack.archive_format).lower()
            if fmt not in ARCHIVE_FORMATS:
                raise ConfigurationError(
                    f"Unknown archive format {fmt!r}, expected one of {ARCHIVE_FORMATS}",
                    field="format",
                    value=fmt,
                )
            packer = packer_for(
                dso,
                archive_format=fmt,
                strict_actions=config.policy.strict_actions,
                scratch_dir=config.scratch_path,
            )
            archive = packer.pack(context, output or config.output_path)
        except BagForgeError as e:
            return self.handle_error(e, f"While packing {handle}")

        table = Table(title="AIP Summary", show_header=False)
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Object", handle)
        table.add_row("Archive", str(archive))
        table.add_row("Size", _format_size(archive.stat().st_size))
        self.console.print(table)

        self.print_success(f"Packed {handle}")
        return 0


class UnpackCommand(BagForgeCommand):
    """Restore an object from its AIP and save the snapshot."""

    def execute(self, handle: str, archive: Path) -> int:
        try:
            config = self.config
            context = self.open_context()
            dso = self.resolve(context, handle)
            packer = packer_for(
                dso,
                archive_format=config.pack.archive_format,
                strict_actions=config.policy.strict_actions,
                scratch_dir=config.scratch_path,
            )
            report = packer.unpack(context, archive)
            save_snapshot(self.repository, self.snapshot_path)
        except BagForgeError as e:
            return self.handle_error(e, f"While restoring {handle}")

        for warning in report.warnings:
            self.print_warning(warning)
        self.print_success(
            f"Restored {handle} from {archive} ({report.restored} policies)"
        )
        return 0


class SizeCommand(BagForgeCommand):
    """Print an object's estimated packed size."""

    def execute(self, handle: str, norecurse: bool = False) -> int:
        method = SIZE_NORECURSE if norecurse else SIZE_DEFAULT
        try:
            context = self.open_context()
            dso = self.resolve(context, handle)
            size = packer_for(dso).size(context, method)
        except BagForgeError as e:
            return self.handle_error(e, f"While sizing {handle}")

        self.console.print(f"{size}\t{_format_size(size)}\t{handle}")
        return 0


# Typer command wrappers


def _options(ctx: typer.Context) -> CliOptions:
    return ctx.obj if isinstance(ctx.obj, CliOptions) else CliOptions()


def pack_command(
    ctx: typer.Context,
    handle: str = typer.Argument(..., help="Handle of the object to pack"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Directory for the archive"
    ),
    archive_format: Optional[str] = typer.Option(
        None, "--format", "-f", help="Archive format: zip or tgz"
    ),
) -> None:
    """Pack an object into an AIP.

    Examples:
        bagforge pack 123456789/2
        bagforge pack 123456789/2 --output ./aips --format tgz
    """
    exit_code = PackCommand(_options(ctx)).execute(
        handle=handle, output=output, archive_format=archive_format
    )
    if exit_code != 0:
        raise typer.Exit(code=exit_code)


def unpack_command(
    ctx: typer.Context,
    handle: str = typer.Argument(..., help="Handle of the object to restore"),
    archive: Path = typer.Argument(..., help="AIP archive to restore from"),
) -> None:
    """Restore an object from an AIP.

    The repository snapshot is written back on success.

    Examples:
        bagforge unpack 123456789/2 aips/COLLECTION@123456789-2.zip
    """
    exit_code = UnpackCommand(_options(ctx)).execute(handle=handle, archive=archive)
    if exit_code != 0:
        raise typer.Exit(code=exit_code)


def size_command(
    ctx: typer.Context,
    handle: str = typer.Argument(..., help="Handle of the object"),
    norecurse: bool = typer.Option(
        False, "--norecurse", help="Count only the object itself, not its items"
    ),
) -> None:
    """Estimate the packed size of an object in bytes.

    Examples:
        bagforge size 123456789/2
        bagforge size 123456789/2 --norecurse
    """
    exit_code = SizeCommand(_options(ctx)).execute(handle=handle, norecurse=norecurse)
    if exit_code != 0:
        raise typer.Exit(code=exit_code)

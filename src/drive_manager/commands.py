"""Subcommands and dispatch.

Each command parses its own flags in ``init`` (no side effects) and talks to
Drive in ``run``. The Drive client is only created once the arguments are
known to be valid, so usage errors never trigger the authorization flow.
"""

from __future__ import annotations

import argparse
import sys
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from drive_manager.exceptions import UsageError

if TYPE_CHECKING:
    from drive_manager.drive import DriveClient


class CommandParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting."""

    def error(self, message: str):
        raise UsageError(f"{self.prog}: {message}")


class Command(ABC):
    """A named, argument-initialized, runnable subcommand."""

    name: str = ""
    help: str = ""

    def __init__(self) -> None:
        self.parser = CommandParser(prog=self.name, description=self.help, add_help=False)
        self.configure(self.parser)
        self.args: argparse.Namespace | None = None

    def configure(self, parser: argparse.ArgumentParser) -> None:
        """Register the command's flags."""

    def init(self, args: Sequence[str]) -> None:
        """Parse and validate the command's flags.

        Raises:
            UsageError: If the flags are missing or invalid.
        """
        self.args = self.parser.parse_args(list(args))
        self.validate(self.args)

    def validate(self, args: argparse.Namespace) -> None:
        """Check parsed flags beyond what argparse enforces."""

    @abstractmethod
    def run(self, client: DriveClient, out: TextIO) -> None:
        """Execute against Drive."""


class ListCommand(Command):
    name = "list"
    help = "List files and/or folders"

    HEADERS = {
        "files": "Files:",
        "folders": "Folders:",
        "all": "Files and folders:",
    }

    def configure(self, parser):
        group = parser.add_mutually_exclusive_group(required=True)
        group.add_argument("--files", dest="kind", action="store_const", const="files",
                           help="List only files")
        group.add_argument("--folders", dest="kind", action="store_const", const="folders",
                           help="List only folders")
        group.add_argument("--all", dest="kind", action="store_const", const="all",
                           help="List files and folders")

    def run(self, client, out):
        files = client.list_files(self.args.kind)

        print(self.HEADERS[self.args.kind], file=out)
        if not files:
            print("No files or folders found.", file=out)
            return
        for item in files:
            print(f"{item.name} ({item.id})", file=out)


class DownloadCommand(Command):
    name = "download"
    help = "Download a file by ID"

    def configure(self, parser):
        parser.add_argument("--fileId", dest="file_id", required=True,
                            help="The id of the file to be downloaded")
        parser.add_argument("--filename", required=True,
                            help="Name of the locally created file")

    def validate(self, args):
        if not args.file_id or not args.filename:
            raise UsageError("you must set the value of the fileId and filename flags")

    def run(self, client, out):
        path = client.download_file(self.args.file_id, self.args.filename)
        print(f"Downloaded to: {path}", file=out)


class UploadCommand(Command):
    name = "upload"
    help = "Upload a local file"

    def configure(self, parser):
        parser.add_argument("--filepath", required=True,
                            help="File path of the file to be uploaded")

    def validate(self, args):
        if not args.filepath:
            raise UsageError("you must set the value of the filepath flag")
        if not Path(args.filepath).suffix:
            raise UsageError("filename must have an extension")

    def run(self, client, out):
        file = client.upload_file(self.args.filepath)
        print(f"File Id: {file.id}", file=out)


COMMANDS: tuple[type[Command], ...] = (ListCommand, DownloadCommand, UploadCommand)


def find_command(name: str) -> Command:
    """Look up a subcommand by name.

    Raises:
        UsageError: If no command has that name.
    """
    for command_cls in COMMANDS:
        if command_cls.name == name:
            return command_cls()
    raise UsageError(f"unknown subcommand: {name}")


def dispatch(
    argv: Sequence[str],
    client_factory: Callable[[], DriveClient],
    out: TextIO | None = None,
) -> Command:
    """Run the subcommand named by ``argv[0]`` with the remaining arguments.

    Args:
        argv: Subcommand name followed by its flags.
        client_factory: Builds the Drive client once arguments validate.
        out: Stream for command output. Defaults to stdout.

    Returns:
        The command that ran.

    Raises:
        UsageError: If the subcommand or its flags are invalid.
        RemoteCallError: If the Drive call fails.
    """
    if not argv:
        raise UsageError("you must pass a sub-command")

    command = find_command(argv[0])
    command.init(argv[1:])
    command.run(client_factory(), out or sys.stdout)
    return command

"""Allow ``python -m togif``."""

from togif.cli.main import cli_entry

cli_entry()

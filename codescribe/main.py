"""Entry point for codescribe.

Delegates to the Click command group, which loads the configuration
and sets up logging before running a command.
"""

from codescribe.cli.commands import codescribe


def main() -> None:
    """Launch the CLI."""
    codescribe()


if __name__ == "__main__":
    main()

"""Main function for nightscore."""

from nightscore.core import cli


def run_main() -> None:
    """Main entry point to nightscore."""
    cli.app()


if __name__ == "__main__":
    cli.app()

"""palaver CLI entry point."""

from palaver.cli.app import app

if __name__ == "__main__":
    app()

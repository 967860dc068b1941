"""Entry point for ``python -m mongodb_s3_backup``."""

from mongodb_s3_backup.cli import app

if __name__ == "__main__":
    app()

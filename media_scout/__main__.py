# media_scout/__main__.py
"""Позволяет запускать сканер как ``python -m media_scout``."""
from media_scout.cli import cli

if __name__ == "__main__":  # pragma: no cover
    cli(prog_name="media_scout")

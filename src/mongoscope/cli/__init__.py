"""
mongoscope CLI Module.

Typer commands for serving the API, browsing and exporting collections.
"""

from .app import app, run

run_cli = run

__all__ = ["app", "run", "run_cli"]

"""Application entrypoint for the DineDesk Flask project."""
from __future__ import annotations

from dinedesk_ext import create_app

app = create_app()


if __name__ == "__main__":
    # Use wsgi.py behind a WSGI server in production.
    app.run(use_reloader=False, host="0.0.0.0", port=8000)

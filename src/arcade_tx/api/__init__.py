"""HTTP surface for the transaction pipeline."""

from arcade_tx.api.routes import create_app, run_server

__all__ = ["create_app", "run_server"]

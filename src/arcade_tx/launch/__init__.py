"""Token launch: form validation, minter client, orchestrator."""

from arcade_tx.launch.minter import MinterClient
from arcade_tx.launch.orchestrator import LaunchOrchestrator
from arcade_tx.launch.validation import validate_metadata

__all__ = ["MinterClient", "LaunchOrchestrator", "validate_metadata"]

"""arcade_tx - transaction orchestration for the arcade launchpad."""

__version__ = "0.1.0"

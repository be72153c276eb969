"""
Local package for uvn.

This package holds everything that runs on the local machine: the user
configuration loader, the process supervisor, the session orchestrator
and the console surface.
"""

from .config import SessionConfig, load_session_config
from .session import run_session

__all__ = ["SessionConfig", "load_session_config", "run_session"]

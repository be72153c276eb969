"""
Exception types raised by the configuration loader, the process supervisor
and the session orchestrator.
"""


class UvnError(Exception):
    """Base class for all errors reported to the user as a single diagnostic line."""


class ConfigError(UvnError):
    """The user configuration file is missing, malformed or incomplete."""


class SpawnError(UvnError):
    """A supervised process could not be launched. Nothing was started."""


class NotReadyError(UvnError):
    """
    The supervised process never reported readiness: it timed out, exited
    first, or was never started. `outcome` holds the ExitOutcome that ended the wait.
    """

    def __init__(self, message: str, outcome=None):
        super().__init__(message)
        self.outcome = outcome


class ReadinessTimeout(NotReadyError):
    """The supervised process was still running but did not report readiness in time."""


class StopError(UvnError):
    """A supervised process could not be terminated."""

"""
The Supervisor package.
Manages the lifecycle of one background process: launch, output monitoring,
readiness detection and termination.
"""
from .readiness import ExitOutcome, ReadinessSignal
from .supervisor import ProcessHandle, ProcessState, ProcessSupervisor

__all__ = ['ExitOutcome', 'ReadinessSignal', 'ProcessHandle', 'ProcessState', 'ProcessSupervisor']

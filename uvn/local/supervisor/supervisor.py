import enum
import logging
import threading
import subprocess
from dataclasses import dataclass, field
from typing import List, Optional

from uvn import settings
from uvn.local.errors import NotReadyError, ReadinessTimeout, SpawnError, StopError
from uvn.local.supervisor import process_utils, shutdown
from uvn.local.supervisor.readiness import ExitOutcome, ReadinessSignal

log = logging.getLogger(__name__)


class ProcessState(enum.Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    EXITED_UNEXPECTEDLY = "exited_unexpectedly"


@dataclass
class ProcessHandle:
    """One spawned background process and the threads watching it."""
    name: str
    argv: List[str]
    process: subprocess.Popen
    cancel: threading.Event = field(default_factory=threading.Event)
    readiness: ReadinessSignal = field(default_factory=ReadinessSignal)
    exited: threading.Event = field(default_factory=threading.Event)
    readers: List[threading.Thread] = field(default_factory=list)
    reaper: Optional[threading.Thread] = None
    state: ProcessState = ProcessState.STARTING
    returncode: Optional[int] = None

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def is_ready(self) -> bool:
        return self.readiness.is_set


class ProcessSupervisor:
    """
    Manages the full lifecycle of exactly one background process.

    The supervisor launches the process, drains both of its output streams
    in background threads while scanning stdout for a readiness marker,
    lets the caller wait for readiness with a timeout, and terminates the
    process (and its children) on `stop`.
    """

    def __init__(
        self,
        name: str,
        readiness_marker: str = settings.READINESS_MARKER,
        verbose: bool = False,
        label: Optional[str] = None
    ) -> None:
        """
        :param name: Logical name of the process, used for logger and thread names.
        :param readiness_marker: Substring of a stdout line that proves readiness.
        :param verbose: If True, mirror the process output to the console.
        :param label: Prefix for mirrored lines. Defaults to the upper-cased name.
        """
        self.name = name
        self.readiness_marker = readiness_marker
        self.verbose = verbose
        self.label = label or name.upper()
        self.handle: Optional[ProcessHandle] = None

        self._mirror_level = logging.INFO if verbose else logging.DEBUG
        self._proc_logger = logging.getLogger(f"proc.{name}")
        self._state_lock = threading.Lock()
        self._stop_lock = threading.Lock()

    @property
    def state(self) -> ProcessState:
        if self.handle is None:
            return ProcessState.NOT_STARTED
        return self.handle.state

    def _set_state(self, state: ProcessState) -> None:
        with self._state_lock:
            self.handle.state = state

    #* --- Start ---
    def start(self, command: str, args: List[str], elevate: bool = False) -> ProcessHandle:
        """
        Launches the process and starts its output monitor and reaper threads.

        :param command: The executable to run.
        :param args: Arguments for the executable.
        :param elevate: If True, run through the privilege-elevation wrapper.
        :return ProcessHandle: The handle of the running process.
        :raises SpawnError: If the process could not be created. Nothing is left running.
        :raises RuntimeError: If this supervisor already started a process.
        """
        if self.handle is not None:
            raise RuntimeError(f"Process '{self.name}' has already been started.")

        argv = process_utils.build_command_line(command, args, elevate)
        log.debug(f"Starting process: {self.name}...")
        try:
            process = process_utils.launch_process(argv)
        except (OSError, ValueError) as e:
            raise SpawnError(f"could not launch {argv[0]}: {e}") from e

        handle = ProcessHandle(name=self.name, argv=argv, process=process)
        self.handle = handle
        handle.state = ProcessState.RUNNING

        handle.readers = self._monitor_output(handle)
        handle.reaper = threading.Thread(
            target=self._reap, args=(handle,), name=f"{self.name}-reaper", daemon=True
        )
        handle.reaper.start()

        log.debug(f"{self.name} started with PID: {process.pid}")
        return handle

    #* --- Output Monitoring ---
    def _monitor_output(self, handle: ProcessHandle) -> List[threading.Thread]:
        """Starts one reader thread per output stream."""
        def on_stdout(line: str) -> None:
            self._proc_logger.log(self._mirror_level, f"[{self.label} STDOUT] {line}")
            if self.readiness_marker in line and handle.readiness.signal():
                log.debug(f"Readiness marker observed in {self.name} output.")

        def on_stderr(line: str) -> None:
            self._proc_logger.log(self._mirror_level, f"[{self.label} STDERR] {line}")

        return process_utils.log_process_output(handle.process, self.name, on_stdout, on_stderr)

    def _reap(self, handle: ProcessHandle) -> None:
        """Waits for the process to exit, then unblocks every readiness waiter."""
        returncode = handle.process.wait()
        # Drain what is left in the pipes so a marker printed right before exit still counts.
        for reader in handle.readers:
            reader.join(timeout=settings.PIPE_DRAIN_TIMEOUT)

        with self._state_lock:
            handle.returncode = returncode
            if handle.cancel.is_set():
                handle.state = ProcessState.STOPPED
            else:
                handle.state = ProcessState.EXITED_UNEXPECTEDLY

        if handle.state is ProcessState.EXITED_UNEXPECTEDLY:
            log.debug(f"{self.name} (PID {handle.pid}) exited on its own with code {returncode}.")
        else:
            log.debug(f"{self.name} (PID {handle.pid}) stopped with code {returncode}.")

        handle.exited.set()
        handle.readiness.close()

    #* --- Readiness ---
    def wait_for_outcome(self, timeout: float) -> ExitOutcome:
        """
        Blocks until the readiness marker is seen, the process exits, or `timeout` elapses.

        :param timeout: Maximum number of seconds to wait.
        :return ExitOutcome: READY, TIMED_OUT, EXITED_EARLY, or SPAWN_FAILED if nothing runs.
        """
        if self.handle is None:
            return ExitOutcome.SPAWN_FAILED
        return self.handle.readiness.wait(timeout)

    def wait_until_ready(self, timeout: float) -> bool:
        """Returns True only if the process reported readiness within `timeout` seconds."""
        return self.wait_for_outcome(timeout) is ExitOutcome.READY

    def require_ready(self, timeout: float) -> None:
        """
        Waits for readiness and raises if it does not arrive.

        :param timeout: Maximum number of seconds to wait.
        :raises ReadinessTimeout: If the process is running but not ready in time.
        :raises NotReadyError: If the process exited first or was never started.
        """
        outcome = self.wait_for_outcome(timeout)
        if outcome is ExitOutcome.READY:
            return
        if outcome is ExitOutcome.EXITED_EARLY:
            raise NotReadyError(
                f"{self.label} process exited before it was ready (exit code {self.handle.returncode})",
                outcome=outcome
            )
        if outcome is ExitOutcome.SPAWN_FAILED:
            raise NotReadyError(f"{self.label} process was never started", outcome=outcome)
        log.info(f"- Timeout waiting for {self.label} to connect.")
        raise ReadinessTimeout(f"{self.label} did not start in time", outcome=outcome)

    #* --- Stop ---
    def stop(self) -> None:
        """
        Terminates the process and its children. Safe to call any number of times.

        Sends SIGTERM, waits for a graceful exit, then force-kills whatever is left.
        Does nothing if the process was never started or has already exited.

        :raises StopError: If a process cannot be signalled or is still running after being killed.
        """
        with self._stop_lock:
            handle = self.handle
            if handle is None:
                log.debug(f"Stop requested for {self.name}, but it was never started.")
                return
            if handle.exited.is_set():
                return

            handle.cancel.set()
            self._set_state(ProcessState.STOPPING)

            descendants = shutdown.identify_processes_to_stop(handle.pid)
            self._signal(handle, kill=False)
            shutdown.terminate_processes(descendants)

            if not handle.exited.wait(settings.GRACEFUL_SHUTDOWN_TIMEOUT):
                log.warning(f"{self.name} (PID {handle.pid}) did not terminate gracefully. Forcing shutdown...")
                self._signal(handle, kill=True)

            survivors = shutdown.graceful_shutdown_sequence(
                descendants, settings.GRACEFUL_SHUTDOWN_TIMEOUT, settings.FORCE_KILL_TIMEOUT
            )

            if not handle.exited.wait(settings.FORCE_KILL_TIMEOUT):
                raise StopError(f"{self.name} (PID {handle.pid}) is still running after being killed")
            if survivors:
                pids = ", ".join(str(proc.pid) for proc in survivors)
                raise StopError(f"child processes of {self.name} are still running: {pids}")

    @staticmethod
    def _signal(handle: ProcessHandle, kill: bool) -> None:
        try:
            if kill:
                handle.process.kill()
            else:
                handle.process.terminate()
        except ProcessLookupError:
            pass
        except PermissionError as e:
            action = "kill" if kill else "terminate"
            raise StopError(f"not permitted to {action} {handle.name} (PID {handle.pid}): {e}") from e

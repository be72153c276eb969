import psutil
import logging
from typing import Iterable, List, Set

log = logging.getLogger(__name__)


def is_process_running(proc: psutil.Process) -> bool:
    """Returns True if the process exists and is not a zombie."""
    try:
        return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.Error:
        return True


def identify_processes_to_stop(root_pid: int) -> Set[psutil.Process]:
    """
    Identifies all child processes of a supervised process.
    Must be called before the root is signalled, as orphans are re-parented.

    :param root_pid: PID of the supervised process.
    :return: A set of psutil.Process objects for every descendant.
    """
    try:
        return set(psutil.Process(root_pid).children(recursive=True))
    except psutil.NoSuchProcess:
        log.debug(f"Process {root_pid} no longer exists, skipping children retrieval.")
        return set()
    except psutil.AccessDenied:
        log.debug(f"Not allowed to list children of process {root_pid}.")
        return set()


def terminate_processes(processes: Iterable[psutil.Process]) -> None:
    """Sends SIGTERM to all processes."""
    for proc in processes:
        try:
            log.debug(f"Sending SIGTERM to PID {proc.pid}")
            proc.terminate()
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            # Root children of the elevation wrapper; the wrapper relays the signal.
            log.debug(f"Not allowed to signal PID {proc.pid}, relying on its parent to forward SIGTERM.")


def _forceful_kill(processes: List[psutil.Process]) -> None:
    """Forcefully kills processes that didn't terminate gracefully."""
    if not processes:
        return

    log.warning(f"{len(processes)} processes did not terminate gracefully. Forcing shutdown...")
    for proc in processes:
        try:
            log.warning(f"Killing stubborn process PID {proc.pid}.")
            proc.kill()
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            log.error(f"Not allowed to kill PID {proc.pid}.")


def _wait_for(processes: List[psutil.Process], timeout: float) -> List[psutil.Process]:
    """Waits for processes to exit and returns the ones still running."""
    if not processes:
        return []
    try:
        _, alive = psutil.wait_procs(processes, timeout=timeout)
    except psutil.TimeoutExpired:
        alive = processes
    except psutil.NoSuchProcess:
        alive = []
    return [proc for proc in alive if is_process_running(proc)]


def graceful_shutdown_sequence(
    processes: Set[psutil.Process],
    timeout: float,
    kill_timeout: float
) -> List[psutil.Process]:
    """
    Waits for already-signalled processes, force-killing any that outlive `timeout`.

    :param processes: The processes that were sent SIGTERM.
    :param timeout: Seconds to wait for a graceful exit.
    :param kill_timeout: Seconds to wait after the force kill.
    :return: Processes that are still running after the force kill.
    """
    alive = _wait_for(list(processes), timeout)

    # If any processes are still alive after the timeout, forcefully kill them.
    _forceful_kill(alive)
    return _wait_for(alive, kill_timeout)

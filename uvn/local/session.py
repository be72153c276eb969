import os
import sys
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, List, Optional, Union

from uvn import settings
from uvn.local.config import SessionConfig, check_configuration
from uvn.local.errors import NotReadyError, SpawnError, StopError
from uvn.local.supervisor import ProcessSupervisor
from uvn.local.supervisor import process_utils

log = logging.getLogger(__name__)


@contextmanager
def supervised(supervisor: ProcessSupervisor) -> Iterator[ProcessSupervisor]:
    """
    Guarantees the supervised process is stopped when the block exits,
    however it exits. A failure to stop is logged, never raised.
    """
    try:
        yield supervisor
    finally:
        log.debug(f"+ shutting down {supervisor.label}...")
        try:
            supervisor.stop()
        except StopError as e:
            log.error(f"error stopping {supervisor.label}: {e}")
        else:
            log.debug("+ success")


def _exit_status(returncode: int) -> int:
    """Maps a Popen return code to a shell-style exit status."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def run_wrapped_command(
    command: List[str],
    cwd: Union[str, Path],
    stdout: Optional[IO[bytes]] = None,
    stderr: Optional[IO[bytes]] = None
) -> int:
    """
    Runs the user's command and passes its output through to ours unchanged.

    Output is copied line by line as raw bytes, so binary or non-UTF-8 output
    and CRLF line endings survive intact.

    :param command: The command and its arguments.
    :param cwd: Working directory for the command.
    :param stdout: Binary stream receiving the command's stdout. Defaults to sys.stdout.buffer.
    :param stderr: Binary stream receiving the command's stderr. Defaults to sys.stderr.buffer.
    :return int: The command's exit status.
    :raises OSError: If the command cannot be started.
    """
    # Anything still buffered in the text layers must go out first.
    sys.stdout.flush()
    sys.stderr.flush()
    out = stdout if stdout is not None else sys.stdout.buffer
    err = stderr if stderr is not None else sys.stderr.buffer

    process = process_utils.launch_process(command, cwd=cwd, stdin=None)
    readers = process_utils.log_process_output(
        process,
        "command",
        lambda line: process_utils.write_raw_line(out, line),
        lambda line: process_utils.write_raw_line(err, line),
        raw=True
    )
    try:
        returncode = process.wait()
    except BaseException:
        # We are being torn down while the command still runs.
        process.terminate()
        raise
    for reader in readers:
        reader.join(timeout=settings.PIPE_DRAIN_TIMEOUT)
    return _exit_status(returncode)


def run_session(
    config: SessionConfig,
    command: List[str],
    cwd: Optional[Union[str, Path]] = None,
    timeout: float = settings.READINESS_TIMEOUT_SECONDS,
    vpn_binary: Optional[str] = None,
    elevate: bool = True
) -> int:
    """
    Brings the VPN up, runs `command` inside it, and tears the VPN down.

    The VPN is stopped on every path out of the session once it has been
    started: success, command failure, readiness timeout, early VPN exit,
    or an exception.

    :param config: The loaded session configuration.
    :param command: The command and its arguments to run once the VPN is up.
    :param cwd: Working directory for the command. Defaults to the current one.
    :param timeout: Seconds to wait for the VPN to report readiness.
    :param vpn_binary: The VPN client executable. Defaults to settings.VPN_BINARY.
    :param elevate: Launch the VPN client through the privilege-elevation wrapper.
    :return int: The exit status for the program.
    """
    check_configuration(config)
    supervisor = ProcessSupervisor("vpn", verbose=config.verbose)

    try:
        supervisor.start(
            vpn_binary or settings.VPN_BINARY,
            process_utils.build_vpn_arguments(config),
            elevate=elevate
        )
    except SpawnError as e:
        log.error(f"failed to start VPN due to: {e}")
        return 1

    with supervised(supervisor):
        try:
            supervisor.require_ready(timeout)
        except NotReadyError as e:
            log.error(str(e))
            return 1
        log.debug("+ VPN is up and running!!")

        if cwd is None:
            try:
                cwd = os.getcwd()
            except OSError as e:
                log.error(f"error getting current working dir: {e}")
                return 1

        log.debug(f"+ running {command} at {cwd}")
        try:
            status = run_wrapped_command(command, cwd)
        except OSError as e:
            log.error(f"error running {command}: {e}")
            return 1

        if status != 0:
            log.debug(f"{command[0]} exited with status {status}")
        return status

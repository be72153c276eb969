import logging
import subprocess
import threading
from pathlib import Path
from typing import IO, Any, Callable, List, Optional, Union

from uvn import settings
from uvn.local.config import SessionConfig

log = logging.getLogger(__name__)

# Receives a decoded `str` line, or the untouched `bytes` line in raw mode.
LineHandler = Callable[[Any], None]

# Serializes passthrough writes so lines from different reader threads never interleave.
_output_lock = threading.Lock()


#* --- Command Lines ---
def build_command_line(command: str, args: List[str], elevate: bool = False) -> List[str]:
    """
    Builds the argument vector for a supervised process.

    :param command: The executable to run.
    :param args: Arguments passed to the executable.
    :param elevate: If True, prefix the vector with the privilege-elevation wrapper.
    :return list: The full argument vector.
    """
    argv = [settings.ELEVATION_WRAPPER] if elevate else []
    argv.append(command)
    argv.extend(args)
    return argv


def build_vpn_arguments(config: SessionConfig) -> List[str]:
    """
    Returns the VPN client arguments for a session configuration.
    `--auth-user-pass` is only added when an auth file is configured.
    """
    args = ["--config", config.vpn_config_path]
    if config.auth_file_path:
        args.extend(["--auth-user-pass", config.auth_file_path])
    return args


#* --- Process Creation ---
def launch_process(
    argv: List[str],
    cwd: Optional[Union[str, Path]] = None,
    stdin: Optional[Union[int, IO]] = subprocess.DEVNULL
) -> subprocess.Popen:
    """
    Launches a process with piped stdout and stderr.

    :param argv: The full argument vector.
    :param cwd: Working directory for the process, or None to inherit ours.
    :param stdin: Standard input for the process. Pass None to inherit ours.
    :return subprocess.Popen: The running process.
    :raises OSError: If the executable cannot be started.
    """
    log.debug(f"Launching {argv} in {cwd or '.'}")
    return subprocess.Popen(
        argv,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=stdin,
        cwd=str(cwd) if cwd is not None else None,
    )


#* --- Output Streams ---
def _handle_line(proc_logger: logging.Logger, line, line_handler: LineHandler) -> None:
    """Handle a line using the custom handler."""
    try:
        line_handler(line)
    except Exception as e:
        proc_logger.error(f"Error in custom line_handler: {e}", exc_info=True)


def _read_pipe(pipe, process_name: str, line_handler: LineHandler, raw: bool = False) -> None:
    """
    Target function for reader threads. Reads a pipe line by line until EOF.

    In raw mode the handler gets each line exactly as read, line ending included.
    Otherwise the line is decoded and its line ending stripped.
    """
    proc_logger = logging.getLogger(f"proc.{process_name}")
    try:
        for line_bytes in iter(pipe.readline, b""):
            if raw:
                _handle_line(proc_logger, line_bytes, line_handler)
                continue
            line = line_bytes.decode("utf-8", errors="replace").rstrip("\r\n")
            _handle_line(proc_logger, line, line_handler)
    except Exception as e:
        proc_logger.debug(f"Pipe reader for {process_name} stream exited: {e}")
    finally:
        pipe.close()


def log_process_output(
    process: subprocess.Popen,
    process_name: str,
    stdout_handler: LineHandler,
    stderr_handler: LineHandler,
    raw: bool = False
) -> List[threading.Thread]:
    """
    Reads a process's stdout/stderr in threads and hands each line to a handler.

    One daemon thread per pipe drains it until the process closes it, so a full
    pipe buffer never blocks the child and one stream never waits on the other.

    :param process: The `subprocess.Popen` object to monitor.
    :param process_name: The logical name of the process for logging context.
    :param stdout_handler: Called with every stdout line (without the line ending).
    :param stderr_handler: Called with every stderr line (without the line ending).
    :param raw: If True, handlers get the undecoded bytes including the line ending.
    :return list: The started reader threads, to be joined once the process exits.
    """
    readers = []
    for stream_name, pipe, handler in (
        ("stdout", process.stdout, stdout_handler),
        ("stderr", process.stderr, stderr_handler),
    ):
        if not pipe:
            continue
        reader = threading.Thread(
            target=_read_pipe,
            args=(pipe, process_name, handler, raw),
            name=f"{process_name}-{stream_name}-reader",
            daemon=True
        )
        reader.start()
        readers.append(reader)
    return readers


def write_raw_line(stream: IO[bytes], line: bytes) -> None:
    """Writes one line to a binary `stream` unchanged and flushes it."""
    with _output_lock:
        stream.write(line)
        stream.flush()

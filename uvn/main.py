import sys
import signal
import logging
import setproctitle
from typing import Callable, Dict, List, Optional

from uvn import settings
from uvn.log.setup import setup_logging
from uvn.local.config import load_session_config
from uvn.local.console import parse_arguments, print_usage, print_version
from uvn.local.errors import ConfigError
from uvn.local.session import run_session

log = logging.getLogger("uvn")

# Signals that must still tear the VPN down when they reach us.
TERMINATION_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


def _raise_system_exit(signum: int, frame) -> None:
    """Turns a termination signal into SystemExit so cleanup blocks run."""
    raise SystemExit(128 + signum)


def _install_signal_handlers() -> Dict[int, Callable]:
    """Installs the termination handlers and returns the previous ones."""
    previous = {}
    for signum in TERMINATION_SIGNALS:
        previous[signum] = signal.signal(signum, _raise_system_exit)
    return previous


def _restore_signal_handlers(previous: Dict[int, Callable]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def main(argv: Optional[List[str]] = None) -> int:
    """
    The main entry point for the uvn command.

    :param argv: The full argument vector, program name first. Defaults to sys.argv.
    :return int: The process exit status.
    """
    arguments = parse_arguments(sys.argv if argv is None else argv)
    # Computed once here and handed to everything that needs it.
    config_path = settings.default_config_path()

    if arguments.show_help:
        print_usage(arguments.program_name, config_path)
        return 0
    if arguments.show_version:
        print_version()
        return 0
    if not arguments.command:
        print_usage(arguments.program_name, config_path)
        return 1

    setup_logging(logging.DEBUG if arguments.verbose else logging.INFO)

    try:
        config = load_session_config(config_path, verbose=arguments.verbose)
    except ConfigError as e:
        log.error(str(e))
        return 1

    original_title = setproctitle.getproctitle()
    setproctitle.setproctitle(f"{settings.PROGRAM_NAME} - {' '.join(arguments.command)}")
    previous_handlers = _install_signal_handlers()
    try:
        return run_session(config, arguments.command)
    except KeyboardInterrupt:
        log.warning("Interrupted.")
        return 130
    finally:
        _restore_signal_handlers(previous_handlers)
        setproctitle.setproctitle(original_title)


if __name__ == "__main__":
    sys.exit(main())

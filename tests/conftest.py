import sys
import logging
import textwrap
from pathlib import Path

import psutil
import pytest

from uvn import settings
from uvn.local.supervisor import shutdown

MARKER = "Initialization Sequence Completed"


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """setup_logging replaces the root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def _fast_shutdown(monkeypatch):
    monkeypatch.setattr(settings, "GRACEFUL_SHUTDOWN_TIMEOUT", 1)
    monkeypatch.setattr(settings, "FORCE_KILL_TIMEOUT", 2)


@pytest.fixture
def make_script(tmp_path):
    """
    Writes a Python program to disk and returns the path of an executable
    launcher for it, usable anywhere a binary name is expected.
    """
    def _make(name: str, body: str) -> str:
        source = tmp_path / f"{name}.py"
        source.write_text(textwrap.dedent(body))
        launcher = tmp_path / name
        launcher.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{source}" "$@"\n')
        launcher.chmod(0o755)
        return str(launcher)
    return _make


@pytest.fixture
def pid_file(tmp_path) -> Path:
    return tmp_path / "vpn.pid"


@pytest.fixture
def ready_vpn(make_script, pid_file):
    """A stand-in VPN client that reports readiness and then idles."""
    return make_script("fake-openvpn", f"""
        import os, time
        with open({str(pid_file)!r}, "w") as f:
            f.write(str(os.getpid()))
        print("connecting", flush=True)
        print({MARKER!r}, flush=True)
        time.sleep(60)
    """)


@pytest.fixture
def silent_vpn(make_script, pid_file):
    """A stand-in VPN client that never reports readiness."""
    return make_script("silent-openvpn", f"""
        import os, time
        with open({str(pid_file)!r}, "w") as f:
            f.write(str(os.getpid()))
        print("still negotiating", flush=True)
        time.sleep(60)
    """)


def is_running(pid: int) -> bool:
    try:
        return shutdown.is_process_running(psutil.Process(pid))
    except psutil.NoSuchProcess:
        return False


def python_command(code: str) -> list:
    return [sys.executable, "-c", code]

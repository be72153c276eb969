import io
import sys

import pytest

from uvn import settings
from uvn.local.config import SessionConfig
from uvn.local.supervisor import process_utils

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX process semantics")


def test_build_command_line_with_elevation(monkeypatch):
    monkeypatch.setattr(settings, "ELEVATION_WRAPPER", "sudo")

    argv = process_utils.build_command_line("openvpn", ["--config", "/etc/vpn/a.conf"], elevate=True)

    assert argv == ["sudo", "openvpn", "--config", "/etc/vpn/a.conf"]


def test_build_command_line_without_elevation():
    assert process_utils.build_command_line("echo", ["hi"]) == ["echo", "hi"]


def test_vpn_arguments_include_auth_file_only_when_configured():
    without_auth = SessionConfig(vpn_config_path="/etc/vpn/a.conf")
    with_auth = SessionConfig(vpn_config_path="/etc/vpn/a.conf", auth_file_path="/etc/vpn/auth.txt")

    assert process_utils.build_vpn_arguments(without_auth) == ["--config", "/etc/vpn/a.conf"]
    assert process_utils.build_vpn_arguments(with_auth) == [
        "--config", "/etc/vpn/a.conf", "--auth-user-pass", "/etc/vpn/auth.txt"
    ]


def test_readers_drain_both_streams_without_blocking_the_child():
    # Far more than a pipe buffer on stderr before anything on stdout.
    code = (
        "import sys\n"
        "for i in range(20000): sys.stderr.write('err %d\\n' % i)\n"
        "sys.stderr.flush()\n"
        "print('done', flush=True)\n"
    )
    process = process_utils.launch_process([sys.executable, "-c", code])
    out_lines, err_lines = [], []

    readers = process_utils.log_process_output(process, "test", out_lines.append, err_lines.append)

    assert process.wait(timeout=30) == 0
    for reader in readers:
        reader.join(timeout=10)
        assert not reader.is_alive()
    assert out_lines == ["done"]
    assert len(err_lines) == 20000
    assert err_lines[-1] == "err 19999"


def test_reader_survives_a_failing_line_handler():
    process = process_utils.launch_process([sys.executable, "-c", "print('a'); print('b')"])
    seen = []

    def handler(line):
        seen.append(line)
        raise ValueError("boom")

    readers = process_utils.log_process_output(process, "test", handler, lambda line: None)
    process.wait(timeout=10)
    for reader in readers:
        reader.join(timeout=10)

    assert seen == ["a", "b"]


def test_launch_process_raises_for_missing_binary(tmp_path):
    with pytest.raises(OSError):
        process_utils.launch_process([str(tmp_path / "does-not-exist")])


def test_raw_readers_hand_over_undecoded_lines():
    code = "import sys; sys.stdout.buffer.write(b'\\xff\\xfe\\x00ab\\r\\nno newline')"
    process = process_utils.launch_process([sys.executable, "-c", code])
    out_lines = []

    readers = process_utils.log_process_output(
        process, "test", out_lines.append, lambda line: None, raw=True
    )
    process.wait(timeout=10)
    for reader in readers:
        reader.join(timeout=10)

    assert out_lines == [b"\xff\xfe\x00ab\r\n", b"no newline"]


def test_write_raw_line_writes_bytes_unchanged():
    stream = io.BytesIO()

    process_utils.write_raw_line(stream, b"\xff\xfe\r\n")
    process_utils.write_raw_line(stream, b"tail")

    assert stream.getvalue() == b"\xff\xfe\r\ntail"

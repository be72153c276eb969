import logging

from uvn import settings
from uvn.log import setup_logging


def test_console_keeps_plain_messages_in_verbose_mode(monkeypatch, capsys):
    monkeypatch.setattr(settings, "LOG_FILE_PATH", "")
    setup_logging(logging.DEBUG)

    logging.getLogger("uvn.local.session").debug("+ success")

    assert capsys.readouterr().err == "+ success\n"


def test_subprocess_lines_are_emitted_raw(monkeypatch, capsys):
    monkeypatch.setattr(settings, "LOG_FILE_PATH", "")
    setup_logging(logging.INFO)

    logging.getLogger("proc.vpn").info("[VPN STDOUT] hello")
    logging.getLogger("uvn").debug("hidden below INFO")

    assert capsys.readouterr().err == "[VPN STDOUT] hello\n"


def test_file_handler_uses_detailed_format(tmp_path, monkeypatch, capsys):
    log_file = tmp_path / "uvn.log"
    monkeypatch.setattr(settings, "LOG_FILE_PATH", str(log_file))
    setup_logging(logging.INFO)

    logging.getLogger("uvn.main").debug("+ VPN is up and running!!")
    for handler in logging.getLogger().handlers:
        handler.close()

    assert "DEBUG" in log_file.read_text()
    assert "[uvn.main] - + VPN is up and running!!" in log_file.read_text()
    assert capsys.readouterr().err == ""

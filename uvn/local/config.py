import logging
from pathlib import Path
from dataclasses import dataclass
from typing import Optional, Union

from uvn import settings
from uvn.local.errors import ConfigError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionConfig:
    """
    Immutable settings for one VPN session.

    :param vpn_config_path: Path to the OpenVPN client configuration.
    :param auth_file_path: Optional path to an --auth-user-pass credentials file.
    :param verbose: Mirror the VPN output and lifecycle messages to the console.
    """
    vpn_config_path: str
    auth_file_path: Optional[str] = None
    verbose: bool = False


def _parse_value(raw: str) -> str:
    """Strips surrounding double quotes from a value."""
    value = raw.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    return value


def _expand_home(value: str, home_dir: Path) -> str:
    """Replaces a leading '~' with the user's home directory."""
    if value.startswith("~"):
        return str(home_dir) + value[1:]
    return value


def parse_config_text(text: str, home_dir: Path, verbose: bool = False) -> SessionConfig:
    """
    Parses the `key = value` configuration format.

    Blank lines are skipped, values may be double-quoted, and a leading '~'
    in path-valued keys expands to `home_dir`. Unknown keys are ignored.

    :param text: The full contents of the configuration file.
    :param home_dir: The directory substituted for a leading '~'.
    :param verbose: Carried into the resulting SessionConfig.
    :return SessionConfig: The parsed configuration.
    :raises ConfigError: On a malformed line (with its 1-based number) or a missing required key.
    """
    values = {}
    for line_number, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line.strip()
        if not line:
            continue

        separator = line.find("=")
        if separator < 0:
            raise ConfigError(f"line {line_number}: invalid config line: {line}")

        key = line[:separator].strip()
        if not key:
            raise ConfigError(f"line {line_number}: empty key")

        value = _parse_value(line[separator + 1:])
        if not value:
            raise ConfigError(f"line {line_number}: {key} does not have a value")

        if key in settings.PATH_VALUED_KEYS:
            value = _expand_home(value, home_dir)
        else:
            log.warning(f"line {line_number}: unknown configuration key '{key}'. Ignoring.")
            continue

        values[key] = value

    vpn_config_path = values.get(settings.VPN_FILE_PATH_KEY)
    if not vpn_config_path:
        raise ConfigError(f"missing {settings.VPN_FILE_PATH_KEY} configuration")

    return SessionConfig(
        vpn_config_path=vpn_config_path,
        auth_file_path=values.get(settings.VPN_AUTH_FILE_PATH_KEY),
        verbose=verbose,
    )


def load_session_config(
    config_path: Union[str, Path],
    home_dir: Optional[Path] = None,
    verbose: bool = False
) -> SessionConfig:
    """
    Loads the user configuration file from `config_path`.

    :param config_path: Location of the configuration file, computed once at startup.
    :param home_dir: Home directory for '~' expansion. Defaults to the current user's.
    :param verbose: Carried into the resulting SessionConfig.
    :return SessionConfig: The loaded configuration.
    :raises ConfigError: If the file is absent, unreadable or invalid.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(
            f"please create a config file at {config_path} and add respective configurations. "
            "see --help for more details"
        )

    try:
        text = config_path.read_text(encoding="utf-8")
    except (IOError, UnicodeDecodeError) as e:
        raise ConfigError(f"could not read config file {config_path}: {e}") from e

    log.debug(f"Loading configuration from {config_path}")
    return parse_config_text(text, home_dir or Path.home(), verbose=verbose)


def check_configuration(config: SessionConfig) -> bool:
    """
    Validates that the files referenced by the configuration exist.
    Problems are logged as warnings; the VPN client reports the real error.

    :param config: The loaded session configuration.
    :return: True if all referenced files are found, otherwise False.
    """
    all_ok = True
    checks = {settings.VPN_FILE_PATH_KEY: config.vpn_config_path}
    if config.auth_file_path:
        checks[settings.VPN_AUTH_FILE_PATH_KEY] = config.auth_file_path

    for key, path in checks.items():
        if not Path(path).exists():
            log.warning(f"CONFIG CHECK FAILED: {key} points to '{path}', which does not exist")
            all_ok = False
        else:
            log.debug(f"Config Check OK: Found {key} at '{path}'")
    return all_ok

"""
This module contains the configuration defaults for uvn.
It defines the version, the external binaries used to bring the VPN up,
readiness detection and shutdown timings, and logging options.
Values marked with os.getenv can be overridden from the environment or a .env file.
"""

import os
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

#* --- Application ---
VERSION = "1.1.1"
PROGRAM_NAME = "uvn"

#* --- User Configuration File ---
CONFIG_FILE_NAME = ".uvn.conf"
VPN_FILE_PATH_KEY = "vpn_file_path"
VPN_AUTH_FILE_PATH_KEY = "vpn_auth_file_path"
PATH_VALUED_KEYS = {VPN_FILE_PATH_KEY, VPN_AUTH_FILE_PATH_KEY}

#* --- External Executables ---
VPN_BINARY = os.getenv("UVN_VPN_BINARY", "openvpn")
ELEVATION_WRAPPER = os.getenv("UVN_ELEVATION_WRAPPER", "sudo")

#* --- Supervisor Settings ---
READINESS_MARKER = "Initialization Sequence Completed"
READINESS_TIMEOUT_SECONDS = 15
GRACEFUL_SHUTDOWN_TIMEOUT = 5   # seconds before force-killing
FORCE_KILL_TIMEOUT = 2          # seconds to wait for a killed process to be reaped
PIPE_DRAIN_TIMEOUT = 2          # seconds to keep reading output after the process exited

#* --- Logging ---
LOG_FILE_PATH = os.getenv("UVN_LOG_FILE", "")


def default_config_path() -> pathlib.Path:
    """
    Returns the location of the user configuration file.

    `UVN_CONFIG_PATH` takes precedence, otherwise the file lives in the home directory.
    Called once at startup; the result is passed explicitly to the loader.

    :return pathlib.Path: The configuration file path.
    """
    override = os.getenv("UVN_CONFIG_PATH")
    if override:
        return pathlib.Path(override).expanduser()
    return pathlib.Path.home() / CONFIG_FILE_NAME

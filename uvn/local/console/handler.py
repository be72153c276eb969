import os
import sys
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Sequence

from uvn import settings


@dataclass
class Arguments:
    """The parsed command line."""
    program_name: str
    command: List[str] = field(default_factory=list)
    verbose: bool = False
    show_help: bool = False
    show_version: bool = False


def parse_arguments(argv: Sequence[str]) -> Arguments:
    """
    Parses the command line.

    Flags are only recognised before the first command word; the command
    word and everything after it are passed through untouched, so
    `uvn git push -v` hands `-v` to git.

    :param argv: The full argument vector, program name first.
    :return Arguments: The parsed arguments.
    """
    program_name = os.path.basename(argv[0]) if argv else settings.PROGRAM_NAME
    arguments = Arguments(program_name=program_name)

    for arg in argv[1:]:
        if arguments.command:
            arguments.command.append(arg)
        elif arg in ("-h", "--help"):
            arguments.show_help = True
            break
        elif arg in ("-v", "--verbose"):
            arguments.verbose = True
        elif arg == "--version":
            arguments.show_version = True
            break
        else:
            arguments.command.append(arg)

    return arguments


def print_usage(program_name: str, config_path: Path) -> None:
    """Prints the usage text to stderr."""
    out = sys.stderr
    print(f"usage: {program_name} <command to run inside vpn>", file=out)
    print(f"  You need to have a configuration file at {config_path}", file=out)
    print(f"  in this file, you should set up \"{settings.VPN_FILE_PATH_KEY}\" which is a string "
          "with the absolute path to your vpn configuration file", file=out)
    print(f"  you also can setup \"{settings.VPN_AUTH_FILE_PATH_KEY}\" which is a string "
          "with the absolute path to your vpn auth-user-pass configuration file", file=out)
    print(file=out)
    print("  -h  --help        show this message", file=out)
    print("  -v  --verbose     verbose mode", file=out)
    print("      --version     show current version", file=out)
    print(file=out)
    print("  this program will get the VPN up and then run the command passed as arguments", file=out)
    print(f"  for example \"{program_name} git push --force\" will get the VPN up and running then, "
          "execute \"git push --force\" from the directory your are running this program", file=out)


def print_version() -> None:
    """Prints the version to stdout."""
    print(settings.VERSION)

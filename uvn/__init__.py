"""
uvn brings a VPN up, runs a command inside it, and takes the VPN down again.
"""

from .settings import VERSION

__version__ = VERSION

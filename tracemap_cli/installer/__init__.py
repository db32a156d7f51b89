"""Installer protocols and the default URL-pinning installer."""

from .local import LocalInstaller
from .protocol import InstallerFactory
from .protocol import InstallOptions
from .protocol import InstallTarget
from .protocol import PackageInstaller

__all__ = [
    "InstallOptions",
    "InstallTarget",
    "InstallerFactory",
    "PackageInstaller",
    "LocalInstaller",
]

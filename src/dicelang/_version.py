"""Installed version of the dicelang distribution."""

from importlib.metadata import PackageNotFoundError, version


def get_version() -> str:
    """Return the installed package version, or ``0.0.0`` when running from a bare checkout."""
    try:
        return version("dicelang")
    except PackageNotFoundError:
        return "0.0.0"

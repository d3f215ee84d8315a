"""Per-user download quota and account service."""

from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION_NAME = "download-quota"

try:
    __version__: str = version(DISTRIBUTION_NAME)
except PackageNotFoundError:
    # Running from a source checkout that was never installed.
    __version__ = "0.0.0"

"""hostwatch — process control and live telemetry for a single host."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("hostwatch")
except PackageNotFoundError:
    __version__ = "0.1.0"  # fallback for development

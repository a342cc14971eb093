"""Repository state engine with changelists and hunk-level partial commits."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("gitpanel")
except PackageNotFoundError:
    # Fallback for development mode
    __version__ = "0.0.0-dev"

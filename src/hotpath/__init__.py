"""hotpath: static pattern and complexity analysis for performance reviews."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("hotpath-engine")
except PackageNotFoundError:
    __version__ = "dev"

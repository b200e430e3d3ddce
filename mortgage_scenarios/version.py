from importlib import metadata

DISTRIBUTION = "mortgage-scenarios"

try:
    __version__ = metadata.version(DISTRIBUTION)
except metadata.PackageNotFoundError:  # pragma: no cover - source checkout
    __version__ = "0.1.0"

# numeric prefix only; local/dev suffixes are dropped
version_info = tuple(int(p) for p in __version__.split("+")[0].split(".")[:3] if p.isdigit())

"""Per-run infrastructure: context, parse cache, worker pools and atomic writes."""

from .cache import ParseCache
from .context import RunContext
from .pool import map_bounded
from .atomic import atomic_write_text

__all__ = [
    "ParseCache",
    "RunContext",
    "map_bounded",
    "atomic_write_text",
]

"""Database models — re-exports all models.

Import from here:  from salestrack.models import Item, SalesSnapshot, ...
Or from submodules: from salestrack.models.catalog import Item
"""

from .base import Base  # noqa: F401

# Catalog: tracked items and their sales snapshots
from .catalog import Item, SalesSnapshot  # noqa: F401

# Scan runs
from .scan import ScanRun, ScanStatus  # noqa: F401

# Result cache (database fallback)
from .cache import ResultCacheEntry  # noqa: F401

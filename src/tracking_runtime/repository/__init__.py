"""Dynamic Token Repository

Hot-reloadable ``key=value`` repository with:
- ResourceLoader (URL -> sys.path resource -> file resolution)
- RepositoryStore with atomic snapshot swap on reload
- ReloadWatcher polling the resource's modification signal
- ChangeNotifier fan-out with per-listener error isolation
- Environment-based settings
"""

from .events import ChangeEvent, ChangeKind, RawChange, RepositoryListener
from .loader import Resource, ResourceLoader, parse_properties
from .store import RepositoryStore
from .notifier import ChangeNotifier
from .watcher import ReloadWatcher
from .settings import DEFAULT_REFRESH_MS, RepositorySettings, RepositoryOptions
from .token_repository import DynamicTokenRepository

__all__ = [
    # events
    "ChangeEvent",
    "ChangeKind",
    "RawChange",
    "RepositoryListener",
    # loading
    "Resource",
    "ResourceLoader",
    "parse_properties",
    # runtime
    "RepositoryStore",
    "ChangeNotifier",
    "ReloadWatcher",
    "DynamicTokenRepository",
    # settings
    "DEFAULT_REFRESH_MS",
    "RepositorySettings",
    "RepositoryOptions",
]

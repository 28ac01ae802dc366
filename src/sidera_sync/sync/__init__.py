"""Local/remote alignment of the active character record.

Provides:
- CharacterStateStore: owned container for the active record
- ScheduledTask: cancellable trailing-debounce timer
- DebouncedSyncEngine: pushes local edits after an idle window
- RealtimeMergeListener: merges remote-origin changes into local state
"""

from sidera_sync.sync.engine import DebouncedSyncEngine
from sidera_sync.sync.merge import RealtimeMergeListener
from sidera_sync.sync.scheduler import ScheduledTask
from sidera_sync.sync.state import ChangeOrigin, CharacterStateStore

__all__ = [
    "ChangeOrigin",
    "CharacterStateStore",
    "DebouncedSyncEngine",
    "RealtimeMergeListener",
    "ScheduledTask",
]

"""Known character profiles across device and backend."""

from sidera_sync.profiles.service import ProfileIndexService

__all__ = ["ProfileIndexService"]

"""
Persisted sync settings.
"""

from .models import ApiCredentials, SyncSettings
from .store import SettingsStore

__all__ = [
    "ApiCredentials",
    "SettingsStore",
    "SyncSettings",
]

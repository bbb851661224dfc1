"""
core/maintenance.py
-------------------
Process-wide maintenance switch.

The flag lives in memory only: a restart resets it to off. Requests under
the auth and superadmin namespaces are never blocked so an operator can
always log in and turn it back off.
"""

import threading

MAINTENANCE_EXEMPT_PREFIXES = ("/api/auth", "/api/superadmin")


class MaintenanceFlag:

    def __init__(self, enabled: bool = False) -> None:
        self._lock = threading.Lock()
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        with self._lock:
            return self._enabled

    def set(self, enabled: bool) -> bool:
        """Store the new value and return the previous one."""
        with self._lock:
            previous, self._enabled = self._enabled, bool(enabled)
            return previous

    def blocks(self, path: str) -> bool:
        if not self.enabled:
            return False
        return not path.startswith(MAINTENANCE_EXEMPT_PREFIXES)


# Singleton — shared across all requests
maintenance_flag = MaintenanceFlag()

"""
services/settings_service.py
----------------------------
Runtime settings editable from the superadmin portal. The only one today is
the maintenance switch, which is held in memory (see core/maintenance.py).
"""

from typing import Union

from bikedesk.core.errors import ValidationFailed
from bikedesk.core.logging import get_logger, log_admin_action
from bikedesk.core.maintenance import maintenance_flag
from bikedesk.schemas.settings import SettingRead

logger = get_logger(__name__)

MAINTENANCE_MODE = "maintenance_mode"


def _parse_bool(value: Union[bool, str]) -> bool:
    if isinstance(value, bool):
        return value
    normalised = value.strip().lower()
    if normalised == "true":
        return True
    if normalised == "false":
        return False
    raise ValidationFailed(f"Setting '{MAINTENANCE_MODE}' expects true or false")


class SettingsService:

    @staticmethod
    def list_settings() -> list[SettingRead]:
        return [
            SettingRead(
                key=MAINTENANCE_MODE,
                value=str(maintenance_flag.enabled).lower(),
                description="Reject tenant and public requests with 503 while enabled",
                type="boolean",
            )
        ]

    @staticmethod
    def update_setting(key: str, value: Union[bool, str], actor_id: str) -> SettingRead:
        if key != MAINTENANCE_MODE:
            raise ValidationFailed(f"Unknown setting '{key}'")

        enabled = _parse_bool(value)
        previous = maintenance_flag.set(enabled)
        log_admin_action(
            logger,
            actor_id,
            "UPDATE_SETTING",
            key=key,
            previous=previous,
            value=enabled,
        )
        if previous != enabled:
            logger.warning("Maintenance mode toggled", enabled=enabled)
        return SettingsService.list_settings()[0]

"""
Meter configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
At startup the settings are seeded into the external store (the host's
source of truth for device variables); vendor credentials are then read back
from the store into a :class:`VendorConfig` so a host can reconfigure the
meter by editing store keys.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings

from solarmeter.src.store import KEY_DAY_INTERVAL, KEY_DISABLED, KEY_SYSTEM

if TYPE_CHECKING:
    from solarmeter.src.store import Store

# ---------------------------------------------------------------------------
# Vendor credentials: field name -> store key
# ---------------------------------------------------------------------------

VENDOR_KEYS: dict[str, str] = {
    "en_ip_address": "EN_IPAddress",
    "en_api_key": "EN_APIKey",
    "en_user_id": "EN_UserID",
    "en_system_id": "EN_SystemID",
    "fa_ip_address": "FA_IPAddress",
    "fa_device_id": "FA_DeviceID",
    "se_api_key": "SE_APIKey",
    "se_system_id": "SE_SystemID",
    "sg_user_id": "SG_UserID",
    "sg_password": "SG_Password",
    "pv_api_key": "PV_APIKey",
    "pv_system_id": "PV_SystemID",
    "pv_https": "PV_HTTPS",
    "sm_device_id": "SM_DeviceID",
    "sm_remember_me": "SM_rememberMe",
    "sx_api_key": "SX_APIKey",
    "sx_system_id": "SX_SystemID",
}

SECRET_FIELDS = frozenset(
    {"en_api_key", "se_api_key", "sg_password", "pv_api_key", "sm_remember_me", "sx_api_key"}
)

SUB_METER_KEYS: dict[str, str] = {
    "show_house_child": "ShowHouseChild",
    "show_grid_child": "ShowGridChild",
    "show_battery_child": "ShowBatteryChild",
}


class VendorConfig(BaseModel):
    """Credential / address bundle for every supported vendor.

    Only presence is checked here; each adapter validates the fields it
    needs during its Init step.
    """

    en_ip_address: str = ""
    en_api_key: str = ""
    en_user_id: str = ""
    en_system_id: str = ""
    fa_ip_address: str = ""
    fa_device_id: str = ""
    se_api_key: str = ""
    se_system_id: str = ""
    sg_user_id: str = ""
    sg_password: str = ""
    pv_api_key: str = ""
    pv_system_id: str = ""
    pv_https: bool = False
    sm_device_id: str = ""
    sm_remember_me: str = ""
    sx_api_key: str = ""
    sx_system_id: str = ""

    @classmethod
    async def load(cls, store: Store) -> VendorConfig:
        """Read every vendor key from the store."""
        values: dict[str, object] = {}
        for field_name, key in VENDOR_KEYS.items():
            text = (await store.get(key)).strip()
            if field_name == "pv_https":
                values[field_name] = text == "1"
            else:
                values[field_name] = text
        return cls(**values)


# ---------------------------------------------------------------------------
# Environment settings
# ---------------------------------------------------------------------------


class MeterSettings(BaseSettings):
    """Daemon configuration.

    All values are loaded from environment variables; every field has a
    default so the daemon starts even when unconfigured (it then reports a
    configuration error and waits to be reconfigured).

    Attributes:
        system: Selected vendor id (1..8), 0 for none.
        day_interval_s: Target seconds between refresh cycles.
        request_timeout_s: Timeout per vendor HTTP request.
        startup_delay_s: Seconds before the first refresh after startup.
        latitude: Site latitude for sunrise/sunset.
        longitude: Site longitude for sunrise/sunset.
        timezone: IANA zone for calendar bucketing; empty for host local.
        store_path: SQLite file backing the key/value store.
        health_path: JSON health file path.
        disabled: Skip polling entirely.
        show_house_child: Maintain the House sub-meter.
        show_grid_child: Maintain the GridIn/GridOut sub-meters.
        show_battery_child: Maintain the BatteryIn/BatteryOut sub-meters.
        log_level: Root log level.
    """

    system: int = 0
    day_interval_s: int = 30
    request_timeout_s: float = 15.0
    startup_delay_s: int = 30
    latitude: float = 0.0
    longitude: float = 0.0
    timezone: str = ""
    store_path: str = "/data/solarmeter.db"
    health_path: str = "/data/health.json"
    disabled: bool = False
    show_house_child: bool = False
    show_grid_child: bool = False
    show_battery_child: bool = False
    log_level: str = "INFO"

    en_ip_address: str = ""
    en_api_key: str = ""
    en_user_id: str = ""
    en_system_id: str = ""
    fa_ip_address: str = ""
    fa_device_id: str = ""
    se_api_key: str = ""
    se_system_id: str = ""
    sg_user_id: str = ""
    sg_password: str = ""
    pv_api_key: str = ""
    pv_system_id: str = ""
    pv_https: bool = False
    sm_device_id: str = ""
    sm_remember_me: str = ""
    sx_api_key: str = ""
    sx_system_id: str = ""

    @field_validator("system")
    @classmethod
    def system_must_be_known(cls, v: int) -> int:
        """Validate the vendor id is 0 (none) or one of the supported ids."""
        if v < 0 or v > 8:
            raise ValueError("SYSTEM must be between 0 and 8")
        return v

    @field_validator("day_interval_s")
    @classmethod
    def day_interval_must_be_reasonable(cls, v: int) -> int:
        """Validate the cycle length is at least the minimum retry delay."""
        if v < 10:
            raise ValueError("DAY_INTERVAL_S must be >= 10")
        return v

    @field_validator("request_timeout_s")
    @classmethod
    def request_timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("REQUEST_TIMEOUT_S must be > 0")
        return v

    @field_validator("startup_delay_s")
    @classmethod
    def startup_delay_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("STARTUP_DELAY_S must be >= 0")
        return v

    @field_validator("latitude")
    @classmethod
    def latitude_must_be_valid(cls, v: float) -> float:
        if v < -90 or v > 90:
            raise ValueError("LATITUDE must be between -90 and 90")
        return v

    @field_validator("longitude")
    @classmethod
    def longitude_must_be_valid(cls, v: float) -> float:
        if v < -180 or v > 180:
            raise ValueError("LONGITUDE must be between -180 and 180")
        return v

    @field_validator("timezone")
    @classmethod
    def timezone_must_exist(cls, v: str) -> str:
        """Validate the zone name against the IANA database."""
        if v:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"TIMEZONE '{v}' is not a known IANA zone") from exc
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError("LOG_LEVEL must be DEBUG, INFO, WARNING or ERROR")
        return level

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# ---------------------------------------------------------------------------
# Store seeding
# ---------------------------------------------------------------------------


async def seed_store(settings: MeterSettings, store: Store) -> None:
    """Copy settings into the store.

    Values explicitly configured in the environment (non-empty, non-zero)
    overwrite the store; anything else is only created when absent, so
    values edited in the host survive a restart.
    """

    async def _put(key: str, value: object, configured: bool) -> None:
        if configured:
            await store.set(key, value)
        else:
            await store.default(key, value)

    await _put(KEY_SYSTEM, settings.system, settings.system != 0)
    await _put(KEY_DAY_INTERVAL, settings.day_interval_s, True)
    await _put(KEY_DISABLED, settings.disabled, settings.disabled)
    for field_name, key in SUB_METER_KEYS.items():
        value = getattr(settings, field_name)
        await _put(key, value, value)
    for field_name, key in VENDOR_KEYS.items():
        value = getattr(settings, field_name)
        await _put(key, value, bool(value))

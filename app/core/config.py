from datetime import time
from typing import Tuple

from pydantic import model_validator
from atams import AtamsBaseSettings


class Settings(AtamsBaseSettings):
    """
    Application Settings

    Inherits from AtamsBaseSettings which includes:
    - DATABASE_URL (required)
    - ATLAS_SSO_URL, ATLAS_APP_CODE, ATLAS_ENCRYPTION_KEY, ATLAS_ENCRYPTION_IV
    - ENCRYPTION_ENABLED, ENCRYPTION_KEY, ENCRYPTION_IV (response encryption)
    - LOGGING_ENABLED, LOG_LEVEL, LOG_TO_FILE, LOG_FILE_PATH
    - CORS_ORIGINS, CORS_ALLOW_CREDENTIALS, CORS_ALLOW_METHODS, CORS_ALLOW_HEADERS
    - RATE_LIMIT_ENABLED, RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW
    - DEBUG

    All settings can be overridden via .env file or by redefining them here.
    """
    APP_NAME: str = "HRIS Presence"
    APP_VERSION: str = "1.0.0"

    # Local calendar used for "today", slot windows and deadlines
    DEFAULT_TIMEZONE: str = "Europe/Berlin"

    # Geofence settings
    DEFAULT_GEOFENCE_RADIUS_M: int = 150

    # Proof-of-presence slots (local wall clock, HH:MM)
    PROOF_SLOT1_WINDOW_START: str = "08:00"
    PROOF_SLOT1_WINDOW_END: str = "11:30"
    PROOF_SLOT1_DEADLINE: str = "12:00"
    PROOF_SLOT2_WINDOW_START: str = "13:00"
    PROOF_SLOT2_WINDOW_END: str = "16:30"
    PROOF_SLOT2_DEADLINE: str = "17:00"

    # Role levels (Atlas SSO)
    MEMBER_MIN_ROLE_LEVEL: int = 1
    ADMIN_MIN_ROLE_LEVEL: int = 50

    @model_validator(mode="after")
    def check_slot_windows(self):
        s1_start, s1_end = self.slot_window(1)
        s2_start, s2_end = self.slot_window(2)
        if not (s1_start < s1_end <= self.slot_deadline(1)):
            raise ValueError("Slot 1 window must be non-empty and end before its deadline")
        if not (s2_start < s2_end <= self.slot_deadline(2)):
            raise ValueError("Slot 2 window must be non-empty and end before its deadline")
        if s1_end > s2_start:
            raise ValueError("Slot windows must not overlap")
        return self

    def slot_window(self, slot: int) -> Tuple[time, time]:
        if slot == 1:
            return _parse_hhmm(self.PROOF_SLOT1_WINDOW_START), _parse_hhmm(self.PROOF_SLOT1_WINDOW_END)
        return _parse_hhmm(self.PROOF_SLOT2_WINDOW_START), _parse_hhmm(self.PROOF_SLOT2_WINDOW_END)

    def slot_deadline(self, slot: int) -> time:
        if slot == 1:
            return _parse_hhmm(self.PROOF_SLOT1_DEADLINE)
        return _parse_hhmm(self.PROOF_SLOT2_DEADLINE)


def _parse_hhmm(value: str) -> time:
    try:
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    except ValueError:
        raise ValueError(f"Invalid wall-clock time '{value}', expected HH:MM")


settings = Settings()

from __future__ import annotations

import importlib

ulid_module = importlib.import_module("ulid")

TRACKING_CODE_PREFIX = "LPM"


def new_submission_id() -> str:
    return f"sub_{ulid_module.new().str}"


def new_notification_log_id() -> str:
    return f"ntf_{ulid_module.new().str}"


def new_tracking_code() -> str:
    # Last 10 ULID chars are random; readable enough to dictate over the phone.
    return f"{TRACKING_CODE_PREFIX}-{ulid_module.new().str[-10:]}"

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
import re

import yaml

from tracker.domain.models import SubmissionSnapshot, SubmissionStatus

DEFAULT_CATALOG_PATH = Path(__file__).with_name("templates") / "status_messages.v1.yaml"

PLACEHOLDER_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")
COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


@dataclass(frozen=True)
class StatusCopy:
    label: str
    color: str
    whatsapp: str


@dataclass(frozen=True)
class StatusUpdateEmailCopy:
    subject: str
    title: str
    intro: str
    note: str
    outro: str
    action_text: str
    footer: str


@dataclass(frozen=True)
class TestEmailCopy:
    subject: str
    title: str
    intro: str
    outro: str
    footer: str


@dataclass(frozen=True)
class MessageCatalog:
    catalog_version: str
    app_name: str
    app_tagline: str
    copyright: str
    statuses: dict[SubmissionStatus, StatusCopy]
    status_update_email: StatusUpdateEmailCopy
    test_email: TestEmailCopy

    def label(self, status: SubmissionStatus) -> str:
        return self.statuses[status].label

    def color(self, status: SubmissionStatus) -> str:
        return self.statuses[status].color


def load_catalog(*, file_path: str | Path) -> MessageCatalog:
    data = yaml.safe_load(Path(file_path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("message catalog must be a YAML object")
    return parse_catalog(data)


@lru_cache(maxsize=1)
def default_catalog() -> MessageCatalog:
    return load_catalog(file_path=DEFAULT_CATALOG_PATH)


def parse_catalog(data: dict[str, object]) -> MessageCatalog:
    statuses_raw = _required_obj(data, "statuses")
    statuses: dict[SubmissionStatus, StatusCopy] = {}
    for status in SubmissionStatus:
        entry = statuses_raw.get(status.value)
        if not isinstance(entry, dict):
            raise ValueError(f"statuses.{status.value} is required and must be object")
        color = _required_str(entry, "color")
        if not COLOR_RE.match(color):
            raise ValueError(f"statuses.{status.value}.color must be a #rrggbb color")
        statuses[status] = StatusCopy(
            label=_required_str(entry, "label"),
            color=color,
            whatsapp=_required_str(entry, "whatsapp"),
        )
    unknown = set(statuses_raw) - {status.value for status in SubmissionStatus}
    if unknown:
        raise ValueError(f"statuses contains unknown entries: {', '.join(sorted(unknown))}")

    email_raw = _required_obj(data, "email")
    update_raw = _required_obj(email_raw, "status_update")
    test_raw = _required_obj(email_raw, "test")

    return MessageCatalog(
        catalog_version=_required_str(data, "catalog_version"),
        app_name=_required_str(data, "app_name"),
        app_tagline=_required_str(data, "app_tagline"),
        copyright=_required_str(data, "copyright"),
        statuses=statuses,
        status_update_email=StatusUpdateEmailCopy(
            subject=_required_str(update_raw, "subject"),
            title=_required_str(update_raw, "title"),
            intro=_required_str(update_raw, "intro"),
            note=_required_str(update_raw, "note"),
            outro=_required_str(update_raw, "outro"),
            action_text=_required_str(update_raw, "action_text"),
            footer=_required_str(update_raw, "footer"),
        ),
        test_email=TestEmailCopy(
            subject=_required_str(test_raw, "subject"),
            title=_required_str(test_raw, "title"),
            intro=_required_str(test_raw, "intro"),
            outro=_required_str(test_raw, "outro"),
            footer=_required_str(test_raw, "footer"),
        ),
    )


def render_template(*, template: str, values: dict[str, object]) -> str:
    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        value = values.get(key)
        if value is None:
            raise ValueError(f"missing placeholder value: {key}")
        return str(value)

    return PLACEHOLDER_RE.sub(_replace, template)


def _required_str(data: dict[str, object], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{key} is required and must be non-empty string")
    return value


def _required_obj(data: dict[str, object], key: str) -> dict[str, object]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"{key} is required and must be object")
    return value


def render_whatsapp_message(
    *,
    catalog: MessageCatalog,
    submission: SubmissionSnapshot,
    status: SubmissionStatus,
) -> str:
    return render_template(
        template=catalog.statuses[status].whatsapp,
        values={
            "name": submission.name,
            "service_type": submission.service_type,
            "tracking_code": submission.tracking_code,
            "status": catalog.label(status),
        },
    )

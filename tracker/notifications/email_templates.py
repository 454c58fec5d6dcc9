from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from pathlib import Path
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from tracker.domain.dto import RenderedEmail
from tracker.domain.models import SubmissionStatus
from tracker.notifications.catalog import MessageCatalog, render_template

TIMESTAMP_FORMAT = "%d %b %Y %H:%M UTC"
EMAIL_TEMPLATE_DIR = Path(__file__).with_name("templates") / "email"


@lru_cache(maxsize=1)
def email_environment() -> Environment:
    # HTML templates are autoescaped; plain-text ones are rendered verbatim.
    return Environment(
        loader=FileSystemLoader(EMAIL_TEMPLATE_DIR),
        autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def tracking_url(*, base_url: str, tracking_code: str) -> str:
    return f"{base_url.rstrip('/')}/public?tracking={quote(tracking_code, safe='')}"


def render_status_update_email(
    *,
    catalog: MessageCatalog,
    name: str,
    service_type: str,
    tracking_code: str,
    old_status: SubmissionStatus,
    new_status: SubmissionStatus,
    updated_at: datetime,
    base_url: str,
) -> RenderedEmail:
    copy = catalog.status_update_email
    context = {
        "catalog": catalog,
        "copy": copy,
        "title": copy.title,
        "footer": copy.footer,
        "action_text": copy.action_text,
        "action_url": tracking_url(base_url=base_url, tracking_code=tracking_code),
        "name": name,
        "service_type": service_type,
        "tracking_code": tracking_code,
        "status_label": catalog.label(new_status),
        "status_color": catalog.color(new_status),
        "timestamp": updated_at.strftime(TIMESTAMP_FORMAT),
        "note": render_template(
            template=copy.note,
            values={"old_status": old_status.value, "new_status": new_status.value},
        ),
    }
    return _render(subject=copy.subject, template="status_update", context=context)


def render_test_email(*, catalog: MessageCatalog, sent_at: datetime, environment: str) -> RenderedEmail:
    copy = catalog.test_email
    context = {
        "catalog": catalog,
        "copy": copy,
        "title": copy.title,
        "footer": copy.footer,
        "action_text": None,
        "action_url": None,
        "timestamp": sent_at.strftime(TIMESTAMP_FORMAT),
        "environment": environment,
    }
    return _render(subject=copy.subject, template="test", context=context)


def _render(*, subject: str, template: str, context: dict[str, object]) -> RenderedEmail:
    env = email_environment()
    return RenderedEmail(
        subject=subject,
        html=env.get_template(f"{template}.html").render(context),
        text=env.get_template(f"{template}.txt").render(context),
    )

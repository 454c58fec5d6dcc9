from __future__ import annotations

from dataclasses import dataclass

from tracker.domain.contracts import EmailSender, SubmissionRepository, WhatsAppDispatcher
from tracker.domain.use_cases.notify import StatusNotifier
from tracker.notifications.catalog import MessageCatalog
from tracker.settings import AppSettings


@dataclass(frozen=True)
class ApiDeps:
    settings: AppSettings
    repository: SubmissionRepository
    whatsapp: WhatsAppDispatcher
    email_sender: EmailSender
    catalog: MessageCatalog

    @property
    def notifier(self) -> StatusNotifier:
        return StatusNotifier(
            repository=self.repository,
            whatsapp=self.whatsapp,
            email_sender=self.email_sender,
            catalog=self.catalog,
            base_url=self.settings.base_url,
        )

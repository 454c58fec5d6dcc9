from __future__ import annotations

import logging

from tracker.domain.contracts import SubmissionRepository
from tracker.domain.dto import CreateSubmissionCommand
from tracker.domain.models import SubmissionSnapshot, SubmissionStatus

logger = logging.getLogger("runtime")

DEMO_SUBMISSIONS: tuple[CreateSubmissionCommand, ...] = (
    CreateSubmissionCommand(
        name="Budi Santoso",
        national_id="3171010101900001",
        whatsapp_number="+6281200000001",
        service_type="KTP Renewal",
        email="budi@example.com",
        tracking_code="LPM-DEMO000001",
    ),
    CreateSubmissionCommand(
        name="Siti Aminah",
        national_id="3171010101900002",
        whatsapp_number="+6281200000002",
        service_type="Family Card",
        tracking_code="LPM-DEMO000002",
    ),
    CreateSubmissionCommand(
        name="Andi Wijaya",
        national_id="3171010101900003",
        whatsapp_number="+6281200000003",
        service_type="Birth Certificate",
        email="andi@example.com",
        tracking_code="LPM-DEMO000003",
        status=SubmissionStatus.PROCESSING,
    ),
    CreateSubmissionCommand(
        name="Dewi Lestari",
        national_id="3171010101900004",
        whatsapp_number="+6281200000004",
        service_type="Domicile Letter",
        tracking_code="LPM-DEMO000004",
        status=SubmissionStatus.DONE,
    ),
    CreateSubmissionCommand(
        name="Rudi Hartono",
        national_id="3171010101900005",
        whatsapp_number="+6281200000005",
        service_type="Business Permit",
        email="rudi@example.com",
        tracking_code="LPM-DEMO000005",
        status=SubmissionStatus.REJECTED,
    ),
)


async def seed_demo_submissions(
    repository: SubmissionRepository,
    commands: tuple[CreateSubmissionCommand, ...] = DEMO_SUBMISSIONS,
) -> list[SubmissionSnapshot]:
    """Insert the demo submissions that are not present yet.

    Demo rows are matched by tracking code, so every command needs one.
    """
    created: list[SubmissionSnapshot] = []
    for command in commands:
        if command.tracking_code is None:
            raise ValueError(f"demo submission for {command.name} needs a fixed tracking code")
        if await repository.find_by_tracking_code(tracking_code=command.tracking_code) is not None:
            continue
        created.append(await repository.create_submission(command))
    logger.info("demo submissions seeded", extra={"detail": f"created={len(created)}"})
    return created

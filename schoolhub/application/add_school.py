import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

import schoolhub.domain.services as domain_services
from schoolhub.domain.entities import ImageUpload, School
from schoolhub.domain.errors import GatePassInvalid
from schoolhub.domain.ports.gate_passes import GatePassesPort
from schoolhub.domain.ports.image_storage import ImageStoragePort
from schoolhub.domain.ports.unit_of_work import UnitOfWorkPort

logger = logging.getLogger(__name__)


async def add_school(
    uow: UnitOfWorkPort,
    gate_passes: GatePassesPort,
    image_storage: ImageStoragePort,
    gate_pass: str,
    school: School,
    image: Optional[ImageUpload] = None,
    clock: Callable[[], datetime] = domain_services.utcnow,
) -> School:
    # redeemed up front so two concurrent submissions can't share one pass
    verified_by = await gate_passes.redeem(gate_pass) if gate_pass else None
    if not verified_by:
        raise GatePassInvalid()

    if image is not None:
        object_name = f"{int(clock().timestamp() * 1000)}.{image.extension}"
        image_url = await image_storage.upload(
            object_name, image.content, image.content_type
        )
        school = replace(school, image=image_url)

    async with uow as transaction:
        saved = await transaction.schools.add(school)
        await transaction.commit()

    logger.info(
        "school added",
        extra={"school_id": saved.id, "school_name": saved.name, "verified_by": verified_by},
    )
    return saved

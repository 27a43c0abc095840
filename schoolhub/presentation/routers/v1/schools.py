from typing import Annotated, Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Header,
    HTTPException,
    Query,
    UploadFile,
    status,
)
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from schoolhub.application.add_school import add_school
from schoolhub.application.list_schools import list_schools
from schoolhub.domain.entities import ImageUpload, School
from schoolhub.domain.errors import GatePassInvalid, ImageUploadFailed
from schoolhub.domain.ports.gate_passes import GatePassesPort
from schoolhub.domain.ports.image_storage import ImageStoragePort
from schoolhub.domain.ports.unit_of_work import UnitOfWorkPort
from schoolhub.presentation.dependencies import (
    get_gate_passes,
    get_image_storage,
    get_uow,
)
from schoolhub.schemas.requests import SchoolCreateIn
from schoolhub.schemas.responses import DirectoryOut, SchoolOut

router = APIRouter(prefix="/schools", tags=["Schools"])


@router.get("", response_model=DirectoryOut)
async def get_schools(
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    search: Annotated[Optional[str], Query(max_length=100)] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
):
    view = await list_schools(uow, search=search, city=city, state=state)
    return DirectoryOut(
        schools=[SchoolOut.from_entity(s) for s in view.schools],
        cities=view.cities,
        states=view.states,
        total=view.total,
    )


@router.post("", status_code=201, response_model=SchoolOut)
async def post_create_school(
    name: Annotated[str, Form()],
    address: Annotated[str, Form()],
    city: Annotated[str, Form()],
    state: Annotated[str, Form()],
    contact: Annotated[str, Form()],
    email_id: Annotated[str, Form()],
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    gate_passes: Annotated[GatePassesPort, Depends(get_gate_passes)],
    image_storage: Annotated[ImageStoragePort, Depends(get_image_storage)],
    image: Annotated[Optional[UploadFile], File()] = None,
    x_gate_pass: Annotated[Optional[str], Header()] = None,
):
    try:
        body = SchoolCreateIn(
            name=name,
            address=address,
            city=city,
            state=state,
            contact=contact,
            email_id=email_id,
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))

    upload = None
    if image is not None and image.filename:
        content_type = image.content_type or ""
        if not content_type.startswith("image/"):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="image must be an image/* upload",
            )
        upload = ImageUpload(
            filename=image.filename,
            content=await image.read(),
            content_type=content_type,
        )

    try:
        saved = await add_school(
            uow=uow,
            gate_passes=gate_passes,
            image_storage=image_storage,
            gate_pass=x_gate_pass or "",
            school=School(
                id=None,
                name=body.name,
                address=body.address,
                city=body.city,
                state=body.state,
                contact=int(body.contact),
                email_id=str(body.email_id),
            ),
            image=upload,
        )
    except GatePassInvalid:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="missing or invalid gate pass"
        )
    except ImageUploadFailed as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=f"image upload failed: {e}"
        )

    return SchoolOut.from_entity(saved)

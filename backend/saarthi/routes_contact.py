from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from saarthi.deps import get_db, get_optional_user
from saarthi.models import Contact, User
from saarthi.schemas import ContactIn
from saarthi.tracking import track
from saarthi.utils.helpers import success_response


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["contact"])


@router.post("")
def submit_contact(
    data: ContactIn,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Annotated[Session, Depends(get_db)],
    me: Annotated[User | None, Depends(get_optional_user)],
):
    c = Contact(
        name=data.name,
        email=data.email,
        phone=data.phone,
        subject=data.subject,
        message=data.message,
        property_interest=data.property_interest,
        extra=dict(data.model_extra or {}),
    )
    db.add(c)
    db.commit()
    logger.info("Contact message stored: contact_id=%s", c.id)

    track(
        request,
        background_tasks,
        me,
        "contact_submit",
        {"contactId": c.id, "subject": c.subject, "propertyInterest": c.property_interest},
    )
    return success_response("Message received", data={"id": c.id})

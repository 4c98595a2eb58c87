"""Interaction log routes."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional

from opener.api.dependencies import get_current_user_id
from opener.db import models

router = APIRouter(prefix="/api/interactions", tags=["interactions"])


class InteractionCreate(BaseModel):
    interaction_type: str
    contact_id: Optional[str] = None
    company_id: Optional[str] = None
    description: Optional[str] = None
    medium: Optional[str] = None
    interaction_date: Optional[str] = None
    follow_up_due_date: Optional[str] = None
    follow_up_completed: Optional[bool] = False
    message_version_id: Optional[str] = None


@router.post("")
def log_interaction(data: InteractionCreate, user_id: str = Depends(get_current_user_id)):
    payload = data.model_dump()
    if data.contact_id:
        contact = models.get_contact(user_id, data.contact_id)
        if not contact:
            raise HTTPException(status_code=404, detail="Contact not found")
        payload["company_id"] = payload["company_id"] or contact.get("company_id")
    if payload["company_id"] and not models.get_company(user_id, payload["company_id"]):
        raise HTTPException(status_code=404, detail="Company not found")
    return models.create_interaction(user_id, payload)


@router.get("")
def list_interactions(contact_id: str = None, company_id: str = None, limit: int = 100,
                      user_id: str = Depends(get_current_user_id)):
    return models.list_interactions(user_id, contact_id=contact_id, company_id=company_id,
                                    limit=limit)

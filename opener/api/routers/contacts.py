"""Contact CRUD routes."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional

from opener.api.dependencies import get_current_user_id
from opener.db import models

router = APIRouter(prefix="/api/contacts", tags=["contacts"])


class ContactCreate(BaseModel):
    company_id: Optional[str] = None
    first_name: str
    last_name: Optional[str] = ""
    role: Optional[str] = None
    location: Optional[str] = None
    email: Optional[str] = None
    linkedin_url: Optional[str] = None
    bio_summary: Optional[str] = None
    how_i_can_help: Optional[str] = None
    user_notes: Optional[str] = None


class ContactUpdate(BaseModel):
    company_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    location: Optional[str] = None
    email: Optional[str] = None
    linkedin_url: Optional[str] = None
    bio_summary: Optional[str] = None
    how_i_can_help: Optional[str] = None
    user_notes: Optional[str] = None
    status: Optional[str] = None


@router.post("")
def create_contact(contact: ContactCreate, user_id: str = Depends(get_current_user_id)):
    if contact.company_id and not models.get_company(user_id, contact.company_id):
        raise HTTPException(status_code=404, detail="Company not found")
    return models.create_contact(user_id, contact.model_dump())


@router.get("")
def list_contacts(limit: int = 200, offset: int = 0, status: str = "active",
                  company_id: str = None, user_id: str = Depends(get_current_user_id)):
    return models.list_contacts(user_id, company_id=company_id, status=status,
                                limit=limit, offset=offset)


@router.get("/{contact_id}")
def get_contact(contact_id: str, user_id: str = Depends(get_current_user_id)):
    result = models.get_contact(user_id, contact_id)
    if not result:
        raise HTTPException(status_code=404, detail="Contact not found")
    return result


@router.patch("/{contact_id}")
def update_contact(contact_id: str, data: ContactUpdate, user_id: str = Depends(get_current_user_id)):
    update_data = {k: v for k, v in data.model_dump().items() if v is not None}
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    result = models.update_contact(user_id, contact_id, update_data)
    if not result:
        raise HTTPException(status_code=404, detail="Contact not found")
    return result

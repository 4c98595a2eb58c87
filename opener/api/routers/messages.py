"""Saved message version routes."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional

from opener.api.dependencies import get_current_user_id
from opener.db import models

router = APIRouter(prefix="/api/messages", tags=["messages"])


class SavedMessageCreate(BaseModel):
    contact_id: str
    version_name: str
    message_text: str
    medium: Optional[str] = None
    message_objective: Optional[str] = None
    message_additional_context: Optional[str] = None


@router.post("")
def save_message(msg: SavedMessageCreate, user_id: str = Depends(get_current_user_id)):
    contact = models.get_contact(user_id, msg.contact_id)
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")
    data = msg.model_dump()
    data["company_id"] = contact.get("company_id")
    return models.create_saved_message_version(user_id, data)


@router.get("")
def list_messages(contact_id: str = None, limit: int = 100,
                  user_id: str = Depends(get_current_user_id)):
    return models.list_saved_message_versions(user_id, contact_id=contact_id, limit=limit)


@router.delete("/{message_version_id}")
def delete_message(message_version_id: str, user_id: str = Depends(get_current_user_id)):
    if not models.delete_saved_message_version(user_id, message_version_id):
        raise HTTPException(status_code=404, detail="Message not found")
    return {"deleted": True, "message_version_id": message_version_id}

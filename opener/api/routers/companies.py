"""Company CRUD routes."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional

from opener.api.dependencies import get_current_user_id
from opener.db import models

router = APIRouter(prefix="/api/companies", tags=["companies"])


class CompanyCreate(BaseModel):
    name: str
    industry: Optional[str] = None
    hq_location: Optional[str] = None
    website_url: Optional[str] = None
    public_private: Optional[str] = None
    estimated_revenue: Optional[str] = None
    estimated_headcount: Optional[str] = None
    wfh_policy: Optional[str] = None
    user_priority: Optional[str] = None
    user_notes: Optional[str] = None


class CompanyUpdate(BaseModel):
    name: Optional[str] = None
    industry: Optional[str] = None
    hq_location: Optional[str] = None
    website_url: Optional[str] = None
    public_private: Optional[str] = None
    estimated_revenue: Optional[str] = None
    estimated_headcount: Optional[str] = None
    wfh_policy: Optional[str] = None
    user_priority: Optional[str] = None
    interaction_summary: Optional[str] = None
    user_notes: Optional[str] = None
    status: Optional[str] = None


@router.post("")
def create_company(company: CompanyCreate, user_id: str = Depends(get_current_user_id)):
    if not company.name.strip():
        raise HTTPException(status_code=400, detail="Company name is required")
    return models.create_company(user_id, company.model_dump())


@router.get("")
def list_companies(limit: int = 200, offset: int = 0, status: str = "active",
                   include_blacklisted: bool = False,
                   user_id: str = Depends(get_current_user_id)):
    return models.list_companies(user_id, include_blacklisted=include_blacklisted,
                                 status=status, limit=limit, offset=offset)


@router.get("/{company_id}")
def get_company(company_id: str, user_id: str = Depends(get_current_user_id)):
    result = models.get_company(user_id, company_id)
    if not result:
        raise HTTPException(status_code=404, detail="Company not found")
    return result


@router.patch("/{company_id}")
def update_company(company_id: str, data: CompanyUpdate, user_id: str = Depends(get_current_user_id)):
    update_data = {k: v for k, v in data.model_dump().items() if v is not None}
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    result = models.update_company(user_id, company_id, update_data)
    if not result:
        raise HTTPException(status_code=404, detail="Company not found")
    return result

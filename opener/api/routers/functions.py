"""Authenticated edge functions: profile, bio parsing, messages, duplicates, companies, overviews."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import List, Optional

from opener.agents import (company_builder, duplicate_checker, interaction_overview,
                           message_generator, profile_builder)
from opener.agents.contact_parser import ContactParseError, parse_contact_bio
from opener.agents.llm_gateway import GeminiError
from opener.api.dependencies import get_current_user_id
from opener.api.errors import AppError, bad_request
from opener.api.rate_limit import enforce_rate_limit, identifier_for
from opener.api.routers.guest import check_background_length, check_message_inputs
from opener.db import models
from opener.logging_config import get_function_logger

router = APIRouter(tags=["functions"])


class ProfileRequest(BaseModel):
    backgroundInput: Optional[str] = None
    linkedinContent: Optional[str] = None
    cvContent: Optional[str] = None
    additionalDetails: Optional[str] = None


class ContactBioRequest(BaseModel):
    linkedin_bio: Optional[str] = None


class MessageRequest(BaseModel):
    contact_id: Optional[str] = None
    medium: Optional[str] = None
    objective: Optional[str] = None
    additional_context: Optional[str] = None


class CompanyDuplicateRequest(BaseModel):
    name: Optional[str] = None
    industry: Optional[str] = None


class ContactDuplicateRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    company_id: Optional[str] = None


class CompanyNameRequest(BaseModel):
    name: Optional[str] = None


class RemoveCompaniesRequest(BaseModel):
    company_ids: Optional[List[str]] = None


class EnrichCompanyRequest(BaseModel):
    companyId: Optional[str] = None
    companyName: Optional[str] = None


class CompanyOverviewRequest(BaseModel):
    company_id: Optional[str] = None


class ContactOverviewRequest(BaseModel):
    contact_id: Optional[str] = None


@router.post("/generate_profile")
def generate_profile(req: ProfileRequest, user_id: str = Depends(get_current_user_id)):
    logger = get_function_logger("generate_profile")
    if not any([req.backgroundInput, req.linkedinContent, req.cvContent, req.additionalDetails]):
        raise bad_request("No background content provided")
    check_background_length(req.backgroundInput, req.linkedinContent, req.cvContent,
                            req.additionalDetails)
    enforce_rate_limit("generate_profile", identifier_for(user_id=user_id))

    try:
        return profile_builder.generate_user_profile(
            user_id,
            background_input=req.backgroundInput,
            linkedin_content=req.linkedinContent,
            cv_content=req.cvContent,
            additional_details=req.additionalDetails,
        )
    except (GeminiError, profile_builder.ProfileGenerationError) as e:
        logger.error("Profile generation failed: %s", e, extra={"user_id": user_id})
        raise AppError(500, "Failed to generate profile summary", str(e))


@router.post("/add_contact_by_bio")
def add_contact_by_bio(req: ContactBioRequest, user_id: str = Depends(get_current_user_id)):
    logger = get_function_logger("add_contact_by_bio")
    if not req.linkedin_bio:
        raise bad_request("Missing linkedin_bio in request body.")
    check_background_length(req.linkedin_bio)
    enforce_rate_limit("add_contact_by_bio", identifier_for(user_id=user_id))

    try:
        contact = parse_contact_bio(req.linkedin_bio, models.get_user_summary(user_id))
    except (GeminiError, ContactParseError) as e:
        logger.error("Bio parsing failed: %s", e, extra={"user_id": user_id})
        raise AppError(500, "Failed to process LinkedIn bio content.", str(e))
    return {"status": "success", "contact": contact}


@router.post("/generate_message")
def generate_message(req: MessageRequest, user_id: str = Depends(get_current_user_id)):
    if not req.contact_id or not req.medium or not req.objective:
        raise bad_request("contact_id, medium, and objective are required")
    check_message_inputs(req.objective, req.additional_context)
    enforce_rate_limit("generate_message", identifier_for(user_id=user_id))

    contact = models.get_contact(user_id, req.contact_id)
    if not contact:
        raise AppError(404, "Contact not found", "Failed to fetch contact data.")

    result = message_generator.generate_messages(
        contact, req.medium, req.objective, req.additional_context,
        company_name=contact.get("company_name"),
        summary=models.get_user_summary(user_id),
    )
    get_function_logger("generate_message").info(
        "Generated messages from %s", result["source"], extra={"user_id": user_id})
    return {"status": "success", "messages": result["messages"], "maxLength": result["maxLength"]}


@router.post("/check_company_duplicates")
def check_company_duplicates(req: CompanyDuplicateRequest, user_id: str = Depends(get_current_user_id)):
    if not req.name or not req.name.strip():
        raise bad_request("Company name is required")
    return duplicate_checker.check_company_duplicates(user_id, req.name.strip(), req.industry)


@router.post("/check_contact_duplicates")
def check_contact_duplicates(req: ContactDuplicateRequest, user_id: str = Depends(get_current_user_id)):
    if not req.first_name or not req.last_name:
        raise bad_request("First name and last name are required")
    return duplicate_checker.check_contact_duplicates(
        user_id, req.first_name, req.last_name, req.role, req.company_id)


@router.post("/add_company_by_name")
def add_company_by_name(req: CompanyNameRequest, user_id: str = Depends(get_current_user_id)):
    logger = get_function_logger("add_company_by_name")
    if not req.name or not req.name.strip():
        raise bad_request("Company name is required")
    enforce_rate_limit("add_company_by_name", identifier_for(user_id=user_id))

    try:
        company = company_builder.add_company_by_name(user_id, req.name)
    except company_builder.CompanyExistsError as e:
        raise AppError(400, "Company already exists", company=e.company)
    except (GeminiError, company_builder.CompanyEnrichmentError) as e:
        logger.error("Company enrichment failed: %s", e, extra={"user_id": user_id})
        raise AppError(500, "Failed to generate company data", str(e))
    return {"company": company}


@router.post("/remove_companies")
def remove_companies(req: RemoveCompaniesRequest, user_id: str = Depends(get_current_user_id)):
    if not req.company_ids:
        raise bad_request("Company IDs array is required")
    return company_builder.remove_companies(user_id, req.company_ids)


@router.post("/enrich_company")
def enrich_company(req: EnrichCompanyRequest, user_id: str = Depends(get_current_user_id)):
    logger = get_function_logger("enrich_company")
    if not req.companyId or not req.companyName:
        raise bad_request("companyId and companyName are required")
    enforce_rate_limit("enrich_company", identifier_for(user_id=user_id))

    try:
        company = company_builder.enrich_company(user_id, req.companyId, req.companyName)
    except (GeminiError, company_builder.CompanyEnrichmentError) as e:
        logger.error("Company enrichment failed: %s", e, extra={"user_id": user_id})
        raise AppError(500, "Failed to enrich company", str(e))
    if company is None:
        raise AppError(404, "Company not found")
    return {"success": True}


@router.post("/generate_company_interaction_overview")
def generate_company_interaction_overview(req: CompanyOverviewRequest,
                                          user_id: str = Depends(get_current_user_id)):
    logger = get_function_logger("generate_company_interaction_overview")
    if not req.company_id:
        raise bad_request("Company ID is required")
    enforce_rate_limit("generate_company_interaction_overview", identifier_for(user_id=user_id))

    try:
        overview = interaction_overview.company_interaction_overview(user_id, req.company_id)
    except GeminiError as e:
        logger.error("Company overview failed: %s", e, extra={"user_id": user_id})
        raise AppError(500, "Internal server error", str(e))
    if overview is None:
        raise AppError(404, "Company not found")
    return overview


@router.post("/generate_contact_interaction_overview")
def generate_contact_interaction_overview(req: ContactOverviewRequest,
                                          user_id: str = Depends(get_current_user_id)):
    logger = get_function_logger("generate_contact_interaction_overview")
    if not req.contact_id:
        raise bad_request("Contact ID is required")
    enforce_rate_limit("generate_contact_interaction_overview", identifier_for(user_id=user_id))

    try:
        overview = interaction_overview.contact_interaction_overview(user_id, req.contact_id)
    except GeminiError as e:
        logger.error("Contact overview failed: %s", e, extra={"user_id": user_id})
        raise AppError(500, "Internal server error", str(e))
    if overview is None:
        raise AppError(404, "Contact not found")
    return overview


@router.post("/get_companies_overview")
def get_companies_overview(user_id: str = Depends(get_current_user_id)):
    return {"companies": models.get_companies_overview(user_id)}

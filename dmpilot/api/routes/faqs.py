"""FAQ API Routes - the question/answer pairs the agent answers from."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from dmpilot.api.middleware.user_auth import AuthenticatedUser, get_current_user
from dmpilot.api.models import FAQBody, FAQResponse
from dmpilot.messaging.repository import FAQRepository

router = APIRouter(prefix="/api/faqs", tags=["faqs"])


@router.get("", response_model=list[FAQResponse])
async def list_faqs(user: AuthenticatedUser = Depends(get_current_user)) -> list[FAQResponse]:
    return [FAQResponse.from_faq(f) for f in FAQRepository.list_for_user(user.id)]


@router.post("", response_model=FAQResponse, status_code=201)
async def create_faq(
    body: FAQBody,
    user: AuthenticatedUser = Depends(get_current_user),
) -> FAQResponse:
    faq = FAQRepository.create(user.id, body.question.strip(), body.answer.strip())
    return FAQResponse.from_faq(faq)


@router.delete("/{faq_id}")
async def delete_faq(
    faq_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
    if not FAQRepository.delete(user.id, faq_id):
        raise HTTPException(status_code=404, detail="FAQ not found")
    return Response(status_code=204)

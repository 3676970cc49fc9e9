"""
Business assistant endpoints
Keyword-matched answers to canned business questions
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shopwise.api.deps import get_user_id
from shopwise.models.base import get_db
from shopwise.services.analysis_service import BusinessAnalysisService
from shopwise.services.assistant_service import AssistantService, welcome
from shopwise.utils.logger import log

router = APIRouter(prefix="/assistant", tags=["assistant"])

analysis_service = BusinessAnalysisService()


class AskRequest(BaseModel):
    query: str


@router.get("/welcome")
async def get_welcome():
    """Greeting message and the quick-question shortcuts."""
    return welcome()


@router.post("/ask")
async def ask(
    request: AskRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """
    Answer a business question from the user's own rows.

    Example: {"query": "How are my sales performing?"}
    """
    if not request.query.strip():
        raise HTTPException(status_code=400, detail="Query must not be empty")
    try:
        return AssistantService(db, analyzer=analysis_service).ask(user_id, request.query)
    except Exception as e:
        log.error(f"Error in /assistant/ask: {e}")
        raise HTTPException(status_code=500, detail=str(e))

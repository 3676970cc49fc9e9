"""Chat assistant: wraps the business analysis in user/bot messages."""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from shopwise.services.analysis_service import (
    AnalysisError,
    AnalysisRequest,
    BusinessAnalysisService,
    BusinessData,
)
from shopwise.services.business_data import load_business_data
from shopwise.utils.logger import log

WELCOME_MESSAGE = (
    "Hello! I'm your AI business analyst. I can help you understand your sales data, "
    "inventory trends, and provide actionable insights. What would you like to know "
    "about your business?"
)

ERROR_MESSAGE = "Sorry, I encountered an error while analyzing your data. Please try again."

QUICK_QUESTIONS = [
    "How are my sales performing?",
    "What inventory insights do you have?",
    "Give me business recommendations",
    "Show me performance trends",
]


def _message(kind: str, content: str, analysis: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "id": uuid.uuid4().hex,
        "type": kind,
        "content": content,
        "timestamp": datetime.utcnow().isoformat(),
        "analysis": analysis,
    }


def welcome() -> Dict[str, Any]:
    return {
        "message": _message("bot", WELCOME_MESSAGE),
        "quick_questions": list(QUICK_QUESTIONS),
    }


class AssistantService:
    def __init__(self, db: Session, analyzer: Optional[BusinessAnalysisService] = None):
        self.db = db
        self.analyzer = analyzer or BusinessAnalysisService()

    def reply(self, query: str, data: BusinessData) -> Dict[str, Any]:
        """Bot message for a query over already-loaded rows."""
        try:
            response = self.analyzer.analyze_business_data(AnalysisRequest(query=query, data=data))
        except AnalysisError:
            return _message("bot", ERROR_MESSAGE)
        return _message("bot", response.analysis, response.to_dict())

    def ask(self, user_id: str, query: str) -> Dict[str, List[Dict[str, Any]]]:
        query = (query or "").strip()
        if not query:
            raise ValueError("Query must not be empty")

        user_message = _message("user", query)
        data = load_business_data(self.db, user_id)
        if not data.available:
            log.warning(f"Answering with empty data for user {user_id}")
        bot_message = self.reply(query, data)
        return {"messages": [user_message, bot_message]}

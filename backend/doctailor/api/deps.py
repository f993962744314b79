from fastapi import Request

from ..ai_services import AIService, get_ai_service
from ..config import get_settings
from ..runners.run_manager import RunManager
from ..storage import Storage


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_run_manager(request: Request) -> RunManager:
    return request.app.state.runs


def get_rewriter() -> AIService:
    return get_ai_service(get_settings())

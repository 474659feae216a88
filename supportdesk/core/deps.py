"""Process-wide service wiring exposed as FastAPI dependencies."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..agents.catalog import build_responders
from ..agents.prompts import PromptTemplateStore
from ..agents.providers import (
    OpenAIReasoningProvider,
    ProviderRegistry,
    ReasoningProvider,
    UnavailableProvider,
)
from ..agents.responses import ResponseParameterStore
from ..agents.router import QueryRouter
from ..config import get_settings
from ..conversations.repository import SqlAlchemyConversationRepository
from ..conversations.service import ChatService
from ..models.session import create_schema, get_sessionmaker
from ..tools.store import LookupStore

logger = logging.getLogger(__name__)

_SESSION_FACTORY: sessionmaker[Session] | None = None
_PROVIDER_REGISTRY: ProviderRegistry | None = None
_PROVIDER: ReasoningProvider | None = None
_CHAT_SERVICE: ChatService | None = None


def get_session_factory() -> sessionmaker[Session]:
    global _SESSION_FACTORY
    if _SESSION_FACTORY is None:
        _SESSION_FACTORY = get_sessionmaker()
    return _SESSION_FACTORY


def prepare_schema(session_factory: sessionmaker[Session]) -> bool:
    """Create missing tables, logging instead of raising when the database is down."""

    try:
        create_schema(session_factory)
    except SQLAlchemyError:
        logger.exception("Could not create the database schema")
        return False
    return True


def get_provider_registry() -> ProviderRegistry:
    global _PROVIDER_REGISTRY
    if _PROVIDER_REGISTRY is None:
        _PROVIDER_REGISTRY = ProviderRegistry()
    return _PROVIDER_REGISTRY


def get_provider() -> ReasoningProvider:
    global _PROVIDER
    if _PROVIDER is None:
        settings = get_settings()
        registry = get_provider_registry()
        if registry.is_available():
            _PROVIDER = OpenAIReasoningProvider(
                registry.build_client(),
                router_model=settings.router_model,
                agent_model=settings.agent_model,
            )
        else:
            logger.warning("OPENAI_API_KEY is not set; agent replies will fail with 503")
            _PROVIDER = UnavailableProvider()
    return _PROVIDER


def build_chat_service(
    session_factory: sessionmaker[Session], provider: ReasoningProvider
) -> ChatService:
    settings = get_settings()
    prompt_store = PromptTemplateStore()
    response_store = ResponseParameterStore()
    repository = SqlAlchemyConversationRepository(session_factory)
    responders = build_responders(
        provider,
        LookupStore(session_factory),
        repository,
        prompt_store=prompt_store,
        response_store=response_store,
        reply_language=settings.reply_language,
    )
    router = QueryRouter(provider, prompt_store=prompt_store, response_store=response_store)
    return ChatService(
        repository, router, responders, history_limit=settings.history_limit
    )


def get_chat_service() -> ChatService:
    global _CHAT_SERVICE
    if _CHAT_SERVICE is None:
        _CHAT_SERVICE = build_chat_service(get_session_factory(), get_provider())
    return _CHAT_SERVICE


def reset_dependencies() -> None:
    """Drop cached singletons (used after configuration changes)."""

    global _SESSION_FACTORY, _PROVIDER_REGISTRY, _PROVIDER, _CHAT_SERVICE
    if _SESSION_FACTORY is not None:
        _SESSION_FACTORY.kw["bind"].dispose()
    _SESSION_FACTORY = None
    _PROVIDER_REGISTRY = None
    _PROVIDER = None
    _CHAT_SERVICE = None

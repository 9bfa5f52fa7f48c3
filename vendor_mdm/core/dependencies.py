"""FastAPI dependencies for the app-scoped stores and the acting user.

Stores, the bus, the rule registry and the clock are created once by
``create_app`` and kept on ``app.state``; routers never reach module globals.
"""

from fastapi import Depends, Header, Request

from vendor_mdm.core.actor import Actor
from vendor_mdm.core.clock import Clock
from vendor_mdm.core.config import Settings
from vendor_mdm.services.metadata import MetadataService, RuleSetRegistry
from vendor_mdm.stores.bus import MessageBus
from vendor_mdm.stores.documents import DocumentStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_document_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def get_message_bus(request: Request) -> MessageBus:
    return request.app.state.message_bus


def get_rule_registry(request: Request) -> RuleSetRegistry:
    return request.app.state.rule_registry


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_metadata_service(
    store: DocumentStore = Depends(get_document_store),
    registry: RuleSetRegistry = Depends(get_rule_registry),
) -> MetadataService:
    return MetadataService(store, registry)


def get_current_actor(
    settings: Settings = Depends(get_settings),
    x_user_id: str | None = Header(default=None, max_length=36),
    x_user_name: str | None = Header(default=None, max_length=200),
) -> Actor:
    """Mock authentication: trust X-User-* headers, else the configured default user."""
    return Actor(
        id=x_user_id or settings.default_actor_id,
        name=x_user_name or settings.default_actor_name,
    )

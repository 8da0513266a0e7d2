"""Dependency Injection for the call router.

Provides FastAPI dependency functions for stores and services.
Stores and services are built per request around the request's
database session; only the outbound dialer (which owns an HTTP
client) is a process-wide singleton.

Usage:
    from call_router.dependencies import VoiceServiceDep

    @router.post("/endpoint")
    async def handler(service: VoiceServiceDep):
        ...
"""

from __future__ import annotations

import threading
from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from call_router.calls.lifecycle import CallLifecycleManager
from call_router.config import Settings, get_settings
from call_router.core.logging import get_logger
from call_router.db.session import get_db as _get_db
from call_router.db.stores import SqlCallRecordStore, SqlConfigStore
from call_router.routing.config_service import RoutingConfigService
from call_router.routing.engine import RoutingEngine
from call_router.services.voice_service import VoiceCallService
from call_router.stores.base import CallRecordStore, ConfigStore
from call_router.telephony.dialer import TwilioDialer
from call_router.telephony.twiml import TwiMLGenerator

log = get_logger(__name__)


# =============================================================================
# Thread-Safe Singleton Locks
# =============================================================================

_dialer_lock = threading.Lock()


# =============================================================================
# Settings Dependency
# =============================================================================


def get_app_settings() -> Settings:
    """Get application settings.

    Returns cached settings instance.
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_app_settings)]


# =============================================================================
# Database Dependencies
# =============================================================================


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for request.

    Yields session that auto-commits on success, rolls back on error.
    """
    async for session in _get_db():
        yield session


DatabaseDep = Annotated[AsyncSession, Depends(get_db)]


# =============================================================================
# Store Dependencies
# =============================================================================


def get_config_store(db: DatabaseDep) -> ConfigStore:
    """Get agent configuration store for the request's session."""
    return SqlConfigStore(db)


def get_call_store(db: DatabaseDep) -> CallRecordStore:
    """Get call record store for the request's session."""
    return SqlCallRecordStore(db)


ConfigStoreDep = Annotated[ConfigStore, Depends(get_config_store)]
CallStoreDep = Annotated[CallRecordStore, Depends(get_call_store)]


def get_call_lifecycle(store: CallStoreDep) -> CallLifecycleManager:
    """Get call lifecycle manager for the request's session."""
    return CallLifecycleManager(store)


CallLifecycleDep = Annotated[CallLifecycleManager, Depends(get_call_lifecycle)]


# =============================================================================
# Service Dependencies
# =============================================================================


def get_twiml_generator(settings: SettingsDep) -> TwiMLGenerator:
    """Get TwiML generator configured from settings."""
    return TwiMLGenerator(settings.telephony.twilio, settings.routing)


def get_routing_engine(store: ConfigStoreDep, settings: SettingsDep) -> RoutingEngine:
    """Get routing engine bound to the request's config store."""
    return RoutingEngine(store, settings.routing)


TwiMLGeneratorDep = Annotated[TwiMLGenerator, Depends(get_twiml_generator)]
RoutingEngineDep = Annotated[RoutingEngine, Depends(get_routing_engine)]


def get_voice_service(
    config_store: ConfigStoreDep,
    call_store: CallStoreDep,
    generator: TwiMLGeneratorDep,
    engine: RoutingEngineDep,
    lifecycle: CallLifecycleDep,
) -> VoiceCallService:
    """Get voice call service for the request."""
    return VoiceCallService(
        config_store,
        call_store,
        generator,
        engine=engine,
        lifecycle=lifecycle,
    )


def get_routing_config_service(
    store: ConfigStoreDep,
    engine: RoutingEngineDep,
) -> RoutingConfigService:
    """Get routing configuration service for the request."""
    return RoutingConfigService(store, engine)


VoiceServiceDep = Annotated[VoiceCallService, Depends(get_voice_service)]
RoutingConfigServiceDep = Annotated[RoutingConfigService, Depends(get_routing_config_service)]


# =============================================================================
# Outbound Dialer
# =============================================================================


_dialer_instance: TwilioDialer | None = None


def get_dialer() -> TwilioDialer:
    """Get Twilio dialer singleton.

    Thread-safe via double-checked locking pattern.
    """
    global _dialer_instance

    if _dialer_instance is None:
        with _dialer_lock:
            # Double-check after acquiring lock
            if _dialer_instance is None:
                _dialer_instance = TwilioDialer(get_settings().telephony.twilio)

    return _dialer_instance


DialerDep = Annotated[TwilioDialer, Depends(get_dialer)]


# =============================================================================
# Webhook Security
# =============================================================================


async def verify_twilio_signature(request: Request, settings: SettingsDep) -> None:
    """Reject webhook requests without a valid Twilio signature."""
    from call_router.api.webhook_security import validate_twilio_request

    await validate_twilio_request(request, settings)


# =============================================================================
# Cleanup Functions
# =============================================================================


async def cleanup_dependencies() -> None:
    """Clean up cached dependencies.

    Call during application shutdown.
    """
    global _dialer_instance

    if _dialer_instance is not None:
        try:
            await _dialer_instance.close()
        except Exception as e:
            log.warning("Error closing dialer during cleanup", error=str(e))
        _dialer_instance = None


def reset_dependencies() -> None:
    """Reset cached dependencies (for testing).

    Does not clean up resources, just clears references.
    """
    global _dialer_instance
    _dialer_instance = None

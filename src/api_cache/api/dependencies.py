"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from loguru import logger

from api_cache.config import settings
from api_cache.handlers import GateHandler
from api_cache.repositories import HttpxTransport
from api_cache.services import RequestGate


def get_gate(request: Request) -> RequestGate:
    """Dependency injection for RequestGate from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The RequestGate instance from app.state

    Raises:
        RuntimeError: If the gate is not initialized
    """
    gate = getattr(request.app.state, "gate", None)
    if gate is None:
        raise RuntimeError("RequestGate not initialized. Check lifespan setup.")
    return gate


def get_handler(request: Request) -> GateHandler:
    """Dependency injection for GateHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The GateHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "gate_handler", None)
    if handler is None:
        raise RuntimeError("GateHandler not initialized. Check lifespan setup.")
    return handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores in app.state:
    1. Transport (HTTP access) - created explicitly so it can be closed
    2. Gate (business logic) - stored in app.state.gate
    3. Handler (HTTP endpoints) - stored in app.state.gate_handler

    Args:
        app: The FastAPI application instance

    Yields:
        None

    Cleanup:
        Closes the transport and removes all services from app.state on shutdown
    """
    transport = HttpxTransport.create(timeout=settings.transport_timeout)
    gate = RequestGate.create(transport=transport)
    gate_handler = GateHandler(gate=gate)

    app.state.gate = gate
    app.state.gate_handler = gate_handler
    app.state.transport = transport

    logger.info(
        "Request gate initialized backend={} clients={} failure_policy={}",
        settings.backend,
        gate.registry.names(),
        settings.storage_failure_policy.value,
    )
    logger.info("Storage health={}", gate.is_healthy())

    yield

    transport.close()
    del app.state.gate_handler
    del app.state.gate
    del app.state.transport
    logger.info("Request gate shut down")


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[GateHandler, Depends(get_handler)]
GateDep = Annotated[RequestGate, Depends(get_gate)]

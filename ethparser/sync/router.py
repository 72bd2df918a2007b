"""
Block sync API routes.

Serves the latest processed block, address subscriptions and the
transaction history of subscribed addresses, plus engine status.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel

from ethparser.sync.engine import SyncEngine
from ethparser.sync.models import Transaction, normalize_address

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sync"])


class CurrentBlockData(BaseModel):
    blockNumber: int


class CurrentBlockResponse(BaseModel):
    """Response for the current block endpoint."""

    data: CurrentBlockData


class MessageData(BaseModel):
    message: str


class SubscribeResponse(BaseModel):
    """Response for the subscribe endpoint."""

    data: MessageData


class TransactionsData(BaseModel):
    transactions: List[Transaction]


class TransactionsResponse(BaseModel):
    """Response for the transactions endpoint."""

    data: TransactionsData


def get_engine(request: Request) -> SyncEngine:
    """Dependency returning the engine attached to the application."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sync engine not initialized",
        )
    return engine


def require_address(address: Optional[str] = Query(default=None)) -> str:
    """Dependency validating the ``address`` query parameter."""
    if address is None or not address.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Address is required"
        )
    return normalize_address(address)


@router.get("/currentBlock", response_model=CurrentBlockResponse)
async def current_block(engine: SyncEngine = Depends(get_engine)):
    """Get the last fully processed block number (-1 before the first sync)."""
    return {"data": {"blockNumber": engine.get_current_block()}}


@router.get("/subscribe", response_model=SubscribeResponse)
async def subscribe(
    address: str = Depends(require_address),
    engine: SyncEngine = Depends(get_engine),
):
    """
    Subscribe to an address.

    Subscribing twice is harmless; the message says which case applied.
    Transactions processed before the subscription are visible too.
    """
    if engine.subscribe(address):
        message = f"Subscribed to address: {address}"
    else:
        message = f"Already subscribed to address: {address}"
    return {"data": {"message": message}}


@router.get("/transactions", response_model=TransactionsResponse)
async def transactions(
    address: str = Depends(require_address),
    engine: SyncEngine = Depends(get_engine),
):
    """
    List inbound and outbound transactions of a subscribed address.

    Unsubscribed addresses get an empty list.
    """
    return {"data": {"transactions": engine.get_transactions(address)}}


@router.get("/sync/status")
async def sync_status(engine: SyncEngine = Depends(get_engine)) -> Dict[str, Any]:
    """Get engine state, watermark, counts and recent iteration metrics."""
    logger.debug("Sync status endpoint called")
    return engine.get_status()

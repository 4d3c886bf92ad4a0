"""
NFT Ledger — HTTP explorer and operator API.

FastAPI application providing:
- Collection overview (metadata and counters)
- Token lookup (owner, URI)
- Account balance and paginated holdings
- Operator calls (mint, burn, transfer, cap, roles, destroy)

Callers are identified by the ``X-Principal`` header, which an upstream
authenticating proxy is expected to set. The app never authenticates on its
own; it only passes the principal through to the ledger's access gate.
"""

from __future__ import annotations

import html
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field

from nft_ledger.config import settings
from nft_ledger.token.errors import (
    AuthorizationError,
    CapacityError,
    LedgerDestroyed,
    NotFoundError,
    TokenLedgerError,
    ValidationError,
)
from nft_ledger.token.schema import EventType, Receipt, Role

logger = logging.getLogger(__name__)


# ── Pydantic request models ────────────────────────────────────


class MintRequest(BaseModel):
    to: str | None
    quantity: int = 1


class BurnRequest(BaseModel):
    token_id: int


class TransferRequest(BaseModel):
    from_: str = Field(alias="from")
    to: str | None
    token_id: int


class MaxTokenIdRequest(BaseModel):
    value: int


class RoleRequest(BaseModel):
    role: Role
    account: str | None


class DestroyRequest(BaseModel):
    beneficiary: str | None


class DashboardState:
    """Mutable application state injected at startup."""

    def __init__(self) -> None:
        self.ledger: Any = None
        self.journal: Any = None
        self.startup_time: datetime = datetime.now(timezone.utc)


state = DashboardState()


# ── Application lifecycle ──────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup & shutdown lifecycle — build the ledger if none was injected."""
    if state.ledger is None:
        from nft_ledger.ledger.service import TokenLedger

        state.ledger = TokenLedger.from_settings(settings)
        logger.info("API built ledger from settings: %s", settings.name)

    if state.journal is None and settings.database_url:
        try:
            from nft_ledger.ledger.journal import EventJournal

            state.journal = EventJournal(settings.database_url)
            state.journal.initialize()
            state.ledger.subscribe(state.journal.record)
            logger.info("API attached event journal")
        except Exception as exc:
            logger.warning("API could not attach event journal: %s", exc)

    yield

    logger.info("NFT Ledger API shut down")


app = FastAPI(
    title="NFT Ledger",
    description="Explorer and operator API for a role-gated NFT ledger",
    version="0.1.0",
    lifespan=lifespan,
)


# ── Error mapping ──────────────────────────────────────────────


_STATUS_BY_CLASS: list[tuple[type[TokenLedgerError], int]] = [
    (AuthorizationError, 403),
    (ValidationError, 422),
    (NotFoundError, 404),
    (CapacityError, 409),
    (LedgerDestroyed, 410),
]


@app.exception_handler(TokenLedgerError)
async def ledger_error_handler(request: Request, exc: TokenLedgerError) -> JSONResponse:
    status_code = 400
    for error_class, code in _STATUS_BY_CLASS:
        if isinstance(exc, error_class):
            status_code = code
            break
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def _ledger():
    if state.ledger is None:
        raise HTTPException(status_code=503, detail="Ledger not initialized")
    return state.ledger


def _receipt(receipt: Receipt) -> JSONResponse:
    return JSONResponse(receipt.model_dump(mode="json", by_alias=True))


# ── Routes: Overview ───────────────────────────────────────────


@app.get("/", response_class=HTMLResponse)
async def overview():
    """Collection overview page."""
    ledger = _ledger()
    if ledger.is_destroyed:
        body = "<p>This collection has been destroyed.</p>"
    else:
        info = ledger.collection_info()
        body = f"""
        <h1>{html.escape(info.name)} ({html.escape(info.symbol)})</h1>
        <table>
            <tr><th>Total supply</th><td>{info.total_supply}</td></tr>
            <tr><th>Next token ID</th><td>{info.next_token_id}</td></tr>
            <tr><th>Max token ID</th><td>{info.max_token_id}</td></tr>
            <tr><th>Owner</th><td>{html.escape(info.owner)}</td></tr>
        </table>
        """
    return HTMLResponse(f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><title>NFT Ledger</title></head>
<body>{body}</body>
</html>""")


# ── Routes: Reads ──────────────────────────────────────────────


@app.get("/api/collection")
async def api_collection():
    """Metadata and counters."""
    info = _ledger().collection_info()
    return JSONResponse(info.model_dump(mode="json"))


@app.get("/api/tokens/{token_id}")
async def api_token(token_id: int):
    """Owner and URI of one token."""
    ledger = _ledger()
    return JSONResponse({
        "token_id": token_id,
        "owner": ledger.owner_of(token_id),
        "uri": ledger.token_uri(token_id),
    })


@app.get("/api/accounts/{principal}/balance")
async def api_balance(principal: str):
    return JSONResponse({
        "principal": principal,
        "balance": _ledger().balance_of(principal),
    })


@app.get("/api/accounts/{principal}/tokens")
async def api_tokens_of(principal: str, offset: int = 0, limit: int = 100):
    """Paginated holdings."""
    ledger = _ledger()
    tokens = ledger.tokens_of(principal, offset, limit)
    return JSONResponse({
        "principal": principal,
        "offset": offset,
        "limit": limit,
        "balance": ledger.balance_of(principal),
        "tokens": tokens,
    })


@app.get("/api/roles/{role}/{principal}")
async def api_has_role(role: Role, principal: str):
    return JSONResponse({
        "role": role.value,
        "principal": principal,
        "has_role": _ledger().has_role(role, principal),
    })


# ── Routes: Operator calls ─────────────────────────────────────


@app.post("/api/mint")
async def api_mint(req: MintRequest, x_principal: str | None = Header(default=None)):
    return _receipt(_ledger().mint(x_principal, req.to, req.quantity))


@app.post("/api/burn")
async def api_burn(req: BurnRequest, x_principal: str | None = Header(default=None)):
    return _receipt(_ledger().burn(x_principal, req.token_id))


@app.post("/api/transfer")
async def api_transfer(req: TransferRequest, x_principal: str | None = Header(default=None)):
    return _receipt(_ledger().transfer(x_principal, req.from_, req.to, req.token_id))


@app.post("/api/max-token-id")
async def api_set_max_token_id(
    req: MaxTokenIdRequest, x_principal: str | None = Header(default=None)
):
    return _receipt(_ledger().set_max_token_id(x_principal, req.value))


@app.post("/api/roles/grant")
async def api_grant_role(req: RoleRequest, x_principal: str | None = Header(default=None)):
    return _receipt(_ledger().grant_role(x_principal, req.role, req.account))


@app.post("/api/roles/revoke")
async def api_revoke_role(req: RoleRequest, x_principal: str | None = Header(default=None)):
    return _receipt(_ledger().revoke_role(x_principal, req.role, req.account))


@app.post("/api/destroy")
async def api_destroy(req: DestroyRequest, x_principal: str | None = Header(default=None)):
    return _receipt(_ledger().destroy(x_principal, req.beneficiary))


# ── Routes: Journal ────────────────────────────────────────────


@app.get("/api/journal")
async def api_journal(limit: int = 50, offset: int = 0, event_type: EventType | None = None):
    """Recorded notifications, oldest first."""
    if state.journal is None:
        return JSONResponse({"entries": [], "message": "Event journal not configured"})

    entries = state.journal.get_events(event_type=event_type, limit=limit, offset=offset)
    return JSONResponse({
        "entries": [
            {
                "sequence_number": e.sequence_number,
                "event_type": e.event_type,
                "token_id": e.token_id,
                "entry_hash": e.entry_hash[:16] + "...",
                "payload": e.payload,
            }
            for e in entries
        ],
        "total": state.journal.get_event_count(),
    })

"""FastAPI backend for the venue game: markets, picks, trivia, settlement."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Iterator

import structlog
from duckdb import DuckDBPyConnection
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from venuepredict.api.auth import authenticate_admin, check_cron_secret
from venuepredict.api.schemas import (
    ErrorResponse,
    HealthResponse,
    LeaderboardResponse,
    MarkReadRequest,
    NotificationsResponse,
    PendingResponse,
    PickRequest,
    PickResponse,
    PicksResponse,
    QuotaResponse,
    SettleRequest,
    SettleResponse,
    TriviaAnswerRequest,
    TriviaAnswerResponse,
    TriviaQuestionsResponse,
)
from venuepredict.catalog import ListingParams, MarketCatalog, MarketListing
from venuepredict.config import Settings, get_settings
from venuepredict.errors import GameError, RateLimitError
from venuepredict.ingestion.polymarket.gamma import GammaClient
from venuepredict.models import AutoSettleResult, User
from venuepredict.picks import list_user_picks, submit_pick
from venuepredict.quota import get_quota
from venuepredict.settlement.auto import auto_settle
from venuepredict.settlement.engine import SettlementEngine, list_pending_summaries
from venuepredict.storage.db import get_connection, init_schema
from venuepredict.storage.notifications import list_notifications, mark_read
from venuepredict.storage.users import leaderboard_for_venue
from venuepredict.trivia import get_questions, submit_answer

log = structlog.get_logger(__name__)

# Set by run_api() so dependencies load the same profile as the CLI.
_config_profile: str | None = None
_catalog: MarketCatalog | None = None
_engine: SettlementEngine | None = None


def get_app_settings() -> Settings:
    return get_settings(_config_profile)


def get_db(settings: Settings = Depends(get_app_settings)) -> Iterator[DuckDBPyConnection]:
    conn = get_connection(settings.db_path)
    try:
        yield conn
    finally:
        conn.close()


def get_catalog(settings: Settings = Depends(get_app_settings)) -> MarketCatalog:
    global _catalog
    if _catalog is None:
        _catalog = MarketCatalog(GammaClient.from_settings(settings), ttl_sec=settings.catalog_ttl_sec)
    return _catalog


def get_settlement_engine() -> SettlementEngine:
    """One engine per process so the atomic/legacy probe runs once."""
    global _engine
    if _engine is None:
        _engine = SettlementEngine()
    return _engine


def require_admin(
    authorization: str | None = Header(None),
    conn: DuckDBPyConnection = Depends(get_db),
) -> User:
    return authenticate_admin(conn, authorization)


def require_cron(
    authorization: str | None = Header(None),
    x_cron_secret: str | None = Header(None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    check_cron_secret(settings.cron_secret, authorization, x_cron_secret)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings(_config_profile)
    conn = get_connection(settings.db_path)
    try:
        init_schema(conn, install_procedures=settings.install_procedures)
    finally:
        conn.close()
    yield


app = FastAPI(title="VenuePredict API", version="0.1.0", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def _error_json(code: str, message: str, status_code: int = 404, headers: dict[str, str] | None = None) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
        headers=headers,
    )


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    if exc.status_code >= 500:
        log.warning("request_failed", path=request.url.path, code=exc.code, error=exc.message)
    return _error_json(exc.code, exc.message, exc.status_code, headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query"))
    message = f"Invalid {field}: {first.get('msg', 'bad value')}" if field else "Invalid request."
    return _error_json("invalid_input", message, 400)


_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@app.get("/predictions", response_model=MarketListing, responses=_ERRORS)
async def predictions_list(
    page: str | None = Query(None),
    page_size: str | None = Query(None, alias="pageSize"),
    search: str | None = Query(None),
    category: str | None = Query(None),
    broad_category: str | None = Query(None, alias="broadCategory"),
    sort: str | None = Query(None),
    catalog: MarketCatalog = Depends(get_catalog),
) -> MarketListing:
    """Paginated, filtered listing of open markets."""
    params = ListingParams(
        page=page,
        page_size=page_size,
        search=search,
        category=category,
        broad_category=broad_category,
        sort=sort,
    )
    return await catalog.list_markets(params)


@app.post(
    "/predictions",
    response_model=PickResponse,
    responses={**_ERRORS, 409: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def predictions_submit(
    body: PickRequest,
    conn: DuckDBPyConnection = Depends(get_db),
    catalog: MarketCatalog = Depends(get_catalog),
    settings: Settings = Depends(get_app_settings),
) -> PickResponse:
    pick = await submit_pick(
        conn,
        catalog,
        body.user_id,
        body.prediction_id,
        body.outcome_id,
        limit=settings.predictions_limit,
        window_sec=settings.quota_window_sec,
    )
    quota = await asyncio.to_thread(
        get_quota,
        conn,
        pick.user_id,
        "predictions",
        limit=settings.predictions_limit,
        window_sec=settings.quota_window_sec,
    )
    return PickResponse(pick=pick, quota=quota)


@app.get("/predictions/quota", response_model=QuotaResponse)
def predictions_quota(
    user_id: str | None = Query(None, alias="userId"),
    conn: DuckDBPyConnection = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> QuotaResponse:
    if not (user_id or "").strip():
        return QuotaResponse(quota=None)
    return QuotaResponse(
        quota=get_quota(
            conn,
            user_id,
            "predictions",
            limit=settings.predictions_limit,
            window_sec=settings.quota_window_sec,
        )
    )


@app.get("/picks", response_model=PicksResponse, responses=_ERRORS)
def picks_list(
    user_id: str = Query("", alias="userId"),
    status: str = Query("all"),
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100, alias="pageSize"),
    conn: DuckDBPyConnection = Depends(get_db),
) -> PicksResponse:
    items, total = list_user_picks(conn, user_id, status=status, limit=page_size, offset=(page - 1) * page_size)
    return PicksResponse(items=items, total=total, page=page, page_size=page_size)


@app.get("/trivia", response_model=TriviaQuestionsResponse)
def trivia_questions(
    limit: int = Query(10, ge=1, le=50),
    conn: DuckDBPyConnection = Depends(get_db),
) -> TriviaQuestionsResponse:
    return TriviaQuestionsResponse(questions=get_questions(conn, limit=limit))


@app.post("/trivia", response_model=TriviaAnswerResponse, responses={**_ERRORS, 429: {"model": ErrorResponse}})
def trivia_answer(
    body: TriviaAnswerRequest,
    conn: DuckDBPyConnection = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> TriviaAnswerResponse:
    result = submit_answer(
        conn,
        body.user_id,
        body.question_id,
        body.answer,
        body.time_elapsed,
        limit=settings.trivia_limit,
        window_sec=settings.quota_window_sec,
    )
    quota = None
    if result.saved and body.user_id:
        quota = get_quota(
            conn, body.user_id, "trivia", limit=settings.trivia_limit, window_sec=settings.quota_window_sec
        )
    return TriviaAnswerResponse(result=result, quota=quota)


@app.get("/trivia/quota", response_model=QuotaResponse)
def trivia_quota(
    user_id: str | None = Query(None, alias="userId"),
    conn: DuckDBPyConnection = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> QuotaResponse:
    if not (user_id or "").strip():
        return QuotaResponse(quota=None)
    return QuotaResponse(
        quota=get_quota(conn, user_id, "trivia", limit=settings.trivia_limit, window_sec=settings.quota_window_sec)
    )


@app.get("/notifications", response_model=NotificationsResponse)
def notifications_list(
    user_id: str = Query("", alias="userId"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    unread_only: bool = Query(False, alias="unreadOnly"),
    conn: DuckDBPyConnection = Depends(get_db),
) -> NotificationsResponse:
    items, total, unread = list_notifications(conn, user_id.strip(), limit=limit, offset=offset, unread_only=unread_only)
    return NotificationsResponse(items=items, total=total, unread_count=unread)


@app.post("/notifications/read", response_model=NotificationsResponse)
def notifications_mark_read(
    body: MarkReadRequest,
    conn: DuckDBPyConnection = Depends(get_db),
) -> NotificationsResponse:
    user_id = body.user_id.strip()
    mark_read(conn, user_id, body.notification_id)
    items, total, unread = list_notifications(conn, user_id)
    return NotificationsResponse(items=items, total=total, unread_count=unread)


@app.get("/leaderboard", response_model=LeaderboardResponse)
def leaderboard(
    venue_id: str = Query("", alias="venueId"),
    limit: int = Query(50, ge=1, le=500),
    conn: DuckDBPyConnection = Depends(get_db),
) -> LeaderboardResponse:
    venue_id = venue_id.strip()
    return LeaderboardResponse(venue_id=venue_id, entries=leaderboard_for_venue(conn, venue_id, limit=limit))


@app.get(
    "/admin/predictions/pending",
    response_model=PendingResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def admin_pending(
    admin: User = Depends(require_admin),
    conn: DuckDBPyConnection = Depends(get_db),
) -> PendingResponse:
    return PendingResponse(markets=list_pending_summaries(conn))


@app.post(
    "/admin/predictions/settle",
    response_model=SettleResponse,
    responses={**_ERRORS, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def admin_settle(
    body: SettleRequest,
    admin: User = Depends(require_admin),
    conn: DuckDBPyConnection = Depends(get_db),
    engine: SettlementEngine = Depends(get_settlement_engine),
) -> SettleResponse:
    result = engine.settle(
        conn,
        body.prediction_id,
        winning_outcome_id=body.winning_outcome_id,
        settle_as_canceled=body.settle_as_canceled,
    )
    log.info("admin_settle", admin_id=admin.id, prediction_id=body.prediction_id.strip())
    return SettleResponse(prediction_id=body.prediction_id.strip(), result=result, strategy=engine.strategy_name)


@app.api_route(
    "/cron/predictions-settle",
    methods=["GET", "POST"],
    response_model=AutoSettleResult,
    responses={401: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def cron_settle(
    _: None = Depends(require_cron),
    conn: DuckDBPyConnection = Depends(get_db),
    catalog: MarketCatalog = Depends(get_catalog),
    engine: SettlementEngine = Depends(get_settlement_engine),
    settings: Settings = Depends(get_app_settings),
) -> AutoSettleResult:
    """Scheduled job: settle closed markets that still have pending picks."""
    return await auto_settle(conn, catalog.client, engine, threshold=settings.auto_win_threshold)


def run_api(host: str = "127.0.0.1", port: int = 8000, profile: str | None = None) -> None:
    global _config_profile
    _config_profile = profile
    import uvicorn

    uvicorn.run("venuepredict.api.main:app", host=host, port=port, reload=False)

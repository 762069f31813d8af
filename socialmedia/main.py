import logging
from contextlib import asynccontextmanager
from typing import Annotated, List

from fastapi import FastAPI, Response, Request, Depends, HTTPException, Path, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from socialmedia.config import settings
from socialmedia.errors import CredentialMismatchError, DuplicateUsernameError, StorageError, ValidationFailure
from socialmedia.storage import init_db, check_db_health, get_db
from socialmedia.stores import SqlAccountStore, SqlMessageStore
from socialmedia.services import AccountService, MessageService
from socialmedia.logging_utils import setup_logging, RequestLoggingMiddleware, log_outcome
from socialmedia.metrics import (
    record_account_outcome,
    record_message_outcome,
    get_metrics,
    get_metrics_content_type,
)
from socialmedia.schemas import (
    ID_MAX,
    ID_MIN,
    Account,
    AccountCredentials,
    ErrorResponse,
    HealthResponse,
    Message,
    MessageCreate,
    MessageTextUpdate,
)


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: Initialize database and create tables
    """
    init_db()
    yield


app = FastAPI(
    title="Social Media API",
    description="Accounts and messages for a minimal social media platform",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

# Path ids share the range of the id columns
EntityId = Annotated[int, Path(ge=ID_MIN, le=ID_MAX)]


# =============================================================================
# Dependencies
# =============================================================================

def get_account_service(db: Session = Depends(get_db)) -> AccountService:
    return AccountService(SqlAccountStore(db))


def get_message_service(db: Session = Depends(get_db)) -> MessageService:
    return MessageService(SqlMessageStore(db), SqlAccountStore(db))


def empty_response() -> Response:
    """200 with an empty body, used when a looked-up message does not exist."""
    return Response(status_code=status.HTTP_200_OK)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON, missing fields and non-integer path parameters are all 400."""
    logger.warning(f"Malformed request on {request.method} {request.url.path}")
    log_outcome(request, result="malformed_request")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
    log_outcome(request, result="storage_error")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "storage failure"},
    )


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness probe - always returns 200 once the app is running."""
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
def health_ready(response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if the DB is reachable and both the
    account and message tables exist. Otherwise returns 503.
    """
    if not check_db_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Database not reachable or schema not applied"
        )
    return HealthResponse(status="ready")


# =============================================================================
# Account Routes
# =============================================================================

@app.post(
    "/register",
    response_model=Account,
    responses={400: {"model": ErrorResponse, "description": "Invalid or duplicate account"}},
)
def register(
    request: Request,
    credentials: AccountCredentials,
    service: AccountService = Depends(get_account_service),
) -> Account:
    """
    Register a new account.

    Rejected with 400 when the username is blank, the password is shorter
    than 4 characters, or the username is already taken.
    """
    try:
        account = service.register_account(credentials.username, credentials.password)
    except ValidationFailure as e:
        result = "duplicate" if isinstance(e, DuplicateUsernameError) else "rejected"
        record_account_outcome("register", result)
        log_outcome(request, action="register", result=result)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    record_account_outcome("register", "created")
    log_outcome(request, action="register", result="created", account_id=account.account_id)
    return account


@app.post(
    "/login",
    response_model=Account,
    responses={401: {"model": ErrorResponse, "description": "No matching account"}},
)
def login(
    request: Request,
    credentials: AccountCredentials,
    service: AccountService = Depends(get_account_service),
) -> Account:
    try:
        account = service.login(credentials.username, credentials.password)
    except CredentialMismatchError as e:
        record_account_outcome("login", "mismatch")
        log_outcome(request, action="login", result="mismatch")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    record_account_outcome("login", "matched")
    log_outcome(request, action="login", result="matched", account_id=account.account_id)
    return account


# =============================================================================
# Message Routes
# =============================================================================

@app.post(
    "/messages",
    response_model=Message,
    responses={400: {"model": ErrorResponse, "description": "Invalid text or unknown author"}},
)
def create_message(
    request: Request,
    body: MessageCreate,
    service: MessageService = Depends(get_message_service),
) -> Message:
    try:
        message = service.create_message(body)
    except ValidationFailure as e:
        record_message_outcome("create", "rejected")
        log_outcome(request, action="create_message", result="rejected")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    record_message_outcome("create", "ok")
    log_outcome(request, action="create_message", result="ok", message_id=message.message_id)
    return message


@app.get("/messages", response_model=List[Message])
def list_messages(service: MessageService = Depends(get_message_service)) -> List[Message]:
    """All messages ordered by message_id. An empty store gives []."""
    messages = service.get_all_messages()
    record_message_outcome("list", "ok")
    logger.debug(f"GET /messages: returned {len(messages)} messages")
    return messages


@app.get("/messages/{message_id}", response_model=Message)
def get_message(
    request: Request,
    message_id: EntityId,
    service: MessageService = Depends(get_message_service),
):
    """The message, or 200 with an empty body when it does not exist."""
    message = service.get_message_by_id(message_id)
    log_outcome(request, message_id=message_id)
    if message is None:
        record_message_outcome("get", "not_found")
        return empty_response()
    record_message_outcome("get", "ok")
    return message


@app.delete("/messages/{message_id}", response_model=Message)
def delete_message(
    request: Request,
    message_id: EntityId,
    service: MessageService = Depends(get_message_service),
):
    """
    Delete a message and return its content from before the delete.
    A missing message gives 200 with an empty body and deletes nothing.
    """
    deleted = service.delete_message(message_id)
    if deleted is None:
        record_message_outcome("delete", "not_found")
        log_outcome(request, action="delete_message", result="not_found", message_id=message_id)
        return empty_response()
    record_message_outcome("delete", "ok")
    log_outcome(request, action="delete_message", result="ok", message_id=message_id)
    return deleted


@app.patch(
    "/messages/{message_id}",
    response_model=Message,
    responses={400: {"model": ErrorResponse, "description": "Unknown message or invalid text"}},
)
def update_message(
    request: Request,
    message_id: EntityId,
    body: MessageTextUpdate,
    service: MessageService = Depends(get_message_service),
) -> Message:
    try:
        message = service.update_message_text(body.message_text, message_id)
    except ValidationFailure as e:
        record_message_outcome("update", "rejected")
        log_outcome(request, action="update_message", result="rejected", message_id=message_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    record_message_outcome("update", "ok")
    log_outcome(request, action="update_message", result="ok", message_id=message_id)
    return message


@app.get("/accounts/{account_id}/messages", response_model=List[Message])
def list_account_messages(
    account_id: EntityId,
    service: MessageService = Depends(get_message_service),
) -> List[Message]:
    """Messages posted by an account; [] when it has none or does not exist."""
    messages = service.get_messages_by_account_id(account_id)
    record_message_outcome("list_by_account", "ok")
    return messages


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus-style metrics."""
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )

"""HTTP API exposing CRUD operations on users."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import Settings, load_settings
from .database import Database
from .errors import StoreError, UserNotFound
from .store import UserStore

logger = logging.getLogger("userdirectory.service")

AFFECTED_ROWS_HEADER = "X-Affected-Rows"


class UserPayload(BaseModel):
    name: Optional[Any] = Field(default=None, description="Display name, up to 100 characters")
    email: Optional[Any] = Field(default=None, description="Unique email address, up to 100 characters")


class UserView(BaseModel):
    id: int
    name: str
    email: str


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str


def _store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc)},
    )


def _request_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid value')}"
        for error in exc.errors()
    )
    logger.warning("%s %s rejected: %s", request.method, request.url.path, message)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": message or "Invalid request"},
    )


def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error while serving %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc)},
    )


def register_user_routes(app: FastAPI, store: UserStore) -> None:
    """Expose the user CRUD endpoints on the provided FastAPI application."""

    error_responses = {500: {"model": ErrorResponse}}

    @app.get("/healthz")
    def healthcheck() -> JSONResponse:
        try:
            store.ping()
        except StoreError as exc:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unavailable", "error": str(exc)},
            )
        return JSONResponse(content={"status": "ok"})

    @app.post(
        "/users",
        status_code=status.HTTP_201_CREATED,
        response_model=MessageResponse,
        responses=error_responses,
    )
    def create_user(payload: Optional[UserPayload] = None) -> MessageResponse:
        payload = payload or UserPayload()
        store.create_user(payload.name, payload.email)
        logger.info("Created user <%s>", payload.email)
        return MessageResponse(message="User created")

    @app.get("/users", response_model=List[UserView], responses=error_responses)
    def list_users() -> List[UserView]:
        return [UserView(**user.to_dict()) for user in store.list_users()]

    @app.get(
        "/users/{user_id}",
        response_model=UserView,
        responses={404: {"model": MessageResponse}, **error_responses},
    )
    def get_user(user_id: int):
        try:
            user = store.get_user(user_id)
        except UserNotFound:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"message": "User not found"},
            )
        return UserView(**user.to_dict())

    @app.put("/users/{user_id}", response_model=MessageResponse, responses=error_responses)
    def update_user(
        user_id: int,
        response: Response,
        payload: Optional[UserPayload] = None,
    ) -> MessageResponse:
        payload = payload or UserPayload()
        affected = store.update_user(user_id, payload.name, payload.email)
        response.headers[AFFECTED_ROWS_HEADER] = str(affected)
        logger.info("Updated user %s (%s row(s) affected)", user_id, affected)
        return MessageResponse(message="User updated")

    @app.delete("/users/{user_id}", response_model=MessageResponse, responses=error_responses)
    def delete_user(user_id: int, response: Response) -> MessageResponse:
        affected = store.delete_user(user_id)
        response.headers[AFFECTED_ROWS_HEADER] = str(affected)
        logger.info("Deleted user %s (%s row(s) affected)", user_id, affected)
        return MessageResponse(message="User deleted")


def create_app(
    *,
    store: UserStore | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the user directory."""

    if store is None:
        app_settings = settings or load_settings()
        store = Database(app_settings.database_url, echo=app_settings.echo_sql)
    store.initialize()

    app = FastAPI(
        title="User Directory API",
        version="0.1.0",
        description="CRUD endpoints for the users table.",
    )
    app.state.store = store

    app.add_exception_handler(StoreError, _store_error_handler)
    app.add_exception_handler(RequestValidationError, _request_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    register_user_routes(app, store)
    return app


__all__ = ["AFFECTED_ROWS_HEADER", "create_app", "register_user_routes"]

"""FastAPI application exposing the account and order endpoints."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

import anyio
from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from .accounts import AccountService, Session
from .catalog import IngredientCatalog, RemoteIngredientCatalog, load_ingredient_catalog
from .config import Settings
from .database import Database
from .errors import CatalogFailure, ServiceError
from .identity import IdentityStore
from .models import Order, User
from .orders import OrderHistory, OrderLedger, OrderService
from .security import BearerAuth
from .tokens import TokenAuthority

logger = logging.getLogger("burgers.api")


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UpdateAccountRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class TokenRequest(BaseModel):
    token: Optional[str] = None


class CreateOrderRequest(BaseModel):
    ingredients: Optional[List[str]] = None


class UserView(BaseModel):
    email: str
    name: str


class SessionResponse(BaseModel):
    success: bool = True
    user: UserView
    accessToken: str
    refreshToken: str


class AccountResponse(BaseModel):
    success: bool = True
    user: UserView


class TokenResponse(BaseModel):
    success: bool = True
    accessToken: str
    refreshToken: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class OrderNumber(BaseModel):
    number: int


class CreateOrderResponse(BaseModel):
    success: bool = True
    name: str
    order: OrderNumber


class OrderView(BaseModel):
    number: int
    name: str
    ingredients: List[str]
    createdAt: datetime


class OrderListResponse(BaseModel):
    success: bool = True
    orders: List[OrderView]
    total: int
    totalToday: int


def user_to_view(user: User) -> UserView:
    return UserView(email=user.email, name=user.name)


def session_to_response(session: Session) -> SessionResponse:
    return SessionResponse(
        user=user_to_view(session.user),
        accessToken=session.tokens.access_token,
        refreshToken=session.tokens.refresh_token,
    )


def order_to_view(order: Order) -> OrderView:
    return OrderView(
        number=order.number,
        name=order.name,
        ingredients=list(order.ingredients),
        createdAt=order.created_at,
    )


def history_to_response(history: OrderHistory) -> OrderListResponse:
    return OrderListResponse(
        orders=[order_to_view(order) for order in history.orders],
        total=history.total,
        totalToday=history.total_today,
    )


def build_catalog(settings: Settings) -> IngredientCatalog:
    if settings.catalog_url:
        return RemoteIngredientCatalog(settings.catalog_url, timeout=settings.catalog_timeout)
    return load_ingredient_catalog(settings.catalog_path)


def build_account_router(accounts: AccountService) -> APIRouter:
    router = APIRouter()
    current_user = BearerAuth(accounts, required=True)

    @router.post("/register", response_model=SessionResponse)
    async def register(payload: Optional[RegisterRequest] = None) -> SessionResponse:
        payload = payload or RegisterRequest()
        session = accounts.register(payload.email, payload.password, payload.name)
        return session_to_response(session)

    @router.post("/login", response_model=SessionResponse)
    async def login(payload: Optional[LoginRequest] = None) -> SessionResponse:
        payload = payload or LoginRequest()
        return session_to_response(accounts.login(payload.email, payload.password))

    @router.post("/token", response_model=TokenResponse)
    async def refresh_token(payload: Optional[TokenRequest] = None) -> TokenResponse:
        tokens = accounts.refresh(payload.token if payload else None)
        return TokenResponse(accessToken=tokens.access_token, refreshToken=tokens.refresh_token)

    @router.post("/logout", response_model=MessageResponse)
    async def logout(payload: Optional[TokenRequest] = None) -> MessageResponse:
        accounts.logout(payload.token if payload else None)
        return MessageResponse(message="Successful logout")

    @router.get("/account", response_model=AccountResponse)
    @router.get("/user", response_model=AccountResponse)
    async def read_account(user: User = Depends(current_user)) -> AccountResponse:
        return AccountResponse(user=user_to_view(user))

    @router.patch("/account", response_model=AccountResponse)
    @router.patch("/user", response_model=AccountResponse)
    async def update_account(
        payload: Optional[UpdateAccountRequest] = None,
        user: User = Depends(current_user),
    ) -> AccountResponse:
        payload = payload or UpdateAccountRequest()
        updated = accounts.update(
            user,
            email=payload.email,
            password=payload.password,
            name=payload.name,
        )
        return AccountResponse(user=user_to_view(updated))

    @router.delete("/account", response_model=MessageResponse)
    @router.delete("/user", response_model=MessageResponse)
    async def delete_account(user: User = Depends(current_user)) -> MessageResponse:
        accounts.delete(user)
        return MessageResponse(message="User successfully removed")

    return router


def build_order_router(accounts: AccountService, orders: OrderService) -> APIRouter:
    router = APIRouter()
    current_user = BearerAuth(accounts, required=True)
    optional_user = BearerAuth(accounts, required=False)

    @router.post("/orders", response_model=CreateOrderResponse)
    async def create_order(
        payload: Optional[CreateOrderRequest] = None,
        user: Optional[User] = Depends(optional_user),
    ) -> CreateOrderResponse:
        ingredients = payload.ingredients if payload else None
        order = await anyio.to_thread.run_sync(
            orders.create, ingredients, user.id if user else None
        )
        return CreateOrderResponse(name=order.name, order=OrderNumber(number=order.number))

    @router.get("/orders/all", response_model=OrderListResponse)
    async def order_feed() -> OrderListResponse:
        return history_to_response(await anyio.to_thread.run_sync(orders.feed))

    @router.get("/orders", response_model=OrderListResponse)
    async def list_orders(user: User = Depends(current_user)) -> OrderListResponse:
        return history_to_response(await anyio.to_thread.run_sync(orders.history_for, user.id))

    return router


def create_app(
    *,
    settings: Settings | None = None,
    database: Database | None = None,
    catalog: IngredientCatalog | None = None,
    tokens: TokenAuthority | None = None,
    order_service: OrderService | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application and its services."""

    settings = settings or Settings.from_env()
    db = database or Database(settings.database_path)
    db.initialize()

    identity = IdentityStore(db)
    token_authority = tokens or TokenAuthority(
        access_ttl=settings.access_token_ttl,
        refresh_ttl=settings.refresh_token_ttl,
    )
    accounts = AccountService(identity, token_authority)
    if order_service is None:
        order_service = OrderService(
            OrderLedger(db, start=settings.order_start),
            catalog or build_catalog(settings),
            page_limit=settings.order_page_limit,
        )

    app = FastAPI(
        title="Stellar Burgers API",
        version="1.0.0",
        description="Customer accounts and burger orders.",
    )
    app.state.database = db
    app.state.accounts = accounts
    app.state.orders = order_service

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    account_router = build_account_router(accounts)
    order_router = build_order_router(accounts, order_service)
    app.include_router(account_router)
    app.include_router(account_router, prefix="/api/auth")
    app.include_router(order_router)
    app.include_router(order_router, prefix="/api")

    @app.exception_handler(ServiceError)
    async def handle_service_error(_: Request, exc: ServiceError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message},
        )

    @app.exception_handler(CatalogFailure)
    async def handle_catalog_failure(request: Request, exc: CatalogFailure):
        logger.error("Ingredient lookup failed for %s %s", request.method, request.url.path, exc_info=exc)
        return PlainTextResponse("Internal Server Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError):
        logger.debug("Rejected request body: %s", exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Invalid request body"},
        )

    return app


__all__ = ["build_catalog", "create_app"]

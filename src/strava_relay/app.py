"""HTTP routes for the relay."""

from __future__ import annotations

import logging
import traceback
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import httpx
from fastapi import FastAPI, Query, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Receive, Scope, Send
from stravalib import Client

from .cache import TokenCacheManager
from .config import Settings
from .errors import RelayError
from .exchange import TokenExchangeClient, authorization_code_params
from .policy import ActivityClassifier, NoChangeClassifier, is_actionable
from .schemas import WebhookEvent
from .store import KeyValueStore, create_store
from .strava_api import StravaApi

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).parent

templates = Jinja2Templates(directory=PACKAGE_DIR / "templates")

OAUTH_SCOPES = ["activity:read_all", "activity:write"]


class StripTrailingSlashMiddleware:
    """Route ``/login/`` and ``/login//`` the same as ``/login``."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            path = scope["path"]
            stripped = path.rstrip("/") or "/"
            if stripped != path:
                scope = dict(scope, path=stripped)
        await self.app(scope, receive, send)


def _format_exception(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def create_app(
    settings: Settings,
    store: KeyValueStore | None = None,
    http_client: httpx.AsyncClient | None = None,
    classifier: ActivityClassifier | None = None,
) -> FastAPI:
    """Build the relay application.

    Args:
        settings: OAuth credentials and server options.
        store: Token store; defaults to the one described by ``settings``.
        http_client: Client for outbound Strava calls. When omitted one is
            created here and closed on shutdown.
        classifier: Decides how webhook activities are corrected; defaults to
            leaving them unchanged.
    """
    if store is None:
        store = create_store(settings.store_dir)
    owns_http_client = http_client is None
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=settings.http_timeout)
    if classifier is None:
        classifier = NoChangeClassifier()

    exchange_client = TokenExchangeClient(http_client, store)
    token_cache = TokenCacheManager(settings, store, exchange_client)
    strava = StravaApi(http_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_http_client:
            await http_client.aclose()

    app = FastAPI(lifespan=lifespan, redirect_slashes=False)
    app.add_middleware(StripTrailingSlashMiddleware)

    @app.exception_handler(StarletteHTTPException)
    async def not_found(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code == 404:
            return Response(status_code=404)
        return await http_exception_handler(request, exc)

    @app.exception_handler(RelayError)
    @app.exception_handler(httpx.HTTPError)
    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception) -> PlainTextResponse:
        logger.error(
            "Request to %s failed: %s", request.url.path, exc, exc_info=exc
        )
        return PlainTextResponse(_format_exception(exc), status_code=500)

    @app.get("/login", response_class=HTMLResponse)
    async def login(request: Request) -> HTMLResponse:
        """Render a page linking to Strava's authorization screen."""
        url = Client().authorization_url(
            client_id=settings.client_id,
            redirect_uri=settings.redirect_uri,
            approval_prompt="auto",
            scope=OAUTH_SCOPES,
        )
        return templates.TemplateResponse(
            request=request,
            name="login.html",
            context={"authorize_url": url},
        )

    @app.get("/oauth_redirect")
    async def oauth_redirect(
        request: Request,
        code: str | None = None,
        scope: str | None = None,
        error: str | None = None,
    ) -> Response:
        """Complete the authorization-code grant.

        Args:
            request: FastAPI request object.
            code: Authorization code from Strava.
            scope: Scopes the athlete actually granted.
            error: Error reported by Strava if the athlete declined.

        Returns:
            JSON confirmation with the athlete id and token expiry, or an
            error page.
        """
        if error or not code:
            message = error or "Missing authorization code. Please try logging in again."
            return templates.TemplateResponse(
                request=request,
                name="login_error.html",
                context={"error": message},
                status_code=400,
            )

        record = await exchange_client.exchange(
            authorization_code_params(settings, code)
        )
        logger.info("Athlete %s authorized with scope %s", record.athlete_id, scope)
        return JSONResponse(
            {
                "message": "Access token obtained and saved.",
                "athlete_id": record.athlete_id,
                "expires_at": record.expires_at,
                "scope": scope,
            }
        )

    @app.get("/strava/webhook")
    async def verify_subscription(
        mode: str | None = Query(default=None, alias="hub.mode"),
        challenge: str = Query(alias="hub.challenge"),
        verify_token: str | None = Query(default=None, alias="hub.verify_token"),
    ) -> Response:
        """Answer Strava's push-subscription handshake."""
        expected = settings.webhook_verify_token
        if expected is not None and verify_token != expected:
            logger.warning("Rejected webhook subscription with bad verify token")
            return Response(status_code=403)
        return JSONResponse({"hub.challenge": challenge})

    @app.post("/strava/webhook")
    async def strava_webhook(event: WebhookEvent) -> Any:
        """Fetch the activity an event refers to and apply the correction policy."""
        if not is_actionable(event):
            logger.info(
                "Ignoring %s %s event for %s",
                event.object_type,
                event.aspect_type,
                event.object_id,
            )
            return {"status": "ignored"}

        access_token = await token_cache.get_access_token(event.owner_id)
        activity = await strava.get_activity(access_token, event.object_id)

        updates = classifier(event, activity)
        if updates:
            logger.info("Updating activity %s: %s", event.object_id, sorted(updates))
            activity = await strava.update_activity(
                access_token, event.object_id, updates
            )
        return JSONResponse(activity)

    @app.get("/strava/athlete")
    async def strava_athlete(athlete_id: str = Query(alias="athleteId")) -> Response:
        """Proxy the athlete profile for a known athlete id."""
        access_token = await token_cache.get_access_token(athlete_id)
        upstream = await strava.get_athlete(access_token)
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            media_type=upstream.headers.get("content-type"),
        )

    return app

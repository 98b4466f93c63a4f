#endpoints.py
"""
FastAPI application: Airtable/feedback/auth proxy routes, the camp JSON API
and the server-rendered pages
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import httpx
import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from campfinder.airtable.client import AirtableClient, AirtableError, ProxyClient, UnconfiguredSource
from campfinder.auth import TokenVerificationError, TokenVerifier, bearer_token
from campfinder.cache import RecordCache
from campfinder.config import (
    ACCESS_TOKEN_COOKIE, ALLOWED_TABLES, API_HOST, API_PORT, CAMPS_TABLE, Settings, logger
)
from campfinder.database.db import create_engine, create_session_factory, init_db
from campfinder.favorites import FavoritesService
from campfinder.feedback import FeedbackValidationError, submit_feedback, validate_feedback
from campfinder.filters import (
    camp_stats, derive_categories, featured_camps, filter_camps, unique_categories, unique_cities
)
from campfinder.models.camp import AuthenticatedUser, Camp, Category, FilterSpec
from campfinder.registration import compute_registration_status, format_registration_date
from campfinder import render
from campfinder.utils.scheduler import setup_scheduler

router = APIRouter()


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# --- Dependencies ---


def get_cache(request: Request) -> RecordCache:
    return request.app.state.cache


def get_favorites(request: Request) -> FavoritesService:
    return request.app.state.favorites


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_user(request: Request) -> Optional[AuthenticatedUser]:
    """
    Session from a bearer header or the access token cookie; invalid tokens mean no session
    """
    token = bearer_token(request.headers.get("authorization")) or request.cookies.get(ACCESS_TOKEN_COOKIE)
    return await request.app.state.verifier.user_or_none(token)


def get_filter_spec(
    q: Optional[str] = None,
    age: Optional[str] = None,
    max_price: Optional[str] = None,
    city: Optional[str] = None,
    category: Optional[str] = None,
    after_care: Optional[str] = None,
) -> FilterSpec:
    return FilterSpec.from_params(q, age, max_price, city, category, after_care)


async def load_categories(cache: RecordCache, camps: Optional[List[Camp]] = None) -> List[Category]:
    """
    Categories table, or categories derived from camps when the table is empty
    """
    categories = await cache.get_categories()
    if categories:
        return categories
    if camps is None:
        camps = await cache.get_camps()
    return derive_categories(camps)


def camp_to_dict(camp: Camp) -> Dict[str, Any]:
    data = camp.model_dump()
    data["registration_status"] = compute_registration_status(camp).value
    data["registration_date"] = format_registration_date(
        camp.registration_opens_date, camp.registration_opens_time
    )
    return data


# --- Proxy routes ---


@router.get("/api/airtable")
async def airtable_proxy(
    request: Request,
    table: Optional[str] = None,
    offset: Optional[str] = None,
    settings: Settings = Depends(get_settings),
):
    """
    Every record of an allowed table, all pages gathered server-side
    """
    client: Optional[AirtableClient] = request.app.state.airtable
    if client is None or not settings.airtable_configured:
        return error_response(500, "Server configuration error")

    table = table or CAMPS_TABLE
    if table not in ALLOWED_TABLES:
        return error_response(400, "Invalid table name")

    try:
        records = await client.list_records(table, offset)
        return {"records": records}
    except AirtableError as e:
        return error_response(e.status_code, f"Airtable API error: {e.status_code}")
    except Exception as e:
        logger.error(f"Error proxying {table}: {e}")
        return error_response(500, "Internal server error")


@router.post("/api/feedback")
async def post_feedback(request: Request):
    """
    Record a 1-5 rating with optional suggestions and page
    """
    client: Optional[AirtableClient] = request.app.state.airtable
    if client is None:
        return error_response(500, "Server configuration error")

    try:
        body = await request.json()
    except ValueError:
        return error_response(400, "Request body must be JSON")

    try:
        feedback = validate_feedback(body)
    except FeedbackValidationError as e:
        return error_response(400, str(e))

    try:
        record = await submit_feedback(client, feedback)
        return {"success": True, "record": record}
    except AirtableError as e:
        return error_response(e.status_code, f"Airtable API error: {e.status_code} - {e.detail}")
    except Exception as e:
        logger.error(f"Error submitting feedback: {e}")
        return error_response(500, "Internal server error")


@router.get("/api/auth-verify")
async def auth_verify(request: Request, authorization: Optional[str] = Header(default=None)):
    token = bearer_token(authorization)
    if token is None:
        return error_response(401, "Missing or invalid Authorization header")

    verifier: TokenVerifier = request.app.state.verifier
    if not verifier.configured:
        return error_response(500, "Server configuration error")

    try:
        user = await verifier.verify(token)
    except TokenVerificationError:
        return error_response(401, "Invalid or expired token")
    return {"valid": True, "sub": user.sub, "email": user.email, "role": user.role}


# --- Camp JSON API ---


@router.get("/api/camps")
async def list_camps(
    spec: FilterSpec = Depends(get_filter_spec),
    cache: RecordCache = Depends(get_cache),
):
    camps = filter_camps(await cache.get_camps(), spec)
    return [camp_to_dict(camp) for camp in camps]


@router.get("/api/camps/{camp_id}")
async def get_camp(camp_id: str, cache: RecordCache = Depends(get_cache)):
    try:
        camp = await cache.get_camp(camp_id)
        if not camp:
            raise HTTPException(status_code=404, detail="Camp not found")
        return camp_to_dict(camp)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching camp {camp_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/api/categories")
async def list_categories(cache: RecordCache = Depends(get_cache)):
    categories = await load_categories(cache)
    return [category.model_dump() for category in categories]


@router.get("/api/cities")
async def list_cities(cache: RecordCache = Depends(get_cache)):
    return unique_cities(await cache.get_camps())


@router.get("/api/favorites")
async def list_favorites(
    user: Optional[AuthenticatedUser] = Depends(get_current_user),
    favorites: FavoritesService = Depends(get_favorites),
):
    if user is None:
        return JSONResponse(status_code=401, content={"success": False, "camp_ids": []})
    return {"success": True, "camp_ids": await favorites.list_camp_ids(user)}


@router.post("/api/favorites/{camp_id}")
async def add_favorite(
    camp_id: str,
    user: Optional[AuthenticatedUser] = Depends(get_current_user),
    favorites: FavoritesService = Depends(get_favorites),
):
    ok = await favorites.add(user, camp_id)
    if not ok:
        return JSONResponse(status_code=401 if user is None else 500, content={"success": False})
    return {"success": True}


@router.delete("/api/favorites/{camp_id}")
async def remove_favorite(
    camp_id: str,
    user: Optional[AuthenticatedUser] = Depends(get_current_user),
    favorites: FavoritesService = Depends(get_favorites),
):
    ok = await favorites.remove(user, camp_id)
    if not ok:
        return JSONResponse(status_code=401 if user is None else 500, content={"success": False})
    return {"success": True}


@router.get("/health")
async def health_check():
    """
    Health check endpoint
    """
    return {"status": "healthy", "message": "API is running"}


# --- Pages ---


@router.get("/", response_class=HTMLResponse)
async def homepage(
    cache: RecordCache = Depends(get_cache),
    user: Optional[AuthenticatedUser] = Depends(get_current_user),
):
    camps = await cache.get_camps()
    categories = await load_categories(cache, camps)
    return render.render_homepage(camp_stats(camps), categories, featured_camps(camps), user)


@router.get("/browse", response_class=HTMLResponse)
async def browse(
    spec: FilterSpec = Depends(get_filter_spec),
    cache: RecordCache = Depends(get_cache),
    user: Optional[AuthenticatedUser] = Depends(get_current_user),
):
    camps = await cache.get_camps()
    return render.render_browse_page(
        filter_camps(camps, spec), spec, unique_cities(camps), unique_categories(camps), user
    )


@router.get("/camps/{camp_id}", response_class=HTMLResponse)
async def camp_detail(
    camp_id: str,
    cache: RecordCache = Depends(get_cache),
    user: Optional[AuthenticatedUser] = Depends(get_current_user),
    favorites: FavoritesService = Depends(get_favorites),
):
    camp = await cache.get_camp(camp_id)
    if camp is None:
        page = render.render_camp_not_found(
            "This camp may have been removed. Please go back to Browse and try again.", user
        )
        return HTMLResponse(page, status_code=404)
    is_saved = await favorites.is_favorite(user, camp_id)
    return render.render_camp_detail(camp, is_saved=is_saved, user=user)


@router.get("/favorites", response_class=HTMLResponse)
async def favorites_page(
    cache: RecordCache = Depends(get_cache),
    user: Optional[AuthenticatedUser] = Depends(get_current_user),
    favorites: FavoritesService = Depends(get_favorites),
):
    saved_ids = await favorites.list_camp_ids(user)
    camps_by_id = {camp.id: camp for camp in await cache.get_camps()} if saved_ids else {}
    return render.render_favorites_page(user, saved_ids, camps_by_id)


def _back_to(request: Request, fallback: str) -> str:
    referer = request.headers.get("referer")
    base = str(request.base_url)
    if referer and referer.startswith(base):
        return render.local_path("/" + referer[len(base):], fallback)
    return fallback


@router.post("/favorites/{camp_id}/{action}")
async def toggle_favorite(
    camp_id: str,
    action: str,
    request: Request,
    user: Optional[AuthenticatedUser] = Depends(get_current_user),
    favorites: FavoritesService = Depends(get_favorites),
):
    """
    Form target for the add/remove buttons on cards and detail pages
    """
    if action not in ("add", "remove"):
        raise HTTPException(status_code=404, detail="Not found")
    back = _back_to(request, f"/camps/{camp_id}")
    if user is None:
        return RedirectResponse(render.login_href(back), status_code=303)

    if action == "add":
        await favorites.add(user, camp_id)
    else:
        await favorites.remove(user, camp_id)
    return RedirectResponse(back, status_code=303)


@router.get("/login", response_class=HTMLResponse)
async def login(request: Request, settings: Settings = Depends(get_settings)):
    redirect_to = request.query_params.get("redirectTo")
    urls = render.oauth_authorize_urls(settings.supabase_url, settings.site_url, redirect_to)
    return render.render_login_page(urls)


@router.get("/auth/callback", response_class=HTMLResponse)
async def auth_callback(request: Request):
    redirect_to = request.query_params.get("redirectTo") or "/"
    return render.render_auth_callback(redirect_to, ACCESS_TOKEN_COOKIE)


@router.get("/logout")
async def logout():
    response = RedirectResponse("/", status_code=303)
    response.delete_cookie(ACCESS_TOKEN_COOKIE, path="/")
    return response


# --- Application ---


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db(app.state.engine)

    scheduler = None
    if app.state.settings.cache_refresh_hours > 0:
        scheduler = setup_scheduler(app.state.cache, app.state.settings.cache_refresh_hours)

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
    await app.state.source.close()
    if app.state.airtable is not None and app.state.airtable is not app.state.source:
        await app.state.airtable.close()
    await app.state.verifier.close()
    await app.state.engine.dispose()


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the application and everything it owns. ``transport`` replaces the
    network for every outbound httpx client.
    """
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="CampFinder",
        description="Summer camp directory with Airtable, feedback and auth proxies",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    airtable = None
    if settings.airtable_configured:
        airtable = AirtableClient(settings.airtable_api_key, settings.airtable_base_id, transport=transport)

    if settings.airtable_proxy_url:
        source = ProxyClient(settings.airtable_proxy_url, transport=transport)
    elif airtable is not None:
        source = airtable
    else:
        logger.warning("Airtable is not configured; camp listings will be empty")
        source = UnconfiguredSource()

    engine = create_engine(settings.db_url)

    app.state.settings = settings
    app.state.airtable = airtable
    app.state.source = source
    app.state.cache = RecordCache(source)
    app.state.verifier = TokenVerifier(
        settings.supabase_url, settings.jwt_algorithms, settings.jwt_audience, transport=transport
    )
    app.state.engine = engine
    app.state.favorites = FavoritesService(create_session_factory(engine))

    app.include_router(router)
    return app


def start_api():
    """
    Start the API server
    """
    logger.info(f"Starting API server at {API_HOST}:{API_PORT}")

    uvicorn.run(
        "campfinder.api.endpoints:create_app",
        factory=True,
        host=API_HOST,
        port=API_PORT,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    start_api()

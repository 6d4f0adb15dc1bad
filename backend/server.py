"""
Lead Suite - API Backend
Uploaders soumettent, receivers traitent, admins pilotent la distribution.

Démarre avec:
    uvicorn server:app --host 0.0.0.0 --port 8001 --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from config import CORS_ORIGINS, close_client, get_db
from errors import ApiError
from models.indexes import ensure_indexes
from routes.deps import load_session_claims
from services import area_guard

# Configuration logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("lead_suite")

# Créer l'app
app = FastAPI(
    title="Lead Suite",
    description="Distribution de leads multi-company",
    version="1.0.0"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== ERREURS ====================
# Toutes les erreurs sortent en {"error": "<message>"}

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Bad request") if errors else "Bad request"
    return JSONResponse({"error": message}, status_code=400)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse({"error": "Server error"}, status_code=500)


# ==================== AREA GUARD (pages dashboard) ====================

def _request_db(request: Request):
    provider = request.app.dependency_overrides.get(get_db, get_db)
    return provider()


@app.middleware("http")
async def dashboard_area_guard(request: Request, call_next):
    path = request.url.path
    if not area_guard.is_guarded_path(path):
        return await call_next(request)

    try:
        claims = await load_session_claims(request, _request_db(request))
    except ApiError:
        claims = None

    target = area_guard.evaluate(path, request.url.query, claims)
    if target:
        logger.info(f"[AREA_GUARD] {path} → {target}")
        return RedirectResponse(target, status_code=307)
    return await call_next(request)


# ==================== IMPORT DES ROUTES ====================

from routes import auth, leads, admin, users, screenshots, products, company_products, dashboard  # noqa: E402

# Routes avec préfixe /api
app.include_router(auth.router, prefix="/api")
app.include_router(leads.router, prefix="/api")
app.include_router(admin.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(screenshots.router, prefix="/api")
app.include_router(products.router, prefix="/api")
app.include_router(company_products.router, prefix="/api")
app.include_router(dashboard.router, prefix="/api")


# ==================== ROUTE RACINE ====================

@app.get("/api/")
async def root():
    return {
        "name": "Lead Suite API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


# ==================== STARTUP / SHUTDOWN ====================

@app.on_event("startup")
async def startup():
    logger.info("🚀 Lead Suite démarré")
    await ensure_indexes(get_db())


@app.on_event("shutdown")
async def shutdown_db_client():
    close_client()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)

# src/app.py
import logging
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from routes.auth import router as auth_router
from routes.funnel import router as funnel_router
from routes.purchases import router as purchases_router
from routes.profiles import buyers, developer
from routes.property import property

from config.db import engine, SessionLocal
from config.settings import CORS_ORIGINS, LOG_LEVEL, TERANGA_DEV_CREATE_SCHEMA, TERANGA_SEED_COUNTRIES
from model.base import Base
from model.property.property import Country
from src.errors import TerangaError
from src.profile_service import COUNTRY_NAMES
from src.route_helpers import to_http_exception

from model import load_all_models
load_all_models()

logger = logging.getLogger(__name__)


app = FastAPI(title="Teranga API", version="1.0.0")

def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Teranga API",
        version="1.0.0",
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {}).setdefault("securitySchemes", {})["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }
    # Apply globally so all operations require Bearer unless overridden
    openapi_schema["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema
app.openapi = custom_openapi

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger.info("Teranga API starting…")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

app.include_router(auth_router, prefix="/v1/auth", tags=["Authentication"])
app.include_router(property.router)              # /v1/properties
app.include_router(property.favorites_router)    # /v1/favorites
app.include_router(property.countries_router)    # /v1/countries
app.include_router(funnel_router)                # /v1/funnel
app.include_router(purchases_router)             # /v1/purchases
app.include_router(buyers.router)                # /v1/profile
app.include_router(developer.router)             # /v1/developers


# --- Exception handlers and security headers ---
def jsonable_errors(exc: RequestValidationError):
    # ctx may carry exception instances that are not JSON serializable
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=422, content={
        "code": "validation_error",
        "message": "Invalid request",
        "errors": jsonable_errors(exc),
    })

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    # 4xx/5xx raised intentionally in code
    level = logging.WARNING if 400 <= exc.status_code < 500 else logging.ERROR
    logger.log(level, "HTTPException %s on %s %s: %s", exc.status_code, request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": "http_error", "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(TerangaError)
async def domain_exception_handler(request: Request, exc: TerangaError):
    return await http_exception_handler(request, to_http_exception(exc))

@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Data store failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={
        "code": "database_error",
        "message": "Une erreur est survenue. Veuillez réessayer.",
    })

@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    return response


def seed_countries(db) -> None:
    """Insert the marketplace countries that are missing."""
    existing = set(db.scalars(select(Country.code)).all())
    for code, name in COUNTRY_NAMES.items():
        if code not in existing:
            db.add(Country(code=code, name=name))
    db.commit()


# NOTE: FastAPI recommends lifespan context for newer apps; startup event is fine for dev.
@app.on_event("startup")
def _startup():
    # Optionally ensure schema in dev if explicitly enabled (prefer Alembic normally)
    if TERANGA_DEV_CREATE_SCHEMA:
        Base.metadata.create_all(engine)
        logger.info("DB metadata ensured via SQLAlchemy (dev mode).")
    else:
        logger.info("Skipping Base.metadata.create_all(); use Alembic migrations for schema.")

    # Optionally seed countries (only if tables are present)
    if TERANGA_SEED_COUNTRIES:
        db = SessionLocal()
        try:
            seed_countries(db)
            logger.info("Countries seeded (if missing): %s", sorted(COUNTRY_NAMES))
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Skipping country seeding; likely tables not present yet: %s", e)
        finally:
            db.close()

# Optional quick health route
@app.get("/health")
def health():
    return {"ok": True}

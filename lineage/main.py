from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from lineage.core import config
from lineage.core.database.engine import init_db
from lineage.core.errors import LineageError
from lineage.features.permissions.cache import PermissionCache
from lineage.features.users.routes import router as user_router
from lineage.features.trees.routes import router as tree_router
from lineage.features.persons.routes import router as person_router
from lineage.features.relationships.routes import router as relationship_router
from lineage.features.permissions.routes import router as permission_router
from lineage.features.users.dependencies import get_authorization_header
from lineage.utils import get_logger


log = get_logger(__name__)
log.info("Initializing server")
app = FastAPI(
    title="Lineage Backend",
    description="Family tree backend with owner, role and attribute based permissions",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)
limiter = Limiter(key_func=get_authorization_header)
app.state.limiter = limiter
app.state.permission_cache = PermissionCache()


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.lineage.features."), timing=timing, tags=tags))


app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
    origins = [config.ALLOW_ORIGIN]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        if key == "__root__":
            key = "root"
        errors[key] = error["msg"]
    log.info("Request validation error %s", errors)
    return JSONResponse(status_code=400, content=jsonable_encoder(errors))


@app.exception_handler(LineageError)
async def lineage_error_handler(_request: Request, exc: LineageError):
    log.info("%s: %s", type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"error": "You are going too fast"}, status_code=429)


@app.on_event("startup")
async def startup():
    """Initialize database on application startup."""
    log.info("Initializing database...")
    await init_db()
    log.info("Database initialized successfully")


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": "Lineage Backend API",
        "version": "0.1.0",
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": {
            "info": "Protected endpoints require Bearer token in Authorization header",
            "protected_endpoints": [
                "/users/me", "/trees/*", "/persons/*", "/relationships/*", "/permissions/*"
            ],
            "public_endpoints": ["/", "/health"]
        },
        "features": {
            "permissions": "Owner-only, role based and attribute based checks per tree, with caching",
            "trees": "Family trees with public visibility and collaborators",
            "persons": "Persons within a tree",
            "relationships": "Parent, spouse and sibling links with cycle detection",
            "users": "Bearer token authentication"
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(user_router, prefix="/users", tags=["users"])
# Alias for singular form (if frontend uses /user/me)
app.include_router(user_router, prefix="/user", tags=["users"], include_in_schema=False)

# Tree and collaborator routes
app.include_router(tree_router, prefix="/trees", tags=["trees"])

# Person routes (tree-scoped listing and creation live under /trees/{tree_id}/persons)
app.include_router(person_router, tags=["persons"])

# Relationship routes
app.include_router(relationship_router, tags=["relationships"])

# Permission routes (checks, capabilities, audit trail)
app.include_router(permission_router, prefix="/permissions", tags=["permissions"])

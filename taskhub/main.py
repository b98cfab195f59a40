from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from taskhub.core import config
from taskhub.core.database.engine import AsyncSessionLocal, init_db
from taskhub.core.exceptions import TeamAccessError
from taskhub.core.rate_limit import limiter
from taskhub.features.users.routes import router as user_router
from taskhub.features.teams.routes import router as team_router
from taskhub.features.members.routes import router as member_router
from taskhub.features.permissions.routes import router as permission_router
from taskhub.features.permissions.bootstrap import run_bootstrap
from taskhub.utils import get_logger


log = get_logger(__name__)
log.info("Initializing server")
app = FastAPI(
    title="TaskHub Teams",
    description="Team membership, roles and permissions API",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)
app.state.limiter = limiter


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.taskhub.features."), timing=timing, tags=tags))


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


@app.exception_handler(TeamAccessError)
async def team_access_exception_handler(_request: Request, exc: TeamAccessError):
    log.info("Team access error %s: %s", exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.message})


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"error": "You are going too fast"}, status_code=429)


@app.on_event("startup")
async def startup():
    """Initialize database on application startup."""
    log.info("Initializing database...")
    await init_db()
    log.info("Database initialized successfully")

    if config.BOOTSTRAP_ON_STARTUP:
        log.info("Bootstrapping team permissions and roles...")
        async with AsyncSessionLocal() as db:
            await run_bootstrap(db)


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": "TaskHub Teams API",
        "version": "0.1.0",
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": {
            "info": "Protected endpoints require Bearer token in Authorization header",
            "protected_endpoints": ["/users/me", "/teams/*"],
            "public_endpoints": ["/", "/health"]
        },
        "features": {
            "teams": "Teams with a single owner and a current-team switch",
            "members": "Team membership with one role per member",
            "permissions": "Team-scoped RBAC with global and team-private roles"
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(user_router, prefix="/users", tags=["users"])

# Team routes
app.include_router(team_router, prefix="/teams", tags=["teams"])

# Team-scoped member and role routes
app.include_router(member_router, prefix="/teams/{slug}", tags=["members"])
app.include_router(permission_router, prefix="/teams/{slug}", tags=["permissions"])

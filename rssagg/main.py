from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import timedelta
from sqlalchemy.exc import SQLAlchemyError
import logging

from rssagg.api import auth, feeds, posts
from rssagg.core.config import settings
from rssagg.core.database import AsyncSessionLocal, engine, init_db
from rssagg.services.feed_poller import FeedPoller
from rssagg.services.session_issuer import SessionIssuer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for the FastAPI app"""
    # Startup
    logger.info("Starting RSS aggregator API")

    # Unreachable database is fatal
    await init_db()

    app.state.session_issuer = SessionIssuer(
        settings.JWT_SECRET,
        ttl=timedelta(hours=settings.TOKEN_TTL_HOURS),
    )

    poller = FeedPoller(AsyncSessionLocal)
    app.state.feed_poller = poller
    poller.start()

    yield

    # Shutdown
    logger.info("Shutting down RSS aggregator API")
    await poller.shutdown()
    await engine.dispose()


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and path parameters are plain 400s"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app(lifespan=lifespan) -> FastAPI:
    app = FastAPI(
        title="RSS Aggregator API",
        description="""
## Multi-user RSS Aggregator

Users register, log in, subscribe to feed URLs, and read the newest posts
from all of their feeds in one list.

### Features

* **Accounts**: Registration and login with bcrypt-hashed passwords
* **Sessions**: Signed 24-hour session token in an HTTP-only `token` cookie
* **Feeds**: Add, list, and delete feed subscriptions
* **Posts**: Newest 50 posts across all of a user's feeds
* **Background Poller**: Every feed is polled every 30 minutes, and right after a feed is added

### Authentication

Call `POST /login`; every endpoint except `/register`, `/login`, `/logout`
and `/health` requires the resulting cookie.
        """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {
                "name": "Auth",
                "description": "Registration, login, logout and session checks."
            },
            {
                "name": "Feeds",
                "description": "Operations for managing the authenticated user's feed subscriptions."
            },
            {
                "name": "Posts",
                "description": "Posts ingested from the user's feeds."
            }
        ]
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,  # Frontend URLs
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Authorization", "Content-Type", "X-CSRF-Token"],
        expose_headers=["Link"],
        max_age=300,
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)

    # Include routers
    app.include_router(auth.router)
    app.include_router(feeds.router)
    app.include_router(posts.router)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "RSS Aggregator API",
            "version": "1.0.0",
            "docs": "/docs"
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    return app


app = create_app()


def run():
    """Console entry point"""
    import uvicorn

    uvicorn.run("rssagg.main:app", host="0.0.0.0", port=8000)

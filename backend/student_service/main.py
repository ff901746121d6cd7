"""
Student Record Service - FastAPI Application Entry Point.

This is the main application module that:
1. Builds the FastAPI app with CORS middleware (``create_app``)
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Connects the record store before serving and attaches it to the app
5. Registers the student routes, the health check and the error handlers

The application follows a modular architecture:
- routes/: API endpoint handlers
- models/: SQLAlchemy ORM models
- services/: persistence adapter over the store
- errors.py: error taxonomy and JSON error bodies
- logging_config.py: Structured logging configuration
- database.py: Store handle and session management
"""

import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from student_service.config import Settings
from student_service.database import Store, connect_store
from student_service.errors import register_exception_handlers
from student_service.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from student_service.routes import students

logger = get_logger("http")


def create_app(settings: Settings = None, store: Store = None) -> FastAPI:
    """
    Create and configure the application.

    Args:
        settings: Runtime configuration; read from the environment when omitted
        store: An already connected store handle. When omitted, the store is
            connected from ``settings.database_url`` during startup, and a
            connection failure aborts startup.
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ---------------- STARTUP ----------------
        owns_store = store is None
        app.state.store = connect_store(settings.database_url) if owns_store else store
        app.state.store.create_tables()
        log_with_context(logger, "INFO", "Student record service ready",
                         extra_data={"health": "/api/health"})
        yield
        # ---------------- SHUTDOWN ----------------
        if owns_store:
            app.state.store.close()

    app = FastAPI(
        title="Student Record Service",
        description="CRUD API for student records: name, address, city, state, email and phone.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # ──────────────────────────────────────────────────────────
    # CORS Middleware
    # ──────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"]
    )

    # ──────────────────────────────────────────────────────────
    # Request ID Middleware
    #
    # Generates a unique UUID per incoming request and:
    # 1. Stores it in a context variable (available to all log entries)
    # 2. Returns it in the X-Request-ID response header
    # 3. Logs request start/end with latency measurement
    # ──────────────────────────────────────────────────────────
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        req_id = generate_request_id()
        request_id_var.set(req_id)
        start_time = time.time()

        log_with_context(logger, "INFO",
            f"Request started: {request.method} {request.url.path}",
            context={"request_id": req_id},
            extra_data={
                "ip": request.client.host if request.client else "unknown",
                "user_agent": request.headers.get("user-agent", ""),
            })

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        response.headers["X-Request-ID"] = req_id

        log_with_context(logger, "INFO",
            f"Request completed: {request.method} {request.url.path} → {response.status_code}",
            context={"request_id": req_id},
            extra_data={
                "duration_ms": round(duration_ms, 2),
                "status_code": response.status_code
            })

        return response

    register_exception_handlers(app)

    app.include_router(students.router, prefix="/api", tags=["Students"])

    @app.get("/api/health", tags=["Health"])
    def health_check():
        """Liveness probe for monitoring. Does not touch the store."""
        return {"message": "Server is running successfully"}

    return app


app = create_app()

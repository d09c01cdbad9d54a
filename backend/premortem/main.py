import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .pipeline.orchestrator import PremortemPipeline
from .routers.analyze import router as analyze_router
from .routers.graveyard import router as graveyard_router
from .services.failure_store import FailedStartupStore
from .services.perplexity_client import PerplexityClient


# Load environment variables from .env file
load_dotenv()

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:3001"


@asynccontextmanager
async def lifespan(app: FastAPI):

    # Startup: one client (cache + key rotation) and one store per process
    client = PerplexityClient()
    store = FailedStartupStore()
    app.state.client = client
    app.state.store = store
    app.state.pipeline = PremortemPipeline(client=client, store=store)

    print("Starting Premortem Analysis Service")
    print(f"   Perplexity Keys: {f' {client.key_count} configured' if client.key_count else ' Not set (local analysis only)'}")
    print(f"   Model:           {client.model}")
    print(f"   Graveyard Key:   {' Configured' if store.api_key else ' Not set (no historical data)'}")
    print("   Ready to run premortems!")

    yield

    print("Shutting down Premortem Analysis Service")


app = FastAPI(
    title="Startup Premortem Analysis Service",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")
        if origin.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(analyze_router)
app.include_router(graveyard_router)


@app.get(
    "/",
    summary="API Root",
    description="Welcome endpoint with API information",
    tags=["General"]
)
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Startup Premortem",
        "version": __version__,
        "description": "Failure-risk analysis for startup ideas",
        "docs": "/docs",
        "endpoints": {
            "analyze": "POST /api/analyze - Run a premortem on a startup idea",
            "rerun": "POST /api/analyze/rerun - Re-run a report from a stage",
            "graveyard": "GET /api/graveyard - Browse failed startups",
            "health": "GET /health - Service health check"
        }
    }


@app.get(
    "/health",
    summary="Global Health Check",
    description="Check if the API server is running",
    tags=["General"]
)
async def health():
    """Global health check endpoint."""
    return {
        "status": "healthy",
        "service": "startup-premortem",
        "version": __version__
    }


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "detail": str(exc) if os.getenv("DEBUG", "false").lower() == "true" else "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "premortem.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("DEBUG", "false").lower() == "true",
    )

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from tags import tags_metadata
from app.api.crawler.routes import crawler_api

APP_VERSION = "1.0.0"


def create_app() -> FastAPI:
    app = FastAPI(
        title="Product URL Discovery Crawler",
        description="Crawls e-commerce domains for product pages and streams per-domain progress as JSON lines.",
        openapi_tags=tags_metadata,
        version=APP_VERSION,
    )
    # browsers read the job id from the streaming response to stop or download a job
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Job-Id"],
    )

    @app.get('/health', tags=["health"])
    async def health():
        return {"status": "ok", "version": APP_VERSION}

    app.include_router(crawler_api, prefix='/api/crawler', tags=["crawler"])

    return app

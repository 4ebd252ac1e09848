"""FastAPI application entrypoint: settings, middleware, routers and error handlers."""

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.v1 import router as v1_router
from app.core.config import Settings, settings


def create_app(app_settings: Settings = settings) -> FastAPI:
    """Build the API app; signup, profile and room errors map to HTTP via register_error_handlers."""
    application = FastAPI(
        title=f"{app_settings.APP_NAME} API",
        version="0.1.0",
        debug=app_settings.DEBUG,
        docs_url="/docs" if app_settings.APP_ENV == "dev" else None,
        redoc_url="/redoc" if app_settings.APP_ENV == "dev" else None,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if app_settings.APP_ENV == "dev" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(application)
    application.include_router(v1_router, prefix=app_settings.API_V1_PREFIX)

    @application.get("/")
    def root() -> dict[str, str]:
        return {"service": app_settings.APP_NAME, "api": app_settings.API_V1_PREFIX}

    return application


app = create_app()

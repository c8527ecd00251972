"""
EMI Engine API Application Factory
"""

from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .emis import router as emis_router
from .payments import router as payments_router
from .reports import router as reports_router
from .dependencies import EmiSystem, get_emi_system
from ..config import get_config
from ..logging_config import setup_logging, get_logger


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="EMI Engine API",
        description="Installment loan repayment engine: EMI schedules, payments, late fees and overdue tracking",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(emis_router, prefix="/emis", tags=["EMIs"])
    app.include_router(payments_router, prefix="/payments", tags=["Payments"])
    app.include_router(reports_router, prefix="/reports", tags=["Reports"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "emi_engine_api",
            "version": "1.0.0"
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "EMI Engine API",
            "version": "1.0.0",
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "emis": "/emis",
                "payments": "/payments",
                "reports": "/reports",
            }
        }

    return app


app = create_app()


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server with the overdue sweep timer"""
    config = get_config()
    setup_logging(
        level="DEBUG" if debug else config.log_level,
        log_format=config.log_format,
        log_file=config.log_file
    )
    logger = get_logger("emi.api")

    system = get_emi_system()
    if config.enable_scheduler:
        system.scheduler.start()

    try:
        uvicorn.run(
            app,
            host=host or config.api_host,
            port=port or config.api_port,
            log_level="debug" if debug else "info"
        )
    finally:
        logger.info("Shutting down EMI engine")
        system.close()


__all__ = ["create_app", "app", "run_server", "EmiSystem", "get_emi_system"]

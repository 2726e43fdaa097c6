"""
Intergalactic Bank API Application Factory
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import BankConfig, get_config
from ..logging_config import setup_logging
from .accounts import router as accounts_router
from .admin import router as admin_router
from .auth import BankingSystem
from .errors import ApiError, register_error_handlers
from .transactions import router as transactions_router


__all__ = ["ApiError", "BankingSystem", "create_app", "run_server"]


def create_app(system: Optional[BankingSystem] = None,
               config: Optional[BankConfig] = None) -> FastAPI:
    """
    Create and configure the FastAPI application

    Args:
        system: Prepared banking system; built from config (and closed on
            shutdown) when omitted
        config: Settings to use instead of the environment
    """
    config = config or (system.config if system is not None else get_config())
    owns_system = system is None
    if owns_system:
        setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
        system = BankingSystem.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_system:
            app.state.banking_system.close()

    app = FastAPI(
        title="Intergalactic Bank API",
        description="Toy banking API with atomic transfers between accounts",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.banking_system = system

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Include routers
    app.include_router(admin_router, prefix=config.api_prefix, tags=["Auth"])
    app.include_router(accounts_router, prefix=f"{config.api_prefix}/accounts", tags=["Accounts"])
    app.include_router(transactions_router, prefix=f"{config.api_prefix}/transactions", tags=["Transactions"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "galactic_bank_api",
            "version": __version__
        }

    # Root endpoint
    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Intergalactic Bank API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "auth": f"{config.api_prefix}/auth",
                "accounts": f"{config.api_prefix}/accounts",
                "transactions": f"{config.api_prefix}/transactions",
            }
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    uvicorn.run(
        "galactic_bank.api:create_app",
        factory=True,
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level=config.log_level.lower()
    )

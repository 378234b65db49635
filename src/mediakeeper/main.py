"""FastAPI application factory.

Run with:  uvicorn mediakeeper.main:app
"""

from fastapi import FastAPI

from mediakeeper.api import api_router
from mediakeeper.api.exception_handlers import register_exception_handlers
from mediakeeper.config import Settings
from mediakeeper.domain.ports import ILibraryCatalog, ILibraryMaintenance
from mediakeeper.infrastructure.lifecycle import lifespan


def create_app(
    settings: Settings | None = None,
    catalog: ILibraryCatalog | None = None,
    maintenance: ILibraryMaintenance | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Settings override (get_settings() when None)
        catalog: Library catalog collaborator (enables search/monitor tasks)
        maintenance: Library maintenance collaborator (enables scan/cleanup/backup tasks)
    """
    app = FastAPI(title="mediakeeper", lifespan=lifespan)
    app.state.settings = settings
    app.state.catalog = catalog
    app.state.maintenance = maintenance

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

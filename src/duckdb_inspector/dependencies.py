"""FastAPI dependencies.

The service object lives on ``app.state.service``; handlers get it through
``ServiceDep`` rather than importing a global:

    @router.get("/api/tables")
    def list_tables(service: ServiceDep):
        ...
"""

from typing import Annotated

from fastapi import Depends, Request

from duckdb_inspector.service import InspectorService


def get_service(request: Request) -> InspectorService:
    """Return the service instance bound to the running application."""
    return request.app.state.service


ServiceDep = Annotated[InspectorService, Depends(get_service)]

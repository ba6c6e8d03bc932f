"""
System API endpoints.
"""

from django.db import connection
from django.db.utils import DatabaseError
from ninja import Router
from pydantic import BaseModel, Field

router = Router()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service health status")
    database: str = Field(..., description="Database connection status")


@router.get("/health", response=HealthResponse)
def health_check(request):
    """
    Health check endpoint for load balancers.

    Verifies the service is running and can connect to the database.
    """
    db_status = "ok"
    try:
        connection.ensure_connection()
    except DatabaseError:
        db_status = "error"

    return HealthResponse(status="ok", database=db_status)

"""
Health check endpoints
"""

from fastapi import APIRouter
from hubcontext.core.database import get_supabase_service

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "hub-context-api"}


@router.get("/health/db")
async def database_health_check():
    """Check database connectivity."""
    try:
        supabase = get_supabase_service()
        # Try a simple query to check connectivity
        supabase.table("document_chunks").select("id").limit(1).execute()
        return {
            "status": "healthy",
            "database": "connected",
            "supabase": "ok"
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(e)
        }

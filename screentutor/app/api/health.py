from fastapi import APIRouter

from screentutor.app.domain.schemas import HealthResponse

router = APIRouter()

VERSION = "0.1.0"


@router.get("/health", response_model=HealthResponse)
def health():
    """Constant-time liveness check; does not contact any provider."""
    return {"status": "healthy"}


@router.get("/version")
async def version():
    return {"version": VERSION}

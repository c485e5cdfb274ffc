from fastapi import APIRouter, Request

from relay.dependencies import get_services
from relay.models import HealthResponse, OllamaCheck

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Liveness plus a reachability check of the model backend. Degraded, not failed, when Ollama is down."""
    services = get_services(request)
    client = services.ollama_client
    available = await client.is_available()
    return HealthResponse(
        status="ok" if available else "degraded",
        checks=OllamaCheck(available=available, model=client.model),
        live_sessions=len(services.sessions),
    )

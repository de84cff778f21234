r"""backend\app\api\v1\health.py

Health check endpoints.

These endpoints can be used by orchestrators and load balancers to verify
that the service is running.  A simple GET request to `/api/v1/health`
returns a JSON payload with status information, including whether the
generation service has credentials.
"""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict[str, object]:
    """Return a basic health indicator."""
    client = request.app.state.generation_client
    return {"status": "ok", "generation_configured": bool(getattr(client, "configured", True))}

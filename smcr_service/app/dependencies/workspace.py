from fastapi import Request
import httpx

from smcr_service.app.service.store import SmcrDataStore
from smcr_service.app.service.verification import VerificationRunner


async def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    FastAPI dependency provider for the shared httpx.AsyncClient instance.
    Retrieves the client from the application state (`request.app.state.http_client`).
    """
    return request.app.state.http_client


async def get_store(request: Request) -> SmcrDataStore:
    """The per-application workspace store created at startup."""
    return request.app.state.store


async def get_verification_runner(request: Request) -> VerificationRunner:
    return request.app.state.verification_runner

"""API request / response schemas for the HTTP endpoints.

The websocket protocol speaks ``Event`` frames directly; these thin schemas
only cover the plain HTTP surface (health and client registration).
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    clients: int = Field(0, description="Number of registered subscribers.")


class RegisterResponse(BaseModel):
    """Returned by ``GET /api/register``.

    The client opens a websocket on ``url`` to start receiving events.
    """

    client_id: str
    url: str

"""API routes."""

from cash_custody.api.routes.handovers import router as handovers_router
from cash_custody.api.routes.health import router as health_router
from cash_custody.api.routes.shifts import router as shifts_router
from cash_custody.api.routes.stations import router as stations_router

__all__ = ["handovers_router", "health_router", "shifts_router", "stations_router"]

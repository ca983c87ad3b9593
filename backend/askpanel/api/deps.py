"""Dependency injection for API routes."""
from slowapi import Limiter
from slowapi.util import get_remote_address

from askpanel.services.coordinator import coordinator

# Rate limiter setup
limiter = Limiter(key_func=get_remote_address)


def get_coordinator():
    """Get the process-wide panel coordinator."""
    return coordinator

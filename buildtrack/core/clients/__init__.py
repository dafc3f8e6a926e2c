"""Client project management."""

from .client_manager import (
    ClientManager,
    client_to_dict,
    get_or_create_client,
    is_onboarding_finished,
)

__all__ = ["ClientManager", "client_to_dict", "get_or_create_client", "is_onboarding_finished"]

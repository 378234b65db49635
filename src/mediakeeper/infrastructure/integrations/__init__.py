"""External service integrations."""

from mediakeeper.infrastructure.integrations.prowlarr_client import ProwlarrClient
from mediakeeper.infrastructure.integrations.sabnzbd_client import SabnzbdClient

__all__ = ["ProwlarrClient", "SabnzbdClient"]

"""Gateway module for the remote token store."""

from tokenbook.core.gateway.base import TokenGateway
from tokenbook.core.gateway.factory import get_config, get_gateway, save_config
from tokenbook.core.gateway.http import HttpGateway
from tokenbook.core.gateway.local import LocalGateway

__all__ = [
    "TokenGateway",
    "HttpGateway",
    "LocalGateway",
    "get_gateway",
    "get_config",
    "save_config",
]

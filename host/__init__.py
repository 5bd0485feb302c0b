from holdem.models import TableConfig

from .server import ClientSession, HostServer

__all__ = ["ClientSession", "HostServer", "TableConfig"]

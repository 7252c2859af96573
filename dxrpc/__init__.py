"""XML-RPC values, client and server for asyncio."""

__version__ = "0.1.0"
__all__ = ["client", "demo", "server", "values", "xmlcodec"]
from .connection import ConnectionAdapter, HostConnection

__all__ = ['ConnectionAdapter', 'HostConnection']

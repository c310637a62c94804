from .http_client import HttpClient, TransientHttpError

__all__ = ['HttpClient', 'TransientHttpError']

"""
Storage module: session store, answer blob storage and auth collaborators.
"""

from .base import SessionStore, BlobStorage, AuthProvider, answer_path
from .memory import InMemorySessionStore, InMemoryBlobStorage, StaticAuthProvider
from .rest import BackendClient, RestSessionStore, RestBlobStorage, TokenAuthProvider

__all__ = [
    'SessionStore',
    'BlobStorage',
    'AuthProvider',
    'answer_path',
    'InMemorySessionStore',
    'InMemoryBlobStorage',
    'StaticAuthProvider',
    'BackendClient',
    'RestSessionStore',
    'RestBlobStorage',
    'TokenAuthProvider',
]

"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from advent_backend.auth import AuthClient, InMemoryAuthClient, SupabaseAuthClient
from advent_backend.config import get_settings
from advent_backend.db import DbClient, InMemoryDbClient, SqlDbClient
from advent_backend.kv import InMemoryKvStore, KvStore, RedisKvStore
from advent_backend.notifications import FirebasePushSender, InMemoryPushSender, PushSender
from advent_backend.storage import InMemoryStorageClient, S3StorageClient, StorageClient

_db_client: DbClient | None = None
_kv_store: KvStore | None = None
_storage_client: StorageClient | None = None
_auth_client: AuthClient | None = None
_push_sender: PushSender | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so connections are pooled across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = SqlDbClient(settings.database_url)
    return _db_client


def get_kv_store() -> KvStore:
    """
    Return a singleton key-value store for chat session documents.
    """
    global _kv_store
    if _kv_store:
        return _kv_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.redis_url:
        _kv_store = InMemoryKvStore()
    else:
        _kv_store = RedisKvStore(url=settings.redis_url, key_prefix=settings.kv_key_prefix)
    return _kv_store


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_endpoint:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            region=settings.storage_region or "",
            endpoint=settings.storage_endpoint,
            access_key_id=settings.storage_access_key_id or "",
            secret_access_key=settings.storage_secret_access_key or "",
        )
    return _storage_client


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client:
        return _auth_client

    settings = get_settings()
    if (
        settings.use_in_memory_backends
        or not settings.supabase_url
        or not settings.supabase_service_role_key
    ):
        _auth_client = InMemoryAuthClient()
    else:
        _auth_client = SupabaseAuthClient(
            url=settings.supabase_url,
            service_role_key=settings.supabase_service_role_key,
        )
    return _auth_client


def get_push_sender() -> PushSender:
    global _push_sender
    if _push_sender:
        return _push_sender

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.firebase_credentials:
        _push_sender = InMemoryPushSender()
    else:
        _push_sender = FirebasePushSender(settings.firebase_credentials)
    return _push_sender

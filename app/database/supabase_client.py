from supabase import create_client, acreate_client, Client, AsyncClient
from app.config import settings


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None
    _async_client: AsyncClient = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Use for webhook sync and background jobs."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client or cls.get_client()

    @classmethod
    async def get_async_client(cls) -> AsyncClient:
        """Async client; the only one that can hold Realtime channels."""
        if cls._async_client is None:
            key = settings.supabase_service_role_key or settings.supabase_key
            cls._async_client = await acreate_client(settings.supabase_url, key)
        return cls._async_client

    @classmethod
    def new_session_client(cls) -> Client:
        """Fresh anon client for flows that mutate the client's session (code exchange, sign-in)."""
        return create_client(settings.supabase_url, settings.supabase_key)

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None
        cls._async_client = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_service_supabase() -> Client:
    return SupabaseClient.get_service_client()


def get_session_supabase() -> Client:
    return SupabaseClient.new_session_client()

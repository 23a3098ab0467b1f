"""
Supabase clients. The anon client serves regular queries under RLS; the
service_role client is needed for Auth admin calls (registering and approving
militares, password resets, biometric sessions).

Password and OTP exchanges run on a throwaway client from
new_session_client(): a supabase client that signs a user in adopts that
user's access token for every later query, so the shared clients never sign in.
"""
from supabase import create_client, Client
from supabase.client import ClientOptions
from guardiao.config import settings


def supabase_configured() -> bool:
    return bool(settings.supabase_url and settings.supabase_key)


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            if not supabase_configured():
                raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set")
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Without SUPABASE_SERVICE_ROLE_KEY this is the anon client and Auth admin calls are refused."""
        if not settings.supabase_service_role_key:
            return cls.get_client()
        if cls._service_client is None:
            cls._service_client = create_client(settings.supabase_url, settings.supabase_service_role_key)
        return cls._service_client

    @staticmethod
    def new_session_client() -> Client:
        if not supabase_configured():
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set")
        return create_client(
            settings.supabase_url,
            settings.supabase_key,
            options=ClientOptions(auto_refresh_token=False, persist_session=False)
        )


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_supabase_admin() -> Client:
    return SupabaseClient.get_service_client()


def get_supabase_session() -> Client:
    """One client per request, used only to exchange credentials for a session"""
    return SupabaseClient.new_session_client()

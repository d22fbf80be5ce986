import logging
from typing import Optional

import httpx
from supabase import Client, ClientOptions, create_client

from .config import Settings, get_settings
from .exceptions import ConfigurationError

log = logging.getLogger(__name__)


class SupabaseClientFactory:
    """
    Lazy client factory. The shared service-role client is created on first
    use; services receive it through their constructors.
    """
    _client: Optional[Client] = None

    @staticmethod
    def _credentials(settings: Settings) -> tuple[str, str]:
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise ConfigurationError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")
        return settings.supabase_url, settings.supabase_service_role_key

    @staticmethod
    def _options(settings: Settings) -> ClientOptions:
        # httpx_client carries the timeout for the auth API; PostgREST takes its own
        return ClientOptions(
            httpx_client=httpx.Client(timeout=settings.upstream_timeout_seconds),
            postgrest_client_timeout=settings.upstream_timeout_seconds,
            auto_refresh_token=False,
            persist_session=False,
        )

    @classmethod
    def get_client(cls, settings: Optional[Settings] = None) -> Client:
        if cls._client is None:
            settings = settings or get_settings()
            url, key = cls._credentials(settings)
            log.info("Supabase client for %s", url)
            cls._client = create_client(url, key, options=cls._options(settings))
        return cls._client

    @classmethod
    def new_client(cls, settings: Optional[Settings] = None) -> Client:
        """
        Throwaway client for password sign-in. Signing in stores the user's
        session on the client, which must never happen to the shared one.
        """
        settings = settings or get_settings()
        url, key = cls._credentials(settings)
        return create_client(url, key, options=cls._options(settings))

    @classmethod
    def reset(cls) -> None:
        cls._client = None

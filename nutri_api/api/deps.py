# nutri_api/api/deps.py
from functools import partial

from ..core.config import get_settings
from ..core.supabase_client import SupabaseClientFactory
from ..services.auth_service import AuthService
from ..services.database_service import DatabaseService
from ..services.identity_service import IdentityService


def get_auth_service() -> AuthService:
    settings = get_settings()
    client = SupabaseClientFactory.get_client(settings)
    return AuthService(
        IdentityService(client, sign_in_client=partial(SupabaseClientFactory.new_client, settings)),
        DatabaseService(client),
        page_size=settings.email_scan_page_size,
        max_pages=settings.email_scan_max_pages,
    )

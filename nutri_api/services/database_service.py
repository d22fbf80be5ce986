# nutri_api/services/database_service.py
from typing import Any, Dict, Optional

from supabase import Client, PostgrestAPIError

from ..core.exceptions import DatabaseError
from .upstream import upstream_call

PREFERENCES_TABLE = "preferencias"
ROLES_TABLE = "roles"
PROFILES_TABLE = "perfiles"


def _db_error(operation: str, err: PostgrestAPIError) -> DatabaseError:
    message = getattr(err, "message", None) or str(err)
    return DatabaseError(message, status=getattr(err, "code", None), detail=f"{operation}: {message}", cause=err)


class DatabaseService:
    """
    Repository-style access to the Supabase tables.
    Services must call methods here; no table queries outside.
    """

    def __init__(self, client: Client):
        self.client = client

    # ============ REFERENCE DATA ============
    def select_one_by_code(self, *, table: str, column: str, code: str) -> Optional[Dict[str, Any]]:
        """Single row `column` from `table` where codigo = code, or None when no row matches."""
        try:
            with upstream_call(f"select {table}", DatabaseError):
                resp = (
                    self.client.table(table)
                    .select(column)
                    .eq("codigo", code)
                    .maybe_single()
                    .execute()
                )
        except PostgrestAPIError as err:
            # older postgrest releases report "no row" from maybe_single() as a 204 error
            if str(getattr(err, "code", "")) == "204":
                return None
            raise _db_error(f"select {table}", err) from err

        # some postgrest releases return None instead of an empty response
        row = resp.data if resp is not None else None
        if not row or row.get(column) is None:
            return None
        return row

    # ============ PROFILES ============
    def upsert_profile(
        self,
        *,
        profile_id: str,
        nombre_usuario: str,
        id_rol: Any,
        id_preferencia: Any,
        fecha_creacion: str,
    ) -> Optional[Dict[str, Any]]:
        """Insert-or-replace keyed on id. Every column is written, so an existing row is fully replaced."""
        row = {
            "id": profile_id,
            "nombre_usuario": nombre_usuario,
            "id_rol": id_rol,
            "fecha_creacion": fecha_creacion,
            "id_preferencia": id_preferencia,
        }
        try:
            with upstream_call(f"upsert {PROFILES_TABLE}", DatabaseError):
                resp = self.client.table(PROFILES_TABLE).upsert(row, on_conflict="id").execute()
        except PostgrestAPIError as err:
            raise _db_error(f"upsert {PROFILES_TABLE}", err) from err

        data = resp.data or []
        return data[0] if data else None

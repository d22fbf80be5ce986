import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Type

from ..core.config import DEFAULT_PAGE_SIZE, MAX_SCAN_PAGES
from ..core.exceptions import (
    AuthError,
    DatabaseError,
    EmailLookupError,
    EmailNotConfirmed,
    GenericAuthFailure,
    IdentityCreationError,
    IdentityProviderError,
    InvalidCredentials,
    ProfileUpsertError,
    ReferenceDataError,
    SessionCreationError,
    UpstreamTimeout,
    UserNotFound,
    ValidationError,
)
from .database_service import PREFERENCES_TABLE, ROLES_TABLE, DatabaseService
from .identity_service import IdentityService, SignInResult

log = logging.getLogger(__name__)

# (pattern, error class, user-facing message), tested in order
LOGIN_ERROR_RULES: list[tuple[re.Pattern, Type[AuthError], str]] = [
    (re.compile(r"invalid", re.I), InvalidCredentials, "Credenciales inválidas"),
    (re.compile(r"confirm", re.I), EmailNotConfirmed, "Email no confirmado"),
    (re.compile(r"not.*found|exist", re.I), UserNotFound, "Usuario no existe"),
]
LOGIN_FALLBACK = (GenericAuthFailure, "No se pudo iniciar sesión")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def normalize_email(raw: Any) -> str:
    return _text(raw).strip().lower()


def classify_login_error(message: str, *, code: Any = None) -> AuthError:
    for pattern, error_cls, friendly in LOGIN_ERROR_RULES:
        if pattern.search(message):
            return error_cls(friendly, detail=message, code=code)
    error_cls, friendly = LOGIN_FALLBACK
    return error_cls(friendly, detail=message, code=code)


@dataclass
class RegistrationResult:
    user_id: str
    email: str
    nombre_usuario: str
    profile: Optional[Dict[str, Any]]


@dataclass
class EmailExistence:
    exists: bool
    user_id: Optional[str]


class AuthService:
    """
    Registration, login and email-existence checks on top of the identity
    provider and the profile tables. Every remote call is sequential and
    none is retried.
    """

    def __init__(
        self,
        identity: IdentityService,
        db: DatabaseService,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = MAX_SCAN_PAGES,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.identity = identity
        self.db = db
        self.page_size = page_size
        self.max_pages = max_pages
        self.clock = clock

    # ============ REGISTER ============
    def register(
        self,
        *,
        email: Any,
        password: Any,
        nombre_usuario: Any,
        codigo_preferencia: Any,
        codigo_rol: Any,
    ) -> RegistrationResult:
        fields = {
            "email": email,
            "password": password,
            "nombre_usuario": nombre_usuario,
            "codigo_preferencia": codigo_preferencia,
            "codigo_rol": codigo_rol,
        }
        # passwords are taken as-is, everything else must be non-blank
        missing = [
            name for name, value in fields.items()
            if not (_text(value) if name == "password" else _text(value).strip())
        ]
        if missing:
            raise ValidationError(
                "Faltan campos. Requerido: email, password, nombre_usuario, codigo_preferencia, codigo_rol",
                detail={"missing": missing},
            )

        clean_email = _text(email).strip()
        nombre_usuario = _text(nombre_usuario)

        # 1) identity
        try:
            created = self.identity.create_user(
                email=clean_email,
                password=_text(password),
                metadata={"name": nombre_usuario},
            )
        except IdentityProviderError as e:
            raise IdentityCreationError("No se pudo crear el usuario", detail=e.message, cause=e) from e
        if created is None:
            raise IdentityCreationError("No se obtuvo id del usuario creado")
        log.info("Identity %s created for %s", created.id, clean_email)

        # 2) reference data
        id_preferencia = self._resolve_code(PREFERENCES_TABLE, "id_preferencia", _text(codigo_preferencia), created.id)
        id_rol = self._resolve_code(ROLES_TABLE, "id_rol", _text(codigo_rol), created.id)

        # 3) profile
        try:
            profile = self.db.upsert_profile(
                profile_id=created.id,
                nombre_usuario=nombre_usuario,
                id_rol=id_rol,
                id_preferencia=id_preferencia,
                fecha_creacion=self.clock().isoformat(),
            )
        except (DatabaseError, UpstreamTimeout) as e:
            log.error("Profile upsert failed; identity %s left without profile: %s", created.id, e.message)
            raise ProfileUpsertError(
                "Usuario creado pero error al crear perfil",
                identity_id=created.id,
                detail={"identity_id": created.id, "error": e.message},
                cause=e,
            ) from e

        return RegistrationResult(
            user_id=created.id,
            email=clean_email,
            nombre_usuario=nombre_usuario,
            profile=profile,
        )

    def _resolve_code(self, table: str, column: str, code: str, identity_id: str) -> Any:
        """Both failure modes report the already-created identity."""
        try:
            row = self.db.select_one_by_code(table=table, column=column, code=code)
        except (DatabaseError, UpstreamTimeout) as e:
            raise ReferenceDataError(
                f"No se pudo resolver el código '{code}' en {table}",
                table=table,
                code=code,
                identity_id=identity_id,
                detail={"table": table, "code": code, "identity_id": identity_id, "error": e.message},
                cause=e,
            ) from e
        if row is None:
            raise ReferenceDataError(
                f"Código '{code}' no existe en {table}",
                table=table,
                code=code,
                identity_id=identity_id,
                detail={"table": table, "code": code, "identity_id": identity_id},
            )
        return row[column]

    # ============ LOGIN ============
    def login(self, *, email: Any, password: Any) -> SignInResult:
        q_email = normalize_email(email)
        password = _text(password)
        if not q_email or not password:
            raise ValidationError("Faltan email o password")

        try:
            result = self.identity.sign_in_with_password(email=q_email, password=password)
        except IdentityProviderError as e:
            raise classify_login_error(e.message or "Credenciales inválidas", code=e.status) from e

        if not result.session or not result.user:
            raise SessionCreationError("No se pudo crear sesión")
        return result

    # ============ CHECK EMAIL ============
    def email_exists(self, *, email: Any) -> EmailExistence:
        q_email = normalize_email(email)
        if not q_email:
            raise ValidationError("Falta email")

        if self.identity.has_direct_email_lookup:
            try:
                user = self.identity.get_user_by_email(q_email)
            except IdentityProviderError as e:
                raise EmailLookupError("Error consultando usuarios (admin)", detail=e.message, cause=e) from e
            return EmailExistence(exists=user is not None, user_id=user.id if user else None)

        return self._scan_for_email(q_email)

    def _scan_for_email(self, q_email: str) -> EmailExistence:
        """Pages through list_users; gives up after max_pages."""
        for page in range(1, self.max_pages + 1):
            try:
                users = self.identity.list_users(page=page, per_page=self.page_size)
            except IdentityProviderError as e:
                raise EmailLookupError("Error consultando usuarios (admin)", detail=e.message, cause=e) from e
            if not users:
                break
            for user in users:
                # phone-only users have no email
                if user.email and normalize_email(user.email) == q_email:
                    return EmailExistence(exists=True, user_id=user.id)
            if len(users) < self.page_size:
                break
        else:
            log.warning("check-email scan stopped after %d pages", self.max_pages)
        return EmailExistence(exists=False, user_id=None)

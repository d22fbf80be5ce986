from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from supabase import AuthError, Client

from ..core.exceptions import IdentityProviderError
from .upstream import pick, to_plain, upstream_call


@dataclass
class CreatedIdentity:
    id: str
    email: Optional[str]
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SignInResult:
    session: Optional[Dict[str, Any]]
    user: Optional[Dict[str, Any]]


@dataclass
class UserRecord:
    id: str
    email: Optional[str]


def _provider_error(operation: str, err: AuthError) -> IdentityProviderError:
    message = getattr(err, "message", None) or str(err)
    status = getattr(err, "status", None) or getattr(err, "code", None)
    return IdentityProviderError(message, status=status, detail=f"{operation}: {message}", cause=err)


def extract_created_user(resp: Any) -> Any:
    """
    Finds the user object in a create_user response. Depending on the SDK
    release it is resp.user, resp["user"], resp["data"]["user"] or resp["data"].
    """
    user = pick(resp, "user")
    if user is None:
        data = pick(resp, "data")
        user = pick(data, "user") or data
    return user


def _user_record(user: Any) -> Optional[UserRecord]:
    uid = pick(user, "id")
    if not uid:
        return None
    return UserRecord(id=str(uid), email=pick(user, "email"))


class IdentityService:
    """
    Supabase Auth operations encapsulated in a class. Every method returns
    normalized results so callers never look at SDK response shapes.
    """

    def __init__(self, client: Client, *, sign_in_client: Optional[Callable[[], Client]] = None):
        self.client = client
        # sign-in mutates the client's session, so it runs on its own client
        self._sign_in_client = sign_in_client or (lambda: client)

    def create_user(self, *, email: str, password: str, metadata: Dict[str, Any]) -> Optional[CreatedIdentity]:
        """Admin create. Returns None when the response carries no user id."""
        try:
            with upstream_call("create_user", IdentityProviderError):
                resp = self.client.auth.admin.create_user(
                    {"email": email, "password": password, "user_metadata": metadata}
                )
        except AuthError as err:
            raise _provider_error("create_user", err) from err

        user = extract_created_user(resp)
        uid = pick(user, "id")
        if not uid:
            return None
        return CreatedIdentity(
            id=str(uid),
            email=pick(user, "email"),
            metadata=to_plain(pick(user, "user_metadata")) or {},
        )

    def sign_in_with_password(self, *, email: str, password: str) -> SignInResult:
        client = self._sign_in_client()
        try:
            with upstream_call("sign_in_with_password", IdentityProviderError):
                resp = client.auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as err:
            raise _provider_error("sign_in_with_password", err) from err

        session, user = pick(resp, "session"), pick(resp, "user")
        if session is None and user is None:
            data = pick(resp, "data")
            session, user = pick(data, "session"), pick(data, "user")
        return SignInResult(session=to_plain(session), user=to_plain(user))

    @property
    def has_direct_email_lookup(self) -> bool:
        return callable(getattr(self.client.auth.admin, "get_user_by_email", None))

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        try:
            with upstream_call("get_user_by_email", IdentityProviderError):
                resp = self.client.auth.admin.get_user_by_email(email)
        except AuthError as err:
            raise _provider_error("get_user_by_email", err) from err

        user = pick(resp, "user")
        if user is None:
            user = pick(pick(resp, "data"), "user")
        return _user_record(user)

    def list_users(self, *, page: int, per_page: int) -> List[UserRecord]:
        try:
            with upstream_call("list_users", IdentityProviderError):
                resp = self.client.auth.admin.list_users(page=page, per_page=per_page)
        except AuthError as err:
            raise _provider_error("list_users", err) from err

        if isinstance(resp, list):
            users = resp
        else:
            users = pick(resp, "users") or pick(pick(resp, "data"), "users") or []
        return [rec for rec in (_user_record(u) for u in users) if rec is not None]

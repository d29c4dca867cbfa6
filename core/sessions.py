from dataclasses import dataclass
from datetime import timedelta

import jwt

from core.clock import now


@dataclass(frozen=True)
class SessionArtifact:
    """Wird an die ausgehende Antwort gehängt (Cookie setzen oder löschen)."""

    cookie_name: str
    value: str | None
    max_age: int
    flags: dict

    @property
    def clears(self) -> bool:
        return self.value is None

    def apply(self, resp):
        if self.value is None:
            resp.delete_cookie(self.cookie_name, **self.flags)
        else:
            resp.set_cookie(self.cookie_name, self.value, max_age=self.max_age, **self.flags)
        return resp


class SessionManager:
    def __init__(
        self,
        secret: str,
        issuer: str,
        audience: str,
        exp_minutes: int = 60 * 24,
        cookie_name: str = "mb_session",
        secure: bool = False,
    ):
        self.secret = secret
        self.issuer = issuer
        self.audience = audience
        self.exp_minutes = exp_minutes
        self.cookie_name = cookie_name
        self.secure = secure

    @classmethod
    def from_config(cls, cfg: dict) -> "SessionManager":
        return cls(
            secret=cfg["SECRET_KEY"],
            issuer=cfg["SESSION_ISS"],
            audience=cfg["SESSION_AUD"],
            exp_minutes=cfg["SESSION_EXP_MINUTES"],
            cookie_name=cfg["AUTH_COOKIE_NAME"],
            secure=cfg["IS_PRODUCTION"],
        )

    def _cookie_flags(self) -> dict:
        if self.secure:
            return {"httponly": True, "secure": True, "samesite": "None", "path": "/"}
        return {"httponly": True, "secure": False, "samesite": "Lax", "path": "/"}

    def establish(self, account_id: int) -> SessionArtifact:
        ts = now()
        token = jwt.encode(
            {
                "sub": str(account_id),
                "iss": self.issuer,
                "aud": self.audience,
                "iat": int(ts.timestamp()),
                "exp": int((ts + timedelta(minutes=self.exp_minutes)).timestamp()),
            },
            self.secret,
            algorithm="HS256",
        )
        return SessionArtifact(self.cookie_name, token, self.exp_minutes * 60, self._cookie_flags())

    def destroy(self) -> SessionArtifact:
        return SessionArtifact(self.cookie_name, None, 0, self._cookie_flags())

    def current(self, request) -> int | None:
        token = request.cookies.get(self.cookie_name)
        if not token:
            auth = request.headers.get("Authorization", "")
            if auth.lower().startswith("bearer "):
                token = auth.split(" ", 1)[1].strip()
        if not token:
            return None

        try:
            data = jwt.decode(
                token,
                self.secret,
                algorithms=["HS256"],
                audience=self.audience,
                issuer=self.issuer,
            )
        except jwt.PyJWTError:
            return None

        try:
            return int(data.get("sub"))
        except (TypeError, ValueError):
            return None

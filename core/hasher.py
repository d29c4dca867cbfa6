from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError


class CredentialHasher:
    """Einweg-Hash für Passwörter (argon2id, Salt steckt im Ergebnis)."""

    def __init__(self, time_cost: int = 2, memory_cost: int = 102_400, parallelism: int = 8):
        self.ph = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )

    @classmethod
    def from_config(cls, cfg: dict) -> "CredentialHasher":
        return cls(
            time_cost=cfg["ARGON2_TIME_COST"],
            memory_cost=cfg["ARGON2_MEMORY_COST"],
            parallelism=cfg["ARGON2_PARALLELISM"],
        )

    def hash(self, plaintext: str) -> str:
        if not plaintext:
            raise ValueError("empty password")
        return self.ph.hash(plaintext)

    def verify(self, plaintext: str, digest: str) -> bool:
        # argon2 vergleicht zeitkonstant
        if not plaintext or not digest:
            return False
        try:
            return self.ph.verify(digest, plaintext)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, digest: str) -> bool:
        try:
            return self.ph.check_needs_rehash(digest)
        except InvalidHashError:
            return True

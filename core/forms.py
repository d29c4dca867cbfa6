"""Eingehende Formulare: Werte aus dem Request holen und feldbezogen prüfen.

Jede ``validate()`` wirft bei Fehlern eine ``ValidationError`` mit einem
Dict ``{feld: meldung}``, damit das Formular mit Fehlern neu angezeigt
werden kann.
"""
from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email

from core.accounts import normalize_email
from core.errors import ValidationError

PASSWORD_MIN_LENGTH = 6


def _s(data, key: str) -> str:
    val = data.get(key) if data else None
    return "" if val is None else str(val)


def _check_email(email: str, errors: dict) -> str:
    if not email:
        errors["email"] = "Email is required"
        return email
    try:
        email = validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError:
        errors["email"] = "Invalid email address"
    return normalize_email(email)


@dataclass
class LoginForm:
    email: str
    password: str

    @classmethod
    def from_data(cls, data) -> "LoginForm":
        return cls(email=normalize_email(_s(data, "email")), password=_s(data, "password"))

    def validate(self) -> None:
        errors = {}
        if not self.email:
            errors["email"] = "Email is required"
        if not self.password:
            errors["password"] = "Password is required"
        if errors:
            raise ValidationError("invalid_form", fields=errors)


@dataclass
class SignupForm:
    name: str
    email: str
    password: str
    password_again: str

    @classmethod
    def from_data(cls, data) -> "SignupForm":
        return cls(
            name=_s(data, "name").strip(),
            email=_s(data, "email").strip(),
            password=_s(data, "password"),
            password_again=_s(data, "passwordAgain"),
        )

    def validate(self) -> None:
        errors = {}
        if not self.name:
            errors["name"] = "Name is required"
        self.email = _check_email(self.email, errors)
        if not self.password:
            errors["password"] = "Password is required"
        elif self.password != self.password_again:
            errors["passwordAgain"] = "Passwords don't match"
        if errors:
            raise ValidationError("invalid_form", fields=errors)


@dataclass
class ForgotPasswordForm:
    email: str

    @classmethod
    def from_data(cls, data) -> "ForgotPasswordForm":
        return cls(email=_s(data, "email").strip())

    def validate(self) -> None:
        errors = {}
        self.email = _check_email(self.email, errors)
        if errors:
            raise ValidationError("invalid_form", fields=errors)


@dataclass
class ResetPasswordForm:
    password1: str
    password2: str

    @classmethod
    def from_data(cls, data) -> "ResetPasswordForm":
        return cls(password1=_s(data, "password1"), password2=_s(data, "password2"))

    def validate(self) -> None:
        errors = {}
        if len(self.password1) < PASSWORD_MIN_LENGTH:
            errors["password1"] = f"Password must have at least {PASSWORD_MIN_LENGTH} characters"
        if not self.password2:
            errors["password2"] = "Please repeat the password"
        elif not errors and self.password1 != self.password2:
            errors["password2"] = "Passwords are not equal"
        if errors:
            raise ValidationError("invalid_form", fields=errors)

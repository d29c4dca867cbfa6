# mail.py
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, parseaddr

import requests
from flask import current_app


class Notifier:
    """Versand der Bestätigungs- und Reset-Mails.

    Fire-and-forget: Fehler werden geloggt, nie an den Aufrufer gemeldet.
    Provider: console | memory | resend | postmark | smtp
    """

    def __init__(self, cfg: dict):
        self.cfg = cfg
        self.outbox: list[dict] = []

    def send_welcome(self, account, link: str) -> None:
        text = (
            f"Hello {account.name},\n\n"
            "welcome! Please confirm your email address by opening this link:\n"
            f"{link}\n"
        )
        self._dispatch(account.email, "Please confirm your email address", text, tag="welcome")

    def send_account_exists(self, email: str) -> None:
        text = (
            "Someone tried to create a new account with this email address.\n\n"
            "You already have an account. Log in, or use \"Forgot password\" if you "
            "cannot remember your password.\n"
        )
        self._dispatch(email, "You already have an account", text, tag="account_exists")

    def send_password_reset(self, email: str, link: str) -> None:
        text = (
            "We received a request to reset your password.\n\n"
            f"Open this link to choose a new one:\n{link}\n\n"
            "If you did not ask for this, you can ignore this email.\n"
        )
        self._dispatch(email, "Reset your password", text, tag="password_reset")

    def _dispatch(self, to: str, subject: str, text: str, tag: str) -> None:
        try:
            ok, reason = self.send_mail(to, subject, text, tag=tag)
        except Exception as e:
            current_app.logger.warning("[mail] %s to=%s failed: %r", tag, to, e)
            return
        if not ok:
            current_app.logger.warning("[mail] %s to=%s not delivered: %s", tag, to, reason)

    def send_mail(self, to: str, subject: str, text: str, tag: str | None = None) -> tuple[bool, str]:
        cfg = self.cfg
        log = current_app.logger

        if not cfg["EMAILS_ENABLED"]:
            log.info("[mail] disabled: EMAILS_ENABLED=false subject=%r to=%s", subject, to)
            return True, "disabled"

        provider = (cfg["MAIL_PROVIDER"] or "console").strip().lower()
        log.info("[mail] provider=%s to=%s subject=%r", provider, to, subject)

        if provider == "memory":
            self.outbox.append({"to": to, "subject": subject, "text": text, "tag": tag})
            return True, "memory"

        if provider == "console":
            log.info(
                "\n--- MAIL (console) ---\nFrom: %s\nTo: %s\nSubject: %s\n\n%s\n--- END ---",
                cfg["MAIL_FROM"], to, subject, text,
            )
            return True, "console"

        if provider == "resend":
            return self._send_resend(to, subject, text)

        if provider == "postmark":
            return self._send_postmark(to, subject, text, tag)

        if provider == "smtp":
            return self._send_smtp(to, subject, text)

        return False, f"unknown provider '{provider}'"

    def _send_resend(self, to, subject, text) -> tuple[bool, str]:
        cfg = self.cfg
        if not cfg["RESEND_API_KEY"]:
            return False, "missing RESEND_API_KEY"

        payload: dict[str, object] = {
            "from": cfg["MAIL_FROM"],
            "to": to,
            "subject": subject,
            "text": text,
        }
        if cfg["MAIL_REPLY_TO"]:
            payload["reply_to"] = cfg["MAIL_REPLY_TO"]

        r = requests.post(
            "https://api.resend.com/emails",
            headers={
                "Authorization": f"Bearer {cfg['RESEND_API_KEY']}",
                "Content-Type": "application/json",
            },
            json=payload,
            timeout=15,
        )
        ok = 200 <= r.status_code < 300
        if not ok:
            current_app.logger.warning("[resend] %s %s", r.status_code, r.text)
        return ok, str(r.status_code)

    def _send_postmark(self, to, subject, text, tag) -> tuple[bool, str]:
        cfg = self.cfg
        if not cfg["POSTMARK_API_TOKEN"]:
            return False, "missing POSTMARK_API_TOKEN"

        payload: dict[str, object] = {
            "From": cfg["MAIL_FROM"],
            "To": to,
            "Subject": subject,
            "TextBody": text,
            "MessageStream": cfg["POSTMARK_MESSAGE_STREAM"],
        }
        if cfg["MAIL_REPLY_TO"]:
            payload["ReplyTo"] = cfg["MAIL_REPLY_TO"]
        if tag:
            payload["Tag"] = tag

        r = requests.post(
            "https://api.postmarkapp.com/email",
            headers={
                "X-Postmark-Server-Token": cfg["POSTMARK_API_TOKEN"],
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            json=payload,
            timeout=15,
        )
        ok = 200 <= r.status_code < 300
        if not ok:
            current_app.logger.warning("[postmark] %s %s", r.status_code, r.text)
        return ok, str(r.status_code)

    def _send_smtp(self, to, subject, text) -> tuple[bool, str]:
        cfg = self.cfg
        missing = [
            k
            for k in ("SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASS")
            if not cfg.get(k)
        ]
        if missing:
            return False, f"missing smtp config: {', '.join(missing)}"

        disp_name, _ = parseaddr(cfg["MAIL_FROM"] or "")
        msg = EmailMessage()
        msg["From"] = formataddr((disp_name or "Messageboard", cfg["SMTP_USER"]))
        msg["To"] = to
        msg["Subject"] = subject
        if cfg["MAIL_REPLY_TO"]:
            msg["Reply-To"] = cfg["MAIL_REPLY_TO"]
        msg.set_content(text)

        if cfg["SMTP_USE_TLS"]:
            with smtplib.SMTP(cfg["SMTP_HOST"], cfg["SMTP_PORT"], timeout=20) as s:
                s.starttls()
                s.login(cfg["SMTP_USER"], cfg["SMTP_PASS"])
                s.send_message(msg, from_addr=cfg["SMTP_USER"])
        else:
            with smtplib.SMTP_SSL(cfg["SMTP_HOST"], cfg["SMTP_PORT"], timeout=20) as s:
                s.login(cfg["SMTP_USER"], cfg["SMTP_PASS"])
                s.send_message(msg, from_addr=cfg["SMTP_USER"])
        return True, "smtp"

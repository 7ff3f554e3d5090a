import logging
from datetime import datetime

import resend

from backoffice.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

DEFAULT_LANG = "en"

# (subject, heading, body, button label) per template and language
TEMPLATES = {
    "account_confirmation": {
        "en": (
            "Confirm your {app_name} account",
            "Confirm your email",
            "Thanks for signing up to {app_name}. Please confirm your email address to activate your account.",
            "Confirm email",
        ),
        "fr": (
            "Confirmez votre compte {app_name}",
            "Confirmez votre adresse e-mail",
            "Merci de votre inscription sur {app_name}. Veuillez confirmer votre adresse e-mail pour activer votre compte.",
            "Confirmer",
        ),
    },
    "password_reset": {
        "en": (
            "Reset your {app_name} password",
            "Reset your password",
            "We received a request to reset your {app_name} password. The link is valid for 24 hours.",
            "Reset password",
        ),
        "fr": (
            "Réinitialisez votre mot de passe {app_name}",
            "Réinitialisation du mot de passe",
            "Nous avons reçu une demande de réinitialisation de votre mot de passe {app_name}. Le lien est valable 24 heures.",
            "Réinitialiser",
        ),
    },
}


class EmailService:
    """Service for sending account emails via Resend."""

    def __init__(self, settings: Settings | None = None):
        settings = settings or get_settings()
        self.api_key = settings.resend_api_key
        resend.api_key = self.api_key
        self.frontend_url = settings.frontend_url.rstrip("/")
        self.app_name = settings.app_name
        self.sender = settings.email_from

        if not self.api_key:
            logger.warning("RESEND_API_KEY is not set!")

    def render(self, template: str, lang: str | None, action_url: str) -> tuple[str, str]:
        """Return (subject, html) for a template in the given language."""
        variants = TEMPLATES[template]
        subject, heading, body, button = variants.get(lang or DEFAULT_LANG, variants[DEFAULT_LANG])
        context = {"app_name": self.app_name}
        html_content = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="font-size: 22px;">{heading}</h1>
    <p style="font-size: 16px;">{body.format(**context)}</p>
    <div style="text-align: center; margin: 30px 0;">
        <a href="{action_url}"
           style="background: #2563eb; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; font-weight: 600; display: inline-block;">
            {button}
        </a>
    </div>
    <p style="font-size: 12px; color: #999;">&copy; {datetime.now().year} {self.app_name}</p>
</body>
</html>
"""
        return subject.format(**context), html_content

    def _send(self, to: str, subject: str, html_content: str) -> bool:
        try:
            result = resend.Emails.send({
                "from": self.sender,
                "to": [to],
                "subject": subject,
                "html": html_content,
            })
            logger.info(f"Email sent successfully to {to}: {result}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False

    def send_confirmation_email(self, to: str, token: str, lang: str | None = DEFAULT_LANG) -> bool:
        """Send the account confirmation link."""
        url = f"{self.frontend_url}/auth/confirm-email?token={token}"
        subject, html_content = self.render("account_confirmation", lang, url)
        return self._send(to, subject, html_content)

    def send_password_reset_email(self, to: str, token: str, lang: str | None = DEFAULT_LANG) -> bool:
        """Send the password reset link."""
        url = f"{self.frontend_url}/auth/reset-password?token={token}"
        subject, html_content = self.render("password_reset", lang, url)
        return self._send(to, subject, html_content)

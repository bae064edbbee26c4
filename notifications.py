import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import quote

import requests

from errors import DeliveryFailed

logger = logging.getLogger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"
SENDER_NAME = "RealTime"


class Notifier(ABC):
    @abstractmethod
    def send_recovery(self, email: str, reset_token: str) -> None:
        """Send one password-recovery email; raises DeliveryFailed."""


def recovery_link(frontend_url: str, email: str, reset_token: str) -> str:
    return f"{frontend_url.rstrip('/')}/reset?token={reset_token}&email={quote(email, safe='')}"


def _html_content(link: str) -> str:
    return f"""
<div style="font-family: 'Segoe UI', Arial, sans-serif; background-color: #f5f9ff; color: #222; padding: 30px;">
  <div style="max-width: 600px; margin: auto; background: #ffffff; border-radius: 10px; padding: 30px;">
    <h2 style="color:#1d4ed8; text-align:center;">Recupera tu contraseña</h2>
    <p>Has solicitado restablecer tu contraseña en <strong>RealTime</strong>.</p>
    <p>Haz clic en el siguiente botón para restablecerla:</p>
    <div style="text-align:center; margin: 30px 0;">
      <a href="{link}" style="background-color:#1d4ed8; color:#fff; padding: 12px 25px; border-radius:8px; text-decoration:none;">
        Restablecer Contraseña
      </a>
    </div>
    <p style="color:#444;">Este enlace expira en 1 hora.</p>
    <p style="color:#444;">Si no solicitaste este cambio, simplemente ignora este correo.</p>
  </div>
</div>
"""


def _text_content(link: str) -> str:
    return (
        "Recuperación de contraseña - RealTime\n\n"
        "Has solicitado restablecer tu contraseña.\n"
        f"Haz clic en este enlace para continuar:\n{link}\n\n"
        "Este enlace expira en 1 hora. Si no solicitaste esto, ignora este correo.\n"
    )


class BrevoNotifier(Notifier):
    """Transactional email through Brevo's REST API. No retries."""

    def __init__(self, api_key: Optional[str], sender: str, frontend_url: str,
                 session: Optional[requests.Session] = None, timeout: float = 10):
        if not api_key:
            raise ValueError("BREVO_API_KEY is not configured")
        self.api_key = api_key
        self.sender = sender
        self.frontend_url = frontend_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def send_recovery(self, email: str, reset_token: str) -> None:
        link = recovery_link(self.frontend_url, email, reset_token)
        payload = {
            "sender": {"email": self.sender, "name": SENDER_NAME},
            "to": [{"email": email}],
            "subject": "Recuperación de Contraseña - RealTime",
            "htmlContent": _html_content(link),
            "textContent": _text_content(link),
        }
        try:
            res = self.session.post(
                BREVO_SEND_URL,
                json=payload,
                headers={"api-key": self.api_key, "Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Recovery email to %s failed: %s", email, e)
            raise DeliveryFailed(f"Error al enviar email: {e}") from e

        body = _response_body(res)
        if not res.ok:
            logger.error("Recovery email to %s rejected (HTTP %s): %s", email, res.status_code, body)
            raise DeliveryFailed("Error al enviar email", status=res.status_code, body=body)

        message_id = body.get("messageId") if isinstance(body, dict) else None
        logger.info("Recovery email sent to %s (messageId=%s)", email, message_id or "N/A")


def _response_body(res: requests.Response):
    try:
        return res.json()
    except ValueError:
        return res.text

import logging
import smtplib
import ssl
from email.message import EmailMessage
import html
from typing import Optional

from app.core.config import Settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """No se pudo entregar el email"""


class EmailService:
    def __init__(self, settings: Settings):
        self.settings = settings

    @staticmethod
    def _render_html_template(
        *,
        greeting: str,
        message_html: str,
        cta_text: str,
        cta_link: str,
        expiry_note: str,
        footer_note: str,
    ) -> str:
        greeting_esc = html.escape(greeting)
        cta_text_esc = html.escape(cta_text)
        cta_link_esc = html.escape(cta_link, quote=True)
        expiry_note_esc = html.escape(expiry_note)
        footer_note_esc = html.escape(footer_note)

        return f"""<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2>{greeting_esc}</h2>
  {message_html}
  <div style="text-align: center; margin: 30px 0;">
    <a href="{cta_link_esc}"
       style="background-color: #007bff; color: white; padding: 12px 24px; text-decoration: none; border-radius: 5px; display: inline-block;">
      {cta_text_esc}
    </a>
  </div>
  <p>Or copy and paste this link into your browser:</p>
  <p style="word-break: break-all; color: #666;">{cta_link_esc}</p>
  <p><strong>{expiry_note_esc}</strong></p>
  <hr style="margin: 30px 0; border: none; border-top: 1px solid #eee;">
  <p style="color: #666; font-size: 14px;">{footer_note_esc}</p>
</div>"""

    def send_mail(self, *, to: str, subject: str, html_body: str, text_body: Optional[str] = None) -> None:
        """Enviar un email; cualquier falla se propaga como EmailDeliveryError"""
        backend = self.settings.email_backend
        if backend == "console":
            if self.settings.is_production:
                raise EmailDeliveryError("El backend console no envía emails en producción")
            logger.info("Email (console backend) to=%s subject=%r\n%s", to, subject, text_body or html_body)
            return
        if backend != "smtp":
            raise EmailDeliveryError(f"Email backend {backend!r} no envía emails")
        if not self.settings.smtp_host or not self.settings.email_from:
            raise EmailDeliveryError("SMTP mal configurado (host/from)")

        msg = EmailMessage()
        msg["From"] = self.settings.email_from
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text_body or "Este email requiere un cliente compatible con HTML.")
        msg.add_alternative(html_body, subtype="html")

        try:
            if self.settings.smtp_use_ssl:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(self.settings.smtp_host, self.settings.smtp_port, context=context, timeout=10) as server:
                    self._login(server)
                    server.send_message(msg)
                    return

            with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=10) as server:
                server.ehlo()
                if self.settings.smtp_use_tls:
                    server.starttls(context=ssl.create_default_context())
                    server.ehlo()
                self._login(server)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(f"No se pudo enviar email: {exc}") from exc

    def _login(self, server: smtplib.SMTP) -> None:
        if self.settings.smtp_username and self.settings.smtp_password:
            server.login(self.settings.smtp_username, self.settings.smtp_password)

    def send_email_verification(self, *, to_email: str, first_name: str, verification_link: str) -> None:
        subject = "Verify your email address - SplitShifts"
        text_body = (
            f"Welcome to SplitShifts, {first_name}!\n\n"
            f"Verify your email address to complete your registration: {verification_link}\n\n"
            "This link will expire in 24 hours.\n\n"
            "If you didn't create an account with SplitShifts, you can safely ignore this email."
        )
        html_body = self._render_html_template(
            greeting=f"Welcome to SplitShifts, {first_name}!",
            message_html=(
                "<p>Thank you for signing up. To complete your registration, please verify your "
                "email address by clicking the link below:</p>"
            ),
            cta_text="Verify Email Address",
            cta_link=verification_link,
            expiry_note="This link will expire in 24 hours.",
            footer_note="If you didn't create an account with SplitShifts, you can safely ignore this email.",
        )
        self.send_mail(to=to_email, subject=subject, html_body=html_body, text_body=text_body)

    def send_password_reset_email(self, *, to_email: str, reset_link: str) -> None:
        subject = "Password Reset Request - SplitShifts"
        text_body = (
            "We received a request to reset your password for your SplitShifts account.\n\n"
            f"Open this link to continue: {reset_link}\n\n"
            "This link will expire in 1 hour for security reasons.\n\n"
            "If you didn't request a password reset, you can safely ignore this email."
        )
        html_body = self._render_html_template(
            greeting="Password Reset Request",
            message_html="<p>We received a request to reset your password for your SplitShifts account.</p>",
            cta_text="Reset Password",
            cta_link=reset_link,
            expiry_note="This link will expire in 1 hour for security reasons.",
            footer_note=(
                "If you didn't request a password reset, you can safely ignore this email. "
                "Your password will not be changed."
            ),
        )
        self.send_mail(to=to_email, subject=subject, html_body=html_body, text_body=text_body)

# sunnah_audio/core/mailer.py
"""
Outgoing email: password reset codes and reset confirmations.

Messages go through the configured SMTP relay (STARTTLS on 587/2525, implicit
TLS on 465, plain otherwise) or, with EMAIL_TRANSPORT=dummy, are only logged.
smtplib blocks, so sending runs in the threadpool and every connection carries
a timeout.
"""
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

from starlette.concurrency import run_in_threadpool

from sunnah_audio.config import Settings
from sunnah_audio.core.errors import UpstreamFailure

logger = logging.getLogger(__name__)

STARTTLS_PORTS = (587, 2525)
SSL_PORTS = (465,)


def render_otp_email(code: str, ttl_minutes: int = 10) -> tuple[str, str, str]:
    subject = "Your password reset code"
    text = (
        "We received a request to reset your password.\n\n"
        f"Your verification code is: {code}\n\n"
        f"The code expires in {ttl_minutes} minutes. If you did not request a reset, "
        "you can ignore this email."
    )
    html = f"""
    <h2>Password reset</h2>
    <p>We received a request to reset your password. Use the code below to continue.</p>
    <p style="font-size:28px;letter-spacing:6px;font-weight:bold;">{code}</p>
    <p style="font-size:13px;color:#555">The code expires in {ttl_minutes} minutes.
    If you did not request a reset, you can ignore this email.</p>
    """
    return subject, text, html


def render_reset_confirmation_email() -> tuple[str, str, str]:
    subject = "Your password has been changed"
    text = (
        "Your password was reset successfully. You can now sign in with your new password.\n\n"
        "If you did not make this change, contact support immediately."
    )
    html = """
    <h2>Password changed</h2>
    <p>Your password was reset successfully. You can now sign in with your new password.</p>
    <p style="font-size:13px;color:#555">If you did not make this change, contact support immediately.</p>
    """
    return subject, text, html


class Mailer:
    def __init__(self, settings: Settings):
        self.settings = settings

    async def send_otp(self, email: str, code: str) -> None:
        subject, text, html = render_otp_email(code)
        await self._send(email, subject, text, html)
        logger.info("OTP email sent to %s", email)

    async def send_reset_confirmation(self, email: str) -> None:
        subject, text, html = render_reset_confirmation_email()
        await self._send(email, subject, text, html)
        logger.info("Password reset confirmation sent to %s", email)

    async def _send(self, to_email: str, subject: str, text_body: str, html_body: str) -> None:
        if self.settings.email_transport == "dummy":
            logger.info("[dummy mail] to=%s subject=%s", to_email, subject)
            return
        try:
            await run_in_threadpool(self._send_smtp, to_email, subject, text_body, html_body)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery to %s failed: %s", to_email, e)
            raise UpstreamFailure("Failed to send email") from e

    def _build_message(self, to_email: str, subject: str, text_body: str, html_body: str) -> MIMEMultipart:
        s = self.settings
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((s.smtp_from_name, s.smtp_from_email))
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def _send_smtp(self, to_email: str, subject: str, text_body: str, html_body: str) -> None:
        s = self.settings
        msg = self._build_message(to_email, subject, text_body, html_body)
        timeout = s.smtp_timeout_seconds

        if s.smtp_port in SSL_PORTS:
            server = smtplib.SMTP_SSL(s.smtp_host, s.smtp_port, timeout=timeout,
                                      context=ssl.create_default_context())
        else:
            server = smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=timeout)
        with server:
            if s.smtp_port in STARTTLS_PORTS:
                server.starttls(context=ssl.create_default_context())
            if s.smtp_username:
                server.login(s.smtp_username, s.smtp_password or "")
            server.sendmail(s.smtp_from_email, [to_email], msg.as_string())

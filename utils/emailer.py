import smtplib
from email.message import EmailMessage

from flask import current_app


def send_email(to_email: str, subject: str, body: str):
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email:
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        current_app.logger.warning("SMTP delivery to %s failed: %s", to_email, exc)
        return False, str(exc)


def deliver_code(to_email: str, name: str, code: str, purpose: str) -> bool:
    """Send a one-time code; without SMTP the code only goes to the log."""
    if purpose == "recovery":
        subject = "Código de recuperação de senha"
        body = f"Olá {name},\n\nSeu código de recuperação é {code}. Ele expira em poucos minutos.\n"
    else:
        subject = "Código de verificação"
        body = f"Olá {name},\n\nSeu código de acesso é {code}. Ele expira em poucos minutos.\n"

    sent, error = send_email(to_email, subject, body)
    if not sent:
        if current_app.config.get("ENV_NAME") == "production":
            current_app.logger.error("%s code for %s not delivered: %s", purpose, to_email, error)
        else:
            current_app.logger.info("%s code for %s: %s (%s)", purpose, to_email, code, error)
    return sent

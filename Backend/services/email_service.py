import os
import logging
import httpx
from typing import Dict, Any
from dotenv import load_dotenv

load_dotenv()

# --- Client Configuration ---
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"
EMAIL_FROM = os.getenv("EMAIL_FROM", "no-reply@task-manager.app")

# Set up logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(message)s')

if SENDGRID_API_KEY:
    logging.info("SendGrid email dispatch enabled.")
else:
    logging.warning("SENDGRID_API_KEY not found in environment. Emails will not be sent.")

# Export a boolean flag to check if sending is possible
EMAIL_ENABLED = bool(SENDGRID_API_KEY)


def build_message(to: str, subject: str, text: str) -> Dict[str, Any]:
    return {
        "personalizations": [{"to": [{"email": to}]}],
        "from": {"email": EMAIL_FROM},
        "subject": subject,
        "content": [{"type": "text/plain", "value": text}],
    }


async def send_email(to: str, subject: str, text: str) -> bool:
    """
    Sends a single plain-text email through SendGrid.

    Never raises: failures are logged and reported as False so that
    callers running it in the background have nothing to handle.
    """
    if not EMAIL_ENABLED:
        logging.info(f"Email disabled, skipping '{subject}' to {to}")
        return False

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                SENDGRID_SEND_URL,
                json=build_message(to, subject, text),
                headers={"Authorization": f"Bearer {SENDGRID_API_KEY}"},
            )
            response.raise_for_status()
        logging.info(f"Sent '{subject}' to {to}")
        return True
    except Exception as e:
        logging.error(f"Error sending '{subject}' to {to}: {e}")
        return False


async def send_welcome_email(email: str, name: str) -> bool:
    return await send_email(
        email,
        "Welcome to Task Manager!",
        f"Welcome to the app, {name}. Let me know what you think!",
    )


async def send_cancellation_email(email: str, name: str) -> bool:
    return await send_email(
        email,
        "We're sorry to see you go",
        f"We hate to see you go, {name}. We'd love to hear what we could have done differently.",
    )

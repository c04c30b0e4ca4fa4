"""Signing-invitation emails delivered through the Resend HTTP API."""

import html
import logging
from typing import Optional

import httpx

from signbox.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    pass


def render_invitation_html(signer_name: str, document_title: str, document_url: str, creator_name: str) -> str:
    signer_name, document_title, document_url, creator_name = (
        html.escape(v) for v in (signer_name, document_title, document_url, creator_name)
    )
    return (
        '<div style="font-family:Helvetica,Arial,sans-serif;max-width:560px;margin:0 auto;padding:24px">'
        f"<p>Hi <strong>{signer_name}</strong>,</p>"
        f"<p><strong>{creator_name}</strong> has sent you a document to sign:</p>"
        f'<p style="font-size:18px;font-weight:bold;padding:12px;background:#f4f4f5">{document_title}</p>'
        f'<p><a href="{document_url}" style="background:#18181b;color:#fff;padding:10px 18px;'
        'border-radius:6px;text-decoration:none">Review and sign</a></p>'
        f'<p>Or paste this link into your browser:<br><a href="{document_url}">{document_url}</a></p>'
        '<hr><p style="color:#71717a;font-size:12px">This message was sent automatically by '
        f"{html.escape(settings.app_name)}. Please do not reply.</p></div>"
    )


def build_invitation_payload(
    to: str,
    signer_name: str,
    document_title: str,
    document_url: str,
    creator_name: Optional[str] = None,
) -> dict:
    creator_name = creator_name or settings.app_name
    return {
        "from": settings.email_sender,
        "to": [to],
        "subject": f"Document awaiting your signature - {document_title}",
        "html": render_invitation_html(signer_name, document_title, document_url, creator_name),
    }


def _headers() -> dict[str, str]:
    if not settings.resend_api_key:
        raise EmailDeliveryError("Email delivery is not configured (RESEND_API_KEY is empty)")
    return {"Authorization": f"Bearer {settings.resend_api_key}"}


def _check(resp: httpx.Response, to: str) -> dict:
    if resp.status_code >= 400:
        try:
            message = resp.json().get("message") or resp.text
        except ValueError:
            message = resp.text
        raise EmailDeliveryError(f"Email provider rejected message to {to}: {message}")
    logger.info("Invitation email sent to %s (status %d)", to, resp.status_code)
    return resp.json()


async def send_email(payload: dict) -> dict:
    to = payload["to"][0]
    try:
        async with httpx.AsyncClient(timeout=settings.email_timeout_seconds) as client:
            resp = await client.post(settings.resend_api_url, json=payload, headers=_headers())
    except httpx.HTTPError as e:
        raise EmailDeliveryError(f"Email provider unreachable: {e}") from e
    return _check(resp, to)


def send_email_sync(payload: dict) -> dict:
    to = payload["to"][0]
    try:
        with httpx.Client(timeout=settings.email_timeout_seconds) as client:
            resp = client.post(settings.resend_api_url, json=payload, headers=_headers())
    except httpx.HTTPError as e:
        raise EmailDeliveryError(f"Email provider unreachable: {e}") from e
    return _check(resp, to)

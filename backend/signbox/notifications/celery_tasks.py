import logging
from typing import Optional

from signbox.celery_app import celery
from signbox.notifications.service import EmailDeliveryError, build_invitation_payload, send_email_sync

logger = logging.getLogger(__name__)


@celery.task(name="send_signing_invitation", bind=True, max_retries=3)
def send_signing_invitation(
    self,
    to: str,
    signer_name: str,
    document_title: str,
    document_url: str,
    creator_name: Optional[str] = None,
):
    payload = build_invitation_payload(to, signer_name, document_title, document_url, creator_name)
    try:
        send_email_sync(payload)
    except EmailDeliveryError as exc:
        logger.error("Signing invitation to %s failed: %s", to, exc)
        raise self.retry(exc=exc, countdown=2 ** self.request.retries)

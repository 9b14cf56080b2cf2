"""Celery tasks: persist in-app notifications and deliver transactional e-mail."""

import os
import uuid
from typing import Any

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from dealgate.core.config import settings
from dealgate.worker import celery_app

logger = structlog.get_logger()

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "templates", "email")

# Bodies live in templates/email/<name>.txt
EMAIL_SUBJECTS: dict[str, str] = {
    "nda_requested": "New NDA request for {{ listing_title | default('your listing') }}",
    "nda_approved": "Your NDA request for {{ listing_title | default('the listing') }} was approved",
    "nda_rejected": "Your NDA request for {{ listing_title | default('the listing') }} was declined",
    "dataroom_invite": "You are invited to the data room for {{ listing_title | default('a listing') }}",
}

_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    trim_blocks=True,
)


def render_email(template: str, variables: dict[str, Any]) -> tuple[str, str]:
    if template not in EMAIL_SUBJECTS:
        raise ValueError(f"Unknown e-mail template: {template}")
    context = {"platform_url": settings.FRONTEND_URL, **variables}
    try:
        body = _env.get_template(f"{template}.txt").render(**context)
    except TemplateNotFound as e:
        raise ValueError(f"Missing e-mail template file: {template}.txt") from e
    subject = _env.from_string(EMAIL_SUBJECTS[template]).render(**context)
    return subject, body


@celery_app.task(bind=True, max_retries=3, default_retry_delay=30)
def deliver_notification(
    self,
    user_id: str,
    type: str,
    title: str,
    message: str,
    link: str | None = None,
) -> str:
    """Write a notifications row through a sync session."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import Session as SyncSession

    from dealgate.models.core import Notification
    from dealgate.models.enums import NotificationType

    engine = create_engine(settings.DATABASE_URL_SYNC)
    try:
        with SyncSession(engine) as session:
            notification = Notification(
                user_id=uuid.UUID(user_id),
                type=NotificationType(type),
                title=title,
                message=message,
                link=link,
            )
            session.add(notification)
            session.commit()
            logger.info("notification_delivered", user_id=user_id, type=type)
            return str(notification.id)
    except Exception as exc:
        logger.error("deliver_notification.failed", error=str(exc), user_id=user_id)
        raise self.retry(exc=exc) from exc
    finally:
        engine.dispose()


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def deliver_email(self, to: str, template: str, variables: dict[str, Any]) -> bool:
    """Render a template and send it through SES."""
    if not settings.EMAIL_FROM:
        logger.debug("email_not_configured_skipping", template=template)
        return False

    subject, body = render_email(template, variables)
    ses = boto3.client(
        "ses",
        region_name=settings.AWS_SES_REGION or settings.AWS_S3_REGION,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
    )
    try:
        ses.send_email(
            Source=settings.EMAIL_FROM,
            Destination={"ToAddresses": [to]},
            Message={
                "Subject": {"Data": subject},
                "Body": {"Text": {"Data": body}},
            },
        )
    except (BotoCoreError, ClientError) as exc:
        logger.error("deliver_email.failed", error=str(exc), template=template)
        raise self.retry(exc=exc) from exc

    logger.info("email_delivered", template=template)
    return True

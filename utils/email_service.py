import html
from typing import Optional

from flask import current_app

import sib_api_v3_sdk
from sib_api_v3_sdk.api.transactional_emails_api import TransactionalEmailsApi
from sib_api_v3_sdk.rest import ApiException

from models import LogisticRequestStatus

DECISION_SUBJECTS = {
    LogisticRequestStatus.COMPLETED: "Logistic request #{id} has been approved",
    LogisticRequestStatus.REJECTED: "Logistic request #{id} has been rejected",
}


def send_email(*, subject: str, to_email: str, to_name: Optional[str] = None, text_body: str) -> bool:
    """Send a plain notification through Brevo's transactional API.

    Returns ``True`` on success, ``False`` when the message could not be sent.
    """
    api_key = current_app.config.get("BREVO_API_KEY")
    sender_email = current_app.config.get("MAIL_DEFAULT_SENDER")
    sender_name = current_app.config.get("MAIL_DEFAULT_SENDER_NAME", "Cargo Logistics")

    if not api_key or not sender_email:
        current_app.logger.warning("Email '%s' skipped: Brevo is not configured.", subject)
        return False

    if not to_email:
        current_app.logger.warning("Email '%s' skipped: recipient has no address.", subject)
        return False

    configuration = sib_api_v3_sdk.Configuration()
    configuration.api_key["api-key"] = api_key

    email = sib_api_v3_sdk.SendSmtpEmail(
        sender={"email": sender_email, "name": sender_name},
        to=[{"email": to_email, "name": to_name} if to_name else {"email": to_email}],
        subject=subject,
        html_content="<br>".join(html.escape(text_body).splitlines()),
        text_content=text_body,
    )

    api_client = sib_api_v3_sdk.ApiClient(configuration)
    try:
        TransactionalEmailsApi(api_client).send_transac_email(email)
        return True
    except ApiException as exc:
        current_app.logger.error("Brevo API error while sending '%s': %s", subject, exc)
        return False
    finally:
        if hasattr(api_client, "close"):
            api_client.close()


def notify_creator_of_decision(logistic_request) -> bool:
    creator = logistic_request.creator
    template = DECISION_SUBJECTS.get(logistic_request.status)
    if creator is None or template is None:
        return False

    lines = [f"- {line.transport_service.name} x {line.quantity}" for line in logistic_request.services]
    body = "\n".join([
        f"Hi {creator.name},",
        "",
        f"Your logistic request #{logistic_request.id} "
        f"({logistic_request.from_city} -> {logistic_request.to_city}) "
        f"is now {logistic_request.status.value}.",
        "",
        "Services:",
        *(lines or ["- none"]),
        "",
        f"Total cost: {float(logistic_request.total_cost or 0):,.2f}",
        f"Estimated delivery: {logistic_request.total_days} day(s)",
    ])

    return send_email(
        subject=template.format(id=logistic_request.id),
        to_email=creator.email,
        to_name=creator.name,
        text_body=body,
    )

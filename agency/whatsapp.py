# agency/whatsapp.py
"""
WhatsApp customers, outbound messages and broadcast campaigns.

Sending goes through the provider configured in ``WhatsAppSettings`` (or the
``WHATSAPP_API_URL`` / ``WHATSAPP_API_TOKEN`` settings as a fallback). Network
failures never raise into callers: every send returns ``(ok, detail)``.
"""

import csv
import io
import logging
import re
from collections import Counter, OrderedDict

import requests
from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from .constants import MAX_SEND_RETRIES, NO_RETRY_ERROR_CODES, OPTED_OUT_ERROR_CODE
from .exceptions import CampaignStateError, CsvImportError
from .models import (
    WhatsAppCampaignRecipient,
    WhatsAppCustomer,
    WhatsAppMessage,
    WhatsAppSettings,
)

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = ("first name", "mobile number")
ERROR_CODE_RE = re.compile(r"\(#(\d+)\)")
PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}|\{(\w+)\}")


# --- PHONE NUMBERS & TAGS ---
def _digits(value):
    return re.sub(r"\D", "", value)


def normalize_phone(raw, country_code=None):
    """
    E.164-ish normalization used as the customer key.

    "+44 20 7946 0000" -> "+442079460000", "0044..." -> "+44...",
    "098765 43210" -> "+919876543210", "9876543210" -> "+919876543210".
    """
    country_code = country_code or settings.AGENCY_DEFAULT_COUNTRY_CODE
    trimmed = (raw or "").strip()
    if not trimmed:
        raise ValueError("Phone number is required")

    digits = _digits(trimmed)
    if not digits:
        raise ValueError("Phone number must contain digits")

    if trimmed.startswith("+"):
        return f"+{digits}"
    if digits.startswith("00"):
        return f"+{digits[2:]}"
    if digits.startswith("0"):
        return f"+{country_code}{digits[1:]}"
    if len(digits) <= 10:
        return f"+{country_code}{digits}"
    return f"+{digits}"


def sanitize_tags(tags):
    """Trimmed, non-empty, de-duplicated tags in first-seen order."""
    cleaned = OrderedDict()
    for tag in tags or []:
        if not isinstance(tag, str):
            continue
        tag = tag.strip()
        if tag:
            cleaned[tag] = True
    return list(cleaned)


# --- CSV IMPORT ---
def _clean_header(header):
    return (header or "").replace("\ufeff", "").strip().lower()


def _clean_value(value):
    if not isinstance(value, str):
        return None
    value = value.replace("\u00a0", " ").replace("\r", "").replace("\t", "").strip()
    return value or None


def _split_tags(raw):
    if not raw:
        return []
    return [tag.strip() for tag in re.split(r"[,|]", raw) if tag.strip()]


def _row_error(row_number, message, snapshot):
    return {"row_number": row_number, "message": message, "row": snapshot}


def parse_customer_csv(text, source_name=None, default_tags=None, partner_map=None):
    """
    Parses an uploaded customer list.

    Required columns: "First Name", "Mobile Number" (case-insensitive, BOM
    tolerant). Optional: "Last Name", "Email", "Tags" (comma or pipe
    separated), "Notes", "Associate Partner" (resolved through
    ``partner_map``, name -> id, case-insensitive).

    Row numbers in errors and duplicates count the header as row 1.
    Raises ``CsvImportError`` when the file itself is unusable.
    """
    text = (text or "").strip()
    if not text:
        raise CsvImportError("Uploaded file is empty")

    reader = csv.DictReader(io.StringIO(text))
    records = [
        row
        for row in reader
        if any(_clean_value(v) for v in row.values() if isinstance(v, str))
    ]
    if not records:
        raise CsvImportError("No customer rows found in CSV")

    headers = {_clean_header(h): h for h in reader.fieldnames or []}
    missing = [h for h in REQUIRED_HEADERS if h not in headers]
    if missing:
        raise CsvImportError(f"Missing required columns: {', '.join(missing)}")

    partners = {
        name.lower(): partner_id for name, partner_id in (partner_map or {}).items()
    }

    customers = []
    errors = []
    occurrences = OrderedDict()

    for index, record in enumerate(records):
        row_number = index + 2

        def get(key):
            original = headers.get(key)
            return _clean_value(record.get(original)) if original else None

        snapshot = {
            _clean_header(h): _clean_value(v)
            for h, v in record.items()
            if h and _clean_value(v) is not None
        }

        first_name = get("first name")
        mobile = get("mobile number")
        if not first_name:
            errors.append(_row_error(row_number, "First name is required", snapshot))
            continue
        if not mobile:
            errors.append(_row_error(row_number, "Mobile number is required", snapshot))
            continue

        try:
            phone = normalize_phone(mobile)
        except ValueError as exc:
            errors.append(_row_error(row_number, str(exc), snapshot))
            continue

        metadata = {}
        partner_name = get("associate partner")
        if partner_name and partner_map is not None:
            partner_id = partners.get(partner_name.lower())
            if partner_id is None:
                # Row is still imported, the unknown partner is just reported.
                errors.append(
                    _row_error(
                        row_number,
                        f'Associate Partner "{partner_name}" not found',
                        snapshot,
                    )
                )
            else:
                metadata["associate_partner_id"] = partner_id

        last_name = get("last name")
        customers.append(
            {
                "first_name": first_name,
                "last_name": last_name or "",
                "phone_number": phone,
                "email": get("email") or "",
                "tags": sanitize_tags(
                    list(default_tags or []) + _split_tags(get("tags"))
                ),
                "notes": get("notes") or "",
                "metadata": metadata,
                "imported_from": source_name or "",
            }
        )

        display_name = " ".join(p for p in (first_name, last_name) if p)
        occurrences.setdefault(phone, []).append(
            {"row_number": row_number, "name": display_name}
        )

    duplicates = [
        {"phone_number": phone, "occurrences": rows}
        for phone, rows in occurrences.items()
        if len(rows) > 1
    ]

    return {
        "customers": customers,
        "total_rows": len(records),
        "valid_rows": len(customers),
        "skipped_rows": len(records) - len(customers),
        "unique_phones": len(occurrences),
        "duplicates": duplicates,
        "errors": errors,
    }


@transaction.atomic
def upsert_customers(inputs, imported_from=None):
    """Creates or updates customers keyed on phone. Returns (created, updated)."""
    created = updated = 0
    now = timezone.now()

    for data in inputs:
        data = dict(data)
        phone = normalize_phone(data.pop("phone_number"))
        data["tags"] = sanitize_tags(data.get("tags"))
        data["imported_from"] = imported_from or data.get("imported_from", "")
        data["imported_at"] = now

        _customer, was_created = WhatsAppCustomer.objects.update_or_create(
            phone_number=phone, defaults=data
        )
        if was_created:
            created += 1
        else:
            updated += 1

    logger.info("Customer import: %s created, %s updated", created, updated)
    return created, updated


def list_customers(search=None, tags=None, opted_in=None, offset=0, limit=50):
    """Page of customers plus the total and a tag histogram of all customers."""
    qs = WhatsAppCustomer.objects.all()

    if search:
        qs = qs.filter(
            Q(first_name__icontains=search)
            | Q(last_name__icontains=search)
            | Q(phone_number__icontains=search)
            | Q(email__icontains=search)
        )
    if opted_in is not None:
        qs = qs.filter(is_opted_in=opted_in)

    customers = list(qs)
    wanted = set(sanitize_tags(tags))
    if wanted:
        customers = [c for c in customers if wanted.intersection(c.tags or [])]

    tag_counts = Counter()
    for tag_list in WhatsAppCustomer.objects.values_list("tags", flat=True):
        tag_counts.update(sanitize_tags(tag_list))

    offset = max(int(offset or 0), 0)
    limit = max(int(limit or 50), 1)
    return {
        "items": customers[offset : offset + limit],
        "total": len(customers),
        "tag_counts": dict(tag_counts.most_common()),
    }


# --- SENDING ---
def get_provider_config():
    """(api_url, api_token, sender_id) from the DB, else from settings."""
    config = WhatsAppSettings.objects.first()
    if config:
        return config.api_url, config.api_token, config.sender_id
    return settings.WHATSAPP_API_URL, settings.WHATSAPP_API_TOKEN, ""


def extract_error_code(error):
    if not error:
        return None
    match = ERROR_CODE_RE.search(str(error))
    return match.group(1) if match else None


def _error_from_response(response):
    try:
        payload = response.json()
    except ValueError:
        return f"API Error: {response.text}"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message", "")
        return f"(#{code}) {message}" if code else message
    return f"API Error: {response.text}"


def _message_id_from_response(response):
    try:
        payload = response.json()
    except ValueError:
        return ""
    if not isinstance(payload, dict):
        return ""
    if payload.get("messages"):
        return str(payload["messages"][0].get("id", ""))
    return str(payload.get("id") or payload.get("messageId") or "")


def send_message(to, body):
    """
    Sends a text message. Returns (True, message_id) or (False, error).
    The attempt is always logged as a WhatsAppMessage.
    """
    api_url, api_token, sender_id = get_provider_config()
    message = WhatsAppMessage(to=to, sender=sender_id, body=body)

    if not api_url or not api_token:
        message.status = "failed"
        message.error_message = "WhatsApp Settings not configured."
        message.save()
        return False, message.error_message

    try:
        payload = {"token": api_token, "to": to, "body": body}
        response = requests.post(api_url, data=payload, timeout=30)

        if response.status_code == 200:
            message.status = "sent"
            message.message_id = _message_id_from_response(response)
            message.sent_at = timezone.now()
            message.save()
            return True, message.message_id

        message.status = "failed"
        message.error_message = _error_from_response(response)
        message.save()
        return False, message.error_message

    except requests.RequestException as e:
        logger.exception("WhatsApp API connection error")
        message.status = "failed"
        message.error_message = f"Connection Error: {e}"
        message.save()
        return False, message.error_message


# --- CAMPAIGNS ---
def render_template(template, variables):
    """Fills {name} and {{1}} placeholders; unknown ones are left untouched."""

    def replace(match):
        key = match.group(1) or match.group(2)
        if key in variables and variables[key] is not None:
            return str(variables[key])
        return match.group(0)

    return PLACEHOLDER_RE.sub(replace, template or "")


def recipient_variables(campaign, recipient):
    variables = dict(campaign.template_variables or {})
    if recipient.customer:
        variables.update(
            first_name=recipient.customer.first_name,
            last_name=recipient.customer.last_name,
            phone_number=recipient.customer.phone_number,
        )
    variables.update(recipient.variables or {})
    return variables


def add_recipients(campaign, customers, variables=None):
    """Adds opted-in customers not already on the campaign. Returns count added."""
    existing = set(campaign.recipients.values_list("phone_number", flat=True))
    new_rows = []
    for customer in customers:
        if not customer.is_opted_in or customer.phone_number in existing:
            continue
        existing.add(customer.phone_number)
        new_rows.append(
            WhatsAppCampaignRecipient(
                campaign=campaign,
                customer=customer,
                phone_number=customer.phone_number,
                variables=dict(variables or {}),
            )
        )
    WhatsAppCampaignRecipient.objects.bulk_create(new_rows)

    campaign.total_recipients = campaign.recipients.count()
    campaign.save(update_fields=["total_recipients"])
    return len(new_rows)


def start_campaign(campaign):
    if campaign.status not in ("draft", "scheduled"):
        raise CampaignStateError("Campaign cannot be sent in current status")

    pending = campaign.recipients.filter(status="pending").count()
    if not pending:
        raise CampaignStateError("No pending recipients found")

    campaign.status = "sending"
    campaign.started_at = timezone.now()
    campaign.save(update_fields=["status", "started_at"])
    logger.info("Campaign #%s started with %s recipients", campaign.pk, pending)
    return pending


def is_within_send_window(campaign, now=None):
    start, end = campaign.send_window_start, campaign.send_window_end
    if start is None or end is None:
        return True

    hour = timezone.localtime(now or timezone.now()).hour
    if start <= end:
        return start <= hour < end
    # Window crosses midnight, e.g. 21 -> 9
    return hour >= start or hour < end


def should_retry(error_code):
    return error_code not in NO_RETRY_ERROR_CODES


def _record_failure(campaign, recipient, error, error_code):
    now = timezone.now()
    recipient.error_code = error_code or ""
    recipient.error_message = error

    if should_retry(error_code) and recipient.retry_count < MAX_SEND_RETRIES:
        recipient.status = "retry"
        recipient.retry_count += 1
        recipient.last_retry_at = now
    else:
        recipient.status = "opted_out" if error_code == OPTED_OUT_ERROR_CODE else "failed"
        recipient.failed_at = now
        campaign.failed_count += 1
    recipient.save()


def process_campaign(campaign, now=None, throttle=None):
    """
    Sends every pending / retry recipient of a ``sending`` campaign.

    Stops early (status unchanged) when outside the send window. Retryable
    failures are re-attempted until they succeed or use up their retries.
    ``throttle`` is called with the delay in seconds between messages.
    Returns a dict of counters for this run.
    """
    if campaign.status != "sending":
        raise CampaignStateError("Campaign is not sending")

    if not is_within_send_window(campaign, now):
        logger.info("Campaign #%s outside send window, pausing", campaign.pk)
        return {"sent": 0, "failed": 0, "paused": True}

    delay = 60.0 / (campaign.rate_limit or 10)
    sent = failed = 0

    while True:
        batch = list(
            campaign.recipients.filter(status__in=["pending", "retry"])
            .select_related("customer")
            .order_by("id")
        )
        if not batch:
            break

        for recipient in batch:
            recipient.status = "sending"
            recipient.save(update_fields=["status"])

            body = render_template(
                campaign.message_template, recipient_variables(campaign, recipient)
            )
            ok, detail = send_message(recipient.phone_number, body)

            if ok:
                recipient.status = "sent"
                recipient.sent_at = timezone.now()
                recipient.message_id = detail or ""
                recipient.save()
                campaign.sent_count += 1
                sent += 1
                if recipient.customer:
                    WhatsAppCustomer.objects.filter(pk=recipient.customer_id).update(
                        last_contacted_at=recipient.sent_at
                    )
            else:
                _record_failure(campaign, recipient, detail, extract_error_code(detail))
                if recipient.status != "retry":
                    failed += 1

            campaign.save(update_fields=["sent_count", "failed_count"])
            if throttle:
                throttle(delay)

    campaign.status = "completed" if campaign.sent_count else "failed"
    campaign.completed_at = timezone.now()
    campaign.save(update_fields=["status", "completed_at"])
    logger.info(
        "Campaign #%s %s: %s sent, %s failed",
        campaign.pk,
        campaign.status,
        campaign.sent_count,
        campaign.failed_count,
    )
    return {"sent": sent, "failed": failed, "paused": False}


def campaign_stats(campaign):
    counts = Counter(campaign.recipients.values_list("status", flat=True))
    return {
        "id": campaign.pk,
        "name": campaign.name,
        "status": campaign.status,
        "total_recipients": campaign.total_recipients,
        "sent_count": campaign.sent_count,
        "failed_count": campaign.failed_count,
        "recipients_by_status": dict(counts),
        "started_at": campaign.started_at,
        "completed_at": campaign.completed_at,
    }

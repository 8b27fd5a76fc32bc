"""Maps provider-native payloads into canonical results."""

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from omnisearch.logging_config import integration_context
from omnisearch.models.outcome import AdapterOutcome
from omnisearch.models.providers import (
    AsanaTask,
    CalendarEvent,
    DriveFile,
    ExcelWorkbook,
    GmailMessage,
    GoogleContact,
    GraphIdentity,
    GraphSharing,
    OneDriveFile,
    OutlookCalendarEvent,
    OutlookMessage,
    ProcoreDocument,
    ProcoreRFI,
    QuickBooksCustomer,
    QuickBooksInvoice,
    QuickBooksItem,
    QuickBooksPayment,
    SlackMessage,
    WordDocument,
)
from omnisearch.models.result import CanonicalResult

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 500


def parse_timestamp(value: Any) -> datetime | None:
    """Parse ISO-8601, RFC 2822 or epoch-seconds timestamps into aware datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        text = str(value).strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            try:
                parsed = parsedate_to_datetime(text)
            except (TypeError, ValueError, IndexError):
                return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}"


def _kb(size: int | None) -> str:
    return f" ({round(size / 1024)}KB)" if size else ""


def _join(parts: list[str], sep: str = " | ") -> str:
    return sep.join(part for part in parts if part)


def _graph_name(identity: GraphIdentity | None) -> str | None:
    if identity is None or identity.user is None:
        return None
    return identity.user.display_name or identity.user.email


def _graph_visibility(shared: GraphSharing | None) -> str:
    return "shared" if shared is not None and shared.scope else "private"


def _date_label(value: str | None) -> str:
    parsed = parse_timestamp(value)
    return parsed.date().isoformat() if parsed else "unknown"


# Google


def map_gmail(message: GmailMessage) -> CanonicalResult:
    return CanonicalResult(
        id=f"gmail-{message.id}",
        title=message.subject or "No Subject",
        content=message.snippet or message.body[:SNIPPET_LENGTH],
        source="Gmail",
        integration_type="google_gmail",
        metadata={
            "messageId": message.id,
            "threadId": message.thread_id,
            "from": message.sender,
            "to": message.to,
            "date": message.date,
            "labels": message.labels,
            "sizeEstimate": message.size_estimate,
        },
        url=f"https://mail.google.com/mail/u/0/#inbox/{message.thread_id or message.id}",
        created_at=parse_timestamp(message.date),
        author=message.sender,
        tags=tuple(message.labels),
        size=message.size_estimate,
        content_type="email",
        visibility="private",
    )


def _drive_like(
    file: DriveFile,
    prefix: str,
    source: str,
    integration_type: str,
    content: str,
    default_url: str,
    content_type: str,
    id_key: str,
) -> CanonicalResult:
    owner = file.owners[0] if file.owners else None
    return CanonicalResult(
        id=f"{prefix}-{file.id}",
        title=file.name,
        content=content,
        source=source,
        integration_type=integration_type,
        metadata={
            id_key: file.id,
            "mimeType": file.mime_type,
            "size": file.size,
            "owners": [o.model_dump(by_alias=True) for o in file.owners],
            "shared": file.shared,
            "parents": file.parents,
        },
        url=file.web_view_link or default_url,
        created_at=parse_timestamp(file.created_time),
        updated_at=parse_timestamp(file.modified_time),
        author=(owner.display_name or owner.email_address) if owner else None,
        size=file.size,
        content_type=content_type,
        visibility="shared" if file.shared else "private",
    )


def map_drive(file: DriveFile) -> CanonicalResult:
    return _drive_like(
        file,
        prefix="drive",
        source="Google Drive",
        integration_type="google_drive",
        content=f"File type: {file.mime_type}{_kb(file.size)}",
        default_url=f"https://drive.google.com/file/d/{file.id}/view",
        content_type="document",
        id_key="fileId",
    )


def map_docs(file: DriveFile) -> CanonicalResult:
    return _drive_like(
        file,
        prefix="docs",
        source="Google Docs",
        integration_type="google_docs",
        content=f"Google Doc - Last modified: {_date_label(file.modified_time)}",
        default_url=f"https://docs.google.com/document/d/{file.id}/edit",
        content_type="document",
        id_key="documentId",
    )


def map_sheets(file: DriveFile) -> CanonicalResult:
    return _drive_like(
        file,
        prefix="sheets",
        source="Google Sheets",
        integration_type="google_sheets",
        content=f"Google Sheet - Last modified: {_date_label(file.modified_time)}",
        default_url=f"https://docs.google.com/spreadsheets/d/{file.id}/edit",
        content_type="spreadsheet",
        id_key="spreadsheetId",
    )


def map_calendar(event: CalendarEvent) -> CanonicalResult:
    location = f" | Location: {event.location}" if event.location else ""
    return CanonicalResult(
        id=f"calendar-{event.id}",
        title=event.summary,
        content=f"{event.description or 'No description'}{location}",
        source="Google Calendar",
        integration_type="google_calendar",
        metadata={
            "eventId": event.id,
            "start": event.start.model_dump(by_alias=True, exclude_none=True) if event.start else None,
            "end": event.end.model_dump(by_alias=True, exclude_none=True) if event.end else None,
            "attendees": [a.model_dump(by_alias=True, exclude_none=True) for a in event.attendees],
            "location": event.location,
            "status": event.status,
        },
        url=event.html_link or f"https://calendar.google.com/calendar/event?eid={event.id}",
        created_at=parse_timestamp(event.created),
        updated_at=parse_timestamp(event.updated),
        content_type="event",
        visibility="private",
    )


def map_contact(contact: GoogleContact) -> CanonicalResult:
    details = _join(
        [
            f"Email: {contact.email}" if contact.email else "",
            f"Phone: {contact.phone}" if contact.phone else "",
            contact.organization or "",
        ]
    )
    if contact.job_title:
        details = f"{details} - {contact.job_title}" if details else contact.job_title
    return CanonicalResult(
        id=f"people-{contact.id}",
        title=contact.name,
        content=details,
        source="Google People",
        integration_type="google_people",
        metadata={
            "contactId": contact.id,
            "email": contact.email,
            "phone": contact.phone,
            "organization": contact.organization,
            "jobTitle": contact.job_title,
        },
        url=f"https://contacts.google.com/person/{contact.id}",
        content_type="contact",
        visibility="private",
    )


# Slack / Asana


def map_slack(message: SlackMessage) -> CanonicalResult:
    return CanonicalResult(
        id=f"slack-{message.id}",
        title=f"#{message.channel_name} - {message.user_name}",
        content=message.text,
        source="Slack",
        integration_type="slack",
        metadata={
            "messageId": message.id,
            "channelId": message.channel_id,
            "channelName": message.channel_name,
            "user": message.user,
            "userName": message.user_name,
            "timestamp": message.timestamp,
            "threadTs": message.thread_ts,
        },
        url=f"https://slack.com/messages/{message.channel_id}" if message.channel_id else None,
        created_at=_slack_timestamp(message.timestamp),
        author=message.user_name,
        content_type="message",
        visibility="internal",
    )


def _slack_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parse_timestamp(float(value))
    except ValueError:
        return None


def map_asana(task: AsanaTask) -> CanonicalResult:
    project_id = task.projects[0].id if task.projects and task.projects[0].id else "unknown"
    return CanonicalResult(
        id=f"asana-{task.id}",
        title=task.name,
        content=task.notes or "No description",
        source="Asana",
        integration_type="asana",
        metadata={
            "taskId": task.id,
            "projects": [p.model_dump(exclude_none=True) for p in task.projects],
            "assignee": task.assignee.model_dump(exclude_none=True) if task.assignee else None,
            "dueOn": task.due_on,
            "completed": task.completed,
            "tags": [t.name for t in task.tags if t.name],
        },
        url=f"https://app.asana.com/0/{project_id}/{task.id}",
        created_at=parse_timestamp(task.created_at),
        updated_at=parse_timestamp(task.modified_at),
        author=task.assignee.name if task.assignee else None,
        tags=tuple(t.name for t in task.tags if t.name),
        content_type="task",
        visibility="internal",
    )


# QuickBooks


def map_qb_customer(customer: QuickBooksCustomer) -> CanonicalResult:
    return CanonicalResult(
        id=f"qb-customer-{customer.id}",
        title=customer.name,
        content=_join(
            [
                f"Email: {customer.email}" if customer.email else "",
                f"Phone: {customer.phone}" if customer.phone else "",
            ]
        ),
        source="QuickBooks",
        integration_type="quickbooks",
        metadata={
            "customerId": customer.id,
            "email": customer.email,
            "phone": customer.phone,
            "balance": customer.balance,
            "companyName": customer.company_name,
        },
        url=f"https://app.qbo.intuit.com/app/customerdetail?nameId={customer.id}",
        created_at=parse_timestamp(customer.created_at),
        updated_at=parse_timestamp(customer.updated_at),
        content_type="customer",
        visibility="private",
    )


def map_qb_invoice(invoice: QuickBooksInvoice) -> CanonicalResult:
    return CanonicalResult(
        id=f"qb-invoice-{invoice.id}",
        title=f"Invoice #{invoice.doc_number or invoice.id}",
        content=f"Amount: ${_amount(invoice.total_amount)} | Status: {invoice.status}",
        source="QuickBooks",
        integration_type="quickbooks",
        metadata={
            "invoiceId": invoice.id,
            "docNumber": invoice.doc_number,
            "totalAmount": invoice.total_amount,
            "balance": invoice.balance,
            "status": invoice.status,
            "customerId": invoice.customer_id,
            "customerName": invoice.customer_name,
        },
        url=f"https://app.qbo.intuit.com/app/invoice?txnId={invoice.id}",
        created_at=parse_timestamp(invoice.txn_date),
        author=invoice.customer_name,
        content_type="invoice",
        visibility="private",
    )


def map_qb_item(item: QuickBooksItem) -> CanonicalResult:
    price = f"Price: ${_amount(item.unit_price)}" if item.unit_price is not None else ""
    return CanonicalResult(
        id=f"qb-item-{item.id}",
        title=item.name,
        content=_join([item.description or "No description", price]),
        source="QuickBooks",
        integration_type="quickbooks",
        metadata={
            "itemId": item.id,
            "sku": item.sku,
            "type": item.type,
            "unitPrice": item.unit_price,
            "active": item.active,
        },
        url=f"https://app.qbo.intuit.com/app/item?itemId={item.id}",
        created_at=parse_timestamp(item.created_at),
        updated_at=parse_timestamp(item.updated_at),
        content_type="item",
        visibility="private",
    )


def map_qb_payment(payment: QuickBooksPayment) -> CanonicalResult:
    return CanonicalResult(
        id=f"qb-payment-{payment.id}",
        title=f"Payment from {payment.customer_name}",
        content=_join(
            [
                f"Amount: ${_amount(payment.total_amount)}",
                f"Method: {payment.payment_method}" if payment.payment_method else "",
            ]
        ),
        source="QuickBooks",
        integration_type="quickbooks",
        metadata={
            "paymentId": payment.id,
            "customerId": payment.customer_id,
            "customerName": payment.customer_name,
            "totalAmount": payment.total_amount,
            "paymentMethod": payment.payment_method,
        },
        url=f"https://app.qbo.intuit.com/app/recvpayment?txnId={payment.id}",
        created_at=parse_timestamp(payment.txn_date or payment.created_at),
        author=payment.customer_name,
        content_type="payment",
        visibility="private",
    )


# Microsoft 365


def map_outlook(message: OutlookMessage) -> CanonicalResult:
    return CanonicalResult(
        id=f"outlook-{message.id}",
        title=message.subject or "No Subject",
        content=message.body_preview or message.body_text[:SNIPPET_LENGTH],
        source="Microsoft Outlook",
        integration_type="microsoft_outlook",
        metadata={
            "messageId": message.id,
            "from": message.sender_name,
            "to": message.to,
            "receivedDateTime": message.received_date_time,
            "importance": message.importance,
        },
        url=message.web_link or f"https://outlook.office.com/mail/deeplink/read/{message.id}",
        created_at=parse_timestamp(message.received_date_time),
        author=message.sender_name,
        content_type="email",
        visibility="private",
    )


def map_onedrive(file: OneDriveFile) -> CanonicalResult:
    return CanonicalResult(
        id=f"onedrive-{file.id}",
        title=file.name,
        content=f"File type: {file.file_type or 'unknown'}{_kb(file.size)}",
        source="Microsoft OneDrive",
        integration_type="microsoft_onedrive",
        metadata={
            "fileId": file.id,
            "fileType": file.file_type,
            "size": file.size,
            "createdBy": _graph_name(file.created_by),
            "lastModifiedBy": _graph_name(file.last_modified_by),
        },
        url=file.web_url or f"https://onedrive.live.com/?id={file.id}",
        created_at=parse_timestamp(file.created_date_time),
        updated_at=parse_timestamp(file.last_modified_date_time),
        author=_graph_name(file.created_by),
        size=file.size,
        content_type="document",
        visibility=_graph_visibility(file.shared),
    )


def map_outlook_calendar(event: OutlookCalendarEvent) -> CanonicalResult:
    location = event.location.display_name if event.location and event.location.display_name else None
    organizer = None
    if event.organizer and event.organizer.email_address:
        organizer = event.organizer.email_address.name or event.organizer.email_address.address
    start = event.start.date_time if event.start else None
    return CanonicalResult(
        id=f"outlook-calendar-{event.id}",
        title=event.subject,
        content=f"{event.body_preview or 'No description'}{f' | Location: {location}' if location else ''}",
        source="Outlook Calendar",
        integration_type="microsoft_calendar",
        metadata={
            "eventId": event.id,
            "start": start,
            "end": event.end.date_time if event.end else None,
            "location": location,
            "organizer": organizer,
            "isAllDay": event.is_all_day,
            "isCancelled": event.is_cancelled,
        },
        url=event.web_link or f"https://outlook.office.com/calendar/item/{event.id}",
        created_at=parse_timestamp(event.created_date_time or start),
        updated_at=parse_timestamp(event.last_modified_date_time),
        author=organizer,
        content_type="event",
        visibility="private",
    )


def map_word(document: WordDocument) -> CanonicalResult:
    details = [f"Word document{_kb(document.size)}"]
    if document.page_count:
        details.append(f"{document.page_count} pages")
    return CanonicalResult(
        id=f"word-{document.id}",
        title=document.name,
        content=document.content[:SNIPPET_LENGTH] if document.content else _join(details),
        source="Microsoft Word",
        integration_type="microsoft_word",
        metadata={
            "documentId": document.id,
            "size": document.size,
            "wordCount": document.word_count,
            "pageCount": document.page_count,
            "createdBy": _graph_name(document.created_by),
        },
        url=document.web_url,
        created_at=parse_timestamp(document.created_date_time),
        updated_at=parse_timestamp(document.last_modified_date_time),
        author=_graph_name(document.created_by),
        size=document.size,
        content_type="document",
        visibility=_graph_visibility(document.shared),
    )


def map_excel(workbook: ExcelWorkbook) -> CanonicalResult:
    sheets = [ws.name for ws in workbook.worksheets if ws.name]
    return CanonicalResult(
        id=f"excel-{workbook.id}",
        title=workbook.name,
        content=_join(
            [
                f"Excel workbook{_kb(workbook.size)}",
                f"Sheets: {', '.join(sheets)}" if sheets else "",
            ]
        ),
        source="Microsoft Excel",
        integration_type="microsoft_excel",
        metadata={
            "workbookId": workbook.id,
            "size": workbook.size,
            "worksheets": sheets,
            "createdBy": _graph_name(workbook.created_by),
        },
        url=workbook.web_url,
        created_at=parse_timestamp(workbook.created_date_time),
        updated_at=parse_timestamp(workbook.last_modified_date_time),
        author=_graph_name(workbook.created_by),
        size=workbook.size,
        content_type="spreadsheet",
        visibility=_graph_visibility(workbook.shared),
    )


# Procore


def map_procore_document(document: ProcoreDocument) -> CanonicalResult:
    return CanonicalResult(
        id=f"procore-doc-{document.id}",
        title=document.name,
        content=f"Project: {document.project_id} | Type: {document.type}",
        source="Procore",
        integration_type="procore",
        metadata={
            "documentId": document.id,
            "projectId": document.project_id,
            "type": document.type,
            "category": document.category,
            "status": document.status,
            "uploadedBy": document.uploaded_by,
        },
        url=f"https://app.procore.com/projects/{document.project_id}/documents/{document.id}",
        created_at=parse_timestamp(document.uploaded_at),
        author=document.uploaded_by,
        tags=tuple(t for t in (document.category,) if t),
        size=document.file_size,
        content_type="document",
        visibility="internal",
    )


def map_procore_rfi(rfi: ProcoreRFI) -> CanonicalResult:
    return CanonicalResult(
        id=f"procore-rfi-{rfi.id}",
        title=f"RFI #{rfi.number or rfi.id}",
        content=f"Project: {rfi.project_id} | Subject: {rfi.subject}",
        source="Procore",
        integration_type="procore",
        metadata={
            "rfiId": rfi.id,
            "number": rfi.number,
            "projectId": rfi.project_id,
            "subject": rfi.subject,
            "status": rfi.status,
            "submittedBy": rfi.submitted_by,
        },
        url=f"https://app.procore.com/projects/{rfi.project_id}/rfis/{rfi.id}",
        created_at=parse_timestamp(rfi.submitted_at),
        author=rfi.submitted_by,
        content_type="rfi",
        visibility="internal",
    )


@dataclass(frozen=True)
class PayloadVariant:
    """How to read one (provider, service) payload."""

    collection: str
    model: type[BaseModel]
    mapper: Callable[[Any], CanonicalResult]


VARIANTS: dict[tuple[str, str], PayloadVariant] = {
    ("google", "gmail"): PayloadVariant("messages", GmailMessage, map_gmail),
    ("google", "drive"): PayloadVariant("files", DriveFile, map_drive),
    ("google", "calendar"): PayloadVariant("events", CalendarEvent, map_calendar),
    ("google", "docs"): PayloadVariant("documents", DriveFile, map_docs),
    ("google", "sheets"): PayloadVariant("spreadsheets", DriveFile, map_sheets),
    ("google", "people"): PayloadVariant("contacts", GoogleContact, map_contact),
    ("slack", "messages"): PayloadVariant("messages", SlackMessage, map_slack),
    ("asana", "tasks"): PayloadVariant("tasks", AsanaTask, map_asana),
    ("quickbooks", "customers"): PayloadVariant("customers", QuickBooksCustomer, map_qb_customer),
    ("quickbooks", "invoices"): PayloadVariant("invoices", QuickBooksInvoice, map_qb_invoice),
    ("quickbooks", "items"): PayloadVariant("items", QuickBooksItem, map_qb_item),
    ("quickbooks", "payments"): PayloadVariant("payments", QuickBooksPayment, map_qb_payment),
    ("microsoft", "outlook"): PayloadVariant("messages", OutlookMessage, map_outlook),
    ("microsoft", "onedrive"): PayloadVariant("files", OneDriveFile, map_onedrive),
    ("microsoft", "calendar"): PayloadVariant("events", OutlookCalendarEvent, map_outlook_calendar),
    ("microsoft", "word"): PayloadVariant("documents", WordDocument, map_word),
    ("microsoft", "excel"): PayloadVariant("workbooks", ExcelWorkbook, map_excel),
    ("procore", "documents"): PayloadVariant("documents", ProcoreDocument, map_procore_document),
    ("procore", "rfis"): PayloadVariant("rfis", ProcoreRFI, map_procore_rfi),
}


class ResultTransformer:
    """Turns settled adapter outcomes into a deduplicated canonical list.

    Never raises: unknown variants, malformed payloads and invalid entries
    contribute zero results and are logged.
    """

    def __init__(self, variants: dict[tuple[str, str], PayloadVariant] | None = None):
        self.variants = variants if variants is not None else VARIANTS

    def transform(self, outcomes: list[AdapterOutcome]) -> list[CanonicalResult]:
        """Map every successful outcome and deduplicate by canonical id.

        Args:
            outcomes: Settled outcomes in any order

        Returns:
            Canonical results; for duplicate ids the first seen wins
        """
        results: list[CanonicalResult] = []
        seen_ids: set[str] = set()
        duplicates = 0

        for outcome in outcomes:
            with integration_context(outcome.provider, outcome.service):
                if not outcome.succeeded:
                    logger.info(f"Skipping {outcome.status.value} outcome: {outcome.error}")
                    continue
                mapped = self._transform_outcome(outcome)

            for result in mapped:
                if result.id in seen_ids:
                    duplicates += 1
                    continue
                seen_ids.add(result.id)
                results.append(result)

        counts = Counter(r.integration_type for r in results)
        logger.info(
            f"Transformed {len(results)} results ({duplicates} duplicates dropped): {dict(counts)}"
        )
        return results

    def _transform_outcome(self, outcome: AdapterOutcome) -> list[CanonicalResult]:
        variant = self.variants.get((outcome.provider, outcome.service))
        if variant is None:
            logger.warning("No payload mapping, ignoring outcome")
            return []

        payload = outcome.payload
        if not isinstance(payload, dict):
            logger.warning(f"Malformed payload: expected object, got {type(payload).__name__}")
            return []

        entries = payload.get(variant.collection)
        if entries is None:
            return []
        if not isinstance(entries, list):
            logger.warning(f"Malformed payload: '{variant.collection}' is not a list")
            return []

        mapped: list[CanonicalResult] = []
        for index, entry in enumerate(entries):
            try:
                native = variant.model.model_validate(entry)
                mapped.append(variant.mapper(native))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed entry #{index}: {e.error_count()} validation error(s)"
                )
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed entry #{index}: {e}")
        return mapped

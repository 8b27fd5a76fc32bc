"""Provider-native payload entries.

One model per (provider, service) variant. Only the transformer consumes
these; every entry is validated on its own so one malformed item never
poisons the rest of a payload.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ProviderEntry(BaseModel):
    """Base for provider payload entries (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    id: str = Field(min_length=1)


# Google Workspace


class GmailMessage(ProviderEntry):
    thread_id: str | None = None
    subject: str | None = None
    sender: str | None = Field(default=None, alias="from")
    to: str | list[str] | None = None
    date: str | None = None
    snippet: str | None = None
    body: str = ""
    labels: list[str] = Field(default_factory=list)
    size_estimate: int | None = None


class DriveOwner(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    display_name: str | None = None
    email_address: str | None = None


class DriveFile(ProviderEntry):
    """Shared shape for Drive, Docs and Sheets files."""

    name: str = "Untitled"
    mime_type: str = "application/octet-stream"
    size: int | None = None
    created_time: str | None = None
    modified_time: str | None = None
    web_view_link: str | None = None
    parents: list[str] = Field(default_factory=list)
    owners: list[DriveOwner] = Field(default_factory=list)
    shared: bool = False


class CalendarTime(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    date_time: str | None = None
    date: str | None = None
    time_zone: str | None = None


class CalendarAttendee(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    email: str | None = None
    display_name: str | None = None
    response_status: str | None = None


class CalendarEvent(ProviderEntry):
    summary: str = "Untitled Event"
    description: str | None = None
    location: str | None = None
    start: CalendarTime | None = None
    end: CalendarTime | None = None
    attendees: list[CalendarAttendee] = Field(default_factory=list)
    status: str | None = None
    created: str | None = None
    updated: str | None = None
    html_link: str | None = None


class GoogleContact(ProviderEntry):
    name: str = "Unknown Contact"
    email: str | None = None
    phone: str | None = None
    organization: str | None = None
    job_title: str | None = None


# Slack / Asana


class SlackMessage(ProviderEntry):
    channel_id: str | None = None
    channel_name: str = "unknown"
    text: str = ""
    user: str | None = None
    user_name: str = "unknown"
    timestamp: str | None = None
    thread_ts: str | None = None


class AsanaRef(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    id: str | None = None
    name: str | None = None


class AsanaTask(ProviderEntry):
    name: str = "Untitled Task"
    notes: str | None = None
    completed: bool = False
    due_on: str | None = None
    assignee: AsanaRef | None = None
    projects: list[AsanaRef] = Field(default_factory=list)
    tags: list[AsanaRef] = Field(default_factory=list)
    created_at: str | None = None
    modified_at: str | None = None


# QuickBooks


class QuickBooksCustomer(ProviderEntry):
    name: str = "Unnamed Customer"
    email: str | None = None
    phone: str | None = None
    company_name: str | None = None
    balance: float | None = None
    created_at: str | None = None
    updated_at: str | None = None


class QuickBooksInvoice(ProviderEntry):
    doc_number: str | None = None
    customer_id: str | None = None
    customer_name: str | None = None
    total_amount: float = 0.0
    balance: float | None = None
    due_date: str | None = None
    txn_date: str | None = None
    status: str = "Unknown"


class QuickBooksItem(ProviderEntry):
    name: str = "Unnamed Item"
    sku: str | None = None
    description: str | None = None
    type: str | None = None
    unit_price: float | None = None
    active: bool = True
    created_at: str | None = None
    updated_at: str | None = None


class QuickBooksPayment(ProviderEntry):
    customer_id: str | None = None
    customer_name: str = "Unknown Customer"
    total_amount: float = 0.0
    txn_date: str | None = None
    payment_method: str | None = None
    created_at: str | None = None


# Microsoft 365


class GraphUser(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    display_name: str | None = None
    email: str | None = None


class GraphIdentity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user: GraphUser | None = None


class GraphSharing(BaseModel):
    model_config = ConfigDict(extra="ignore")

    scope: str | None = None


class OutlookMessage(ProviderEntry):
    subject: str | None = None
    body_preview: str | None = None
    body: str | dict[str, Any] = ""
    sender: str | dict[str, Any] | None = Field(default=None, alias="from")
    to: str | list[Any] | None = None
    received_date_time: str | None = None
    importance: str | None = None
    web_link: str | None = None

    @property
    def body_text(self) -> str:
        """Plain body text; Graph returns ``{contentType, content}``."""
        if isinstance(self.body, dict):
            return str(self.body.get("content") or "")
        return self.body

    @property
    def sender_name(self) -> str | None:
        if isinstance(self.sender, dict):
            address = self.sender.get("emailAddress") or {}
            return address.get("name") or address.get("address")
        return self.sender


class OneDriveFile(ProviderEntry):
    name: str = "Untitled"
    file_type: str | None = None
    size: int | None = None
    web_url: str | None = None
    created_date_time: str | None = None
    last_modified_date_time: str | None = None
    created_by: GraphIdentity | None = None
    last_modified_by: GraphIdentity | None = None
    shared: GraphSharing | None = None


class OutlookLocation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    display_name: str | None = None


class OutlookEmailAddress(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    address: str | None = None


class OutlookOrganizer(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    email_address: OutlookEmailAddress | None = None


class OutlookCalendarEvent(ProviderEntry):
    subject: str = "Untitled Event"
    body_preview: str | None = None
    start: CalendarTime | None = None
    end: CalendarTime | None = None
    location: OutlookLocation | None = None
    organizer: OutlookOrganizer | None = None
    is_all_day: bool = False
    is_cancelled: bool = False
    web_link: str | None = None
    created_date_time: str | None = None
    last_modified_date_time: str | None = None


class WordDocument(ProviderEntry):
    name: str = "Untitled"
    size: int | None = None
    web_url: str | None = None
    created_date_time: str | None = None
    last_modified_date_time: str | None = None
    created_by: GraphIdentity | None = None
    shared: GraphSharing | None = None
    content: str | None = None
    word_count: int | None = None
    page_count: int | None = None


class ExcelWorksheet(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None


class ExcelWorkbook(ProviderEntry):
    name: str = "Untitled"
    size: int | None = None
    web_url: str | None = None
    created_date_time: str | None = None
    last_modified_date_time: str | None = None
    created_by: GraphIdentity | None = None
    shared: GraphSharing | None = None
    worksheets: list[ExcelWorksheet] = Field(default_factory=list)


# Procore


class ProcoreDocument(ProviderEntry):
    project_id: str | None = None
    name: str = "Untitled"
    type: str = "other"
    category: str | None = None
    version: str | None = None
    status: str | None = None
    file_url: str | None = None
    file_size: int | None = None
    uploaded_by: str | None = None
    uploaded_at: str | None = None


class ProcoreRFI(ProviderEntry):
    project_id: str | None = None
    number: str | None = None
    subject: str = ""
    question: str | None = None
    status: str | None = None
    submitted_by: str | None = None
    submitted_at: str | None = None

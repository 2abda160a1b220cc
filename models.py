"""
Row types for the tuition portal.

Each dataclass mirrors one table (snake_case attributes, as stored) and
renders itself for the JSON API with camelCase keys via to_dict().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

BOOKING_STATUSES = ("pending", "approved", "rejected", "cancelled")
EVENT_TYPES = ("time_slot", "exam", "test")
FILE_KINDS = ("file", "link")
FEEDBACK_TYPES = ("bug", "feature_request", "question", "other")
FEEDBACK_STATUSES = ("open", "in_progress", "resolved", "closed")
FEEDBACK_PRIORITIES = ("low", "medium", "high", "urgent")
WORKSHEET_STATUSES = ("Upcoming", "In Progress", "Completed")

# Recipient id used for admin notifications and admin push subscriptions.
ADMIN_RECIPIENT = "admin"


@dataclass
class Tutee:
    id: str  # slug, e.g. "primary-school"
    name: str
    description: str = ""
    icon: str = "BookOpen"  # icon name rendered by the dashboard
    color_primary: str = "pink"
    color_secondary: str = "purple"
    color_gradient: str = "from-pink-500 to-purple-600"
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or None,
            "icon": self.icon,
            "colorScheme": {
                "primary": self.color_primary,
                "secondary": self.color_secondary,
                "gradient": self.color_gradient,
            },
        }


@dataclass
class AvailableDate:
    id: str
    date: str  # YYYY-MM-DD
    start_time: str  # HH:mm
    end_time: str  # HH:mm
    is_available: bool = True
    booked_by: Optional[str] = None
    tutee_id: Optional[str] = None
    notes: Optional[str] = None
    event_type: str = "time_slot"  # time_slot | exam | test
    created_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "isAvailable": self.is_available,
            "bookedBy": self.booked_by,
            "tuteeId": self.tutee_id,
            "notes": self.notes,
            "eventType": self.event_type,
        }


@dataclass
class TuitionSession:
    id: str
    tutee_id: str
    slot_id: Optional[str]
    session_date: str
    start_time: str
    end_time: str
    status: str = "scheduled"  # scheduled | cancelled
    created_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tuteeId": self.tutee_id,
            "slotId": self.slot_id,
            "sessionDate": self.session_date,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "status": self.status,
            "createdAt": self.created_at,
        }


@dataclass
class BookingRequest:
    id: str
    tutee_id: str
    requested_date: str
    requested_start_time: str
    requested_end_time: str
    status: str = "pending"
    admin_notes: Optional[str] = None
    tutee_notes: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tuteeId": self.tutee_id,
            "requestedDate": self.requested_date,
            "requestedStartTime": self.requested_start_time,
            "requestedEndTime": self.requested_end_time,
            "status": self.status,
            "adminNotes": self.admin_notes,
            "tuteeNotes": self.tutee_notes,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class LearningPoint:
    """One stored row; several rows may share a session date."""

    id: str
    tutee_id: str
    session_date: str
    points: str  # "• point" per line
    tags: list[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""


@dataclass
class LearningPointSession:
    """All learning points of one tutee on one date, presented as one unit."""

    tutee_id: str
    session_date: str
    bullet_points: list[str]
    tags: list[str]
    created_at: str
    updated_at: str
    ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "tuteeId": self.tutee_id,
            "sessionDate": self.session_date,
            "bulletPoints": list(self.bullet_points),
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "ids": list(self.ids),
        }


@dataclass
class ReviewRecord:
    id: str
    tutee_id: str
    session_date: str
    last_reviewed: str  # ISO datetime
    review_count: int = 0
    history: list[dict] = field(default_factory=list)  # [{question, answer, feedback}]
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tuteeId": self.tutee_id,
            "sessionDate": self.session_date,
            "lastReviewed": self.last_reviewed,
            "reviewCount": self.review_count,
            "history": list(self.history),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class SharedFile:
    id: str
    tutee_id: str
    file_name: str  # original filename, or the link title
    file_path: str = ""  # bucket path; empty for links
    file_size: int = 0
    file_type: str = ""
    uploaded_by: str = ""
    created_at: str = ""
    kind: str = "file"  # file | link
    url: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tuteeId": self.tutee_id,
            "kind": self.kind,
            "fileName": self.file_name,
            "filePath": self.file_path,
            "fileSize": self.file_size,
            "fileType": self.file_type,
            "url": self.url,
            "uploadedBy": self.uploaded_by,
            "createdAt": self.created_at,
        }


@dataclass
class PushSubscription:
    id: int
    tutee_id: str
    endpoint: str
    p256dh: str
    auth: str
    user_agent: str = ""
    is_enabled: bool = True

    def subscription_info(self) -> dict:
        """Shape expected by pywebpush.webpush()."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }


@dataclass
class NotificationLog:
    id: int
    tutee_id: str
    type: str
    title: str
    body: str
    url: str
    status: str  # sent | failed | no_subscriptions
    sent_count: int = 0
    error: str = ""
    data: dict = field(default_factory=dict)
    created_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tuteeId": self.tutee_id,
            "type": self.type,
            "title": self.title,
            "body": self.body,
            "url": self.url,
            "status": self.status,
            "sentCount": self.sent_count,
            "error": self.error or None,
            "data": self.data,
            "createdAt": self.created_at,
        }


@dataclass
class DashboardComponent:
    id: str
    name: str
    display_name: str
    component_type: str
    description: Optional[str] = None
    config: dict = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "displayName": self.display_name,
            "description": self.description,
            "componentType": self.component_type,
            "config": self.config,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class TuteeComponent:
    id: str
    tutee_id: str
    component_id: str
    display_order: int = 0
    is_active: bool = True
    config: dict = field(default_factory=dict)
    component: Optional[DashboardComponent] = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tuteeId": self.tutee_id,
            "componentId": self.component_id,
            "displayOrder": self.display_order,
            "isActive": self.is_active,
            "config": self.config,
            "component": self.component.to_dict() if self.component else None,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Feedback:
    id: str
    tutee_id: str
    type: str  # bug | feature_request | question | other
    title: str
    description: str = ""
    status: str = "open"
    priority: str = "medium"
    admin_notes: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""
    tutee: Optional[Tutee] = None  # joined in for the admin list

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "tuteeId": self.tutee_id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "adminNotes": self.admin_notes,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.tutee is not None:
            data["tuteeName"] = self.tutee.name
            data["tuteeIcon"] = self.tutee.icon
            data["tuteeColorScheme"] = self.tutee.to_dict()["colorScheme"]
        return data


@dataclass
class Message:
    """Direct message; sender_id and receiver_id are a tutee id or "admin"."""

    id: str
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool = False
    created_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "senderId": self.sender_id,
            "receiverId": self.receiver_id,
            "content": self.content,
            "isRead": self.is_read,
            "createdAt": self.created_at,
        }


@dataclass
class Worksheet:
    id: str
    tutee_id: str
    worksheet_name: str
    completed_date: str  # YYYY-MM-DD
    student_name: str = ""
    status: str = "Upcoming"  # Upcoming | In Progress | Completed
    completion_percentage: int = 0
    notes: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tuteeId": self.tutee_id,
            "worksheetName": self.worksheet_name,
            "studentName": self.student_name,
            "completedDate": self.completed_date,
            "status": self.status,
            "completionPercentage": self.completion_percentage,
            "notes": self.notes,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

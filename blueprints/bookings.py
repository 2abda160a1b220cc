"""Booking request routes and the admin approval workflow."""

from __future__ import annotations

import logging
import sqlite3

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from db_stores import AvailableDateStoreDB, BookingRequestStoreDB, TuteeStoreDB
from helpers import (
    admin_required,
    api_error,
    can_access,
    is_admin,
    json_body,
    parse_date,
    parse_time_range,
)
from models import ADMIN_RECIPIENT, BOOKING_STATUSES, BookingRequest
from push import notify

logger = logging.getLogger(__name__)

bp = Blueprint("bookings", __name__)


def _notify_status(booking: BookingRequest) -> None:
    """Tell the tutee their request was approved or rejected."""
    if booking.status not in ("approved", "rejected"):
        return
    notify(
        "booking_update",
        booking.tutee_id,
        "Request Approved! ✅" if booking.status == "approved" else "Request Update ℹ️",
        f"Your booking for {booking.requested_date} has been {booking.status}.",
        "/tuition",
    )


def _load_for_current_user(request_id: str):
    """Fetch a booking the caller may see, or an error response."""
    booking = BookingRequestStoreDB.get(request_id)
    if booking is None:
        return None, (jsonify({"error": "Booking request not found"}), 404)
    if not can_access(booking.tutee_id):
        return None, (jsonify({"error": "Access denied"}), 403)
    return booking, None


@bp.route("/api/bookings")
@login_required
def list_bookings():
    status = request.args.get("status", "")
    if status and status not in BOOKING_STATUSES:
        return jsonify({"error": "Unknown status"}), 400
    tutee_id = request.args.get("tuteeId", "") if is_admin() else current_user.tutee_id
    try:
        bookings = BookingRequestStoreDB.list(status=status, tutee_id=tutee_id)
    except sqlite3.Error:
        return api_error("load booking requests")
    return jsonify({"bookings": [b.to_dict() for b in bookings]})


@bp.route("/api/bookings/<request_id>")
@login_required
def get_booking(request_id):
    booking, error = _load_for_current_user(request_id)
    if error:
        return error
    return jsonify({"booking": booking.to_dict()})


@bp.route("/api/bookings", methods=["POST"])
@login_required
def create_booking():
    data = json_body()
    tutee_id = data.get("tuteeId", "") if is_admin() else current_user.tutee_id
    if not isinstance(tutee_id, str):
        return jsonify({"error": "tuteeId must be text"}), 400
    if not tutee_id or not TuteeStoreDB.exists(tutee_id):
        return jsonify({"error": "Tutee not found"}), 404
    try:
        requested_date = parse_date(data.get("requestedDate"))
        start_time, end_time = parse_time_range(
            data.get("requestedStartTime"), data.get("requestedEndTime"),
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    try:
        booking = BookingRequestStoreDB.create(
            tutee_id, requested_date, start_time, end_time,
            tutee_notes=str(data.get("tuteeNotes") or "").strip(),
        )
    except sqlite3.Error:
        return api_error("create booking request")

    notify(
        "new_booking",
        ADMIN_RECIPIENT,
        "New Booking Request! 📅",
        f"A new session has been requested for {requested_date}.",
        "/tuition",
    )
    return jsonify({"booking": booking.to_dict()}), 201


@bp.route("/api/bookings/<request_id>", methods=["PATCH"])
@admin_required
def update_booking(request_id):
    data = json_body()
    fields = {}
    try:
        if "status" in data:
            if data["status"] not in BOOKING_STATUSES:
                raise ValueError("Unknown status")
            fields["status"] = data["status"]
        if "requestedDate" in data:
            fields["requested_date"] = parse_date(data["requestedDate"])
        if "requestedStartTime" in data or "requestedEndTime" in data:
            current = BookingRequestStoreDB.get(request_id)
            if current is None:
                return jsonify({"error": "Booking request not found"}), 404
            start, end = parse_time_range(
                data.get("requestedStartTime", current.requested_start_time),
                data.get("requestedEndTime", current.requested_end_time),
            )
            fields["requested_start_time"], fields["requested_end_time"] = start, end
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    if "adminNotes" in data:
        fields["admin_notes"] = str(data["adminNotes"] or "")
    if "tuteeNotes" in data:
        fields["tutee_notes"] = str(data["tuteeNotes"] or "")

    try:
        booking = BookingRequestStoreDB.update(request_id, **fields)
    except sqlite3.Error:
        return api_error("update booking request")
    if booking is None:
        return jsonify({"error": "Booking request not found"}), 404
    if "status" in fields:
        _notify_status(booking)
    return jsonify({"booking": booking.to_dict()})


@bp.route("/api/bookings/<request_id>", methods=["DELETE"])
@login_required
def delete_booking(request_id):
    booking, error = _load_for_current_user(request_id)
    if error:
        return error
    if not is_admin() and booking.status != "pending":
        return jsonify({"error": "Only pending requests can be deleted"}), 400
    try:
        BookingRequestStoreDB.delete(request_id)
    except sqlite3.Error:
        return api_error("delete booking request")
    return jsonify({"success": True})


def approve_and_book(booking: BookingRequest, admin_notes: str | None = None) -> tuple:
    """Approve a request and book a matching calendar slot for the tutee.

    Reuses an open slot reserved for the tutee on the requested date, moving
    it to the requested times, or creates a new one. The steps are separate
    writes; the caller reports a failure part way.
    """
    approved = BookingRequestStoreDB.update(booking.id, status="approved", admin_notes=admin_notes)

    slot = AvailableDateStoreDB.find_open_slot(booking.requested_date, booking.tutee_id)
    if slot:
        slot = AvailableDateStoreDB.update(slot.id, {
            "start_time": booking.requested_start_time,
            "end_time": booking.requested_end_time,
        })
    else:
        slot = AvailableDateStoreDB.create(
            booking.requested_date,
            booking.requested_start_time,
            booking.requested_end_time,
            tutee_id=booking.tutee_id,
        )
    slot = AvailableDateStoreDB.book(slot.id, booking.tutee_id)
    logger.info("Booking %s approved; slot %s booked for %s", booking.id, slot.id, booking.tutee_id)
    return approved, slot


@bp.route("/api/bookings/<request_id>/approve", methods=["POST"])
@admin_required
def approve_booking(request_id):
    booking = BookingRequestStoreDB.get(request_id)
    if booking is None:
        return jsonify({"error": "Booking request not found"}), 404
    if booking.status != "pending":
        return jsonify({"error": f"Request is already {booking.status}"}), 400

    notes = json_body().get("adminNotes")
    if not isinstance(notes, (str, type(None))):
        return jsonify({"error": "adminNotes must be text"}), 400
    try:
        approved, slot = approve_and_book(booking, notes)
    except sqlite3.Error:
        return api_error("approve booking request")
    _notify_status(approved)
    return jsonify({"booking": approved.to_dict(), "slot": slot.to_dict()})


@bp.route("/api/bookings/<request_id>/reject", methods=["POST"])
@admin_required
def reject_booking(request_id):
    booking = BookingRequestStoreDB.get(request_id)
    if booking is None:
        return jsonify({"error": "Booking request not found"}), 404
    if booking.status != "pending":
        return jsonify({"error": f"Request is already {booking.status}"}), 400

    notes = json_body().get("adminNotes")
    if not isinstance(notes, (str, type(None))):
        return jsonify({"error": "adminNotes must be text"}), 400
    try:
        rejected = BookingRequestStoreDB.update(request_id, status="rejected", admin_notes=notes)
    except sqlite3.Error:
        return api_error("reject booking request")
    _notify_status(rejected)
    return jsonify({"booking": rejected.to_dict()})


@bp.route("/api/bookings/<request_id>/cancel", methods=["POST"])
@login_required
def cancel_booking(request_id):
    booking, error = _load_for_current_user(request_id)
    if error:
        return error
    if booking.status in ("cancelled", "rejected"):
        return jsonify({"error": f"Request is already {booking.status}"}), 400
    try:
        cancelled = BookingRequestStoreDB.update(request_id, status="cancelled")
    except sqlite3.Error:
        return api_error("cancel booking request")
    return jsonify({"booking": cancelled.to_dict()})

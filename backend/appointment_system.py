#!/usr/bin/env python3
"""
Forward Horizon Appointment System
Scheduling, confirmation and reminder messages for veteran appointments.

Appointments are stored in <data_dir>/appointments.json keyed by id.
Reminder flow:
  - 24 hours before: first reminder (remindersSent 0 -> 1)
  - 2 hours before:  second reminder (remindersSent 1 -> 2)
  - booked inside the 2-hour window: only the 2-hour reminder (remindersSent 0 -> 2)

The reminder job runs on a scheduler thread, so the store is guarded by one lock.
"""

import logging
import os
import threading
from datetime import timedelta

import email_delivery
import org_info
from email_delivery import OutgoingEmail
from json_store import load_json, save_json

logger = logging.getLogger(__name__)

APPOINTMENTS_FILENAME = 'appointments.json'
DEFAULT_APPOINTMENT_TYPE = 'Initial Consultation'
DEFAULT_UPCOMING_DAYS = 7

OFFICE_LOCATION = f'{org_info.SHORT_NAME} Office'

# Sample data for the public /api/appointments GET actions
SAMPLE_UPCOMING = [
    {
        'id': 'APT-001',
        'veteranName': 'John Smith',
        'scheduledTime': '2025-03-01T14:00:00Z',
        'appointmentType': 'Initial Consultation',
        'status': 'confirmed',
    },
    {
        'id': 'APT-002',
        'veteranName': 'Jane Doe',
        'scheduledTime': '2025-03-02T10:30:00Z',
        'appointmentType': 'Follow-up',
        'status': 'pending',
    },
]

SAMPLE_STATS = {
    'totalAppointments': 156,
    'thisWeek': 12,
    'thisMonth': 43,
    'completionRate': 94.5,
    'averageWaitTime': '3.2 days',
    'mostCommonType': 'Initial Consultation',
}


def parse_days(value, default=DEFAULT_UPCOMING_DAYS):
    """?days= query value; anything non-numeric or non-positive gives the default."""
    try:
        days = int(value)
    except (TypeError, ValueError):
        return default
    return days if days > 0 else default


def quick_schedule(data):
    """
    Appointment record for POST /api/appointments?action=schedule.
    Raises ValueError if scheduledTime is not a valid date.
    """
    scheduled = org_info.parse_datetime(data['scheduledTime'])
    phone = data.get('phone')
    appointment = {
        'id': org_info.make_id('APT'),
        'veteranName': data['veteranName'],
        'email': data['email'],
        'phone': phone or 'Not provided',
        'scheduledTime': org_info.to_utc_iso(scheduled),
        'appointmentType': data.get('appointmentType') or DEFAULT_APPOINTMENT_TYPE,
        'status': 'scheduled',
    }
    return {
        'appointment': appointment,
        'confirmationEmail': f"Confirmation sent to {data['email']}",
        'confirmationSMS': f'SMS reminder sent to {phone}' if phone else 'No phone provided',
    }


class AppointmentSystem:
    def __init__(self, data_dir, clock=None):
        self.path = os.path.join(data_dir, APPOINTMENTS_FILENAME)
        self.clock = clock or org_info.now_local
        self.appointments = load_json(self.path, {})
        self._lock = threading.RLock()

    def save(self):
        with self._lock:
            save_json(self.path, self.appointments)

    # ── Scheduling ───────────────────────────────────────

    def schedule_appointment(self, data):
        """Store a new appointment and build its confirmation messages."""
        scheduled = org_info.parse_datetime(data['scheduledTime'])
        with self._lock:
            appointment = {
                'id': org_info.make_unique_id('APT', self.appointments),
                'veteranName': data['veteranName'],
                'email': data['email'],
                'phone': data.get('phone'),
                'appointmentType': data.get('appointmentType') or DEFAULT_APPOINTMENT_TYPE,
                'scheduledTime': org_info.to_utc_iso(scheduled),
                'status': 'scheduled',
                'createdAt': org_info.to_utc_iso(self.clock()),
                'remindersSent': 0,
            }
            self.appointments[appointment['id']] = appointment
            self.save()

        confirmation = self.generate_confirmation(appointment)
        logger.info(f"[Appointments] Scheduled {appointment['id']} for {appointment['veteranName']}")
        return {
            'appointment': appointment,
            'confirmationEmail': confirmation['email'],
            'confirmationSMS': confirmation['sms'],
        }

    def generate_confirmation(self, appointment):
        when = org_info.parse_datetime(appointment['scheduledTime']).astimezone(org_info.LOCAL_TZ)
        date_text = f"{when.strftime('%A')}, {org_info.format_long_date(when)}"
        time_text = org_info.format_time(when)

        email = {
            'to': appointment['email'],
            'subject': f"Appointment Confirmed - {appointment['appointmentType']}",
            'html': f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h2 style="color: #2c5530;">Appointment Confirmed</h2>
          <p>Dear {appointment['veteranName']},</p>
          <p>Your appointment with {org_info.SHORT_NAME} has been confirmed:</p>
          <div style="background: #f8f9fa; padding: 20px; border-radius: 8px; margin: 20px 0;">
            <h3 style="margin-top: 0; color: #2c5530;">Appointment Details</h3>
            <p><strong>Type:</strong> {appointment['appointmentType']}</p>
            <p><strong>Date:</strong> {date_text}</p>
            <p><strong>Time:</strong> {time_text}</p>
            <p><strong>Location:</strong> {OFFICE_LOCATION}<br>{org_info.ADDRESS}</p>
          </div>
          <h4>What to Bring:</h4>
          <ul>
            <li>Photo ID (driver's license or state ID)</li>
            <li>DD-214 (military discharge papers) if available</li>
            <li>Any relevant medical or financial documents</li>
            <li>List of questions or concerns</li>
          </ul>
          <p><strong>Need to reschedule?</strong> Call us at {org_info.PHONE} at least 24 hours in advance.</p>
          <p>Best regards,<br>The {org_info.SHORT_NAME} Team<br>{org_info.PHONE}<br>{org_info.EMAIL}</p>
        </div>""",
        }
        sms = {
            'to': appointment.get('phone'),
            'message': (f"Hi {appointment['veteranName']}, your {appointment['appointmentType']} appointment "
                        f"is confirmed for {date_text} at {time_text}. Location: {OFFICE_LOCATION}. "
                        f"Need to reschedule? Call {org_info.PHONE}"),
        }
        return {'email': email, 'sms': sms}

    def generate_reminder(self, appointment, hours_until=24):
        when = org_info.parse_datetime(appointment['scheduledTime'])
        time_text = org_info.format_time(when)
        if hours_until == 24:
            time_frame = 'tomorrow'
        else:
            time_frame = f'in {hours_until} hours'

        return {
            'email': {
                'to': appointment['email'],
                'subject': f'Reminder: Your appointment {time_frame}',
                'html': f"""
          <p>Dear {appointment['veteranName']},</p>
          <p>This is a friendly reminder that your {appointment['appointmentType']} appointment is {time_frame} at {time_text}.</p>
          <p><strong>Location:</strong> {OFFICE_LOCATION}<br>{org_info.ADDRESS}</p>
          <p>Call {org_info.PHONE} if you need to reschedule.</p>
          <p>See you soon!</p>""",
            },
            'sms': {
                'to': appointment.get('phone'),
                'message': (f"Reminder: Your {appointment['appointmentType']} appointment is {time_frame} "
                            f"at {time_text}. {OFFICE_LOCATION}. Call {org_info.PHONE} if needed."),
            },
        }

    # ── Queries ──────────────────────────────────────────

    def _snapshot(self):
        with self._lock:
            return list(self.appointments.values())

    def _scheduled(self):
        for apt in self._snapshot():
            if apt.get('status') != 'scheduled':
                continue
            try:
                yield apt, org_info.parse_datetime(apt['scheduledTime'])
            except (KeyError, ValueError):
                logger.warning(f"[Appointments] Skipping {apt.get('id')} with bad scheduledTime")

    def get_upcoming_appointments(self, days=DEFAULT_UPCOMING_DAYS):
        now = self.clock()
        horizon = now + timedelta(days=days)
        upcoming = [(when, apt) for apt, when in self._scheduled() if now <= when <= horizon]
        upcoming.sort(key=lambda pair: pair[0])
        return [apt for _, apt in upcoming]

    def get_appointments_needing_reminders(self):
        """Appointments due a 24-hour or 2-hour reminder that has not gone out yet."""
        now = self.clock()
        due = []
        for apt, when in self._scheduled():
            if when < now:
                continue
            sent = apt.get('remindersSent', 0)
            if sent < 2 and when <= now + timedelta(hours=2):
                due.append({'appointment': apt, 'reminderType': '2hour'})
            elif sent == 0 and when <= now + timedelta(hours=24):
                due.append({'appointment': apt, 'reminderType': '24hour'})
        return due

    def mark_reminder_sent(self, appointment_id, reminder_type=None):
        """
        Count a sent reminder. A 2-hour reminder closes out both, so a late
        booking that skipped the 24-hour one is not reminded twice.
        """
        with self._lock:
            apt = self.appointments.get(appointment_id)
            if apt is None:
                return False
            if reminder_type == '2hour':
                apt['remindersSent'] = 2
            else:
                apt['remindersSent'] = min(apt.get('remindersSent', 0) + 1, 2)
            self.save()
        return True

    def get_stats(self):
        appointments = self._snapshot()
        week_ago = self.clock() - timedelta(days=7)

        this_week = 0
        for apt in appointments:
            try:
                if org_info.parse_datetime(apt.get('createdAt')) >= week_ago:
                    this_week += 1
            except ValueError:
                continue

        return {
            'total': len(appointments),
            'scheduled': sum(1 for a in appointments if a.get('status') == 'scheduled'),
            'completed': sum(1 for a in appointments if a.get('status') == 'completed'),
            'thisWeek': this_week,
            'upcoming': len(self.get_upcoming_appointments()),
        }

    # ── Reminder delivery ────────────────────────────────

    def send_due_reminders(self, deliver=None):
        """Email every due reminder through the delivery chain. Returns the number sent."""
        deliver = deliver or email_delivery.deliver
        sent = 0
        for item in self.get_appointments_needing_reminders():
            apt = item['appointment']
            hours = 24 if item['reminderType'] == '24hour' else 2
            email = self.generate_reminder(apt, hours)['email']
            result = deliver(OutgoingEmail(to=email['to'], subject=email['subject'], body=None, html=email['html']))
            if result['success']:
                self.mark_reminder_sent(apt['id'], item['reminderType'])
                sent += 1
            else:
                logger.warning(f"[Appointments] {item['reminderType']} reminder for {apt['id']} not sent")
        if sent:
            logger.info(f"[Appointments] Sent {sent} reminder(s)")
        return sent

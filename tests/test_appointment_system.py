#!/usr/bin/env python3
"""
Tests for appointment scheduling, confirmations, reminder windows
and reminder delivery. The store clock is pinned so windows are exact.
"""

import os
import sys
import shutil
import tempfile
import unittest
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytz

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from appointment_system import AppointmentSystem, parse_days, quick_schedule

NOW = pytz.utc.localize(datetime(2025, 3, 1, 18, 0, 0))


def _iso(dt):
    return dt.strftime('%Y-%m-%dT%H:%M:%SZ')


class AppointmentTestBase(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.now = NOW
        self.system = AppointmentSystem(self.tmpdir, clock=lambda: self.now)

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _schedule(self, hours_ahead, name='John Smith', **extra):
        data = {
            'veteranName': name,
            'email': 'john@x.com',
            'scheduledTime': _iso(NOW + timedelta(hours=hours_ahead)),
        }
        data.update(extra)
        return self.system.schedule_appointment(data)['appointment']


class TestQuickSchedule(unittest.TestCase):

    def test_defaults(self):
        result = quick_schedule({'veteranName': 'John Smith', 'email': 'john@x.com',
                                 'scheduledTime': '2025-03-01T14:00:00Z'})
        apt = result['appointment']
        self.assertTrue(apt['id'].startswith('APT-'))
        self.assertEqual(apt['status'], 'scheduled')
        self.assertEqual(apt['appointmentType'], 'Initial Consultation')
        self.assertEqual(apt['phone'], 'Not provided')
        self.assertEqual(apt['scheduledTime'], '2025-03-01T14:00:00.000Z')
        self.assertEqual(result['confirmationEmail'], 'Confirmation sent to john@x.com')
        self.assertEqual(result['confirmationSMS'], 'No phone provided')

    def test_phone_gets_sms(self):
        result = quick_schedule({'veteranName': 'J', 'email': 'j@x.com', 'phone': '3104885280',
                                 'scheduledTime': '2025-03-01T14:00:00Z'})
        self.assertEqual(result['confirmationSMS'], 'SMS reminder sent to 3104885280')

    def test_invalid_date_raises(self):
        with self.assertRaises(ValueError):
            quick_schedule({'veteranName': 'J', 'email': 'j@x.com', 'scheduledTime': 'next tuesday'})

    def test_parse_days(self):
        self.assertEqual(parse_days('14'), 14)
        self.assertEqual(parse_days(None), 7)
        self.assertEqual(parse_days('abc'), 7)
        self.assertEqual(parse_days('-3'), 7)


class TestScheduling(AppointmentTestBase):

    def test_schedule_persists(self):
        apt = self._schedule(48, appointmentType='Follow-up')
        self.assertEqual(apt['remindersSent'], 0)
        reloaded = AppointmentSystem(self.tmpdir, clock=lambda: self.now)
        self.assertEqual(reloaded.appointments[apt['id']]['appointmentType'], 'Follow-up')

    def test_confirmation_in_local_time(self):
        result = self.system.schedule_appointment({
            'veteranName': 'John Smith', 'email': 'john@x.com',
            'scheduledTime': '2025-03-01T22:00:00Z',
        })
        email = result['confirmationEmail']
        self.assertEqual(email['subject'], 'Appointment Confirmed - Initial Consultation')
        # 22:00 UTC is 2:00 PM in Los Angeles in March (PST)
        self.assertIn('2:00 PM', email['html'])
        self.assertIn('Saturday, March 1, 2025', email['html'])
        self.assertIn('2:00 PM', result['confirmationSMS']['message'])

    def test_same_millisecond_bookings_keep_both(self):
        with patch('org_info.epoch_ms', return_value=1740852000000):
            first = self._schedule(48, name='First')
            second = self._schedule(49, name='Second')
        self.assertEqual(first['id'], 'APT-1740852000000')
        self.assertNotEqual(first['id'], second['id'])
        reloaded = AppointmentSystem(self.tmpdir, clock=lambda: self.now)
        self.assertEqual(len(reloaded.appointments), 2)

    def test_invalid_time_rejected(self):
        with self.assertRaises(ValueError):
            self.system.schedule_appointment({'veteranName': 'J', 'email': 'j@x.com', 'scheduledTime': ''})
        self.assertEqual(self.system.appointments, {})

    def test_reminder_wording(self):
        apt = self._schedule(24)
        self.assertIn('tomorrow', self.system.generate_reminder(apt, 24)['email']['subject'])
        self.assertIn('in 2 hours', self.system.generate_reminder(apt, 2)['sms']['message'])


class TestQueries(AppointmentTestBase):

    def test_upcoming_sorted_within_horizon(self):
        later = self._schedule(72, name='Later')
        sooner = self._schedule(5, name='Sooner')
        self._schedule(24 * 10, name='Too far')
        self._schedule(-2, name='Past')
        upcoming = self.system.get_upcoming_appointments(7)
        self.assertEqual([a['id'] for a in upcoming], [sooner['id'], later['id']])
        self.assertEqual(len(self.system.get_upcoming_appointments(14)), 3)

    def test_reminder_windows(self):
        day_out = self._schedule(20, name='Twenty hours')
        soon = self._schedule(1, name='One hour')
        later = self._schedule(30, name='Thirty hours')
        due = {d['appointment']['id']: d['reminderType'] for d in self.system.get_appointments_needing_reminders()}
        self.assertEqual(due, {day_out['id']: '24hour', soon['id']: '2hour'})

        self.system.mark_reminder_sent(day_out['id'], '24hour')
        self.system.mark_reminder_sent(soon['id'], '2hour')
        self.assertEqual(self.system.get_appointments_needing_reminders(), [])

        self.now = NOW + timedelta(hours=19)
        due = {d['appointment']['id']: d['reminderType'] for d in self.system.get_appointments_needing_reminders()}
        self.assertEqual(due, {day_out['id']: '2hour', later['id']: '24hour'})

    def test_second_reminder_waits_for_two_hour_window(self):
        apt = self._schedule(10)
        self.system.mark_reminder_sent(apt['id'])
        self.assertEqual(self.system.get_appointments_needing_reminders(), [])

    def test_mark_unknown_appointment(self):
        self.assertFalse(self.system.mark_reminder_sent('APT-missing'))

    def test_stats(self):
        self._schedule(5)
        apt = self._schedule(50)
        self.system.appointments[apt['id']]['status'] = 'completed'
        stats = self.system.get_stats()
        self.assertEqual(stats['total'], 2)
        self.assertEqual(stats['scheduled'], 1)
        self.assertEqual(stats['completed'], 1)
        self.assertEqual(stats['thisWeek'], 2)
        self.assertEqual(stats['upcoming'], 1)


class TestReminderDelivery(AppointmentTestBase):

    def test_late_booking_gets_one_reminder(self):
        apt = self._schedule(1)
        deliver = MagicMock(return_value={'success': True, 'provider': 'Test'})
        self.assertEqual(self.system.send_due_reminders(deliver=deliver), 1)
        self.assertIn('in 2 hours', deliver.call_args[0][0].subject)
        self.assertEqual(self.system.appointments[apt['id']]['remindersSent'], 2)
        self.assertEqual(self.system.send_due_reminders(deliver=deliver), 0)

    def test_booking_during_reminder_scan(self):
        self._schedule(10, name='A')
        self._schedule(11, name='B')
        scan = self.system._scheduled()
        next(scan)
        self._schedule(12, name='Booked mid-scan')
        self.assertEqual(len(list(scan)), 1)

        def deliver(message):
            self._schedule(13, name='Booked while sending')
            return {'success': True, 'provider': 'Test'}

        self.assertEqual(self.system.send_due_reminders(deliver=deliver), 3)
        self.assertEqual(len(self.system.appointments), 6)

    def test_sent_reminders_are_marked(self):
        apt = self._schedule(12)
        deliver = MagicMock(return_value={'success': True, 'provider': 'Test'})
        self.assertEqual(self.system.send_due_reminders(deliver=deliver), 1)
        message = deliver.call_args[0][0]
        self.assertEqual(message.to, 'john@x.com')
        self.assertIn('tomorrow', message.subject)
        self.assertEqual(self.system.appointments[apt['id']]['remindersSent'], 1)

    def test_failed_delivery_leaves_reminder_due(self):
        apt = self._schedule(12)
        deliver = MagicMock(return_value={'success': False, 'errors': []})
        self.assertEqual(self.system.send_due_reminders(deliver=deliver), 0)
        self.assertEqual(self.system.appointments[apt['id']]['remindersSent'], 0)


if __name__ == '__main__':
    unittest.main()

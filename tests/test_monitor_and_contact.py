#!/usr/bin/env python3
"""
Tests for the system monitor counters/activity log and the contact form
helpers (submission record, notification emails, n8n forwarding).
"""

import os
import sys
import shutil
import tempfile
import unittest
from unittest.mock import patch, MagicMock

import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

import contact_form
from system_monitor import SystemMonitor, MAX_ACTIVITY_ENTRIES

SUBMISSION_DATA = {
    'firstName': 'John',
    'lastName': 'Smith',
    'email': 'john@x.com',
    'message': 'I need help finding housing.\nPlease call me.',
}


class TestSystemMonitor(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.now = 1_700_000_000.0
        self.monitor = SystemMonitor(self.tmpdir, clock=lambda: self.now)

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_activity_newest_first_and_capped(self):
        for i in range(MAX_ACTIVITY_ENTRIES + 5):
            self.monitor.log('Email Sent', {'n': i})
        self.assertEqual(len(self.monitor.activity), MAX_ACTIVITY_ENTRIES)
        self.assertEqual(self.monitor.activity[0]['details'], {'n': MAX_ACTIVITY_ENTRIES + 4})

    def test_counters_persist(self):
        self.monitor.increment('documentsGenerated')
        self.monitor.increment('documentsGenerated')
        reloaded = SystemMonitor(self.tmpdir, clock=lambda: self.now)
        self.assertEqual(reloaded.stats['documentsGenerated'], 2)

    def test_unknown_counter(self):
        with self.assertRaises(KeyError):
            self.monitor.increment('pizzasOrdered')

    def test_status(self):
        self.monitor.log('Document Generated')
        self.now += 3 * 60 * 60 + 5
        status = self.monitor.get_status()
        self.assertEqual(status['status'], 'healthy')
        self.assertEqual(status['uptime'], '3 hours')
        self.assertEqual(status['services']['appointmentSystem'], 'active')
        self.assertEqual(len(status['recentActivity']), 1)
        self.assertIn('environment', status)

    def test_daily_report_counts_today(self):
        self.monitor.log('Document Generated')
        self.monitor.log('Email Sent')
        self.monitor.log('Appointment Scheduled')
        report = self.monitor.generate_daily_report()
        self.assertEqual(report['totalActivities'], 3)
        self.assertEqual(report['documentsGenerated'], 1)
        self.assertEqual(report['emailsSent'], 1)
        self.assertEqual(report['appointments'], 1)
        self.assertEqual(report['donations'], 0)


class TestContactForm(unittest.TestCase):

    def test_build_submission_defaults(self):
        submission = contact_form.build_submission(SUBMISSION_DATA)
        self.assertEqual(submission['name'], 'John Smith')
        self.assertEqual(submission['phone'], 'Not provided')
        self.assertEqual(submission['service'], 'General Inquiry')
        self.assertFalse(submission['consent'])
        self.assertEqual(submission['source'], 'Direct submission')

    def test_consent_checkbox_value(self):
        data = dict(SUBMISSION_DATA, consent='on')
        self.assertTrue(contact_form.build_submission(data)['consent'])

    def test_numeric_fields_become_text(self):
        data = dict(SUBMISSION_DATA, phone=3104885280, service=2)
        submission = contact_form.build_submission(data)
        self.assertEqual(submission['phone'], '3104885280')
        self.assertEqual(submission['service'], '2')
        self.assertIn('3104885280', contact_form.admin_notification(submission).html)
        self.assertIn('Service Requested:</strong> 2', contact_form.confirmation_email(submission).html)

    def test_confirmation_email(self):
        submission = contact_form.build_submission(SUBMISSION_DATA, 'https://theforwardhorizon.com/contact')
        email = contact_form.confirmation_email(submission)
        self.assertEqual(email.to, 'john@x.com')
        self.assertEqual(email.subject, 'Thank you for contacting Forward Horizon, John')
        self.assertIn('housing.<br>Please call me.', email.html)
        self.assertIn('Please call me.', email.body)

    def test_admin_notification_goes_to_admin(self):
        submission = contact_form.build_submission(SUBMISSION_DATA)
        with patch.dict(os.environ, {'ADMIN_EMAIL': 'staff@theforwardhorizon.com'}):
            email = contact_form.admin_notification(submission)
        self.assertEqual(email.to, 'staff@theforwardhorizon.com')
        self.assertEqual(email.subject, 'New Contact Form Submission from John Smith')
        self.assertIn('mailto:john@x.com', email.html)

    def test_n8n_url_ignores_placeholder(self):
        with patch.dict(os.environ, {'N8N_WEBHOOK_URL': contact_form.N8N_PLACEHOLDER_URL}):
            self.assertIsNone(contact_form.n8n_webhook_url())
        with patch.dict(os.environ, {'N8N_WEBHOOK_URL': 'https://n8n.example.com/webhook/fh'}):
            self.assertEqual(contact_form.n8n_webhook_url(), 'https://n8n.example.com/webhook/fh')

    @patch('contact_form.requests.post')
    def test_forward_to_n8n(self, mock_post):
        mock_post.return_value = MagicMock(ok=True, status_code=200)
        self.assertTrue(contact_form.forward_to_n8n({'a': 1}, url='https://n8n.example.com/hook'))
        mock_post.assert_called_once_with('https://n8n.example.com/hook', json={'a': 1},
                                          timeout=contact_form.N8N_TIMEOUT)

    @patch('contact_form.requests.post')
    def test_forward_to_n8n_failures(self, mock_post):
        mock_post.return_value = MagicMock(ok=False, status_code=502)
        self.assertFalse(contact_form.forward_to_n8n({}, url='https://n8n.example.com/hook'))
        mock_post.side_effect = requests.exceptions.Timeout('slow')
        self.assertFalse(contact_form.forward_to_n8n({}, url='https://n8n.example.com/hook'))

    @patch('contact_form.requests.post')
    def test_forward_without_url_is_skipped(self, mock_post):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop('N8N_WEBHOOK_URL', None)
            self.assertFalse(contact_form.forward_to_n8n({}))
        mock_post.assert_not_called()


if __name__ == '__main__':
    unittest.main()

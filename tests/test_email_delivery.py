#!/usr/bin/env python3
"""
Tests for the email fallback chain.

Provider HTTP calls are mocked at requests.post and backoff sleeps are
captured instead of slept, so nothing leaves the machine.
"""

import os
import sys
import unittest
from unittest.mock import patch, MagicMock

import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from email_delivery import (
    OutgoingEmail, EmailDeliveryError, Web3FormsSender, ResendSender, EmailJSSender,
    GmailSender, SendGridSender, send_with_retry, deliver, not_sent_response,
    generate_simple_html,
)

PROVIDER_ENV = (
    'WEB3FORMS_ACCESS_KEY', 'RESEND_API_KEY', 'EMAILJS_SERVICE_ID', 'EMAILJS_TEMPLATE_ID',
    'EMAILJS_USER_ID', 'SENDGRID_API_KEY', 'GMAIL_USER', 'GMAIL_APP_PASSWORD',
)


def _response(status=200, payload=None):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.json.return_value = payload if payload is not None else {'success': True}
    return resp


class EmailTestBase(unittest.TestCase):
    """Clears every provider credential so each test opts in explicitly."""

    def setUp(self):
        self._saved_env = {k: os.environ.pop(k) for k in PROVIDER_ENV if k in os.environ}
        self.sleeps = []
        self.message = OutgoingEmail('veteran@example.com', 'Welcome', 'Hello there\nSee you soon')

    def tearDown(self):
        for key in PROVIDER_ENV:
            os.environ.pop(key, None)
        os.environ.update(self._saved_env)

    def _sleep(self, seconds):
        self.sleeps.append(seconds)


class TestOutgoingEmail(EmailTestBase):

    def test_html_generated_from_body(self):
        html = self.message.html_content
        self.assertIn('Hello there<br>See you soon', html)
        self.assertIn('Forward Horizon', html)

    def test_plain_text_derived_from_html(self):
        msg = OutgoingEmail('a@b.com', 'S', None, html='<p>One</p><p>Two<br>Three</p>')
        self.assertEqual(msg.plain_text, 'One\n\nTwo\nThree')

    def test_simple_html_escapes_body(self):
        self.assertIn('&lt;script&gt;', generate_simple_html('<script>'))


class TestSendWithRetry(EmailTestBase):

    def test_retries_with_exponential_backoff(self):
        sender = MagicMock()
        sender.max_attempts = 3
        sender.label = 'Flaky'
        sender.send.side_effect = [
            EmailDeliveryError('Flaky', 'timeout'),
            EmailDeliveryError('Flaky', 'timeout'),
            {'ok': True},
        ]
        result = send_with_retry(sender, self.message, base_delay=1.0, sleep=self._sleep)
        self.assertEqual(result, {'ok': True})
        self.assertEqual(self.sleeps, [1.0, 2.0])

    def test_reraises_after_last_attempt(self):
        sender = MagicMock()
        sender.max_attempts = 3
        sender.label = 'Broken'
        sender.send.side_effect = EmailDeliveryError('Broken', 'down')
        with self.assertRaises(EmailDeliveryError):
            send_with_retry(sender, self.message, base_delay=0.5, sleep=self._sleep)
        self.assertEqual(sender.send.call_count, 3)
        self.assertEqual(self.sleeps, [0.5, 1.0])


class TestDeliverChain(EmailTestBase):

    def test_nothing_configured_is_not_sent(self):
        with patch('email_delivery.requests.post') as mock_post:
            result = deliver(self.message, sleep=self._sleep)
        self.assertFalse(result['success'])
        self.assertEqual(result['errors'], [])
        mock_post.assert_not_called()

    @patch('email_delivery.requests.post')
    def test_web3forms_first_when_configured(self, mock_post):
        os.environ['WEB3FORMS_ACCESS_KEY'] = 'key'
        os.environ['RESEND_API_KEY'] = 're_key'
        mock_post.return_value = _response(200, {'success': True})
        result = deliver(self.message, sleep=self._sleep)
        self.assertTrue(result['success'])
        self.assertEqual(result['name'], 'web3forms')
        self.assertEqual(mock_post.call_count, 1)
        self.assertEqual(mock_post.call_args[0][0], Web3FormsSender.url)

    @patch('email_delivery.requests.post')
    def test_falls_back_to_resend_after_web3forms_retries(self, mock_post):
        os.environ['WEB3FORMS_ACCESS_KEY'] = 'key'
        os.environ['RESEND_API_KEY'] = 're_key'
        mock_post.side_effect = [
            _response(500), _response(500), _response(500),
            _response(200, {'id': 'email_123'}),
        ]
        result = deliver(self.message, sleep=self._sleep)
        self.assertTrue(result['success'])
        self.assertEqual(result['name'], 'resend')
        self.assertEqual(result['result'], {'id': 'email_123'})
        self.assertEqual(mock_post.call_count, 4)
        self.assertEqual(len(self.sleeps), 2)
        resend_call = mock_post.call_args_list[-1]
        self.assertEqual(resend_call[0][0], ResendSender.url)
        self.assertEqual(resend_call[1]['headers']['Authorization'], 'Bearer re_key')

    @patch('email_delivery.requests.post')
    def test_web3forms_rejection_in_body_counts_as_failure(self, mock_post):
        os.environ['WEB3FORMS_ACCESS_KEY'] = 'key'
        os.environ['EMAILJS_SERVICE_ID'] = 'service_1'
        mock_post.side_effect = [
            _response(200, {'success': False, 'message': 'bad key'}),
            _response(200, {'success': False, 'message': 'bad key'}),
            _response(200, {'success': False, 'message': 'bad key'}),
            _response(200),
        ]
        result = deliver(self.message, sleep=self._sleep)
        self.assertEqual(result['name'], 'emailjs')
        self.assertEqual(mock_post.call_args[0][0], EmailJSSender.url)

    @patch('email_delivery.requests.post')
    def test_network_errors_reported_per_provider(self, mock_post):
        os.environ['RESEND_API_KEY'] = 're_key'
        os.environ['EMAILJS_SERVICE_ID'] = 'service_1'
        mock_post.side_effect = requests.exceptions.ConnectionError('refused')
        result = deliver(self.message, sleep=self._sleep)
        self.assertFalse(result['success'])
        self.assertEqual([e['provider'] for e in result['errors']],
                         ['Resend Free Tier', 'EmailJS Free Tier'])

    def test_explicit_sender_list(self):
        sender = MagicMock()
        sender.is_configured.return_value = True
        sender.max_attempts = 1
        sender.label = 'Custom'
        sender.name = 'custom'
        sender.send.return_value = {'queued': True}
        result = deliver(self.message, senders=[sender], sleep=self._sleep)
        self.assertEqual(result['provider'], 'Custom')


class TestNotSentResponse(EmailTestBase):

    def test_describes_free_options(self):
        body = not_sent_response(self.message)
        self.assertFalse(body['success'])
        self.assertEqual(body['emailPrepared']['to'], 'veteran@example.com')
        self.assertEqual(set(body['freeOptions']), {'option1', 'option2', 'option3'})
        self.assertIn('quickStart', body)
        self.assertNotIn('errors', body)

    def test_includes_provider_errors(self):
        errors = [{'provider': 'Resend Free Tier', 'error': 'API error: 500'}]
        body = not_sent_response(self.message, errors)
        self.assertEqual(body['errors'], errors)


class TestStandaloneSenders(EmailTestBase):

    def test_gmail_requires_credentials(self):
        self.assertFalse(GmailSender().is_configured())
        with self.assertRaises(EmailDeliveryError):
            GmailSender().send(self.message)

    def test_gmail_prepares_message(self):
        os.environ['GMAIL_USER'] = 'forwardhorizon@gmail.com'
        os.environ['GMAIL_APP_PASSWORD'] = 'app-password'
        result = GmailSender().send(self.message)
        self.assertTrue(result['prepared'])
        self.assertEqual(result['emailData']['to'], 'veteran@example.com')
        self.assertIn('forwardhorizon@gmail.com', result['emailData']['from'])
        self.assertGreater(result['size'], 0)

    def test_sendgrid_key_from_argument_or_env(self):
        self.assertFalse(SendGridSender().is_configured())
        self.assertTrue(SendGridSender(api_key='SG.test').is_configured())
        os.environ['SENDGRID_API_KEY'] = 'SG.env'
        self.assertEqual(SendGridSender().api_key, 'SG.env')


if __name__ == '__main__':
    unittest.main()

#!/usr/bin/env python3
"""
Forward Horizon Email Delivery

Outgoing mail goes through an ordered chain of provider senders:

  - Web3Forms:  free, retried with exponential backoff (3 attempts)
  - Resend:     free tier, 3,000 emails/month
  - EmailJS:    free tier, 200 emails/month

The first sender that does not raise wins. Unconfigured senders are skipped.
If nothing is configured or everything fails, the caller gets a "not sent"
result and decides how to report it.

SendGrid and Gmail are standalone senders used by their own endpoints.
"""

import html as html_mod
import logging
import os
import re
import time
from email.message import EmailMessage

import requests

import org_info

logger = logging.getLogger(__name__)

FROM_EMAIL = 'noreply@theforwardhorizon.com'
FROM_NAME = 'Forward Horizon'

MAX_RETRIES = 3


def _env(name, default=None):
    return os.environ.get(name, default)


def _retry_base_delay():
    try:
        return float(_env('EMAIL_RETRY_BASE_DELAY', '1.0'))
    except ValueError:
        return 1.0


def _timeout():
    try:
        return float(_env('EMAIL_TIMEOUT', '10'))
    except ValueError:
        return 10.0


def _html_to_plain(html_str):
    """Convert HTML email to readable plain text."""
    text = html_str
    text = re.sub(r'<br\s*/?>', '\n', text)
    text = re.sub(r'</p>', '\n\n', text)
    text = re.sub(r'</tr>', '\n', text)
    text = re.sub(r'</td>', ' ', text)
    text = re.sub(r'<a[^>]+href="([^"]+)"[^>]*>([^<]+)</a>', r'\2 (\1)', text)
    text = re.sub(r'<[^>]+>', '', text)
    text = re.sub(r'&middot;', '-', text)
    text = re.sub(r'&mdash;|&ndash;', '-', text)
    text = re.sub(r'&[a-z]+;', '', text)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def generate_simple_html(text):
    """Standard Forward Horizon wrapper around a plain-text body."""
    body_html = html_mod.escape(str(text or '')).replace('\n', '<br>')
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <style>
    body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; }}
    .header {{ background: #2c5530; color: white; padding: 20px; text-align: center; border-radius: 8px 8px 0 0; }}
    .content {{ background: white; padding: 20px; border: 1px solid #ddd; border-top: none; border-radius: 0 0 8px 8px; }}
  </style>
</head>
<body>
  <div class="header"><h2>Forward Horizon</h2></div>
  <div class="content">
    {body_html}
    <hr style="margin: 30px 0; border: none; border-top: 1px solid #eee;">
    <p style="font-size: 12px; color: #666; text-align: center;">
      Forward Horizon Transitional Housing<br>
      {org_info.PHONE} | {org_info.EMAIL}
    </p>
  </div>
</body>
</html>"""


class EmailDeliveryError(Exception):
    """A provider refused or failed to accept a message."""

    def __init__(self, provider, message):
        super().__init__(f'{provider}: {message}')
        self.provider = provider
        self.reason = message


class OutgoingEmail:
    def __init__(self, to, subject, body, html=None, from_email=None):
        self.to = to
        self.subject = subject
        self.body = body
        self.html = html
        self.from_email = from_email or FROM_EMAIL

    @property
    def html_content(self):
        return self.html or generate_simple_html(self.body)

    @property
    def plain_text(self):
        return self.body or _html_to_plain(self.html or '')

    def to_dict(self):
        return {
            'to': self.to,
            'subject': self.subject,
            'body': self.body,
            'html': self.html_content,
        }


# ── Senders ──────────────────────────────────────────────

class EmailSender:
    """Base sender. Subclasses set name/label and implement _send()."""

    name = 'base'
    label = 'Base'
    max_attempts = 1

    def is_configured(self):
        return False

    def send(self, message):
        try:
            return self._send(message)
        except EmailDeliveryError:
            raise
        except requests.exceptions.RequestException as e:
            raise EmailDeliveryError(self.label, str(e))

    def _send(self, message):
        raise NotImplementedError

    def _check_response(self, response):
        if not response.ok:
            raise EmailDeliveryError(self.label, f'API error: {response.status_code}')


class Web3FormsSender(EmailSender):
    name = 'web3forms'
    label = 'Web3Forms (Free)'
    max_attempts = MAX_RETRIES
    url = 'https://api.web3forms.com/submit'

    def is_configured(self):
        return bool(_env('WEB3FORMS_ACCESS_KEY'))

    def _send(self, message):
        response = requests.post(self.url, data={
            'access_key': _env('WEB3FORMS_ACCESS_KEY'),
            'email': message.to,
            'subject': message.subject,
            'message': message.html or message.body,
            'from_name': org_info.ORGANIZATION,
        }, timeout=_timeout())
        self._check_response(response)
        result = response.json()
        if isinstance(result, dict) and result.get('success') is False:
            raise EmailDeliveryError(self.label, result.get('message', 'rejected'))
        return result


class ResendSender(EmailSender):
    name = 'resend'
    label = 'Resend Free Tier'
    url = 'https://api.resend.com/emails'

    def is_configured(self):
        return bool(_env('RESEND_API_KEY'))

    def _send(self, message):
        response = requests.post(self.url, json={
            'from': f'{FROM_NAME} <{message.from_email}>',
            'to': [message.to],
            'subject': message.subject,
            'html': message.html_content,
            'text': message.plain_text,
        }, headers={
            'Authorization': f"Bearer {_env('RESEND_API_KEY')}",
        }, timeout=_timeout())
        self._check_response(response)
        return response.json()


class EmailJSSender(EmailSender):
    name = 'emailjs'
    label = 'EmailJS Free Tier'
    url = 'https://api.emailjs.com/api/v1.0/email/send'

    def is_configured(self):
        return bool(_env('EMAILJS_SERVICE_ID'))

    def _send(self, message):
        response = requests.post(self.url, json={
            'service_id': _env('EMAILJS_SERVICE_ID'),
            'template_id': _env('EMAILJS_TEMPLATE_ID', 'default'),
            'user_id': _env('EMAILJS_USER_ID'),
            'template_params': {
                'to_email': message.to,
                'subject': message.subject,
                'message': message.body,
                'html_message': message.html_content,
            },
        }, timeout=_timeout())
        self._check_response(response)
        return {'sent': True, 'service': 'EmailJS'}


class SendGridSender(EmailSender):
    name = 'sendgrid'
    label = 'SendGrid'

    def __init__(self, api_key=None):
        self._api_key = api_key

    @property
    def api_key(self):
        return self._api_key or _env('SENDGRID_API_KEY')

    def is_configured(self):
        return bool(self.api_key)

    def _send(self, message):
        from sendgrid import SendGridAPIClient
        from sendgrid.helpers.mail import Mail, Email, To, Content, MimeType

        mail = Mail(
            from_email=Email(message.from_email, FROM_NAME),
            to_emails=To(message.to),
            subject=message.subject,
            plain_text_content=Content(MimeType.text, message.plain_text),
            html_content=Content(MimeType.html, message.html_content),
        )
        try:
            response = SendGridAPIClient(self.api_key).send(mail)
        except Exception as e:
            raise EmailDeliveryError(self.label, str(e))
        msg_id = response.headers.get('X-Message-Id', '') if response.headers else ''
        return {'status_code': response.status_code, 'message_id': msg_id}


class GmailSender(EmailSender):
    """
    Builds a Gmail SMTP message for the configured account. The message is
    prepared, not transmitted: this deployment has no outbound SMTP.
    """

    name = 'gmail'
    label = 'Gmail (Free)'

    def is_configured(self):
        return bool(_env('GMAIL_USER') and _env('GMAIL_APP_PASSWORD'))

    def build_message(self, message):
        gmail_user = _env('GMAIL_USER')
        mime = EmailMessage()
        mime['From'] = f'"{FROM_NAME}" <{gmail_user}>'
        mime['To'] = message.to
        mime['Subject'] = message.subject
        mime.set_content(message.plain_text)
        mime.add_alternative(message.html_content, subtype='html')
        return mime

    def _send(self, message):
        if not self.is_configured():
            raise EmailDeliveryError(self.label, 'GMAIL_USER and GMAIL_APP_PASSWORD are not set')
        try:
            mime = self.build_message(message)
        except (ValueError, TypeError) as e:
            raise EmailDeliveryError(self.label, str(e))
        return {
            'prepared': True,
            'message': 'Email prepared for Gmail sending',
            'emailData': {
                'from': mime['From'],
                'to': mime['To'],
                'subject': mime['Subject'],
                'text': message.plain_text,
                'html': message.html_content,
            },
            'size': len(mime.as_bytes()),
        }


# ── Fallback chain ───────────────────────────────────────

def send_with_retry(sender, message, max_attempts=None, base_delay=None, sleep=time.sleep):
    """Call sender.send with exponential backoff. Re-raises the last error."""
    attempts = max_attempts or sender.max_attempts
    delay = _retry_base_delay() if base_delay is None else base_delay
    for attempt in range(attempts):
        try:
            return sender.send(message)
        except EmailDeliveryError as e:
            if attempt == attempts - 1:
                raise
            wait = delay * (2 ** attempt)
            logger.info(f"[Email] {sender.label} attempt {attempt + 1} failed ({e.reason}), retrying in {wait:.1f}s")
            sleep(wait)


def default_chain():
    return [Web3FormsSender(), ResendSender(), EmailJSSender()]


def deliver(message, senders=None, sleep=time.sleep):
    """
    Try each configured sender in order.
    Returns {'success': True, 'provider', 'name', 'result'} from the first that
    succeeds, or {'success': False, 'errors': [...]} when none did.
    """
    senders = default_chain() if senders is None else senders
    errors = []
    for sender in senders:
        if not sender.is_configured():
            continue
        try:
            result = send_with_retry(sender, message, sleep=sleep)
        except EmailDeliveryError as e:
            logger.warning(f"[Email] {sender.label} failed, trying next option: {e.reason}")
            errors.append({'provider': sender.label, 'error': e.reason})
            continue
        logger.info(f"[Email] Sent to {message.to} via {sender.label}")
        return {'success': True, 'provider': sender.label, 'name': sender.name, 'result': result}

    if not errors:
        logger.info(f"[Email] TEST MODE (no provider configured), would send to {message.to}: {message.subject}")
    return {'success': False, 'errors': errors}


FREE_OPTIONS = {
    'option1': {
        'name': 'Resend Free Tier',
        'limit': '3,000 emails/month FREE',
        'setup': 'Sign up at resend.com, get API key, add RESEND_API_KEY to the environment',
        'time': '2 minutes',
    },
    'option2': {
        'name': 'EmailJS',
        'limit': '200 emails/month FREE',
        'setup': 'Sign up at emailjs.com, get service ID, add EMAILJS_SERVICE_ID to the environment',
        'time': '3 minutes',
    },
    'option3': {
        'name': 'Web3Forms',
        'limit': 'Unlimited FREE (with their branding)',
        'setup': 'Get access key from web3forms.com, add WEB3FORMS_ACCESS_KEY to the environment',
        'time': '1 minute',
    },
}


def not_sent_response(message, errors=None):
    """Body returned when no provider accepted the message."""
    body = {
        'success': False,
        'message': 'No free email service configured',
        'emailPrepared': message.to_dict(),
        'freeOptions': FREE_OPTIONS,
        'quickStart': {
            'easiest': 'Web3Forms - works instantly with just an access key',
            'most_generous': 'Resend - 3,000 free emails/month',
            'note': 'All options are completely free and work great for Forward Horizon',
        },
    }
    if errors:
        body['message'] = 'All configured email services failed'
        body['errors'] = errors
    return body

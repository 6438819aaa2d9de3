#!/usr/bin/env python3
"""
Forward Horizon Contact Form
Builds the submission record and the two notification emails sent for
every contact form: a confirmation to the submitter and an alert to staff.
Also forwards submissions to the n8n workflow webhook when one is configured.
"""

import html as html_mod
import logging
import os

import requests

import org_info
from email_delivery import OutgoingEmail
from form_validation import FormSchema

logger = logging.getLogger(__name__)

MIN_MESSAGE_LENGTH = 10
N8N_PLACEHOLDER_URL = 'https://your-n8n.cloud/webhook/forward-horizon'
N8N_TIMEOUT = 10

CONTACT_SCHEMA = FormSchema(
    required=['firstName', 'lastName', 'email', 'message'],
    optional=['phone', 'service', 'consent'],
    email_fields=['email'],
)


def admin_email():
    return os.environ.get('ADMIN_EMAIL', org_info.EMAIL)


def n8n_webhook_url():
    """Configured n8n webhook, or None when unset or still the placeholder."""
    url = os.environ.get('N8N_WEBHOOK_URL')
    if not url or url == N8N_PLACEHOLDER_URL:
        return None
    return url


def _text(value, default=None):
    """JSON clients may send numbers for free-text fields; the emails need strings."""
    if value is None or value == '':
        return default
    return value if isinstance(value, str) else str(value)


def build_submission(data, referer=None):
    consent = data.get('consent')
    first = _text(data['firstName'])
    return {
        'name': f"{first} {_text(data['lastName'])}",
        'firstName': first,
        'email': data['email'],
        'phone': _text(data.get('phone'), 'Not provided'),
        'service': _text(data.get('service'), 'General Inquiry'),
        'message': _text(data['message']),
        'consent': consent is True or consent == 'on',
        'timestamp': org_info.utc_now_iso(),
        'source': referer or 'Direct submission',
    }


def _message_html(message):
    return html_mod.escape(message).replace('\n', '<br>')


def confirmation_email(submission):
    first = submission['firstName']
    body = (f"Dear {first},\n\nThank you for reaching out to {org_info.SHORT_NAME}. We have received your "
            f"message and will respond within 24 hours.\n\nYour Message:\n{submission['message']}\n\n"
            f"Service Requested: {submission['service']}\n\nBest regards,\n{org_info.SHORT_NAME} Team\n{org_info.PHONE}")
    html = f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <style>
    body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; margin: 0; }}
    .container {{ max-width: 600px; margin: 0 auto; }}
    .header {{ background: #2c5530; color: white; padding: 25px; text-align: center; }}
    .content {{ background: white; padding: 25px; }}
    .info-box {{ background: #f0f9ff; padding: 15px; border-left: 4px solid #2c5530; margin: 15px 0; }}
    .footer {{ background: #f8f9fa; padding: 15px; text-align: center; font-size: 12px; color: #666; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>Thank You for Contacting {org_info.SHORT_NAME}</h1></div>
    <div class="content">
      <h2>Hello {html_mod.escape(first)},</h2>
      <p>We have received your message and appreciate you reaching out to {org_info.SHORT_NAME}.</p>
      <div class="info-box">
        <h3>Your Submission Details:</h3>
        <p><strong>Service Requested:</strong> {html_mod.escape(submission['service'])}</p>
        <p><strong>Your Message:</strong><br>{_message_html(submission['message'])}</p>
      </div>
      <h3>What Happens Next?</h3>
      <ul>
        <li>Our team will review your message within 24 hours</li>
        <li>We'll contact you via email or phone with next steps</li>
        <li>If urgent, please call us at {org_info.PHONE}</li>
      </ul>
    </div>
    <div class="footer">
      <p><strong>{org_info.ORGANIZATION}</strong><br>Los Angeles, CA | {org_info.PHONE} | {org_info.EMAIL}</p>
    </div>
  </div>
</body>
</html>"""
    return OutgoingEmail(
        to=submission['email'],
        subject=f'Thank you for contacting {org_info.SHORT_NAME}, {first}',
        body=body,
        html=html,
    )


def admin_notification(submission):
    body = (f"New contact form submission received:\n\nName: {submission['name']}\n"
            f"Email: {submission['email']}\nPhone: {submission['phone']}\nService: {submission['service']}\n\n"
            f"Message:\n{submission['message']}\n\nSubmitted: {submission['timestamp']}")
    submitted = org_info.parse_datetime(submission['timestamp'])
    fields = [
        ('Name', html_mod.escape(submission['name'])),
        ('Email', f'<a href="mailto:{html_mod.escape(submission["email"])}">{html_mod.escape(submission["email"])}</a>'),
        ('Phone', html_mod.escape(submission['phone'])),
        ('Service Requested', html_mod.escape(submission['service'])),
        ('Message', '<br>' + _message_html(submission['message'])),
        ('Consent to Contact', 'Yes' if submission['consent'] else 'No'),
        ('Submitted', f'{org_info.format_short_date(submitted)} {org_info.format_time(submitted)}'),
        ('Source', html_mod.escape(submission['source'])),
    ]
    rows = '\n'.join(f'      <div class="field"><strong>{label}:</strong> {value}</div>' for label, value in fields)
    html = f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <style>
    body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
    .header {{ background: #dc2626; color: white; padding: 20px; text-align: center; }}
    .field {{ margin: 10px 0; padding: 10px; background: #f9f9f9; }}
    .priority {{ background: #fef2f2; border-left: 4px solid #dc2626; padding: 10px; margin: 15px 0; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header"><h2>New Contact Form Submission</h2></div>
    <div class="priority"><strong>Action Required:</strong> New inquiry received - please respond within 24 hours</div>
{rows}
  </div>
</body>
</html>"""
    return OutgoingEmail(
        to=admin_email(),
        subject=f"New Contact Form Submission from {submission['name']}",
        body=body,
        html=html,
    )


def forward_to_n8n(payload, url=None):
    """
    POST a payload to the n8n webhook. Returns True on a 2xx response.
    Network errors are logged and reported as False.
    """
    url = url or n8n_webhook_url()
    if not url:
        return False
    try:
        response = requests.post(url, json=payload, timeout=N8N_TIMEOUT)
    except requests.exceptions.RequestException as e:
        logger.warning(f"[n8n] Webhook error: {e}")
        return False
    if not response.ok:
        logger.warning(f"[n8n] Webhook returned {response.status_code}")
        return False
    return True

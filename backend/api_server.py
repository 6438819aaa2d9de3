#!/usr/bin/env python3
"""
Forward Horizon API Server
JSON endpoints for the Forward Horizon site: contact form, resident documents,
donations, appointments, the automation suite (volunteers, crisis, beds, social),
email delivery and the persisted /api/workflows/* routes.
"""

from http.server import HTTPServer, BaseHTTPRequestHandler
import json
import os
from urllib.parse import urlparse, parse_qs
import logging
import threading

import time as _time_module

import org_info
import contact_form
from appointment_system import AppointmentSystem, SAMPLE_UPCOMING, SAMPLE_STATS, parse_days, quick_schedule
from automation_systems import UnknownActionError, get_system, help_directory, usage_error
from document_generator import DocumentGenerator
from donor_automation import DonorAutomation, PUBLIC_ANALYTICS, quick_donation_package
from email_delivery import (
    OutgoingEmail, EmailDeliveryError, GmailSender, SendGridSender, deliver, not_sent_response,
)
from form_validation import FormSchema, ValidationError, find_missing, parse_amount, sanitize_input
from rate_limiter import RateLimiter, resolve_client_key
from receipt_pdf import generate_receipt_pdf
from system_monitor import SystemMonitor
from ttl_cache import TTLCache

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(message)s')

BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_DATA_DIR = os.path.join(BACKEND_DIR, '..', 'data')
API_VERSION = '1.0.0'

RATE_LIMIT_SWEEP_MINUTES = 30
CACHE_SWEEP_SECONDS = 60
REMINDER_CHECK_MINUTES = 15
AUTOMATION_CACHE_CONTROL = 'public, max-age=300, s-maxage=300'

# ── Shared state ─────────────────────────────────────────
# Per-process, best effort. Sweeps are scheduled in run_server().
_form_rate_limiter = RateLimiter()
_automation_cache = TTLCache()
_workflow_stores = {}  # data_dir -> {'appointments', 'donors', 'monitor', 'documents'}
_stores_lock = threading.Lock()


def get_data_dir():
    return os.environ.get('DATA_DIR', DEFAULT_DATA_DIR)


def get_stores(data_dir=None):
    """JSON-backed workflow stores for a data directory, created on first use."""
    data_dir = data_dir or get_data_dir()
    # the reminder job and request handlers may both be first to ask
    with _stores_lock:
        stores = _workflow_stores.get(data_dir)
        if stores is None:
            stores = {
                'appointments': AppointmentSystem(data_dir),
                'donors': DonorAutomation(data_dir, output_dir=data_dir),
                'monitor': SystemMonitor(data_dir),
                'documents': DocumentGenerator(output_dir=data_dir),
            }
            _workflow_stores[data_dir] = stores
            logging.info(f"[Store] Workflow stores loaded from {data_dir}")
    return stores


def send_due_reminders():
    """Scheduled job: email the 24-hour and 2-hour appointment reminders."""
    try:
        get_stores()['appointments'].send_due_reminders()
    except Exception as e:
        logging.error(f"[Appointments] Reminder job failed: {e}")


# ── Request schemas ──────────────────────────────────────

DOCUMENT_SCHEMA = FormSchema(
    required=['name', 'email'],
    optional=['phone', 'moveInDate', 'program', 'unit', 'caseManager', 'monthlyRent'],
    email_fields=['email'],
)

DONATION_SCHEMA = FormSchema(
    required=['donorName', 'email', 'amount'],
    optional=['donationType', 'isRecurring', 'frequency', 'donationDate'],
    email_fields=['email'],
)

APPOINTMENT_SCHEMA = FormSchema(
    required=['veteranName', 'email', 'scheduledTime'],
    optional=['phone', 'appointmentType'],
    email_fields=['email'],
)

# Email bodies may carry markup, so these are not sanitized
EMAIL_SCHEMA = FormSchema(
    required=['to', 'subject', 'body'],
    optional=['html'],
    email_fields=['to'],
    sanitize=False,
)

SEND_EMAIL_SCHEMA = FormSchema(
    required=['to', 'subject', 'body'],
    optional=['html'],
    email_fields=['to'],
    sanitize=False,
    example={
        'to': 'recipient@example.com',
        'subject': f'Welcome to {org_info.SHORT_NAME}',
        'body': 'Thank you for your interest in our transitional housing program.',
    },
)

DEBUG_FIELDS = ['firstName', 'lastName', 'email', 'message']

APPOINTMENT_EXAMPLES = {
    'schedule': 'POST /api/appointments?action=schedule',
    'upcoming': 'GET /api/appointments?action=upcoming&days=7',
    'stats': 'GET /api/appointments?action=stats',
}


class ForwardHorizonAPIHandler(BaseHTTPRequestHandler):

    # path -> (handler method, allowed methods or None for any)
    ROUTES = {
        '/api/submit-form': ('handle_submit_form', ('POST',)),
        '/api/documents': ('handle_documents', ('POST',)),
        '/api/donations': ('handle_donations', ('GET', 'POST')),
        '/api/donations/receipt': ('handle_donation_receipt', ('POST',)),
        '/api/appointments': ('handle_appointments', None),
        '/api/automation': ('handle_automation', ('GET', 'POST')),
        '/api/volunteers': ('handle_system_route', ('GET', 'POST')),
        '/api/crisis': ('handle_system_route', ('GET', 'POST')),
        '/api/beds': ('handle_system_route', ('GET', 'POST')),
        '/api/social': ('handle_system_route', ('GET', 'POST')),
        '/api/email-free': ('handle_email_free', ('POST',)),
        '/api/email-gmail': ('handle_email_gmail', ('POST',)),
        '/api/send-email': ('handle_send_email', ('POST',)),
        '/api/submit-to-n8n': ('handle_submit_to_n8n', ('POST',)),
        '/api/debug-form': ('handle_debug_form', ('POST',)),
        '/api/hello': ('handle_hello', None),
        '/api/test-deploy': ('handle_test_deploy', None),
        '/api/health': ('handle_health', ('GET',)),
        '/api/workflows/appointments': ('handle_workflow_appointments', None),
        '/api/workflows/process-donation': ('handle_workflow_donation', ('GET', 'POST')),
        '/api/workflows/generate-documents': ('handle_workflow_documents', ('POST',)),
        '/api/workflows/system-status': ('handle_workflow_status', ('GET',)),
    }

    def do_GET(self):
        self._handle('GET')

    def do_POST(self):
        self._handle('POST')

    def do_PUT(self):
        self._handle('PUT')

    def do_DELETE(self):
        self._handle('DELETE')

    def do_OPTIONS(self):
        """Handle CORS preflight requests"""
        self._status = 200
        self.send_response(200)
        self.send_cors_headers()
        self.send_header('Content-Length', '0')
        self.end_headers()

    def _handle(self, method):
        _req_start = _time_module.time()
        self._status = None
        parsed_path = urlparse(self.path)
        path = parsed_path.path.rstrip('/') or '/'
        query = {k: v[0] for k, v in parse_qs(parsed_path.query).items()}

        try:
            route = self.ROUTES.get(path)
            if route is None:
                self.send_404()
                return
            handler_name, methods = route
            if methods is not None and method not in methods:
                self.send_json_response({'success': False, 'error': 'Method not allowed'}, 405)
                return
            getattr(self, handler_name)(method, path, query)
        except json.JSONDecodeError:
            self.send_json_response({'success': False, 'error': 'Invalid JSON'}, 400)
        except ValidationError as e:
            self.send_json_response(e.to_response(), 400)
        except UnknownActionError as e:
            self.send_json_response(e.to_response(), 400)
        except Exception as e:
            logging.exception(f"[API] Unhandled error on {method} {path}")
            self.send_error_response(str(e))
        finally:
            self._log_request(method, path, self._status or 500, _req_start)

    def send_cors_headers(self):
        """Send CORS headers"""
        self.send_header('Access-Control-Allow-Origin', '*')
        self.send_header('Access-Control-Allow-Methods', 'GET, POST, PUT, DELETE, OPTIONS')
        self.send_header('Access-Control-Allow-Headers', 'Content-Type')

    # ── API: Contact form ────────────────────────────────────

    def handle_submit_form(self, method, path, query):
        client_key, is_local = resolve_client_key(self.headers, self.client_address)
        if not _form_rate_limiter.check(client_key):
            logging.warning(f"[RateLimit] Contact form limit hit for {client_key}")
            self._send_rate_limit_error(_form_rate_limiter.retry_after(client_key))
            return

        data = contact_form.CONTACT_SCHEMA.validate(self._read_json_body())
        if len(str(data['message'])) < contact_form.MIN_MESSAGE_LENGTH:
            raise ValidationError(
                f'Message must be at least {contact_form.MIN_MESSAGE_LENGTH} characters long')

        submission = contact_form.build_submission(data, self.headers.get('Referer'))
        logging.info(f"[API] Contact form from {submission['name']} ({submission['service']})"
                     f"{' [local]' if is_local else ''}")

        # Notifications are best effort: the submission succeeds either way
        confirmation = deliver(contact_form.confirmation_email(submission))
        admin = deliver(contact_form.admin_notification(submission))
        contact_form.forward_to_n8n({'body': submission})

        monitor = get_stores()['monitor']
        monitor.log('Contact Form Submitted', {'name': submission['name'], 'service': submission['service']})
        for result in (confirmation, admin):
            if result['success']:
                monitor.increment('emailsSent')

        self.send_json_response({
            'success': True,
            'message': 'Thank you! We will contact you within 24 hours.',
            'received': True,
            'submission': {
                'name': submission['name'],
                'service': submission['service'],
                'timestamp': submission['timestamp'],
            },
            'emailStatus': {
                'confirmation': _email_status(confirmation),
                'admin': _email_status(admin),
            },
        })

    # ── API: Documents & donations ───────────────────────────

    def handle_documents(self, method, path, query):
        data = DOCUMENT_SCHEMA.validate(self._read_json_body())
        documents, email_data = get_stores()['documents'].quick_package(data)
        logging.info(f"[Documents] Quick package for {data['name']}")
        self.send_json_response({
            'success': True,
            'message': 'Document package generated successfully',
            'documents': documents,
            'emailData': email_data,
            'timestamp': org_info.utc_now_iso(),
        })

    def _validated_donation(self):
        data = DONATION_SCHEMA.validate(self._read_json_body())
        data['amount'] = parse_amount(data['amount'])
        return data

    def handle_donations(self, method, path, query):
        if method == 'GET':
            analytics = dict(PUBLIC_ANALYTICS)
            analytics['lastUpdated'] = org_info.utc_now_iso()
            self.send_json_response(analytics)
            return

        data = self._validated_donation()
        receipt_number, documents = quick_donation_package(data['donorName'], data['amount'])
        logging.info(f"[Donations] {receipt_number} for {data['donorName']}")
        self.send_json_response({
            'success': True,
            'message': 'Donation processed successfully',
            'receiptNumber': receipt_number,
            'documents': documents,
            'donationAmount': data['amount'],
            'timestamp': org_info.utc_now_iso(),
        })

    def handle_donation_receipt(self, method, path, query):
        data = self._validated_donation()
        receipt_number = org_info.make_id('FH')
        pdf_bytes = generate_receipt_pdf(
            data['donorName'], data['email'], data['amount'], receipt_number, data.get('donationDate'))
        self.send_pdf_response(pdf_bytes, f'forward-horizon-receipt-{receipt_number}.pdf')

    # ── API: Appointments (public) ───────────────────────────

    def handle_appointments(self, method, path, query):
        action = query.get('action')

        if method == 'POST' and action == 'schedule':
            data = APPOINTMENT_SCHEMA.validate(self._read_json_body())
            try:
                result = quick_schedule(data)
            except ValueError:
                raise ValidationError('Invalid scheduledTime')
            logging.info(f"[Appointments] {result['appointment']['id']} requested by {data['veteranName']}")
            result.update({
                'success': True,
                'message': 'Appointment scheduled successfully',
                'timestamp': org_info.utc_now_iso(),
            })
            self.send_json_response(result)

        elif method == 'GET' and action == 'upcoming':
            self.send_json_response({
                'success': True,
                'upcomingAppointments': SAMPLE_UPCOMING,
                'daysAhead': parse_days(query.get('days')),
                'totalCount': len(SAMPLE_UPCOMING),
            })

        elif method == 'GET' and action == 'stats':
            self.send_json_response({
                'success': True,
                'stats': SAMPLE_STATS,
                'generated': org_info.utc_now_iso(),
            })

        else:
            self.send_json_response({
                'success': False,
                'error': 'Invalid action or method',
                'availableActions': list(APPOINTMENT_EXAMPLES),
                'examples': APPOINTMENT_EXAMPLES,
            }, 400)

    # ── API: Automation suite ────────────────────────────────

    def handle_automation(self, method, path, query):
        system_name = query.get('system')
        action = query.get('action')

        headers = None
        if method == 'GET':
            headers = {
                'Cache-Control': AUTOMATION_CACHE_CONTROL,
                'ETag': f'"automation-{system_name or ""}-{action or ""}-v1"',
            }

        if not system_name or system_name == 'help':
            self.send_json_response(help_directory(), 200, headers)
            return

        system = get_system(system_name)
        if system is None:
            self.send_json_response(usage_error(), 400)
            return

        if method == 'GET':
            cache_key = _automation_cache_key(system_name, action, query)
            data, hit = _automation_cache.get_or_compute(
                cache_key, lambda: system.handle('GET', action, query))
            headers['X-Cache'] = 'HIT' if hit else 'MISS'
            if hit:
                logging.info(f"[Cache] Hit for {cache_key}")
            self.send_json_response(data, 200, headers)
            return

        self.send_json_response(self._run_system(system, method, action, query, self._read_json_body()))

    def handle_system_route(self, method, path, query):
        system = get_system(path.rsplit('/', 1)[-1])
        body = self._read_json_body() if method == 'POST' else None
        self.send_json_response(self._run_system(system, method, query.get('action'), query, body))

    def _run_system(self, system, method, action, query, body=None):
        result = system.handle(method, action, query, body)
        if system.name == 'volunteers' and method == 'POST' and action == 'register':
            monitor = get_stores()['monitor']
            monitor.log('Volunteer Registered', {'id': result['volunteer']['id']})
            monitor.increment('volunteersRegistered')
        return result

    # ── API: Email ───────────────────────────────────────────

    def handle_email_free(self, method, path, query):
        data = EMAIL_SCHEMA.validate(self._read_json_body())
        message = OutgoingEmail(data['to'], data['subject'], data['body'], html=data.get('html'))
        result = deliver(message)

        if result['success']:
            get_stores()['monitor'].increment('emailsSent')
            self.send_json_response({
                'success': True,
                'message': f"Email sent successfully via {result['provider']}",
                'recipient': data['to'],
                'provider': result['provider'],
                'timestamp': org_info.utc_now_iso(),
                'result': result['result'],
            })
            return

        response = not_sent_response(message, result['errors'])
        response['timestamp'] = org_info.utc_now_iso()
        self.send_json_response(response)

    def handle_email_gmail(self, method, path, query):
        data = EMAIL_SCHEMA.validate(self._read_json_body())
        message = OutgoingEmail(data['to'], data['subject'], data['body'], html=data.get('html'))
        sender = GmailSender()

        if not sender.is_configured():
            self.send_json_response({
                'success': False,
                'message': 'Gmail not configured - but email content ready',
                'emailContent': {
                    'to': message.to,
                    'subject': message.subject,
                    'body': message.body,
                    'html': message.html_content,
                },
                'setup': {
                    'step1': 'Enable 2-factor authentication on the Gmail account',
                    'step2': 'Generate an App Password in the Google account security settings',
                    'step3': 'Set GMAIL_USER and GMAIL_APP_PASSWORD in the environment',
                    'note': 'Gmail allows about 500 free emails per day',
                },
            })
            return

        try:
            result = sender.send(message)
        except EmailDeliveryError as e:
            logging.warning(f"[Email] Gmail preparation failed: {e.reason}")
            self.send_json_response({
                'success': False,
                'error': 'Gmail sending failed',
                'details': e.reason,
                'troubleshooting': {
                    'check1': 'Verify GMAIL_USER is a full Gmail address',
                    'check2': 'Verify GMAIL_APP_PASSWORD is an App Password, not the account password',
                    'check3': 'Make sure 2-factor authentication is enabled',
                },
            })
            return

        self.send_json_response({
            'success': True,
            'message': 'Email prepared successfully via Gmail',
            'provider': sender.label,
            'recipient': message.to,
            'timestamp': org_info.utc_now_iso(),
            'result': result,
        })

    def handle_send_email(self, method, path, query):
        data = SEND_EMAIL_SCHEMA.validate(self._read_json_body())
        message = OutgoingEmail(data['to'], data['subject'], data['body'], html=data.get('html'))
        sender = SendGridSender()

        if sender.is_configured():
            try:
                result = sender.send(message)
            except EmailDeliveryError as e:
                logging.warning(f"[Email] SendGrid send failed: {e.reason}")
                self.send_json_response({
                    'success': False,
                    'error': 'Email sending failed',
                    'details': e.reason,
                    'provider': sender.label,
                    'timestamp': org_info.utc_now_iso(),
                })
                return
            get_stores()['monitor'].increment('emailsSent')
            self.send_json_response({
                'success': True,
                'message': f'Email sent via {sender.label}',
                'recipient': message.to,
                'subject': message.subject,
                'provider': sender.label,
                'timestamp': org_info.utc_now_iso(),
                'result': result,
            })
            return

        logging.info(f"[Email] Queued (no SendGrid key) for {message.to}: {message.subject}")
        self.send_json_response({
            'success': True,
            'message': 'Email queued for delivery',
            'recipient': message.to,
            'subject': message.subject,
            'provider': 'Ready for integration',
            'timestamp': org_info.utc_now_iso(),
            'integration': {
                'status': 'Email service ready for configuration',
                'options': ['SendGrid', 'Resend', 'Web3Forms', 'EmailJS', 'Gmail'],
                'note': 'Set SENDGRID_API_KEY to send through SendGrid',
            },
            'emailContent': message.to_dict(),
        })

    # ── API: n8n & diagnostics ───────────────────────────────

    def handle_submit_to_n8n(self, method, path, query):
        body = self._read_json_body()
        payload = dict(body) if isinstance(body, dict) else {'data': body}
        payload.update({
            'timestamp': org_info.utc_now_iso(),
            'source': self.headers.get('Referer') or 'Direct submission',
            'ip': self._get_client_ip(),
        })

        if contact_form.forward_to_n8n(payload):
            self.send_json_response({
                'success': True,
                'message': 'Form submitted successfully! We will contact you within 24 hours.',
                'timestamp': payload['timestamp'],
            })
            return

        self.send_json_response({
            'success': True,
            'message': f'Form received! We will contact you within 24 hours. '
                       f'For urgent needs call {org_info.PHONE}.',
            'fallback': True,
            'timestamp': payload['timestamp'],
        })

    def handle_debug_form(self, method, path, query):
        body = self._read_json_body()
        if not isinstance(body, dict):
            raise ValidationError('Request body must be a JSON object')
        data = {name: sanitize_input(body.get(name)) for name in DEBUG_FIELDS}
        missing = find_missing(data, DEBUG_FIELDS)

        if missing:
            self.send_json_response({
                'success': False,
                'error': 'Missing required fields',
                'missing': missing,
                'debug': {
                    'received': sorted(body.keys()),
                    'sanitized': data,
                    'contentType': self.headers.get('Content-Type'),
                },
            }, 400)
            return

        self.send_json_response({'success': True, 'message': 'Validation passed', 'data': data})

    def handle_hello(self, method, path, query):
        self.send_json_response({
            'message': f'Hello from {org_info.SHORT_NAME} API',
            'method': method,
            'timestamp': org_info.utc_now_iso(),
        })

    def handle_test_deploy(self, method, path, query):
        self.send_json_response({
            'success': True,
            'message': 'Deployment is working',
            'version': API_VERSION,
            'method': method,
            'timestamp': org_info.utc_now_iso(),
        })

    def handle_health(self, method, path, query):
        stores = get_stores()
        self.send_json_response({
            'status': 'ok',
            'appointments': len(stores['appointments'].appointments),
            'donors': len(stores['donors'].donors),
            'rateLimitedClients': len(_form_rate_limiter),
            'cacheEntries': len(_automation_cache),
            'timestamp': org_info.utc_now_iso(),
        })

    # ── API: Workflows (persisted) ───────────────────────────

    def handle_workflow_appointments(self, method, path, query):
        stores = get_stores()
        appointments = stores['appointments']
        action = query.get('action')

        if method == 'POST' and action == 'schedule':
            data = APPOINTMENT_SCHEMA.validate(self._read_json_body())
            try:
                result = appointments.schedule_appointment(data)
            except ValueError:
                raise ValidationError('Invalid scheduledTime')
            stores['monitor'].increment('appointmentsScheduled')
            stores['monitor'].log('Appointment Scheduled', {
                'id': result['appointment']['id'],
                'veteranName': data['veteranName'],
            })
            self.send_json_response({
                'success': True,
                'message': 'Appointment scheduled successfully',
                'appointmentId': result['appointment']['id'],
                'appointment': result['appointment'],
                'confirmationEmail': result['confirmationEmail'],
                'confirmationSMS': result['confirmationSMS'],
            })

        elif method == 'GET' and action == 'upcoming':
            days = parse_days(query.get('days'))
            upcoming = appointments.get_upcoming_appointments(days)
            self.send_json_response({
                'success': True,
                'upcomingAppointments': upcoming,
                'daysAhead': days,
                'totalCount': len(upcoming),
            })

        elif method == 'GET' and action == 'reminders':
            due = appointments.get_appointments_needing_reminders()
            self.send_json_response({'success': True, 'reminders': due, 'totalCount': len(due)})

        elif method == 'GET' and action == 'stats':
            self.send_json_response({'success': True, 'stats': appointments.get_stats()})

        else:
            self.send_json_response({
                'success': False,
                'error': 'Invalid action or method',
                'availableActions': ['schedule', 'upcoming', 'reminders', 'stats'],
            }, 400)

    def handle_workflow_donation(self, method, path, query):
        stores = get_stores()
        donors = stores['donors']

        if method == 'GET':
            self.send_json_response({'success': True, 'analytics': donors.get_donor_analytics()})
            return

        data = self._validated_donation()
        result = donors.process_donation(data)
        stores['monitor'].increment('donationsProcessed')
        stores['monitor'].log('Donation Processed', {
            'receiptNumber': result['receiptNumber'],
            'donorName': data['donorName'],
            'amount': data['amount'],
        })
        self.send_json_response({
            'success': True,
            'message': 'Donation processed successfully',
            'receiptNumber': result['receiptNumber'],
            'documents': {
                'thankYouLetter': result['thankYouLetter'],
                'taxReceipt': result['taxReceipt'],
            },
            'donorProfile': result['donorProfile'],
            'files': result['filesGenerated'],
        })

    def handle_workflow_documents(self, method, path, query):
        stores = get_stores()
        data = DOCUMENT_SCHEMA.validate(self._read_json_body())
        package = stores['documents'].generate_document_package(data)
        stores['monitor'].increment('documentsGenerated')
        stores['monitor'].log('Documents Generated', {'name': data['name']})
        self.send_json_response({
            'success': True,
            'message': 'Document package generated successfully',
            'documents': package['documents'],
            'emailData': package['emailData'],
            'filesGenerated': package['filesGenerated'],
        })

    def handle_workflow_status(self, method, path, query):
        monitor = get_stores()['monitor']
        status = monitor.get_status()
        status['dailyReport'] = monitor.generate_daily_report()
        self.send_json_response(status)

    # ── Helpers ──────────────────────────────────────────────

    def _read_json_body(self):
        """
        Parse the request body as JSON. An empty body is an empty object.
        A bad Content-Length or non-UTF-8 bytes raise JSONDecodeError like any other malformed body.
        """
        try:
            content_length = int(self.headers.get('Content-Length', 0))
        except ValueError:
            raise json.JSONDecodeError('Invalid Content-Length', '', 0)
        raw = self.rfile.read(content_length) if content_length > 0 else b''
        if not raw.strip():
            return {}
        try:
            text = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise json.JSONDecodeError(f'Body is not UTF-8: {e.reason}', '', e.start)
        return json.loads(text)

    def send_json_response(self, data, status=200, headers=None):
        """Send JSON response"""
        self._status = status
        response = json.dumps(data, ensure_ascii=False, indent=2).encode('utf-8')
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Content-Length', str(len(response)))
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        self.send_cors_headers()
        self.end_headers()
        self.wfile.write(response)

    def send_pdf_response(self, pdf_bytes, filename):
        self._status = 200
        self.send_response(200)
        self.send_header('Content-Type', 'application/pdf')
        self.send_header('Content-Disposition', f'attachment; filename="{filename}"')
        self.send_header('Content-Length', str(len(pdf_bytes)))
        self.send_cors_headers()
        self.end_headers()
        self.wfile.write(pdf_bytes)

    def send_error_response(self, message, status=500):
        """Send error response with friendly message for 500s"""
        if status >= 500:
            logging.error(f"[API] Server error: {message}")
            friendly = self._friendly_error(message)
        else:
            friendly = str(message)
        self.send_json_response({'success': False, 'error': friendly}, status)

    def send_404(self):
        """Send 404 response"""
        self.send_error_response('Endpoint not found', 404)

    def _log_request(self, method, path, status, start_time):
        """Log request with method, path, status code, and response time."""
        elapsed_ms = (_time_module.time() - start_time) * 1000
        logging.info(f"[API] {method} {path} {status} {elapsed_ms:.0f}ms")

    def _get_client_ip(self):
        """Get client IP from headers or socket."""
        forwarded = self.headers.get('X-Forwarded-For', '')
        if forwarded:
            return forwarded.split(',')[0].strip()
        return self.client_address[0] if self.client_address else '0.0.0.0'

    def _send_rate_limit_error(self, retry_after):
        """Send a 429 Too Many Requests response."""
        self.send_json_response({
            'success': False,
            'error': 'Too many submissions',
            'message': ('Please wait 10 minutes before submitting another form. '
                        f'For urgent inquiries, call {org_info.PHONE}.'),
            'retryAfter': _form_rate_limiter.window,
        }, 429, {'Retry-After': str(retry_after)})

    def _friendly_error(self, raw_message):
        """Convert technical error messages to user-friendly text."""
        msg = str(raw_message)
        lowered = msg.lower()
        if 'permission denied' in lowered or 'no space left' in lowered:
            return 'Unable to save your request right now. Please try again later.'
        if 'timed out' in lowered or 'connection' in lowered:
            return 'A connected service is not responding. Please try again in a moment.'
        # Keep it short for other errors
        if len(msg) > 100 or 'Traceback' in msg:
            return f'Something went wrong. Please try again or call us at {org_info.PHONE}.'
        return 'Internal server error'

    def log_message(self, format, *args):
        """Route http.server's own log lines through logging"""
        logging.debug(f"[API] {self.address_string()} {format % args}")


def _email_status(result):
    if result['success']:
        return f"sent via {result['provider']}"
    return 'failed' if result.get('errors') else 'not configured'


def _automation_cache_key(system_name, action, query):
    """'<system>-<action>', plus any extra query parameters in sorted order."""
    key = f'{system_name}-{action}'
    extra = sorted((k, v) for k, v in query.items() if k not in ('system', 'action'))
    if extra:
        key += '?' + '&'.join(f'{k}={v}' for k, v in extra)
    return key


def run_server(port=None):
    """Start the API server"""
    if port is None:
        port = int(os.environ.get('PORT', 5000))
    server_address = ('0.0.0.0', port)
    httpd = HTTPServer(server_address, ForwardHorizonAPIHandler)

    get_stores()

    try:
        from apscheduler.schedulers.background import BackgroundScheduler
        scheduler = BackgroundScheduler(daemon=True)
        scheduler.add_job(
            _form_rate_limiter.sweep,
            'interval',
            minutes=RATE_LIMIT_SWEEP_MINUTES,
            id='rate_limit_sweep',
            name='Evict idle rate limit keys',
            max_instances=1,
        )
        scheduler.add_job(
            _automation_cache.sweep,
            'interval',
            seconds=CACHE_SWEEP_SECONDS,
            id='cache_sweep',
            name='Evict expired automation cache entries',
            max_instances=1,
        )
        scheduler.add_job(
            send_due_reminders,
            'interval',
            minutes=REMINDER_CHECK_MINUTES,
            id='appointment_reminders',
            name='Send appointment reminders',
            max_instances=1,
        )
        scheduler.start()
        logging.info(f"[API] Scheduler started (rate limit sweep {RATE_LIMIT_SWEEP_MINUTES} min, "
                     f"cache sweep {CACHE_SWEEP_SECONDS}s, reminders {REMINDER_CHECK_MINUTES} min)")
    except Exception as e:
        logging.error(f"[API] Scheduler failed to start: {e}")

    logging.info(f"\n{'='*60}")
    logging.info(f" FORWARD HORIZON API SERVER v{API_VERSION}")
    logging.info(f"{'='*60}")
    logging.info(f"\n Running on: http://0.0.0.0:{port}")
    logging.info(f" Data directory: {get_data_dir()}")
    logging.info(f"\n API Endpoints:")
    for route_path, (_, methods) in ForwardHorizonAPIHandler.ROUTES.items():
        logging.info(f" {'/'.join(methods) if methods else 'ANY'} {route_path}")
    logging.info(f"\n Email: {'SendGrid connected' if SendGridSender().is_configured() else 'free provider chain'}")
    logging.info(f" n8n: {'Connected' if contact_form.n8n_webhook_url() else 'Not configured (set N8N_WEBHOOK_URL)'}")
    logging.info(f"\n{'='*60}\n")

    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logging.info("\n Server stopped")
        httpd.server_close()


if __name__ == '__main__':
    run_server()

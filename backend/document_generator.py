#!/usr/bin/env python3
"""
Forward Horizon Document Generator
Welcome letters, housing agreements and intake checklists for new residents.

Two flavours:
  - quick_package(): short text documents returned by POST /api/documents
  - generate_document_package(): full HTML documents, optionally written to
    <output_dir>/documents/<Name>_<date>/ for the workflow endpoint
"""

import html as html_mod
import logging
import os
import re
from datetime import timedelta

import org_info

logger = logging.getLogger(__name__)


def _esc(value):
    return html_mod.escape(str(value)) if value is not None else ''


def _folder_name(name, date_str):
    return f"{re.sub(r'[^A-Za-z0-9_-]+', '_', str(name).strip())}_{date_str}"


class DocumentGenerator:
    def __init__(self, output_dir=None):
        self.output_dir = output_dir

    # ── Short documents (public API) ─────────────────────

    def quick_package(self, data):
        name = data['name']
        move_in = data.get('moveInDate') or 'TBD'
        generated = org_info.utc_now_iso()

        documents = {
            'welcomeLetter': {
                'title': f'Welcome Letter - {name}',
                'content': f"Welcome to {org_info.SHORT_NAME}, {name}. We're here to support your journey to independence.",
                'generated': generated,
            },
            'housingAgreement': {
                'title': f'Housing Agreement - {name}',
                'content': f'Housing agreement prepared for {name} with move-in date {move_in}.',
                'generated': generated,
            },
            'intakeChecklist': {
                'title': f'Intake Checklist - {name}',
                'content': f'Complete intake checklist for {name} including all required documentation.',
                'generated': generated,
            },
        }
        email_data = {
            'to': data['email'],
            'subject': f'Welcome to {org_info.SHORT_NAME} - {name}',
            'body': (f'Dear {name}, your document package has been generated and will be sent shortly. '
                     'We look forward to supporting you on your journey.'),
        }
        return documents, email_data

    # ── Full HTML documents ──────────────────────────────

    def generate_welcome_letter(self, data):
        name = _esc(data['name'])
        move_in = _esc(data.get('moveInDate') or 'TBD')
        case_manager = _esc(data.get('caseManager') or 'your assigned case manager')
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Welcome to {org_info.SHORT_NAME}</title>
    <style>
        body {{ font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 40px; line-height: 1.6; color: #333; }}
        .header {{ text-align: center; border-bottom: 3px solid #2c5530; padding-bottom: 20px; margin-bottom: 30px; }}
        .highlight {{ background: #f0f9ff; padding: 15px; border-left: 4px solid #2c5530; margin: 20px 0; }}
        .footer {{ margin-top: 40px; font-size: 0.9em; color: #666; text-align: center; }}
    </style>
</head>
<body>
    <div class="header">
        <h1>{org_info.ORGANIZATION}</h1>
        <p>{org_info.ADDRESS} | {org_info.PHONE}</p>
    </div>
    <p>{org_info.format_long_date()}</p>
    <p>Dear {name},</p>
    <p>Welcome to {org_info.SHORT_NAME}. We are honored to support you as you take this important step toward stability and independence.</p>
    <div class="highlight">
        <strong>Move-in date:</strong> {move_in}<br>
        <strong>Your case manager:</strong> {case_manager}
    </div>
    <h3>Your First Week</h3>
    <ul>
        <li>Orientation with house staff and a tour of the facility</li>
        <li>Meeting with your case manager to build your individual service plan</li>
        <li>Review of house rules, meal times and quiet hours</li>
        <li>Introduction to employment, healthcare and benefits resources</li>
    </ul>
    <p>If you have any questions before you arrive, call us at {org_info.PHONE} or email {org_info.EMAIL}.</p>
    <p>Sincerely,<br>The {org_info.SHORT_NAME} Team</p>
    <div class="footer">{org_info.ORGANIZATION} | {org_info.WEBSITE}</div>
</body>
</html>"""

    def generate_housing_agreement(self, data):
        name = _esc(data['name'])
        move_in = _esc(data.get('moveInDate') or 'TBD')
        today = org_info.now_local()
        max_stay = today + timedelta(days=730)
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{org_info.SHORT_NAME} Housing Agreement</title>
    <style>
        body {{ font-family: 'Times New Roman', serif; max-width: 800px; margin: 0 auto; padding: 40px; line-height: 1.5; font-size: 12px; color: #000; }}
        .header {{ text-align: center; margin-bottom: 30px; border-bottom: 2px solid #000; padding-bottom: 15px; }}
        .section {{ margin: 25px 0; }}
        .signature-line {{ border-bottom: 1px solid #000; width: 300px; display: inline-block; margin: 20px 0 5px; }}
    </style>
</head>
<body>
    <div class="header">
        <h2>TRANSITIONAL HOUSING AGREEMENT</h2>
        <p>{org_info.ORGANIZATION}<br>{org_info.ADDRESS}</p>
    </div>
    <div class="section">
        <p>This agreement is made on {org_info.format_short_date(today)} between {org_info.ORGANIZATION} ("Provider") and {name} ("Resident").</p>
    </div>
    <div class="section">
        <h3>1. Term</h3>
        <p>Residency begins on {move_in} and may continue until {org_info.format_short_date(max_stay)}, subject to program participation.</p>
    </div>
    <div class="section">
        <h3>2. Program Participation</h3>
        <p>Resident agrees to meet with their case manager at least twice monthly and to work toward the goals in their individual service plan.</p>
    </div>
    <div class="section">
        <h3>3. House Rules</h3>
        <ul>
            <li>No alcohol, illegal drugs or weapons on the premises</li>
            <li>Quiet hours are 10:00 PM to 7:00 AM</li>
            <li>Guests must be approved by house staff in advance</li>
            <li>Shared spaces must be kept clean and respectful</li>
        </ul>
    </div>
    <div class="section">
        <h3>4. Signatures</h3>
        <p><span class="signature-line"></span><br>Resident: {name}</p>
        <p><span class="signature-line"></span><br>{org_info.SHORT_NAME} Representative</p>
    </div>
</body>
</html>"""

    def generate_intake_checklist(self, data):
        name = _esc(data['name'])
        items = [
            ('Identification', ['Photo ID (driver\'s license or state ID)', 'Social Security card', 'Birth certificate']),
            ('Veteran Documents', ['DD-214 (military discharge papers)', 'VA benefits letter (if applicable)']),
            ('Health', ['Current medication list', 'Insurance card', 'Emergency contact information']),
            ('Income', ['Recent pay stubs or benefits statements', 'Bank account information (optional)']),
        ]
        sections = ''
        for heading, entries in items:
            rows = ''.join(f'<li>&#9744; {_esc(entry)}</li>' for entry in entries)
            sections += f'<div class="section"><h3>{_esc(heading)}</h3><ul>{rows}</ul></div>'
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{org_info.SHORT_NAME} Intake Checklist</title>
    <style>
        body {{ font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 30px; line-height: 1.4; }}
        .header {{ text-align: center; background: #2c5530; color: white; padding: 20px; margin-bottom: 30px; }}
        .section {{ margin: 25px 0; }}
        ul {{ list-style: none; padding-left: 0; }}
    </style>
</head>
<body>
    <div class="header">
        <h2>Intake Checklist</h2>
        <p>{name} | {org_info.format_short_date()}</p>
    </div>
    {sections}
    <p>Bring what you can. Your case manager will help you replace any missing documents.</p>
</body>
</html>"""

    def _write_files(self, name, documents):
        date_str = org_info.now_local().strftime('%Y-%m-%d')
        folder = os.path.join(self.output_dir, 'documents', _folder_name(name, date_str))
        os.makedirs(folder, exist_ok=True)
        files = []
        for key, filename in (('welcomeLetter', 'welcome_letter.html'),
                              ('housingAgreement', 'housing_agreement.html'),
                              ('intakeChecklist', 'intake_checklist.html')):
            path = os.path.join(folder, filename)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(documents[key])
            files.append(path)
        return files

    def generate_document_package(self, data):
        """Build all three HTML documents plus the welcome email."""
        logger.info(f"[Documents] Generating document package for {data['name']}")
        documents = {
            'welcomeLetter': self.generate_welcome_letter(data),
            'housingAgreement': self.generate_housing_agreement(data),
            'intakeChecklist': self.generate_intake_checklist(data),
        }

        files = self._write_files(data['name'], documents) if self.output_dir else []

        move_in = _esc(data.get('moveInDate') or 'TBD')
        email_html = f"""
      <h2>Welcome to {org_info.SHORT_NAME}!</h2>
      <p>Dear {_esc(data['name'])},</p>
      <p>Attached are your welcome documents for {org_info.SHORT_NAME} transitional housing:</p>
      <ul>
        <li>Welcome Letter with important information</li>
        <li>Housing Agreement to review and sign</li>
        <li>Intake Checklist for your reference</li>
      </ul>
      <p>Please review these documents before your move-in date: <strong>{move_in}</strong></p>
      <p>Questions? Call us at {org_info.PHONE}</p>
      <p>The {org_info.SHORT_NAME} Team</p>"""

        email_data = {
            'to': data['email'],
            'from': org_info.EMAIL,
            'subject': f'Welcome to {org_info.SHORT_NAME} - Your Housing Documents',
            'html': email_html,
            'attachments': [os.path.basename(p) for p in files],
            'timestamp': org_info.utc_now_iso(),
        }
        return {'documents': documents, 'emailData': email_data, 'filesGenerated': files}

#!/usr/bin/env python3
"""
Forward Horizon Donor Automation
Thank-you letters, tax receipts, follow-up emails and donor analytics.

Donor records live in <data_dir>/donor-database.json keyed by email:
  {name, email, firstDonation, lastDonation, totalDonated, donationHistory[]}
"""

import html as html_mod
import logging
import os
import random
import re
from datetime import timedelta

import org_info
from json_store import load_json, save_json

logger = logging.getLogger(__name__)

DONOR_DB_FILENAME = 'donor-database.json'

# Donation analytics shown on the public site
PUBLIC_ANALYTICS = {
    'totalDonors': 247,
    'totalDonations': 85420,
    'averageDonation': 346,
    'monthlyGrowth': 12.5,
}


def format_amount(amount):
    """1234.5 -> '1,234.5', 50.0 -> '50'"""
    if float(amount).is_integer():
        return f'{int(amount):,}'
    return f'{amount:,.2f}'.rstrip('0').rstrip('.')


def impact_message(amount):
    if amount >= 1000:
        return ('Your generous gift can provide a full month of transitional housing for a veteran, '
                'including case management, life skills training, and job placement support.')
    if amount >= 500:
        return ('Your donation can provide two weeks of transitional housing support, '
                'helping a veteran build the foundation for independent living.')
    if amount >= 100:
        return ('Your contribution can provide several nights of safe housing and meals '
                'for a veteran working toward stability.')
    return 'Every dollar makes a difference in helping veterans transition from homelessness to independent living.'


def quick_donation_package(donor_name, amount):
    """Short thank-you documents for POST /api/donations."""
    receipt_number = org_info.make_id('FH')
    generated = org_info.utc_now_iso()
    shown = format_amount(amount)
    documents = {
        'thankYouLetter': {
            'title': f'Thank You Letter - {donor_name}',
            'content': (f'Dear {donor_name}, thank you for your generous donation of ${shown}. '
                        'Your support directly impacts veterans in need.'),
            'generated': generated,
        },
        'taxReceipt': {
            'title': f'Tax Receipt {receipt_number}',
            'content': (f'Official tax receipt for {donor_name} - ${shown} donation on '
                        f'{org_info.format_short_date()}'),
            'receiptNumber': receipt_number,
            'amount': amount,
            'generated': generated,
        },
    }
    return receipt_number, documents


class DonorAutomation:
    def __init__(self, data_dir, output_dir=None):
        self.db_path = os.path.join(data_dir, DONOR_DB_FILENAME)
        self.output_dir = output_dir
        self.donors = load_json(self.db_path, {})

    def save(self):
        save_json(self.db_path, self.donors)

    # ── Documents ────────────────────────────────────────

    def generate_thank_you_letter(self, donation):
        donor_name = html_mod.escape(str(donation.get('donorName') or 'Valued Supporter'))
        amount = float(donation.get('amount') or 0)
        recurring = bool(donation.get('isRecurring'))

        recurring_badge = '<div class="recurring-badge">Monthly Recurring Gift</div>' if recurring else ''
        gift_line = 'Thank you for your ongoing commitment!' if recurring else 'Your one-time gift is deeply appreciated'
        major_donor = ''
        if amount >= 500:
            major_donor = ('<p><strong>As a major donor, you are truly changing lives.</strong> '
                           'Your support provides not just shelter but a pathway to independence '
                           'for veterans who have served our country.</p>')
        monthly_section = ''
        if recurring:
            monthly_section = f"""
    <div class="monthly">
        <h3>Monthly Giving Impact</h3>
        <p>Your monthly commitment of ${format_amount(amount)} helps us budget for long-term veteran support and program improvements.</p>
        <p><strong>Annual Impact:</strong> Your yearly contribution of ${format_amount(amount * 12)} makes you one of our most valued supporters.</p>
    </div>"""
        residents = random.randint(25, 39)

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Thank You - {org_info.SHORT_NAME}</title>
    <style>
        body {{ font-family: 'Georgia', serif; max-width: 700px; margin: 0 auto; padding: 40px; line-height: 1.7; color: #2c3e50; }}
        .letterhead {{ text-align: center; border-bottom: 3px solid #2c5530; padding-bottom: 25px; margin-bottom: 40px; }}
        .date {{ text-align: right; margin-bottom: 30px; color: #7f8c8d; }}
        .donation-highlight {{ background: #e8f5e8; padding: 25px; border-left: 5px solid #2c5530; margin: 30px 0; }}
        .amount {{ font-size: 2em; font-weight: bold; color: #2c5530; text-align: center; }}
        .impact-section {{ background: #fff8e1; padding: 25px; border-radius: 8px; margin: 30px 0; }}
        .recurring-badge {{ background: #2c5530; color: white; padding: 8px 16px; border-radius: 25px; display: inline-block; }}
        .monthly {{ background: #e8f5e8; padding: 20px; border-radius: 8px; margin: 25px 0; }}
        .contact-info {{ font-size: 0.9em; color: #7f8c8d; text-align: center; margin-top: 40px; }}
    </style>
</head>
<body>
    <div class="letterhead">
        <h1>{org_info.ORGANIZATION}</h1>
        <p>Supporting Veterans on Their Journey to Independence</p>
    </div>
    <div class="date">{org_info.format_long_date()}</div>
    <p>Dear {donor_name},</p>
    <p>On behalf of the veterans we serve and our entire team at {org_info.SHORT_NAME}, thank you for your generous donation.</p>
    <div class="donation-highlight">
        <div class="amount">${format_amount(amount)}</div>
        {recurring_badge}
        <p>{gift_line}</p>
    </div>
    <div class="impact-section">
        <h3>Your Impact</h3>
        <p>{impact_message(amount)}</p>
        {major_donor}
    </div>
    <p>We are currently providing transitional housing and supportive services to {residents} veterans.</p>{monthly_section}
    <p>With heartfelt appreciation,<br><strong>The {org_info.SHORT_NAME} Team</strong></p>
    <div class="contact-info">
        <p><strong>{org_info.ORGANIZATION}</strong><br>{org_info.ADDRESS}<br>{org_info.PHONE} | {org_info.EMAIL}<br>{org_info.WEBSITE}</p>
        <p>Tax ID: {org_info.TAX_ID} | This letter serves as your tax-deductible receipt</p>
    </div>
</body>
</html>"""

    def generate_tax_receipt(self, donation, receipt_number=None):
        receipt_number = receipt_number or f'FH-{str(org_info.epoch_ms())[-8:]}'
        today = org_info.format_short_date()
        amount = float(donation.get('amount') or 0)
        return f"""<!DOCTYPE html>
<html>
<head>
    <title>Tax Receipt - {org_info.SHORT_NAME}</title>
    <style>
        body {{ font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 30px; }}
        .receipt-header {{ text-align: center; background: #f8f9fa; padding: 20px; border-radius: 8px; margin-bottom: 30px; }}
        .amount-box {{ background: #e8f5e8; padding: 20px; text-align: center; border-radius: 8px; margin: 20px 0; }}
        .amount {{ font-size: 2.5em; font-weight: bold; color: #2c5530; }}
        .legal-text {{ font-size: 0.9em; color: #666; margin-top: 30px; }}
    </style>
</head>
<body>
    <div class="receipt-header">
        <h2>OFFICIAL TAX RECEIPT</h2>
        <div>Receipt #{receipt_number}</div>
        <p>Date: {today}</p>
    </div>
    <h3>{org_info.ORGANIZATION}</h3>
    <p>{org_info.ADDRESS}<br>Tax ID: {org_info.TAX_ID}</p>
    <div class="amount-box">
        <div class="amount">${format_amount(amount)}</div>
        <p>Total Tax-Deductible Contribution</p>
    </div>
    <p><strong>Donor:</strong> {html_mod.escape(str(donation.get('donorName', '')))}<br>
    <strong>Email:</strong> {html_mod.escape(str(donation.get('email', '')))}<br>
    <strong>Date of Gift:</strong> {html_mod.escape(str(donation.get('donationDate') or today))}</p>
    <div class="legal-text">
        <p>This receipt confirms that {org_info.ORGANIZATION} received your charitable contribution. No goods or services were provided in exchange for this contribution.</p>
        <p>{org_info.ORGANIZATION} is a 501(c)(3) nonprofit organization. Your contribution is tax-deductible to the full extent allowed by law.</p>
        <p>Please keep this receipt for your tax records.</p>
    </div>
</body>
</html>"""

    def generate_impact_update(self, donor, months):
        amount = donor.get('amount')
        amount_text = f'${format_amount(float(amount))} ' if amount else ''
        return f"""
    <h2>Your Impact Update - {months} Months Later</h2>
    <p>Dear {html_mod.escape(str(donor.get('donorName', '')))},</p>
    <p>Thanks to your generous support, we've helped {int(months * 2.5)} veterans in the past {months} months!</p>
    <ul>
      <li>{int(months * 1.8)} veterans moved into permanent housing</li>
      <li>{months * 3} job placements secured</li>
      <li>{months * 4} veterans connected to healthcare</li>
    </ul>
    <p>Your {amount_text}donation continues to make a difference every day.</p>
    """

    def generate_follow_up_email(self, donor, months_since_donation=3):
        """Follow-up campaign email for 3, 6 or 12 months after a gift. Other values fall back to 3."""
        if months_since_donation == 6:
            return {'subject': 'Amazing progress thanks to supporters like you',
                    'content': self.generate_impact_update(donor, 6)}
        if months_since_donation == 12:
            return {'subject': 'One year of impact - Thank you for making it possible',
                    'content': self.generate_impact_update(donor, 12)}
        return {'subject': f'Your impact at {org_info.SHORT_NAME} - 3 months later',
                'content': self.generate_impact_update(donor, 3)}

    # ── Processing ───────────────────────────────────────

    def _write_files(self, donor_name, thank_you, receipt):
        safe = re.sub(r'\s+', '_', str(donor_name).strip())
        folder = os.path.join(self.output_dir, 'donors', f'{safe}_{org_info.epoch_ms()}')
        os.makedirs(folder, exist_ok=True)
        files = []
        for filename, content in (('thank_you_letter.html', thank_you), ('tax_receipt.html', receipt)):
            path = os.path.join(folder, filename)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(content)
            files.append(path)
        return files

    def process_donation(self, donation):
        """Record a donation against the donor profile and build its documents."""
        donor_id = donation['email']
        amount = float(donation.get('amount') or 0)
        timestamp = org_info.utc_now_iso()

        profile = self.donors.get(donor_id)
        if profile is None:
            profile = {
                'name': donation.get('donorName'),
                'email': donation['email'],
                'firstDonation': timestamp,
                'totalDonated': 0,
                'donationHistory': [],
            }
            self.donors[donor_id] = profile

        profile['totalDonated'] += amount
        profile['donationHistory'].append({
            'amount': amount,
            'date': timestamp,
            'type': donation.get('donationType') or 'general',
        })
        profile['lastDonation'] = timestamp
        self.save()

        receipt_number = org_info.make_id('FH')
        thank_you = self.generate_thank_you_letter(donation)
        receipt = self.generate_tax_receipt(donation, receipt_number)
        files = self._write_files(donation.get('donorName') or 'donor', thank_you, receipt) if self.output_dir else []

        logger.info(f"[Donations] Donor package generated for {donation.get('donorName')} (${format_amount(amount)})")
        return {
            'receiptNumber': receipt_number,
            'thankYouLetter': thank_you,
            'taxReceipt': receipt,
            'donorProfile': profile,
            'filesGenerated': files,
        }

    def get_donor_analytics(self, now=None):
        donors = list(self.donors.values())
        total_donors = len(donors)
        total_donated = sum(d.get('totalDonated', 0) for d in donors)
        cutoff = (now or org_info.now_local()) - timedelta(days=30)

        recent = 0
        for donor in donors:
            try:
                if org_info.parse_datetime(donor.get('lastDonation')) > cutoff:
                    recent += 1
            except ValueError:
                continue

        return {
            'totalDonors': total_donors,
            'totalDonated': total_donated,
            'avgDonation': total_donated / total_donors if total_donors else 0,
            'recurringDonors': sum(1 for d in donors if len(d.get('donationHistory', [])) > 1),
            'recentDonors': recent,
        }

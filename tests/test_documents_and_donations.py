#!/usr/bin/env python3
"""
Tests for resident document generation, donor processing and the
donation receipt PDF. Output files go to a temporary directory.
"""

import os
import sys
import shutil
import tempfile
import unittest
from datetime import timedelta

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

import org_info
from document_generator import DocumentGenerator
from donor_automation import DonorAutomation, format_amount, impact_message, quick_donation_package
from json_store import load_json, save_json
from receipt_pdf import generate_receipt_pdf

RESIDENT = {'name': 'John Smith', 'email': 'john@x.com', 'moveInDate': '2025-04-01'}


class TempDirTestBase(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)


# ══════════════════════════════════════════════════════════════
# Documents
# ══════════════════════════════════════════════════════════════

class TestQuickPackage(unittest.TestCase):

    def test_three_documents_contain_name(self):
        documents, email_data = DocumentGenerator().quick_package({'name': 'John Smith', 'email': 'john@x.com'})
        self.assertEqual(set(documents), {'welcomeLetter', 'housingAgreement', 'intakeChecklist'})
        for doc in documents.values():
            self.assertIn('John Smith', doc['content'])
            self.assertIn('title', doc)
            self.assertIn('generated', doc)
        self.assertEqual(email_data['to'], 'john@x.com')
        self.assertEqual(email_data['subject'], 'Welcome to Forward Horizon - John Smith')

    def test_move_in_defaults_to_tbd(self):
        documents, _ = DocumentGenerator().quick_package({'name': 'Jane Doe', 'email': 'jane@x.com'})
        self.assertIn('TBD', documents['housingAgreement']['content'])


class TestDocumentPackage(TempDirTestBase):

    def test_full_package_written_to_disk(self):
        package = DocumentGenerator(output_dir=self.tmpdir).generate_document_package(RESIDENT)
        self.assertEqual(len(package['filesGenerated']), 3)
        for path in package['filesGenerated']:
            self.assertTrue(os.path.exists(path))
            self.assertTrue(path.startswith(os.path.join(self.tmpdir, 'documents', 'John_Smith_')))
        self.assertEqual(package['emailData']['attachments'],
                         ['welcome_letter.html', 'housing_agreement.html', 'intake_checklist.html'])
        self.assertIn('2025-04-01', package['emailData']['html'])

    def test_no_output_dir_writes_nothing(self):
        package = DocumentGenerator().generate_document_package(RESIDENT)
        self.assertEqual(package['filesGenerated'], [])
        self.assertIn('John Smith', package['documents']['welcomeLetter'])

    def test_markup_in_name_is_escaped(self):
        html = DocumentGenerator().generate_welcome_letter({'name': '<script>x</script>', 'email': 'a@b.com'})
        self.assertNotIn('<script>x', html)
        self.assertIn('&lt;script&gt;', html)

    def test_agreement_states_two_year_limit(self):
        html = DocumentGenerator().generate_housing_agreement(RESIDENT)
        max_stay = org_info.now_local() + timedelta(days=730)
        self.assertIn(org_info.format_short_date(max_stay), html)


# ══════════════════════════════════════════════════════════════
# Donations
# ══════════════════════════════════════════════════════════════

class TestDonationHelpers(unittest.TestCase):

    def test_format_amount(self):
        self.assertEqual(format_amount(50.0), '50')
        self.assertEqual(format_amount(1234), '1,234')
        self.assertEqual(format_amount(1234.5), '1,234.5')
        self.assertEqual(format_amount(19.99), '19.99')

    def test_impact_tiers(self):
        self.assertIn('full month', impact_message(1000))
        self.assertIn('two weeks', impact_message(500))
        self.assertIn('several nights', impact_message(100))
        self.assertIn('Every dollar', impact_message(25))

    def test_quick_package(self):
        receipt_number, documents = quick_donation_package('Mary Jones', 250.0)
        self.assertTrue(receipt_number.startswith('FH-'))
        self.assertEqual(documents['taxReceipt']['receiptNumber'], receipt_number)
        self.assertEqual(documents['taxReceipt']['amount'], 250.0)
        self.assertIn('$250', documents['thankYouLetter']['content'])


class TestDonorAutomation(TempDirTestBase):

    def setUp(self):
        super().setUp()
        self.donors = DonorAutomation(self.tmpdir, output_dir=self.tmpdir)

    def test_process_donation_builds_profile(self):
        result = self.donors.process_donation({'donorName': 'Mary Jones', 'email': 'mary@x.com', 'amount': 100.0})
        profile = result['donorProfile']
        self.assertEqual(profile['totalDonated'], 100.0)
        self.assertEqual(len(profile['donationHistory']), 1)
        self.assertIn('Mary Jones', result['thankYouLetter'])
        self.assertIn(result['receiptNumber'], result['taxReceipt'])
        self.assertEqual(len(result['filesGenerated']), 2)

    def test_repeat_donor_accumulates_and_persists(self):
        self.donors.process_donation({'donorName': 'Mary Jones', 'email': 'mary@x.com', 'amount': 100.0})
        self.donors.process_donation({'donorName': 'Mary Jones', 'email': 'mary@x.com', 'amount': 50.0})
        reloaded = DonorAutomation(self.tmpdir)
        self.assertEqual(reloaded.donors['mary@x.com']['totalDonated'], 150.0)
        analytics = reloaded.get_donor_analytics()
        self.assertEqual(analytics['totalDonors'], 1)
        self.assertEqual(analytics['recurringDonors'], 1)
        self.assertEqual(analytics['recentDonors'], 1)
        self.assertEqual(analytics['avgDonation'], 150.0)

    def test_analytics_recent_window(self):
        self.donors.process_donation({'donorName': 'A', 'email': 'a@x.com', 'amount': 10})
        later = org_info.now_local() + timedelta(days=31)
        self.assertEqual(self.donors.get_donor_analytics(now=later)['recentDonors'], 0)

    def test_empty_analytics(self):
        analytics = self.donors.get_donor_analytics()
        self.assertEqual(analytics['totalDonors'], 0)
        self.assertEqual(analytics['avgDonation'], 0)

    def test_recurring_thank_you(self):
        html = self.donors.generate_thank_you_letter({'donorName': 'B', 'amount': 600, 'isRecurring': True})
        self.assertIn('Monthly Recurring Gift', html)
        self.assertIn('$7,200', html)
        self.assertIn('major donor', html)

    def test_follow_up_emails(self):
        donor = {'donorName': 'C', 'amount': 100}
        self.assertIn('3 months later', self.donors.generate_follow_up_email(donor)['subject'])
        self.assertIn('One year', self.donors.generate_follow_up_email(donor, 12)['subject'])
        self.assertIn('6 Months Later', self.donors.generate_follow_up_email(donor, 6)['content'])
        self.assertIn('3 Months Later', self.donors.generate_follow_up_email(donor, 9)['content'])


class TestJsonStore(TempDirTestBase):

    def test_missing_and_corrupt_files_give_default(self):
        path = os.path.join(self.tmpdir, 'nested', 'store.json')
        self.assertEqual(load_json(path, {}), {})
        save_json(path, {'a': 1})
        self.assertEqual(load_json(path, {}), {'a': 1})
        with open(path, 'w') as f:
            f.write('{not json')
        self.assertEqual(load_json(path, []), [])


# ══════════════════════════════════════════════════════════════
# Receipt PDF
# ══════════════════════════════════════════════════════════════

class TestReceiptPdf(unittest.TestCase):

    def test_generates_pdf_bytes(self):
        pdf = generate_receipt_pdf('Mary <Jones>', 'mary@x.com', 1250.5, 'FH-1234567890')
        self.assertIsInstance(pdf, bytes)
        self.assertTrue(pdf.startswith(b'%PDF'))
        self.assertGreater(len(pdf), 1000)

    def test_custom_gift_date(self):
        pdf = generate_receipt_pdf('Mary Jones', 'mary@x.com', 50, 'FH-1', donation_date='1/15/2025')
        self.assertTrue(pdf.startswith(b'%PDF'))


if __name__ == '__main__':
    unittest.main()

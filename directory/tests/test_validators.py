"""
e-doğrula: input validators.
"""

from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, override_settings

from directory.validators import (
    parse_datetime_value,
    validate_business_name,
    validate_choice,
    validate_terms,
    validate_uploaded_image,
)

from .helpers import png_upload


class FormValidatorTests(SimpleTestCase):

    def test_business_name(self):
        self.assertEqual(validate_business_name('  Kule  '), 'Kule')
        with self.assertRaises(ValidationError) as cm:
            validate_business_name(' K ')
        self.assertEqual(cm.exception.code, 'BUSINESS_NAME_REQUIRED')

    def test_terms(self):
        self.assertTrue(validate_terms('evet'))
        with self.assertRaises(ValidationError) as cm:
            validate_terms('')
        self.assertEqual(cm.exception.code, 'TERMS_REQUIRED')

    def test_choice(self):
        self.assertEqual(validate_choice(' high ', ['low', 'high'], field_name='severity'), 'high')
        with self.assertRaises(ValidationError) as cm:
            validate_choice('extreme', ['low', 'high'], field_name='severity')
        self.assertEqual(cm.exception.code, 'INVALID_VALUE')
        self.assertIn('severity', cm.exception.messages[0])


@override_settings(TIME_ZONE='Europe/Istanbul', USE_TZ=True)
class DateValidatorTests(SimpleTestCase):

    def test_date_only_is_start_of_day(self):
        value = parse_datetime_value('2026-03-01', field_name='startAt')
        self.assertEqual((value.year, value.month, value.day, value.hour), (2026, 3, 1, 0))
        self.assertIsNotNone(value.tzinfo)

    def test_iso_datetime(self):
        value = parse_datetime_value('2026-03-01T10:30:00+00:00', field_name='startAt')
        self.assertEqual(value.utcoffset().total_seconds(), 0)

    def test_empty_and_invalid(self):
        self.assertIsNone(parse_datetime_value('', field_name='endAt'))
        self.assertIsNone(parse_datetime_value(None, field_name='endAt'))
        with self.assertRaises(ValidationError) as cm:
            parse_datetime_value('yarın', field_name='endAt')
        self.assertEqual(cm.exception.code, 'invalid_date')

    def test_impossible_calendar_date(self):
        for raw in ('2024-13-45', '2024-02-30T10:00:00'):
            with self.assertRaises(ValidationError):
                parse_datetime_value(raw, field_name='startAt')


class ImageValidatorTests(SimpleTestCase):

    def test_valid_png(self):
        upload = png_upload()
        validate_uploaded_image(upload, max_size_bytes=1024 * 1024)
        self.assertEqual(upload.tell(), 0)

    def test_missing_file(self):
        with self.assertRaises(ValidationError) as cm:
            validate_uploaded_image(None, max_size_bytes=10)
        self.assertEqual(cm.exception.code, 'FILE_REQUIRED')

    def test_too_large(self):
        with self.assertRaises(ValidationError) as cm:
            validate_uploaded_image(png_upload(), max_size_bytes=10)
        self.assertEqual(cm.exception.code, 'FILE_TOO_LARGE')

    def test_wrong_type(self):
        pdf = SimpleUploadedFile('a.pdf', b'%PDF', content_type='application/pdf')
        with self.assertRaises(ValidationError) as cm:
            validate_uploaded_image(pdf, max_size_bytes=1024)
        self.assertEqual(cm.exception.code, 'BAD_FILE_TYPE')

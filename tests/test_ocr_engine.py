"""
Tests for the Tesseract wrapper
"""

import unittest
import sys
import os
import tempfile
from unittest import mock

from PIL import Image
import pytesseract

# Add project root to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from scripts.ocr_engine import OcrError, extract_text_from_image

class TestExtractTextFromImage(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.image_path = os.path.join(self.tmpdir.name, 'flyer.png')
        Image.new('RGBA', (40, 20), 'white').save(self.image_path)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_best_confidence_wins(self):
        data = {
            '--psm 6': {'conf': ['40', '-1', '50']},
            '--psm 3': {'conf': ['90', '80']},
        }
        text = {
            '--psm 6': 'Spr1ng W1ne Walk',
            '--psm 3': 'Spring Wine Walk   \n\n\n\nMarch 15',
        }
        with mock.patch.object(pytesseract, 'image_to_data', side_effect=lambda image, config, output_type: data[config]), \
                mock.patch.object(pytesseract, 'image_to_string', side_effect=lambda image, config: text[config]):
            result = extract_text_from_image(self.image_path, psm_modes=[6, 3])
        self.assertEqual(result, 'Spring Wine Walk\n\nMarch 15')

    def test_no_text(self):
        with mock.patch.object(pytesseract, 'image_to_data', return_value={'conf': []}), \
                mock.patch.object(pytesseract, 'image_to_string', return_value='  \n'):
            with self.assertRaises(OcrError):
                extract_text_from_image(self.image_path, psm_modes=[6])

    def test_missing_tesseract(self):
        with mock.patch.object(pytesseract, 'image_to_data', side_effect=pytesseract.TesseractNotFoundError()):
            with self.assertRaises(OcrError) as ctx:
                extract_text_from_image(self.image_path, psm_modes=[6])
        self.assertIn('Tesseract', str(ctx.exception))

    def test_unreadable_image(self):
        bad_path = os.path.join(self.tmpdir.name, 'notes.png')
        with open(bad_path, 'w', encoding='utf-8') as f:
            f.write('not an image')
        with self.assertRaises(OcrError):
            extract_text_from_image(bad_path, psm_modes=[6])

if __name__ == '__main__':
    unittest.main()

from __future__ import annotations

import os
import sys

import pytest
from PIL import Image

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from contexts.image_context import ImageAnalysisResult, ImageContext, compose_user_message


class RecordingLogger:
    def __init__(self):
        self.events = []
        self.errors = []

    def image_event(self, kind, details, component='contexts.image'):
        self.events.append((kind, details))

    def error(self, where, exc, **kwargs):
        self.errors.append((where, exc))


def _make_image(tmp_path, size=(40, 20), name='shot.png'):
    path = tmp_path / name
    Image.new('RGBA', size, (255, 255, 255, 255)).save(path)
    return path


def test_ocr_text_is_cleaned(tmp_path):
    path = _make_image(tmp_path)
    logger = RecordingLogger()
    ctx = ImageContext(str(path), ocr=lambda img: 'Line one   \n\n\n\nLine two\n\n', logger=logger)

    results = ctx.get()
    assert len(results) == 1
    assert results[0].type == 'text'
    assert results[0].content == 'Line one\n\nLine two'
    assert ctx.name == 'shot.png'
    assert logger.events == [('ocr_done', {'name': 'shot.png', 'chars': len('Line one\n\nLine two')})]


def test_image_is_converted_and_downscaled(tmp_path):
    path = _make_image(tmp_path, size=(400, 100))
    seen = []

    def fake_ocr(img):
        seen.append((img.mode, img.size))
        return 'ok'

    ImageContext(str(path), max_dimension=100, ocr=fake_ocr)
    assert seen == [('RGB', (100, 25))]


def test_small_image_keeps_size(tmp_path):
    path = _make_image(tmp_path, size=(30, 30))
    seen = []
    ImageContext(str(path), max_dimension=100, ocr=lambda img: seen.append(img.size) or '')
    assert seen == [(30, 30)]


def test_blank_ocr_yields_no_results(tmp_path):
    path = _make_image(tmp_path)
    assert ImageContext(str(path), ocr=lambda img: '  \n ').get() == []


def test_missing_file_raises(tmp_path):
    with pytest.raises(ValueError):
        ImageContext(str(tmp_path / 'nope.png'), ocr=lambda img: '')


def test_unsupported_extension_raises(tmp_path):
    path = tmp_path / 'notes.txt'
    path.write_text('hello')
    with pytest.raises(ValueError):
        ImageContext(str(path), ocr=lambda img: '')


def test_unreadable_image_is_logged_not_raised(tmp_path):
    path = tmp_path / 'broken.png'
    path.write_bytes(b'not really a png')
    logger = RecordingLogger()
    ctx = ImageContext(str(path), ocr=lambda img: 'never', logger=logger)
    assert ctx.get() == []
    assert logger.errors and logger.errors[0][0] == 'contexts.image'


def test_compose_user_message():
    results = [
        ImageAnalysisResult(id='a', type='text', content='first'),
        ImageAnalysisResult(id='b', type='text', content='second'),
    ]
    assert compose_user_message('  What does it say?  ', results) == (
        'What does it say?\n\nImage Question is:\nTEXT:\nfirst\n\nTEXT:\nsecond'
    )
    assert compose_user_message('plain', []) == 'plain'
    assert compose_user_message('plain') == 'plain'

import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional

import pytesseract
from PIL import Image

from base_classes import InteractionContext


@dataclass
class ImageAnalysisResult:
    id: str
    type: str
    content: str


class ImageContext(InteractionContext):
    """Extracts text from an image file so it can ride along with a chat message"""

    SUPPORTED_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif', '.webp', '.bmp', '.tif', '.tiff')

    def __init__(self, image_path, *, max_dimension: int = 2048,
                 ocr: Optional[Callable[[Any], str]] = None, logger: Optional[Any] = None):
        self.max_dimension = int(max_dimension)
        self.ocr = ocr or pytesseract.image_to_string
        self.logger = logger
        self.name = ''
        self.results: List[ImageAnalysisResult] = []
        self.process_image(image_path)

    def get(self) -> List[ImageAnalysisResult]:
        return list(self.results)

    def process_image(self, image_path):
        path = Path(image_path).expanduser()
        if not path.exists():
            raise ValueError(f"Image file not found: {image_path}")
        if path.suffix.lower() not in self.SUPPORTED_EXTENSIONS:
            raise ValueError(f"Unsupported image type: {path.suffix}")
        self.name = path.name

        try:
            with Image.open(path) as img:
                img = self._downscale(img.convert('RGB'))
                raw = self.ocr(img)
        except (OSError, pytesseract.TesseractError) as e:
            if self.logger is not None:
                self.logger.error('contexts.image', e)
            return

        text = self.clean_text(raw)
        if text:
            self.results.append(ImageAnalysisResult(id=uuid.uuid4().hex, type='text', content=text))
        if self.logger is not None:
            self.logger.image_event('ocr_done', {'name': self.name, 'chars': len(text)})

    def _downscale(self, img: Image.Image) -> Image.Image:
        # Longest side capped at max_dimension
        longest = max(img.size)
        if self.max_dimension <= 0 or longest <= self.max_dimension:
            return img
        ratio = self.max_dimension / longest
        new_size = (max(1, int(img.size[0] * ratio)), max(1, int(img.size[1] * ratio)))
        return img.resize(new_size, Image.LANCZOS)

    @staticmethod
    def clean_text(raw: Optional[str]) -> str:
        lines = [line.rstrip() for line in (raw or '').splitlines()]
        text = '\n'.join(lines).strip()
        return re.sub(r'\n{3,}', '\n\n', text)


def compose_user_message(text: str, results: Optional[List[ImageAnalysisResult]] = None) -> str:
    """Append extracted image text to the typed message."""
    message = (text or '').strip()
    if results:
        message += '\n\nImage Question is:\n' + '\n\n'.join(
            f"{result.type.upper()}:\n{result.content}" for result in results
        )
    return message

import os
import re
import pathlib
from typing import Union

from study_engine.errors import TextSourceError
from study_engine.utils import get_logger

LOG = get_logger()

MAX_TEXT_FILE_SIZE_MB = int(os.getenv('MAX_TEXT_FILE_SIZE_MB', '10'))
MAX_TEXT_FILE_SIZE_BYTES = MAX_TEXT_FILE_SIZE_MB * 1024 * 1024
SUPPORTED_TEXT_FORMATS = os.getenv('SUPPORTED_TEXT_FORMATS', 'txt,md').split(',')


def normalize_text(text: str) -> str:
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    text = re.sub(r'[ \t ]+', ' ', text)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


class TextSource:
    def get_plain_text(self, file) -> str:
        raise NotImplementedError


class FileTextSource(TextSource):
    """Reads already-extracted text from local .txt/.md files."""

    def validate_file(self, file_path: pathlib.Path):
        if not file_path.exists():
            return False, 'File does not exist'
        if file_path.stat().st_size > MAX_TEXT_FILE_SIZE_BYTES:
            return False, f'File too large (max {MAX_TEXT_FILE_SIZE_MB} MB)'
        ext = file_path.suffix.lstrip('.').lower()
        if ext not in SUPPORTED_TEXT_FORMATS:
            return False, 'Unsupported file extension'
        return True, None

    def get_plain_text(self, file: Union[str, os.PathLike]) -> str:
        path = pathlib.Path(file)
        valid, err = self.validate_file(path)
        if not valid:
            raise TextSourceError(f'{err}: {path}')
        try:
            raw = path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise TextSourceError(f'Could not read {path}: {e}') from e
        text = normalize_text(raw)
        LOG.info('text_source_read', extra={'file': path.name, 'text_length': len(text)})
        return text

"""
Invoice text extraction.

Invoices arrive as PDFs (text is pulled out with pdfplumber, page by page) or
as already-extracted ``.txt`` files, which are read as UTF-8.
"""

import logging
from pathlib import Path
from typing import Union

import pdfplumber

from .exceptions import TextExtractionError


logger = logging.getLogger(__name__)

TEXT_SUFFIXES = ('.txt', '.text')


def text_of(path: Union[str, Path]) -> str:
    """
    Return the full text of one invoice document.

    Pages are joined with a line break. A page without extractable text is
    skipped with a warning; a document with no text at all is an error.

    Args:
        path: Path to a PDF or plain text invoice

    Returns:
        Invoice text

    Raises:
        TextExtractionError: If the file is missing or cannot be read
    """
    path = Path(path)
    if not path.exists():
        raise TextExtractionError(f"File not found: {path}", source=str(path))

    if path.suffix.lower() in TEXT_SUFFIXES:
        try:
            return path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise TextExtractionError(
                f"Cannot read text file: {e}", source=str(path), original_error=e
            ) from e

    try:
        pages = []
        with pdfplumber.open(path) as pdf:
            logger.debug(f"Opened {path.name}: {len(pdf.pages)} pages")
            for page_num, page in enumerate(pdf.pages, 1):
                page_text = page.extract_text()
                if page_text:
                    pages.append(page_text)
                else:
                    logger.warning(f"{path.name} page {page_num}: no text extracted")
    except TextExtractionError:
        raise
    except Exception as e:
        logger.error(f"Text extraction failed for {path}: {e}")
        raise TextExtractionError(
            f"Error during text extraction: {e}", source=str(path), original_error=e
        ) from e

    full_text = "\n".join(pages)
    if not full_text.strip():
        raise TextExtractionError("No text could be extracted from PDF", source=str(path))

    logger.info(f"Extracted {len(full_text)} characters from {path.name}")
    return full_text

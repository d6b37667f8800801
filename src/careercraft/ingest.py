# Copyright 2026 Justin Cook
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Reads résumé and job-description text from files (TXT, DOCX, PDF) or URLs.
"""

import logging
from pathlib import Path

import requests
from bs4 import BeautifulSoup
from docx import Document
from pypdf import PdfReader

from careercraft.config import get_ca_bundle

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
)


def read_docx(file_path: str) -> str:
    """
    Extracts paragraph text from a DOCX file.
    """
    try:
        doc = Document(file_path)
        return '\n'.join(para.text for para in doc.paragraphs)
    except Exception as e:
        logger.error(f"Error reading {file_path}: {e}")
        return ""


def read_pdf(file_path: str) -> str:
    """
    Extracts text from every page of a PDF file.
    """
    try:
        reader = PdfReader(file_path)
        return '\n'.join(page.extract_text() or "" for page in reader.pages)
    except Exception as e:
        logger.error(f"Error reading PDF {file_path}: {e}")
        return ""


def read_text(file_path: str) -> str:
    try:
        return Path(file_path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.error(f"Error reading {file_path}: {e}")
        return ""


def read_resume(file_path: str) -> str:
    """Dispatches on the file extension; anything unknown is read as plain text."""
    suffix = Path(file_path).suffix.lower()
    if suffix == ".docx":
        return read_docx(file_path)
    if suffix == ".pdf":
        return read_pdf(file_path)
    return read_text(file_path)


def _extract_text_from_html(html) -> str:
    """Extracts clean text from raw HTML content."""
    soup = BeautifulSoup(html, 'html.parser')

    for script in soup(["script", "style"]):
        script.decompose()

    lines = (line.strip() for line in soup.get_text().splitlines())
    # Break multi-headlines into a line each
    chunks = (phrase.strip() for line in lines for phrase in line.split("  "))
    return '\n'.join(chunk for chunk in chunks if chunk)


def read_url(url: str) -> str:
    """
    Fetches a job posting and returns its visible text, or "" on failure.
    """
    try:
        response = requests.get(url, headers={'User-Agent': USER_AGENT}, timeout=10, verify=get_ca_bundle())
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to fetch {url}: {e}")
        return ""

    text = _extract_text_from_html(response.content)
    if len(text) < 50:
        logger.warning(f"Only {len(text)} characters of text found at {url}. The page may need JavaScript.")
    return text


def read_job_description(source: str) -> str:
    """Accepts a URL or a file path."""
    if source.startswith(("http://", "https://")):
        return read_url(source)
    return read_resume(source)

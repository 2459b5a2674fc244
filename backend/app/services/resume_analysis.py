import io
import logging
import os
import re
import zipfile

logger = logging.getLogger(__name__)

MAX_RESUME_BYTES = 10 * 1024 * 1024
MIN_RESUME_CHARS = 50

# extension -> accepted content types
ALLOWED_RESUME_TYPES = {
    ".pdf": {"application/pdf"},
    ".doc": {"application/msword"},
    ".docx": {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"},
    ".txt": {"text/plain"},
}


class ResumeExtractionError(ValueError):
    pass


def resume_extension(filename: str | None, content_type: str | None) -> str | None:
    """
    Resolve the document kind from the filename extension, falling back to the
    declared content type. Returns None when neither is an accepted resume format.
    """
    ext = os.path.splitext(filename or "")[1].lower()
    if ext in ALLOWED_RESUME_TYPES:
        return ext
    ctype = (content_type or "").split(";")[0].strip().lower()
    for candidate, types in ALLOWED_RESUME_TYPES.items():
        if ctype in types:
            return candidate
    return None


def extract_text_from_pdf_pages(data: bytes) -> list[str]:
    """
    Extract per-page text from a PDF using pypdf.
    Returns a list of page texts (may contain empty strings).
    """
    from pypdf import PdfReader
    from pypdf.errors import PdfReadError

    try:
        reader = PdfReader(io.BytesIO(data))
        pages = list(reader.pages)
    except (PdfReadError, ValueError, OSError) as e:
        raise ResumeExtractionError(
            "Failed to parse PDF. The PDF may be scanned/image-based. Please use a text-based PDF or TXT file."
        ) from e

    out: list[str] = []
    for page in pages:
        try:
            out.append(page.extract_text() or "")
        except (PdfReadError, ValueError, KeyError) as e:
            logger.warning("Skipping unreadable PDF page: %s", e)
            out.append("")
    return out


def extract_text_from_docx(data: bytes) -> str:
    """
    Extract plain text from a DOCX using python-docx.
    """
    import docx
    from docx.opc.exceptions import PackageNotFoundError

    try:
        d = docx.Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, ValueError, KeyError) as e:
        raise ResumeExtractionError("Failed to read DOCX file.") from e
    return "\n".join(p.text for p in d.paragraphs if p.text).strip()


# ------------------------- Cleaning -------------------------

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")
_MULTISPACE_RE = re.compile(r"[ \t]{2,}")
_MULTINEWLINE_RE = re.compile(r"\n{3,}")
_BULLET_RE = re.compile(r"^[ \t]*[•·●◦▪▫∙⁃‣]+[ \t]*", re.MULTILINE)
_PAGE_MARKER_RE = re.compile(
    r"^[ \t]*page[ \t]*\d+([ \t]*of[ \t]*\d+)?[ \t]*$|^[ \t]*\d+[ \t]*/[ \t]*\d+[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
_HYPHEN_LINEBREAK_RE = re.compile(r"([A-Za-z])-\n([A-Za-z])")


def clean_extracted_text(raw_text: str) -> str:
    """Normalize newlines/whitespace/bullets and drop page markers, keeping paragraph breaks."""
    text = (raw_text or "").replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_CHARS_RE.sub("", text)
    text = _PAGE_MARKER_RE.sub("", text)
    # "devel-\nopment" -> "development"
    text = _HYPHEN_LINEBREAK_RE.sub(r"\1\2", text)
    text = _BULLET_RE.sub("- ", text)
    text = _MULTISPACE_RE.sub(" ", text)
    text = _MULTINEWLINE_RE.sub("\n\n", text)
    return text.strip()


def extract_resume_text(data: bytes, ext: str) -> str:
    """
    Extract and clean resume text from an uploaded document.

    Raises ResumeExtractionError when the document cannot be read or carries fewer
    than MIN_RESUME_CHARS non-blank characters (typically a scanned PDF).
    """
    if ext == ".pdf":
        raw = "\n\n".join(extract_text_from_pdf_pages(data))
    elif ext == ".docx":
        raw = extract_text_from_docx(data)
    else:
        # .txt, and legacy .doc where only embedded plain text is recoverable.
        raw = data.decode("utf-8", errors="ignore")

    clean = clean_extracted_text(raw)
    if len(re.sub(r"\s+", "", clean)) < MIN_RESUME_CHARS:
        raise ResumeExtractionError(
            "Resume content is too short or empty. PDF may be scanned/image-based. Please use a text-based PDF."
        )
    return clean

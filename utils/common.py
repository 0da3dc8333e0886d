"""Common utilities: hashing, identifiers and path management"""
import hashlib
import os
import re

# ⚠️ DO NOT import settings here - causes circular import with config.py


# ============= Path Management =============

def get_project_root() -> str:
    """Returns the absolute path to the project's root directory."""
    return os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))


def get_log_file_path() -> str:
    """Creates the log directory if it doesn't exist and returns the full log file path."""
    project_root = get_project_root()
    log_dir = os.path.join(project_root, 'log')

    if not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    return os.path.join(log_dir, 'docqa.log')


# ============= Identifiers & Hashing =============

def get_file_hash(content: bytes) -> str:
    """Calculates the SHA256 hash of file content."""
    return hashlib.sha256(content).hexdigest()


def sanitize_filename(filename: str) -> str:
    """Remove dangerous characters from filename."""
    safe_name = re.sub(r'[^\w\-_\.]', '_', filename)
    safe_name = os.path.basename(safe_name)
    return safe_name[:100]


# ============= Text Helpers =============

def to_binary_bytes(content) -> bytes:
    """
    Convert a payload to raw bytes.

    Strings are treated as "binary strings" (one char per byte), so latin-1
    round-trips bytes that were stored as text. Characters outside that range
    cannot come from a byte payload and are dropped.
    """
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)
    if isinstance(content, str):
        return content.encode("latin-1", errors="ignore")
    return b""


def preview(text: str, length: int = 100) -> str:
    """Single-line preview of text for log messages."""
    return (text or "")[:length].replace("\n", " ")

"""
Text helpers for preparing documents and parsing model output.
"""

import hashlib
import json
import re
from typing import Any, Optional, Tuple


DOCUMENT_WRAPPER_START = "---BEGIN_DOCUMENT---"
DOCUMENT_WRAPPER_END = "---END_DOCUMENT---"
REDACTED_LINE = "[instruction removed]"

# Lines in uploaded documents that try to steer the model
INSTRUCTION_PATTERNS = [
    re.compile(r"^\s*(system|assistant|developer|user)\s*:", re.IGNORECASE),
    re.compile(r"ignore (all|previous|earlier) instructions", re.IGNORECASE),
    re.compile(r"disregard (all|previous|earlier) instructions", re.IGNORECASE),
    re.compile(r"follow (these|the following) instructions", re.IGNORECASE),
    re.compile(r"you are (chatgpt|an ai)", re.IGNORECASE),
    re.compile(r"<\s*/?\s*system\s*>", re.IGNORECASE),
    re.compile(r"###\s*system", re.IGNORECASE),
    re.compile(r"BEGIN_SYSTEM_PROMPT", re.IGNORECASE),
]


def clean_text(text: str) -> str:
    """Normalize line endings and collapse runs of whitespace."""
    text = text.replace("\r\n", "\n").replace("\t", " ")
    text = re.sub(r" +", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def truncate_text(text: str, max_length: int) -> str:
    """Truncate to max_length, preferring a word boundary near the end."""
    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.8:
        return truncated[:last_space] + "..."
    return truncated + "..."


def count_words(text: str) -> int:
    return len(text.split())


def sanitize_document_text(text: str) -> Tuple[str, int]:
    """
    Replace lines that look like injected instructions.

    Returns:
        (sanitized text, number of redacted lines)
    """
    redactions = 0
    lines = []
    for line in text.split("\n"):
        if any(pattern.search(line) for pattern in INSTRUCTION_PATTERNS):
            redactions += 1
            lines.append(REDACTED_LINE)
        else:
            lines.append(line)
    return "\n".join(lines).strip(), redactions


def wrap_document_for_prompt(text: str) -> str:
    return f"{DOCUMENT_WRAPPER_START}\n{text}\n{DOCUMENT_WRAPPER_END}"


def hash_text(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def extract_json(text: str) -> Optional[Any]:
    """
    Extract the first balanced JSON object from model output.

    Brace counting avoids matching from the first '{' to the last '}'
    when the model adds commentary after the object. Braces inside
    JSON strings are skipped.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                try:
                    return json.loads(text[start:i + 1])
                except json.JSONDecodeError:
                    return None

    return None

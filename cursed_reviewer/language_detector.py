import re
from typing import Optional

UNKNOWN_LANGUAGE = "unknown"

EXTENSION_MAP = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "py": "python",
    "java": "java",
    "go": "go",
    "rs": "rust",
    "cpp": "cpp",
    "c": "c",
    "cs": "csharp",
    "rb": "ruby",
    "php": "php",
    "swift": "swift",
    "kt": "kotlin",
}

# Order matters: the first matching signature decides the language.
CONTENT_PATTERNS = [
    (re.compile(r"import\s+.*\s+from\s+['\"]"), "javascript"),
    (re.compile(r"export\s+(default|const|function|class)"), "javascript"),
    (re.compile(r"interface\s+\w+\s*{"), "typescript"),
    (re.compile(r"type\s+\w+\s*="), "typescript"),
    (re.compile(r"def\s+\w+\s*\("), "python"),
    (re.compile(r"import\s+\w+"), "python"),
    (re.compile(r"public\s+class\s+\w+"), "java"),
    (re.compile(r"package\s+\w+"), "go"),
    (re.compile(r"func\s+\w+\s*\("), "go"),
    (re.compile(r"fn\s+\w+\s*\("), "rust"),
]


def language_from_filename(filename: Optional[str]) -> Optional[str]:
    """Return the language for a filename's extension, or None if it is not mapped."""
    if not filename or "." not in filename:
        return None
    ext = filename.rsplit(".", 1)[-1].lower()
    return EXTENSION_MAP.get(ext)


def detect_language(code: str, filename: Optional[str] = None) -> str:
    """
    Infer the source language of a code block.

    A known filename extension wins outright. Otherwise the content signatures in
    CONTENT_PATTERNS are tried in order and the first hit is returned.

    Args:
        code (str): The source text.
        filename (Optional[str]): Name of the file the code came from, if any.

    Returns:
        str: A lowercase language name, or "unknown".
    """
    by_extension = language_from_filename(filename)
    if by_extension:
        return by_extension

    for pattern, language in CONTENT_PATTERNS:
        if pattern.search(code or ""):
            return language

    return UNKNOWN_LANGUAGE

"""Encoding detection utilities"""

import chardet


def detect_encoding(raw: bytes) -> str:
    """
    Detect the text encoding of an uploaded file

    Args:
        raw: File content

    Returns:
        Detected encoding string
    """
    # Check for BOM
    if raw.startswith(b'\xef\xbb\xbf'):
        return 'utf-8-sig'

    result = chardet.detect(raw[:8192])
    if result['encoding'] and result['confidence'] > 0.7:
        return result['encoding']

    # Fallback: try common encodings
    sample = raw[:4096]
    for encoding in ['utf-8', 'cp1252', 'latin-1']:
        try:
            sample.decode(encoding)
            return encoding
        except (UnicodeDecodeError, LookupError):
            continue

    return 'latin-1'

"""
Certificate code extraction for Acuity orders.

Acuity order payloads have no fixed schema for the certificate (package /
gift certificate) code, so extraction runs a short, ordered chain of
adapters: well-known fields first, then a bounded scan of nested fields
whose key mentions a certificate or gift.
"""
import re
from typing import Any, Callable, Iterable, Optional, Tuple

CERTIFICATE_CODE_PATTERN = re.compile(r'[A-Za-z0-9]{8}')

# Nested-scan limit; Acuity orders are shallow, anything deeper is noise.
MAX_SCAN_DEPTH = 32

DIRECT_FIELD_PATHS: Tuple[Tuple[str, ...], ...] = (
    ('certificateCode',),
    ('certificate_code',),
    ('certificate',),
    ('giftCertificateCode',),
    ('gift_certificate_code',),
    ('giftCertificate',),
    ('certificate', 'code'),
    ('giftCertificate', 'code'),
)

RELEVANT_KEY_PATTERN = re.compile(r'certificate|gift', re.IGNORECASE)


def is_certificate_code(value: Any) -> bool:
    """True for a string that is exactly 8 letters/digits once trimmed."""
    return isinstance(value, str) and CERTIFICATE_CODE_PATTERN.fullmatch(value.strip()) is not None


def normalize_certificate_code(value: Any) -> str:
    """Trim and upper-case a certificate code. Does not validate."""
    return str(value or '').strip().upper()


def coerce_certificate_code(value: Any) -> Optional[str]:
    """Normalize value and return it if it is a valid certificate code."""
    if value is None:
        return None
    code = normalize_certificate_code(value)
    return code if is_certificate_code(code) else None


def _value_at(order: dict, path: Tuple[str, ...]) -> Any:
    current = order
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _from_direct_fields(order: Any) -> Optional[str]:
    """Look at the field names Acuity (and its integrations) actually use."""
    if not isinstance(order, dict):
        return None
    for path in DIRECT_FIELD_PATHS:
        candidate = _value_at(order, path)
        if is_certificate_code(candidate):
            return candidate.strip()
    return None


def _children(node: Any) -> Iterable[Tuple[Optional[str], Any]]:
    if isinstance(node, dict):
        return node.items()
    if isinstance(node, (list, tuple)):
        return ((None, item) for item in node)
    return ()


def _from_nested_fields(order: Any) -> Optional[str]:
    """Depth-first scan for string fields named like a certificate or gift."""
    stack = [(order, 0)]
    seen = set()

    while stack:
        node, depth = stack.pop()
        if id(node) in seen or depth > MAX_SCAN_DEPTH:
            continue
        seen.add(id(node))

        for key, value in _children(node):
            if isinstance(value, str):
                if key and RELEVANT_KEY_PATTERN.search(str(key)) and is_certificate_code(value):
                    return value.strip()
            elif isinstance(value, (dict, list, tuple)):
                stack.append((value, depth + 1))

    return None


CERTIFICATE_EXTRACTORS: Tuple[Callable[[Any], Optional[str]], ...] = (
    _from_direct_fields,
    _from_nested_fields,
)


def extract_certificate_code(order: Any) -> Optional[str]:
    """
    Pull the certificate code out of an Acuity order.

    Args:
        order: Order payload as returned by the Acuity API (any shape)

    Returns:
        Upper-cased 8 character code, or None when the order carries none
    """
    for extractor in CERTIFICATE_EXTRACTORS:
        code = extractor(order)
        if code:
            return normalize_certificate_code(code)
    return None

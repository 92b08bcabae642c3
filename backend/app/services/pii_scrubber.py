"""
PII Scrubber Service.

Strips contact details from text before a prompt leaves the service for an
external AI provider. Regex-only detection keeps latency predictable.

Record ids, names and amounts are left intact: the model has to echo ids
back for tasks to be linked, and amounts drive prioritisation.

The scrub manifest records what was removed as a SHA-256 hash; original
values are never stored.
"""
import re
import hashlib
from typing import Dict, List, Tuple, Any, Optional

from backend.app.core.logging import get_logger

logger = get_logger(__name__)

_PATTERNS = {
    "email": re.compile(r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b"),
    # International format only; bare digit runs collide with ids and amounts
    "phone": re.compile(r"(?<![\w-])\+\d{1,3}[\s\-]?(?:\(\d{1,4}\)[\s\-]?)?\d{2,4}(?:[\s\-]?\d{2,4}){1,4}\b"),
}

_REPLACEMENTS = {
    "email": "[EMAIL_REDACTED]",
    "phone": "[PHONE_REDACTED]",
}


class PIIScrubber:
    """
    Regex-based PII scrubber for LLM prompt sanitisation.
    """

    def __init__(self, fields_to_scrub: Optional[List[str]] = None):
        self.active_fields = [f for f in (fields_to_scrub or list(_PATTERNS)) if f in _PATTERNS]

    def scrub(self, text: str) -> Tuple[str, List[Dict[str, Any]]]:
        """
        Returns (scrubbed_text, manifest); each manifest entry holds
        field_type, original_value_hash and replacement.
        """
        scrubbed = text
        manifest: List[Dict[str, Any]] = []

        for field_type in self.active_fields:
            replacement = _REPLACEMENTS[field_type]

            def replacer(m: re.Match, ft: str = field_type, rep: str = replacement) -> str:
                manifest.append({
                    "field_type": ft,
                    "original_value_hash": self._hash(m.group(0)),
                    "replacement": rep,
                })
                return rep

            scrubbed = _PATTERNS[field_type].sub(replacer, scrubbed)

        if manifest:
            logger.info(f"Scrubbed {len(manifest)} PII value(s) from outbound prompt")
        return scrubbed, manifest

    def _hash(self, value: str) -> str:
        """SHA-256 hash of a value, truncated to 16 hex chars for readability."""
        return hashlib.sha256(value.encode()).hexdigest()[:16]

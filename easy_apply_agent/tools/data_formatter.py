"""Tools for formatting and normalizing form values and labels."""

import re
import logging
from typing import Dict, List, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)

@dataclass
class ValidationResult:
    """Result of data validation."""
    is_valid: bool
    formatted_value: Optional[str] = None
    error_message: Optional[str] = None


def normalize_label(text: Optional[str]) -> str:
    """Lower-case, collapse whitespace and trim. Used for cache keys and label matching."""
    return re.sub(r'\s+', ' ', text or '').strip().lower()


def extract_number(text: Optional[str]) -> Optional[str]:
    """Return the first integer substring of `text`, or None."""
    match = re.search(r'\d+', text or '')
    return match.group(0) if match else None


def clean_label(raw: Optional[str]) -> str:
    """
    Tidy a scraped label.

    Collapses whitespace, drops a required-marker asterisk and removes the
    duplicated text the site renders for screen readers ("Email Email").

    Args:
        raw: Label text as scraped

    Returns:
        Cleaned label, possibly empty
    """
    text = re.sub(r'\s+', ' ', raw or '').strip()
    text = re.sub(r'\s*\*\s*$', '', text).strip()

    words = text.split(' ')
    half = len(words) // 2
    if half and len(words) % 2 == 0 and words[:half] == words[half:]:
        text = ' '.join(words[:half])
    elif len(text) % 2 == 0 and len(text) > 1 and text[:len(text) // 2] == text[len(text) // 2:]:
        text = text[:len(text) // 2]

    return re.sub(r'\s*\*\s*$', '', text).strip()


class DataFormatter:
    """Formats and validates values before they are committed to a field."""

    def __init__(self, country_aliases: Optional[Dict[str, List[str]]] = None):
        """
        Initialize the data formatter.

        Args:
            country_aliases: Canonical country name -> aliases, all lower-case
        """
        self.logger = logging.getLogger(__name__)
        self.country_aliases = country_aliases or {}

        # Common validation patterns
        self.patterns = {
            "email": r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$",
            "phone": r"^\d{7,15}$",
        }

    def format_text(self, value: str, max_length: Optional[int] = None) -> ValidationResult:
        """
        Strip a text value and cut it to the field's maxlength.

        Args:
            value: Input text
            max_length: Optional maximum length

        Returns:
            ValidationResult
        """
        if not isinstance(value, str):
            return ValidationResult(
                is_valid=False,
                error_message=f"Expected string, got {type(value)}"
            )

        formatted = value.strip()
        if max_length and len(formatted) > max_length:
            self.logger.debug(f"Truncating value from {len(formatted)} to {max_length} characters")
            formatted = formatted[:max_length]

        return ValidationResult(is_valid=bool(formatted), formatted_value=formatted)

    def format_email(self, value: str) -> ValidationResult:
        """Normalize and validate an email address."""
        email = (value or "").strip().lower()
        if not re.match(self.patterns["email"], email):
            return ValidationResult(
                is_valid=False,
                formatted_value=email,
                error_message="Invalid email format"
            )
        return ValidationResult(is_valid=True, formatted_value=email)

    def format_phone(
        self,
        value: str,
        placeholder: Optional[str] = None,
        max_length: Optional[int] = None
    ) -> ValidationResult:
        """
        Format a phone number for a text field.

        Keeps digits only, strips a leading country "1" from 11-digit numbers,
        then follows the placeholder's pattern: "(XXX) XXX-XXXX" or
        "XXX-XXX-XXXX". The result always fits `max_length`.

        Args:
            value: Raw phone number
            placeholder: The field's placeholder text, if any
            max_length: The field's maxlength attribute, if any

        Returns:
            ValidationResult with the formatted number
        """
        digits = re.sub(r"\D", "", value or "")
        if len(digits) == 11 and digits.startswith("1"):
            digits = digits[1:]

        formatted = digits
        if len(digits) == 10 and placeholder:
            if "(" in placeholder:
                formatted = f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
            elif re.search(r"\w{3}-\w{3}-\w{4}", placeholder):
                formatted = f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"

        if max_length and len(formatted) > max_length:
            formatted = digits[:max_length]

        if not re.match(self.patterns["phone"], digits):
            return ValidationResult(
                is_valid=False,
                formatted_value=formatted,
                error_message="Invalid phone number format"
            )
        return ValidationResult(is_valid=True, formatted_value=formatted)

    def canonical_country(self, value: Optional[str]) -> Optional[str]:
        """
        Map a country name or alias to its canonical lower-case name.

        Args:
            value: Country text, e.g. "USA" or "Bharat"

        Returns:
            Canonical name (e.g. "united states"), or None when unknown
        """
        text = normalize_label(value).strip(". ")
        if not text:
            return None
        for canonical, aliases in self.country_aliases.items():
            if text == canonical or text in aliases:
                return canonical
        for canonical, aliases in self.country_aliases.items():
            # Longer aliases only, so "in" does not match every sentence
            if canonical in text or any(len(a) > 3 and a in text for a in aliases):
                return canonical
        return None

    def format_country(self, value: str) -> ValidationResult:
        """Title-case a recognized country; unknown values pass through stripped."""
        canonical = self.canonical_country(value)
        if canonical:
            return ValidationResult(is_valid=True, formatted_value=canonical.title())
        return ValidationResult(
            is_valid=False,
            formatted_value=(value or "").strip(),
            error_message=f"Unrecognized country '{value}'"
        )

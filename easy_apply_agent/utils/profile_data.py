"""Utilities for working with the applicant profile bundle."""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

from easy_apply_agent.tools.constants import (
    DEFAULT_CITY,
    DEFAULT_COUNTRY,
    DEFAULT_EXPERIENCE_YEARS,
    DEFAULT_PHONE,
)
from easy_apply_agent.tools.data_formatter import normalize_label

logger = logging.getLogger(__name__)

# Label keywords -> contact key, most specific first
CONTACT_LABELS: List[Tuple[Tuple[str, ...], str]] = [
    (("first name", "given name", "firstname"), "first_name"),
    (("last name", "family name", "surname", "lastname"), "last_name"),
    (("full name", "your name"), "full_name"),
    (("email",), "email"),
    (("linkedin",), "linkedin"),
    (("github",), "github"),
    (("website", "portfolio"), "website"),
    (("postal code", "zip"), "zip"),
    (("street", "address"), "address"),
    (("state", "province"), "state"),
]

DEFAULTS = {
    "country": DEFAULT_COUNTRY,
    "city": DEFAULT_CITY,
    "phone": DEFAULT_PHONE,
    "experience_years": DEFAULT_EXPERIENCE_YEARS,
}


@dataclass
class Profile:
    """The applicant data loaded once per run.

    Attributes:
        profile_text: Free-text CV/résumé used as answer service context
        contact: first_name, last_name, email, phone, city, country, ...
        defaults: Values used when nothing else resolves a field
        answers: Known answers keyed by question text
        context: Preferences passed to the answer service (location,
            work_authorization, preferred_currency, ...)
    """
    profile_text: str = ""
    contact: Dict[str, str] = field(default_factory=dict)
    defaults: Dict[str, str] = field(default_factory=lambda: dict(DEFAULTS))
    answers: Dict[str, str] = field(default_factory=dict)
    context: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        base_dir: Optional[str] = None,
        base_defaults: Optional[Dict[str, Any]] = None
    ) -> "Profile":
        """
        Build a profile from a parsed YAML/JSON mapping.

        `profile_text` may be given inline (`profile_text` or `cv`) or as a
        path in `cv_path`, resolved against `base_dir`.

        Args:
            data: Parsed profile mapping
            base_dir: Directory of the profile file
            base_defaults: Configured defaults, overridden by the profile's own

        Returns:
            Profile instance
        """
        data = data or {}
        text = data.get("profile_text") or data.get("cv") or ""
        cv_path = data.get("cv_path")
        if not text and cv_path:
            path = os.path.expanduser(cv_path)
            if base_dir and not os.path.isabs(path):
                path = os.path.join(base_dir, path)
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()

        contact = {str(k): str(v) for k, v in (data.get("contact") or {}).items() if v is not None}
        if "full_name" not in contact and contact.get("first_name"):
            contact["full_name"] = f"{contact['first_name']} {contact.get('last_name', '')}".strip()

        defaults = dict(DEFAULTS)
        defaults.update({str(k): str(v) for k, v in (base_defaults or {}).items() if v is not None})
        defaults.update({str(k): str(v) for k, v in (data.get("defaults") or {}).items() if v is not None})

        context = {str(k): str(v) for k, v in (data.get("context") or {}).items() if v is not None}
        context.setdefault("location", ", ".join(filter(None, [contact.get("city"), contact.get("country")])) or defaults["country"])
        context.setdefault("years_of_experience", defaults["experience_years"])

        return cls(
            profile_text=text.strip(),
            contact=contact,
            defaults=defaults,
            answers={str(k): str(v) for k, v in (data.get("answers") or {}).items() if v is not None},
            context=context,
        )

    def default(self, key: str) -> Optional[str]:
        return self.defaults.get(key) or DEFAULTS.get(key)

    def get_field_value(self, field_path: str) -> Optional[str]:
        """
        Get a value using dot notation (e.g. "contact.email").

        Args:
            field_path: Section and key separated by a dot

        Returns:
            The value or None if not found
        """
        section, _, key = field_path.partition(".")
        values = getattr(self, section, None)
        if not isinstance(values, dict) or not key:
            logger.debug(f"Field path not found: {field_path}")
            return None
        return values.get(key)

    def answer_for(self, label: str) -> Optional[str]:
        """Known answer whose question equals the label after normalization."""
        wanted = normalize_label(label)
        for question, answer in self.answers.items():
            if normalize_label(question) == wanted:
                return answer
        return None

    def explicit_value_for(self, label: str, classification=None) -> Optional[str]:
        """
        Value the applicant stated explicitly for this field, if any.

        Looks at the known answers first, then the contact details selected
        by the field's classification or by label keywords.

        Args:
            label: Field label
            classification: Optional ClassificationResult

        Returns:
            The value or None
        """
        answer = self.answer_for(label)
        if answer:
            return answer

        if classification is not None:
            if classification.is_phone_country_code:
                return self.contact.get("country") or None
            if classification.is_phone:
                return self.contact.get("phone") or None
            if classification.is_country:
                return self.contact.get("country") or None
            if classification.is_city:
                return self.contact.get("city") or None

        if classification is not None and (classification.is_consent or classification.is_checkbox):
            return None

        lowered = normalize_label(label)
        for keywords, key in CONTACT_LABELS:
            if any(re.search(r"\b" + re.escape(keyword) + r"\b", lowered) for keyword in keywords):
                value = self.contact.get(key)
                if value:
                    return value
        return None

    def context_lines(self) -> List[str]:
        """Preference lines for the answer service prompt."""
        labels = {
            "location": "My current location",
            "preferred_currency": "My preferred currency",
            "work_authorization": "My work authorization",
            "years_of_experience": "My years of experience",
            "preferred_job_type": "My preferred job type",
            "preferred_salary": "My salary expectation",
            "notice_period": "My notice period",
        }
        return [f"- {labels.get(key, key.replace('_', ' ').capitalize())}: {value}" for key, value in self.context.items()]


def load_profile(profile_path: Optional[str], base_defaults: Optional[Dict[str, Any]] = None) -> Profile:
    """
    Load a profile from a YAML or JSON file.

    Args:
        profile_path: Path to the profile; an empty profile when None
        base_defaults: Configured defaults (the `defaults` config section)

    Returns:
        Profile instance
    """
    if not profile_path:
        logger.warning("No user profile provided, using defaults only.")
        return Profile.from_dict({}, base_defaults=base_defaults)

    path = os.path.expanduser(profile_path)
    with open(path, "r", encoding="utf-8") as f:
        # Detect file format based on extension
        if path.endswith(('.yaml', '.yml')):
            data = yaml.safe_load(f)
        else:
            try:
                data = json.load(f)
            except json.JSONDecodeError:
                # Fallback to YAML if JSON parsing fails
                f.seek(0)
                data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Profile file {path} must contain a mapping")
    logger.info(f"Loaded profile from {path}")
    return Profile.from_dict(data, base_dir=os.path.dirname(os.path.abspath(path)), base_defaults=base_defaults)

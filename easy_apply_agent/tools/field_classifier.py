"""Tools for classifying the semantic purpose of form fields."""

import logging
import os
from dataclasses import dataclass, field, fields
from functools import lru_cache
from typing import Dict, List, Optional, Set

import yaml

from easy_apply_agent.core.browser_interface import UiNode
from easy_apply_agent.tools.constants import (
    COUNTRY_DENSITY_MIN_MATCHES,
    COUNTRY_DENSITY_MIN_OPTIONS,
    COUNTRY_DENSITY_SAMPLE,
)
from easy_apply_agent.tools.selector_engine import normalize_text

logger = logging.getLogger(__name__)

DEFAULT_KEYWORD_TABLES = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "keyword_tables.yaml")

TEXT_INPUT_TYPES = {"text", "email", "tel", "url", "number", "search", "password", ""}


@dataclass
class KeywordTables:
    """Keyword lists per category. Loaded from YAML; treated as data."""
    country: List[str] = field(default_factory=list)
    phone_country_code: List[str] = field(default_factory=list)
    phone: List[str] = field(default_factory=list)
    city: List[str] = field(default_factory=list)
    experience: List[str] = field(default_factory=list)
    summary: List[str] = field(default_factory=list)
    cover_letter: List[str] = field(default_factory=list)
    consent: List[str] = field(default_factory=list)
    numeric: List[str] = field(default_factory=list)
    common_countries: List[str] = field(default_factory=list)
    affirmative: List[str] = field(default_factory=list)
    language_question: List[str] = field(default_factory=list)
    language_names: List[str] = field(default_factory=list)
    skill_question: List[str] = field(default_factory=list)
    years_question: List[str] = field(default_factory=list)
    language_ladder: List[str] = field(default_factory=list)
    skill_ladder: List[str] = field(default_factory=list)
    moderate_years: List[str] = field(default_factory=list)
    experience_denials: List[str] = field(default_factory=list)
    country_aliases: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict) -> "KeywordTables":
        """Build tables from a mapping; unknown keys are ignored, values are lower-cased."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (data or {}).items():
            if key not in known:
                logger.warning(f"Ignoring unknown keyword table '{key}'")
                continue
            if isinstance(value, dict):
                kwargs[key] = {str(k).lower(): [str(v).lower() for v in vals] for k, vals in value.items()}
            else:
                kwargs[key] = [str(v).lower() for v in value or []]
        return cls(**kwargs)

    @classmethod
    def load(cls, path: Optional[str] = None) -> "KeywordTables":
        """
        Load keyword tables from a YAML file.

        Args:
            path: YAML file path; the bundled tables when None

        Returns:
            KeywordTables instance
        """
        path = os.path.expanduser(path) if path else DEFAULT_KEYWORD_TABLES
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.debug(f"Loaded keyword tables from {path}")
        return cls.from_dict(data)


@lru_cache(maxsize=1)
def default_keyword_tables() -> KeywordTables:
    return KeywordTables.load()


def contains_any(text: str, keywords: List[str]) -> bool:
    """Case-insensitive substring test against a keyword list."""
    lowered = normalize_text(text)
    return any(keyword in lowered for keyword in keywords)


@dataclass
class ClassificationResult:
    """Semantic tags derived for one field. All False means generic text."""
    is_text: bool = False
    is_select: bool = False
    is_radio: bool = False
    is_checkbox: bool = False
    is_fieldset: bool = False
    is_autocomplete: bool = False
    is_country: bool = False
    is_city: bool = False
    is_phone: bool = False
    is_phone_country_code: bool = False
    is_experience: bool = False
    is_summary: bool = False
    is_cover_letter: bool = False
    is_consent: bool = False
    is_numeric: bool = False

    @property
    def category(self) -> Optional[str]:
        """Cache category hint for fields with a per-category fallback slot."""
        if self.is_country:
            return "country"
        if self.is_city:
            return "city"
        if self.is_phone:
            return "phone"
        return None

    def tags(self) -> Set[str]:
        """Names of the tags that are set, without the `is_` prefix."""
        return {f.name[3:] for f in fields(self) if getattr(self, f.name)}


class FieldClassifier:
    """Derives a ClassificationResult from a node and its inferred label.

    Classification never raises: when the node cannot be read the result is
    all-False and later stages fall through to generic text handling.
    """

    def __init__(self, keyword_tables: Optional[KeywordTables] = None):
        """
        Initialize the field classifier.

        Args:
            keyword_tables: Keyword tables; the bundled ones when None
        """
        self.keywords = keyword_tables or default_keyword_tables()
        self.logger = logging.getLogger(__name__)

    async def classify(self, node: UiNode, label: str) -> ClassificationResult:
        """
        Classify a form control.

        Args:
            node: The control (input, select, textarea or fieldset)
            label: Label text inferred for the control

        Returns:
            ClassificationResult
        """
        try:
            return await self._classify(node, label or "")
        except Exception as e:
            self.logger.warning(f"Classification failed for '{label}', treating as generic: {e}")
            return ClassificationResult()

    async def _classify(self, node: UiNode, label: str) -> ClassificationResult:
        kw = self.keywords
        result = ClassificationResult()

        tag = await node.tag_name()
        input_type = ""
        if tag == "input":
            input_type = (await node.get_attribute("type") or "text").lower()
        role = (await node.get_attribute("role") or "").lower()
        aria_autocomplete = (await node.get_attribute("aria-autocomplete") or "").lower()
        id_name = " ".join(filter(None, [await node.get_attribute("id"), await node.get_attribute("name")])).lower()
        lbl = normalize_text(label)

        # Control kind
        result.is_fieldset = tag == "fieldset"
        result.is_select = tag == "select"
        result.is_radio = input_type == "radio"
        result.is_checkbox = input_type == "checkbox"
        result.is_text = tag == "textarea" or (tag == "input" and input_type in TEXT_INPUT_TYPES)
        result.is_autocomplete = role == "combobox" and aria_autocomplete == "list"

        # Semantic tags
        result.is_phone_country_code = (
            contains_any(lbl, kw.phone_country_code)
            or "phonenumber-country" in id_name
            or ("country" in id_name and "phone" in id_name)
        )
        result.is_country = not result.is_phone_country_code and (
            contains_any(lbl, kw.country)
            or ("country" in id_name and "countrycode" not in id_name)
        )
        if not result.is_country and result.is_select and not result.is_phone_country_code:
            result.is_country = await self._has_country_density(node)

        result.is_phone = not result.is_phone_country_code and (
            contains_any(lbl, kw.phone) or "phone" in id_name or input_type == "tel"
        )
        result.is_city = not result.is_country and contains_any(lbl, kw.city)
        result.is_experience = contains_any(lbl, kw.experience)
        result.is_cover_letter = contains_any(lbl, kw.cover_letter)
        result.is_summary = tag == "textarea" or result.is_cover_letter or contains_any(lbl, kw.summary)
        result.is_consent = contains_any(lbl, kw.consent)
        result.is_numeric = input_type == "number" or "numeric" in id_name or contains_any(lbl, kw.numeric)

        self.logger.debug(f"Classified '{label}' as {sorted(result.tags()) or ['generic']}")
        return result

    async def _has_country_density(self, node: UiNode) -> bool:
        """A long select whose first options are mostly country names holds countries."""
        options = await node.query_selector_all("option")
        if len(options) <= COUNTRY_DENSITY_MIN_OPTIONS:
            return False
        matches = 0
        for option in options[:COUNTRY_DENSITY_SAMPLE]:
            text = normalize_text(await option.inner_text())
            if any(country in text for country in self.keywords.common_countries):
                matches += 1
        return matches >= COUNTRY_DENSITY_MIN_MATCHES

    def is_affirmative(self, text: str) -> bool:
        """True when the text is one of the affirmative words."""
        return normalize_text(text) in self.keywords.affirmative

"""Tools for matching resolved answers against a control's option labels."""

import logging
import re
from typing import List, Optional, Sequence

from thefuzz import fuzz

from easy_apply_agent.tools.constants import OPTION_FUZZY_THRESHOLD
from easy_apply_agent.tools.data_formatter import normalize_label

logger = logging.getLogger(__name__)

PLACEHOLDER_MARKERS = ("select an option", "select", "choose", "please select", "-- ")


def is_placeholder_option(text: str, value: Optional[str] = None, disabled: bool = False) -> bool:
    """True for the "Select an option" style entries at the top of a select."""
    normalized = normalize_label(text)
    if disabled or not normalized:
        return True
    if value is not None and value.strip() == "":
        return True
    return any(normalized.startswith(marker) for marker in PLACEHOLDER_MARKERS)


class OptionMatcher:
    """Matches answers to option labels.

    Every method returns an index into the given option list, or None when
    nothing matched; callers decide the fallback.
    """

    def __init__(self, fuzzy_threshold: int = OPTION_FUZZY_THRESHOLD):
        """
        Initialize the option matcher.

        Args:
            fuzzy_threshold: Minimum thefuzz ratio (0-100) for a fuzzy match
        """
        self.fuzzy_threshold = fuzzy_threshold
        self.logger = logging.getLogger(__name__)

    def exact(self, value: str, options: Sequence[str]) -> Optional[int]:
        """Case and whitespace insensitive equality."""
        wanted = normalize_label(value)
        if not wanted:
            return None
        for i, option in enumerate(options):
            if normalize_label(option) == wanted:
                return i
        return None

    def partial(self, value: str, options: Sequence[str]) -> Optional[int]:
        """Option containing the value, then value containing the option."""
        wanted = normalize_label(value)
        if not wanted:
            return None
        for i, option in enumerate(options):
            if wanted in normalize_label(option):
                return i
        for i, option in enumerate(options):
            normalized = normalize_label(option)
            if normalized and normalized in wanted:
                return i
        return None

    def leading_words(self, value: str, options: Sequence[str], count: int = 3) -> Optional[int]:
        """Match on the first `count` words, for long option sentences."""
        wanted = normalize_label(value).split()[:count]
        if len(wanted) < count:
            return None
        for i, option in enumerate(options):
            if normalize_label(option).split()[:count] == wanted:
                return i
        return None

    def fuzzy(self, value: str, options: Sequence[str]) -> Optional[int]:
        """Best thefuzz ratio at or above the threshold."""
        wanted = normalize_label(value)
        if not wanted:
            return None
        best_index, best_score = None, 0
        for i, option in enumerate(options):
            score = fuzz.ratio(wanted, normalize_label(option))
            if score > best_score:
                best_index, best_score = i, score
        if best_score >= self.fuzzy_threshold:
            self.logger.debug(f"Fuzzy matched '{value}' to '{options[best_index]}' ({best_score})")
            return best_index
        return None

    def best(self, value: str, options: Sequence[str]) -> Optional[int]:
        """Exact, then partial, then leading words, then fuzzy."""
        for strategy in (self.exact, self.partial, self.leading_words, self.fuzzy):
            index = strategy(value, options)
            if index is not None:
                return index
        return None

    def numeric_at_least(self, target: str, options: Sequence[str]) -> Optional[int]:
        """
        Option with the smallest leading number that is >= target.

        Used for years-of-experience selects ("0-1", "2-4", "5+"). When every
        option is below the target, the highest numbered option wins.

        Args:
            target: Answer containing a number
            options: Option labels

        Returns:
            Option index, or None when the target or the options carry no numbers
        """
        match = re.search(r'\d+', target or '')
        if not match:
            return None
        wanted = int(match.group(0))
        numbered = []
        for i, option in enumerate(options):
            numbers = [int(n) for n in re.findall(r'\d+', option)]
            if numbers:
                numbered.append((i, numbers[0], numbers[-1]))
        if not numbered:
            return None
        # A range like "3-5" covers the target when low <= target <= high
        for i, low, high in numbered:
            if low <= wanted <= high:
                return i
        above = [(low, i) for i, low, _ in numbered if low >= wanted]
        if above:
            return min(above)[1]
        return max((high, i) for i, _, high in numbered)[1]

    def highest_numeric(self, options: Sequence[str]) -> Optional[int]:
        """Option carrying the largest number, if any carries one."""
        best = None
        for i, option in enumerate(options):
            numbers = [int(n) for n in re.findall(r'\d+', option)]
            if numbers and (best is None or max(numbers) > best[0]):
                best = (max(numbers), i)
        return best[1] if best else None

    def ladder(self, options: Sequence[str], rungs: Sequence[str]) -> Optional[int]:
        """
        First rung of a descending keyword ladder that appears in an option.

        Rungs match as whole words, so "intermediate" does not pick
        "Upper intermediate" ahead of its own rung.

        Args:
            options: Option labels
            rungs: Keywords ordered from most to least preferred

        Returns:
            Option index, or None
        """
        normalized = [normalize_label(o) for o in options]
        for rung in rungs:
            pattern = re.compile(r'(^|\W)' + re.escape(rung) + r'($|\W)')
            for i, option in enumerate(normalized):
                if option == rung:
                    return i
            for i, option in enumerate(normalized):
                if pattern.search(option):
                    return i
        return None

    def affirmative(self, options: Sequence[str], words: Sequence[str]) -> Optional[int]:
        """Option that says yes: an exact affirmative word, then one starting with or containing it."""
        normalized = [normalize_label(o) for o in options]
        for i, option in enumerate(normalized):
            if option in words:
                return i
        for i, option in enumerate(normalized):
            if option.startswith("yes") or "agree" in option or "accept" in option or option == "i do":
                return i
        return None

    def answer_to_option(self, answer: str, options: Sequence[str]) -> Optional[int]:
        """
        Map a free-text service answer back onto an option.

        A leading number is read as a 1-based option index; otherwise the
        first option whose text appears in the answer as whole words wins.

        Args:
            answer: Raw answer text
            options: Option labels offered to the service

        Returns:
            Option index, or None
        """
        text = (answer or "").strip()
        leading = re.match(r'^(\d+)(?:[.):\s]|$)', text)
        if leading:
            index = int(leading.group(1)) - 1
            if 0 <= index < len(options):
                # A bare number that is itself an option ("3" of "1".."5") is that option
                exact = self.exact(text, options)
                return exact if exact is not None else index
        exact = self.exact(text, options)
        if exact is not None:
            return exact
        lowered = normalize_label(text)
        for i, option in enumerate(options):
            normalized = normalize_label(option)
            if normalized and re.search(r'(^|\W)' + re.escape(normalized) + r'($|\W)', lowered):
                return i
        return None

    def middle(self, options: Sequence[str]) -> Optional[int]:
        return len(options) // 2 if options else None

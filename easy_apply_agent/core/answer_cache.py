"""Cache of resolved answers, keyed by question text."""

import asyncio
import json
import logging
import os
from typing import Dict, Optional, Set

from rapidfuzz.distance import Levenshtein

from easy_apply_agent.tools.constants import CACHE_SIMILARITY_THRESHOLD, CATEGORY_KEY_PREFIX
from easy_apply_agent.tools.data_formatter import normalize_label

logger = logging.getLogger(__name__)

CATEGORIES = ("country", "city", "phone")


def category_key(category: str) -> str:
    """Reserved key holding the last value used for a field category."""
    return f"{CATEGORY_KEY_PREFIX}{category}"


def similarity(a: str, b: str) -> float:
    """
    Normalized similarity of two strings in [0, 1].

    1.0 for equal strings, 0.0 when either is empty. When one contains the
    other the score is the length ratio; otherwise it is one minus the edit
    distance over the longer length.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    if shorter in longer:
        return len(shorter) / len(longer)
    return Levenshtein.normalized_similarity(a, b)


class JsonCacheStore:
    """Flat {question: answer} map persisted as one JSON file."""

    def __init__(self, path: str):
        """
        Initialize the store.

        Args:
            path: JSON file path; `~` is expanded
        """
        self.path = os.path.expanduser(path)

    def read(self) -> Dict[str, str]:
        """Read the map; a missing or corrupt file reads as empty."""
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Invalid cache file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring cache file {self.path}: expected an object")
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def write(self, entries: Dict[str, str]) -> None:
        """Write the whole map. Blocking; call through a worker thread."""
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(entries, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)


class AnswerCache:
    """Question-to-answer memory shared by every attempt of a run.

    Entries are only ever added or overwritten. Every write schedules a
    save of the whole map on a worker thread; the save is not awaited by
    the caller and a failed save is logged, never raised.
    """

    def __init__(
        self,
        store: Optional[JsonCacheStore] = None,
        similarity_threshold: float = CACHE_SIMILARITY_THRESHOLD
    ):
        """
        Initialize the answer cache.

        Args:
            store: Persistence backend; memory-only when None
            similarity_threshold: Minimum similarity for a fuzzy hit
        """
        self.store = store
        self.similarity_threshold = similarity_threshold
        self.entries: Dict[str, str] = {}
        self._pending: Set[asyncio.Task] = set()
        self._write_lock = asyncio.Lock()

    async def load(self) -> int:
        """
        Merge the persisted map into memory. In-memory entries win.

        Returns:
            Number of entries after loading
        """
        if self.store is None:
            return len(self.entries)
        stored = await asyncio.to_thread(self.store.read)
        self.entries = {**stored, **self.entries}
        logger.info(f"Answer cache loaded with {len(self.entries)} entries")
        return len(self.entries)

    def get(self, question: str, hints: Optional[Dict[str, str]] = None) -> Optional[str]:
        """
        Look up an answer.

        Order: exact key, normalized key, category slot (when
        `hints["category"]` is set), then the most similar stored question.

        Args:
            question: Question text as labelled on the form
            hints: Optional {"category": "country" | "city" | "phone"}

        Returns:
            The cached answer or None
        """
        if not question:
            return None

        if question in self.entries:
            logger.debug(f"Cache hit (exact): '{question}'")
            return self.entries[question]

        wanted = normalize_label(question)
        for key, answer in self.entries.items():
            if not key.startswith(CATEGORY_KEY_PREFIX) and normalize_label(key) == wanted:
                logger.debug(f"Cache hit (normalized): '{question}' -> '{key}'")
                return answer

        category = (hints or {}).get("category")
        if category:
            answer = self.entries.get(category_key(category))
            if answer:
                logger.debug(f"Cache hit (category {category}): '{question}'")
                return answer

        best_key, best_score = None, 0.0
        for key in self.entries:
            if key.startswith(CATEGORY_KEY_PREFIX):
                continue
            score = similarity(wanted, normalize_label(key))
            # Strictly greater, so ties keep the first-seen key
            if score > best_score:
                best_key, best_score = key, score
        if best_key is not None and best_score >= self.similarity_threshold:
            logger.debug(f"Cache hit (fuzzy {best_score:.2f}): '{question}' -> '{best_key}'")
            return self.entries[best_key]

        logger.debug(f"Cache miss: '{question}'")
        return None

    def set(self, question: str, answer: str, hints: Optional[Dict[str, str]] = None) -> None:
        """
        Store an answer and schedule persistence.

        Args:
            question: Question text
            answer: Resolved answer; empty answers are ignored
            hints: Optional {"category": ...}; also overwrites that category slot
        """
        if not question or answer is None or str(answer).strip() == "":
            return
        answer = str(answer)
        self.entries[question] = answer
        category = (hints or {}).get("category")
        if category:
            self.entries[category_key(category)] = answer
        logger.debug(f"Cached answer for '{question}'")
        self._schedule_save()

    def _schedule_save(self) -> None:
        if self.store is None:
            return
        try:
            task = asyncio.get_running_loop().create_task(self._save(dict(self.entries)))
        except RuntimeError:
            # No running loop: save synchronously
            self._save_now(dict(self.entries))
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _save(self, snapshot: Dict[str, str]) -> None:
        async with self._write_lock:
            try:
                await asyncio.to_thread(self.store.write, snapshot)
                logger.debug(f"Persisted {len(snapshot)} cache entries to {self.store.path}")
            except Exception as e:
                logger.error(f"Failed to write cache file {self.store.path}: {e}")

    def _save_now(self, snapshot: Dict[str, str]) -> None:
        try:
            self.store.write(snapshot)
        except Exception as e:
            logger.error(f"Failed to write cache file {self.store.path}: {e}")

    async def flush(self) -> None:
        """Wait for every scheduled save to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def __contains__(self, question: str) -> bool:
        return question in self.entries

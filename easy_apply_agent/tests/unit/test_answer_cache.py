import json

import pytest

from easy_apply_agent.core.answer_cache import AnswerCache, JsonCacheStore, category_key, similarity


def test_similarity_scores():
    assert similarity("abc", "abc") == 1.0
    assert similarity("", "abc") == 0.0
    assert similarity("city", "your city") == pytest.approx(4 / 9)
    assert similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)
    assert similarity("flaw", "lawn") == pytest.approx(0.5)


def test_get_prefers_exact_then_normalized():
    cache = AnswerCache()
    cache.entries = {"Email": "a@b.c", "  email ": "other"}

    assert cache.get("Email") == "a@b.c"
    assert cache.get("EMAIL") == "a@b.c"
    assert cache.get("") is None


def test_category_slot_answers_unseen_labels():
    cache = AnswerCache()
    cache.set("Which country do you live in?", "India", {"category": "country"})

    assert cache.entries[category_key("country")] == "India"
    assert cache.get("Country of residence", {"category": "country"}) == "India"
    assert cache.get("Country of residence") is None


def test_fuzzy_tie_keeps_first_stored_question():
    cache = AnswerCache(similarity_threshold=0.7)
    cache.set("abcx", "first")
    cache.set("abcy", "second")

    assert similarity("abcz", "abcx") == similarity("abcz", "abcy") == pytest.approx(0.75)
    assert cache.get("abcz") == "first"


def test_fuzzy_hit_needs_threshold():
    cache = AnswerCache(similarity_threshold=0.7)
    cache.set("Years of experience with Python", "5")

    assert cache.get("Years of experience with Python?") == "5"
    assert cache.get("Favourite colour") is None


def test_empty_answers_are_not_stored():
    cache = AnswerCache()
    cache.set("Question", "   ")
    cache.set("Question", None)

    assert "Question" not in cache


@pytest.mark.asyncio
async def test_entries_persist_and_reload(tmp_path):
    path = tmp_path / "cache" / "answers.json"
    cache = AnswerCache(store=JsonCacheStore(str(path)))
    cache.set("Notice period", "30 days")
    cache.set("City", "Pune", {"category": "city"})
    await cache.flush()

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk["Notice period"] == "30 days"
    assert on_disk[category_key("city")] == "Pune"

    reloaded = AnswerCache(store=JsonCacheStore(str(path)))
    reloaded.entries["Notice period"] = "immediately"
    assert await reloaded.load() == 3
    # In-memory entries win over the file
    assert reloaded.get("Notice period") == "immediately"
    assert reloaded.get("City") == "Pune"


@pytest.mark.asyncio
async def test_corrupt_file_loads_empty(tmp_path):
    path = tmp_path / "answers.json"
    path.write_text("{not json", encoding="utf-8")

    cache = AnswerCache(store=JsonCacheStore(str(path)))

    assert await cache.load() == 0


@pytest.mark.asyncio
async def test_failed_write_is_logged_not_raised(tmp_path, caplog):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    cache = AnswerCache(store=JsonCacheStore(str(blocker / "answers.json")))

    cache.set("Question", "Answer")
    await cache.flush()

    assert cache.get("Question") == "Answer"
    assert "Failed to write cache file" in caplog.text

"""Tests for the progress tracker."""

import unittest

import pytest

from easy_apply_agent.core.progress_tracker import DecreasePolicy, ProgressState, ProgressTracker, read_progress
from easy_apply_agent.tests.fake_dom import FakeDocument


class TestProgressTracker(unittest.TestCase):
    """Test the stall detection state machine."""

    def setUp(self):
        self.tracker = ProgressTracker(stall_threshold=3)

    def test_two_repeats_are_not_a_stall(self):
        for value in (10, 10, 10, 30, 30, 30, 55):
            self.tracker.update(value)
            self.assertFalse(self.tracker.is_stuck())
        self.assertEqual(self.tracker.state, ProgressState.ADVANCING)

    def test_three_unchanged_readings_stall(self):
        self.tracker.update(40)
        self.tracker.update(40)
        self.tracker.update(None)
        self.assertFalse(self.tracker.is_stuck())
        self.tracker.update(40)
        self.assertTrue(self.tracker.is_stuck())
        self.assertEqual(self.tracker.unchanged_count, 3)

    def test_unknown_readings_alone_stall(self):
        for _ in range(3):
            self.tracker.update(None)
        self.assertTrue(self.tracker.is_stuck())
        self.assertIsNone(self.tracker.last_value)

    def test_first_known_value_after_unknowns_is_progress(self):
        self.tracker.update(None)
        self.tracker.update(None)
        self.tracker.update(25)
        self.assertFalse(self.tracker.is_stuck())
        self.assertEqual(self.tracker.unchanged_count, 0)

    def test_hundred_is_complete_regardless_of_history(self):
        for _ in range(5):
            self.tracker.update(None)
        self.tracker.update(100)
        self.assertTrue(self.tracker.is_complete())
        self.assertFalse(self.tracker.is_stuck())

    def test_decrease_policies(self):
        self.tracker.update(60)
        snapshot = self.tracker.update(20)
        self.assertEqual(snapshot.delta, -40)
        self.assertEqual(self.tracker.unchanged_count, 0)

        counting = ProgressTracker(stall_threshold=2, decrease_policy=DecreasePolicy.COUNT_AS_STALL)
        counting.update(60)
        counting.update(20)
        counting.update(20)
        self.assertTrue(counting.is_stuck())

    def test_values_are_clamped_and_reset_clears(self):
        self.tracker.update(140)
        self.assertEqual(self.tracker.last_value, 100)
        self.tracker.reset()
        self.assertEqual(self.tracker.state, ProgressState.FRESH)
        self.assertEqual(self.tracker.history, [])


@pytest.mark.asyncio
async def test_read_progress_from_attribute():
    doc = FakeDocument('<div><progress value="33.4" max="100"></progress></div>')

    assert await read_progress(doc) == 33


@pytest.mark.asyncio
async def test_read_progress_from_aria_and_label():
    aria = FakeDocument('<div role="progressbar" aria-valuenow="75"></div>')
    label = FakeDocument(
        '<div class="jobs-easy-apply-content"><span role="note">Step 2 of 4 (50%)</span></div>'
    )

    assert await read_progress(aria) == 75
    assert await read_progress(label) == 50


@pytest.mark.asyncio
async def test_read_progress_unknown():
    assert await read_progress(FakeDocument("<div>No meter here</div>")) is None

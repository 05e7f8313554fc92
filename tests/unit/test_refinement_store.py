"""Unit tests for hint geometry and the extraction result store."""

import asyncio

import pytest

from conftest import box_hint, stroke_hint
from docfill.strategies.refinement import (
    ExtractionResultStore,
    finalize_hint,
    is_degenerate,
    merge_field,
    padded_crop_box,
)
from docfill.strategies.template_engine.models import ExtractedField, Hint, Point, Rect


# =============================================================================
# Geometry Tests
# =============================================================================


class TestGeometry:
    """Test suite for bounding boxes and crop padding."""

    def test_bounding_box_from_points(self):
        """Test bounding box of a freehand stroke."""
        hint = stroke_hint("h1", "total", 10, 20, 50, 40)
        assert hint.bounding_box() == Rect(x=10, y=20, w=40, h=20)

    def test_bounding_box_from_rect(self):
        """Test bounding box of a stored rectangle."""
        hint = box_hint("h1", "total", 5, 6, 7, 8)
        assert hint.bounding_box() == Rect(x=5, y=6, w=7, h=8)

    def test_points_take_precedence_over_rect(self):
        """Test that stroke points win over a stored rectangle."""
        hint = Hint(
            id="h",
            points=(Point(x=0, y=0), Point(x=2, y=2)),
            rect=Rect(x=50, y=50, w=1, h=1),
        )
        assert hint.bounding_box() == Rect(x=0, y=0, w=2, h=2)

    def test_no_geometry(self):
        """Test that a hint without geometry has no bounding box."""
        assert Hint(id="h", label="x").bounding_box() is None

    def test_padding_inside_image(self):
        """Test 10% padding on each side of a box."""
        box = padded_crop_box(Rect(x=100, y=100, w=50, h=20), (1000, 1000), 0.1)
        assert box == Rect(x=95, y=98, w=60, h=24)

    def test_padding_clamped_to_image(self):
        """Test that padding is clamped to the image edges."""
        box = padded_crop_box(Rect(x=0, y=90, w=100, h=10), (100, 100), 0.1)
        assert box.x == 0
        assert box.y == pytest.approx(89)
        assert box.w == pytest.approx(100)
        assert box.h == pytest.approx(11)

    def test_zero_area_box_is_none(self):
        """Test that a flat box yields no crop."""
        assert padded_crop_box(Rect(x=10, y=10, w=30, h=0), (100, 100)) is None

    def test_box_outside_image_is_none(self):
        """Test that a box outside the image yields no crop."""
        assert padded_crop_box(Rect(x=150, y=10, w=10, h=10), (100, 100)) is None

    def test_padding_ratio_configurable(self):
        """Test a non-default padding ratio."""
        box = padded_crop_box(Rect(x=100, y=100, w=100, h=100), (1000, 1000), 0.5)
        assert box == Rect(x=50, y=50, w=200, h=200)

    def test_degenerate(self):
        """Test detection of hints without area."""
        assert Rect(x=0, y=0, w=-3, h=5).area == 0
        assert Rect(x=0, y=0, w=3, h=5).area == 15
        assert is_degenerate(Hint(id="h"))
        assert is_degenerate(stroke_hint("h", "x", 10, 10, 60, 10))
        assert not is_degenerate(box_hint("h", "x", 0, 0, 1, 1))

    def test_finalize_discards_short_strokes(self):
        """Test that strokes with too few points are discarded."""
        short = Hint(id="h", label="x", points=(Point(x=0, y=0), Point(x=10, y=10)))
        assert finalize_hint(short, min_points=3) is None
        kept = stroke_hint("h", "x", 0, 0, 10, 10)
        assert finalize_hint(kept, min_points=3) is kept

    def test_signature_tracks_geometry_and_label(self):
        """Test that the signature changes with geometry and label."""
        a = box_hint("h", "x", 0, 0, 1, 1)
        assert a.signature() == box_hint("h", "x", 0, 0, 1, 1).signature()
        assert a.signature() != box_hint("h", "x", 0, 0, 2, 1).signature()
        assert a.signature() != box_hint("h", "y", 0, 0, 1, 1).signature()


# =============================================================================
# Store Tests
# =============================================================================


class TestMergeField:
    """Test suite for the pure merge function."""

    def test_overwrites_in_place(self):
        """Test that merging keeps the field's position and leaves the input alone."""
        fields = [
            ExtractedField(label="a", value="1", confidence=0.2),
            ExtractedField(label="b", value="2", confidence=0.3),
        ]
        merged = merge_field(fields, ExtractedField(label="a", value="9", confidence=0.99))
        assert [f.label for f in merged] == ["a", "b"]
        assert merged[0].value == "9"
        assert merged[0].confidence == 0.99
        assert fields[0].value == "1"

    def test_appends_when_absent(self):
        """Test that merging a new label appends it."""
        merged = merge_field([], ExtractedField(label="a", value="1", confidence=0.99))
        assert merged == [ExtractedField(label="a", value="1", confidence=0.99)]


class TestExtractionResultStore:
    """Test suite for ExtractionResultStore."""

    def test_snapshot_is_a_copy(self):
        """Test that snapshots do not alias the store."""
        store = ExtractionResultStore([ExtractedField(label="a", value="1")])
        snapshot = store.snapshot()
        snapshot.clear()
        assert len(store) == 1

    def test_merge_and_version(self):
        """Test that merges bump the version."""
        store = ExtractionResultStore()

        async def run_test():
            assert await store.merge(ExtractedField(label="a", value="1", confidence=0.5))
            assert await store.merge(ExtractedField(label="a", value="2", confidence=0.99))

        asyncio.run(run_test())
        assert store.version == 2
        assert store.get("a") == ExtractedField(label="a", value="2", confidence=0.99)
        assert store.get("missing") is None

    def test_concurrent_merges_same_label_last_wins(self):
        """Test that the later-completing merge for a label wins."""
        store = ExtractionResultStore()

        async def write(value, delay):
            await asyncio.sleep(delay)
            await store.merge(ExtractedField(label="a", value=value, confidence=0.99))

        async def run_test():
            await asyncio.gather(write("late", 0.02), write("early", 0.0))

        asyncio.run(run_test())
        assert len(store) == 1
        assert store.get("a").value == "late"

    def test_closed_store_ignores_writes(self):
        """Test that a closed store drops merges and replacements."""
        store = ExtractionResultStore([ExtractedField(label="a", value="1")])
        store.close()

        async def run_test():
            assert not await store.merge(ExtractedField(label="a", value="2"))
            assert not await store.replace_all([])

        asyncio.run(run_test())
        assert store.closed
        assert store.get("a").value == "1"

    def test_set_value_records_manual_edit(self):
        """Test recording a manual correction."""
        store = ExtractionResultStore([ExtractedField(label="a", value="1", confidence=0.3)])

        asyncio.run(store.set_value("a", "fixed", 1.0))

        assert store.get("a") == ExtractedField(label="a", value="fixed", confidence=1.0)

    def test_replace_all_keeps_fields_written_since_version(self):
        """Test that a bulk replace keeps fields merged after it was requested."""
        store = ExtractionResultStore([ExtractedField(label="a", value="old", confidence=0.3)])

        async def run_test():
            since = store.version
            await store.merge(ExtractedField(label="a", value="refined", confidence=0.99))
            await store.merge(ExtractedField(label="c", value="added", confidence=0.99))
            await store.replace_all(
                [
                    ExtractedField(label="a", value="bulk", confidence=0.5),
                    ExtractedField(label="b", value="bulk", confidence=0.5),
                ],
                since_version=since,
            )

        asyncio.run(run_test())

        assert store.snapshot() == [
            ExtractedField(label="a", value="refined", confidence=0.99),
            ExtractedField(label="b", value="bulk", confidence=0.5),
            ExtractedField(label="c", value="added", confidence=0.99),
        ]

    def test_replace_all(self):
        """Test replacing the whole result."""
        store = ExtractionResultStore([ExtractedField(label="a", value="1")])

        asyncio.run(store.replace_all([ExtractedField(label="b", value="2")]))

        assert [f.label for f in store] == ["b"]

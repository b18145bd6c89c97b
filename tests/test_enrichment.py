from __future__ import annotations

from app.pipelines.guide import attach_screenshots, reindex_steps, step_placeholder

TEMPLATE = "https://placehold.co/600x400?text=Step+{number}"


def test_placeholder_uses_one_based_step_number():
    assert step_placeholder(1, TEMPLATE) == "https://placehold.co/600x400?text=Step+1"
    assert step_placeholder(12, TEMPLATE) == "https://placehold.co/600x400?text=Step+12"


def test_screenshots_are_mapped_by_position(guide_factory):
    guide = guide_factory("a", "b", "c")

    enriched = attach_screenshots(
        guide,
        ["https://shots.test/0.png", None, "https://shots.test/2.png", "https://shots.test/extra.png"],
        placeholder_template=TEMPLATE,
    )

    assert [step.screenshot_url for step in enriched.steps] == [
        "https://shots.test/0.png",
        "https://placehold.co/600x400?text=Step+2",
        "https://shots.test/2.png",
    ]


def test_steps_beyond_screenshots_get_placeholders(guide_factory):
    guide = guide_factory("a", "b")

    enriched = attach_screenshots(guide, [], placeholder_template=TEMPLATE)

    assert [step.screenshot_url for step in enriched.steps] == [
        "https://placehold.co/600x400?text=Step+1",
        "https://placehold.co/600x400?text=Step+2",
    ]


def test_enrichment_is_idempotent_and_pure(guide_factory):
    guide = guide_factory("a", "b")
    screenshots = ["https://shots.test/0.png"]

    first = attach_screenshots(guide, screenshots, placeholder_template=TEMPLATE)
    second = attach_screenshots(first, screenshots, placeholder_template=TEMPLATE)

    assert first == second
    assert all(step.screenshot_url is None for step in guide.steps)


def test_reindex_steps_uses_positions(guide_factory):
    guide = guide_factory("a", "b", "c", indexes=[7, 3, 3])

    reindexed = reindex_steps(guide)

    assert [step.step_index for step in reindexed.steps] == [0, 1, 2]
    assert [step.narration_text for step in reindexed.steps] == ["a", "b", "c"]


def test_reindex_steps_keeps_well_indexed_guide(guide_factory):
    guide = guide_factory("a", "b")

    assert reindex_steps(guide) is guide

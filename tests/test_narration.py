"""Narration fan-out: concurrency, isolation and asset naming."""

from __future__ import annotations

import pytest

from app.pipelines.guide import IsolatedStepError, narrate_guide, narration_asset_name


def test_narration_asset_name_is_deterministic():
    assert narration_asset_name("session_1_ab", 3) == "audio_session_1_ab_3.mp3"


@pytest.mark.asyncio
async def test_all_steps_are_narrated_concurrently(guide_factory, speech, assets):
    speech.delay = 0.05
    guide = guide_factory("one", "two", "three", "four")

    narrated, outcomes = await narrate_guide("rec", guide, speech, assets)

    assert speech.max_in_flight == 4
    assert all(outcome.succeeded for outcome in outcomes)
    assert [step.audio_url for step in narrated.steps] == [
        f"https://assets.test/audio_rec_{index}.mp3" for index in range(4)
    ]


@pytest.mark.asyncio
async def test_failing_step_is_isolated(guide_factory, speech, assets):
    speech.delay = 0.01
    speech.failing_texts.add("two")
    guide = guide_factory("one", "two", "three")

    narrated, outcomes = await narrate_guide("rec", guide, speech, assets)

    failed = [outcome for outcome in outcomes if not outcome.succeeded]
    assert len(failed) == 1
    assert failed[0].step_index == 1
    assert isinstance(failed[0].error, IsolatedStepError)
    assert failed[0].error.step_index == 1
    assert narrated.steps[0].audio_url == "https://assets.test/audio_rec_0.mp3"
    assert narrated.steps[1].audio_url is None
    assert narrated.steps[2].audio_url == "https://assets.test/audio_rec_2.mp3"
    assert "audio_rec_1.mp3" not in assets.objects


@pytest.mark.asyncio
async def test_steps_without_narration_are_skipped(guide_factory, speech, assets):
    guide = guide_factory("one", None, "   ")

    narrated, outcomes = await narrate_guide("rec", guide, speech, assets)

    assert speech.calls == ["one"]
    assert [outcome.step_index for outcome in outcomes] == [0]
    assert [step.audio_url for step in narrated.steps] == [
        "https://assets.test/audio_rec_0.mp3",
        None,
        None,
    ]


@pytest.mark.asyncio
async def test_provider_without_audio_leaves_step_unnarrated(guide_factory, speech, assets):
    speech.silent_texts.add("one")
    guide = guide_factory("one")

    narrated, outcomes = await narrate_guide("rec", guide, speech, assets)

    assert outcomes[0].audio_url is None
    assert outcomes[0].error is None
    assert narrated.steps[0].audio_url is None
    assert assets.objects == {}


@pytest.mark.asyncio
async def test_audio_is_stored_as_mp3(guide_factory, speech, assets):
    guide = guide_factory("Open the dashboard.")

    await narrate_guide("rec", guide, speech, assets)

    assert assets.objects["audio_rec_0.mp3"] == b"mp3:Open the dashboard."
    assert assets.content_types["audio_rec_0.mp3"] == "audio/mpeg"


@pytest.mark.asyncio
async def test_input_guide_is_not_modified(guide_factory, speech, assets):
    guide = guide_factory("one")

    await narrate_guide("rec", guide, speech, assets)

    assert guide.steps[0].audio_url is None

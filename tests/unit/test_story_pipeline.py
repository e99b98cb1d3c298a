"""Unit tests for the story generation pipeline."""

import json

import pytest

from toystories.config import DEFAULT_IMAGE_URLS, GENERIC_TOY_DESCRIPTION
from toystories.core.errors import AnalysisError, CompositionError, FormatError
from toystories.core.modules.page_illustrator import PageIllustrator
from toystories.core.modules.story_composer import StoryComposer
from toystories.core.programs.story_pipeline import (
    STAGE_POLICIES,
    DegradeOnError,
    FatalOnError,
    assemble_story,
    assign_vocabulary,
    illustration_progress,
)
from toystories.core.types import (
    Done,
    Failed,
    FallbackRequested,
    GeneratedStory,
    ImagePayload,
    Stage,
    StoryPage,
    VocabWord,
)

from tests.unit.conftest import (
    FakeAnalyzer,
    FakeComposer,
    FakeIllustrator,
    make_genai_client,
    make_pipeline,
    make_story_payload,
    make_text_response,
)


def collect_updates():
    updates = []
    return updates, updates.append


class TestStagePolicies:
    def test_only_composition_is_fatal(self):
        assert isinstance(STAGE_POLICIES[Stage.GENERATING], FatalOnError)
        assert isinstance(STAGE_POLICIES[Stage.ANALYZING], DegradeOnError)
        assert isinstance(STAGE_POLICIES[Stage.ILLUSTRATING], DegradeOnError)

    def test_degrade_fallbacks(self):
        assert STAGE_POLICIES[Stage.ANALYZING].fallback(AnalysisError("x")) == GENERIC_TOY_DESCRIPTION
        assert STAGE_POLICIES[Stage.ILLUSTRATING].fallback(RuntimeError("x")) == []


class TestIllustrationProgress:
    @pytest.mark.parametrize(
        "current,expected",
        [(0, 50), (1, 57), (2, 63), (3, 70), (4, 77), (5, 83), (6, 90)],
    )
    def test_maps_pages_to_50_through_90(self, current, expected):
        assert illustration_progress(current, 6) == expected


class TestAssignVocabulary:
    def test_word_goes_to_first_page_containing_it(self, sample_story):
        assigned = assign_vocabulary(sample_story.pages, sample_story.vocabulary)

        # garden → page 1, brave → page 2, sky → page 4, friend → page 5
        assert [tuple(v.word for v in words) for words in assigned] == [
            ("garden",), ("brave",), (), ("sky",), ("friend",), (),
        ]

    def test_unmatched_words_fill_earliest_free_pages(self):
        pages = [StoryPage(i, f"Page {i} text.") for i in range(1, 7)]
        vocabulary = [VocabWord(w, "", "def") for w in ("uno", "dos", "tres", "cuatro")]

        assigned = assign_vocabulary(pages, vocabulary)

        assert [len(words) for words in assigned] == [1, 1, 1, 1, 0, 0]
        assert assigned[0][0].word == "uno"

    def test_pronunciation_hint_ignored_when_matching(self):
        pages = [StoryPage(1, "小熊很高兴。"), StoryPage(2, "小熊很勇敢。")]
        vocabulary = [VocabWord("勇敢 (yǒng gǎn)", "yǒng gǎn", "brave")]

        assigned = assign_vocabulary(pages, vocabulary)

        assert assigned[0] == ()
        assert assigned[1][0].word == "勇敢 (yǒng gǎn)"

    def test_cap_holds_when_one_page_contains_every_word(self):
        pages = [StoryPage(1, "brave garden sky friend"), StoryPage(2, "The end.")]
        vocabulary = [VocabWord(w, "", "def") for w in ("brave", "garden", "sky", "friend", "extra")]

        assigned = assign_vocabulary(pages, vocabulary)

        assert all(len(words) <= 1 for words in assigned)
        assert sum(len(words) for words in assigned) <= 4
        assert assigned[0][0].word == "brave"


class TestAssembleStory:
    def test_generated_images_become_data_urls(self, sample_story):
        images = [ImagePayload("image/png", f"img{i}".encode()) for i in range(6)]

        story = assemble_story(sample_story, images)

        assert story.pages[0].image_url.startswith("data:image/png;base64,")
        assert story.vocabulary == sample_story.vocabulary

    def test_missing_images_use_default_pool_by_index(self, sample_story):
        images = [ImagePayload("image/png", b"x"), None, None, None, None, None]

        story = assemble_story(sample_story, images)

        for index in range(1, 6):
            assert story.pages[index].image_url == DEFAULT_IMAGE_URLS[index % len(DEFAULT_IMAGE_URLS)]

    def test_no_images_at_all(self, sample_story):
        story = assemble_story(sample_story, [])

        assert [p.image_url for p in story.pages] == [
            DEFAULT_IMAGE_URLS[i % len(DEFAULT_IMAGE_URLS)] for i in range(6)
        ]
        assert story.pages[5].image_url == DEFAULT_IMAGE_URLS[0]


class TestStoryPipelineRun:
    @pytest.mark.asyncio
    async def test_successful_run_progress_sequence(self, fake_pipeline, sample_params, toy_photo_base64):
        updates, on_update = collect_updates()

        final = await fake_pipeline.run(toy_photo_base64, sample_params, run_id=7, on_update=on_update)

        assert isinstance(final.state, Done)
        assert final.progress == 100
        assert all(u.run_id == 7 for u in updates)
        assert [u.progress for u in updates] == [10, 40, 50, 50, 57, 63, 70, 77, 83, 90, 95, 100, 100]
        assert [u.stage for u in updates][:4] == [
            Stage.ANALYZING, Stage.ANALYZING, Stage.GENERATING, Stage.ILLUSTRATING,
        ]
        assert updates[-2].stage == Stage.FINALIZING

    @pytest.mark.asyncio
    async def test_successful_run_story_shape(self, fake_pipeline, sample_params, toy_photo_base64):
        final = await fake_pipeline.run(toy_photo_base64, sample_params)

        story = final.state.story
        assert [p.page_number for p in story.pages] == [1, 2, 3, 4, 5, 6]
        assert len(story.vocabulary) == 4
        assert sum(len(p.vocab_words) for p in story.pages) <= 4
        assert all(len(p.vocab_words) <= 1 for p in story.pages)

    @pytest.mark.asyncio
    async def test_profile_description_reaches_composer_and_illustrator(
        self, sample_profile, sample_story, sample_params, toy_photo_base64
    ):
        composer = FakeComposer(story=sample_story)
        illustrator = FakeIllustrator()
        pipeline = make_pipeline(FakeAnalyzer(profile=sample_profile), composer, illustrator)

        await pipeline.run(toy_photo_base64, sample_params)

        assert composer.received[0].toy_description == sample_profile.full_description
        assert illustrator.descriptions == [sample_profile.full_description]

    @pytest.mark.asyncio
    async def test_analysis_failure_degrades_to_generic_description(
        self, sample_story, sample_params, toy_photo_base64
    ):
        """A network error during analysis does not fail the run."""
        composer = FakeComposer(story=sample_story)
        illustrator = FakeIllustrator()
        pipeline = make_pipeline(
            FakeAnalyzer(error=AnalysisError("Toy analysis request failed: connection reset")),
            composer,
            illustrator,
        )
        updates, on_update = collect_updates()

        final = await pipeline.run(toy_photo_base64, sample_params, on_update=on_update)

        assert Stage.ILLUSTRATING in [u.stage for u in updates]
        assert Stage.ERROR not in [u.stage for u in updates]
        assert composer.received[0].toy_description == GENERIC_TOY_DESCRIPTION
        assert illustrator.descriptions == [GENERIC_TOY_DESCRIPTION]
        assert updates[1].progress == 40
        assert final.stage == Stage.DONE

    @pytest.mark.asyncio
    async def test_five_page_story_is_fatal(self, sample_profile, sample_params, toy_photo_base64):
        payload = make_story_payload(page_count=5)
        client = make_genai_client(make_text_response(json.dumps(payload)))
        illustrator = FakeIllustrator()
        pipeline = make_pipeline(
            FakeAnalyzer(profile=sample_profile),
            StoryComposer(client, model="test-model", request_delay=0),
            illustrator,
        )
        updates, on_update = collect_updates()

        final = await pipeline.run(toy_photo_base64, sample_params, on_update=on_update)

        assert isinstance(final.state, Failed)
        assert final.error == "Expected 6 pages, got 5"
        assert final.progress == 50
        assert illustrator.descriptions == []
        assert not any(isinstance(u.state, Done) for u in updates)

    @pytest.mark.asyncio
    async def test_composer_error_message_is_exposed(self, sample_profile, sample_params, toy_photo_base64):
        pipeline = make_pipeline(
            FakeAnalyzer(profile=sample_profile),
            FakeComposer(error=FormatError("Failed to generate story - invalid response format")),
            FakeIllustrator(),
        )

        final = await pipeline.run(toy_photo_base64, sample_params)

        assert final.stage == Stage.ERROR
        assert final.error == "Failed to generate story - invalid response format"

    @pytest.mark.asyncio
    async def test_all_illustrations_fail(self, sample_profile, sample_story, sample_params, toy_photo_base64):
        """Every image call fails: default images, progress still reaches 6/6."""
        client = make_genai_client(*[RuntimeError("image model unavailable")] * 6)
        illustrator = PageIllustrator(client, model="test-image-model", request_delay=0)
        pipeline = make_pipeline(FakeAnalyzer(profile=sample_profile), FakeComposer(story=sample_story), illustrator)
        updates, on_update = collect_updates()

        final = await pipeline.run(toy_photo_base64, sample_params, on_update=on_update)

        image_progress = [u.image_progress for u in updates if u.image_progress]
        assert image_progress[-1] == (6, 6)
        assert Stage.FINALIZING in [u.stage for u in updates]
        story = final.state.story
        assert [p.image_url for p in story.pages] == [
            DEFAULT_IMAGE_URLS[i % len(DEFAULT_IMAGE_URLS)] for i in range(6)
        ]

    @pytest.mark.asyncio
    async def test_illustrator_crash_degrades_to_default_images(
        self, sample_profile, sample_story, sample_params, toy_photo_base64
    ):
        pipeline = make_pipeline(
            FakeAnalyzer(profile=sample_profile),
            FakeComposer(story=sample_story),
            FakeIllustrator(error=RuntimeError("unexpected")),
        )

        final = await pipeline.run(toy_photo_base64, sample_params)

        assert final.stage == Stage.DONE
        assert all(p.image_url in DEFAULT_IMAGE_URLS for p in final.state.story.pages)

    @pytest.mark.asyncio
    async def test_not_configured_requests_fallback(self, sample_params, toy_photo_base64):
        pipeline = make_pipeline(configured=False)
        updates, on_update = collect_updates()

        final = await pipeline.run(toy_photo_base64, sample_params, on_update=on_update)

        assert isinstance(final.state, FallbackRequested)
        assert final.state.reason == "not_configured"
        assert final.state.language == "Spanish"
        assert Stage.ERROR not in [u.stage for u in updates]

    @pytest.mark.asyncio
    async def test_identical_responses_give_identical_shape(self, fake_pipeline, sample_params, toy_photo_base64):
        first = await fake_pipeline.run(toy_photo_base64, sample_params, run_id=1)
        second = await fake_pipeline.run(toy_photo_base64, sample_params, run_id=2)

        assert first.state.story == second.state.story

    @pytest.mark.asyncio
    async def test_composition_error_subclasses_are_fatal(self, sample_profile, sample_params, toy_photo_base64):
        pipeline = make_pipeline(
            FakeAnalyzer(profile=sample_profile),
            FakeComposer(error=CompositionError("Failed to generate story: timed out")),
            FakeIllustrator(),
        )

        final = await pipeline.run(toy_photo_base64, sample_params)

        assert final.error == "Failed to generate story: timed out"

"""
Story generation pipeline: photo + personality → illustrated story.

Stages run strictly in sequence, because each prompt depends on the text
produced by the stage before it:

1. Analyze the toy photo into a canonical description
2. Compose the 6-page story and its 4 vocabulary words
3. Illustrate each page, one at a time
4. Assemble pages, images and capped vocabulary into the final story

Failure handling is one policy per stage. Only composition is fatal: the
story text cannot be substituted, while a generic toy description and
stock images keep the run usable.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Union

from toystories.config import (
    DEFAULT_IMAGE_URLS,
    GENERIC_TOY_DESCRIPTION,
    PIPELINE_CONSTANTS,
    STORY_CONSTANTS,
    get_genai_client,
    is_api_configured,
)
from ..modules.page_illustrator import PageIllustrator
from ..modules.provenance_signer import ProvenanceSigner, get_default_signer
from ..modules.story_composer import StoryComposer
from ..modules.toy_analyzer import ToyAnalyzer
from ..types import (
    Analyzing,
    Done,
    Failed,
    FallbackRequested,
    Finalizing,
    GeneratedStory,
    GenerationRun,
    Generating,
    IllustratedPage,
    IllustratedStory,
    Illustrating,
    ImagePayload,
    RunState,
    Stage,
    StoryGenerationParams,
    StoryPage,
    VocabWord,
)

logger = logging.getLogger(__name__)

# Type alias for run update callback
RunUpdateCallback = Callable[[GenerationRun], None]


# =============================================================================
# Stage policies
# =============================================================================


@dataclass(frozen=True)
class FatalOnError:
    """The run enters the error state with the stage's error message."""


@dataclass(frozen=True)
class DegradeOnError:
    """The run continues with a substitute value built from the error."""

    fallback: Callable[[Exception], Any]


StagePolicy = Union[FatalOnError, DegradeOnError]

STAGE_POLICIES: dict[Stage, StagePolicy] = {
    Stage.ANALYZING: DegradeOnError(lambda e: GENERIC_TOY_DESCRIPTION),
    Stage.GENERATING: FatalOnError(),
    Stage.ILLUSTRATING: DegradeOnError(lambda e: []),
}

# Overall progress checkpoints (0-100)
STAGE_PROGRESS = {
    "analyzing": 10,
    "analyzed": 40,
    "generating": 50,
    "illustrating": 50,
    "finalizing": 95,
    "done": 100,
}


def illustration_progress(current: int, total: int) -> int:
    """Overall progress while illustrating: 50% → 90% across the pages."""
    if total <= 0:
        return STAGE_PROGRESS["illustrating"]
    return STAGE_PROGRESS["illustrating"] + round(40 * current / total)


# =============================================================================
# Assembly
# =============================================================================


def _headword(word: str) -> str:
    """Strip a parenthetical pronunciation hint, e.g. "勇敢 (yǒng gǎn)" → "勇敢"."""
    return word.split(" (")[0].strip()


def assign_vocabulary(
    pages: Sequence[StoryPage],
    vocabulary: Sequence[VocabWord],
) -> list[tuple[VocabWord, ...]]:
    """
    Attach vocabulary words to pages.

    A word goes to the first page (in page order) whose text contains it.
    Words not found in any page fill the earliest pages still without one.
    At most one word per page and four per story; each word is used once.
    """
    per_page = STORY_CONSTANTS["max_vocab_per_page"]
    max_total = STORY_CONSTANTS["max_vocab_total"]

    assigned: list[list[VocabWord]] = [[] for _ in pages]
    remaining = list(vocabulary)
    total = 0

    for index, page in enumerate(pages):
        text = page.text.lower()
        for word in list(remaining):
            if total >= max_total or len(assigned[index]) >= per_page:
                break
            headword = _headword(word.word).lower()
            if headword and headword in text:
                assigned[index].append(word)
                remaining.remove(word)
                total += 1

    for index in range(len(pages)):
        if not remaining or total >= max_total:
            break
        if len(assigned[index]) < per_page:
            assigned[index].append(remaining.pop(0))
            total += 1

    return [tuple(words) for words in assigned]


def resolve_image_url(images: Sequence[Optional[ImagePayload]], index: int) -> str:
    """Generated image for the page, or a stock image chosen by page index."""
    if index < len(images) and images[index] is not None:
        return images[index].to_data_url()
    return DEFAULT_IMAGE_URLS[index % len(DEFAULT_IMAGE_URLS)]


def assemble_story(
    story: GeneratedStory,
    images: Sequence[Optional[ImagePayload]],
) -> IllustratedStory:
    """Merge composed pages, resolved images and capped vocabulary."""
    vocab_by_page = assign_vocabulary(story.pages, story.vocabulary)

    pages = tuple(
        IllustratedPage(
            page_number=page.page_number,
            text=page.text,
            image_url=resolve_image_url(images, index),
            vocab_words=vocab_by_page[index],
        )
        for index, page in enumerate(story.pages)
    )
    return IllustratedStory(pages=pages, vocabulary=tuple(story.vocabulary))


# =============================================================================
# Pipeline
# =============================================================================


class StoryPipeline:
    """
    Drive one generation run through analysis, composition, illustration
    and assembly, reporting GenerationRun snapshots as it goes.

    The pipeline holds no per-run state, so a single instance can serve
    any number of concurrent runs.

    Args:
        analyzer: ToyAnalyzer (or compatible) for the photo
        composer: StoryComposer (or compatible) for the story text
        illustrator: PageIllustrator (or compatible) for page images
        configured: False when the AI integration has no credentials
        policies: Per-stage failure policy, defaults to STAGE_POLICIES
    """

    def __init__(
        self,
        analyzer: Optional[ToyAnalyzer],
        composer: Optional[StoryComposer],
        illustrator: Optional[PageIllustrator],
        configured: bool = True,
        policies: Optional[dict[Stage, StagePolicy]] = None,
        not_configured_delay: Optional[float] = None,
        finalize_hold: Optional[float] = None,
    ):
        self.analyzer = analyzer
        self.composer = composer
        self.illustrator = illustrator
        self.configured = configured
        self.policies = policies or STAGE_POLICIES
        self.not_configured_delay = (
            PIPELINE_CONSTANTS["not_configured_delay"]
            if not_configured_delay is None
            else not_configured_delay
        )
        self.finalize_hold = (
            PIPELINE_CONSTANTS["finalize_hold"] if finalize_hold is None else finalize_hold
        )

    @classmethod
    def from_environment(
        cls,
        client=None,
        signer: Optional[ProvenanceSigner] = None,
    ) -> "StoryPipeline":
        """Build a pipeline from environment configuration."""
        if client is None:
            if not is_api_configured():
                logger.warning("Gemini API key not configured - runs will use the example story")
                return cls(analyzer=None, composer=None, illustrator=None, configured=False)
            client = get_genai_client()

        return cls(
            analyzer=ToyAnalyzer(client),
            composer=StoryComposer(client),
            illustrator=PageIllustrator(client, signer=signer or get_default_signer()),
        )

    async def _run_stage(self, stage: Stage, operation) -> Any:
        """Await one stage and apply its failure policy."""
        policy = self.policies.get(stage, FatalOnError())
        try:
            return await operation
        except Exception as e:
            if isinstance(policy, DegradeOnError):
                logger.warning(f"Stage {stage.value} failed, continuing with fallback: {e}")
                return policy.fallback(e)
            raise

    async def _analyze(self, photo) -> str:
        profile = await self.analyzer.analyze(photo)
        return profile.full_description

    async def run(
        self,
        photo,
        params: StoryGenerationParams,
        run_id: int = 1,
        on_update: Optional[RunUpdateCallback] = None,
    ) -> GenerationRun:
        """
        Execute a complete run.

        Args:
            photo: Toy photo as base64 (data URL allowed) or raw bytes
            params: Story parameters; toy_description is replaced by analysis
            run_id: Identifier stamped on every snapshot
            on_update: Optional callback receiving each GenerationRun snapshot

        Returns:
            The terminal GenerationRun (Done, Failed or FallbackRequested)
        """
        run = GenerationRun(run_id=run_id)

        def advance(state: RunState, progress: Optional[int] = None) -> GenerationRun:
            nonlocal run
            run = run.advance(state, progress)
            if on_update:
                on_update(run)
            return run

        try:
            advance(Analyzing(), STAGE_PROGRESS["analyzing"])

            if not self.configured:
                await asyncio.sleep(self.not_configured_delay)
                return advance(FallbackRequested(reason="not_configured", language=params.language))

            # Step 1: Analyze the toy photo
            toy_description = await self._run_stage(Stage.ANALYZING, self._analyze(photo))
            advance(Analyzing(), STAGE_PROGRESS["analyzed"])

            # Step 2: Compose the story
            advance(Generating(), STAGE_PROGRESS["generating"])
            story = await self._run_stage(
                Stage.GENERATING,
                self.composer.compose(params.with_description(toy_description)),
            )

            # Step 3: Illustrate each page
            total = len(story.pages)
            advance(Illustrating(current=0, total=total), STAGE_PROGRESS["illustrating"])
            images = await self._run_stage(
                Stage.ILLUSTRATING,
                self.illustrator.illustrate_all(
                    story.pages,
                    toy_description,
                    params.toy_name,
                    on_progress=lambda current, total: advance(
                        Illustrating(current=current, total=total),
                        illustration_progress(current, total),
                    ),
                ),
            )

            # Step 4: Assemble the final story
            advance(Finalizing(), STAGE_PROGRESS["finalizing"])
            illustrated = assemble_story(story, images)
            advance(Finalizing(), STAGE_PROGRESS["done"])

            # Brief pause so a progress display can show completion
            if self.finalize_hold > 0:
                await asyncio.sleep(self.finalize_hold)

            return advance(Done(story=illustrated), STAGE_PROGRESS["done"])

        except Exception as e:
            logger.error(f"Story generation failed: {e}")
            return advance(Failed(message=str(e) or "Failed to generate story"))

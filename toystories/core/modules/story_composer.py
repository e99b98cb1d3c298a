"""
Module for composing the personalized story text.

One long natural-language instruction goes to the language model, which
answers with strict JSON: exactly 6 pages and exactly 4 vocabulary words.
Anything else is a FormatError, because the story text is the one artifact
of a run that cannot be substituted.
"""

import asyncio
import logging
from typing import Optional

from toystories.config import LLM_CONSTANTS, PIPELINE_CONSTANTS, STORY_CONSTANTS, get_story_model, llm_retry
from ..errors import CompositionError, FormatError
from ..parsing import load_json_object
from ..types import GeneratedStory, StoryGenerationParams, StoryPage, VocabWord

logger = logging.getLogger(__name__)

# Narrative craft rubric included in every prompt
STORY_CRAFT_RUBRIC = [
    "Simple structure: a clear beginning, a small problem or adventure, and a warm resolution",
    "Relatable emotion: the character feels something a young child also feels",
    "Playful, rhythmic language: repetition, sound words and a read-aloud cadence",
    "Sensory imagery: what the character sees, hears and touches",
    "A gentle, explicit lesson stated simply near the end",
]


def describe_energy(energy: int) -> str:
    if energy > 70:
        return "very energetic and loves action"
    if energy > 30:
        return "moderately active and curious"
    return "calm and thoughtful"


def describe_confidence(confidence: int) -> str:
    if confidence > 70:
        return "brave and outgoing"
    if confidence > 30:
        return "friendly but cautious"
    return "shy and gentle"


def get_personality_description(energy: int, confidence: int) -> str:
    """Map the two personality sliders to a descriptive sentence."""
    return f"The character is {describe_energy(energy)}, and {describe_confidence(confidence)}."


def build_story_prompt(params: StoryGenerationParams) -> str:
    """Build the composition instruction for one run."""
    page_count = STORY_CONSTANTS["page_count"]
    vocab_count = STORY_CONSTANTS["vocab_count"]

    rubric = "\n".join(f"{i}. {item}" for i, item in enumerate(STORY_CRAFT_RUBRIC, start=1))
    page_lines = ",\n".join(
        f'    {{"pageNumber": {n}, "text": "..."}}' for n in range(1, page_count + 1)
    )
    vocab_lines = ",\n".join(
        '    {"word": "...", "pronunciation": "...", "definition": "...", "icon": "emoji"}'
        for _ in range(vocab_count)
    )

    return f"""Create a children's story for ages {params.age} in {params.language}.

Main character: A toy named "{params.toy_name}" which is {params.toy_description}.
Personality: {params.energy}% energetic (0=calm, 100=very active), {params.confidence}% confident (0=shy, 100=brave)
{get_personality_description(params.energy, params.confidence)} Let this personality shape what the character does.

Requirements:
- Exactly {page_count} short paragraphs (1-3 sentences each), one per page
- Age-appropriate vocabulary for {params.age} year olds
- Positive, adventurous theme that ends on a happy, comforting note
- Include exactly {vocab_count} vocabulary words from the story that are educational for this age group
- Write the story text and vocabulary in {params.language}

Story craft:
{rubric}

IMPORTANT: You must respond with ONLY valid JSON, no markdown formatting, no code blocks. Format:
{{
  "pages": [
{page_lines}
  ],
  "vocabulary": [
{vocab_lines}
  ]
}}"""


def _text_field(entry: dict, key: str) -> str:
    value = entry[key]
    if not isinstance(value, str):
        raise TypeError(f"{key!r} must be a string, got {type(value).__name__}")
    return value.strip()


def _optional_text_field(entry: dict, key: str) -> str:
    value = entry.get(key)
    return value.strip() if isinstance(value, str) else ""


def _page_number(entry: dict) -> int:
    value = entry["pageNumber"]
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"'pageNumber' must be an integer, got {type(value).__name__}")
    return value


def parse_story(raw_output: str) -> GeneratedStory:
    """
    Parse and validate the composition response.

    Raises:
        FormatError: If the response is not the fixed page/vocabulary schema
    """
    page_count = STORY_CONSTANTS["page_count"]
    vocab_count = STORY_CONSTANTS["vocab_count"]

    try:
        parsed = load_json_object(raw_output)
    except ValueError as e:
        raise FormatError("Failed to generate story - invalid response format") from e

    raw_pages = parsed.get("pages")
    raw_vocab = parsed.get("vocabulary")
    if not isinstance(raw_pages, list) or not isinstance(raw_vocab, list):
        raise FormatError("Failed to generate story - missing pages or vocabulary")
    if len(raw_pages) != page_count:
        raise FormatError(f"Expected {page_count} pages, got {len(raw_pages)}")
    if len(raw_vocab) != vocab_count:
        raise FormatError(f"Expected {vocab_count} vocabulary words, got {len(raw_vocab)}")

    try:
        pages = tuple(
            StoryPage(page_number=_page_number(p), text=_text_field(p, "text"))
            for p in raw_pages
        )
        vocabulary = tuple(
            VocabWord(
                word=_text_field(v, "word"),
                pronunciation=_optional_text_field(v, "pronunciation"),
                definition=_text_field(v, "definition"),
                icon=_optional_text_field(v, "icon"),
            )
            for v in raw_vocab
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise FormatError(f"Failed to generate story - malformed entry: {e}") from e

    expected_numbers = list(range(1, page_count + 1))
    if [p.page_number for p in pages] != expected_numbers:
        raise FormatError(f"Pages must be numbered {expected_numbers}")
    if any(not p.text for p in pages):
        raise FormatError("Story pages must not be empty")
    if any(not v.word for v in vocabulary):
        raise FormatError("Vocabulary words must not be empty")

    return GeneratedStory(pages=pages, vocabulary=vocabulary)


class StoryComposer:
    """
    Compose a GeneratedStory from StoryGenerationParams.

    A single model call per invocation; transient network errors are retried
    at the transport level only.
    """

    def __init__(
        self,
        client,
        model: Optional[str] = None,
        request_delay: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        self.client = client
        self.model = model or get_story_model()
        self.timeout = timeout or LLM_CONSTANTS["stage_timeout"]
        self.request_delay = (
            PIPELINE_CONSTANTS["composition_delay"] if request_delay is None else request_delay
        )

    @llm_retry
    async def _request_story(self, prompt: str) -> str:
        response = await asyncio.wait_for(
            self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
            ),
            timeout=self.timeout,
        )
        return response.text or ""

    async def compose(self, params: StoryGenerationParams) -> GeneratedStory:
        """
        Compose the story.

        Raises:
            CompositionError: If the model call fails
            FormatError: If the response does not match the schema
        """
        prompt = build_story_prompt(params)

        # Rate-limit courtesy
        if self.request_delay > 0:
            await asyncio.sleep(self.request_delay)

        try:
            raw_output = await self._request_story(prompt)
        except Exception as e:
            raise CompositionError(f"Failed to generate story: {e}") from e

        try:
            story = parse_story(raw_output)
        except FormatError:
            logger.error(f"Failed to parse story JSON. Raw response: {raw_output[:500]}")
            raise

        logger.info(f"Composed story with {story.page_count} pages for {params.toy_name}")
        return story

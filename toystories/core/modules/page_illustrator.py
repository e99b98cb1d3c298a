"""
Module for generating page illustrations with a Gemini image model.

Every prompt reuses the toy's canonical description from the analysis
stage so the toy looks the same on each page. Pages are illustrated one
at a time, in page order, to stay within the image API's rate limits.
"""

import asyncio
import logging
from typing import Callable, Optional, Sequence

from toystories.config import (
    IMAGE_CONSTANTS,
    PIPELINE_CONSTANTS,
    extract_image_from_response,
    get_image_config,
    get_image_model,
    image_retry,
)
from ..errors import IllustrationError, SigningError
from ..types import ImagePayload, StoryPage
from .provenance_signer import ProvenanceSigner

logger = logging.getLogger(__name__)

# House art style for every illustration
IMAGE_STYLE = {
    "style": "warm and cozy children's book illustration style, soft watercolor textures, gentle pastel colors",
    "lighting": "soft warm lighting, golden hour glow",
    "mood": "friendly, magical, comforting",
    "quality": "high quality, detailed, professional children's book illustration",
    "negative": "scary, dark, realistic, photographic, violent, sad",
}

# Callback(current, total) fired after each page finishes
ImageProgressCallback = Callable[[int, int], None]


def get_scene_type(page_index: int, total_pages: int) -> str:
    """Frame the scene by its position in the story."""
    if page_index == 0:
        return "introduction scene"
    if page_index == total_pages - 1:
        return "ending scene"
    return "adventure scene"


def build_illustration_prompt(
    page_text: str,
    toy_description: str,
    toy_name: str,
    page_index: int,
    total_pages: int,
) -> str:
    """Combine the house style, the toy's description and the page text."""
    scene_type = get_scene_type(page_index, total_pages)

    return f"""Create a children's book illustration for this {scene_type}:

SCENE: {page_text}

MAIN CHARACTER: A toy named "{toy_name}" which is {toy_description}.
The toy should be the main focus and look cute and friendly.
Draw the toy exactly as described on every page.

ART STYLE: {IMAGE_STYLE["style"]}
LIGHTING: {IMAGE_STYLE["lighting"]}
MOOD: {IMAGE_STYLE["mood"]}
QUALITY: {IMAGE_STYLE["quality"]}

DO NOT include: {IMAGE_STYLE["negative"]}

This is page {page_index + 1} of {total_pages} in a children's storybook. Make the illustration magical and engaging for young children. No text or words in the image."""


class PageIllustrator:
    """
    Generate one illustration per story page.

    Optionally forwards each image to a ProvenanceSigner. A signing failure
    never fails the page: the unsigned image is returned.
    """

    def __init__(
        self,
        client,
        model: Optional[str] = None,
        signer: Optional[ProvenanceSigner] = None,
        request_delay: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        self.client = client
        self.model = model or get_image_model()
        self.timeout = timeout or IMAGE_CONSTANTS["request_timeout"]
        self.config = get_image_config()
        self.signer = signer
        self.request_delay = (
            PIPELINE_CONSTANTS["illustration_delay"] if request_delay is None else request_delay
        )

    @image_retry
    async def _generate_image(self, prompt: str) -> ImagePayload:
        """Generate image from prompt with retry for network errors."""
        response = await asyncio.wait_for(
            self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self.config,
            ),
            timeout=self.timeout,
        )
        data, mime_type = extract_image_from_response(response)
        return ImagePayload(mime_type=mime_type, data=data)

    async def _sign(self, image: ImagePayload, page_number: int) -> ImagePayload:
        if self.signer is None:
            return image
        try:
            return await self.signer.sign(image, page_number=page_number)
        except SigningError as e:
            logger.warning(f"Page {page_number}: signing failed, using unsigned image: {e}")
            return image
        except Exception as e:
            logger.exception(
                f"Page {page_number}: unexpected signing error, using unsigned image: {type(e).__name__}: {e}"
            )
            return image

    async def illustrate(
        self,
        page_text: str,
        toy_description: str,
        toy_name: str,
        page_index: int,
        total_pages: int,
    ) -> ImagePayload:
        """
        Generate the illustration for a single page.

        Args:
            page_text: The story text shown on the page
            toy_description: Canonical toy description from analysis
            toy_name: The toy's display name
            page_index: Zero-based page position
            total_pages: Number of pages in the story

        Returns:
            ImagePayload, signed when a signer is configured and succeeds

        Raises:
            IllustrationError: If no image could be generated
        """
        page_number = page_index + 1
        prompt = build_illustration_prompt(
            page_text, toy_description, toy_name, page_index, total_pages
        )

        # Rate-limit courtesy
        if self.request_delay > 0:
            await asyncio.sleep(self.request_delay)

        try:
            image = await self._generate_image(prompt)
        except Exception as e:
            raise IllustrationError(
                f"No image generated for page {page_number}: {e}", page_number=page_number
            ) from e

        logger.debug(f"Page {page_number}: generated {len(image.data)} bytes")
        return await self._sign(image, page_number)

    async def illustrate_all(
        self,
        pages: Sequence[StoryPage],
        toy_description: str,
        toy_name: str,
        on_progress: Optional[ImageProgressCallback] = None,
    ) -> list[Optional[ImagePayload]]:
        """
        Illustrate every page sequentially, in page order.

        Failed pages are recorded as None so the caller can substitute a
        default image.

        Returns:
            One entry per page: the image, or None if that page failed
        """
        total = len(pages)
        images: list[Optional[ImagePayload]] = []

        for index, page in enumerate(pages):
            try:
                image = await self.illustrate(
                    page_text=page.text,
                    toy_description=toy_description,
                    toy_name=toy_name,
                    page_index=index,
                    total_pages=total,
                )
            except IllustrationError as e:
                logger.warning(f"Failed to generate image for page {page.page_number}: {e}")
                image = None

            images.append(image)
            if on_progress:
                on_progress(index + 1, total)

        return images

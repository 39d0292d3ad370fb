"""
Prompt refinement for ProductShot Studio.

Turns a style's base prompt into four diverse generation prompts in two
sequential stages:
1. Contextualize the base prompt for the analyzed product
2. Diversify the result into exactly four variants

Neither stage can fail the pipeline. Every collaborator failure degrades to
the previous stage's prompt.
"""

import logging
from typing import Any

from .errors import RefinementError
from .generators import STRING_ARRAY_SCHEMA, TextGenerator

logger = logging.getLogger(__name__)

VARIANT_COUNT = 4

CREATIVE_DIRECTION_PROMPT = """You are a creative director for a marketing agency. Your task is to enhance a generic photography prompt to make it specific and compelling for a particular product.

Generic Prompt: "{style_prompt}"
Product Description: "{product_description}"

Based on the product, rewrite the generic prompt to create a specific, branded, and engaging scene. For example, if the product is 'hot sauce', a lifestyle prompt could be about drizzling it on chicken wings at a barbecue. Be creative and detailed. Output only the new, rewritten prompt."""

VARIATION_PROMPT = """Based on the following creative direction, generate exactly {count} distinct and varied photography prompts. Each should explore a different angle, lighting, or composition to provide a range of creative options.

Creative Direction: "{base_prompt}"

Return the {count} prompts as a JSON array of strings. For example: ["prompt 1", "prompt 2", "prompt 3", "prompt 4"]."""


def pad_variants(variants: list[str], count: int = VARIANT_COUNT) -> list[str]:
    """Cycle ``variants`` to exactly ``count`` entries, keeping the first ``count``."""
    if not variants:
        raise ValueError("Cannot pad an empty variant list")
    return [variants[i % len(variants)] for i in range(count)]


def _usable_variants(response: Any) -> list[str]:
    """Extract non-blank strings from a structured variation response.

    Raises:
        RefinementError: If the response is not a list or holds no usable strings
    """
    if not isinstance(response, list):
        raise RefinementError(f"Expected a JSON array of prompts, got {type(response).__name__}")

    variants = [item.strip() for item in response if isinstance(item, str) and item.strip()]
    if not variants:
        raise RefinementError("Variation response contained no usable prompts")
    return variants


class PromptRefiner:
    """Two-stage prompt refinement backed by a text generator."""

    def __init__(self, text_generator: TextGenerator):
        self.text_generator = text_generator

    async def contextualize(self, style_prompt: str, product_description: str) -> str:
        """Rewrite ``style_prompt`` into a scene for the described product.

        Returns ``style_prompt`` unchanged when there is no description or the
        rewrite fails.
        """
        if not product_description.strip():
            return style_prompt

        try:
            rewritten = await self.text_generator.generate_text(
                CREATIVE_DIRECTION_PROMPT.format(
                    style_prompt=style_prompt,
                    product_description=product_description.strip(),
                )
            )
            rewritten = rewritten.strip()
            if not rewritten:
                raise RefinementError("Contextual prompt was empty")
        except Exception as e:
            logger.warning(f"Failed to get contextual prompt, falling back to original: {e}")
            return style_prompt

        return rewritten

    async def diversify(self, base_prompt: str) -> list[str]:
        """Expand ``base_prompt`` into exactly four prompt variants.

        Falls back to four copies of ``base_prompt`` on any failure.
        """
        try:
            response = await self.text_generator.generate_structured(
                VARIATION_PROMPT.format(base_prompt=base_prompt, count=VARIANT_COUNT),
                STRING_ARRAY_SCHEMA,
            )
            variants = _usable_variants(response)
        except Exception as e:
            logger.warning(f"Could not generate {VARIANT_COUNT} diverse prompts, falling back to original: {e}")
            return [base_prompt] * VARIANT_COUNT

        if len(variants) < VARIANT_COUNT:
            logger.info(f"Got {len(variants)} prompt variants, repeating to fill {VARIANT_COUNT}")
        return pad_variants(variants)

    async def refine(self, style_prompt: str, product_description: str = "") -> list[str]:
        """Run both stages and return exactly four prompts."""
        base_prompt = await self.contextualize(style_prompt, product_description)
        return await self.diversify(base_prompt)

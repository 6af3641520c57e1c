"""Expert prompt resources served alongside the generation tools."""

from textwrap import dedent
from typing import Dict, List

from flux_tool.errors import UnknownResourceError
from flux_tool.schemas import ExpertMetadata

URI_SCHEME = "flux-expert://"
LOGO_KEYWORDS = ("logo", "brand", "identity", "startup", "company", "business")

_PROMPTS: Dict[str, str] = {
    "image_expert": dedent(
        """\
        You are an expert in AI image generation with a strong grasp of visual
        composition, artistic styles and the technical side of image creation.

        Composition:
        - rule of thirds, golden ratio and visual balance
        - color theory, lighting and mood
        - perspective, depth and spatial relationships
        - styles ranging from photorealism to abstract art

        Technique:
        - prompt engineering for Flux models
        - aspect ratios and resolutions (dimensions must be multiples of 32)
        - choosing between Flux variants: pro for detailed scenes, dev for fast
          iteration, 1.1 pro for the best quality, Kontext for image-to-image edits
        - fixed seeds for reproducible results

        When helping a user:
        1. Work out what they want to see and suggest concrete parameters.
        2. Recommend the Flux variant that fits the request.
        3. Write a detailed prompt that captures their intent.
        4. Suggest creative directions they may not have considered.
        5. Propose a sensible output path and file name.
        """
    ),
    "logo_expert": dedent(
        """\
        You are a logo design expert specializing in AI-generated brand identities.

        Brand identity:
        - brand personality and target audience
        - the psychology of color, shape and typography
        - logos that scale from favicon to billboard

        Design:
        - minimal, memorable marks
        - prompts that produce clean, vector-like results
        - combining typography with symbols
        - corporate, creative and startup aesthetics

        Flux settings:
        - square aspect ratios for marks, wide ones for wordmarks
        - plain backgrounds for easy cut-out
        - seed control to iterate on a promising direction

        When helping a user:
        1. Understand the brand, industry and audience.
        2. Offer several conceptual directions.
        3. Recommend technical settings for a clean result.
        4. Name files systematically so brand assets stay organized.
        5. Suggest variations (monochrome, horizontal, icon only).
        """
    ),
}

_METADATA: Dict[str, ExpertMetadata] = {
    "image_expert": ExpertMetadata(
        id="image_expert",
        name="Image Expert",
        description="Image generation expert for visual composition and technical parameter choices",
        specialties=["composition", "styles", "technical"],
        uri=f"{URI_SCHEME}image_expert",
    ),
    "logo_expert": ExpertMetadata(
        id="logo_expert",
        name="Logo Expert",
        description="Logo design expert for AI-generated brand identities",
        specialties=["branding", "typography", "design"],
        uri=f"{URI_SCHEME}logo_expert",
    ),
}


class ExpertPrompts:
    """Read-only catalogue of expert prompts."""

    def list_experts(self) -> List[str]:
        return list(_PROMPTS)

    def get_prompt(self, expert_id: str) -> str:
        if expert_id not in _PROMPTS:
            raise UnknownResourceError(f"Unknown expert: {expert_id}")
        return _PROMPTS[expert_id]

    def get_metadata(self, expert_id: str) -> ExpertMetadata:
        if expert_id not in _METADATA:
            raise UnknownResourceError(f"Unknown expert: {expert_id}")
        return _METADATA[expert_id]

    def list_resources(self) -> List[ExpertMetadata]:
        return [self.get_metadata(expert_id) for expert_id in self.list_experts()]

    def suggest_expert(self, prompt: str) -> str:
        """Pick the expert best suited to a prompt; logo and brand work goes to logo_expert."""
        lowered = prompt.lower()
        if any(keyword in lowered for keyword in LOGO_KEYWORDS):
            return "logo_expert"
        return "image_expert"

    def read_resource(self, uri: str) -> str:
        """Return the prompt text behind a ``flux-expert://<id>`` URI."""
        if not uri.startswith(URI_SCHEME):
            raise UnknownResourceError(f"Unknown resource: {uri}")
        expert_id = uri[len(URI_SCHEME):]
        if expert_id not in _PROMPTS:
            raise UnknownResourceError(f"Unknown resource: {uri}")
        return _PROMPTS[expert_id]

"""
Photo style catalog.

The fixed set of photographic directions a user can pick from. Loaded once,
never mutated.
"""

from .models import StyleDescriptor


PHOTO_STYLES: tuple[StyleDescriptor, ...] = (
    StyleDescriptor(
        id="whitebg",
        name="White Background Shots",
        description="The e-commerce gold standard. Clean, minimal, and distraction-free.",
        base_prompt_template=(
            "Isolate the product from its current background and place it on a completely pure, "
            "seamless white background (#FFFFFF). The lighting on the product should be clean, bright, "
            "and diffused to eliminate all but the softest contact shadows, ensuring the product's colors "
            "and details are accurately represented. The final image should be suitable for a high-end "
            "e-commerce product listing."
        ),
        preview_url="https://i.imgur.com/3Hn6MM1.jpeg",
    ),
    StyleDescriptor(
        id="hero",
        name="Hero Shot",
        description="A visually striking shot that showcases your product in its best light.",
        base_prompt_template=(
            "Generate a visually stunning, high-impact hero shot of the product. The product must be the "
            "central focus, captured with dramatic, high-contrast lighting that accentuates its form and "
            "texture. The background should be clean yet powerful, complementing the product without "
            "distraction. The overall mood should be premium, aspirational, and cinematic."
        ),
        preview_url="https://i.imgur.com/2fq4VQy.jpeg",
    ),
    StyleDescriptor(
        id="closeup",
        name="Close-up Photography",
        description="Highlights the fine details, texture, and materials of your product.",
        base_prompt_template=(
            "Create a compelling macro-style, extreme close-up shot of the provided product. Focus on the "
            "most intricate details, textures, and materials. The lighting must be precise, highlighting "
            "these specific features to reveal the product's quality and craftsmanship. The composition "
            "should be tight, artistic, and abstract."
        ),
        preview_url="https://i.imgur.com/FSagWNQ.jpeg",
    ),
    StyleDescriptor(
        id="lifestyle",
        name="Lifestyle Photography",
        description="Shows your product in a real-life setting to connect with customers.",
        base_prompt_template=(
            "Create a realistic and aspirational lifestyle scene featuring this product in a natural "
            "context of use. The scene should tell a story and evoke a specific mood (e.g., cozy morning, "
            "busy city life, relaxing vacation). Ensure the lighting is natural and the atmosphere is "
            "authentic. The product should be seamlessly integrated into the environment, looking like it "
            "truly belongs there."
        ),
        preview_url="https://i.imgur.com/wE21foO.jpeg",
    ),
    StyleDescriptor(
        id="studio",
        name="Studio Photography",
        description="Clean and polished look with consistent lighting and background.",
        base_prompt_template=(
            "Generate a professional studio photograph of the product, perfectly presented. Use clean, "
            "even, and soft lighting to eliminate harsh shadows and create gentle gradients. The background "
            "should be a seamless, solid, neutral color (like light gray, #f0f0f0) to ensure the product is "
            "the sole focus. The overall look must be polished, sharp, and consistent."
        ),
        preview_url="https://i.imgur.com/c4KGr9L.jpeg",
    ),
    StyleDescriptor(
        id="flatlay",
        name="Flat-Lay Photography",
        description="Captures products from above for a clean, stylish composition.",
        base_prompt_template=(
            "Create a stylish and well-composed flat-lay photograph, shot from a top-down perspective "
            "(90-degree angle). Arrange the product neatly on a clean, textured surface (like wood, marble, "
            "or linen) alongside a few complementary, aesthetically pleasing props that enhance its story "
            "and color palette. The lighting should be bright, soft, and even across the entire composition."
        ),
        preview_url="https://i.imgur.com/uWNlzzA.png",
    ),
    StyleDescriptor(
        id="ecommerce",
        name="E-commerce Photography",
        description="Clear, accurate shots that follow platform-specific guidelines.",
        base_prompt_template=(
            "Generate a clear and accurate e-commerce product shot optimized for marketplaces like Amazon "
            "or Shopify. The product must be the sole focus, sharply in focus from edge to edge, and "
            "well-lit to show its true colors and details. Styling should be minimal to none. The background "
            "should be simple and non-distracting, often a light neutral gray or a subtle gradient."
        ),
        preview_url="https://i.imgur.com/AbwB5uB.jpeg",
    ),
)

_STYLES_BY_ID = {style.id: style for style in PHOTO_STYLES}

# Example instructions shown as hints in the improve dialog
IMPROVEMENT_EXAMPLES: tuple[str, ...] = (
    "Make the lighting more dramatic...",
    "Change the background to a lush forest.",
    "Add a reflection on a glossy black floor.",
    "Give it a vintage, 1970s film-like quality.",
    "Place the product on a pile of coffee beans.",
    "Surround it with smoke and neon lights.",
    "Change the background to a minimalist concrete wall.",
)


def list_styles() -> list[StyleDescriptor]:
    """All styles in display order."""
    return list(PHOTO_STYLES)


def get_style(style_id: str) -> StyleDescriptor:
    """Look up a style by id."""
    try:
        return _STYLES_BY_ID[style_id]
    except KeyError:
        raise KeyError(
            f"Unknown style: {style_id}. Known styles: {', '.join(_STYLES_BY_ID)}"
        ) from None

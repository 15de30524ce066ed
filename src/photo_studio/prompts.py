"""Prompt templates for the image-generation API.

Garment type and colour are never named in a prompt; the model is told to copy
them from the reference photos instead.
"""

from dataclasses import dataclass

PHOTOGRAPHY_REQUIREMENTS = (
    "Photography requirements:\n"
    "- Clean white or light gray studio background\n"
    "- Soft, even studio lighting without harsh shadows\n"
    "- Full-body framing from head to below the knees\n"
    "- Sharp garment details in a professional e-commerce style"
)

GARMENT_DETAILS = (
    "color, fabric texture, patterns, buttons, zippers, stitching, "
    "collar style, sleeve length, fit and drape"
)


@dataclass(frozen=True)
class PromptOptions:
    """Caller-supplied text appended to a template."""

    additional_notes: str = ""
    adjustment_prompt: str = ""
    clothing_count: int = 1


def _suffix(options: PromptOptions) -> str:
    parts = []
    if options.additional_notes:
        parts.append(f"\nAdditional notes: {options.additional_notes}")
    if options.adjustment_prompt:
        parts.append(f"\nAdjustment request: {options.adjustment_prompt}")
    return "".join(parts)


def front_prompt(options: PromptOptions | None = None) -> str:
    """Front view: model reference, flat-lay garment, pose reference."""
    options = options or PromptOptions()
    return (
        "You are a professional e-commerce fashion photographer.\n\n"
        "Images provided:\n"
        "1. A front-facing reference photo of the model. Generate a person "
        "identical to this model (face, body type, skin tone, hairstyle).\n"
        "2. A flat-lay photo of a garment. Replicate this exact garment.\n"
        "3. A pose reference photo. Adopt the same standing pose.\n\n"
        "Generate a product photo where the model wears the flat-lay garment "
        f"unchanged ({GARMENT_DETAILS}), faces the camera directly, and holds "
        "the arms slightly away from the body so the silhouette is visible.\n\n"
        f"{PHOTOGRAPHY_REQUIREMENTS}\n\n"
        "CRITICAL: the garment must match the flat-lay photo exactly and the "
        "model must look exactly like the reference photo."
        f"{_suffix(options)}"
    )


def back_prompt(options: PromptOptions | None = None) -> str:
    """Back view of the same outfit."""
    options = options or PromptOptions()
    return (
        "You are a professional e-commerce fashion photographer.\n\n"
        "Images provided:\n"
        "1. A back-facing reference photo of the model. Generate the same "
        "person seen from behind (body type, skin tone, hairstyle).\n"
        "2. A flat-lay photo of a garment. Replicate this exact garment.\n"
        "3. A pose reference photo. Adopt a similar pose, shown from the back.\n\n"
        "Generate a rear-view product photo where the model wears the flat-lay "
        f"garment unchanged ({GARMENT_DETAILS}) with the arms hanging naturally "
        "so the back of the garment is fully visible.\n\n"
        f"{PHOTOGRAPHY_REQUIREMENTS}\n\n"
        "CRITICAL: this is the back view of the same outfit worn by the same "
        "model. Do not alter any garment detail."
        f"{_suffix(options)}"
    )


def detail_page_prompt(options: PromptOptions | None = None) -> str:
    """Detail-page section: layout template followed by model photos."""
    options = options or PromptOptions()
    return (
        "You are a professional e-commerce graphic designer.\n\n"
        "Images provided:\n"
        "1. A detail page reference image defining the exact layout and style.\n"
        "2. Photos of the model wearing the product.\n\n"
        "Generate a new detail page section that follows the reference layout, "
        "composition, background, color scheme and spacing, with the "
        "reference's model and product photos replaced by the provided ones. "
        "Output width must be 790px.\n\n"
        "CRITICAL: only the model and product photos change; the design must "
        "stay consistent with the reference."
        f"{_suffix(options)}"
    )


def _clothing_sources(count: int, subject: str) -> str:
    if count == 1:
        return (
            f"2. A real-world photo of the clothing. Extract the exact {subject} "
            "from it."
        )
    return (
        f"2-{count + 1}. {count} real-world photos of the same clothing from "
        f"different angles. Combine all of them to extract the exact {subject} "
        "and use the extra angles to resolve ambiguity."
    )


def retouch_prompt(options: PromptOptions | None = None) -> str:
    """Swap the clothing on a finished model photo."""
    options = options or PromptOptions()
    count = max(options.clothing_count, 1)
    return (
        "You are a professional e-commerce fashion photo retoucher.\n\n"
        f"Images provided ({count + 1}):\n"
        "1. A model photo used as the target template. Keep the face, "
        "expression, body, pose, background, lighting and composition.\n"
        f"{_clothing_sources(count, 'clothing')}\n\n"
        "Generate a photo with the same dimensions as image 1 in which only the "
        f"clothing is replaced ({GARMENT_DETAILS}). Take nothing but the "
        "clothing from the clothing photos. The new clothing must follow the "
        "original pose and match the scene lighting.\n\n"
        "CRITICAL: the result must be photorealistic and seamless, not a "
        "visible composite."
        f"{_suffix(options)}"
    )


def clothing_detail_prompt(options: PromptOptions | None = None) -> str:
    """Replace the fabric in a detail close-up, keeping its composition."""
    options = options or PromptOptions()
    count = max(options.clothing_count, 1)
    return (
        "You are a professional e-commerce clothing detail photo specialist.\n\n"
        f"Images provided ({count + 1}):\n"
        "1. A detail reference photo used as the composition template. Keep "
        "the camera angle, framing, background, lighting, props and any hands.\n"
        f"{_clothing_sources(count, 'clothing and fabric details')}\n\n"
        "Generate a detail photo with the same dimensions and composition as "
        "image 1 in which only the clothing or fabric is replaced "
        f"({GARMENT_DETAILS}, weave). The new fabric must follow the original "
        "folds and draping.\n\n"
        "CRITICAL: do not change any non-clothing element. The result must be "
        "photorealistic and seamless."
        f"{_suffix(options)}"
    )

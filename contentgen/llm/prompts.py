"""Prompt construction for content generation.

Every function here is pure: identical input produces an identical prompt.
"""

from dataclasses import dataclass

from contentgen.content.models import (
    BusinessContext,
    ContentItem,
    ContentType,
    GenerationOptions,
)


@dataclass(frozen=True)
class PromptTemplate:
    """A named built-in writing style."""

    value: str
    label: str
    instruction: str


PROMPT_TEMPLATES: tuple[PromptTemplate, ...] = (
    PromptTemplate(
        value="default",
        label="Default (SEO-Optimized)",
        instruction="Write in a professional but approachable tone",
    ),
    PromptTemplate(
        value="conversational",
        label="Conversational",
        instruction=(
            "Write in a warm, conversational tone as if speaking directly to the "
            "reader. Use short sentences, rhetorical questions, and relatable examples"
        ),
    ),
    PromptTemplate(
        value="technical",
        label="Technical / In-Depth",
        instruction=(
            "Write in an authoritative, technical tone. Include detailed "
            "explanations, data points, and expert-level insights. Prioritize "
            "depth over brevity"
        ),
    ),
    PromptTemplate(
        value="listicle",
        label="Listicle",
        instruction=(
            "Structure the content as a numbered list with a brief intro and "
            "conclusion. Each list item should have a bold heading and 2-3 "
            "sentences of explanation"
        ),
    ),
    PromptTemplate(
        value="local-seo",
        label="Local SEO",
        instruction=(
            "Emphasize local relevance throughout. Reference the geographic area, "
            "local landmarks, community aspects, and location-specific details. "
            "Optimize heavily for local search"
        ),
    ),
)

CONTENT_TYPE_LABELS: dict[ContentType, str] = {
    ContentType.BLOG_POST: "blog post",
    ContentType.SERVICE_PAGE: "service page",
    ContentType.LOCATION_PAGE: "location-specific landing page",
    ContentType.LANDING_PAGE: "high-converting landing page",
    ContentType.ABOUT_PAGE: "about us page",
    ContentType.FAQ_PAGE: "FAQ page",
    ContentType.HOW_TO_GUIDE: "how-to guide",
}

EXAMPLE_START = "--- EXAMPLE START ---"
EXAMPLE_END = "--- EXAMPLE END ---"

CTA_INSTRUCTION = (
    "- Include a compelling call-to-action section at the end, wrapped in its "
    "own paragraph tags with clear separation from surrounding content"
)

META_DESCRIPTION_LABEL = "Meta Description:"
META_DESCRIPTION_INSTRUCTION = (
    "- After all article content (including the CTA if present), add a "
    "horizontal rule (<hr>) followed by the meta description (150-160 "
    "characters) that leads with the primary keyword. Format it as: "
    f"<hr><p><strong>{META_DESCRIPTION_LABEL}</strong> [description text]</p>"
)

FORMAT_INSTRUCTION = (
    "Format the output as clean HTML with semantic tags (h1, h2, h3, p, ul, li, "
    "strong, em). Do not include <html>, <head>, or <body> tags; only the "
    "content body."
)


def get_template(value: str | None) -> PromptTemplate:
    """Look up a built-in template, falling back to ``default``."""
    for template in PROMPT_TEMPLATES:
        if template.value == value:
            return template
    return PROMPT_TEMPLATES[0]


def _style_lines(options: GenerationOptions) -> list[str]:
    # Exactly one style source: example > custom instruction > template
    if options.example_content and options.example_content.strip():
        return [
            "- Match the writing style, tone, and structure of the following "
            "example content:",
            "",
            EXAMPLE_START,
            options.example_content.strip(),
            EXAMPLE_END,
            "",
        ]
    if options.custom_instruction and options.custom_instruction.strip():
        return [f"- {options.custom_instruction.strip()}"]
    return [f"- {get_template(options.template).instruction}"]


def _cta_line(business: BusinessContext) -> str:
    targets = []
    if business.phone:
        targets.append(f"call {business.phone}")
    if business.contact_url:
        targets.append(f"visit {business.contact_url}")
    if not targets:
        return CTA_INSTRUCTION
    return f"{CTA_INSTRUCTION}. Direct readers to {' or '.join(targets)}"


def build_content_prompt(
    item: ContentItem,
    business: BusinessContext | None = None,
    options: GenerationOptions | None = None,
) -> str:
    """Build the generation instruction for one content item.

    Args:
        item: The content item being generated
        business: Business details shared by the batch
        options: Batch-wide style and length options

    Returns:
        The prompt text
    """
    business = business or BusinessContext()
    options = options or GenerationOptions()
    type_label = CONTENT_TYPE_LABELS.get(item.content_type, "web page")

    parts: list[str] = [
        f'Write a professional, SEO-optimized {type_label} with the title: "{item.title}".',
    ]

    if business.business_name:
        parts.append(f'The business name is "{business.business_name}".')
    if item.service_area:
        parts.append(f"The primary service area is: {item.service_area}.")
    if item.target_audience:
        parts.append(f"The target audience is: {item.target_audience}.")
    if item.geolocation:
        parts.append(
            f"This content targets the geographic area: {item.geolocation}. "
            "Include local references where appropriate."
        )
    if item.target_keywords:
        parts.append(f"Naturally incorporate these keywords: {item.target_keywords}.")
    if business.internal_links:
        parts.append("Where relevant, link to these pages on the business website:")
        for link in business.internal_links:
            parts.append(f'- <a href="{link.url}">{link.title}</a>')

    parts.append("")
    parts.append("Requirements:")
    parts.extend(_style_lines(options))
    parts.append("- Use proper heading hierarchy (H1, H2, H3)")
    parts.append("- Include an engaging introduction and conclusion")
    parts.append("- Optimize for search engines while keeping content reader-friendly")
    parts.append(f"- Content should be approximately {options.word_count} words")

    if item.include_cta:
        parts.append(_cta_line(business))

    parts.append(META_DESCRIPTION_INSTRUCTION)
    parts.append("")
    parts.append(FORMAT_INSTRUCTION)

    return "\n".join(parts)


def build_topic_suggestion_prompt(
    count: int,
    business_name: str,
    company_type: str | None = None,
    city: str | None = None,
    state: str | None = None,
    topic_direction: str | None = None,
    existing_topics: list[str] | None = None,
) -> str:
    """Build the instruction asking a model for blog topic ideas."""
    parts: list[str] = [
        f'Generate exactly {count} unique blog post topic ideas for "{business_name}".'
    ]

    if company_type:
        parts.append(f"This is a {company_type} business.")
    if city and state:
        parts.append(f"Located in {city}, {state}.")
    elif city:
        parts.append(f"Located in {city}.")
    if topic_direction:
        parts.append(f"Focus the topics on these subjects: {topic_direction}.")

    parts.extend(
        [
            "",
            "Requirements:",
            "- Each topic should be specific, SEO-friendly, and relevant to the business",
            "- Topics should target different search intents (informational, commercial, local)",
            "- Include a mix of evergreen and timely topics",
            "- Each topic title should be compelling and click-worthy",
        ]
    )

    if existing_topics:
        parts.append("")
        parts.append("IMPORTANT: Do NOT suggest topics that overlap with these existing topics:")
        parts.extend(f"- {topic}" for topic in existing_topics)

    parts.extend(
        [
            "",
            "Respond with a JSON array of objects. Each object must have these fields:",
            '- "title": string (the blog post title)',
            '- "targetKeywords": string (2-3 comma-separated SEO keywords)',
            '- "targetAudience": string (who this post is for)',
            "",
            "Respond ONLY with the JSON array, no other text.",
        ]
    )
    return "\n".join(parts)

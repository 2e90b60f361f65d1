"""Starter sets of content rows."""

from pydantic import BaseModel, Field

from contentgen.content.models import ContentType


class TemplateRow(BaseModel):
    """A content row pre-filled by a starter template."""

    title: str
    content_type: ContentType
    target_audience: str | None = None
    geolocation: str | None = None
    include_cta: bool = True


class ContentTemplate(BaseModel):
    name: str
    description: str
    rows: list[TemplateRow] = Field(default_factory=list)


def _location_rows(*cities: str) -> list[TemplateRow]:
    return [
        TemplateRow(
            title="[Service] in [City] - Professional Solutions",
            content_type=ContentType.LOCATION_PAGE,
            target_audience="Local residents",
            geolocation=city,
        )
        for city in cities
    ]


CONTENT_TEMPLATES: tuple[ContentTemplate, ...] = (
    ContentTemplate(
        name="Local Service Business",
        description="Blog posts and service pages for a local business",
        rows=[
            TemplateRow(
                title="Top 10 [Service] Tips for Homeowners",
                content_type=ContentType.BLOG_POST,
                target_audience="Homeowners",
            ),
            TemplateRow(
                title="[Service] Services in [City]",
                content_type=ContentType.SERVICE_PAGE,
                target_audience="Local residents",
            ),
            TemplateRow(
                title="Why Choose Us for [Service] in [City]",
                content_type=ContentType.ABOUT_PAGE,
                target_audience="Local residents",
            ),
            TemplateRow(
                title="Frequently Asked Questions About [Service]",
                content_type=ContentType.FAQ_PAGE,
                target_audience="Homeowners",
                include_cta=False,
            ),
        ],
    ),
    ContentTemplate(
        name="Multi-Location SEO",
        description="Location pages for businesses serving multiple areas",
        rows=_location_rows("City 1", "City 2", "City 3"),
    ),
    ContentTemplate(
        name="Lead Generation Landing Pages",
        description="High-converting landing pages for ad campaigns",
        rows=[
            TemplateRow(
                title="Get a Free [Service] Quote Today",
                content_type=ContentType.LANDING_PAGE,
                target_audience="Homeowners needing urgent service",
            ),
            TemplateRow(
                title="How to [Service Task]: A Complete Guide",
                content_type=ContentType.HOW_TO_GUIDE,
                target_audience="DIY enthusiasts",
            ),
        ],
    ),
    ContentTemplate(
        name="Content Marketing Starter",
        description="Mix of blog posts and guides for content marketing",
        rows=[
            TemplateRow(
                title="The Ultimate Guide to [Service]",
                content_type=ContentType.HOW_TO_GUIDE,
            ),
            TemplateRow(
                title="5 Signs You Need [Service]",
                content_type=ContentType.BLOG_POST,
                target_audience="Homeowners",
            ),
            TemplateRow(
                title="[Service] vs [Alternative]: Which Is Right for You?",
                content_type=ContentType.BLOG_POST,
            ),
            TemplateRow(
                title="What to Expect During a [Service] Appointment",
                content_type=ContentType.BLOG_POST,
                target_audience="First-time customers",
                include_cta=False,
            ),
        ],
    ),
)

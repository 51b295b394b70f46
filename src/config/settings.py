"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use WIKIDOWN_ prefix (e.g., WIKIDOWN_ALLOW_RAW_HTML=true).

Settings can also be loaded from a .env file in the project root.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Rendering configuration via environment variables.

    Environment variables use WIKIDOWN_ prefix.

    Examples:
        WIKIDOWN_BREAKS=false
        WIKIDOWN_PYGMENTS_STYLE=monokai
        WIKIDOWN_TOC_MAX_LEVEL=2
    """

    model_config = SettingsConfigDict(
        env_prefix="WIKIDOWN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Parser configuration
    breaks: bool = Field(
        default=True,
        description="Render single newlines inside paragraphs as <br>",
    )

    linkify: bool = Field(
        default=True,
        description="Turn bare URLs in text into links (GFM autolink literals)",
    )

    # Renderer configuration
    allow_raw_html: bool = Field(
        default=False,
        description="Emit raw HTML from the source verbatim instead of escaping it",
    )

    highlight_code: bool = Field(
        default=True,
        description="Syntax highlight fenced code blocks with Pygments",
    )

    pygments_style: str = Field(
        default="default",
        description="Pygments style used for inline-styled code highlighting",
    )

    # Directive configuration
    details_summary_default: str = Field(
        default="詳細",
        description="Summary text for :::details blocks without a title",
    )

    # Extraction configuration
    toc_max_level: int = Field(
        default=3,
        ge=1,
        le=6,
        description="Deepest heading level collected into the table of contents",
    )

    excerpt_max_length: int = Field(
        default=200,
        ge=1,
        description="Maximum length of plain-text excerpts before truncation",
    )

    def tocTags_list(self) -> List[str]:
        """
        Heading tag names collected into the table of contents.

        Returns:
            Tag names from h1 down to the configured maximum level

        Example:
            >>> settings = AppSettings(toc_max_level=2)
            >>> settings.tocTags_list()
            ['h1', 'h2']
        """
        return [f"h{level}" for level in range(1, self.toc_max_level + 1)]


# Singleton instance - import this in your code
appsettings = AppSettings()

"""Prompt template for snippet extraction.

The model receives one documentation file at a time and must answer with a
JSON array of ``{title, description, language, code}`` objects.
"""
from typing import Optional

EXTRACTION_PROMPT = """You are an expert technical writer. Your job is to extract useful code snippets from a library's documentation and describe each one so that AI coding assistants can find it later.

<goal>
For each snippet you find:
- Identify the programming language or file type (CSS, SCSS, JSON, JS, TSX, Python, ...)
- Extract a snippet that demonstrates the functionality or concept
- Write a title that clearly states what the snippet does
- Write a short description (1-2 sentences) of the snippet's purpose
</goal>

<title>
- Clear, specific and action-oriented (e.g. "Applying Brand Colors", "Using Icon Component")
- Under 80 characters
</title>

<description>
- Explain the functionality, usage or concept demonstrated
- Mention relevant components, tokens, options or APIs
- At most 200 characters
</description>

<guidelines>
- Accept fenced code blocks, blocks with language tags, and indented code
- For configuration files or design tokens, extract meaningful subsets that illustrate their purpose
- Group snippets by functionality; skip trivial operations such as isolated imports
- Prefer core APIs, components and utilities over documentation boilerplate
</guidelines>

<ignore>
- Documentation layout or wrapper components
- Presentation-only code (storybook controls, page scaffolding)
- Prose that is not related to usage
- Redundant import statements
</ignore>

<library>
Name: {name}
Description: {description}
</library>

<file path="{path}">
{content}
</file>

<output_schema>
Respond with a JSON array only. Each element must have:
- "title": string
- "description": string
- "language": string (empty when not applicable)
- "code": string
Return [] when the file contains no suitable snippets.
</output_schema>
"""


def get_extraction_prompt(name: str, description: Optional[str], path: str, content: str) -> str:
    return EXTRACTION_PROMPT.format(
        name=name,
        description=description or "No description",
        path=path,
        content=content,
    )

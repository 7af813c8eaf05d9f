"""Prompt templates for wiki generation and Q&A."""

from dataclasses import dataclass
from typing import Any

from repowiki.constants.generation import MAX_RELEVANT_FILES, MAX_SUBSYSTEMS, MIN_SUBSYSTEMS
from repowiki.constants.qa import THINK_CLOSE_TAG, THINK_OPEN_TAG


@dataclass
class PromptTemplate:
    """A template for generating prompts with variable substitution."""

    template: str

    def render(self, **kwargs: Any) -> str:
        """Render the template with the given variables.

        Raises:
            KeyError: If a required variable is missing.
        """
        return self.template.format(**kwargs)


# =============================================================================
# Repository Analysis
# =============================================================================

ANALYZER_SYSTEM_PROMPT = f"""You are a repository analyzer. Your job is to identify the user-facing subsystems of a GitHub repository.

RULES:
- Identify {MIN_SUBSYSTEMS}-{MAX_SUBSYSTEMS} subsystems based on FEATURES and CAPABILITIES the software provides to users.
- Each subsystem should answer: "What can a user DO with this?"
- BAD subsystem names: "Utilities", "Config", "Types", "Database Layer", "Frontend", "Backend", "API"
- GOOD subsystem names: "Authentication & Login", "Search & Filtering", "CLI Commands", "Plugin System", "Data Export"
- For each subsystem, list the most relevant source files (max {MAX_RELEVANT_FILES} per subsystem).
- The id field must be URL-safe kebab-case (e.g. "user-authentication")."""

ANALYZER_TEMPLATE = PromptTemplate(
    template="""Analyze this repository: {owner}/{name}

FILE TREE:
{file_tree}

KEY FILES:
{key_files}

Identify the user-facing subsystems of this repository."""
)


# =============================================================================
# Page Building
# =============================================================================

PAGE_SYSTEM_PROMPT = """You are a technical wiki writer. Generate detailed, well-structured documentation for a repository subsystem.

GUIDELINES:
- Write content as HTML using <p>, <h2>, <h3>, <ul>, <ol>, <code>, <pre> tags.
- Explain what the subsystem does, how it works, and how the pieces connect.
- Reference specific files and functions in the text.
- Include short code snippets where helpful (wrap in <pre><code>).
- Aim for 300-600 words of content.
- For citations, include the file path and specific line ranges where the relevant code lives. Use 0 for unknown lines.
- For entry points, list the key functions, API routes, CLI commands, or exports a user would interact with.
- Write for developers: be precise and technical but readable."""

PAGE_TEMPLATE = PromptTemplate(
    template="""Generate a wiki page for the "{subsystem_name}" subsystem of {owner}/{name}.

Description: {subsystem_description}

SOURCE FILES:
{source_files}"""
)


# =============================================================================
# Q&A
# =============================================================================

QA_SYSTEM_PROMPT = f"""You are a helpful Q&A assistant for developer documentation.
Answer questions based ONLY on the provided wiki content.
If the answer is not in the wiki content, say so clearly.

FORMATTING RULES (you MUST follow these):
- Always format your final answer in rich Markdown.
- Use headings (## or ###) to organize multi-part answers.
- Use bullet lists or numbered lists when listing items, steps, or options.
- Wrap all code (file names, function names, variables, commands) in inline `backticks`.
- Use fenced code blocks (```lang) with a language identifier for any multi-line code snippets.
- Use **bold** for key terms and emphasis.
- Use > blockquotes when quoting from the documentation.
- Reference specific sections or files from the wiki when relevant.
- Keep paragraphs short and scannable.

Before answering, think step by step. Wrap your thinking in {THINK_OPEN_TAG}...{THINK_CLOSE_TAG} tags.
Each {THINK_OPEN_TAG} block should be a single reasoning step. You may use multiple {THINK_OPEN_TAG} blocks.
Then provide your final answer outside any tags."""

WIKI_CONTEXT_TEMPLATE = PromptTemplate(template="Wiki documentation:\n{wiki_context}")

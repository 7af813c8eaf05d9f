"""Page building: expand one subsystem into a documentation page."""

import logging

from repowiki.constants.generation import MAX_OUTPUT_TOKENS
from repowiki.constants.source import UNREADABLE_FILE_MARKER
from repowiki.errors import PageBuildFailed
from repowiki.generation.citations import normalize_citation, repo_url
from repowiki.generation.prompts import PAGE_SYSTEM_PROMPT, PAGE_TEMPLATE
from repowiki.generation.schemas import AnalyzedSubsystem, PageDraft, SubsystemPage
from repowiki.llm.client import LLMClient, LLMError
from repowiki.source.github import GitHubGateway

logger = logging.getLogger(__name__)


class PageBuilder:
    """Writes a wiki page for one subsystem from its relevant files."""

    def __init__(
        self,
        gateway: GitHubGateway,
        llm: LLMClient,
        max_output_tokens: int = MAX_OUTPUT_TOKENS,
    ) -> None:
        self.gateway = gateway
        self.llm = llm
        self.max_output_tokens = max_output_tokens

    async def build(self, owner: str, name: str, descriptor: AnalyzedSubsystem) -> SubsystemPage:
        """Generate the page for descriptor.

        Unreadable files are replaced with a placeholder; only a failed model
        call aborts the page.

        Raises:
            PageBuildFailed: If the model call fails, carrying the subsystem id.
        """
        source_blocks = await self.gateway.read_files(
            owner, name, descriptor.relevant_files, placeholder=UNREADABLE_FILE_MARKER
        )
        prompt = PAGE_TEMPLATE.render(
            subsystem_name=descriptor.name,
            owner=owner,
            name=name,
            subsystem_description=descriptor.description,
            source_files="\n\n".join(source_blocks),
        )

        try:
            draft = await self.llm.generate_structured(
                PageDraft,
                system_prompt=PAGE_SYSTEM_PROMPT,
                prompt=prompt,
                max_tokens=self.max_output_tokens,
            )
        except LLMError as e:
            raise PageBuildFailed(
                descriptor.id, f"Page for {descriptor.id!r} failed: {e}"
            ) from e

        url = repo_url(owner, name)
        page = SubsystemPage(
            id=descriptor.id,
            name=descriptor.name,
            description=descriptor.description,
            content=draft.content,
            citations=[normalize_citation(c, url) for c in draft.citations if c.file],
            entry_points=draft.entry_points,
        )
        logger.info(
            f"Built page {descriptor.id} for {owner}/{name} "
            f"({len(page.citations)} citations, {len(page.entry_points)} entry points)"
        )
        return page

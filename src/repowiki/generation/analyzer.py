"""Repository analysis: turn a file tree into a subsystem manifest."""

import logging

from repowiki.constants.generation import MAX_OUTPUT_TOKENS
from repowiki.constants.source import MAX_KEY_FILES, MAX_TREE_PATHS, UNREADABLE_FILE_MARKER
from repowiki.errors import AnalysisFailed
from repowiki.generation.prompts import ANALYZER_SYSTEM_PROMPT, ANALYZER_TEMPLATE
from repowiki.generation.schemas import RepoAnalysis
from repowiki.llm.client import LLMClient, LLMError
from repowiki.source.github import GitHubGateway, select_key_files

logger = logging.getLogger(__name__)


class RepoAnalyzer:
    """Identifies the user-facing subsystems of a repository."""

    def __init__(
        self,
        gateway: GitHubGateway,
        llm: LLMClient,
        max_key_files: int = MAX_KEY_FILES,
        max_tree_paths: int = MAX_TREE_PATHS,
        max_output_tokens: int = MAX_OUTPUT_TOKENS,
    ) -> None:
        self.gateway = gateway
        self.llm = llm
        self.max_key_files = max_key_files
        self.max_tree_paths = max_tree_paths
        self.max_output_tokens = max_output_tokens

    async def analyze(self, owner: str, name: str) -> RepoAnalysis:
        """Produce the subsystem manifest for owner/name.

        Args:
            owner: Repository owner.
            name: Repository name.

        Returns:
            RepoAnalysis with 3-7 subsystems.

        Raises:
            SourceUnavailable: If the repository tree cannot be fetched.
            AnalysisFailed: If the model call fails or returns an invalid manifest.
        """
        tree = await self.gateway.list_files(owner, name)

        key_files = select_key_files(tree, limit=self.max_key_files)
        key_file_blocks = await self.gateway.read_files(
            owner, name, key_files, placeholder=UNREADABLE_FILE_MARKER
        )
        file_tree = "\n".join(item.path for item in tree[: self.max_tree_paths])

        prompt = ANALYZER_TEMPLATE.render(
            owner=owner,
            name=name,
            file_tree=file_tree,
            key_files="\n\n".join(key_file_blocks),
        )

        try:
            analysis = await self.llm.generate_structured(
                RepoAnalysis,
                system_prompt=ANALYZER_SYSTEM_PROMPT,
                prompt=prompt,
                max_tokens=self.max_output_tokens,
            )
        except LLMError as e:
            raise AnalysisFailed(f"Analysis of {owner}/{name} failed: {e}") from e

        logger.info(
            f"Analyzed {owner}/{name}: {len(analysis.subsystems)} subsystems "
            f"from {len(tree)} files ({len(key_files)} key files)"
        )
        return analysis

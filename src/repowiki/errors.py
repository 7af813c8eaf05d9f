"""Error taxonomy for wiki generation and Q&A."""


class RepoWikiError(Exception):
    """Base exception for repowiki failures."""

    pass


class SourceUnavailable(RepoWikiError):
    """Raised when a repository or one of its files cannot be read.

    Attributes:
        owner: Repository owner.
        name: Repository name.
        status_code: HTTP status returned by the source host, if any.
    """

    def __init__(
        self,
        message: str,
        owner: str = "",
        name: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.owner = owner
        self.name = name
        self.status_code = status_code


class AnalysisFailed(RepoWikiError):
    """Raised when the subsystem manifest could not be generated."""

    pass


class PageBuildFailed(RepoWikiError):
    """Raised when a single subsystem page could not be generated."""

    def __init__(self, subsystem_id: str, message: str) -> None:
        super().__init__(message)
        self.subsystem_id = subsystem_id


class TransportFailed(RepoWikiError):
    """Raised when a stream from the backend or to the consumer is interrupted."""

    pass

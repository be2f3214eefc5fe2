from logging import Logger

from fastmcp.utilities.logging import get_logger

from github_lessons_mcp.lessons.errors import GenerationInProgressError, NoCommitsError
from github_lessons_mcp.lessons.generator import LessonGenerator
from github_lessons_mcp.lessons.models import CommitCollection, CommitRecord, NavigatorMode, NavigatorState


class LessonNavigator:
    """Tracks which lesson is displayed and drives generation during a walkthrough.

    Browsing is the list view where lessons are only generated on request. Walkthrough shows one commit at a time,
    and arriving at a commit without a lesson generates it.
    """

    generator: LessonGenerator
    collection: CommitCollection | None
    mode: NavigatorMode
    current_index: int
    logger: Logger

    def __init__(self, generator: LessonGenerator, logger: Logger | None = None):
        self.generator = generator
        self.logger = logger or get_logger(name=__name__)
        self.collection = None
        self.mode = NavigatorMode.BROWSING
        self.current_index = 0

    @property
    def state(self) -> NavigatorState:
        return NavigatorState(
            mode=self.mode,
            current_index=self.current_index,
            is_busy=self.generator.is_busy,
            total=len(self.collection) if self.collection else 0,
        )

    @property
    def current_record(self) -> CommitRecord | None:
        if self.mode != NavigatorMode.WALKTHROUGH or not self.collection:
            return None

        return self.collection[self.current_index]

    def load(self, collection: CommitCollection) -> None:
        """Replace the collection being navigated and return to browsing."""

        self.collection = collection
        self.mode = NavigatorMode.BROWSING
        self.current_index = 0

    def _require_idle(self) -> None:
        if self.generator.is_busy:
            raise GenerationInProgressError

    async def start(self, api_key: str | None) -> NavigatorState:
        """Enter the walkthrough at the first commit.

        Raises:
            NoCommitsError: If there are no commits to walk through.
            GenerationInProgressError: If a lesson is being generated.
        """

        self._require_idle()

        if not self.collection:
            raise NoCommitsError

        self.mode = NavigatorMode.WALKTHROUGH
        self.current_index = 0

        await self._arrive(api_key=api_key)

        return self.state

    async def next(self, api_key: str | None) -> NavigatorState:
        """Move to the next commit. At the last commit this does nothing."""

        self._require_idle()

        if self.mode != NavigatorMode.WALKTHROUGH or not self.collection:
            return self.state

        if self.current_index < len(self.collection) - 1:
            self.current_index += 1
            await self._arrive(api_key=api_key)

        return self.state

    async def previous(self, api_key: str | None) -> NavigatorState:
        """Move to the previous commit. At the first commit this does nothing."""

        self._require_idle()

        if self.mode != NavigatorMode.WALKTHROUGH or not self.collection:
            return self.state

        if self.current_index > 0:
            self.current_index -= 1
            await self._arrive(api_key=api_key)

        return self.state

    def exit(self) -> NavigatorState:
        """Return to browsing. The index is kept but `start` always begins again at the first commit."""

        self.mode = NavigatorMode.BROWSING

        return self.state

    async def _arrive(self, api_key: str | None) -> None:
        """Generate the lesson for the current commit if it has none and nothing else is generating."""

        if not self.collection or self.generator.is_busy:
            return

        if self.collection[self.current_index].explanation is not None:
            return

        self.logger.info(f"Generating the lesson for walkthrough commit {self.current_index + 1} of {len(self.collection)}.")

        _ = await self.generator.generate(collection=self.collection, index=self.current_index, api_key=api_key)

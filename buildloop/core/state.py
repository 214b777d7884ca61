"""Run state shared by the agent network and its tools."""

from pydantic import BaseModel, ConfigDict, Field


class NetworkState(BaseModel):
    """Mutable state of one agent-network run.

    One instance is created per run and passed by reference into every tool
    invocation; it is never shared across runs or projects.

    Example:
        state = NetworkState()
        state.files["app/page.tsx"] = "..."
        state.summary = "<task_summary>Built the page</task_summary>"
    """

    model_config = ConfigDict(validate_assignment=True)

    summary: str | None = None
    files: dict[str, str] = Field(default_factory=dict)
    # True once files were seeded from the prior project snapshot
    seeded: bool = False

    def merge_files(self, files: dict[str, str]) -> None:
        """Merge written files into the accumulator (last write wins, no deletion)."""
        self.files = {**self.files, **files}

    @property
    def is_error(self) -> bool:
        """A run without a summary or without files produced no usable artifact."""
        return not self.summary or len(self.files) == 0

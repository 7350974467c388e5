"""Exceptions raised by the prompt engine."""


class PromptEngineError(Exception):
    """Base exception for prompt engine errors."""
    pass


class ConfigurationError(PromptEngineError):
    """The engine is misconfigured and has no safe fallback."""
    pass


class NoChaptersConfiguredError(ConfigurationError):
    """No active chapter exists to start or reset a project on."""
    pass


class EmptyLibraryError(ConfigurationError):
    """The curated fallback library has no templates."""
    pass


class ExperimentConfigurationError(ConfigurationError):
    """An experiment's variants or traffic split are invalid."""
    pass


class ProjectStateNotFoundError(PromptEngineError):
    """The project has no prompt state yet."""

    def __init__(self, project_id: int) -> None:
        super().__init__(f"No prompt state for project {project_id}")
        self.project_id = project_id


class GenerationError(PromptEngineError):
    """The generation capability failed (timeout, error or unusable output)."""
    pass


class MalformedGenerationError(GenerationError):
    """Generated text was empty or too short to use."""
    pass

"""Prompt text for the storytelling engine.

- Library: curated templates used for seeding and last-resort fallback
- Builders: system/user prompts sent to the generation capability
- Text: keyword heuristics for cleaning and classifying prompt text
"""

from storyprompts.domain.prompts.library import CURATED_LIBRARY, LibraryEntry

__all__ = ["CURATED_LIBRARY", "LibraryEntry"]

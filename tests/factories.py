"""Test data builders and fakes shared by the test modules."""

from storyprompts.llm.client import LLMClient
from storyprompts.persistence.models import Chapter, PromptTemplate, Story


class FakeLLMClient(LLMClient):
    """LLM client returning queued responses (or raising queued errors)."""

    def __init__(self, responses=None, default="Tell me about a place from your childhood you loved."):
        self.responses = list(responses or [])
        self.default = default
        self.calls = []

    async def generate(self, system_prompt, user_prompt, context=None):
        self.calls.append((system_prompt, user_prompt, context))
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return self.default


async def add_chapter(session, name, order_index, slots=(), category="general", is_active=True):
    """Insert a chapter and one template per slot text (order_index 1..n)."""
    chapter = Chapter(name=name, order_index=order_index, is_active=is_active)
    session.add(chapter)
    await session.flush()
    for index, text in enumerate(slots, start=1):
        session.add(
            PromptTemplate(
                text=text,
                category=category,
                chapter_id=chapter.id,
                order_index=index,
                tags=[],
                follow_up_questions=[],
            )
        )
    await session.commit()
    return chapter


async def add_library_template(session, text, category="general", difficulty="medium", is_active=True):
    template = PromptTemplate(
        text=text,
        category=category,
        difficulty=difficulty,
        tags=["memory"],
        follow_up_questions=["Who else was there?"],
        is_library=True,
        is_active=is_active,
    )
    session.add(template)
    await session.commit()
    return template


async def add_story(session, project_id, chapter_id, status="processing"):
    story = Story(project_id=project_id, chapter_id=chapter_id, status=status)
    session.add(story)
    await session.commit()
    return story

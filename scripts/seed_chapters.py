"""Script to seed the chapter sequence and the curated prompt library.

Chapters and their slots are inserted once; running the script again leaves
existing rows alone. Library templates are created from CURATED_LIBRARY,
one template per phrasing.

Usage:
    uv run python scripts/seed_chapters.py
"""

import asyncio

from sqlalchemy import func, select

from storyprompts.domain.models.prompts import Category
from storyprompts.domain.prompts.library import CURATED_LIBRARY
from storyprompts.domain.prompts.text import determine_difficulty, extract_tags
from storyprompts.persistence.database import AsyncSessionLocal
from storyprompts.persistence.models import Chapter, PromptTemplate


CHAPTERS = [
    {
        "name": "Early Life & Childhood",
        "description": "Stories about early memories, childhood experiences, and formative years",
        "category": Category.CHILDHOOD,
        "slots": [
            "What is your earliest childhood memory?",
            "Tell me about the house you grew up in.",
            "What was your favorite toy or game as a child?",
            "Describe a typical day when you were 8 years old.",
            "What did you want to be when you grew up?",
            "Tell me about your childhood best friend.",
            "Describe a childhood adventure or mischief you got into.",
            "Tell me about a childhood fear you had.",
        ],
    },
    {
        "name": "Family & Relationships",
        "description": "Stories about family members, friendships, and important relationships",
        "category": Category.FAMILY,
        "slots": [
            "Tell me about your parents. What were they like?",
            "Describe your relationship with your siblings.",
            "Tell me about your grandparents.",
            "How did you meet your spouse or life partner?",
            "Tell me about becoming a parent for the first time.",
            "Tell me about a family member who influenced you greatly.",
            "Describe a memorable family gathering or reunion.",
            "Tell me about a friend who became like family.",
        ],
    },
    {
        "name": "Education & Career",
        "description": "Stories about school, work, career achievements, and professional life",
        "category": Category.CAREER,
        "slots": [
            "What was your favorite subject in school?",
            "Tell me about a teacher who made a difference in your life.",
            "Describe your first job.",
            "What was your proudest professional achievement?",
            "Tell me about a challenge you overcame at work.",
            "Describe a mentor who helped shape your career.",
            "Tell me about a time you had to make a difficult decision at work.",
            "Describe your retirement or career transition.",
        ],
    },
    {
        "name": "Life Lessons & Wisdom",
        "description": "Stories about important lessons learned, advice, and wisdom gained",
        "category": Category.GENERAL,
        "slots": [
            "What's the most important lesson life has taught you?",
            "Tell me about a mistake that taught you something valuable.",
            "What advice would you give to your younger self?",
            "What does success mean to you?",
            "Tell me about a time you helped someone in need.",
            "What values are most important to you?",
            "Tell me about overcoming a difficult period in your life.",
        ],
    },
    {
        "name": "Traditions & Celebrations",
        "description": "Stories about family traditions, holidays, celebrations, and special occasions",
        "category": Category.FAMILY,
        "slots": [
            "Tell me about your favorite holiday tradition.",
            "Describe a memorable birthday celebration.",
            "What family recipes or cooking traditions do you cherish?",
            "Tell me about a cultural or religious tradition that's important to you.",
            "What traditions did you start with your own family?",
            "What seasonal activities or traditions do you look forward to?",
        ],
    },
    {
        "name": "Adventures & Travel",
        "description": "Stories about travels, adventures, and memorable experiences",
        "category": Category.GENERAL,
        "slots": [
            "Tell me about your most memorable trip or vacation.",
            "Describe an adventure that pushed you out of your comfort zone.",
            "What's the most beautiful place you've ever visited?",
            "Tell me about a time you got lost or had an unexpected detour.",
            "What's the farthest from home you've ever traveled?",
            "Tell me about a travel experience that changed your perspective.",
        ],
    },
    {
        "name": "Legacy & Future",
        "description": "Stories about hopes for the future, legacy, and messages for future generations",
        "category": Category.GENERAL,
        "slots": [
            "What do you hope to be remembered for?",
            "What advice do you want to pass on to future generations?",
            "What changes have you seen in the world during your lifetime?",
            "What are your hopes for your children and grandchildren?",
            "What would you like people to know about your generation?",
            "How do you want your story to inspire others?",
        ],
    },
]


async def seed_chapters(session) -> int:
    """Insert missing chapters with their slots; returns chapters created."""
    created = 0
    for order_index, data in enumerate(CHAPTERS, start=1):
        result = await session.execute(select(Chapter).where(Chapter.order_index == order_index))
        if result.scalar_one_or_none() is not None:
            print(f"  Chapter {order_index} already exists, skipping")
            continue

        chapter = Chapter(name=data["name"], description=data["description"], order_index=order_index)
        session.add(chapter)
        await session.flush()

        for slot, text in enumerate(data["slots"], start=1):
            session.add(
                PromptTemplate(
                    text=text,
                    category=data["category"].value,
                    difficulty=determine_difficulty(text).value,
                    tags=extract_tags(text),
                    follow_up_questions=[],
                    chapter_id=chapter.id,
                    order_index=slot,
                )
            )
        created += 1
        print(f"  Created chapter {order_index}: {chapter.name} ({len(data['slots'])} slots)")

    await session.commit()
    return created


async def seed_library(session) -> int:
    """Insert the curated library if no library template exists yet."""
    result = await session.execute(
        select(func.count(PromptTemplate.id)).where(PromptTemplate.is_library == True)  # noqa: E712
    )
    if result.scalar_one() > 0:
        print("  Library already seeded, skipping")
        return 0

    count = 0
    for entry in CURATED_LIBRARY:
        for text in entry.variations:
            session.add(
                PromptTemplate(
                    text=text,
                    category=entry.category.value,
                    difficulty=entry.difficulty.value,
                    tags=list(entry.tags),
                    follow_up_questions=list(entry.follow_up_questions),
                    is_library=True,
                )
            )
            count += 1
    await session.commit()
    print(f"  Created {count} library templates")
    return count


async def main():
    print("Seeding chapters and prompt library...")
    async with AsyncSessionLocal() as session:
        chapters = await seed_chapters(session)
        library = await seed_library(session)
    print(f"Done: {chapters} chapters, {library} library templates")


if __name__ == "__main__":
    asyncio.run(main())

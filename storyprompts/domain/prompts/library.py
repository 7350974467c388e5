"""Curated storytelling prompt library.

Seeds the ``prompt_templates`` library rows and serves as the last-resort
fallback when the store cannot be read.
"""

from dataclasses import dataclass, field

from storyprompts.domain.models.prompts import Category, Difficulty


@dataclass(frozen=True)
class LibraryEntry:
    """A curated template family: one theme, several phrasings."""

    key: str
    category: Category
    difficulty: Difficulty
    tags: tuple[str, ...]
    variations: tuple[str, ...]
    follow_up_questions: tuple[str, ...] = field(default_factory=tuple)


CURATED_LIBRARY: tuple[LibraryEntry, ...] = (
    LibraryEntry(
        key="childhood_memory",
        category=Category.CHILDHOOD,
        difficulty=Difficulty.EASY,
        tags=("memory", "emotion", "place"),
        variations=(
            "Tell me about your favorite childhood memory. What made it so special?",
            "What was your favorite place to play when you were a child?",
            "Describe a typical day when you were 8 years old.",
            "What was your favorite toy or game growing up?",
            "Tell me about a childhood friend who was important to you.",
        ),
        follow_up_questions=(
            "Who else was there with you?",
            "How did that make you feel?",
            "Do you still think about that memory today?",
        ),
    ),
    LibraryEntry(
        key="school_memories",
        category=Category.CHILDHOOD,
        difficulty=Difficulty.MEDIUM,
        tags=("learning", "people", "emotion"),
        variations=(
            "What was your favorite subject in school and why?",
            "Tell me about a teacher who made a difference in your life.",
            "What was the most challenging thing about school for you?",
            "Describe your first day of school.",
            "What was recess like when you were in elementary school?",
        ),
        follow_up_questions=(
            "What did you learn from that experience?",
            "How did your classmates react?",
            "Did that influence your later choices?",
        ),
    ),
    LibraryEntry(
        key="family_traditions",
        category=Category.FAMILY,
        difficulty=Difficulty.EASY,
        tags=("tradition", "emotion", "people"),
        variations=(
            "What was your favorite family tradition growing up?",
            "Tell me about holiday celebrations in your family.",
            "What was dinnertime like in your household?",
            "Describe a typical Sunday when you were young.",
            "What family stories were passed down to you?",
        ),
        follow_up_questions=(
            "Do you still celebrate this tradition?",
            "What did this tradition mean to your family?",
            "Have you passed this tradition to your children?",
        ),
    ),
    LibraryEntry(
        key="parents_grandparents",
        category=Category.FAMILY,
        difficulty=Difficulty.MEDIUM,
        tags=("people", "learning", "emotion"),
        variations=(
            "What was your mother like? What do you remember most about her?",
            "Tell me about your father. What kind of person was he?",
            "What did you learn from your grandparents?",
            "What was the best advice your parents gave you?",
            "How did your parents meet? Do you know their love story?",
        ),
        follow_up_questions=(
            "What values did they teach you?",
            "How are you similar to them?",
            "What would you want them to know about your life now?",
        ),
    ),
    LibraryEntry(
        key="first_job",
        category=Category.CAREER,
        difficulty=Difficulty.EASY,
        tags=("work", "learning", "people"),
        variations=(
            "What was your first job? How did you get it?",
            "Tell me about your first day at work.",
            "What was the most important lesson you learned from your first job?",
            "Who was your first boss like?",
            "What did you want to be when you grew up?",
        ),
        follow_up_questions=(
            "What skills did you develop?",
            "How did that job shape your career?",
            "What would you tell young people starting their first job?",
        ),
    ),
    LibraryEntry(
        key="career_highlights",
        category=Category.CAREER,
        difficulty=Difficulty.MEDIUM,
        tags=("achievement", "learning", "emotion"),
        variations=(
            "What was your proudest moment in your career?",
            "Tell me about a time when you had to overcome a challenge at work.",
            "What was the most interesting project you ever worked on?",
            "How did your career evolve over the years?",
            "What was it like being a working parent?",
        ),
        follow_up_questions=(
            "What did you learn from that experience?",
            "How did you balance work and family?",
            "What advice would you give to someone in that situation?",
        ),
    ),
    LibraryEntry(
        key="friendships",
        category=Category.RELATIONSHIPS,
        difficulty=Difficulty.EASY,
        tags=("people", "emotion", "memory"),
        variations=(
            "Tell me about your best friend growing up.",
            "What was your social life like as a teenager?",
            "Describe a friendship that has lasted many years.",
            "Tell me about someone who made you laugh.",
            "What was dating like when you were young?",
        ),
        follow_up_questions=(
            "Are you still in touch with them?",
            "What made that friendship special?",
            "How did you meet?",
        ),
    ),
    LibraryEntry(
        key="love_marriage",
        category=Category.RELATIONSHIPS,
        difficulty=Difficulty.MEDIUM,
        tags=("love", "emotion", "memory"),
        variations=(
            "How did you meet your spouse or partner?",
            "What was your wedding day like?",
            "Tell me about your first date.",
            "What attracted you to your partner?",
            "What has been the secret to a lasting relationship?",
        ),
        follow_up_questions=(
            "What was going through your mind that day?",
            "How did your families react?",
            "What advice would you give to newlyweds?",
        ),
    ),
    LibraryEntry(
        key="life_lessons",
        category=Category.GENERAL,
        difficulty=Difficulty.MEDIUM,
        tags=("learning", "emotion", "advice"),
        variations=(
            "What is the most important lesson life has taught you?",
            "If you could give your younger self one piece of advice, what would it be?",
            "What are you most grateful for in your life?",
            "Tell me about a time when you had to be brave.",
            "What has surprised you most about getting older?",
        ),
        follow_up_questions=(
            "How did you come to realize this?",
            "When did you learn this lesson?",
            "How has this shaped who you are?",
        ),
    ),
    LibraryEntry(
        key="historical_moments",
        category=Category.GENERAL,
        difficulty=Difficulty.HARD,
        tags=("history", "memory", "emotion"),
        variations=(
            "What major historical event do you remember most clearly?",
            "How did world events affect your daily life?",
            "Tell me about a time when the world felt like it was changing.",
            "What invention or change has most impacted your lifetime?",
        ),
        follow_up_questions=(
            "How did people around you react?",
            "What was different about life before and after?",
            "What did you think would happen next?",
        ),
    ),
)

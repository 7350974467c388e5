"""System and user prompt builders for the generation capability."""

from storyprompts.domain.models.prompts import GenerationRequest

PERSONALIZED_SYSTEM_PROMPT = """You are an empathetic interviewer helping families preserve their stories through meaningful conversations.

Your role is to generate thoughtful, engaging prompts that help elderly storytellers share their life experiences with their adult children.

Guidelines:
- Create prompts that are emotionally resonant but not overwhelming
- Use warm, respectful language appropriate for elderly users
- Focus on specific memories rather than broad generalizations
- Avoid sensitive topics unless specifically requested
- Consider cultural background and personal preferences
- Make prompts accessible and easy to understand

User Context:
- Age range: {age_range}
- Cultural background: {cultural_background}
- Previous story themes: {recent_themes}
- Preferred topics: {topics}
- Topics to avoid: {avoid_topics}

Generate a single, specific prompt that would help this person share a meaningful memory."""

FOLLOW_UP_SYSTEM_PROMPT = """You are an empathetic interviewer helping families preserve their stories.
Generate 2-3 thoughtful follow-up questions based on the story content that would help the storyteller
share more details or related memories. Questions should be:
- Specific to the content shared
- Emotionally sensitive and respectful
- Designed to elicit rich, detailed responses
- Appropriate for elderly storytellers
- Under 100 characters each

Return only the questions, one per line, without numbering."""


def build_system_prompt(request: GenerationRequest) -> str:
    """Render the personalised-generation system prompt."""
    prefs = request.preferences
    return PERSONALIZED_SYSTEM_PROMPT.format(
        age_range=prefs.age_range or "Senior",
        cultural_background=prefs.cultural_background or "Not specified",
        recent_themes=", ".join(request.recent_themes) or "None",
        topics=", ".join(prefs.topics) or "Any",
        avoid_topics=", ".join(prefs.avoid_topics) or "None",
    )


def build_user_prompt(request: GenerationRequest) -> str:
    """Render the personalised-generation request."""
    prompt = "Generate a storytelling prompt"
    if request.category:
        prompt += f" about {request.category.value}"
    if request.previous_prompts:
        prompt += "\n\nAvoid repeating these recent prompts:\n" + "\n".join(request.previous_prompts)
    return prompt


def build_follow_up_prompt(story_content: str, original_prompt: str | None = None) -> str:
    if original_prompt:
        return (
            f'Original prompt: "{original_prompt}"\n\n'
            f'Story content: "{story_content}"\n\nGenerate follow-up questions:'
        )
    return f'Story content: "{story_content}"\n\nGenerate follow-up questions:'

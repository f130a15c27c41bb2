# gateways/prompts.py
from typing import Iterable, Mapping

from langchain_core.prompts import PromptTemplate

from gateways.schemas import Platform, PostType

CONTENT_SYSTEM_PROMPT = (
    "You are a creative social media content generator. Help users create engaging social media "
    "posts with compelling copy, hashtags, and creative ideas. Keep responses concise and actionable. "
    "When you produce a post the user could publish, call the create_post function to save it."
)

BRAINSTORM_SYSTEM_PROMPT = """You are a creative content strategist and brainstorming assistant specializing in social media and brand content creation. Your role is to help users generate engaging, authentic, and effective content ideas.

Key capabilities:
- Brainstorm creative content ideas for various social media platforms (Instagram, TikTok, LinkedIn, Twitter, etc.)
- Suggest trending topics and hashtag strategies
- Help develop brand voice and messaging
- Provide content calendar suggestions
- Offer creative angles for product launches, events, or campaigns
- Suggest visual content ideas (photos, videos, graphics)
- Help with storytelling techniques and narrative structures
- Provide audience engagement strategies

Communication style:
- Be enthusiastic and inspiring
- Ask clarifying questions to better understand their brand/goals
- Provide specific, actionable suggestions
- Keep responses conversational and energetic
- Offer multiple creative options when possible
- Be encouraging and supportive of their creative process

When the user asks you to save or create a post, call the create_post function.

Always aim to spark creativity and provide practical, implementable ideas that align with current social media trends and best practices. Keep responses concise but helpful, around 30-60 seconds of speech when spoken aloud."""

FUNCTION_CALLING_SYSTEM_PROMPT = (
    "You are a social media content generator. When you create post content, you MUST call the create_post function."
)

FUNCTION_CALLING_TEST_MESSAGE = "Create a post about cute puppies playing in the park"

CREATE_POST_TOOL = {
    "type": "function",
    "function": {
        "name": "create_post",
        "description": "Save a post idea or content to the user's post collection",
        "parameters": {
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "A short, descriptive title for the post idea"},
                "content": {"type": "string", "description": "The actual post content, caption, or copy"},
                "platform": {
                    "type": "string",
                    "enum": [p.value for p in Platform],
                    "description": "The target social media platform",
                },
                "post_type": {
                    "type": "string",
                    "enum": [t.value for t in PostType],
                    "description": "The type of post content",
                },
                "tags": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Relevant hashtags or tags (without # symbol)",
                },
            },
            "required": ["title", "content", "platform", "post_type"],
        },
    },
}

CONTEXT_PROMPT_TEMPLATE = """
Recent conversation with this user (most recent first):
{context}

Current request:
{question}
"""


def format_context_turn(turn: Mapping) -> str:
    said = turn.get("request") or turn.get("user_audio_transcript") or ""
    answered = turn.get("response") or turn.get("ai_response") or ""
    return f"User: {said}\nAssistant: {answered}"


def with_context(question: str, turns: Iterable[Mapping]) -> str:
    """Prefix the user's words with recent turns; unchanged when there are none."""
    lines = [format_context_turn(t) for t in turns]
    if not lines:
        return question
    return PromptTemplate.from_template(CONTEXT_PROMPT_TEMPLATE).format(
        context="\n\n".join(lines), question=question
    )


def saved_posts_reply(titles: Iterable[str]) -> str:
    titles = [t for t in titles if t]
    if not titles:
        return ""
    if len(titles) == 1:
        return f"Done! I saved your post idea \"{titles[0]}\" to your collection."
    return f"Done! I saved {len(titles)} post ideas to your collection."

"""Prompt builders for phase generation and Swedish expansion."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from src.postcards.states import TEMPLATE_MIXED, TEMPLATE_STORY, TEMPLATE_TOOL


TEMPLATE_INSTRUCTIONS = {
    TEMPLATE_STORY: (
        "STORY TEMPLATE Structure:\n"
        "- Start with a personal experience or relatable scenario (sets context)\n"
        "- Share the learning moment or discovery (what happened)\n"
        "- Highlight the key insight gained (the valuable takeaway)\n"
        "- End with a call to action to encourage engagement\n\n"
        "Keep it personal, authentic, and relatable. Focus on transformation and growth."
    ),
    TEMPLATE_TOOL: (
        "TOOL TEMPLATE Structure:\n"
        "- Identify a common problem or pain point (hook the reader)\n"
        "- Introduce your solution/tool/method (the answer)\n"
        "- Highlight 2-3 key features or benefits (value proposition)\n"
        "- Explain practical impact (how it helps)\n"
        "- End with a specific call to action (next step)\n\n"
        "Keep it practical, actionable, and results-focused."
    ),
}


def generation_system_prompt(*, template: str, phase_title: str, phase_description: str, max_chars: int) -> str:
    if template == TEMPLATE_MIXED:
        template_instruction = (
            "Alternate between STORY and TOOL templates throughout the content phase.\n\n"
            f"{TEMPLATE_INSTRUCTIONS[TEMPLATE_STORY]}\n\n{TEMPLATE_INSTRUCTIONS[TEMPLATE_TOOL]}"
        )
    else:
        template_instruction = TEMPLATE_INSTRUCTIONS[template]

    return (
        f"You are a content strategist creating a {phase_title} content phase for personal branding.\n"
        f"The phase theme: {phase_description}\n\n"
        "Each post must:\n"
        f"1. Be valuable, engaging, and fit within X/Twitter's {max_chars} character limit (including hashtags)\n"
        "2. Follow the template structure while keeping language natural and conversational\n"
        "3. Include 2-3 relevant hashtags within the character count\n"
        "4. Be standalone yet part of the cohesive phase theme\n"
        "5. Drive engagement through clear value and actionable insights\n\n"
        f"{template_instruction}\n\n"
        "Important:\n"
        "- Character count includes ALL text, spaces, punctuation, and hashtags\n"
        "- Make every character count - be concise and impactful\n"
        "- Each post should feel complete on its own"
    )


def generation_user_prompt(
    *,
    phase_title: str,
    phase_description: str,
    total_posts: int,
    posts_per_day: int,
    duration: int,
    template: str,
    max_chars: int,
) -> str:
    if template == TEMPLATE_MIXED:
        template_line = "Alternate between story and tool templates"
    else:
        template_line = f"Use {template} template for all posts"

    return (
        f'Generate exactly {total_posts} Twitter/X posts for the "{phase_title}" content phase.\n\n'
        f"Phase Description: {phase_description}\n\n"
        "Requirements:\n"
        f"- Create {total_posts} unique posts ({posts_per_day} per day for {duration} days)\n"
        f"- {template_line}\n"
        f"- Each post MUST be {max_chars} characters or less (including hashtags)\n"
        "- Include 2-3 relevant hashtags in each post\n"
        "- Ensure variety while maintaining thematic consistency\n\n"
        f"Return a JSON array with exactly {total_posts} objects, each containing:\n"
        "{\n"
        f'  "english_content": "The complete Twitter/X post with hashtags (max {max_chars} chars)",\n'
        '  "template": "story" or "tool" (the template type used)\n'
        "}"
    )


def translation_system_prompt(template: Optional[str]) -> str:
    if template:
        template_context = (
            f"The original content follows a {template.upper()} template structure. "
            "Maintain this structure in the expanded version."
        )
    else:
        template_context = "Adapt the content structure as appropriate for LinkedIn."

    return (
        "You are a professional content translator and copywriter specializing in LinkedIn content "
        "for the Swedish market.\n\n"
        "Your task is to translate and expand Twitter/X content (280 chars) into professional LinkedIn "
        "content in Swedish (500-1000 chars optimal, max 3000 chars).\n\n"
        f"{template_context}\n\n"
        "Translation and Expansion Guidelines:\n"
        '1. Translate to professional yet conversational Swedish\n'
        '2. Use "du" form for personal connection (not "ni")\n'
        "3. Expand the content with relevant context, specific examples, deeper insights and clear value\n"
        "4. Structure the content with a strong opening hook, paragraph breaks (use \\n\\n), "
        "a logical flow and a compelling call-to-action\n"
        "5. Adapt idioms, references and business terminology naturally for Swedish readers\n"
        "6. Include 3-5 relevant Swedish hashtags at the end\n"
        "7. Maintain the original message's core intent and energy\n\n"
        "Target length: 500-1000 characters (can extend to 3000 if the content benefits from it)\n\n"
        "Important: The expansion should add real value, not just filler. Every sentence should serve a purpose."
    )


def translation_user_prompt(english_content: str) -> str:
    return (
        "Translate and expand this Twitter/X post into professional Swedish LinkedIn content:\n\n"
        "Original English Tweet:\n"
        f'"{english_content}"\n\n'
        "Create an engaging, expanded LinkedIn post in Swedish that:\n"
        "1. Captures the essence of the original message\n"
        "2. Expands to 500-1000 characters with valuable context\n"
        '3. Uses professional yet personal Swedish ("du" form)\n'
        "4. Includes line breaks for readability\n"
        "5. Ends with relevant Swedish hashtags\n\n"
        "Return ONLY the Swedish LinkedIn post, no explanations or metadata."
    )


BATCH_TRANSLATION_SYSTEM_PROMPT = (
    "You are a professional content translator specializing in LinkedIn content for the Swedish market.\n\n"
    "You will receive multiple Twitter/X posts in English. For each post, create a professional LinkedIn "
    "version in Swedish that:\n"
    "1. Expands to 500-1000 characters with valuable context\n"
    '2. Uses professional yet personal Swedish ("du" form)\n'
    "3. Includes line breaks for readability\n"
    "4. Adds relevant Swedish hashtags\n"
    "5. Maintains the original message's core intent\n\n"
    "Return a JSON array of strings with translations in the same order as the input posts."
)


def batch_translation_user_prompt(posts: Sequence[Tuple[str, Optional[str]]]) -> str:
    """`posts` is a sequence of (english_content, template) pairs."""

    blocks = [
        f'Post {index} ({template or "general"} template):\n"{english}"'
        for index, (english, template) in enumerate(posts, start=1)
    ]
    joined = "\n\n".join(blocks)
    return (
        f"Translate these {len(posts)} posts to Swedish LinkedIn format:\n\n{joined}\n\n"
        f"Return as JSON array with {len(posts)} Swedish translations."
    )

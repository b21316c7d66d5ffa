"""Prompt builders for each tutoring operation.

Each builder returns a CompletionRequest with the sampling parameters that
operation uses. Prompts are plain functions of their inputs so that cache keys
built from the same inputs always describe the same request.
"""

from __future__ import annotations

from collections.abc import Sequence

from coursetutor.models.chat import ChatTurn, CompletionRequest, NoteType

# Chat answers only see the head of long chapters
QUESTION_CONTEXT_CHARS = 2000

SUMMARY_SYSTEM_PROMPT = (
    "You are an expert educational AI tutor specializing in creating clear, concise "
    "summaries for students. Always respond with valid JSON."
)

CLARIFICATION_SYSTEM_PROMPT = (
    "You are an expert educational AI tutor specializing in providing clear explanations "
    "and clarifications. Focus on making complex topics easy to understand."
)

NOTES_SYSTEM_PROMPT = (
    "You are an expert educational AI that creates exceptional study notes. Your notes "
    "should be well-structured, comprehensive, and easy to understand. Use clear "
    "formatting with headings, bullet points, and examples."
)

_QUESTION_SYSTEM_TEMPLATE = """You are an expert AI tutor for the chapter "{title}".

CRITICAL: You are responding in a CHAT INTERFACE. Never create tables, structured layouts, or complex formatting. Write as if you're texting a friend.

Chapter Content: "{content}..."

Instructions:
- Answer questions directly related to this chapter content
- Provide clear, educational explanations with examples
- If the question is not related to this chapter, politely redirect to chapter topics
- Keep responses concise but informative (2-3 paragraphs max)
- Use a friendly, encouraging teaching tone

CHAT FORMATTING RULES:
- Be conversational and natural
- No tables, no pipe symbols, no dashes used as separators
- Use **bold text** sparingly for key terms only
- Use simple bullet points with • for short lists (max 3-4 items)
- Keep everything in flowing, natural paragraphs
- If you need to present multiple concepts, use natural sentences with transitions"""

_SUMMARY_TEMPLATE = """You are an expert educational AI tutor. Analyze the following chapter content and provide a comprehensive summary.

Chapter Title: "{title}"
Chapter Content: "{content}"

Please provide:
1. A concise summary (2-3 sentences)
2. 4-6 key points (bullet format)
3. 3-5 key concepts/terms

Format your response as JSON with this structure:
{{
  "summary": "Your summary here",
  "keyPoints": ["Point 1", "Point 2", ...],
  "concepts": ["Concept 1", "Concept 2", ...]
}}

Focus on the most important learning objectives and practical applications."""

_CLARIFICATION_TEMPLATE = """You are an expert AI tutor. A student needs clarification on this topic from the chapter "{title}":

Student's request: "{request}"

Chapter Content: "{content}"

Please provide:
1. A simplified explanation
2. Real-world examples or analogies
3. Step-by-step breakdown if applicable
4. Additional tips for understanding

Make your response clear, engaging, and educational. Use simple language and helpful examples."""

_NOTE_TEMPLATES: dict[NoteType, str] = {
    NoteType.AI_GENERATED: """Create comprehensive and detailed study notes for "{title}".

## Overview & Learning Objectives
- Brief introduction to the chapter topic
- Key learning goals and objectives

## Key Concepts & Definitions
- All important terms with clear definitions
- Core concepts explained in detail
- Relationships between concepts

## Detailed Content Analysis
- Main points broken down into clear sections
- Step-by-step explanations where applicable
- Important processes, methodologies, or frameworks

## Practical Applications & Examples
- Real-world examples and use cases
- Case studies or scenarios when relevant

## Summary & Key Takeaways
- Comprehensive bullet-pointed summary
- Most important concepts to remember

## Study Tips & Review Points
- How to apply this knowledge effectively
- Common mistakes to avoid

Format with clear headings, bullet points, and proper structure. Provide full explanations rather than brief summaries.""",
    NoteType.SUMMARY: """Create a comprehensive and detailed summary of "{title}".

## Chapter Summary
- Detailed overview of the main topic
- Context and importance of this chapter

## Key Points & Main Takeaways
- All major concepts covered in the chapter
- Critical information students must understand

## Practical Applications & Insights
- How to apply the knowledge in real situations
- Best practices and implementation strategies

## Important Details
- Specific processes, methods, or frameworks
- Important examples and case studies

## Essential Knowledge for Success
- Must-know concepts for exams or practical use
- Common pitfalls and how to avoid them

Provide a thorough summary that captures all important aspects of the chapter content.""",
    NoteType.KEY_POINTS: (
        'Extract and list the most important points from "{title}" that students must '
        "remember for exams and practical application."
    ),
    NoteType.MANUAL: (
        'Create structured, textbook-style study notes for "{title}" with clear sections '
        "and detailed explanations."
    ),
}

_NOTES_INSTRUCTIONS = """Additional Instructions:
- Use clear headings and subheadings
- Include comprehensive bullet points for easy reading
- Add practical examples and real-world applications where relevant
- Provide detailed explanations, not just brief summaries
- Format for easy studying and review with proper structure
- Make the notes thorough and complete"""


def summary_request(chapter_title: str, chapter_content: str) -> CompletionRequest:
    return CompletionRequest(
        system_prompt=SUMMARY_SYSTEM_PROMPT,
        user_prompt=_SUMMARY_TEMPLATE.format(title=chapter_title, content=chapter_content),
        temperature=0.7,
        max_tokens=1000,
    )


def question_request(
    question: str,
    chapter_title: str,
    chapter_content: str,
    history: Sequence[ChatTurn] = (),
) -> CompletionRequest:
    system_prompt = _QUESTION_SYSTEM_TEMPLATE.format(
        title=chapter_title,
        content=chapter_content[:QUESTION_CONTEXT_CHARS],
    )
    return CompletionRequest(
        system_prompt=system_prompt,
        user_prompt=question,
        prior_turns=list(history),
        temperature=0.7,
        max_tokens=1000,
    )


def clarification_request(
    request: str, chapter_title: str, chapter_content: str
) -> CompletionRequest:
    return CompletionRequest(
        system_prompt=CLARIFICATION_SYSTEM_PROMPT,
        user_prompt=_CLARIFICATION_TEMPLATE.format(
            title=chapter_title, request=request, content=chapter_content
        ),
        temperature=0.7,
        max_tokens=600,
    )


def notes_instruction(chapter_title: str, note_type: NoteType, custom_prompt: str | None) -> str:
    """The custom prompt when one is given, otherwise the note type's template."""
    if custom_prompt and custom_prompt.strip():
        return custom_prompt
    return _NOTE_TEMPLATES[note_type].format(title=chapter_title)


def notes_request(
    chapter_title: str,
    chapter_content: str,
    note_type: NoteType,
    custom_prompt: str | None = None,
) -> CompletionRequest:
    instruction = notes_instruction(chapter_title, note_type, custom_prompt)
    user_prompt = (
        f"{instruction}\n\n"
        f'Chapter: "{chapter_title}"\n'
        f"Full Chapter Content:\n{chapter_content}\n\n"
        f"{_NOTES_INSTRUCTIONS}"
    )
    return CompletionRequest(
        system_prompt=NOTES_SYSTEM_PROMPT,
        user_prompt=user_prompt,
        # Lower temperature and a larger budget for consistent, long-form notes
        temperature=0.3,
        max_tokens=2000,
    )

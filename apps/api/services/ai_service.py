"""
AI assistant (AIDOMO) provider chain.

OpenAI chat completions in JSON mode are tried first, Gemini second. When
neither is configured or both fail, callers get a deterministic answer so
the feature never errors out on a provider outage.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types as genai_types
from openai import OpenAI

from core.config import settings

logger = logging.getLogger(__name__)

PARSE_TEMPERATURE = 0.3
SUGGESTION_TEMPERATURE = 0.7
MAX_SUGGESTIONS = 5
MAX_INSIGHTS = 3

NAVIGATION_WORDS = r"next item|next task|add another|another task|next"
_NAV_SPLIT = re.compile(rf"\b(?:{NAVIGATION_WORDS})\b", re.IGNORECASE)
_NAV_ONLY = re.compile(rf"^(?:{NAVIGATION_WORDS})$", re.IGNORECASE)

DEFAULT_SUGGESTIONS = {
    "suggestions": [
        "Review completed tasks for patterns",
        "Set up weekly task planning session",
        "Create task templates for recurring work",
        "Implement time tracking for tasks",
        "Schedule regular task review meetings",
    ],
    "insights": [
        "Focus on completing high-priority tasks first",
        "Consider breaking large tasks into smaller steps",
        "Regular task reviews help maintain productivity",
    ],
}

PARSE_SYSTEM_PROMPT = """You are an AI assistant that parses speech transcripts to extract individual tasks from task lists.

Your job is to:
1. Identify individual task items mentioned in the speech
2. Clean up and format each task as a clear, actionable item
3. Remove navigation words like "next item", "add another", "next task"
4. Return each task as a separate item in a JSON array

Examples:
- Input: "Buy groceries next item call the dentist next item schedule meeting"
- Output: ["Buy groceries", "Call the dentist", "Schedule meeting"]

Return only a JSON object with a "tasks" array containing the individual task strings."""

SUGGESTION_SYSTEM_PROMPT = """You are an AI assistant that helps users manage their tasks more effectively.
Analyze the user's existing tasks and suggest new tasks they might want to consider.
Also provide helpful insights about their task patterns and productivity.

- Provide 5 suggested new tasks based on their existing tasks
- Provide 3 insights about their productivity patterns
- Format your response as a JSON object with "suggestions" and "insights" arrays
- Keep suggestions concise (under 60 characters each)
- Each suggestion should be a complete task title
- Make suggestions relevant to the categories and priorities they already use"""


class ProviderUnavailable(Exception):
    """No provider produced a response."""


def _openai_client() -> Optional[OpenAI]:
    if not settings.OPENAI_API_KEY:
        return None
    return OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.AI_TIMEOUT_S)


def _gemini_client() -> Optional[genai.Client]:
    if not settings.GOOGLE_AI_API_KEY:
        return None
    return genai.Client(api_key=settings.GOOGLE_AI_API_KEY)


def _openai_json(system: str, user: str, temperature: float, max_tokens: int) -> Optional[str]:
    client = _openai_client()
    if client is None:
        return None
    response = client.chat.completions.create(
        model=settings.OPENAI_MODEL,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        response_format={"type": "json_object"},
        max_tokens=max_tokens,
        temperature=temperature,
    )
    return response.choices[0].message.content


def _gemini_json(system: str, user: str, temperature: float, max_tokens: int) -> Optional[str]:
    client = _gemini_client()
    if client is None:
        return None
    contents = [genai_types.Content(role="user", parts=[genai_types.Part(text=user)])]
    config = genai_types.GenerateContentConfig(
        system_instruction=system,
        max_output_tokens=max_tokens,
        temperature=temperature,
        response_mime_type="application/json",
    )
    response = client.models.generate_content(
        model=settings.GEMINI_MODEL,
        contents=contents,
        config=config,
    )
    return response.text


def complete_json(system: str, user: str, temperature: float = PARSE_TEMPERATURE, max_tokens: int = 512) -> Dict[str, Any]:
    """
    Run the provider chain and decode the JSON object it returns.

    Raises:
        ProviderUnavailable: when no provider is configured or all of them failed
    """
    for name, call in (("openai", _openai_json), ("gemini", _gemini_json)):
        try:
            content = call(system, user, temperature, max_tokens)
        except Exception as e:
            logger.warning(f"{name} completion failed: {e}")
            continue
        if content is None:
            continue
        try:
            data = json.loads(content)
        except (TypeError, ValueError):
            logger.warning(f"{name} returned non-JSON content")
            continue
        if isinstance(data, dict):
            return data
    raise ProviderUnavailable("No AI provider available")


def split_transcript(transcript: str) -> List[str]:
    """Deterministic split on spoken navigation words."""
    parts = [p.strip(" ,.") for p in _NAV_SPLIT.split(transcript or "")]
    tasks = [p for p in parts if len(p) > 3 and not _NAV_ONLY.match(p)]
    return tasks or [transcript.strip()]


def parse_tasks(transcript: str) -> List[str]:
    transcript = (transcript or "").strip()
    if not transcript:
        return []
    user_prompt = (
        f'Parse this speech transcript and extract individual tasks: "{transcript}"\n\n'
        'Return a JSON object with a "tasks" array.'
    )
    try:
        data = complete_json(PARSE_SYSTEM_PROMPT, user_prompt, PARSE_TEMPERATURE, 512)
    except ProviderUnavailable:
        return split_transcript(transcript)

    tasks = data.get("tasks")
    if not isinstance(tasks, list):
        return split_transcript(transcript)
    tasks = [str(t).strip() for t in tasks if str(t).strip()]
    logger.info("Parsed tasks from transcript", extra={"extra_fields": {"task_count": len(tasks)}})
    return tasks or [transcript]


def suggest_tasks(tasks: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    task_info = [
        {"title": t.get("title"), "category": t.get("category"), "priority": t.get("priority"), "completed": t.get("completed")}
        for t in tasks
    ]
    user_prompt = (
        f"Here are my current tasks: {json.dumps(task_info, indent=2)}\n\n"
        "Please respond with a JSON object containing suggestions and insights arrays."
    )
    try:
        data = complete_json(SUGGESTION_SYSTEM_PROMPT, user_prompt, SUGGESTION_TEMPERATURE, 1024)
    except ProviderUnavailable:
        data = {}

    suggestions = data.get("suggestions")
    insights = data.get("insights")
    if not isinstance(suggestions, list):
        suggestions = DEFAULT_SUGGESTIONS["suggestions"]
    if not isinstance(insights, list):
        insights = DEFAULT_SUGGESTIONS["insights"]
    return {
        "suggestions": [str(s) for s in suggestions][:MAX_SUGGESTIONS],
        "insights": [str(i) for i in insights][:MAX_INSIGHTS],
    }

"""Prompt templates for conversations and insight generation."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mindsphere_ai.providers.models import CallerProfile, HealthEntry, MoodEntry, TaskItem

DEFAULT_SYSTEM_PROMPT = """\
You are MindSphere, an AI-powered personal assistant created to help {name} manage \
their life, work, and personal growth. You are knowledgeable, empathetic, and proactive.

Your capabilities include:
- Managing schedules, tasks, and priorities
- Tracking health, mood, and wellness
- Providing insights and recommendations
- Helping with decision-making
- Offering emotional support and motivation

Always be helpful, concise, and actionable in your responses. Adapt your communication \
style to be warm and supportive while maintaining professionalism."""

JOURNAL_SYSTEM_PROMPT = (
    "You are an AI journal analyst with expertise in psychology and personal development. "
    "Your goal is to provide thoughtful, encouraging analysis that helps people understand "
    "their thoughts and emotions better."
)

JOURNAL_PROMPT = """\
Please analyze this journal entry and provide insightful, empathetic feedback. Focus on \
patterns, emotions, growth opportunities, and positive reinforcement. Keep your response \
to 2-3 paragraphs.

Journal entry: "{content}\""""

HEALTH_SYSTEM_PROMPT = (
    "You are a health data analyst with expertise in wellness and behavioral patterns. "
    "Provide insights that are scientifically grounded yet accessible and motivating."
)

HEALTH_PROMPT = """\
Analyze this health data and provide actionable insights about patterns, trends, and \
recommendations for improvement. Be encouraging and specific.

Health data:
{data}"""

MOOD_SYSTEM_PROMPT = (
    "You are a mood pattern analyst with expertise in emotional intelligence and mental "
    "wellness. Focus on identifying patterns and providing constructive guidance."
)

MOOD_PROMPT = """\
Analyze this mood data and provide insights about emotional patterns, triggers, and \
suggestions for maintaining good mental health.

Mood data:
{data}"""

TASKS_SYSTEM_PROMPT = (
    "You are a productivity expert specializing in task management and time optimization. "
    "Provide actionable insights and practical prioritization strategies."
)

TASKS_PROMPT = """\
Analyze and prioritize these tasks. Provide insights about prioritization, time \
management, and productivity optimization.

Tasks:
{data}"""

JOURNAL_MAX_TOKENS = 500
HEALTH_MAX_TOKENS = 600
MOOD_MAX_TOKENS = 600
TASKS_MAX_TOKENS = 800
INSIGHT_TEMPERATURE = 0.7


def _value(value: object, suffix: str = "") -> str:
    return "n/a" if value is None else f"{value}{suffix}"


def build_system_prompt(profile: CallerProfile | None) -> str:
    """Default persona prompt, addressed to the caller when their name is known."""
    name = profile.name if profile and profile.name else "the user"
    return DEFAULT_SYSTEM_PROMPT.format(name=name)


def format_journal(content: str) -> str:
    return JOURNAL_PROMPT.format(content=content)


def format_health(entries: Sequence[HealthEntry]) -> str:
    lines = [
        f"Date: {entry.date.isoformat()}, Sleep: {_value(entry.sleep_hours, 'h')}, "
        f"Steps: {_value(entry.steps)}, Mood: {_value(entry.mood, '/10')}, "
        f"Energy: {_value(entry.energy, '/10')}"
        for entry in entries
    ]
    return HEALTH_PROMPT.format(data="\n".join(lines))


def format_mood(entries: Sequence[MoodEntry]) -> str:
    lines = [
        f"Date: {entry.date.isoformat()}, Mood: {entry.mood}/10, "
        f"Energy: {_value(entry.energy, '/10')}, Stress: {_value(entry.stress, '/10')}"
        for entry in entries
    ]
    return MOOD_PROMPT.format(data="\n".join(lines))


def format_tasks(tasks: Sequence[TaskItem]) -> str:
    lines = [
        f"{task.title} (Priority: {task.priority.value}, Status: {task.status}, "
        f"Due: {task.due_date.isoformat() if task.due_date else 'No due date'})"
        for task in tasks
    ]
    return TASKS_PROMPT.format(data="\n".join(lines))

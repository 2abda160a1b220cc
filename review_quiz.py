"""
AI review quizzes for learning-point sessions.

Before a session can be marked reviewed, the tutee answers one question per
learning point and the model judges the answers. The model is asked for
JSON but may wrap it in prose or code fences, so the payload is pulled out
with a regex before parsing. A response that still does not parse, or does
not have the expected shape, raises ReviewQuizError. Malformed output is not
retried.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field

from ai_client import chat_completion

logger = logging.getLogger(__name__)

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

QUESTION_TEMPERATURE = 0.7
VERIFY_TEMPERATURE = 0.3


class ReviewQuizError(Exception):
    """The model's answer could not be used as a quiz or verdict."""


@dataclass
class VerificationResult:
    feedback: list[str]
    overall_feedback: str
    can_mark_as_reviewed: bool
    passed: list[bool] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "feedback": list(self.feedback),
            "passed": list(self.passed),
            "overallFeedback": self.overall_feedback,
            "canMarkAsReviewed": self.can_mark_as_reviewed,
        }


def _student_context(tutee_name: str, tutee_description: str) -> str:
    context = f"The student is {tutee_name}"
    if tutee_description:
        context += f" ({tutee_description})"
    return context + ". Pitch the language at their level."


def _extract(pattern: re.Pattern, text: str, what: str):
    match = pattern.search(text or "")
    if not match:
        raise ReviewQuizError(f"No JSON {what} in model response")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ReviewQuizError(f"Malformed JSON {what} in model response") from exc


def generate_review_questions(tutee_name: str, tutee_description: str,
                              learning_points: list[str]) -> list[str]:
    """Ask for exactly one short question per learning point."""
    if not learning_points:
        raise ValueError("At least one learning point is required")

    numbered = "\n".join(f"{i}. {p}" for i, p in enumerate(learning_points, 1))
    system_prompt = (
        "You are a friendly tutor checking what a student remembers from a lesson. "
        + _student_context(tutee_name, tutee_description)
    )
    prompt = (
        f"Here are the learning points from the lesson:\n{numbered}\n\n"
        f"Write exactly {len(learning_points)} short review questions, one per learning "
        "point and in the same order. Each question must be answerable in a sentence or two. "
        'Reply with a JSON array of strings only, e.g. ["Question 1?", "Question 2?"].'
    )

    result = chat_completion(prompt, system_prompt=system_prompt,
                             temperature=QUESTION_TEMPERATURE)
    questions = _extract(_JSON_ARRAY, result["response"], "array")

    if not isinstance(questions, list) or not all(isinstance(q, str) and q.strip() for q in questions):
        raise ReviewQuizError("Model response is not a list of questions")
    if len(questions) != len(learning_points):
        raise ReviewQuizError(
            f"Expected {len(learning_points)} questions, got {len(questions)}"
        )
    return [q.strip() for q in questions]


def verify_review_answers(tutee_name: str, tutee_description: str,
                          questions: list[str], answers: list[str]) -> VerificationResult:
    """Judge the answers and decide whether the session counts as reviewed."""
    if not questions or len(questions) != len(answers):
        raise ValueError("Each question needs exactly one answer")

    pairs = "\n\n".join(
        f"Question {i}: {q}\nAnswer {i}: {a}"
        for i, (q, a) in enumerate(zip(questions, answers), 1)
    )
    system_prompt = (
        "You are a supportive but honest tutor marking a short review quiz. "
        + _student_context(tutee_name, tutee_description)
    )
    prompt = (
        f"{pairs}\n\n"
        "For each answer decide whether it shows the student understood the point. "
        "Be encouraging; minor spelling or phrasing issues are fine, but blank, "
        "off-topic or wrong answers do not pass. Reply with a JSON object only:\n"
        '{"feedback": ["one or two sentences per answer"], '
        '"passed": [true or false per answer], '
        '"overallFeedback": "a short summary", '
        '"canMarkAsReviewed": true or false}'
    )

    result = chat_completion(prompt, system_prompt=system_prompt,
                             temperature=VERIFY_TEMPERATURE)
    verdict = _extract(_JSON_OBJECT, result["response"], "object")

    if not isinstance(verdict, dict):
        raise ReviewQuizError("Model response is not an object")
    feedback = verdict.get("feedback")
    can_mark = verdict.get("canMarkAsReviewed")
    if not isinstance(feedback, list) or len(feedback) != len(questions):
        raise ReviewQuizError("Model feedback does not match the questions")
    if not isinstance(can_mark, bool):
        raise ReviewQuizError("Model response lacks canMarkAsReviewed")

    passed = verdict.get("passed")
    if not isinstance(passed, list) or len(passed) != len(questions):
        passed = []

    logger.info("Review quiz verified: %d questions, can_mark=%s", len(questions), can_mark)
    return VerificationResult(
        feedback=[str(f) for f in feedback],
        overall_feedback=str(verdict.get("overallFeedback", "")),
        can_mark_as_reviewed=can_mark,
        passed=[bool(p) for p in passed],
    )

"""Prompts for skill extraction, question generation and alias generation."""

from __future__ import annotations
from textwrap import dedent


def build_system() -> str:
    return (
        "You are a technical recruiting analyst. You read job descriptions and "
        "work with technical skills, technologies and competencies.\n"
        "Be conservative and return only the JSON object requested."
    )


def skills_instruction(*, text: str) -> str:
    return dedent(
        f"""\
        Extract the key technical skills, technologies, and competencies from this job description.
        Return the response as a JSON object with a "skills" array containing the skill names as strings.

        Job Description:
        \"\"\"{text.strip()}\"\"\"
        """
    )


def questions_instruction(*, skill: str, count: int) -> str:
    return dedent(
        f"""\
        Generate {count} technical interview questions for the skill "{skill}".
        Return the response as a JSON object with a "questions" array containing the questions as strings.
        """
    )


def aliases_instruction(*, skill: str, limit: int) -> str:
    return dedent(
        f"""\
        List up to {limit} short alternative names people use for the technical skill "{skill}".
        Cover spacing, punctuation, capitalization and common abbreviation variants
        (e.g. "React" -> "reactjs", "react.js", "react js").
        Do not include different technologies.
        Return the response as a JSON object with an "aliases" array of strings.
        """
    )

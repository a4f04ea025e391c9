"""
Study Content Agent for StudyForge
Turns lecture text into topics, notes, quizzes, flashcards or coding exercises
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from src.constants import (
    CONTENT_MAX_CHARS,
    DEFAULT_CODING_EXERCISES,
    DEFAULT_FLASHCARDS,
    DEFAULT_QUIZ_QUESTIONS,
    LLM_TEMPERATURE_DEFAULT,
    LLM_TEMPERATURE_PRECISE,
    LOG_PREVIEW_CHARS,
)
from src.core.json_utils import ExtractionResult, resolve_structured_result, sanitize_text
from src.core.types import BaseAgent, OutputKind


@dataclass
class GenerationResult:
    """Outcome of one generation request."""
    kind: OutputKind
    result: Union[List[Any], str]
    raw_text: str
    extraction: Optional[ExtractionResult] = None


class StudyContentAgent(BaseAgent):
    """
    Generates study material from lecture content.
    Array kinds go through JSON recovery; notes go through the text sanitizer.
    """

    def __init__(self, client, model: str = "gpt-4.1-mini", config: Optional[Dict[str, Any]] = None,
                 retry_handler=None, logger=None):
        """
        Initialize the Study Content Agent.

        Args:
            client: OpenAI (or OpenAI-compatible) client instance
            model: Model to use
            config: Configuration dictionary from config.yaml
            retry_handler: Optional RetryHandler for the provider call
            logger: Optional VerboseLogger
        """
        super().__init__(client, model, retry_handler=retry_handler, logger=logger)
        self.config = config or {}
        generation = self.config.get("generation", {}) or {}
        self.quiz_questions = int(generation.get("quiz_questions", DEFAULT_QUIZ_QUESTIONS))
        self.flashcards = int(generation.get("flashcards", DEFAULT_FLASHCARDS))
        self.coding_exercises = int(generation.get("coding_exercises", DEFAULT_CODING_EXERCISES))
        self.content_max_chars = int(generation.get("content_max_chars", CONTENT_MAX_CHARS))
        self.notes_temperature = float(generation.get("temperature", LLM_TEMPERATURE_DEFAULT))

    def build_prompts(self, content: str, kind: OutputKind) -> Tuple[str, str]:
        """
        Build the (system, user) prompt pair for a kind of study material.

        Args:
            content: Lecture text
            kind: Requested output kind

        Returns:
            Tuple of system prompt and user prompt
        """
        content = content[:self.content_max_chars]

        if kind is OutputKind.TOPICS:
            return (
                "You are an educational AI assistant that extracts main topics and key concepts from study material.",
                "Extract and list the main topics and key concepts from the following content. "
                f"Return only a JSON array of topic strings:\n\n{content}",
            )
        if kind is OutputKind.NOTES:
            return (
                "You are an educational AI assistant that creates comprehensive study notes.",
                "Create detailed, well-organized study notes from the following content. "
                "Structure them with clear headings and bullet points. "
                f"Make them comprehensive but concise:\n\n{content}",
            )
        if kind is OutputKind.QUIZ:
            return (
                "You are an educational AI assistant that creates effective quiz questions.",
                f"Create {self.quiz_questions} multiple-choice quiz questions from the following content. "
                "Each question should have 4 options (A, B, C, D) with one correct answer. "
                "Return a JSON array with objects containing: question, options (array of 4 strings), "
                f"correctAnswer (letter A-D), and explanation:\n\n{content}",
            )
        if kind is OutputKind.FLASHCARDS:
            return (
                "You are an educational AI assistant that creates effective flashcards for studying.",
                f"Create {self.flashcards} flashcards from the following content. "
                "Each flashcard should have a clear question and a concise answer. "
                f"Return a JSON array with objects containing: question and answer:\n\n{content}",
            )
        if kind is OutputKind.CODING_EXERCISES:
            return (
                "You are an educational AI assistant that creates hands-on programming exercises.",
                f"Create {self.coding_exercises} coding exercises that practise the concepts in the following content. "
                "Return a JSON array with objects containing: title, description, starterCode, "
                f"solution, and hints (array of strings):\n\n{content}",
            )
        raise ValueError(f"Unsupported output kind: {kind}")

    def generate(self, content: str, kind: Union[OutputKind, str]) -> GenerationResult:
        """
        Generate study material and recover a usable result from the reply.

        Args:
            content: Lecture text
            kind: Output kind (enum or its string value)

        Returns:
            GenerationResult; structured kinds carry the ExtractionResult

        Raises:
            ValueError: Unknown kind
            Provider errors from the model call propagate unchanged
        """
        kind = OutputKind.parse(kind)
        system_prompt, user_prompt = self.build_prompts(content, kind)
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        temperature = LLM_TEMPERATURE_PRECISE if kind.is_structured else self.notes_temperature
        raw_text = self._call_model(messages=messages, temperature=temperature)
        self.logger.log_debug(f"Generated {kind.value}: {raw_text[:LOG_PREVIEW_CHARS]}")

        if not kind.is_structured:
            return GenerationResult(kind=kind, result=sanitize_text(raw_text), raw_text=raw_text)

        extraction = resolve_structured_result(raw_text)
        if not extraction.ok:
            self.logger.log_warning(
                f"Could not recover {kind.value} from model output "
                f"({extraction.status.value}, {extraction.raw_length} chars)"
            )
        elif extraction.is_lossy:
            self.logger.log_warning(f"Recovered {kind.value} with unicode escapes stripped")

        return GenerationResult(
            kind=kind,
            result=extraction.records,
            raw_text=raw_text,
            extraction=extraction,
        )

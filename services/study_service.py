"""
Study Service
Request handler that turns (content, kind) into a response payload.
Provider failures become distinct error responses; the extraction core only
ever sees replies that actually arrived.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from src.core.types import OutputKind
from src.error_handler import ErrorHandler
from src.study_agent import StudyContentAgent
from src.verbose_logger import get_logger


@dataclass
class StudyResponse:
    """Response payload for one study-content request"""
    status_code: int
    result: Any = None
    error: Optional[str] = None
    extraction_status: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"error": self.error}
        payload: Dict[str, Any] = {"result": self.result}
        if self.extraction_status is not None:
            payload["extraction_status"] = self.extraction_status
        return payload


class StudyService:
    """Validates requests, runs the agent and maps failures to responses"""

    def __init__(self, agent: StudyContentAgent, logger=None):
        """Initialize the study service

        Args:
            agent: Agent used to generate study material
            logger: Optional VerboseLogger, the global logger if omitted
        """
        self.agent = agent
        self.logger = logger or get_logger()

    def handle(self, content: Any, kind: Union[OutputKind, str, None]) -> StudyResponse:
        """Generate one kind of study material for the given content

        Args:
            content: Lecture text
            kind: Requested output kind

        Returns:
            StudyResponse with status 200, 400, 402, 429 or 500
        """
        if not isinstance(content, str) or not content.strip():
            return StudyResponse(status_code=400, error="Content is required.")

        try:
            output_kind = OutputKind.parse(kind)
        except ValueError as e:
            return StudyResponse(status_code=400, error=str(e))

        self.logger.log_info(f"Processing request for type: {output_kind.value}")

        try:
            generation = self.agent.generate(content, output_kind)
        except Exception as e:
            status_code = ErrorHandler.status_for_error(e)
            self.logger.log_error(
                error=e,
                model=self.agent.model,
                context=f"generate {output_kind.value} (status {status_code})",
            )
            return StudyResponse(status_code=status_code, error=ErrorHandler.handle_api_error(e))

        extraction_status = None
        if generation.extraction is not None:
            extraction_status = generation.extraction.status.value

        return StudyResponse(
            status_code=200,
            result=generation.result,
            extraction_status=extraction_status,
        )

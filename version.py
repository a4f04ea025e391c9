"""
StudyForge Version Management

IMPORTANT: Bump VERSION with each git commit/revision.
Format: MAJOR.MINOR.PATCH
- MAJOR: Breaking changes or major feature releases
- MINOR: New features, enhancements
- PATCH: Bug fixes, small improvements
"""

VERSION = "1.2.0"
VERSION_NAME = "Tagged Extraction Results"

# Changelog for reference
CHANGELOG = {
    "1.2.0": {
        "date": "2026-10-12",
        "name": "Tagged Extraction Results",
        "changes": [
            "resolve_structured_result() tells an empty array apart from a failed extraction",
            "Responses carry extraction_status for array kinds",
            "Dangling commas left by removed escapes are dropped before re-parsing",
        ]
    },
    "1.1.0": {
        "date": "2026-09-28",
        "name": "Coding Exercises",
        "changes": [
            "New coding_exercises output kind",
            "Generation counts configurable in config.yaml",
            "AI gateway provider alongside OpenAI",
        ]
    },
    "1.0.0": {
        "date": "2026-09-14",
        "name": "Initial Release",
        "changes": [
            "Topics, notes, quiz and flashcard generation from lecture text",
            "JSON array recovery from fenced or escape-corrupted model replies",
            "Rate limit and quota failures reported as distinct errors",
        ]
    },
}


def get_version() -> str:
    """Get current version string"""
    return VERSION


def get_version_display() -> str:
    """Get formatted version for display"""
    return f"v{VERSION} - {VERSION_NAME}"

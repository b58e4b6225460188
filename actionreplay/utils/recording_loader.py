"""
Loading and structural validation of recording documents.

Validation happens here, before normalization: the normalizer and the engine assume
a structurally valid `Recording`.
"""

import json
from pathlib import Path
from typing import Any, List, Union

from pydantic import ValidationError

from actionreplay.replication.errors import RecordingValidationError
from actionreplay.schemas.recording import Recording
from actionreplay.utils.logging_config import logger

SUPPORTED_SCHEMA_VERSIONS = ("1.0",)


def _format_errors(error: ValidationError) -> List[str]:
    details: List[str] = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        details.append(f"{location}: {item['msg']}")
    return details


class RecordingLoader:
    """Parses recording JSON from files, strings or already decoded data.

    Example:
        ```python
        loader = RecordingLoader()
        recording = loader.load_file(Path("recordings/checkout.json"))
        ```
    """

    def load_file(self, path: Union[str, Path]) -> Recording:
        """Read and validate a recording file.

        Raises:
            RecordingValidationError: If the file is missing, not JSON, or not a recording
        """
        file_path = Path(path)
        if not file_path.exists():
            raise RecordingValidationError(f"Recording file not found: {file_path}")

        try:
            content = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise RecordingValidationError(f"Could not read {file_path}: {e}") from e

        return self.load_string(content)

    def load_string(self, content: str) -> Recording:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise RecordingValidationError(f"Recording is not valid JSON: {e}") from e
        return self.load_data(data)

    def load_data(self, data: Any) -> Recording:
        if not isinstance(data, dict):
            raise RecordingValidationError("Invalid recording format: expected a JSON object")

        try:
            recording = Recording.model_validate(data)
        except ValidationError as e:
            details = _format_errors(e)
            raise RecordingValidationError(
                f"Invalid recording format: {len(details)} problem(s)", details=details
            ) from e

        if recording.version not in SUPPORTED_SCHEMA_VERSIONS:
            logger.warning(
                f"⚠️ Recording uses schema v{recording.version} "
                f"(supported: {', '.join(SUPPORTED_SCHEMA_VERSIONS)}); some fields may be missing"
            )

        return recording

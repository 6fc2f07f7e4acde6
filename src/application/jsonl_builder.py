"""Builds batch input JSONL files from a prompt and a set of inputs."""

import glob
import json
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from domain.exceptions import InputPathError
from domain.protocols import ILogger
from shared.logging import LoggerAdapter, get_logger
from shared.types import PathLike, as_path

JSON_FIELD_PATTERN = re.compile(r"^(.+\.json):(.+)$")


def natural_key(name: str) -> List[object]:
    """Sort key that orders ``file2`` before ``file10``, ignoring case."""
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", name)]


class JsonlRequestBuilder:
    """
    Writes one generateContent request per input item.

    Inputs are either a glob pattern (one request per matched file, keyed by
    file name) or ``path/to/file.json:field`` (one request per element of
    the array under ``field``).
    """

    def __init__(self, model: str, logger: Optional[ILogger] = None):
        self.model = model
        self._logger = logger or LoggerAdapter(get_logger(__name__))

    def build(self, prompt: str, inputs: str, output: PathLike) -> int:
        """
        Write the JSONL file.

        Args:
            prompt: Prompt text, or path to a file holding it
            inputs: Glob pattern or ``file.json:field``
            output: Destination JSONL path

        Returns:
            Number of requests written

        Raises:
            InputPathError: If inputs are missing, invalid or empty
        """
        prompt_text = self._load_prompt(prompt)
        items = self._collect(inputs)
        if not items:
            raise InputPathError(f"No input data found for: {inputs}")

        output_path = as_path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        self._logger.info(f"Processing {len(items)} items...")
        with open(output_path, 'w', encoding='utf-8') as f:
            for key, value in items:
                f.write(json.dumps(self.make_request(key, prompt_text, value), ensure_ascii=False))
                f.write("\n")

        self._logger.info(f"Created JSONL file with {len(items)} requests: {output_path}")
        return len(items)

    def make_request(self, key: str, prompt_text: str, value: str) -> Dict[str, object]:
        return {
            "key": key,
            "model": self.model,
            "request": {
                "system_instruction": {"parts": [{"text": prompt_text}]},
                "contents": [{"role": "user", "parts": [{"text": value}]}],
                # Deterministic output for batch runs
                "generation_config": {"temperature": 0},
            },
        }

    def _load_prompt(self, prompt: str) -> str:
        candidate = Path(prompt).expanduser()
        try:
            is_file = candidate.is_file()
        except OSError:
            is_file = False
        if is_file:
            self._logger.info(f"Reading prompt from file: {candidate}")
            return candidate.read_text(encoding='utf-8').strip()
        return prompt

    def _collect(self, inputs: str) -> List[Tuple[str, str]]:
        if match := JSON_FIELD_PATTERN.match(inputs):
            return self._collect_json_field(Path(match.group(1)).expanduser(), match.group(2))
        return self._collect_glob(inputs)

    def _collect_json_field(self, json_path: Path, field: str) -> List[Tuple[str, str]]:
        if not json_path.is_file():
            raise InputPathError(f"JSON file not found: {json_path}")

        self._logger.info(f"Reading data from JSON file: {json_path}, field: {field}")
        try:
            content = json.loads(json_path.read_text(encoding='utf-8'))
        except json.JSONDecodeError as e:
            raise InputPathError(f"Invalid JSON in {json_path}: {e}") from e

        data = content.get(field) if isinstance(content, dict) else None
        if not isinstance(data, list):
            raise InputPathError(f'Field "{field}" is not an array in {json_path}')

        return [
            (f"input_{index}", item if isinstance(item, str) else json.dumps(item, ensure_ascii=False))
            for index, item in enumerate(data)
        ]

    def _collect_glob(self, pattern: str) -> List[Tuple[str, str]]:
        self._logger.info(f"Matching files with pattern: {pattern}")
        matched = [Path(p) for p in glob.glob(str(Path(pattern).expanduser()), recursive=True)]
        matched = sorted((p for p in matched if p.is_file()), key=lambda p: natural_key(p.name))
        self._logger.info(f"Found {len(matched)} files")

        items = []
        for path in matched:
            try:
                items.append((path.name, path.read_text(encoding='utf-8').strip()))
            except (OSError, UnicodeDecodeError) as e:
                self._logger.warning(f"Failed to read file {path}: {e}")
        return items

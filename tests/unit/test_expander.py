"""
Unit tests for input expansion.
"""

import pytest
from unittest.mock import Mock

from application.expander import InputExpander
from domain.exceptions import InputPathError


@pytest.fixture
def logger():
    return Mock()


class TestInputExpander:

    def test_directory_keeps_matching_extension(self, tmp_path, logger):
        for name in ("b.txt", "c.JSONL", "a.jsonl"):
            (tmp_path / name).write_text("{}\n")

        files = InputExpander(logger=logger).expand([tmp_path])

        assert [f.name for f in files] == ["a.jsonl", "c.JSONL"]

    def test_directory_is_not_recursive(self, tmp_path, logger):
        nested = tmp_path / "nested"
        nested.mkdir()
        (nested / "deep.jsonl").write_text("{}\n")
        (tmp_path / "top.jsonl").write_text("{}\n")

        files = InputExpander(logger=logger).expand([tmp_path])

        assert [f.name for f in files] == ["top.jsonl"]

    def test_explicit_files_keep_input_order(self, make_inputs, logger):
        second, first = make_inputs("second.jsonl", "first.jsonl")

        files = InputExpander(logger=logger).expand([second, first])

        assert files == [second, first]

    def test_non_matching_file_skipped_with_warning(self, tmp_path, logger):
        other = tmp_path / "notes.txt"
        other.write_text("hello")

        files = InputExpander(logger=logger).expand([other])

        assert files == []
        warnings = [c.args[0] for c in logger.warning.call_args_list]
        assert any("Skipping non-JSONL file" in w for w in warnings)

    def test_missing_path_raises(self, tmp_path, logger):
        with pytest.raises(InputPathError):
            InputExpander(logger=logger).expand([tmp_path / "missing.jsonl"])

    def test_duplicates_removed(self, make_inputs, logger):
        (path,) = make_inputs("a.jsonl")

        files = InputExpander(logger=logger).expand([path, path.parent, str(path)])

        assert files == [path]

    def test_empty_directory_warns(self, tmp_path, logger):
        files = InputExpander(logger=logger).expand([tmp_path])

        assert files == []
        logger.warning.assert_called()

    def test_custom_extension(self, tmp_path, logger):
        (tmp_path / "a.json").write_text("{}")
        (tmp_path / "b.jsonl").write_text("{}")

        expander = InputExpander(extension="json", logger=logger)

        assert expander.extension == ".json"
        assert [f.name for f in expander.expand([tmp_path])] == ["a.json"]

"""Tests for ContextFileLoader."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from strata.config import HostEnvironment
from strata.context.imports import ImportResult
from strata.context.loader import ContextFileLoader
from strata.context.models import ContextFile, Found, NotFound


@pytest.fixture
def env(tmp_path: Path) -> HostEnvironment:
    return HostEnvironment(home=tmp_path / "home", is_test=True)


class TestContextFileLoader:
    @pytest.mark.asyncio
    async def test_reads_in_input_order(self, tmp_path: Path, env: HostEnvironment):
        paths = []
        for i in range(25):
            p = tmp_path / f"f{i:02d}.md"
            p.write_text(f"file {i}")
            paths.append(str(p))

        files = await ContextFileLoader(env).read_files(paths)
        assert [f.path for f in files] == paths
        assert files[7] == ContextFile(paths[7], Found("file 7"))

    @pytest.mark.asyncio
    async def test_missing_file_is_not_found(self, tmp_path: Path, env: HostEnvironment):
        ok = tmp_path / "ok.md"
        ok.write_text("hello")
        missing = str(tmp_path / "gone.md")

        files = await ContextFileLoader(env).read_files([missing, str(ok)])
        assert files[0] == ContextFile(missing, NotFound("not found"))
        assert files[1].content == Found("hello")

    @pytest.mark.asyncio
    async def test_directory_is_not_found_with_reason(self, tmp_path: Path, env: HostEnvironment):
        files = await ContextFileLoader(env).read_files([str(tmp_path)])
        assert isinstance(files[0].content, NotFound)
        assert files[0].content.reason

    @pytest.mark.asyncio
    async def test_imports_are_expanded(self, tmp_path: Path, env: HostEnvironment):
        (tmp_path / "rules.md").write_text("Always test.")
        main = tmp_path / "STRATA.md"
        main.write_text("@./rules.md")

        files = await ContextFileLoader(env).read_files([str(main)])
        assert "Always test." in files[0].content.text
        assert "<!-- Imported from: ./rules.md -->" in files[0].content.text

    @pytest.mark.asyncio
    async def test_format_override_and_processor_arguments(
        self, tmp_path: Path, env: HostEnvironment
    ):
        main = tmp_path / "STRATA.md"
        main.write_text("raw")
        processor = MagicMock(return_value=ImportResult(content="processed"))

        loader = ContextFileLoader(env, import_processor=processor)
        files = await loader.read_files([str(main)], import_format="flat")

        assert files[0].content == Found("processed")
        processor.assert_called_once_with(
            "raw", str(tmp_path), "flat", home=env.home, source=str(main)
        )

    @pytest.mark.asyncio
    async def test_processor_failure_is_not_found(self, tmp_path: Path, env: HostEnvironment):
        main = tmp_path / "STRATA.md"
        main.write_text("raw")
        processor = MagicMock(side_effect=RuntimeError("parser exploded"))

        files = await ContextFileLoader(env, import_processor=processor).read_files([str(main)])
        assert files[0].content == NotFound("parser exploded")

    @pytest.mark.asyncio
    async def test_warning_logged_outside_tests(self, tmp_path: Path):
        processor = MagicMock(side_effect=RuntimeError("parser exploded"))
        log = MagicMock()
        main = tmp_path / "STRATA.md"
        main.write_text("raw")

        loader = ContextFileLoader(
            HostEnvironment(home=tmp_path), import_processor=processor, logger=log
        )
        await loader.read_files([str(main)])
        log.warning.assert_called_once()

"""Tests for the Strata session facade."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from strata.config import ContextConfig, HostEnvironment, StrataConfig, SummaryConfig
from strata.core import Strata
from strata.summary.service import ConversationMessage
from strata.summary.utils import Conversation


def _write(path: Path, text: str) -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return str(path)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    ws = tmp_path / "app"
    (ws / ".git").mkdir(parents=True)
    return ws


def _config(tmp_path: Path, workspace: Path, **context) -> StrataConfig:
    return StrataConfig(
        env=HostEnvironment(home=tmp_path / "home", is_test=True),
        context=ContextConfig(**context),
        summary=SummaryConfig(max_messages=4, timeout=1.0),
        cwd=workspace,
    )


class TestRefreshContextMemory:
    @pytest.mark.asyncio
    async def test_loads_global_and_environment(self, tmp_path: Path, workspace: Path):
        _write(tmp_path / "home" / ".strata" / "STRATA.md", "global rules")
        _write(workspace / "AGENTS.md", "project rules")

        strata = Strata(_config(tmp_path, workspace))
        memory = await strata.refresh_context_memory()

        assert "global rules" in memory
        assert "--- Context from: AGENTS.md ---\nproject rules" in memory
        assert memory.index("global rules") < memory.index("project rules")
        assert strata.context_file_count == 2

    @pytest.mark.asyncio
    async def test_untrusted_folder_skips_environment(self, tmp_path: Path, workspace: Path):
        _write(tmp_path / "home" / ".strata" / "STRATA.md", "global rules")
        _write(workspace / "STRATA.md", "project rules")

        strata = Strata(_config(tmp_path, workspace, folder_trust=False))
        memory = await strata.refresh_context_memory()

        assert "global rules" in memory
        assert "project rules" not in memory
        assert strata.context_file_count == 1

    @pytest.mark.asyncio
    async def test_existing_memory_kept_unless_forced(self, tmp_path: Path, workspace: Path):
        path = workspace / "STRATA.md"
        _write(path, "v1")
        strata = Strata(_config(tmp_path, workspace))
        await strata.refresh_context_memory()

        path.write_text("v2")
        assert "v1" in await strata.refresh_context_memory()
        assert "v2" in await strata.refresh_context_memory(force=True)

    @pytest.mark.asyncio
    async def test_include_directories_are_environment_roots(
        self, tmp_path: Path, workspace: Path
    ):
        lib = tmp_path / "lib"
        _write(lib / "STRATA.md", "library rules")

        strata = Strata(_config(tmp_path, workspace, include_directories=[lib]))
        assert "library rules" in await strata.refresh_context_memory()


class TestEnterDirectory:
    @pytest.mark.asyncio
    async def test_returns_only_new_files(self, tmp_path: Path, workspace: Path):
        _write(workspace / "STRATA.md", "root")
        _write(workspace / "pkg" / "STRATA.md", "pkg rules")
        strata = Strata(_config(tmp_path, workspace))
        await strata.refresh_context_memory()

        found = await strata.enter_directory(workspace / "pkg")
        assert "pkg rules" in found
        assert "--- Context from: STRATA.md ---" not in found
        assert strata.context_file_count == 2
        assert await strata.enter_directory(workspace / "pkg") == ""

    @pytest.mark.asyncio
    async def test_symlinked_workspace(self, tmp_path: Path, workspace: Path):
        _write(workspace / "pkg" / "STRATA.md", "pkg rules")
        link = tmp_path / "link"
        link.symlink_to(workspace, target_is_directory=True)

        strata = Strata(_config(tmp_path, link))
        assert "pkg rules" in await strata.enter_directory(link / "pkg")

    @pytest.mark.asyncio
    async def test_untrusted_returns_empty(self, tmp_path: Path, workspace: Path):
        _write(workspace / "pkg" / "STRATA.md", "pkg rules")
        strata = Strata(_config(tmp_path, workspace, folder_trust=False))
        assert await strata.enter_directory(workspace / "pkg") == ""

    @pytest.mark.asyncio
    async def test_reset_allows_rediscovery(self, tmp_path: Path, workspace: Path):
        _write(workspace / "pkg" / "STRATA.md", "pkg rules")
        strata = Strata(_config(tmp_path, workspace))
        assert await strata.enter_directory(workspace / "pkg")

        strata.reset()
        assert strata.user_memory == ""
        assert strata.context_file_count == 0
        assert await strata.enter_directory(workspace / "pkg")


class TestStartupContext:
    @pytest.mark.asyncio
    async def test_hierarchical_includes_subdirectories(self, tmp_path: Path, workspace: Path):
        _write(workspace / "STRATA.md", "root")
        _write(workspace / "src" / "STRATA.md", "src")

        memory = await Strata(_config(tmp_path, workspace)).load_startup_context()
        assert memory.file_count == 2
        assert "--- Context from: src/STRATA.md ---" in memory.memory_content


class TestSummarize:
    @pytest.mark.asyncio
    async def test_no_client_is_a_no_op(self, tmp_path: Path, workspace: Path):
        recorder = MagicMock()
        await Strata(_config(tmp_path, workspace)).summarize(recorder)
        recorder.get_conversation.assert_not_called()

    @pytest.mark.asyncio
    async def test_uses_summary_config(self, tmp_path: Path, workspace: Path):
        client = MagicMock()
        strata = Strata(_config(tmp_path, workspace), model_client=client)
        recorder = MagicMock()

        with patch("strata.core.generate_and_save_summary", new_callable=AsyncMock) as hook:
            await strata.summarize(recorder)
        hook.assert_awaited_once_with(recorder, client, max_messages=4, timeout=1.0)

    @pytest.mark.asyncio
    async def test_saves_summary_end_to_end(self, tmp_path: Path, workspace: Path):
        client = MagicMock()
        client.generate_content = AsyncMock(return_value="Add dark mode")
        recorder = MagicMock()
        recorder.get_conversation.return_value = Conversation(
            "s1", [ConversationMessage(role="user", content="make it dark")]
        )

        await Strata(_config(tmp_path, workspace), model_client=client).summarize(recorder)
        recorder.save_summary.assert_called_once_with("Add dark mode")

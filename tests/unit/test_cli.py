"""Tests for the interactive CLI and subcommands."""

from unittest.mock import MagicMock

import pytest

from gitpromptchain.cli import PromptChainCLI, describe_changes, main
from gitpromptchain.config import PromptChainConfig
from gitpromptchain.git_integration import GitError, GitIntegration
from gitpromptchain.manager import PromptChainManager
from gitpromptchain.models import ChangeType, FileDiff
from gitpromptchain.tips import TipError


def scripted(*answers):
    """input() replacement returning answers in order, then EOF."""
    remaining = list(answers)

    def _input(prompt):
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    return _input


class TestPromptChainCLI:
    """Test suite for PromptChainCLI."""

    @pytest.fixture
    def manager(self, tmp_path):
        manager = PromptChainManager(PromptChainConfig(repo_path=tmp_path))
        manager.initialize()
        return manager

    @pytest.fixture
    def git(self):
        git = MagicMock(spec=GitIntegration)
        git.get_uncommitted_diffs.return_value = [
            FileDiff(file_path="a.ts", change_type=ChangeType.MODIFIED, diff="+x\n-y", lines_added=1, lines_deleted=1),
        ]
        git.get_current_branch.return_value = "main"
        git.get_last_commit_sha.return_value = "sha1"
        return git

    def make_cli(self, manager, git, *answers, tip_generator=None):
        output = []
        cli = PromptChainCLI(
            manager,
            git,
            tip_generator=tip_generator,
            input_fn=scripted(*answers),
            output=output.append,
        )
        return cli, output

    def test_start_add_save_workflow(self, manager, git):
        cli, output = self.make_cli(manager, git, "start", "demo", "add", "Add X?", "save", "exit")

        assert cli.run() == 0

        chain_ids = manager.list_chains()
        assert len(chain_ids) == 1
        document = manager.load_chain(chain_ids[0])
        assert document.chain.summary == "demo"
        assert document.chain.commit_sha == "sha1"
        assert document.chain.branch == "main"
        assert document.chain.steps[0].response.startswith("Applied changes to 1 file(s)")
        assert manager.list_chains_by_commit("sha1") == chain_ids
        assert any("Chain saved!" in line for line in output)
        assert output[-1] == "\nGoodbye!"

    def test_numeric_aliases(self, manager, git):
        cli, output = self.make_cli(manager, git, "1", "", "2", "fix it", "3", "6")
        cli.run()
        assert len(manager.list_chains()) == 1

    def test_add_without_chain(self, manager, git):
        cli, output = self.make_cli(manager, git, "add", "exit")
        cli.run()
        assert any("No active chain" in line for line in output)

    def test_empty_prompt_rejected(self, manager, git):
        cli, output = self.make_cli(manager, git, "start", "", "add", "", "exit")
        cli.run()
        assert "Prompt cannot be empty." in output
        assert manager.get_current_chain().steps == []

    def test_save_without_chain(self, manager, git):
        cli, output = self.make_cli(manager, git, "save", "exit")
        cli.run()
        assert any("No active chain to save" in line for line in output)

    def test_invalid_choice(self, manager, git):
        cli, output = self.make_cli(manager, git, "bogus", "exit")
        cli.run()
        assert "Invalid choice. Please try again." in output

    def test_git_failure_returns_to_menu(self, manager, git):
        git.get_current_branch.side_effect = GitError("not a git repository")
        cli, output = self.make_cli(manager, git, "start", "", "save", "exit")

        assert cli.run() == 0
        assert "Error: not a git repository" in output
        assert manager.get_current_chain() is not None

    def test_end_of_input_exits(self, manager, git):
        cli, output = self.make_cli(manager, git)
        assert cli.run() == 0

    def test_view_chain_by_number_with_builtin_tips(self, manager, git):
        manager.start_chain("viewed")
        manager.add_step("Add X", "done")
        manager.save_chain(manager.end_chain("sha1", "main"))
        cli, output = self.make_cli(manager, git, "view", "1", "y", "exit")

        cli.run()

        text = "\n".join(output)
        assert "CHAIN METRICS" in text
        assert "PROMPT CHAIN VISUALIZATION" in text
        assert "Prompting tips based on your metrics" in text

    def test_view_chain_unknown_id(self, manager, git):
        manager.start_chain()
        manager.save_chain(manager.end_chain())
        cli, output = self.make_cli(manager, git, "view", "nope", "exit")
        cli.run()
        assert "\nChain not found." in output

    def test_view_without_chains(self, manager, git):
        cli, output = self.make_cli(manager, git, "view", "exit")
        cli.run()
        assert "\nNo chains found." in output

    def test_view_commit_defaults_to_head(self, manager, git):
        manager.start_chain("one")
        first = manager.end_chain("sha1", "main")
        manager.save_chain(first)
        manager.start_chain("two")
        manager.save_chain(manager.end_chain("sha1", "main"))
        cli, output = self.make_cli(manager, git, "viewc", "", "", "exit")

        cli.run()

        assert "\nFound 2 chain(s) for commit sha1:\n" in output
        assert any(first.chain_id in line for line in output)

    def test_view_commit_without_chains(self, manager, git):
        cli, output = self.make_cli(manager, git, "viewc", "other", "exit")
        cli.run()
        assert "\nNo chains linked to commit other." in output

    def test_llm_tip_failure_falls_back(self, manager, git):
        manager.start_chain()
        manager.add_step("Add X", "done")
        manager.save_chain(manager.end_chain("sha1"))
        generator = MagicMock()
        generator.generate.side_effect = TipError("network error")
        cli, output = self.make_cli(manager, git, "view", "1", "y", "exit", tip_generator=generator)

        cli.run()

        assert "\nFailed to fetch AI tips: network error" in output
        assert any("Prompting tips based on your metrics" in line for line in output)

    def test_llm_tips_shown(self, manager, git):
        manager.start_chain()
        manager.save_chain(manager.end_chain("sha1"))
        generator = MagicMock()
        generator.generate.return_value = "- Be specific"
        cli, output = self.make_cli(manager, git, "view", "1", "y", "exit", tip_generator=generator)

        cli.run()

        assert "\nAI prompting tips:\n- Be specific\n" in output


def test_describe_changes():
    assert describe_changes([]) == "[No file changes detected]"
    text = describe_changes([
        FileDiff(file_path="a.py", change_type=ChangeType.ADDED, lines_added=4),
    ])
    assert text == "Applied changes to 1 file(s):\n  - a.py: 4 additions, 0 deletions"


class TestMain:
    @pytest.fixture
    def repo(self, tmp_path):
        manager = PromptChainManager(PromptChainConfig(repo_path=tmp_path))
        manager.initialize()
        manager.start_chain("stored")
        manager.add_step("Add X", "done")
        chain = manager.end_chain("sha1", "main")
        manager.save_chain(chain)
        return tmp_path, chain

    def test_list(self, repo, capsys):
        repo, chain = repo
        assert main(["--repo", str(repo), "list"]) == 0
        assert chain.chain_id in capsys.readouterr().out

    def test_show(self, repo, capsys):
        repo, chain = repo
        assert main(["--repo", str(repo), "show", chain.chain_id]) == 0
        assert "PROMPT CHAIN VISUALIZATION" in capsys.readouterr().out

    def test_show_json(self, repo, capsys):
        repo, chain = repo
        assert main(["--repo", str(repo), "show", chain.chain_id, "--json"]) == 0
        assert '"chainId"' in capsys.readouterr().out

    def test_show_missing(self, repo, capsys):
        repo, _ = repo
        assert main(["--repo", str(repo), "show", "missing"]) == 1

    def test_commit(self, repo, capsys):
        repo, _ = repo
        assert main(["--repo", str(repo), "commit", "sha1"]) == 0
        assert "Found 1 chain(s) for commit sha1" in capsys.readouterr().out

    def test_unwritable_storage_is_fatal(self, tmp_path, capsys):
        blocker = tmp_path / "blocker"
        blocker.write_text("file")
        assert main(["--repo", str(tmp_path), "--storage-dir", str(blocker / "store"), "list"]) == 1
        assert "Fatal error" in capsys.readouterr().err

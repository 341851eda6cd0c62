"""
Command line interface for GitPromptChain.

Usage:
    gitpromptchain                      # interactive menu
    gitpromptchain list                 # list stored chains
    gitpromptchain show <chain-id>      # metrics + full chain
    gitpromptchain commit [sha]         # chains linked to a commit (HEAD by default)
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING

from .chain_lifecycle import PromptChainError
from .config import load_config
from .git_integration import GitError, GitIntegration
from .history import create_history_provider
from .manager import PromptChainManager
from .tips import create_tip_generator, generate_tips
from .visualizer import ChainVisualizer

if TYPE_CHECKING:
    from .models import FileDiff, PromptChainDocument
    from .tips import TipGenerator

logger = logging.getLogger(__name__)

MENU_RULE = "═" * 62

# menu choice -> handler name, with numeric aliases
MENU_CHOICES: dict[str, str] = {
    "start": "start_new_chain",
    "1": "start_new_chain",
    "add": "add_prompt_step",
    "2": "add_prompt_step",
    "save": "save_chain",
    "3": "save_chain",
    "view": "view_chain",
    "4": "view_chain",
    "viewc": "view_commit",
}
EXIT_CHOICES = {"exit", "6", "quit", "q"}


def describe_changes(file_diffs: list["FileDiff"]) -> str:
    """Response text recorded for a step captured from the working tree."""
    if not file_diffs:
        return "[No file changes detected]"
    lines = [f"Applied changes to {len(file_diffs)} file(s):"]
    lines.extend(
        f"  - {d.file_path}: {d.lines_added} additions, {d.lines_deleted} deletions"
        for d in file_diffs
    )
    return "\n".join(lines)


class PromptChainCLI:
    """
    Interactive menu over a PromptChainManager.

    Command errors are printed and the menu is shown again; nothing here
    terminates the process.
    """

    def __init__(
        self,
        manager: PromptChainManager,
        git: GitIntegration,
        tip_generator: "TipGenerator | None" = None,
        input_fn: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ):
        self.manager = manager
        self.git = git
        self.tip_generator = tip_generator
        self._input = input_fn
        self._print = output

    def ask(self, prompt: str) -> str:
        return self._input(prompt).strip()

    def run(self) -> int:
        """Run the menu loop until exit or end of input."""
        self._print("╔════════════════════════════════════════════════════════════╗")
        self._print("║              Welcome to GitPromptChain                     ║")
        self._print("║   Track your LLM conversation history with your commits    ║")
        self._print("╚════════════════════════════════════════════════════════════╝")

        while True:
            self.show_menu()
            try:
                choice = self.ask("Enter your choice: ").lower()
            except EOFError:
                choice = "exit"

            if choice in EXIT_CHOICES:
                self._print("\nGoodbye!")
                return 0

            try:
                self.handle_choice(choice)
            except EOFError:
                self._print("\nGoodbye!")
                return 0

    def show_menu(self) -> None:
        current = self.manager.get_current_chain()
        self._print("\n" + MENU_RULE)
        self._print("What would you like to do?")
        if current:
            self._print(f"\nActive chain: {current.chain_id}")
            self._print(f"   Steps: {len(current.steps)}\n")
        self._print("start   - Start a new prompt chain")
        self._print("add     - Add a prompt step to current chain")
        self._print("save    - Save and finalize current chain")
        self._print("view    - View a saved chain")
        self._print("viewc   - View chains for a commit (HEAD by default)")
        self._print("exit    - Exit\n")

    def handle_choice(self, choice: str) -> None:
        handler_name = MENU_CHOICES.get(choice)
        if handler_name is None:
            self._print("Invalid choice. Please try again.")
            return

        try:
            getattr(self, handler_name)()
        except (PromptChainError, GitError, OSError, ValueError) as e:
            logger.debug(f"{handler_name} failed", exc_info=True)
            self._print(f"Error: {e}")

    def start_new_chain(self) -> None:
        summary = self.ask("Enter a summary for this chain (optional): ")
        chain = self.manager.start_chain(summary or None)
        self._print(f"\nStarted new prompt chain: {chain.chain_id}")

    def add_prompt_step(self) -> None:
        current = self.manager.get_current_chain()
        if current is None:
            self._print("\nNo active chain. Please start a new chain first.")
            return

        prompt = self.ask("\nEnter your prompt: ")
        if not prompt:
            self._print("Prompt cannot be empty.")
            return

        file_diffs = self.git.get_uncommitted_diffs()
        self.manager.add_step(prompt, describe_changes(file_diffs), file_diffs)

        self._print("\nStep added!")
        self._print(f"   Chain: {current.chain_id}")
        self._print(f"   Total steps: {len(current.steps)}")
        if file_diffs:
            self._print(f"   Files changed: {len(file_diffs)}")
        self._print("\nTip: Use 'save' to finalize and save this chain, or 'add' to continue adding steps.")

    def save_chain(self) -> None:
        if self.manager.get_current_chain() is None:
            self._print("\nNo active chain to save.")
            return

        branch = self.git.get_current_branch()
        commit_sha = self.git.get_last_commit_sha()

        chain = self.manager.end_chain(commit_sha, branch)
        if chain is None:
            return
        self.manager.save_chain(chain)

        self._print("\nChain saved!")
        self._print(f"   Chain ID: {chain.chain_id}")
        self._print(f"   Total steps: {len(chain.steps)}")
        self._print(f"   Commit: {commit_sha or 'none'}")
        self._print(f"   Branch: {branch}")

    def view_chain(self) -> None:
        chain_ids = self.manager.list_chains()
        if not chain_ids:
            self._print("\nNo chains found.")
            return

        self._print(f"\nFound {len(chain_ids)} chain(s):\n")
        documents: list[tuple[str, "PromptChainDocument"]] = []
        for chain_id in chain_ids:
            document = self.manager.load_chain(chain_id)
            if document is None:
                continue
            documents.append((chain_id, document))
            self._print(f"  {len(documents)}. {ChainVisualizer.generate_summary(document.chain)}")
            self._print(f"     ID: {chain_id}")

        selection = self.ask("\nEnter chain number or ID to view (or press Enter to go back): ")
        if not selection:
            return

        selected = None
        if selection.isdigit() and 1 <= int(selection) <= len(documents):
            selected = documents[int(selection) - 1][1]
        else:
            selected = next((doc for cid, doc in documents if cid == selection), None)

        if selected is None:
            self._print("\nChain not found.")
            return

        self.show_document(selected)
        self.offer_tips(selected)

    def view_commit(self) -> None:
        head_sha = self.git.get_last_commit_sha()
        sha = self.ask(f"\nEnter commit SHA (or press Enter for HEAD: {head_sha}): ") or head_sha
        if not sha:
            self._print("\nNo commit found.")
            return

        documents = self.print_commit_chains(sha)
        if not documents:
            return

        selection = self.ask("\nEnter number to view full conversation (or Enter to go back): ")
        if selection.isdigit() and 1 <= int(selection) <= len(documents):
            document = documents[int(selection) - 1]
            self.show_document(document)
            self.offer_tips(document)

    def print_commit_chains(self, sha: str) -> list["PromptChainDocument"]:
        """Print a one-line summary per chain linked to sha and return them."""
        documents = self.manager.load_chains_by_commit(sha)
        if not documents:
            self._print(f"\nNo chains linked to commit {sha}.")
            return []

        self._print(f"\nFound {len(documents)} chain(s) for commit {sha}:\n")
        for number, document in enumerate(documents, start=1):
            metrics = document.metadata.metrics
            files = metrics.unique_files_changed if metrics else 0
            added = metrics.total_lines_added if metrics else 0
            deleted = metrics.total_lines_deleted if metrics else 0
            self._print(
                f"  {number}. Chain {document.chain.chain_id} - {len(document.chain.steps)} prompts, "
                f"{files} files changed (+{added} -{deleted})"
            )
        return documents

    def show_document(self, document: "PromptChainDocument") -> None:
        self._print("\n" + ChainVisualizer.render_metrics_table(document) + "\n")
        self._print("\n" + ChainVisualizer.visualize_chain(document))

    def offer_tips(self, document: "PromptChainDocument") -> None:
        metrics = document.metadata.metrics
        if metrics is None:
            return

        if self.tip_generator is not None:
            question = "Generate AI-powered prompting tips based on these metrics? (y/N): "
        else:
            question = "AI tips unavailable (no API key configured). Show built-in tips instead? (y/N): "

        if self.ask("\n" + question).lower() != "y":
            return

        result = generate_tips(metrics, document.chain, generator=self.tip_generator)
        if result.error:
            self._print(f"\nFailed to fetch AI tips: {result.error}")
            self._print("\nShowing built-in tips instead:\n")
        if result.source == "llm":
            self._print("\nAI prompting tips:\n" + result.text + "\n")
        else:
            self._print(result.text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitpromptchain",
        description="Track your LLM conversation history with your commits",
    )
    parser.add_argument("--repo", default=None, help="Repository path (default: current directory)")
    parser.add_argument("--storage-dir", default=None, help="Storage directory (default: <repo>/.gitpromptchain)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("list", help="List stored chains")

    show = subparsers.add_parser("show", help="Show a stored chain")
    show.add_argument("chain_id")
    show.add_argument("--json", action="store_true", help="Print the raw document")

    commit = subparsers.add_parser("commit", help="Show chains linked to a commit")
    commit.add_argument("sha", nargs="?", default=None, help="Commit SHA (default: HEAD)")

    return parser


def _cmd_list(cli: PromptChainCLI) -> int:
    chain_ids = cli.manager.list_chains()
    if not chain_ids:
        print("No chains found.")
        return 0
    for chain_id in chain_ids:
        document = cli.manager.load_chain(chain_id)
        if document is not None:
            print(f"{chain_id}  {ChainVisualizer.generate_summary(document.chain)}")
    return 0


def _cmd_show(cli: PromptChainCLI, chain_id: str, as_json: bool) -> int:
    document = cli.manager.load_chain(chain_id)
    if document is None:
        print(f"Chain not found: {chain_id}")
        return 1
    if as_json:
        print(ChainVisualizer.to_json(document))
    else:
        cli.show_document(document)
    return 0


def _cmd_commit(cli: PromptChainCLI, sha: str | None) -> int:
    sha = sha or cli.git.get_last_commit_sha()
    if not sha:
        print("No commit found.")
        return 1
    cli.print_commit_chains(sha)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.repo, args.storage_dir)
    manager = PromptChainManager(config, history_provider=create_history_provider(config.history))
    try:
        manager.initialize()
    except OSError as e:
        print(f"Fatal error: cannot create storage directory {config.storage_dir}: {e}", file=sys.stderr)
        return 1

    cli = PromptChainCLI(
        manager,
        GitIntegration(config.repo_path),
        tip_generator=create_tip_generator(config.tips),
    )

    if args.command == "list":
        return _cmd_list(cli)
    if args.command == "show":
        return _cmd_show(cli, args.chain_id, args.json)
    if args.command == "commit":
        return _cmd_commit(cli, args.sha)
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())

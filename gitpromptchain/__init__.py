"""GitPromptChain: track LLM prompt chains alongside your git commits.

Chains of prompt/response steps are recorded with the file changes they
produced, stored as JSON documents next to the repository, and indexed by
the commit they ended on.
"""

__version__ = "1.0.0"

# Data model
from .models import (
    ChangeType,
    FileDiff,
    PromptChain,
    PromptChainDocument,
    PromptChainMetadata,
    PromptChainMetrics,
    PromptStep,
)

# Core
from .diff_stats import DiffStats, classify_change, parse_diff_stats
from .chain_metrics import PromptStyle, classify_prompt_style, compute_chain_metrics
from .chain_lifecycle import ChainLifecycle, NoActiveChainError, PromptChainError
from .chain_store import ChainStore
from .manager import PromptChainManager

# Collaborators & config
from .config import PromptChainConfig, TipsConfig, load_config
from .git_integration import GitError, GitIntegration
from .history import ConversationHistoryProvider, create_history_provider
from .tips import BuiltinTipGenerator, LLMTipGenerator, TipError, create_tip_generator, generate_tips
from .visualizer import ChainVisualizer

__all__ = [
    # Data model
    "ChangeType",
    "FileDiff",
    "PromptChain",
    "PromptChainDocument",
    "PromptChainMetadata",
    "PromptChainMetrics",
    "PromptStep",
    # Core
    "DiffStats",
    "classify_change",
    "parse_diff_stats",
    "PromptStyle",
    "classify_prompt_style",
    "compute_chain_metrics",
    "ChainLifecycle",
    "NoActiveChainError",
    "PromptChainError",
    "ChainStore",
    "PromptChainManager",
    # Collaborators & config
    "PromptChainConfig",
    "TipsConfig",
    "load_config",
    "GitError",
    "GitIntegration",
    "ConversationHistoryProvider",
    "create_history_provider",
    "BuiltinTipGenerator",
    "LLMTipGenerator",
    "TipError",
    "create_tip_generator",
    "generate_tips",
    "ChainVisualizer",
]

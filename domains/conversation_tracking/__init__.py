"""
Conversation Tracking Domain

Follows Claude Code conversation logs and mirrors them into Langfuse:
- Watchers detect settled writes to ``*.jsonl`` files under the projects root
- The reader streams each file and derives its session identity from its path
- The processor deduplicates entries and turns user/assistant turns into
  Langfuse traces and generations
"""

__all__ = ["extractor", "ledger", "monitor", "processor", "reader", "watchers"]

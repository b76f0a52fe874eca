"""LLM-generated commit messages and pull request descriptions."""

from devflow.llm.client import ChatCompletionClient

__all__ = ["ChatCompletionClient"]

"""LLM-driven analysis agents."""

from src.llm_agents.base import BaseAgent
from src.llm_agents.comment_agent import CommentAnalysisAgent, no_comments_analysis
from src.llm_agents.factory import LLMClientFactory, get_llm_client

__all__ = [
    "BaseAgent",
    "get_llm_client",
    "LLMClientFactory",
    "CommentAnalysisAgent",
    "no_comments_analysis",
]

"""Comment analysis agent - sentiment, key points and summary for a video."""

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from src.core.constants import (
    NO_COMMENTS_KEY_POINT_CONTENT,
    NO_COMMENTS_KEY_POINT_TITLE,
    NO_COMMENTS_SUMMARY,
)
from src.core.exceptions import GenerationError
from src.core.schemas import AnalysisResult, Comment, KeyPoint, SentimentStats, VideoMetadata
from src.llm_agents.base import BaseAgent

logger = logging.getLogger(__name__)

CREATOR_NOTE = (
    "Note: Comments from the video creator have been excluded to focus on viewer feedback only.\n"
)


class CommentAnalysisPayload(BaseModel):
    """JSON object the model is asked to return."""

    model_config = ConfigDict(populate_by_name=True)

    sentiment_stats: SentimentStats = Field(..., alias="sentimentStats")
    key_points: list[KeyPoint] = Field(..., alias="keyPoints", min_length=1)
    comprehensive: str = Field(..., min_length=1)


def no_comments_analysis() -> AnalysisResult:
    """Fixed analysis used when a video has no comments to analyze."""
    return AnalysisResult(
        sentiment_stats=SentimentStats(positive=0, neutral=100, negative=0),
        key_points=[
            KeyPoint(title=NO_COMMENTS_KEY_POINT_TITLE, content=NO_COMMENTS_KEY_POINT_CONTENT)
        ],
        comprehensive=NO_COMMENTS_SUMMARY,
        comments_analyzed=0,
    )


class CommentAnalysisAgent(BaseAgent):
    """Summarizes viewer reaction from a bounded set of comments."""

    @property
    def model(self) -> str:
        return self.settings.llm_model

    def _load_prompt_template(self) -> str:
        """Load the prompt template from file."""
        prompt_path = Path(__file__).parent / "prompts" / "comment_analysis.txt"
        return prompt_path.read_text()

    def select_comments(self, video: VideoMetadata, comments: list[Comment]) -> list[Comment]:
        """Drop the creator's own comments and keep the first N in supplied order."""
        if self.settings.analysis_exclude_creator_comments:
            channel_title = video.channel_title.lower()
            comments = [
                c
                for c in comments
                if not (
                    (c.author_channel_id and c.author_channel_id == video.channel_id)
                    or (channel_title and c.author_display_name.lower() == channel_title)
                )
            ]

        return comments[: self.settings.analysis_max_comments]

    def _format_comments_for_llm(self, comments: list[Comment]) -> str:
        """Render comments as "author: text" blocks, clipping long texts."""
        max_length = self.settings.analysis_max_comment_length
        lines = []

        for comment in comments:
            text = comment.text_original or comment.text_display
            if len(text) > max_length:
                text = text[:max_length] + "..."
            lines.append(f"{comment.author_display_name}: {text}")

        return "\n\n".join(lines)

    def build_prompt(self, video: VideoMetadata, comments: list[Comment]) -> str:
        template = self._load_prompt_template()
        # Use replace instead of format to avoid issues with curly braces in comments
        replacements = {
            "{comment_count}": str(len(comments)),
            "{title}": video.title,
            "{channel_title}": video.channel_title,
            "{creator_note}": (
                CREATOR_NOTE if self.settings.analysis_exclude_creator_comments else ""
            ),
            "{comments_text}": self._format_comments_for_llm(comments),
        }
        prompt = template
        for placeholder, value in replacements.items():
            prompt = prompt.replace(placeholder, value)
        return prompt

    async def analyze(self, video: VideoMetadata, comments: list[Comment]) -> AnalysisResult:
        """
        Generate an analysis of the video's comments.

        Args:
            video: Video the comments belong to
            comments: Comments in relevance order

        Returns:
            AnalysisResult whose ``comments_analyzed`` is the number of
            comments sent to the model

        Raises:
            GenerationError: If the call fails or the response is not a valid
                analysis
        """
        selected = self.select_comments(video, comments)
        excluded = len(comments) - len(selected)
        if excluded and self.settings.analysis_exclude_creator_comments:
            logger.debug(f"Excluded {excluded} comments for {video.id} (creator or over limit)")

        if not selected:
            logger.info(f"No viewer comments left to analyze for {video.id}")
            return no_comments_analysis()

        prompt = self.build_prompt(video, selected)
        logger.info(f"Analyzing {len(selected)} comments for video {video.id}")

        try:
            payload = await self._call_and_validate(prompt, CommentAnalysisPayload)
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"Comment analysis failed: {e}") from e

        return AnalysisResult(
            sentiment_stats=payload.sentiment_stats,
            key_points=payload.key_points,
            comprehensive=payload.comprehensive,
            comments_analyzed=len(selected),
        )

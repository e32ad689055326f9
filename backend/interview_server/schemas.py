from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import Settings

Role = Literal["system", "user", "assistant"]


class ConversationTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class InterviewParams(BaseModel):
    """Interview setup embedded in the interviewer's system prompt."""

    job_title: str = Field(..., description="Role the candidate is interviewing for.")
    difficulty: str = Field(..., description="How demanding the questions should be.")
    interview_type: str = Field(..., description="E.g. behavioral or technical.")

    @classmethod
    def from_form(
        cls,
        settings: Settings,
        *,
        job_title: Optional[str] = None,
        difficulty: Optional[str] = None,
        interview_type: Optional[str] = None,
    ) -> "InterviewParams":
        """Fill absent or blank form values with the configured defaults."""
        return cls(
            job_title=job_title if job_title else settings.default_job_title,
            difficulty=difficulty if difficulty else settings.default_difficulty,
            interview_type=interview_type if interview_type else settings.default_interview_type,
        )


class InterviewResponse(BaseModel):
    transcript: str = Field(..., description="What the candidate said.")
    reply_text: str = Field(..., description="The interviewer's next message.")


class HealthResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    error: str

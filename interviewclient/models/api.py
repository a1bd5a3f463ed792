"""Wire models for the interview service responses."""

from typing import List

from pydantic import BaseModel, Field

from .interview import InterviewPhase


class StartInterviewResponse(BaseModel):
    session_id: str = Field(min_length=1)
    message: str
    phase: InterviewPhase


class ChatResponse(BaseModel):
    message: str
    phase: InterviewPhase
    is_follow_up: bool = False
    is_complete: bool


class FeedbackCriterion(BaseModel):
    name: str
    score: float
    feedback: str


class InterviewReport(BaseModel):
    overall_score: float
    summary: str
    criteria: List[FeedbackCriterion] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    recommendation: str


class ReportResponse(BaseModel):
    report: InterviewReport
